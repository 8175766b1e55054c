"""
Vocabulary subsystem.

Components:
- vocab_models.py: structured entries, AI response parsing, storage helpers
- vocab_store.py: SQLite-backed vocabulary store
"""
