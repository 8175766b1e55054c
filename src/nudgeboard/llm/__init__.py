"""AI content generation for the vocabulary feature."""
