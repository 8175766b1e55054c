"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskStatus, TaskFormData)
- task_errors.py: error taxonomy raised by the board
- task_reminder.py: pure reminder evaluator (needs_attention)
- task_store.py: SQLite-backed persistence gateway with a change feed
- task_board.py: the board facade (optimistic local state + reconciliation)
- task_scheduler.py: polling scheduler that escalates overdue WORKING tasks
- task_views.py: column ordering / filtering helpers
- task_api.py: session lifecycle and legacy import helpers
"""
