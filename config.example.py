# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file,
see src/nudgeboard/config.py). Do NOT commit real secrets; keep them in .env (gitignored).

This file exists to make the repo self-documenting even without opening .env.
"""

ENV_VARS = {
    # App / logging
    "NUDGE_APP_NAME": "App display name (default: nudgeboard).",
    "NUDGE_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Paths (gitignored)
    "NUDGE_DATA_DIR": "Local data directory, also holds nudgeboard.log (default: .local/nudgeboard).",
    "NUDGE_TASKS_DB_PATH": "TaskStore SQLite path (default: <data_dir>/tasks.sqlite3).",
    "NUDGE_VOCAB_DB_PATH": "VocabularyStore SQLite path (default: <data_dir>/vocabulary.sqlite3).",
    # Task lifecycle
    "NUDGE_OWNER_ID": "Owner the task rows belong to (default: local).",
    "NUDGE_INITIAL_STATUS": "Status of newly created tasks: init | working (default: init).",
    "NUDGE_DEFAULT_REMINDER_HOURS": "Reminder interval used when none/invalid is given (default: 24).",
    "NUDGE_REMINDER_TICK_SECONDS": "How often the reminder scheduler checks (default: 60, min 1).",
    # AI vocabulary generator
    "NUDGE_AI_PROVIDER": "gemini | openai | anthropic (default: gemini).",
    "NUDGE_GEMINI_API_KEY": "Gemini API key (GEMINI_API_KEY is accepted too).",
    "NUDGE_GEMINI_MODEL": "Gemini model (default: gemini-1.5-flash).",
    "NUDGE_OPENAI_API_KEY": "OpenAI API key (OPENAI_API_KEY is accepted too).",
    "NUDGE_OPENAI_MODEL": "OpenAI model (default: gpt-4o-mini).",
    "NUDGE_ANTHROPIC_API_KEY": "Anthropic API key (ANTHROPIC_API_KEY is accepted too).",
    "NUDGE_ANTHROPIC_MODEL": "Anthropic model (default: claude-3-haiku-20240307).",
    "NUDGE_LLM_TIMEOUT_SECONDS": "Per-request timeout for the AI provider (default: 30).",
}
