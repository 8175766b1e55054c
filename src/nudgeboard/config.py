# src/nudgeboard/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
- Provider API keys accept both the prefixed and the vendor's usual env name.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

ENV_PREFIX = "NUDGE"

DEFAULT_REMINDER_HOURS = 24


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    tasks_db_path: Path
    vocab_db_path: Path

    # ---- Task lifecycle ----
    owner_id: str
    initial_status: str
    default_reminder_hours: int
    reminder_tick_seconds: float

    # ---- AI providers (vocabulary) ----
    ai_provider: str
    gemini_api_key: Optional[str]
    gemini_model: str
    openai_api_key: Optional[str]
    openai_model: str
    anthropic_api_key: Optional[str]
    anthropic_model: str
    llm_timeout_seconds: float

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "nudgeboard") or "nudgeboard"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/nudgeboard"))
        tasks_db_path = _env_path(_k("TASKS_DB_PATH"), data_dir / "tasks.sqlite3")
        vocab_db_path = _env_path(_k("VOCAB_DB_PATH"), data_dir / "vocabulary.sqlite3")

        owner_id = (_env(_k("OWNER_ID"), "local") or "local").strip()

        initial_status = _env(_k("INITIAL_STATUS"), "init").strip().lower()
        if initial_status not in ("init", "working"):
            initial_status = "init"

        # Non-positive values fall back to the default: intervals are always >= 1h.
        default_reminder_hours = _env_int(_k("DEFAULT_REMINDER_HOURS"), DEFAULT_REMINDER_HOURS)
        if default_reminder_hours < 1:
            default_reminder_hours = DEFAULT_REMINDER_HOURS

        reminder_tick_seconds = max(1.0, _env_float(_k("REMINDER_TICK_SECONDS"), 60.0))

        ai_provider = _env(_k("AI_PROVIDER"), "gemini").strip().lower() or "gemini"

        gemini_api_key = _first_env(_k("GEMINI_API_KEY"), "GEMINI_API_KEY", default=None)
        gemini_model = _env(_k("GEMINI_MODEL"), "gemini-1.5-flash")
        openai_api_key = _first_env(_k("OPENAI_API_KEY"), "OPENAI_API_KEY", default=None)
        openai_model = _env(_k("OPENAI_MODEL"), "gpt-4o-mini")
        anthropic_api_key = _first_env(_k("ANTHROPIC_API_KEY"), "ANTHROPIC_API_KEY", default=None)
        anthropic_model = _env(_k("ANTHROPIC_MODEL"), "claude-3-haiku-20240307")

        llm_timeout_seconds = max(1.0, _env_float(_k("LLM_TIMEOUT_SECONDS"), 30.0))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            tasks_db_path=tasks_db_path,
            vocab_db_path=vocab_db_path,
            owner_id=owner_id,
            initial_status=initial_status,
            default_reminder_hours=default_reminder_hours,
            reminder_tick_seconds=reminder_tick_seconds,
            ai_provider=ai_provider,
            gemini_api_key=gemini_api_key,
            gemini_model=gemini_model,
            openai_api_key=openai_api_key,
            openai_model=openai_model,
            anthropic_api_key=anthropic_api_key,
            anthropic_model=anthropic_model,
            llm_timeout_seconds=llm_timeout_seconds,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
