# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from nudgeboard.core.state import AppState
from nudgeboard.llm.offline import OfflineVocabularyGenerator
from nudgeboard.tasks.task_board import TaskBoard
from nudgeboard.tasks.task_store import TaskStore
from nudgeboard.vocabulary.vocab_store import VocabularyStore

from .fakes import T0, FakeClock


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="nudgeboard-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        vocab_db_path=tmp_path / "vocabulary.sqlite3",
        owner_id="tester",
        initial_status="init",
        default_reminder_hours=24,
        reminder_tick_seconds=60.0,
        ai_provider="openai",
        gemini_api_key=None,
        gemini_model="gemini-1.5-flash",
        openai_api_key=None,
        openai_model="gpt-4o-mini",
        anthropic_api_key=None,
        anthropic_model="claude-3-haiku-20240307",
        llm_timeout_seconds=5.0,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(T0)


@pytest.fixture()
def state(settings: SimpleNamespace, clock: FakeClock) -> AppState:
    """
    AppState wired with deterministic fakes.

    NOTE: We keep real SQLite stores here (TaskStore/VocabularyStore) because
    their correctness is part of what we want to test.
    """
    task_store = TaskStore(settings.tasks_db_path, owner_id=settings.owner_id)
    return AppState(
        settings=settings,
        task_store=task_store,
        board=TaskBoard(task_store, clock=clock),
        vocabulary=VocabularyStore(settings.vocab_db_path),
        generator=OfflineVocabularyGenerator(),
    )
