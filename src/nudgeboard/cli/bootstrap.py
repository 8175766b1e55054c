# src/nudgeboard/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (task store/board, vocabulary, AI).
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.ports import VocabularyGenerator
from ..core.state import AppState
from ..llm.client import VocabularyGenerationError, VocabularyLLMClient
from ..llm.offline import OfflineVocabularyGenerator
from ..tasks.task_board import TaskBoard
from ..tasks.task_models import TaskStatus
from ..tasks.task_store import TaskStore
from ..vocabulary.vocab_store import VocabularyStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.vocab_db_path.parent.mkdir(parents=True, exist_ok=True)


def build_generator(settings) -> VocabularyGenerator:
    try:
        return VocabularyLLMClient.from_settings(settings)
    except VocabularyGenerationError as e:
        # Fallback for demos / local runs without external services.
        logger.info("AI generator unavailable (%s); using offline generator.", e)
        return OfflineVocabularyGenerator()


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    task_store = TaskStore(settings.tasks_db_path, owner_id=settings.owner_id)
    initial = TaskStatus.WORKING if settings.initial_status == "working" else TaskStatus.INIT
    board = TaskBoard(
        task_store,
        initial_status=initial,
        default_reminder_interval=settings.default_reminder_hours,
    )

    return AppState(
        settings=settings,
        task_store=task_store,
        board=board,
        vocabulary=VocabularyStore(settings.vocab_db_path),
        generator=build_generator(settings),
    )
