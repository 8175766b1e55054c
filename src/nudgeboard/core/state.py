# src/nudgeboard/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..tasks.task_board import TaskBoard
from ..vocabulary.vocab_store import VocabularyStore
from .ports import TaskGateway, VocabularyGenerator


@dataclass
class AppState:
    """
    Everything a front end needs, built once in the composition root
    (cli/bootstrap.py) and passed explicitly to connectors and commands.
    """

    # Store Settings on the state for easy access in other modules later.
    settings: object

    task_store: TaskGateway
    board: TaskBoard
    vocabulary: VocabularyStore
    generator: VocabularyGenerator
