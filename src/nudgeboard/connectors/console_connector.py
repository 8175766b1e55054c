# src/nudgeboard/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState
from ..tasks.task_api import BoardSession
from ..tasks.task_models import Task

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


def _on_reminded(task: Task) -> None:
    _print_ts(f"[REMINDER] {task.name!r} needs taking care (every {task.reminder_interval}h).")


async def run_console_loop(state: AppState) -> None:
    """
    Interactive console front end.

    The board is mounted for the lifetime of the loop: tasks are loaded,
    remote changes are followed and the reminder scheduler ticks in the
    background while input() blocks in a worker thread.
    """
    tick = float(getattr(state.settings, "reminder_tick_seconds", 60.0))

    async with BoardSession(state.board, tick_seconds=tick, on_reminded=_on_reminded):
        logger.info("Console connector started (%d tasks).", len(state.board.tasks))
        _print_ts("[CONSOLE] Use /help for commands, /board for the kanban view, /exit to quit.\n")

        while True:
            try:
                user_input = (await asyncio.to_thread(input, ">>> ")).strip()
            except EOFError:
                logger.info("Console EOF received, exiting.")
                break
            except KeyboardInterrupt:
                logger.info("Console KeyboardInterrupt, exiting.")
                print()
                break

            if not user_input:
                continue

            if user_input.lower() in ("/exit", "/quit"):
                logger.info("Console exit command received.")
                break

            if not user_input.startswith("/"):
                # Bare text is a shortcut for /add.
                user_input = f"/add {user_input}"

            try:
                response = await command_registry.handle(state, user_input, emit=_print_ts)
            except Exception:
                logger.exception("Command handler crashed.")
                response = "Internal error while handling a command."

            if response is not None:
                _print_ts(response)

    logger.info("Console connector finished.")
