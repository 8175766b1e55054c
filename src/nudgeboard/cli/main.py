# src/nudgeboard/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then runs the console connector
(which mounts the task board and its reminder scheduler).
"""

from __future__ import annotations

import asyncio
import logging

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging
from ..tasks.task_errors import LoadError

logger = logging.getLogger(__name__)


def _shutdown(state) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    for name in ("task_store", "vocabulary"):
        try:
            store = getattr(state, name, None)
            if store is not None and hasattr(store, "close"):
                store.close()
        except Exception:
            logger.debug("%s close failed.", name, exc_info=True)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_dir = getattr(settings, "data_dir", ".local/nudgeboard")
    log_file = setup_logging(log_dir=log_dir, console_level=console_level)

    logger.info("Starting %s (log file: %s)...", getattr(settings, "app_name", "nudgeboard"), log_file)

    # IMPORTANT: reuse same settings object
    state = create_initial_state(settings=settings)

    try:
        asyncio.run(run_console_loop(state))
    except LoadError as e:
        logger.error("Could not load tasks: %s", e)
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down...")
    finally:
        _shutdown(state)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
