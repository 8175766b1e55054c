# src/nudgeboard/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

# Background components that log on every tick / every write.
_QUIET_LOGGERS = (
    "nudgeboard.tasks.task_scheduler",
    "nudgeboard.tasks.task_store",
    "nudgeboard.vocabulary.vocab_store",
)

# Libraries whose INFO output is only useful in the log file.
_CLAMPED_LIBRARIES = ("httpx", "httpcore", "openai")

LOG_FILE_NAME = "nudgeboard.log"


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the interactive console readable while the prompt is waiting for input:
    - nudgeboard logs pass, except the background loggers above (WARNING+ only)
    - captured Python warnings and any third-party logger: ERROR+ only
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name

        if not name.startswith("nudgeboard."):
            return record.levelno >= logging.ERROR

        if name in _QUIET_LOGGERS:
            return record.levelno >= logging.WARNING
        return True


def setup_logging(
    *,
    log_dir: str | Path = ".local/nudgeboard",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Console handler (filtered) + file handler (everything at file_level).

    Replaces any handlers already on the root logger, so calling it twice does
    not duplicate output. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    for name in _CLAMPED_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.captureWarnings(True)
    return log_file
