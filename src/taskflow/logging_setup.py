# src/taskflow/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FILE_NAME = "taskflow.log"

# Data-layer chatter ("LocalStorage ready", "EntityStore loaded", rollbacks) shares the terminal
# with the REPL; the notifier already reports outcomes there, so below WARNING it is file-only.
_FILE_ONLY_BELOW_WARNING = (
    "taskflow.storage",
    "taskflow.tasks.entity_store",
    "taskflow.auth",
)


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the REPL readable:
    - taskflow logs pass, except data-layer INFO/DEBUG (see _FILE_ONLY_BELOW_WARNING)
    - httpx/httpcore only from WARNING
    - everything else (py.warnings, third-party) only from ERROR
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name

        if name.startswith(_FILE_ONLY_BELOW_WARNING):
            return record.levelno >= logging.WARNING

        if name.startswith("taskflow."):
            return True

        if name.startswith(("httpx", "httpcore")):
            return record.levelno >= logging.WARNING

        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = ".local/taskflow",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Install two handlers on the root logger and return the log file path.

    The console handler is short and filtered for the REPL (stderr, so it never mixes into
    command replies on stdout). The file handler keeps everything, with milliseconds.

    Safe to call again: previous handlers are replaced.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    for h in list(root.handlers):
        root.removeHandler(h)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(fmt="%(levelname)s %(name)s: %(message)s"))
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(file_handler)

    logging.captureWarnings(True)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    return log_file
