# src/linkflow/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FILE_NAME = "linkflow.log"
POLLER_LOGGER = "linkflow.tasks.task_scheduler"


class _ConsoleNoiseFilter(logging.Filter):
    """
    Decides what reaches stderr while the REPL is open.

    The poller logs every fired action at INFO; on the console only its
    warnings (failed launches, store errors) are shown. Other linkflow loggers
    pass through, everything else (py.warnings, libraries) needs ERROR.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name.startswith(POLLER_LOGGER):
            return record.levelno >= logging.WARNING
        if record.name.startswith("linkflow."):
            return True
        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = ".local/linkflow",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Install the stderr and file handlers on the root logger.

    linkflow.log under `log_dir` keeps the full record (each poller pass,
    dispatch failures with tracebacks) for later inspection. Safe to call again:
    previously installed root handlers are replaced.

    Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    to_file = logging.FileHandler(str(log_file), encoding="utf-8")
    to_file.setLevel(file_level)
    to_file.setFormatter(fmt)
    root.addHandler(to_file)

    logging.captureWarnings(True)
    return log_file
