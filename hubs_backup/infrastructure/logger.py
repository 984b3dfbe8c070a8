"""
Package logger for Hubs Backup.

Console output goes through a stream handler attached once; each backup run
additionally writes to its own log file next to the exported content.
"""

import logging
from pathlib import Path
from typing import Optional, Union


LOGGER_NAME = "HubsBackup"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

logger = logging.getLogger(LOGGER_NAME)
logger.setLevel(logging.INFO)

if not logger.handlers:
    _console = logging.StreamHandler()
    _console.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(_console)

_file_handler: Optional[logging.FileHandler] = None


def configure_log_file(path: Union[str, Path], level: int = logging.INFO) -> Path:
    """
    Route log records to a fresh file for the current run.

    Any content from a previous run at the same path is truncated and a
    file handler from an earlier run is detached first.

    Args:
        path: Log file location; parent directories are created
        level: Minimum level written to the file

    Returns:
        The resolved log file path
    """
    global _file_handler

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    close_log_file()

    handler = logging.FileHandler(path, mode="w", encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    _file_handler = handler

    return path


def close_log_file() -> None:
    """Detach and close the per-run file handler, if any."""
    global _file_handler

    if _file_handler is not None:
        logger.removeHandler(_file_handler)
        _file_handler.close()
        _file_handler = None


__all__ = [
    "logger",
    "configure_log_file",
    "close_log_file",
]
