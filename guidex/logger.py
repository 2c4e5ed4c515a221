"""
GuideX logging.

Everything logs under the ``guidex`` namespace:
- <data dir>/logs/guidex.log: service activity (INFO+, or GUIDEX_LOG_LEVEL)
- <data dir>/logs/errors.log: failures only, with tracebacks
- stderr: warnings and up, short format

Library modules only call get_logger(); main.py calls setup_logging() once.
"""
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from guidex.paths import LOGS_DIR

ROOT_LOGGER_NAME = "guidex"
MAX_BYTES = 2 * 1024 * 1024
BACKUP_COUNT = 5

FILE_FORMAT = logging.Formatter(
    "%(asctime)s %(levelname)-7s [%(name)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
CONSOLE_FORMAT = logging.Formatter("%(levelname)s %(name)s: %(message)s")


def _level_from_env(default: int) -> int:
    raw = os.getenv("GUIDEX_LOG_LEVEL", "").strip().upper()
    level = logging.getLevelName(raw) if raw else default
    return level if isinstance(level, int) else default


def _rotating(path: Path, level: int) -> RotatingFileHandler:
    handler = RotatingFileHandler(path, maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(FILE_FORMAT)
    return handler


def setup_logging(
    log_level: int = logging.INFO,
    console_level: int = logging.WARNING,
    log_dir: Optional[Path] = None,
) -> logging.Logger:
    """
    Attach file and console handlers to the ``guidex`` root logger.

    Safe to call again (e.g. under uvicorn reload): old handlers are closed
    and replaced.
    """
    log_dir = Path(log_dir) if log_dir else LOGS_DIR
    log_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(logging.DEBUG)
    root.propagate = False
    for handler in list(root.handlers):
        handler.close()
        root.removeHandler(handler)

    root.addHandler(_rotating(log_dir / "guidex.log", _level_from_env(log_level)))
    root.addHandler(_rotating(log_dir / "errors.log", logging.ERROR))

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(CONSOLE_FORMAT)
    root.addHandler(console)
    return root


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """``guidex.<name>``, or the package root logger when name is empty."""
    if name:
        return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
    return logging.getLogger(ROOT_LOGGER_NAME)
