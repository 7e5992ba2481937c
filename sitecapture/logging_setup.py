"""Root logging for the server and the export CLI."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
# Third-party loggers that report every sitemap request or driver message at DEBUG.
CHATTY_LOGGERS = ("urllib3", "asyncio")


def log_dir() -> Path:
    return Path(os.getenv("APP_LOG_DIR", "logs"))


def log_filename() -> str:
    return os.getenv("APP_LOG_FILENAME", "latest-run.log")


def _normalise_level(level: Optional[str | int]) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        value = level.strip().upper()
        if value.isdigit():
            return int(value)
        mapped = logging.getLevelName(value)
        if isinstance(mapped, int):
            return mapped
    return logging.INFO


def configure_logging(
    level: Optional[str | int] = None,
    directory: Path | None = None,
    quiet: Iterable[str] = CHATTY_LOGGERS,
) -> Path:
    """Send root logging to stderr and to a log file rewritten on every call.

    Returns the log file path.
    """

    log_level = _normalise_level(level)
    target = directory or log_dir()
    target.mkdir(parents=True, exist_ok=True)
    log_path = target / log_filename()

    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(log_path, mode="w", encoding="utf-8"),
        ],
        force=True,
    )
    for name in quiet:
        logging.getLogger(name).setLevel(max(log_level, logging.INFO))
    logging.getLogger(__name__).debug("Writing logs to %s", log_path)
    return log_path
