# =============================================================================
# resolution_core/logging/config.py
# Logging Configuration for the Resolution Tracker
# =============================================================================

import logging
import os
import sys
import time
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional, Union


LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_DIR = Path("logs")
LEVEL_ENV_VAR = "RESOLUTIONS_LOG_LEVEL"

# Libraries that log every request at INFO
NOISY_LOGGERS = ("urllib3", "requests", "streamlit", "watchdog", "asyncio")


def _resolve_level(level: Union[int, str, None]) -> int:
    if level is None:
        level = os.environ.get(LEVEL_ENV_VAR, "INFO")
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        return resolved if isinstance(resolved, int) else logging.INFO
    return level


def setup_logging(
    level: Union[int, str, None] = None,
    log_to_file: bool = True,
    log_filename: Optional[str] = None,
) -> logging.Logger:
    """
    Configure logging for the whole process.

    Args:
        level: Level number or name; defaults to $RESOLUTIONS_LOG_LEVEL or INFO
        log_to_file: Also write to logs/resolutions_YYYY-MM-DD.log
        log_filename: Alternate file name inside logs/

    Returns:
        The package logger
    """
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_to_file:
        LOG_DIR.mkdir(exist_ok=True)
        filename = log_filename or f"resolutions_{date.today():%Y-%m-%d}.log"
        handlers.append(logging.FileHandler(LOG_DIR / filename))

    logging.basicConfig(
        level=_resolve_level(level),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=handlers,
        force=True,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    package_logger = logging.getLogger("resolution_core")
    package_logger.debug("Logging configured")
    return package_logger


def get_logger(name: str) -> logging.Logger:
    """
    Usage:
        from resolution_core.logging import get_logger
        logger = get_logger(__name__)
    """
    return logging.getLogger(name)


class LogContext:
    """
    Times an operation and logs how it ended.

    Results worth keeping can be attached with note() and are appended to the
    completion line.

    Usage:
        with LogContext(logger, "Fetching resolutions") as ctx:
            goals = gateway.list_goals()
            ctx.note(count=len(goals))
        # Fetching resolutions... started
        # Fetching resolutions... completed in 0.42s (count=5)
    """

    def __init__(self, logger: logging.Logger, operation: str, level: int = logging.INFO):
        self.logger = logger
        self.operation = operation
        self.level = level
        self.notes: Dict[str, Any] = {}
        self._started: Optional[float] = None

    def note(self, **values: Any) -> None:
        self.notes.update(values)

    @property
    def elapsed(self) -> float:
        return 0.0 if self._started is None else time.perf_counter() - self._started

    def __enter__(self):
        self._started = time.perf_counter()
        self.logger.log(self.level, f"{self.operation}... started")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            self.logger.warning(f"{self.operation}... failed after {self.elapsed:.2f}s: {exc_val}")
            return False

        suffix = ""
        if self.notes:
            suffix = " (" + ", ".join(f"{k}={v}" for k, v in self.notes.items()) + ")"
        self.logger.log(self.level, f"{self.operation}... completed in {self.elapsed:.2f}s{suffix}")
        return False
