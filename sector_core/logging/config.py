# =============================================================================
# sector_core/logging/config.py
# Process-wide logging for the tracker (Streamlit reruns share one process)
# =============================================================================

import logging
import os
import sys
import time
from datetime import date
from pathlib import Path
from typing import Optional, Union


LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

DEFAULT_LOG_DIR = Path("logs")
LEVEL_ENV_VAR = "TRACKER_LOG_LEVEL"

# Supabase SDK stack logs one INFO line per HTTP request
NOISY_LOGGERS = ("urllib3", "httpx", "httpcore", "hpack", "supabase", "postgrest", "gotrue", "storage3")


def _resolve_level(level: Union[int, str, None]) -> int:
    if level is None:
        level = os.environ.get(LEVEL_ENV_VAR, "INFO")
    if isinstance(level, str):
        value = logging.getLevelName(level.upper())
        return value if isinstance(value, int) else logging.INFO
    return level


def setup_logging(
    level: Union[int, str, None] = None,
    log_dir: Optional[Path] = DEFAULT_LOG_DIR,
) -> None:
    """
    Configure the root logger once per process.

    Args:
        level: Level name or number; defaults to $TRACKER_LOG_LEVEL, then INFO
        log_dir: Directory for the daily ``tracker_YYYY-MM-DD.log`` file,
            None to log to stdout only
    """
    handlers = [logging.StreamHandler(sys.stdout)]

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / f"tracker_{date.today().isoformat()}.log"
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=_resolve_level(level),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=handlers,
        force=True,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("sector_core").info(f"Logging ready (file: {log_dir or 'disabled'})")


def get_logger(name: str) -> logging.Logger:
    """Module logger: ``logger = get_logger(__name__)``"""
    return logging.getLogger(name)


class LogContext:
    """
    Logs start, duration and outcome of a block; never swallows errors.

    Usage:
        with LogContext(logger, "Flushing offline queue"):
            queue.sync_pending_operations()
    """

    def __init__(self, logger: logging.Logger, operation: str):
        self.logger = logger
        self.operation = operation
        self._started: Optional[float] = None

    @property
    def elapsed(self) -> float:
        return 0.0 if self._started is None else time.perf_counter() - self._started

    def __enter__(self):
        self._started = time.perf_counter()
        self.logger.info(f"{self.operation}...")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.logger.info(f"{self.operation} done in {self.elapsed:.2f}s")
        else:
            self.logger.error(f"{self.operation} failed after {self.elapsed:.2f}s: {exc_val}", exc_info=True)
        return False
