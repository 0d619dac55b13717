"""
Logging setup: console output plus a daily rotating log file.
"""

from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional
import logging
import sys

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are too chatty at DEBUG
NOISY_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "apscheduler", "httpx", "aiosmtplib")


def setup_logging(
    log_level: str = "INFO",
    log_dir: Optional[str] = "./logs",
    log_file_prefix: str = "clicktales",
    backup_count: int = 14,
):
    """
    Configure the root logger.

    Args:
        log_level: root level name (DEBUG, INFO, ...)
        log_dir: directory for the rotating log file; None disables file output
        log_file_prefix: file name prefix, e.g. clicktales.log, clicktales.log.2026-10-18
        backup_count: number of daily files to keep
    """
    root = logging.getLogger()
    root.setLevel(log_level.upper())

    # Re-running setup (reload, tests) must not stack handlers
    for handler in list(root.handlers):
        root.removeHandler(handler)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_dir:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            path / f"{log_file_prefix}.log",
            when="midnight",
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.suffix = "%Y-%m-%d"
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
