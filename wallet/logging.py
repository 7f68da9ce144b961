"""
Logging setup shared by the API process and scripts.

- console: INFO
- file: INFO, rotated daily (TimedRotatingFileHandler)

Usage:
    from wallet.logging import setup_logging
    setup_logging("api")
"""

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional, Union


LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_BACKUP_COUNT = 14
DEFAULT_LOG_DIR = Path("logs")

NOISY_LOGGERS = [
    "uvicorn.access",
    "httpx",
    "httpcore",
    "asyncio",
]


def get_log_file_path(process_name: str, log_dir: Union[str, Path, None] = None) -> Path:
    return Path(log_dir or DEFAULT_LOG_DIR) / f"{process_name}.log"


def setup_logging(
    process_name: str,
    log_dir: Union[str, Path, None] = None,
    console_level: int = logging.INFO,
    file_level: Optional[int] = logging.INFO,
) -> logging.Logger:
    """Configure the root logger for one process.

    Args:
        process_name: name used for the log file (``<log_dir>/<name>.log``)
        log_dir: directory for the log file, created when missing
        console_level: level for the stdout handler
        file_level: level for the daily file handler; ``None`` disables the file

    Returns:
        The configured root logger.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    log_file = None
    if file_level is not None:
        log_file = get_log_file_path(process_name, log_dir)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            filename=log_file,
            when="midnight",
            interval=1,
            backupCount=LOG_FILE_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.suffix = "%Y-%m-%d"
        file_handler.setLevel(file_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    root_logger.info("Logging initialised for %s", process_name)
    if log_file is not None:
        root_logger.info("  - file: %s (%s, daily rotation)", log_file, logging.getLevelName(file_level))

    return root_logger
