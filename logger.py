# logger.py
"""
Logging for FPMS.

One "FPMS" logger writes everything from DEBUG up to logs/fpms_<date>.log and
echoes INFO and above to stdout. Modules call the log_* helpers.

Environment:
    FPMS_LOGS_DIR   directory for the daily files (default: logs)
    FPMS_LOG_LEVEL  console level (default: INFO)
"""

import logging
import os
import sys
from datetime import datetime
from pathlib import Path

LOGS_DIR = Path(os.getenv("FPMS_LOGS_DIR", "logs"))
LOGS_DIR.mkdir(parents=True, exist_ok=True)

CONSOLE_LEVEL = os.getenv("FPMS_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logger(name: str = "FPMS") -> logging.Logger:
    """Return the named logger, attaching the file + console handlers once."""
    log = logging.getLogger(name)
    if log.handlers:
        return log

    log.setLevel(logging.DEBUG)
    log.propagate = False
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    log_file = LOGS_DIR / f"fpms_{datetime.now():%Y-%m-%d}.log"
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(getattr(logging, CONSOLE_LEVEL, logging.INFO))
    console.setFormatter(formatter)

    log.addHandler(file_handler)
    log.addHandler(console)
    return log


logger = setup_logger()


def log_info(message: str):
    logger.info(message)


def log_warning(message: str):
    logger.warning(message)


def log_error(message: str, exc_info=False):
    logger.error(message, exc_info=exc_info)


def log_debug(message: str):
    logger.debug(message)
