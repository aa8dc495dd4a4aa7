"""Logging for packaging runs.

A single `easy_rpm` logger writes to stdout and never reaches the host
process's root logger, so a build script embedding the packaging steps keeps
its own logging untouched. The level is chosen by name from the command
line, and `--log-file` adds a rotating file copy whose level follows the
console level at the time it is attached.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = "[%(asctime)s][%(levelname)-8s]: %(message)s"
TIMESTAMP_FORMAT = "%y-%m-%d %H:%M:%S"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

log = logging.getLogger("easy_rpm")
log.setLevel(logging.INFO)

console_handler = logging.StreamHandler(sys.stdout)
console_handler.setFormatter(logging.Formatter(LOG_FORMAT, TIMESTAMP_FORMAT))
log.addHandler(console_handler)

# Keep packaging output out of the host's root logger
log.propagate = False


def set_log_level(level_str: str):
    """Set the packaging log level from its name (DEBUG, INFO, ...).

    Unknown names fall back to INFO.
    """
    name = level_str.upper()
    level = getattr(logging, name) if name in LOG_LEVELS else logging.INFO
    log.setLevel(level)
    console_handler.setLevel(level)


def setup_file_logging(log_file, max_bytes: int = 5 * 1024 * 1024, backup_count: int = 3):
    """Mirror the packaging log into a rotating file next to the console output.

    Args:
        log_file: Path of the log file; parent directories are created
        max_bytes: Size at which the file is rotated
        backup_count: Number of rotated files kept
    """
    log_path = Path(log_file)
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
    except OSError as e:
        log.warning(f"Could not open log file {log_path}: {e}")
        return None

    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, TIMESTAMP_FORMAT))
    file_handler.setLevel(log.level)
    log.addHandler(file_handler)
    log.debug(f"Logging to file: {log_path}")
    return file_handler
