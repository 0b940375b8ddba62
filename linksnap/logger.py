"""Logging configuration for linksnap.

All modules log through children of the "linksnap" logger. setup_logging()
attaches a console handler and, optionally, a rotating log file.
"""

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from linksnap.config import LoggingConfig

if TYPE_CHECKING:
    from linksnap.stats import RunStatistics


# Logger name for the linksnap package
LOGGER_NAME = "linksnap"

# Default rotation settings
DEFAULT_MAX_BYTES = 10 * 1024 * 1024  # 10MB
DEFAULT_BACKUP_COUNT = 5

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR"}

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class LoggingError(Exception):
    """Raised when logging setup fails."""
    pass


def _ensure_log_directory(log_path: Path) -> None:
    """Ensure the parent directory for a log file exists."""
    log_dir = log_path.parent
    if not log_dir.exists():
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise LoggingError(f"Failed to create log directory {log_dir}: {e}")


def _get_log_level(level_str: str) -> int:
    """Convert log level string to logging constant."""
    level_str = level_str.upper()
    if level_str not in VALID_LOG_LEVELS:
        raise LoggingError(
            f"Invalid log level '{level_str}'. Must be one of: {', '.join(sorted(VALID_LOG_LEVELS))}"
        )
    return getattr(logging, level_str)


def setup_logging(
    config: Optional[LoggingConfig] = None,
    log_file: Optional[Path] = None,
    level: Optional[str] = None,
    max_bytes: Optional[int] = None,
    backup_count: Optional[int] = None,
) -> logging.Logger:
    """
    Configure logging for linksnap.

    Sets up:
    - Console output on stderr
    - A rotating file handler, when a log file is given

    Args:
        config: LoggingConfig object with settings. If provided, other args are ignored.
        log_file: Path to the log file (used if config is None)
        level: Log level string: "DEBUG", "INFO", "WARNING" or "ERROR"
        max_bytes: Maximum log file size before rotation (default 10MB)
        backup_count: Number of rotated files to keep (default 5)

    Returns:
        Configured logger instance

    Raises:
        LoggingError: If log directory cannot be created or level is invalid
    """
    if config is not None:
        log_file = config.log_file
        level = config.level
        max_bytes = config.log_max_bytes
        backup_count = config.log_backup_count
    else:
        if level is None:
            level = "INFO"
        if max_bytes is None:
            max_bytes = DEFAULT_MAX_BYTES
        if backup_count is None:
            backup_count = DEFAULT_BACKUP_COUNT

    log_level = _get_log_level(level)

    logger = logging.getLogger(LOGGER_NAME)

    # Clear any existing handlers to avoid duplicates
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.setLevel(logging.DEBUG)  # handlers filter

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    if log_file is not None:
        log_file = Path(os.path.expanduser(str(log_file)))
        _ensure_log_directory(log_file)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    return logger


def get_logger() -> logging.Logger:
    """Get the linksnap logger instance."""
    return logging.getLogger(LOGGER_NAME)


def log_backup_start(
    logger: logging.Logger,
    source: Path,
    destination: Path,
) -> None:
    logger.info(f"Backup started: {source} -> {destination}")


def log_backup_completion(
    logger: logging.Logger,
    duration_seconds: float,
    statistics: "RunStatistics",
    snapshot_path: Optional[Path] = None,
) -> None:
    """
    Log the completion of a backup run.

    Args:
        logger: Logger instance
        duration_seconds: How long the run took
        statistics: Counters accumulated during the run
        snapshot_path: Path to the committed snapshot
    """
    logger.info("Backup completed successfully")
    logger.info(f"Duration: {duration_seconds:.2f} seconds")
    logger.info(
        f"Files: {statistics.files_copied} copied, {statistics.files_linked} linked"
    )
    logger.info(
        f"Bytes: {statistics.bytes_copied} copied of {statistics.bytes_considered}"
    )
    if snapshot_path:
        logger.info(f"Snapshot: {snapshot_path}")


def log_backup_error(
    logger: logging.Logger,
    error: BaseException,
    context: Optional[str] = None,
) -> None:
    """
    Log a fatal backup error.

    Args:
        logger: Logger instance
        error: The exception that ended the run
        context: Additional context about what was happening
    """
    if context:
        logger.error(f"Backup failed during {context}: {error}")
    else:
        logger.error(f"Backup failed: {error}")
