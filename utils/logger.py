"""
Logging configuration with file rotation and automatic cleanup.
Keeps logs for 10 days with daily rotation.
"""
import os
import logging
from logging.handlers import TimedRotatingFileHandler
from datetime import datetime, timedelta
from pathlib import Path


# Log directory can be moved with LOG_DIR (e.g. to a volume in containers)
LOGS_DIR = os.getenv("LOG_DIR", os.path.join(os.path.dirname(os.path.dirname(__file__)), "logs"))
os.makedirs(LOGS_DIR, exist_ok=True)

LOG_FILE = os.path.join(LOGS_DIR, "studio.log")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_RETENTION_DAYS = 10


def cleanup_old_logs(directory: str, retention_days: int = LOG_RETENTION_DAYS) -> int:
    """Remove rotated log files older than retention_days. Returns the number removed."""
    cutoff = datetime.now() - timedelta(days=retention_days)
    log_dir = Path(directory)
    if not log_dir.exists():
        return 0

    deleted_count = 0
    for log_file in log_dir.glob("studio.log.*"):
        if not log_file.is_file():
            continue
        try:
            # Rotated files are named studio.log.YYYY-MM-DD
            date_str = log_file.name.replace("studio.log.", "")
            file_date = datetime.strptime(date_str, "%Y-%m-%d")
        except ValueError:
            # Unexpected suffix: fall back to mtime
            file_date = datetime.fromtimestamp(log_file.stat().st_mtime)

        if file_date < cutoff:
            try:
                log_file.unlink()
                deleted_count += 1
            except OSError as e:
                logging.getLogger("app").error(f"Failed to delete log file {log_file.name}: {e}")

    if deleted_count > 0:
        logging.getLogger("app").info(f"Cleaned up {deleted_count} old log file(s)")
    return deleted_count


def setup_logger(name: str = "app", level: int = logging.INFO) -> logging.Logger:
    """
    Set up logger with file rotation and console output.

    Args:
        name: Logger name
        level: Logging level (default: INFO)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Avoid adding handlers multiple times
    if logger.handlers:
        return logger

    logger.setLevel(level)

    file_handler = TimedRotatingFileHandler(
        LOG_FILE,
        when="midnight",
        interval=1,
        backupCount=LOG_RETENTION_DAYS,
        encoding="utf-8",
        utc=True
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))

    # Console handler for development
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(levelname)s - %(message)s", "%H:%M:%S")
    )

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    cleanup_old_logs(LOGS_DIR, LOG_RETENTION_DAYS)

    return logger


def get_logger(name: str = None) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (if None, returns the root app logger)

    Returns:
        Logger instance
    """
    if name is None:
        return logging.getLogger("app")
    return logging.getLogger(f"app.{name}")


app_logger = setup_logger("app", getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO))
app_logger.debug(f"Logger initialized (dir={LOGS_DIR}, retention={LOG_RETENTION_DAYS} days)")
