"""Logging configuration."""
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

audit_logger = logging.getLogger("journal_press.audit")

# Handlers added by the last setup_logging call; replaced on the next one.
_installed_handlers = []


def setup_logging(log_dir: Optional[str] = "logs", level: Union[int, str] = logging.INFO) -> Optional[Path]:
    """
    Set up logging configuration.

    Args:
        log_dir: Directory to store log files. None or "" logs to the console only.
        level: Logging level (number or name such as "INFO")

    Returns:
        Path of the log file, if one was created

    Calling it again replaces the handlers from the previous call.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)
    handlers = [logging.StreamHandler()]

    log_file = None
    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = log_path / f"journal_press_{timestamp}.log"
        handlers.append(logging.FileHandler(log_file))

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in _installed_handlers:
        root_logger.removeHandler(handler)
        handler.close()
    _installed_handlers[:] = handlers
    for handler in handlers:
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    logging.info("Logging initialized")
    if log_file:
        logging.info(f"Log file: {log_file}")
    return log_file


def log_operation(operation: str, details: str, level: int = logging.INFO) -> None:
    """Log an editorial or admin operation with details."""
    audit_logger.log(level, f"{operation}: {details}")
