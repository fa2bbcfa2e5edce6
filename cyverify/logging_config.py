import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

# Define common log format and date format
LOG_FORMAT = "[%(asctime)s] %(levelname)-8s %(name)s | %(message)s"
DATE_FORMAT = "%H:%M:%S"
CONSOLE_FORMAT = "%(message)s"


class VerifyLogger:
    """Step-oriented log helper for the verification flow."""

    def __init__(self, name, plain=False):
        self.logger = logging.getLogger(name)
        self.plain = plain

    def _mark(self, ok):
        if self.plain:
            return "[ok]" if ok else "[failed]"
        return "✔" if ok else "✖"

    def step_start(self, step_name, details=""):
        """Log the start of a step"""
        self.logger.info(f"▶ {step_name}" if not self.plain else step_name)
        if details:
            self.logger.info(f"  {details}")

    def step_end(self, step_name, duration=None, status="SUCCESS"):
        """Log the end of a step"""
        msg = f"{self._mark(status == 'SUCCESS')} {step_name}"
        if duration:
            msg += f" ({duration:.2f}s)"
        if status == "SUCCESS":
            self.logger.info(msg)
        else:
            self.logger.error(msg)

    def validation(self, item_name, result, details=""):
        """Log a validation result"""
        msg = f"{self._mark(result)} {item_name}: {result}"
        if details:
            msg += f" - {details}"
        self.logger.info(msg)


def setup_logging(log_level=logging.INFO, log_dir: Optional[str] = None):
    """
    Set up console logging and, optionally, log files.

    Args:
        log_level: log level (DEBUG, INFO, WARNING, ERROR) or its name
        log_dir: directory for log files; console only when omitted
    """
    if isinstance(log_level, str):
        log_level = logging.getLevelName(log_level.upper())
        if not isinstance(log_level, int):
            log_level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if log_dir else log_level)

    # Drop handlers from earlier calls
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    root_logger.addHandler(console_handler)

    if not log_dir:
        return root_logger

    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    # Detailed file log
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    file_handler = logging.FileHandler(
        log_path / f"verify_{timestamp}.log",
        encoding='utf-8'
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    root_logger.addHandler(file_handler)

    # Errors only
    error_handler = logging.FileHandler(
        log_path / "errors.log",
        encoding='utf-8'
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    root_logger.addHandler(error_handler)

    return root_logger
