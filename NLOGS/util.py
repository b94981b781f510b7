"""
Logging setup shared by every NLOGS component

The terminal belongs to the UI, so log records only go to a file.
"""
import logging
from pathlib import Path
from typing import Union

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
LOG_FILE = "nlogs.log"


def setup_logging(log_dir: Union[str, Path] = "app_log", level: int = logging.DEBUG) -> logging.Logger:
    """
    Attach a file handler to the package logger

    Calling it again reuses the existing handler.

    Args:
        log_dir: Directory for nlogs.log, created if missing
        level: Minimum level written

    Returns:
        The "NLOGS" logger
    """
    logger = logging.getLogger('NLOGS')
    logger.setLevel(level)

    if not logger.handlers:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_dir / LOG_FILE)
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(file_handler)

    return logger
