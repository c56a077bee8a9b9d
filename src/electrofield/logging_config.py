"""
Logging Configuration
Sets up the 'electrofield' logger: console output plus an optional log file.
"""
import logging
import os
import sys
from typing import Optional, Union

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_LEVEL_ENV = "ELECTROFIELD_LOG_LEVEL"


def resolve_level(default: int = logging.INFO) -> int:
    """
    Level from ELECTROFIELD_LOG_LEVEL ("DEBUG", "warning", "10", ...).
    Unknown values fall back to the default.
    """
    raw = os.environ.get(LOG_LEVEL_ENV, "").strip()
    if not raw:
        return default
    if raw.isdigit():
        return int(raw)
    level = logging.getLevelName(raw.upper())
    return level if isinstance(level, int) else default


def setup_logging(level: Union[int, str] = logging.INFO, log_file: Optional[str] = None) -> logging.Logger:
    """
    Configures the logger for the 'electrofield' namespace and returns it.

    Args:
        level: Logging level or its name (e.g. logging.DEBUG, "INFO")
        log_file: Optional path to save logs to a file.
    """
    logger = logging.getLogger("electrofield")
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt='%H:%M:%S')

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        os.makedirs(os.path.dirname(os.path.abspath(log_file)), exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.info(f"Logging initialized at {logging.getLevelName(logger.level)}.")
    return logger
