"""
Logging utilities for ONNX Extractor.
"""

import logging
import sys
from typing import Dict, Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

PACKAGE_LOGGER = "onnx_extractor"

_loggers: Dict[str, logging.Logger] = {}

# Library code stays silent unless the application configures logging
logging.getLogger(PACKAGE_LOGGER).addHandler(logging.NullHandler())


def setup_logging(level: int = logging.INFO) -> None:
    """
    Attach a console handler to the package logger.

    Args:
        level: Logging level
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))

    package_logger.handlers = [h for h in package_logger.handlers
                               if isinstance(h, logging.NullHandler)]
    package_logger.addHandler(console_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the given name.

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    if name in _loggers:
        return _loggers[name]

    logger = logging.getLogger(name)
    _loggers[name] = logger

    return logger


def set_log_level(level: int) -> None:
    """
    Set log level for the package logger and every logger handed out so far.

    Args:
        level: Logging level
    """
    logging.getLogger(PACKAGE_LOGGER).setLevel(level)

    for logger in _loggers.values():
        logger.setLevel(level)


def add_file_handler(filename: str, level: Optional[int] = None) -> logging.FileHandler:
    """
    Add a file handler to the package logger.

    Args:
        filename: Log file path
        level: Logging level for file handler

    Returns:
        The attached handler
    """
    file_handler = logging.FileHandler(filename)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))

    if level is not None:
        file_handler.setLevel(level)

    logging.getLogger(PACKAGE_LOGGER).addHandler(file_handler)
    return file_handler
