"""Logging setup for the marketlens package logger."""

import logging
from pathlib import Path
from typing import Optional, Union

LOGGER_NAME = "marketlens"


def setup_logging(level: Union[int, str] = logging.INFO, log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure the package logger with a console handler and an optional file.

    Calling it again replaces the handlers it installed earlier.

    Args:
        level: Logging level name or number
        log_file: Optional path for a detailed file log

    Returns:
        The configured "marketlens" logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper() if isinstance(level, str) else level)

    for handler in list(logger.handlers):
        if getattr(handler, "_marketlens", False):
            logger.removeHandler(handler)
            handler.close()

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(message)s")
    )
    console_handler._marketlens = True
    logger.addHandler(console_handler)

    # File handler
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
        )
        file_handler._marketlens = True
        logger.addHandler(file_handler)

    return logger
