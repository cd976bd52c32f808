"""Logging infrastructure for the event generation driver.

All modules log through the single ``nuevgen`` logger. Records carry the
emitting module name, so the generator step (cut parsing, flux setup,
spill accounting) is visible in the console output.
"""

import logging
import sys
from pathlib import Path
from typing import Optional


LOGGER_NAME = 'nuevgen'
CONSOLE_FORMAT = '%(levelname)s - %(module)s - %(message)s'
FILE_FORMAT = '%(asctime)s - %(name)s.%(module)s - %(levelname)s - %(message)s'


def setup_logger(
    name: str = LOGGER_NAME,
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG
) -> logging.Logger:
    """Set up logger with console and optional file output.
    
    Calling it again replaces the handlers of the previous call.
    
    Args:
        name: Logger name
        level: Overall logging level
        log_file: Optional path to log file, parent directories are created
        console_level: Logging level for console output
        file_level: Logging level for file output
        
    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    logger.addHandler(console_handler)
    
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(file_level)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
        logger.addHandler(file_handler)
    
    return logger


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    """Logger shared by all NuEventGen modules."""
    return logging.getLogger(name)
