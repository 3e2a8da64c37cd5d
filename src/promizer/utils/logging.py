"""
Logging helpers.

Every module asks for its logger with `get_logger(__name__)`; the handler is
attached once so repeated calls do not duplicate output.
"""

import logging
from typing import Optional, Union

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


def get_logger(name: str, level: Optional[Union[int, str]] = None) -> logging.Logger:
    """
    Get a configured logger for the given module name.

    Args:
        name: Module name (typically __name__)
        level: Optional level; leaves the current level alone when omitted

    Returns:
        Logger with a stderr StreamHandler attached
    """
    logger = logging.getLogger(name)

    if level is not None:
        logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT))
        logger.addHandler(handler)
        logger.propagate = False

    return logger


def set_level(level: Union[int, str]) -> None:
    """Apply `level` to every promizer logger created so far and to new ones."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    root = logging.getLogger("promizer")
    root.setLevel(level)
    for name, logger in logging.Logger.manager.loggerDict.items():
        if name.startswith("promizer.") and isinstance(logger, logging.Logger):
            logger.setLevel(level)
