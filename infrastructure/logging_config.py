"""Logging setup for the booking service"""
import logging
from typing import Optional, Union

from infrastructure.config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def configure_logging(level: Optional[Union[int, str]] = None) -> None:
    """Install a single stream handler on the root logger.

    Safe to call more than once; later calls only change the level.
    """
    global _configured

    root = logging.getLogger()
    if not _configured:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
        _configured = True

    if level is None:
        level = LOG_LEVEL
    root.setLevel(level.upper() if isinstance(level, str) else level)
