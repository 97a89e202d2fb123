from __future__ import annotations

import logging
import sys
from typing import Optional

from services.config.env import get_log_config


def get_logger(name: str, *, level: Optional[int] = None) -> logging.Logger:
    """Create or return a configured logger.

    Writes to stderr only; stdout belongs to the stdio tool transport.
    Level comes from CSE_LOG_LEVEL unless given explicitly.
    """

    logger = logging.getLogger(name)
    if logger.handlers:  # already configured
        return logger

    resolved_level = level or getattr(logging, get_log_config().level, logging.INFO)
    logger.setLevel(resolved_level)
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(resolved_level)
    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.propagate = False
    return logger
