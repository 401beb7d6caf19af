"""Process-wide logging setup for the ``kit`` command."""
from __future__ import annotations

import logging
import os

LOG_LEVEL_ENV = "KIT_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def resolve_level(value: str | None) -> int:
    """Map a level name such as ``debug`` to a logging level, defaulting to INFO."""
    level = getattr(logging, (value or "INFO").upper(), None)
    return level if isinstance(level, int) else logging.INFO


def configure_logging(env: dict | None = None) -> int:
    env = os.environ if env is None else env
    level = resolve_level(env.get(LOG_LEVEL_ENV))
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)
    return level
