"""
Logging for the Web3Fund toolkit.

Modules log through children of the ``web3fund_toolkit`` logger. Only that
package logger owns a handler, so a level change applies everywhere at
once. The starting level comes from WEB3FUND_LOG_LEVEL; the CLI overrides
it with ``--log-level``.
"""

import logging
import os
from typing import Optional, Union

PACKAGE_LOGGER = "web3fund_toolkit"

_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def _level_from_name(name: str) -> Optional[int]:
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else None


def _package_logger() -> logging.Logger:
    logger = logging.getLogger(PACKAGE_LOGGER)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(handler)

        env_level = _level_from_name(os.getenv("WEB3FUND_LOG_LEVEL", "INFO"))
        logger.setLevel(env_level if env_level is not None else logging.INFO)
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return ``name``'s logger, making sure the package handler exists.

    Pass ``__name__``: loggers under ``web3fund_toolkit.`` inherit the
    package handler and level.
    """
    package = _package_logger()
    if not name or name == PACKAGE_LOGGER:
        return package
    return logging.getLogger(name)


def set_log_level(level: Union[str, int]) -> int:
    """Change the level of every toolkit logger.

    Raises:
        ValueError: if ``level`` is not a known level name
    """
    if isinstance(level, int):
        resolved = level
    else:
        resolved = _level_from_name(level)
        if resolved is None:
            raise ValueError(f"Unknown log level: {level}")
    _package_logger().setLevel(resolved)
    return resolved
