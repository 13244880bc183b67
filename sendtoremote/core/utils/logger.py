#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Logging mixin shared by SendToRemote components.

Components inherit ``ModernLogger`` and call ``self.info(...)`` and friends.
All component loggers live under the ``sendtoremote`` logger, which gets a
single rich handler the first time any component is created.
"""

import logging
import threading
from typing import Any, Optional, Union

from rich.logging import RichHandler

ROOT_LOGGER_NAME = "sendtoremote"

_HANDLER_LOCK = threading.Lock()
_HANDLER_INSTALLED = False

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


def resolve_level(level: Union[str, int, None]) -> int:
    """Translate a level name ("info") or number into a logging level."""
    if level is None:
        return logging.INFO
    if isinstance(level, int):
        return level
    try:
        return _LEVELS[level.lower()]
    except KeyError:
        raise ValueError(
            "Unknown log level '{0}'; expected one of {1}".format(
                level, ", ".join(_LEVELS)
            )
        ) from None


def install_rich_handler(level: Union[str, int, None] = None) -> None:
    """Attach the rich console handler to the package root logger once."""
    global _HANDLER_INSTALLED

    if _HANDLER_INSTALLED:
        return

    with _HANDLER_LOCK:
        if _HANDLER_INSTALLED:
            return

        root = logging.getLogger(ROOT_LOGGER_NAME)
        handler = RichHandler(show_path=False, rich_tracebacks=True, markup=False)
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
        root.addHandler(handler)
        root.setLevel(resolve_level(level))
        root.propagate = False
        _HANDLER_INSTALLED = True


class ModernLogger:
    """Mixin giving a class ``debug/info/warning/error/critical`` methods."""

    def __init__(self, name: Optional[str] = None, level: Union[str, int, None] = None) -> None:
        install_rich_handler()
        logger_name = name or type(self).__name__
        self._logger = logging.getLogger("{0}.{1}".format(ROOT_LOGGER_NAME, logger_name))
        if level is not None:
            self._logger.setLevel(resolve_level(level))

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def set_level(self, level: Union[str, int]) -> None:
        """Set logging level."""
        self._logger.setLevel(resolve_level(level))

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._logger.error(msg, *args, **kwargs)

    def critical(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._logger.critical(msg, *args, **kwargs)


__all__ = ["ModernLogger", "ROOT_LOGGER_NAME", "install_rich_handler", "resolve_level"]
