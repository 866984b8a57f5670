#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Logging mixin for asynccall components.

Components inherit ``ModernLogger`` and log through ``self.info(...)`` and
friends. All loggers are children of the ``asynccall`` logger, which gets a
single rich console handler the first time any component is constructed.
"""

import logging
import threading
from typing import Any, Union

from rich.logging import RichHandler

ROOT_LOGGER_NAME = "asynccall"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}

_HANDLER_INSTALL_LOCK = threading.Lock()
_HANDLER_INSTALLED = False


def resolve_log_level(level: Union[str, int]) -> int:
    """
    Convert a level name (``"info"``) or number into a logging level.
    """
    if isinstance(level, int):
        return level
    try:
        return _LEVELS[str(level).strip().lower()]
    except KeyError:
        raise ValueError(
            "Unknown log level {0!r}, expected one of {1}".format(
                level, sorted(_LEVELS)
            )
        ) from None


def install_console_handler() -> None:
    """
    Attach the rich console handler to the package root logger once.
    """
    global _HANDLER_INSTALLED

    if _HANDLER_INSTALLED:
        return

    with _HANDLER_INSTALL_LOCK:
        if _HANDLER_INSTALLED:
            return

        root = logging.getLogger(ROOT_LOGGER_NAME)
        handler = RichHandler(rich_tracebacks=True, show_time=False, show_path=False)
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        root.addHandler(handler)
        _HANDLER_INSTALLED = True


class ModernLogger:
    """
    Mixin giving a component a named, level-aware logger.

    Args:
        name: Component name, appended to the ``asynccall`` namespace
        level: Level name or number for this component's logger
        enabled: When False, this instance logs nothing; the shared logger
            configuration is left untouched
    """

    def __init__(
        self,
        name: str = "asynccall",
        level: Union[str, int] = "info",
        enabled: bool = True,
    ) -> None:
        install_console_handler()
        qualified = name if name.startswith(ROOT_LOGGER_NAME) else "{0}.{1}".format(
            ROOT_LOGGER_NAME, name
        )
        self._logger = logging.getLogger(qualified)
        self._logger.setLevel(resolve_log_level(level))
        self._logging_enabled = enabled

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def _log(self, level: int, msg: str, *args: Any, **kwargs: Any) -> None:
        if not self._logging_enabled:
            return
        kwargs.setdefault("stacklevel", 3)
        self._logger.log(level, msg, *args, **kwargs)

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.ERROR, msg, *args, **kwargs)

    def critical(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.CRITICAL, msg, *args, **kwargs)
