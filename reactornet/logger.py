"""A small process-wide logger writing leveled lines to standard output."""

from __future__ import annotations

import os
import sys
import threading
from enum import IntEnum

from .timestamp import Timestamp

_MESSAGE_LIMIT = 1023
_DEBUG_ENABLED = os.environ.get("REACTORNET_DEBUG") == "1"


class LogLevel(IntEnum):
    INFO = 0
    ERROR = 1
    FATAL = 2
    DEBUG = 3


_PREFIXES = {
    LogLevel.INFO: "[INFO]",
    LogLevel.ERROR: "[ERROR]",
    LogLevel.FATAL: "[FATAL]",
    LogLevel.DEBUG: "[DEBUG]",
}


class Logger:
    """Singleton logger; ``Logger()`` and ``Logger.instance()`` return the same object."""

    _instance: Logger | None = None
    _instance_lock = threading.Lock()

    def __new__(cls) -> Logger:
        with cls._instance_lock:
            if cls._instance is None:
                instance = super().__new__(cls)
                instance._level = int(LogLevel.INFO)
                instance._lock = threading.RLock()
                cls._instance = instance
            return cls._instance

    @classmethod
    def instance(cls) -> Logger:
        return cls()

    def __copy__(self) -> Logger:
        """Copying the singleton yields the singleton itself."""
        return self

    def __deepcopy__(self, memo) -> Logger:
        memo[id(self)] = self
        return self

    @property
    def level(self) -> int:
        return self._level

    def set_log_level(self, level: int) -> None:
        self._level = int(level)

    def log(self, msg: str) -> None:
        """Write ``[LEVEL]time:msg`` as one line."""
        prefix = _PREFIXES.get(self._level, "")
        print(f"{prefix}{Timestamp.now().to_string()}:{msg}", file=sys.stdout, flush=True)

    def _emit(self, level: LogLevel, msg: str) -> None:
        with self._lock:
            self.set_log_level(level)
            self.log(msg)


def _format(fmt: str, args: tuple) -> str:
    message = fmt % args if args else fmt
    return message[:_MESSAGE_LIMIT]


def log_info(fmt: str, *args) -> None:
    Logger.instance()._emit(LogLevel.INFO, _format(fmt, args))


def log_error(fmt: str, *args) -> None:
    Logger.instance()._emit(LogLevel.ERROR, _format(fmt, args))


def log_fatal(fmt: str, *args) -> None:
    """Log the message and terminate the process with status -1."""
    Logger.instance()._emit(LogLevel.FATAL, _format(fmt, args))
    sys.exit(-1)


def log_debug(fmt: str, *args) -> None:
    """Log only when REACTORNET_DEBUG=1 was set at import time."""
    if _DEBUG_ENABLED:
        Logger.instance()._emit(LogLevel.DEBUG, _format(fmt, args))