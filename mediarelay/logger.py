"""Leveled logging to standard output, a file and the system log."""

from __future__ import annotations

import os
import sys
import threading
from collections.abc import Iterable
from datetime import datetime
from enum import Enum, IntEnum

try:
    import syslog as _syslog
except ImportError:  # not available on Windows
    _syslog = None

_SYSLOG_IDENT = "mediarelay"

_RESET = "\x1b[0m"
_GRAY = "90"
_LEVEL_STYLE = {0: ("D ", "36"), 1: ("I ", "32"), 2: ("W ", "33")}


class Level(IntEnum):
    """Log level."""

    DEBUG = 0
    INFO = 1
    WARN = 2


class Destination(Enum):
    """Where log entries are written."""

    STDOUT = 0
    FILE = 1
    SYSLOG = 2


def _paint(code: str, text: str) -> str:
    return f"\x1b[{code}m{text}{_RESET}"


def format_entry(level: Level, message: str, now: datetime, color: bool) -> str:
    """Render one log line: date, time, level letter and message."""
    stamp = now.strftime("%Y/%m/%d %H:%M:%S ")
    letter, code = _LEVEL_STYLE[int(level)]
    if color:
        return _paint(_GRAY, stamp) + _paint(code, letter) + message + "\n"
    return stamp + letter + message + "\n"


class _Syslog:
    def __init__(self, ident: str) -> None:
        if _syslog is None:
            raise OSError("not implemented on windows")
        _syslog.openlog(ident, 0, _syslog.LOG_DAEMON)

    def write(self, text: str) -> None:
        _syslog.syslog(_syslog.LOG_INFO, text)

    def close(self) -> None:
        _syslog.closelog()


class Logger:
    """A log handler writing entries at or above a level to its destinations."""

    def __init__(
        self,
        level: Level,
        destinations: Iterable[Destination],
        file_path: str = "",
    ) -> None:
        self.level = Level(level)
        self.destinations = frozenset(destinations)
        self._lock = threading.Lock()
        self._file = None
        self._syslog: _Syslog | None = None

        try:
            if Destination.FILE in self.destinations:
                fd = os.open(file_path, os.O_APPEND | os.O_CREAT | os.O_WRONLY, 0o644)
                self._file = os.fdopen(fd, "ab")
            if Destination.SYSLOG in self.destinations:
                self._syslog = _Syslog(_SYSLOG_IDENT)
        except BaseException:
            self.close()
            raise

    def close(self) -> None:
        """Release the file and the system log connection."""
        if self._file is not None:
            self._file.close()
            self._file = None
        if self._syslog is not None:
            self._syslog.close()
            self._syslog = None

    def __enter__(self) -> Logger:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def log(self, level: Level, format: str, *args) -> None:
        """Write an entry built from a printf-style format and its arguments."""
        if level < self.level:
            return

        message = format % args if args else format
        now = datetime.now()

        with self._lock:
            if Destination.STDOUT in self.destinations:
                sys.stdout.write(format_entry(level, message, now, True))
                sys.stdout.flush()

            if Destination.FILE in self.destinations and self._file is not None:
                entry = format_entry(level, message, now, False)
                self._file.write(entry.encode())
                self._file.flush()

            if Destination.SYSLOG in self.destinations and self._syslog is not None:
                self._syslog.write(format_entry(level, message, now, False))