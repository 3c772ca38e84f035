"""Process-wide logger used by the replicated log machinery."""

from __future__ import annotations

import sys
import threading
import time
from typing import Any, TextIO


class RaftPanic(RuntimeError):
    """Raised when an invariant of the log is violated."""


class _NullStream:
    """A text stream that drops everything written to it."""

    def write(self, text: str) -> int:
        return len(text)

    def flush(self) -> None:
        return None


def _format(msg: Any, args: tuple[Any, ...]) -> str:
    text = str(msg)
    return text % args if args else text


class DefaultLogger:
    """Line-oriented logger writing level-tagged messages to a text stream.

    When ``stream`` is None, messages go to whatever ``sys.stderr`` is at
    the time of writing.
    """

    def __init__(
        self,
        stream: TextIO | None = None,
        prefix: str = "raft",
        timestamps: bool = True,
    ) -> None:
        self._stream = stream
        self.prefix = prefix
        self.timestamps = timestamps
        self.debug_enabled = False
        self._lock = threading.Lock()

    def enable_timestamps(self) -> None:
        self.timestamps = True

    def enable_debug(self) -> None:
        self.debug_enabled = True

    def _output(self, text: str) -> None:
        stream = self._stream if self._stream is not None else sys.stderr
        stamp = time.strftime("%Y/%m/%d %H:%M:%S ") if self.timestamps else ""
        line = f"{self.prefix}{stamp}{text}"
        if not line.endswith("\n"):
            line += "\n"
        with self._lock:
            stream.write(line)
            flush = getattr(stream, "flush", None)
            if flush is not None:
                flush()

    def _log(self, level: str, msg: Any, args: tuple[Any, ...]) -> None:
        self._output(f"{level}: {_format(msg, args)}")

    def debug(self, msg: Any, *args: Any) -> None:
        if self.debug_enabled:
            self._log("DEBUG", msg, args)

    def info(self, msg: Any, *args: Any) -> None:
        self._log("INFO", msg, args)

    def warning(self, msg: Any, *args: Any) -> None:
        self._log("WARN", msg, args)

    def error(self, msg: Any, *args: Any) -> None:
        self._log("ERROR", msg, args)

    def fatal(self, msg: Any, *args: Any) -> None:
        """Log the message and terminate with exit status 1."""
        self._log("FATAL", msg, args)
        raise SystemExit(1)

    def panic(self, msg: Any, *args: Any) -> None:
        """Log the message and raise :class:`RaftPanic` carrying it."""
        text = _format(msg, args)
        self._output(text)
        raise RaftPanic(text)


_DEFAULT_LOGGER = DefaultLogger()
_DISCARD_LOGGER = DefaultLogger(_NullStream(), "", False)
_logger_lock = threading.Lock()
_current_logger: Any = _DEFAULT_LOGGER


def set_logger(logger: Any) -> None:
    """Install ``logger`` as the process-wide logger."""
    global _current_logger
    with _logger_lock:
        _current_logger = logger


def reset_default_logger() -> None:
    """Restore the standard-error logger as the process-wide logger."""
    set_logger(_DEFAULT_LOGGER)


def get_logger() -> Any:
    """Return the process-wide logger."""
    with _logger_lock:
        return _current_logger


def discard_logger() -> DefaultLogger:
    """Return a logger that drops all output but still raises on panic."""
    return _DISCARD_LOGGER