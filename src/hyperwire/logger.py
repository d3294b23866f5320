"""Level-filtered logging wrapper shared by every hyperwire component."""

from __future__ import annotations

import logging
from typing import Any, Literal

LogLevel = Literal["trace", "debug", "info", "warn", "error"]

LOGGER_NAME = "hyperwire"
TRACE_LEVEL = 5
logging.addLevelName(TRACE_LEVEL, "TRACE")

# hyperwire level -> (priority, stdlib level, method names tried on duck-typed loggers)
_LEVELS: dict[LogLevel, tuple[int, int, tuple[str, ...]]] = {
    "trace": (0, TRACE_LEVEL, ("trace",)),
    "debug": (1, logging.DEBUG, ("debug",)),
    "info": (2, logging.INFO, ("info",)),
    "warn": (3, logging.WARNING, ("warn", "warning")),
    "error": (4, logging.ERROR, ("error",)),
}


def parse_log_level(value: str) -> LogLevel:
    """Map user input such as ``"WARNING"`` or ``"debug"`` onto a LogLevel."""
    normalized = value.strip().lower()
    if normalized == "warning":
        normalized = "warn"
    if normalized not in _LEVELS:
        raise ValueError(f"Unknown log level: {value!r}")
    return normalized  # type: ignore[return-value]


class BoundLogger:
    """Filters by hyperwire level, then forwards to a ``logging.Logger``.

    Any object with either a ``log(level, msg, *args)`` method or per-level
    methods (``debug``, ``warning``...) can stand in for the logger.
    """

    def __init__(self, logger: Any | None = None, *, level: LogLevel = "info") -> None:
        self._logger = logger or _default_logger()
        self._level = level

    @property
    def level(self) -> LogLevel:
        return self._level

    def trace(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._emit("trace", msg, args, kwargs)

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._emit("debug", msg, args, kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._emit("info", msg, args, kwargs)

    def warn(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._emit("warn", msg, args, kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._emit("error", msg, args, kwargs)

    def child(self, name: str) -> "BoundLogger":
        """Same level, nested under ``<parent>.<name>`` for stdlib loggers."""
        base = self._logger.getChild(name) if isinstance(self._logger, logging.Logger) else self._logger
        return BoundLogger(base, level=self._level)

    def enabled(self, level: LogLevel) -> bool:
        return _LEVELS[level][0] >= _LEVELS[self._level][0]

    def _emit(self, level: LogLevel, msg: str, args: tuple, kwargs: dict[str, Any]) -> None:
        if not self.enabled(level):
            return
        _, stdlib_level, method_names = _LEVELS[level]
        try:
            if hasattr(self._logger, "log"):
                self._logger.log(stdlib_level, msg, *args, **kwargs)
                return
            for method_name in method_names:
                method = getattr(self._logger, method_name, None)
                if method is not None:
                    method(msg, *args, **kwargs)
                    return
        except Exception:
            # a broken logger must not fail the request being logged
            pass


def _default_logger() -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        logger.addHandler(handler)
    logger.setLevel(TRACE_LEVEL)
    return logger


def create_logger(*, logger: Any | None = None, level: LogLevel = "info") -> BoundLogger:
    """Reuse an existing BoundLogger as is; wrap anything else at ``level``."""
    if isinstance(logger, BoundLogger):
        return logger
    return BoundLogger(logger, level=level)


__all__ = [
    "BoundLogger",
    "LOGGER_NAME",
    "LogLevel",
    "TRACE_LEVEL",
    "create_logger",
    "parse_log_level",
]
