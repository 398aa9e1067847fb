"""Diagnostics sink for anomalies found while locating and reading tables.

Every anomaly is reported as a `(level, message)` pair. The messages are
meant for humans fixing a malformed file, so they name rows and columns the
way the source decoder describes them.
"""
from typing import Any, Callable, List, NoReturn, Tuple

import structlog

from tablereader.errors.exceptions import ConfigurationError, TableReaderError

logger = structlog.get_logger(__name__)

LogSink = Callable[[str, str], None]

LEVELS = ("debug", "info", "warn", "error")
SURFACED_LEVELS = ("warn", "error")

# stdlib and structlog loggers spell it 'warning'
_LOGGER_METHODS = {
    "debug": ("debug",),
    "info": ("info",),
    "warn": ("warning", "warn"),
    "error": ("error",),
}


def build_log_sink(dest: Any = None) -> LogSink:
    """Turn the caller's `log` option into a `(level, message)` callable.

    Args:
        dest: None for the default sink (warnings and errors go to the
              structlog logger), a list collecting `(level, message)` tuples
              for warnings and errors, a logger object, or a callable
              receiving every level

    Returns:
        Sink callable

    Raises:
        ConfigurationError: If dest is none of the supported kinds
    """
    if dest is None:
        return _default_sink
    if isinstance(dest, list):
        return _collector(dest)
    if _looks_like_logger(dest):
        return _logger_sink(dest)
    if callable(dest):
        return dest
    raise ConfigurationError(f"Don't know how to log to {dest!r}")


def _default_sink(level: str, message: str) -> None:
    if level == "warn":
        logger.warning(message)
    elif level == "error":
        logger.error(message)


def _collector(messages: List[Tuple[str, str]]) -> LogSink:
    def collect(level: str, message: str) -> None:
        if level in SURFACED_LEVELS:
            messages.append((level, message))
    return collect


def _looks_like_logger(dest: Any) -> bool:
    return all(
        any(callable(getattr(dest, name, None)) for name in names)
        for names in _LOGGER_METHODS.values()
    )


def _logger_sink(dest: Any) -> LogSink:
    methods = {}
    for level, names in _LOGGER_METHODS.items():
        methods[level] = next(
            getattr(dest, name) for name in names if callable(getattr(dest, name, None))
        )

    def forward(level: str, message: str) -> None:
        methods.get(level, methods["debug"])(message)
    return forward


def log_and_raise(sink: LogSink, error: TableReaderError) -> NoReturn:
    """Report a fatal error through the sink, then raise it."""
    sink("error", error.message)
    raise error
