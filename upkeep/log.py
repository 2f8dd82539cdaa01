"""Logging for Upkeep, built on loguru.

Records are written to stderr so stdout stays reserved for the JSON
documents printed by the CLI. A ``LogContext`` is created once at startup
and handed to every analyzer, which asks it for a child logger bound to its
component name:

    logs = LogContext.configure(level="debug")
    log = logs.child("deps")
    log.debug("Parsed {count} packages", count=3)
"""

import sys
from typing import TextIO

from loguru import logger

from .config import Settings

LEVELS = {
    "trace": "TRACE",
    "debug": "DEBUG",
    "info": "INFO",
    "warn": "WARNING",
    "warning": "WARNING",
    "error": "ERROR",
    "fatal": "CRITICAL",
}

_HUMAN_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[component]}</cyan> - "
    "<level>{message}</level>"
)


def _stderr_sink(message) -> None:
    # sys.stderr is resolved per write; test runners replace it.
    sys.stderr.write(message)


def resolve_level(name: str) -> str:
    """Map a CLI/env level name onto a loguru level name."""
    try:
        return LEVELS[name.lower()]
    except KeyError:
        raise ValueError(
            f"Invalid log level: {name}. Valid levels: {', '.join(sorted(set(LEVELS)))}"
        ) from None


class LogContext:
    """Owns the sink configuration and hands out component loggers."""

    def __init__(self, base=None):
        self._base = (base if base is not None else logger).bind(component="upkeep")

    @classmethod
    def configure(
        cls,
        level: str = "warning",
        json_output: bool = False,
        sink: TextIO | None = None,
    ) -> "LogContext":
        """Replace any existing handlers with a single stderr sink."""
        context = cls()
        logger.remove()
        logger.add(
            sink if sink is not None else _stderr_sink,
            level=resolve_level(level),
            format=_HUMAN_FORMAT,
            serialize=json_output,
            colorize=False,
            backtrace=False,
            diagnose=False,
        )
        return context

    @classmethod
    def from_settings(cls, settings: Settings, sink: TextIO | None = None) -> "LogContext":
        return cls.configure(settings.log_level, settings.log_json, sink)

    def child(self, component: str):
        """Return a logger with the component name bound to every record."""
        return self._base.bind(component=component)
