"""structlog setup for the CLI and the build pipeline.

Every module logs through ``get_logger(__name__)`` with printf-style
messages. Variant builds bind the language so each line can be attributed
to the variant that produced it.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import Processor

LEVEL_NAMES = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "information": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


class _CurrentStderr:
    """Writes to whatever ``sys.stderr`` is at call time (CliRunner swaps it)."""

    def write(self, text: str) -> int:
        return sys.stderr.write(text)

    def flush(self) -> None:
        sys.stderr.flush()

    def isatty(self) -> bool:
        return sys.stderr.isatty()


def resolve_level(level: str | int | None) -> int:
    """Accept a logging constant or a config name such as ``warn``; unknown names mean info."""
    if isinstance(level, int):
        return level
    return LEVEL_NAMES.get((level or "").strip().lower(), logging.INFO)


def _processors(json_logs: bool) -> list[Processor]:
    chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_logs:
        chain += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        chain += [structlog.dev.set_exc_info, structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())]
    return chain


def configure_logging(level: str | int = "info", json_logs: bool = False) -> None:
    structlog.configure(
        processors=_processors(json_logs),
        wrapper_class=structlog.make_filtering_bound_logger(resolve_level(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=_CurrentStderr()),
        # The build command reconfigures once the site config is loaded.
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> Any:
    return structlog.get_logger(name)


def variant_logger(name: str, language: str | None) -> Any:
    return get_logger(name).bind(language=language or "default")


__all__ = ["LEVEL_NAMES", "configure_logging", "get_logger", "resolve_level", "variant_logger"]
