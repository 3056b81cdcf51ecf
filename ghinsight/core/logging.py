"""Structured logging configuration — structlog + stdlib logging, on stderr."""

from __future__ import annotations

import logging
import logging.config
import os
import sys

import structlog

LEVEL_ENV = "GHINSIGHT_LOG_LEVEL"
FORMAT_ENV = "GHINSIGHT_LOG_FORMAT"

# Held at WARNING regardless of the configured level.
_QUIET_LOGGERS = ("httpx", "httpcore")

_SHARED_PROCESSORS: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.processors.UnicodeDecoder(),
]


def resolve_level(level: str | None = None) -> str:
    """*level*, else ``$GHINSIGHT_LOG_LEVEL``, else INFO; unknown names fall back to INFO."""
    name = (level or os.environ.get(LEVEL_ENV) or "INFO").strip().upper()
    if not isinstance(logging.getLevelName(name), int):
        return "INFO"
    return name


def _renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def setup_logging(level: str | None = None) -> None:
    """Configure structlog on top of stdlib logging.

    Environment:
        GHINSIGHT_LOG_LEVEL  — default INFO; *level* overrides it
        GHINSIGHT_LOG_FORMAT — console | json (default: console)

    Everything goes to stderr so command output on stdout stays
    machine-readable.  Safe to call more than once.
    """
    log_level = resolve_level(level)
    log_format = os.environ.get(FORMAT_ENV, "console").strip().lower()

    structlog.configure(
        processors=_SHARED_PROCESSORS + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    loggers = {"ghinsight": {"level": log_level}}
    loggers.update({name: {"level": "WARNING"} for name in _QUIET_LOGGERS})

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "structlog": {
                    "()": structlog.stdlib.ProcessorFormatter,
                    "foreign_pre_chain": _SHARED_PROCESSORS,
                    "processors": [
                        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                        _renderer(log_format),
                    ],
                },
            },
            "handlers": {
                "stderr": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stderr",
                    "formatter": "structlog",
                },
            },
            "root": {"handlers": ["stderr"], "level": log_level},
            "loggers": loggers,
        }
    )
