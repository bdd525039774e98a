"""
utils/logging.py — structlog configuration for the sync pipeline.

Structured logging with JSON or human-readable console output, selected by
settings.log_format. configure_logging() is called once at process start
(the CLI and pipelines.directory_sync.run() both do it; repeat calls only
re-apply the same configuration).

Usage:
    from tenantsync_pipeline.utils.logging import configure_logging, get_logger

    configure_logging()
    log = get_logger("tenantsync_pipeline.loaders.reconciler")
    log.info("record_created", unique_id="T-001", entity_type="shops")

    # Bind run-wide context for all subsequent log calls:
    log = log.bind(sync_id=run.sync_id)
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from tenantsync_shared.config import settings


def configure_logging(
    log_level: str | None = None,
    log_format: str | None = None,
) -> None:
    """
    Configure structlog for the sync process.

    Args:
        log_level:  Override settings.log_level ("DEBUG", "INFO", …).
        log_format: Override settings.log_format ("json" | "console").
    """
    level = log_level or settings.log_level
    fmt = log_format or settings.log_format
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    # httpx logs every request at INFO; the fetcher logs its own page lines
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)
    logging.getLogger("httpx").setLevel(max(numeric_level, logging.WARNING))

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
    ]

    if fmt == "json":
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str, **initial_values: Any) -> structlog.BoundLogger:
    """
    Return a bound structlog logger with optional initial context values.

    Args:
        name:             Logger name (conventionally the module __name__).
        **initial_values: Key-value pairs merged into every log record.
    """
    # PrintLogger carries no name of its own, so bind it as a field
    return structlog.get_logger(name).bind(logger=name, **initial_values)  # type: ignore[return-value]
