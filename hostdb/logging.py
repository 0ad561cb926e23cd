"""hostdb: Structured logging configuration.

Uses structlog for structured, levelled logging with consistent key names
across the model, the health checks and the CLI.  All log entries include:
    - timestamp (ISO-8601)
    - level
    - logger (Python logger name)
    - resource / health_check (bound via context variables when available)

Secret parameter values are never passed to a logger.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import Any

import structlog
from structlog.types import EventDict, WrappedLogger

# Context variables, automatically injected into log records when set.
_ctx_resource: ContextVar[str | None] = ContextVar("resource", default=None)
_ctx_health_check: ContextVar[str | None] = ContextVar("health_check", default=None)


def bind_resource_context(
    resource: str | None = None,
    health_check: str | None = None,
) -> None:
    """Bind the resource being processed to the current async task / thread."""
    if resource is not None:
        _ctx_resource.set(resource)
    if health_check is not None:
        _ctx_health_check.set(health_check)


def clear_resource_context() -> None:
    _ctx_resource.set(None)
    _ctx_health_check.set(None)


# ---------------------------------------------------------------------------
# Custom processors
# ---------------------------------------------------------------------------


def _inject_context_vars(
    _logger: WrappedLogger, _method: str, event_dict: EventDict
) -> EventDict:
    """Add ContextVar values to every log record."""
    if (resource := _ctx_resource.get()) is not None:
        event_dict.setdefault("resource", resource)
    if (health_check := _ctx_health_check.get()) is not None:
        event_dict.setdefault("health_check", health_check)
    return event_dict


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def configure_logging(
    level: str = "info",
    format: str = "console",
    log_file: str | None = None,
) -> None:
    """Configure structlog and stdlib logging.

    Call once from the CLI (or the app host script) before any log statements.

    Args:
        level:    One of debug, info, warning, error, critical.
        format:   ``"console"`` for human-readable output, ``"json"`` for
                  machine-readable structured logs.
        log_file: Optional path to write logs to in addition to stderr.
    """
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        _inject_context_vars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if format == "json":
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handlers: list[logging.Handler] = []

    # stdout is reserved for command output (manifests, docker commands).
    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    handlers.append(stream_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    root_logger = logging.getLogger()
    root_logger.handlers = handlers
    root_logger.setLevel(level.upper())

    # The drivers are chatty at INFO.
    for noisy in ("pymongo", "asyncio"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger for *name*.

    Usage::

        log = get_logger(__name__)
        log.info("resource_added", resource="opengauss", kind="OpenGaussServerResource")
    """
    return structlog.get_logger(name)
