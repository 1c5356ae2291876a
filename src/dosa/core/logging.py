"""
Structured logging for dosa.

Manifesto:
    Connectors and registries log lifecycle events (``connector_created``,
    ``schema_upserted``, ``batch_completed``) as structured key/value events
    so that a batch with two failed rows is one searchable record, not a
    formatted string.

    - **Structured:** JSON output for log aggregation in production
    - **Readable:** Colored console output on a TTY
    - **Correlated:** ``LogContext`` binds scope / entity / request ids
      to every event emitted inside it

Architecture:
    ::

        configure_logging(level="INFO", json_format=None, service="dosa")
            │
            ▼
        structlog processor chain:
            TimeStamper → add_log_level → add_logger_name →
            StackInfoRenderer → set_exc_info → service metadata →
            DosaError flattening → (ECS field names) →
            JSONRenderer | ConsoleRenderer

        logger = get_logger(__name__)
        logger.info("schema_upserted", scope="acct", version=3)

Tags:
    logging, structlog, observability, dosa-core

Doc-Types:
    - API Reference
    - Observability Guide
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from dosa.core.errors import DosaError

_SERVICE_NAME = "dosa"

# Addressing fields a DosaError carries; copied onto the event when absent
_ADDRESS_FIELDS = ("operation", "connector", "scope", "name_prefix", "entity")


def _add_service_metadata(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add service-level metadata to all logs."""
    event_dict.setdefault("service.name", _SERVICE_NAME)
    return event_dict


def _flatten_dosa_error(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Expand ``error=<DosaError>`` into category, retryable flag and addressing fields."""
    error = event_dict.get("error")
    if not isinstance(error, DosaError):
        return event_dict
    event_dict["error"] = error.message
    event_dict["error.type"] = type(error).__name__
    event_dict["error.category"] = error.category.value
    event_dict["error.retryable"] = error.retryable
    for key in _ADDRESS_FIELDS:
        value = getattr(error.context, key)
        if value is not None:
            event_dict.setdefault(key, value)
    return event_dict


def _ecs_compatible(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Rename timestamp/level to ECS field names."""
    if "timestamp" in event_dict:
        event_dict["@timestamp"] = event_dict.pop("timestamp")
    if "level" in event_dict:
        event_dict["log.level"] = event_dict.pop("level")
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "dosa",
    add_timestamp: bool = True,
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: True for JSON, False for console, None for auto (JSON if not tty)
        service: Service name to include in logs
        add_timestamp: Include ISO timestamp in logs
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service

    if json_format is None:
        json_format = not sys.stdout.isatty()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_metadata,
        _flatten_dosa_error,
    ]

    if add_timestamp:
        shared_processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_format:
        shared_processors.append(_ecs_compatible)
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level.upper())),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper()),
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``)."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context to include in all subsequent logs."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove specific keys from logging context."""
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    """Clear all bound context."""
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Context manager for scoped logging context.

    Example:
        with LogContext(scope="acct", entity="Order"):
            logger.info("read_started")
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs

    def __enter__(self) -> LogContext:
        bind_context(**self._context)
        return self

    def __exit__(self, *args: Any) -> None:
        unbind_context(*self._context.keys())


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    "LogContext",
]
