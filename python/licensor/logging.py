"""Structured logging configuration using structlog.

Every entry is a JSON object (console lines in local development) carrying
whatever request or task context is bound at the time:
- request_id: Correlation ID for request tracing
- provider: Name of the provider making the request, once resolved
- path / method: Raw request path (no query string) and HTTP method
- task_name / task_id: Celery task context
- timestamp: ISO8601 formatted timestamp

Secret material is stripped from every event as a last line of defense;
call sites are still expected to guard themselves with
``licensor.services.redact.safe_kv``.

Usage:
    from licensor.logging import get_logger, configure_logging

    configure_logging()
    logger = get_logger(__name__)
    logger.info("license_created", provider="acme_films", content_id=5)
"""

import logging
import sys
from contextvars import ContextVar

import structlog

from licensor.services.redact import FORBIDDEN_KEYS

REQUEST_FIELDS = ("request_id", "provider", "path", "method")
TASK_FIELDS = ("task_name", "task_id")

_context: dict[str, ContextVar[str | None]] = {
    field: ContextVar(field, default=None) for field in REQUEST_FIELDS + TASK_FIELDS
}

# Libraries whose INFO output is noise next to our own access log
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "celery.redirected")


def add_request_context(logger: logging.Logger, method_name: str, event_dict: dict) -> dict:
    """Inject every bound request/task field into the event."""
    for field, var in _context.items():
        value = var.get()
        if value:
            event_dict.setdefault(field, value)
    return event_dict


def drop_secrets(logger: logging.Logger, method_name: str, event_dict: dict) -> dict:
    """Remove never-log keys that slipped past call-site guards."""
    for key in FORBIDDEN_KEYS.intersection(event_dict):
        del event_dict[key]
    return event_dict


def configure_logging(json_format: bool = True, level: str | int = logging.INFO) -> None:
    """Configure structlog and route stdlib logging through it.

    Args:
        json_format: JSON lines if True, human-readable console output otherwise.
        level: Root log level.
    """
    shared_processors = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_request_context,
        drop_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    renderer = (
        structlog.processors.JSONRenderer() if json_format else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger, typically ``get_logger(__name__)``."""
    return structlog.get_logger(name)


def set_request_context(
    request_id: str | None,
    path: str | None = None,
    method: str | None = None,
) -> None:
    """Bind request fields for the current request's context.

    Args:
        request_id: The request correlation ID.
        path: Raw request path (optional, no query string).
        method: HTTP method (optional).
    """
    _context["request_id"].set(request_id)
    if path is not None:
        _context["path"].set(path)
    if method is not None:
        _context["method"].set(method)


def set_provider(name: str | None) -> None:
    """Bind the requesting provider's name once it has been resolved."""
    _context["provider"].set(name)


def clear_request_context() -> None:
    """Unbind all request fields at the end of a request."""
    for field in REQUEST_FIELDS:
        _context[field].set(None)


def get_request_id() -> str | None:
    """Get the current request ID from context."""
    return _context["request_id"].get()


def configure_task_logging(task_name: str | None = None, task_id: str | None = None) -> None:
    """Bind Celery task fields; call at the start of each task.

    Args:
        task_name: The registered Celery task name.
        task_id: The Celery task ID (from ``self.request.id``).
    """
    _context["task_name"].set(task_name)
    _context["task_id"].set(task_id)


def clear_task_context() -> None:
    """Unbind task fields at the end of a task."""
    for field in TASK_FIELDS:
        _context[field].set(None)
