"""
Observability

structlog configuration for the fulfillment services. Every log entry
carries the correlation id of the operation that produced it plus the
operation name and operator bound by the service boundary.
"""

import contextvars
import logging
import sys
import uuid
from typing import Any

import structlog

from .config import settings

correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)


class CorrelationIdProcessor:
    """Adds the current correlation id and the deployment tags to an entry."""

    def __init__(self, service: str | None = None, environment: str | None = None):
        self.service = service
        self.environment = environment

    def __call__(
        self, logger: Any, name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        correlation_id = correlation_id_var.get("")
        if correlation_id:
            event_dict["correlation_id"] = correlation_id
        if self.service:
            event_dict.setdefault("service", self.service)
        if self.environment:
            event_dict.setdefault("environment", self.environment)
        return event_dict


def _renderer(log_format: str) -> Any:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=settings.ENVIRONMENT == "local")


def setup_structured_logging(
    log_level: str | None = None, log_format: str | None = None
) -> None:
    """Configure structlog and the stdlib root logger from settings."""
    level = getattr(logging, (log_level or settings.LOG_LEVEL).upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            CorrelationIdProcessor(settings.PROJECT_NAME, settings.ENVIRONMENT),
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            _renderer(log_format or settings.LOG_FORMAT),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )

    # the unit of work and SQLAlchemy log through stdlib logging
    logging.basicConfig(
        format="%(levelname)s %(name)s %(message)s", stream=sys.stdout, level=level
    )
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.SQL_ECHO else logging.WARNING
    )


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name)


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Bind ``correlation_id`` (or a fresh one) to the current context."""
    correlation_id = correlation_id or uuid.uuid4().hex
    correlation_id_var.set(correlation_id)
    return correlation_id


def get_correlation_id() -> str:
    return correlation_id_var.get("")


def bind_operation(operation: str, **fields: Any) -> None:
    """Attach the running service operation to every following log entry."""
    structlog.contextvars.bind_contextvars(operation=operation, **fields)


def clear_operation() -> None:
    structlog.contextvars.unbind_contextvars("operation", "operator_id")
