"""
Audit event logging.

Audit writes are a side channel: they run in their own session after the
business transaction commits, and a failure is logged, never raised.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol

from ...core.observability import get_correlation_id, get_logger
from ...models.fulfillment import AuditEvent
from ..database.unit_of_work import SessionFactory

logger = get_logger(__name__)


@dataclass(frozen=True)
class AuditEventData:
    event_type: str
    actor_id: str
    item_id: int | None = None
    order_id: int | None = None
    request_id: int | None = None
    details: dict[str, Any] = field(default_factory=dict)


class EventLogger(Protocol):
    def log_event(self, event: AuditEventData) -> None: ...


class DatabaseEventLogger:
    """Stores audit events in the ``audit_events`` table."""

    def __init__(self, session_factory: SessionFactory):
        self._session_factory = session_factory

    def log_event(self, event: AuditEventData) -> None:
        with self._session_factory() as session:
            session.add(
                AuditEvent(
                    event_type=event.event_type,
                    actor_id=event.actor_id,
                    item_id=event.item_id,
                    order_id=event.order_id,
                    request_id=event.request_id,
                    correlation_id=get_correlation_id() or None,
                    details=event.details,
                )
            )
            session.commit()


def log_action(event_logger: EventLogger | None, event: AuditEventData) -> None:
    """Record ``event``; failures are logged and swallowed."""
    if event_logger is None:
        return
    try:
        event_logger.log_event(event)
    except Exception as e:
        logger.error(
            "audit_event_failed",
            event_type=event.event_type,
            request_id=event.request_id,
            error=str(e),
        )
