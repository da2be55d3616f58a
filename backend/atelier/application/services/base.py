"""
Shared plumbing for fulfillment application services.

Every public operation runs through ``operation_boundary`` (typed errors
out, unexpected errors wrapped) and ``FulfillmentService._run`` (one
retried transaction, with notifications and audit events published only
once it has committed).
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from functools import wraps
from typing import Any, Generic, TypeVar

from ...core.observability import (
    bind_operation,
    clear_operation,
    get_correlation_id,
    get_logger,
    set_correlation_id,
)
from ...core.unit_of_work import RetryConfig, run_in_transaction
from ...domain.fulfillment.workflow.actions import SendNotification
from ...domain.shared.exceptions import DomainError, ServiceError
from ...infrastructure.database.unit_of_work import (
    SqlModelUnitOfWork,
    UnitOfWorkFactory,
    unit_of_work_factory,
)
from ...infrastructure.events.event_logger import AuditEventData, EventLogger, log_action
from ...infrastructure.events.notification_service import (
    NotificationService,
    send_notification,
)

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class OperationResult(Generic[T]):
    """Transport-friendly outcome: ``data`` on success, ``error`` otherwise."""

    success: bool
    data: T | None = None
    error: DomainError | None = None

    @classmethod
    def capture(cls, func: Callable[..., T], *args: Any, **kwargs: Any) -> "OperationResult[T]":
        try:
            return cls(success=True, data=func(*args, **kwargs))
        except DomainError as e:
            return cls(success=False, error=e)

    def to_dict(self) -> dict[str, Any]:
        if self.success:
            data = self.data
            if hasattr(data, "model_dump"):
                data = data.model_dump(mode="json")
            return {"success": True, "data": data}
        return {"success": False, "error": self.error.to_dict()}


def operation_boundary(name: str):
    """
    Wrap a service operation so callers only ever see ``DomainError``.

    Domain errors pass through unchanged after logging; anything else is
    logged with its traceback and replaced by a ``ServiceError`` that does
    not leak internals.
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            if not get_correlation_id():
                set_correlation_id()
            bind_operation(name, operator_id=kwargs.get("operator_id"))
            try:
                return func(*args, **kwargs)
            except DomainError as e:
                logger.warning(
                    "operation_rejected",
                    operation=name,
                    error_type=e.error_type.value,
                    code=e.code,
                    error=e.message,
                )
                raise
            except Exception as e:
                logger.exception("operation_failed", operation=name, error=str(e))
                raise ServiceError() from e
            finally:
                clear_operation()

        return wrapper

    return decorator


@dataclass
class SideEffects:
    """Notifications and audit events collected during one attempt."""

    notifications: list[SendNotification] = field(default_factory=list)
    audit_events: list[AuditEventData] = field(default_factory=list)

    def notify(self, notification: SendNotification) -> None:
        self.notifications.append(notification)

    def audit(self, event_type: str, actor_id: str, **fields: Any) -> None:
        self.audit_events.append(AuditEventData(event_type=event_type, actor_id=actor_id, **fields))


class FulfillmentService:
    """Base class holding the collaborators every service needs."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory | None = None,
        retry_config: RetryConfig | None = None,
        event_logger: EventLogger | None = None,
        notification_service: NotificationService | None = None,
    ):
        self.uow_factory = uow_factory or unit_of_work_factory()
        self.retry_config = retry_config
        self.event_logger = event_logger
        self.notification_service = notification_service

    def _run(self, operation: Callable[[SqlModelUnitOfWork, SideEffects], T]) -> T:
        committed: list[SideEffects] = []

        def attempt(uow: SqlModelUnitOfWork) -> T:
            effects = SideEffects()
            committed[:] = [effects]
            return operation(uow, effects)

        result = run_in_transaction(attempt, self.uow_factory, self.retry_config)
        self._publish(committed[0])
        return result

    def _publish(self, effects: SideEffects) -> None:
        for notification in effects.notifications:
            send_notification(self.notification_service, notification)
        for event in effects.audit_events:
            log_action(self.event_logger, event)
