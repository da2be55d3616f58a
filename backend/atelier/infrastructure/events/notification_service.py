"""
Notifications for stage completions and defects.

Like audit events, notifications are sent after commit and their failure
never fails the operation that triggered them.
"""

from typing import Protocol

from ...core.observability import get_logger
from ...domain.fulfillment.workflow.actions import SendNotification
from ...models.fulfillment import Notification
from ..database.unit_of_work import SessionFactory

logger = get_logger(__name__)


class NotificationService(Protocol):
    def create_notification(self, notification: SendNotification) -> None: ...


class DatabaseNotificationService:
    """Stores notifications in the ``notifications`` table for the UI to poll."""

    def __init__(self, session_factory: SessionFactory):
        self._session_factory = session_factory

    def create_notification(self, notification: SendNotification) -> None:
        with self._session_factory() as session:
            session.add(
                Notification(
                    notification_type=notification.notification_type.value,
                    message=notification.message,
                    user_id=notification.user_id,
                    user_role=notification.user_role.value
                    if notification.user_role
                    else None,
                    details=notification.details,
                )
            )
            session.commit()


def send_notification(
    service: NotificationService | None, notification: SendNotification
) -> None:
    """Deliver ``notification``; failures are logged and swallowed."""
    if service is None:
        return
    try:
        service.create_notification(notification)
    except Exception as e:
        logger.error(
            "notification_failed",
            notification_type=notification.notification_type.value,
            error=str(e),
        )
