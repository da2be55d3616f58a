"""
Next actions returned by workflow steps.

Steps never create other requests or send notifications themselves; they
describe what should happen and the orchestrator carries it out. Spawns
run inside the step's transaction, notifications after it commits.
"""

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

from ..value_objects.enums import NotificationType, RequestType, UserRole


@dataclass(frozen=True)
class SpawnRequest:
    request_type: RequestType
    item_id: int | None = None
    order_id: int | None = None
    batch_id: int | None = None
    metadata: BaseModel | None = None
    reason: str = ""


@dataclass(frozen=True)
class SendNotification:
    notification_type: NotificationType
    message: str
    user_id: str | None = None
    user_role: UserRole | None = None
    details: dict[str, Any] = field(default_factory=dict)


NextAction = SpawnRequest | SendNotification


def spawns(actions: list[Any]) -> list[SpawnRequest]:
    return [a for a in actions if isinstance(a, SpawnRequest)]


def notifications(actions: list[Any]) -> list[SendNotification]:
    return [a for a in actions if isinstance(a, SendNotification)]
