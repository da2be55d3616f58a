"""Audit event and notification SQLModels."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from .base import utcnow


class AuditEvent(SQLModel, table=True):
    __tablename__ = "audit_events"

    id: int | None = Field(default=None, primary_key=True)
    event_type: str = Field(max_length=50, index=True)
    actor_id: str = Field(max_length=50)
    item_id: int | None = Field(default=None, index=True)
    order_id: int | None = Field(default=None, index=True)
    request_id: int | None = Field(default=None, index=True)
    correlation_id: str | None = Field(default=None, max_length=64)
    details: dict[str, Any] = Field(
        default_factory=dict, sa_column=Column(JSON, nullable=False)
    )
    created_at: datetime = Field(default_factory=utcnow)


class Notification(SQLModel, table=True):
    __tablename__ = "notifications"

    id: int | None = Field(default=None, primary_key=True)
    notification_type: str = Field(max_length=50)
    message: str
    user_id: str | None = Field(default=None, max_length=50)
    user_role: str | None = Field(default=None, max_length=50)
    details: dict[str, Any] = Field(
        default_factory=dict, sa_column=Column(JSON, nullable=False)
    )
    is_read: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow)
