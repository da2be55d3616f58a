"""Problem (defect) record SQLModel."""

from datetime import datetime

from sqlmodel import Field, SQLModel

from ...domain.fulfillment.value_objects.enums import (
    ProblemCategory,
    ProblemStatus,
    ResolutionAction,
    Severity,
)
from .base import utcnow


class Problem(SQLModel, table=True):
    """A reported defect on an item, pending or resolved."""

    __tablename__ = "problems"

    id: int | None = Field(default=None, primary_key=True)
    item_id: int = Field(foreign_key="inventory_items.id", index=True)
    request_id: int | None = Field(default=None, foreign_key="requests.id")
    category: ProblemCategory
    severity: Severity
    description: str
    discovered_during: str = Field(max_length=30)
    reported_by: str = Field(max_length=50)
    status: ProblemStatus = Field(default=ProblemStatus.REPORTED)
    resolution_action: ResolutionAction | None = Field(default=None)
    resolution_notes: str | None = Field(default=None)
    resolved_by: str | None = Field(default=None, max_length=50)
    recovery_request_id: int | None = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow)
    resolved_at: datetime | None = Field(default=None)
