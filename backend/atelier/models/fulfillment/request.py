"""Workflow request and timeline SQLModels."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from ...domain.fulfillment.value_objects.enums import RequestStatus, RequestType
from ...domain.fulfillment.value_objects.metadata import load_metadata
from .base import utcnow


class Request(SQLModel, table=True):
    """
    Request table model.

    The unit of work driving one item or batch through one pipeline stage.
    ``current_step`` is the workflow state; ``version`` increases on every
    step so concurrent advances of the same request cannot both commit.
    """

    __tablename__ = "requests"

    id: int | None = Field(default=None, primary_key=True)
    request_type: RequestType = Field(index=True)
    status: RequestStatus = Field(default=RequestStatus.PENDING, index=True)
    current_step: str = Field(max_length=50)
    item_id: int | None = Field(default=None, foreign_key="inventory_items.id", index=True)
    order_id: int | None = Field(default=None, foreign_key="orders.id", index=True)
    batch_id: int | None = Field(default=None, foreign_key="batches.id")
    source_request_id: int | None = Field(default=None, foreign_key="requests.id")
    meta: dict[str, Any] = Field(
        default_factory=dict, sa_column=Column("metadata", JSON, nullable=False)
    )
    annotations: dict[str, str] = Field(
        default_factory=dict, sa_column=Column(JSON, nullable=False)
    )
    retry_count: int = Field(default=0, ge=0)
    version: int = Field(default=0)
    created_by: str | None = Field(default=None, max_length=50)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def metadata_model(self) -> Any:
        """Typed metadata variant for this request's type."""
        return load_metadata(self.request_type, self.meta)


class RequestTimeline(SQLModel, table=True):
    """One append-only step record of a request."""

    __tablename__ = "request_timeline"

    id: int | None = Field(default=None, primary_key=True)
    request_id: int = Field(foreign_key="requests.id", index=True)
    sequence: int = Field(ge=1)
    step: str = Field(max_length=50)
    status: RequestStatus
    operator_id: str = Field(max_length=50)
    snapshot: dict[str, Any] = Field(
        default_factory=dict, sa_column=Column(JSON, nullable=False)
    )
    created_at: datetime = Field(default_factory=utcnow)
