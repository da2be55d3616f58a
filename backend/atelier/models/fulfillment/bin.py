"""Bin and bin history SQLModels."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, CheckConstraint, Column
from sqlmodel import Field, SQLModel

from ...domain.fulfillment.value_objects.enums import BinHistoryAction, BinType
from .base import utcnow


class BinBase(SQLModel):
    """Base bin fields."""

    code: str = Field(max_length=30, unique=True, index=True)
    bin_type: BinType = Field(default=BinType.STORAGE, index=True)
    affinity_sku: str | None = Field(default=None, max_length=20, index=True)
    zone: str | None = Field(default=None, max_length=30)
    capacity: int = Field(gt=0)
    is_active: bool = Field(default=True)


class Bin(BinBase, table=True):
    """
    Bin table model.

    ``current_count`` is only changed through conditional updates in the
    bin repository; the check constraint is the last line of enforcement.
    """

    __tablename__ = "bins"
    __table_args__ = (
        CheckConstraint(
            "current_count >= 0 AND current_count <= capacity",
            name="ck_bins_occupancy",
        ),
    )

    id: int | None = Field(default=None, primary_key=True)
    current_count: int = Field(default=0)
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def free_capacity(self) -> int:
        return self.capacity - self.current_count

    @property
    def is_full(self) -> bool:
        return self.current_count >= self.capacity


class BinCreate(BinBase):
    """Bin creation model."""

    pass


class BinHistory(SQLModel, table=True):
    """Append-only log of bin occupancy changes."""

    __tablename__ = "bin_history"

    id: int | None = Field(default=None, primary_key=True)
    bin_id: int = Field(foreign_key="bins.id", index=True)
    action: BinHistoryAction
    quantity: int = Field(default=1)
    item_id: int | None = Field(default=None)
    request_id: int | None = Field(default=None)
    actor_id: str | None = Field(default=None, max_length=50)
    details: dict[str, Any] = Field(
        default_factory=dict, sa_column=Column(JSON, nullable=False)
    )
    created_at: datetime = Field(default_factory=utcnow)
