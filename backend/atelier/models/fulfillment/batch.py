"""Production batch SQLModel."""

from datetime import datetime

from sqlmodel import Field, SQLModel

from ...domain.fulfillment.value_objects.enums import BatchStatus
from .base import utcnow


class Batch(SQLModel, table=True):
    """A production run of identical SKUs."""

    __tablename__ = "batches"

    id: int | None = Field(default=None, primary_key=True)
    code: str = Field(max_length=50, unique=True, index=True)
    sku: str = Field(max_length=20)
    quantity: int = Field(gt=0)
    status: BatchStatus = Field(default=BatchStatus.READY)
    created_by: str | None = Field(default=None, max_length=50)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(
        default_factory=utcnow, sa_column_kwargs={"onupdate": utcnow}
    )
