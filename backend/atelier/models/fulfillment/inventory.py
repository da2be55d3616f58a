"""Inventory item SQLModel."""

from datetime import datetime

from sqlmodel import Field, SQLModel

from ...domain.fulfillment.value_objects.item_status import (
    ItemDetailStatus,
    ItemStatus,
)
from ...domain.fulfillment.value_objects.sku import SKUCode
from .base import utcnow


class InventoryItemBase(SQLModel):
    """Base inventory item fields."""

    sku: str = Field(max_length=20, index=True)
    status1: ItemStatus = Field(default=ItemStatus.PRODUCTION, index=True)
    status2: ItemDetailStatus = Field(default=ItemDetailStatus.UNCOMMITTED)
    location: str | None = Field(default=None, max_length=50)
    batch_id: int | None = Field(default=None, foreign_key="batches.id")


class InventoryItem(InventoryItemBase, table=True):
    """
    Inventory item table model.

    One physical garment (or raw material unit). ``bin_id`` and
    ``order_item_id`` are the optional bin placement and order assignment.
    """

    __tablename__ = "inventory_items"

    id: int | None = Field(default=None, primary_key=True)
    bin_id: int | None = Field(default=None, foreign_key="bins.id", index=True)
    order_item_id: int | None = Field(
        default=None, foreign_key="order_items.id", unique=True
    )
    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(
        default_factory=utcnow, sa_column_kwargs={"onupdate": utcnow}
    )

    @property
    def sku_code(self) -> SKUCode:
        return SKUCode.parse(self.sku)


class InventoryItemCreate(InventoryItemBase):
    """Inventory item creation model."""

    pass
