"""Order and order item SQLModels."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from ...domain.fulfillment.value_objects.enums import OrderItemStatus, OrderStatus
from .base import utcnow


class OrderBase(SQLModel):
    """Base order fields."""

    order_number: str = Field(max_length=50, unique=True, index=True)
    customer_name: str | None = Field(default=None, max_length=100)
    status: OrderStatus = Field(default=OrderStatus.NEW)


class Order(OrderBase, table=True):
    """
    Order table model.

    ``specifications`` holds customer finishing choices (button colour,
    name tag style); ``shipment`` is filled in when the order is processed.
    """

    __tablename__ = "orders"

    id: int | None = Field(default=None, primary_key=True)
    specifications: dict[str, Any] = Field(
        default_factory=dict, sa_column=Column(JSON, nullable=False)
    )
    shipment: dict[str, Any] = Field(
        default_factory=dict, sa_column=Column(JSON, nullable=False)
    )
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(
        default_factory=utcnow, sa_column_kwargs={"onupdate": utcnow}
    )


class OrderCreate(OrderBase):
    """Order creation model."""

    specifications: dict[str, Any] = Field(default_factory=dict)


class OrderItemBase(SQLModel):
    """Base order item fields."""

    order_id: int = Field(foreign_key="orders.id", index=True)
    target_sku: str = Field(max_length=20)
    quantity: int = Field(default=1, gt=0)


class OrderItem(OrderItemBase, table=True):
    """Order item table model; fulfilled by exactly one inventory item."""

    __tablename__ = "order_items"

    id: int | None = Field(default=None, primary_key=True)
    status: OrderItemStatus = Field(default=OrderItemStatus.PENDING)
    assigned_item_id: int | None = Field(default=None)
    bin_id: int | None = Field(default=None, foreign_key="bins.id")
    reserved_quantity: int = Field(default=0, ge=0)
    match_details: dict[str, Any] = Field(
        default_factory=dict, sa_column=Column(JSON, nullable=False)
    )
    created_at: datetime = Field(default_factory=utcnow)


class OrderItemCreate(SQLModel):
    """Order item creation model."""

    target_sku: str = Field(max_length=20)
    quantity: int = Field(default=1, gt=0)
