"""Test data builders writing straight through a unit of work."""

from itertools import count
from typing import Any

from atelier.domain.fulfillment.value_objects.enums import (
    BatchStatus,
    BinType,
    OrderStatus,
    RequestType,
)
from atelier.domain.fulfillment.value_objects.item_status import (
    ItemDetailStatus,
    ItemStatus,
)
from atelier.domain.fulfillment.workflow.engine import WorkflowEngine
from atelier.infrastructure.database.unit_of_work import SqlModelUnitOfWork
from atelier.models.fulfillment import (
    Batch,
    Bin,
    InventoryItem,
    Order,
    OrderItem,
    Request,
)

_sequence = count(1)

OPERATOR = "op-1"


def make_item(
    uow: SqlModelUnitOfWork,
    sku: str = "ST-32-R-32-RAW",
    status1: ItemStatus = ItemStatus.STOCK,
    status2: ItemDetailStatus = ItemDetailStatus.UNCOMMITTED,
    **fields: Any,
) -> InventoryItem:
    return uow.items.add(InventoryItem(sku=sku, status1=status1, status2=status2, **fields))


def make_bin(
    uow: SqlModelUnitOfWork,
    bin_type: BinType = BinType.STORAGE,
    capacity: int = 10,
    current_count: int = 0,
    affinity_sku: str | None = None,
    code: str | None = None,
    is_active: bool = True,
) -> Bin:
    return uow.bins.add(
        Bin(
            code=code or f"{bin_type.value[:3]}-{next(_sequence):03d}",
            bin_type=bin_type,
            capacity=capacity,
            current_count=current_count,
            affinity_sku=affinity_sku,
            is_active=is_active,
        )
    )


def make_batch(
    uow: SqlModelUnitOfWork,
    sku: str = "ST-32-R-32-RAW",
    quantity: int = 10,
    status: BatchStatus = BatchStatus.READY,
) -> Batch:
    return uow.batches.add(
        Batch(code=f"B-{next(_sequence):04d}", sku=sku, quantity=quantity, status=status)
    )


def make_order(
    uow: SqlModelUnitOfWork,
    skus: list[str],
    status: OrderStatus = OrderStatus.NEW,
    specifications: dict[str, Any] | None = None,
) -> tuple[Order, list[OrderItem]]:
    order = uow.orders.add(
        Order(
            order_number=f"ORD-{next(_sequence):05d}",
            status=status,
            specifications=specifications or {},
        )
    )
    order_items = [uow.order_items.add(OrderItem(order_id=order.id, target_sku=s)) for s in skus]
    return order, order_items


def assign_to_order(
    uow: SqlModelUnitOfWork, item: InventoryItem, order_item: OrderItem
) -> InventoryItem:
    """Commit ``item`` to ``order_item`` without going through the coordinator."""
    item.order_item_id = order_item.id
    if item.status2 == ItemDetailStatus.UNCOMMITTED:
        item.status2 = ItemDetailStatus.COMMITTED
    order_item.assigned_item_id = item.id
    uow.session.add_all([item, order_item])
    uow.flush()
    return item


def open_request(
    uow: SqlModelUnitOfWork,
    request_type: RequestType,
    engine: WorkflowEngine | None = None,
    **kwargs: Any,
) -> Request:
    return (engine or WorkflowEngine()).open_request(uow, request_type, OPERATOR, **kwargs)
