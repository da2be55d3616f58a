"""Packing workflow: confirm the order, scan the item, bin it, pack it."""

from pydantic import BaseModel, Field

from ....shared.exceptions import (
    InvalidRequestError,
    NotFoundError,
    UnavailableError,
)
from ...value_objects.enums import (
    BinType,
    NotificationType,
    OrderItemStatus,
    OrderStatus,
    RequestType,
    UserRole,
)
from ...value_objects.item_status import ItemDetailStatus, ItemStatus
from ..actions import SendNotification
from ..context import StepContext
from ..definition import CREATED, FAILED, EmptyPayload, Step, StepOutcome, WorkflowDefinition

ORDER_VALIDATION = "ORDER_VALIDATION"
ITEM_SCAN = "ITEM_SCAN"
BIN_ASSIGNMENT = "BIN_ASSIGNMENT"
PACKING_COMPLETE = "PACKING_COMPLETE"


class OrderValidationPayload(BaseModel):
    order_id: int


class ItemScanPayload(BaseModel):
    item_id: int


class BinAssignmentPayload(BaseModel):
    bin_code: str = Field(min_length=1, max_length=30)


def _require_ready_order(ctx: StepContext):
    order = ctx.require_order()
    if order.status != OrderStatus.READY_FOR_PACKING:
        raise UnavailableError(
            f"Order {order.order_number} is not ready for packing",
            code="INVALID_ORDER_STATUS",
            details={"status": order.status.value},
        )
    return order


def _require_packable_item(ctx: StepContext):
    item = ctx.require_item()
    if (item.status1, item.status2) != (
        ItemStatus.AVAILABLE,
        ItemDetailStatus.READY_FOR_PACKING,
    ):
        raise UnavailableError(
            f"Item {item.id} is not ready for packing",
            code="ITEM_NOT_READY",
            details={"status1": item.status1.value, "status2": item.status2.value},
        )
    return item


def validate_order(ctx: StepContext, payload: OrderValidationPayload) -> StepOutcome:
    if payload.order_id != ctx.request.order_id:
        raise InvalidRequestError(
            f"Order {payload.order_id} does not belong to request {ctx.request.id}",
            code="ORDER_MISMATCH",
        )
    order = _require_ready_order(ctx)
    ctx.metadata.validated_order_id = order.id
    return StepOutcome(snapshot={"order_id": order.id, "order_status": order.status.value})


def scan_item(ctx: StepContext, payload: ItemScanPayload) -> StepOutcome:
    if payload.item_id != ctx.request.item_id:
        raise InvalidRequestError(
            f"Scanned item {payload.item_id} does not belong to request {ctx.request.id}",
            code="ITEM_MISMATCH",
        )
    item = _require_packable_item(ctx)

    order_item = ctx.uow.order_items.get(item.order_item_id)
    if order_item is None or order_item.order_id != ctx.request.order_id:
        raise InvalidRequestError(
            f"Item {item.id} is not assigned to order {ctx.request.order_id}",
            code="ITEM_NOT_IN_ORDER",
        )

    ctx.metadata.scanned_item_id = item.id
    return StepOutcome(snapshot={"item_id": item.id, "order_item_id": order_item.id})


def assign_bin(ctx: StepContext, payload: BinAssignmentPayload) -> StepOutcome:
    item = _require_packable_item(ctx)
    bin_ = ctx.uow.bins.get_by_code(payload.bin_code)
    if bin_ is None:
        raise NotFoundError("bin", payload.bin_code)
    if bin_.bin_type != BinType.PACKING:
        raise UnavailableError(
            f"Bin {bin_.code} is not a packing bin", code="WRONG_BIN_TYPE"
        )

    ctx.allocator.assign_item(item, bin_, ctx.operator_id, ctx.request.id)
    ctx.metadata.bin_id = bin_.id
    return StepOutcome(
        snapshot={
            "bin_id": bin_.id,
            "bin_code": bin_.code,
            "current_count": bin_.current_count,
            "capacity": bin_.capacity,
        }
    )


def complete_packing(ctx: StepContext, payload: EmptyPayload) -> StepOutcome:
    order = _require_ready_order(ctx)
    item = _require_packable_item(ctx)
    ctx.transition_item(item, ItemStatus.PACKING, ItemDetailStatus.PACKED)

    order_item = ctx.uow.order_items.require(item.order_item_id)
    order_item.status = OrderItemStatus.PACKED
    ctx.uow.session.add(order_item)

    actions = []
    siblings = ctx.uow.order_items.list_for_order(order.id)
    if all(oi.status == OrderItemStatus.PACKED for oi in siblings):
        order.status = OrderStatus.PACKED
        ctx.uow.session.add(order)
        actions.append(
            SendNotification(
                notification_type=NotificationType.STAGE_COMPLETED,
                message=f"Order {order.order_number} is fully packed",
                user_role=UserRole.PACKING_LEAD,
                details={"order_id": order.id, "request_id": ctx.request.id},
            )
        )

    return StepOutcome(
        snapshot={"item_id": item.id, "order_status": order.status.value},
        actions=actions,
    )


DEFINITION = WorkflowDefinition(
    request_type=RequestType.PACKING,
    steps=(
        Step(ORDER_VALIDATION, validate_order, OrderValidationPayload),
        Step(ITEM_SCAN, scan_item, ItemScanPayload),
        Step(BIN_ASSIGNMENT, assign_bin, BinAssignmentPayload),
        Step(PACKING_COMPLETE, complete_packing),
    ),
    transitions={
        CREATED: frozenset({ORDER_VALIDATION, FAILED}),
        ORDER_VALIDATION: frozenset({ITEM_SCAN, FAILED}),
        ITEM_SCAN: frozenset({BIN_ASSIGNMENT, FAILED}),
        BIN_ASSIGNMENT: frozenset({PACKING_COMPLETE, FAILED}),
        PACKING_COMPLETE: frozenset(),
        FAILED: frozenset(),
    },
    completion_states=frozenset({PACKING_COMPLETE}),
    requires=frozenset({"item", "order"}),
)
