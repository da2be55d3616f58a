"""
Finishing workflow.

Buttons, name tag and hem are applied in order, then a final QC decides
whether the item goes on to packing or into repair. HEM rewrites the
item's SKU with the finished length.
"""

from typing import Any

from pydantic import BaseModel, Field

from ....shared.exceptions import UnavailableError, ValidationError
from ...value_objects.enums import (
    DefectType,
    NotificationType,
    OrderStatus,
    ProblemCategory,
    RequestType,
    Severity,
    UserRole,
)
from ...value_objects.item_status import ItemDetailStatus, ItemStatus
from ...value_objects.metadata import PackingMetadata
from ..actions import SendNotification, SpawnRequest
from ..context import StepContext
from ..defects import DefectReport, defect_branch
from ..definition import CREATED, FAILED, Step, StepOutcome, WorkflowDefinition

BUTTON = "BUTTON"
NAMETAG = "NAMETAG"
HEM = "HEM"
FINAL_QC = "FINAL_QC"
COMPLETED = "COMPLETED"


class ButtonPayload(BaseModel):
    button_color: str = Field(min_length=1, max_length=30)
    quantity: int = Field(ge=1)


class NametagPayload(BaseModel):
    style: str = Field(min_length=1, max_length=30)
    placement: str = Field(min_length=1, max_length=30)


class HemPayload(BaseModel):
    final_length: int = Field(ge=26, le=40)


class FinalQCPayload(BaseModel):
    passed: bool
    notes: str | None = None
    severity: Severity = Severity.MEDIUM


def _item_in_finishing(ctx: StepContext):
    item = ctx.require_item()
    if item.status1 != ItemStatus.FINISHING:
        raise UnavailableError(
            f"Item {item.id} is not in finishing",
            code="ITEM_NOT_IN_FINISHING",
            details={"status1": item.status1.value},
        )
    return item


def apply_buttons(ctx: StepContext, payload: ButtonPayload) -> StepOutcome:
    item = _item_in_finishing(ctx)
    wanted = ctx.order_specifications().get("button_color")
    if wanted and wanted != payload.button_color:
        raise ValidationError(
            "button_color",
            payload.button_color,
            f"Order specifies {wanted} buttons",
            code="BUTTON_MISMATCH",
        )
    ctx.metadata.button_color = payload.button_color
    ctx.metadata.button_quantity = payload.quantity
    return StepOutcome(snapshot={"item_id": item.id, **payload.model_dump()})


def apply_nametag(ctx: StepContext, payload: NametagPayload) -> StepOutcome:
    _item_in_finishing(ctx)
    wanted = ctx.order_specifications().get("nametag_style")
    if wanted and wanted != payload.style:
        raise ValidationError(
            "style", payload.style, f"Order specifies a {wanted} name tag", code="NAMETAG_MISMATCH"
        )
    ctx.metadata.nametag_style = payload.style
    ctx.metadata.nametag_placement = payload.placement
    return StepOutcome(snapshot=payload.model_dump())


def apply_hem(ctx: StepContext, payload: HemPayload) -> StepOutcome:
    item = _item_in_finishing(ctx)
    target = ctx.metadata.target_length
    if target is not None and payload.final_length != target:
        raise ValidationError(
            "final_length",
            payload.final_length,
            f"Hem length must be {target}",
            code="HEM_LENGTH_MISMATCH",
        )

    original = item.sku
    final = str(item.sku_code.with_length(payload.final_length))
    ctx.transition_item(item, ItemStatus.FINISHING, item.status2, sku=final)

    if ctx.metadata.original_sku is None:
        ctx.metadata.original_sku = original
    ctx.metadata.final_sku = final
    return StepOutcome(snapshot={"from_sku": original, "to_sku": final})


def _order_finished(ctx: StepContext, order_id: int) -> bool:
    order_items = ctx.uow.order_items.list_for_order(order_id)
    items = ctx.uow.items.list_for_order_items(oi.id for oi in order_items)
    if len(items) < len(order_items):
        return False
    return all(
        (i.status1, i.status2) == (ItemStatus.AVAILABLE, ItemDetailStatus.READY_FOR_PACKING)
        for i in items
    )


def final_qc(ctx: StepContext, payload: FinalQCPayload) -> StepOutcome:
    item = _item_in_finishing(ctx)
    ctx.metadata.final_qc_passed = payload.passed

    if not payload.passed:
        ctx.allocator.remove_item(item, ctx.operator_id, ctx.request.id)
        return defect_branch(
            ctx,
            item,
            DefectReport(
                defect_type=DefectType.FINAL_QC,
                category=ProblemCategory.OTHER,
                severity=payload.severity,
                reason=payload.notes or "Final QC rejected",
                details={"notes": payload.notes},
            ),
            FAILED,
            rework_type=RequestType.RECOVERY,
        )

    ctx.allocator.remove_item(item, ctx.operator_id, ctx.request.id)
    ctx.transition_item(item, ItemStatus.AVAILABLE, ItemDetailStatus.READY_FOR_PACKING)

    actions: list[Any] = [
        SendNotification(
            notification_type=NotificationType.STAGE_COMPLETED,
            message=f"Item {item.id} finished as {item.sku}",
            user_role=UserRole.PACKING_LEAD,
            details={"item_id": item.id, "request_id": ctx.request.id},
        )
    ]
    snapshot: dict[str, Any] = {"item_id": item.id, "sku": item.sku}

    order_id = ctx.request.order_id
    if order_id is not None:
        actions.append(
            SpawnRequest(
                request_type=RequestType.PACKING,
                item_id=item.id,
                order_id=order_id,
                metadata=PackingMetadata(source_request_id=ctx.request.id),
                reason=f"Finishing request {ctx.request.id} completed",
            )
        )
        order = ctx.uow.orders.require(order_id)
        if order.status == OrderStatus.PROCESSING and _order_finished(ctx, order_id):
            order.status = OrderStatus.READY_FOR_PACKING
            ctx.uow.session.add(order)
            snapshot["order_status"] = order.status.value

    return StepOutcome(state=COMPLETED, snapshot=snapshot, actions=actions)


DEFINITION = WorkflowDefinition(
    request_type=RequestType.FINISHING,
    steps=(
        Step(BUTTON, apply_buttons, ButtonPayload),
        Step(NAMETAG, apply_nametag, NametagPayload),
        Step(HEM, apply_hem, HemPayload),
        Step(FINAL_QC, final_qc, FinalQCPayload, outcomes=(COMPLETED, FAILED)),
    ),
    transitions={
        CREATED: frozenset({BUTTON, FAILED}),
        BUTTON: frozenset({NAMETAG, FAILED}),
        NAMETAG: frozenset({HEM, FAILED}),
        HEM: frozenset({COMPLETED, FAILED}),
        COMPLETED: frozenset(),
        FAILED: frozenset({CREATED}),
    },
    completion_states=frozenset({COMPLETED}),
    retryable=True,
)
