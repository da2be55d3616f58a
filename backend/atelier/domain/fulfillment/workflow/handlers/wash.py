"""
Wash workflow.

An item is put into a wash bin of its own wash group, the whole bin goes
to the laundry in one pickup, and the item comes back to QC. A failed
wash may be retried from the start.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from .....core.config import settings
from .....core.observability import get_logger
from ....shared.exceptions import NotFoundError, UnavailableError, ValidationError
from ...value_objects.enums import (
    BinHistoryAction,
    BinType,
    NotificationType,
    RequestType,
    UserRole,
)
from ...value_objects.item_status import ItemDetailStatus, ItemStatus
from ...value_objects.metadata import LaundryPickup, QCMetadata
from ...value_objects.sku import SKUCode
from ..actions import SendNotification, SpawnRequest
from ..context import StepContext
from ..definition import FAILED, Step, StepOutcome, WorkflowDefinition

if TYPE_CHECKING:
    from .....infrastructure.database.unit_of_work import SqlModelUnitOfWork
    from ..engine import StepResult, WorkflowEngine

logger = get_logger(__name__)

ASSIGN_BIN = "ASSIGN_BIN"
BIN_ASSIGNED = "BIN_ASSIGNED"
READY_FOR_LAUNDRY = "READY_FOR_LAUNDRY"
AT_LAUNDRY = "AT_LAUNDRY"
COMPLETED = "COMPLETED"
COMPLETE = "COMPLETE"

LAUNDRY_LOCATION = "AT_LAUNDRY"


class AssignBinPayload(BaseModel):
    bin_code: str = Field(min_length=1, max_length=30)


class ReturnFromLaundryPayload(BaseModel):
    return_location: str | None = Field(default=None, max_length=50)


def bin_wash_group(bin_) -> str:
    if not bin_.affinity_sku:
        raise ValidationError(
            "bin_code",
            bin_.code,
            "Wash bin has no SKU affinity to derive its wash group from",
            code="BIN_WASH_GROUP_UNSET",
        )
    return SKUCode.parse(bin_.affinity_sku).wash_group.value


def assign_bin(ctx: StepContext, payload: AssignBinPayload) -> StepOutcome:
    item = ctx.require_item()
    bin_ = ctx.uow.bins.get_by_code(payload.bin_code)
    if bin_ is None:
        raise NotFoundError("bin", payload.bin_code)
    if bin_.bin_type != BinType.WASH:
        raise UnavailableError(f"Bin {bin_.code} is not a wash bin", code="WRONG_BIN_TYPE")

    item_group = item.sku_code.wash_group.value
    group = bin_wash_group(bin_)
    if item_group != group:
        raise ValidationError(
            "bin_code",
            bin_.code,
            f"Item wash group {item_group} does not match bin wash group {group}",
            code="WASH_GROUP_MISMATCH",
        )

    ctx.allocator.assign_item(item, bin_, ctx.operator_id, ctx.request.id)
    ctx.transition_item(item, ItemStatus.WASH, location=bin_.code)

    ctx.metadata.bin_id = bin_.id
    ctx.metadata.wash_group = group
    return StepOutcome(snapshot={"bin_id": bin_.id, "bin_code": bin_.code, "wash_group": group})


def send_to_laundry(ctx: StepContext, payload: LaundryPickup) -> StepOutcome:
    item = ctx.require_item()
    ctx.allocator.remove_item(item, ctx.operator_id, ctx.request.id)
    ctx.transition_item(
        item,
        ItemStatus.WASHING,
        ItemDetailStatus.IN_PROGRESS,
        location=LAUNDRY_LOCATION,
        bin_id=None,
    )
    ctx.metadata.pickup = payload
    return StepOutcome(snapshot={"item_id": item.id, "truck_id": payload.truck_id})


def return_from_laundry(ctx: StepContext, payload: ReturnFromLaundryPayload) -> StepOutcome:
    item = ctx.require_item()
    if item.status1 != ItemStatus.WASHING:
        raise UnavailableError(
            f"Item {item.id} is not at the laundry", code="ITEM_NOT_WASHING"
        )
    location = payload.return_location or settings.WASH_RETURN_LOCATION
    ctx.transition_item(item, ItemStatus.QC, location=location)
    ctx.metadata.return_location = location

    return StepOutcome(
        snapshot={"item_id": item.id, "location": location},
        actions=[
            SpawnRequest(
                request_type=RequestType.QC,
                item_id=item.id,
                order_id=ctx.request.order_id,
                metadata=QCMetadata(source_request_id=ctx.request.id),
                reason=f"Wash request {ctx.request.id} completed",
            ),
            SendNotification(
                notification_type=NotificationType.STAGE_COMPLETED,
                message=f"Item {item.id} is back from the laundry",
                user_role=UserRole.QC_SUPERVISOR,
                details={"item_id": item.id, "request_id": ctx.request.id},
            ),
        ],
    )


@dataclass
class LaundryPickupResult:
    bin_id: int
    bin_code: str
    items_sent: list[int] = field(default_factory=list)
    step_results: list["StepResult"] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "bin_id": self.bin_id,
            "bin_code": self.bin_code,
            "items_sent": self.items_sent,
            "requests_advanced": [r.request.id for r in self.step_results],
        }


def process_bin_for_laundry(
    engine: "WorkflowEngine",
    uow: "SqlModelUnitOfWork",
    bin_code: str,
    pickup: LaundryPickup,
    operator_id: str,
) -> LaundryPickupResult:
    """
    Send every item in a wash bin to the laundry and empty the bin.

    Open wash requests of those items advance to AT_LAUNDRY; items without
    one are moved directly. All of it happens in the caller's transaction.

    Raises:
        NotFoundError: If the bin does not exist
        UnavailableError: If it is not a wash bin or holds nothing
    """
    bin_ = uow.bins.get_by_code(bin_code)
    if bin_ is None:
        raise NotFoundError("bin", bin_code)
    if bin_.bin_type != BinType.WASH:
        raise UnavailableError(f"Bin {bin_.code} is not a wash bin", code="WRONG_BIN_TYPE")

    items = uow.items.list_in_bin(bin_.id)
    if not items:
        raise UnavailableError(f"Bin {bin_.code} is empty", code="BIN_EMPTY")

    result = LaundryPickupResult(bin_id=bin_.id, bin_code=bin_.code)
    for item in items:
        for request in uow.requests.list_open_for_item(item.id, RequestType.WASH):
            if request.current_step == READY_FOR_LAUNDRY:
                result.step_results.append(
                    engine.advance(uow, request.id, AT_LAUNDRY, pickup, operator_id)
                )

        uow.refresh(item)
        if item.status1 != ItemStatus.WASHING:
            uow.items.transition(
                item,
                ItemStatus.WASHING,
                ItemDetailStatus.IN_PROGRESS,
                location=LAUNDRY_LOCATION,
                bin_id=None,
            )
        result.items_sent.append(item.id)

    uow.refresh(bin_)
    uow.bin_history.record(
        bin_.id,
        BinHistoryAction.LAUNDRY_PICKUP,
        quantity=len(result.items_sent),
        actor_id=operator_id,
        details=pickup.model_dump(mode="json"),
    )
    uow.bins.reset_count(bin_)
    logger.info(
        "laundry_pickup_processed",
        bin_id=bin_.id,
        items=len(result.items_sent),
        truck_id=pickup.truck_id,
    )
    return result


DEFINITION = WorkflowDefinition(
    request_type=RequestType.WASH,
    initial_state=ASSIGN_BIN,
    steps=(
        Step(ASSIGN_BIN, assign_bin, AssignBinPayload, outcomes=(BIN_ASSIGNED,)),
        Step(AT_LAUNDRY, send_to_laundry, LaundryPickup),
        Step(COMPLETE, return_from_laundry, ReturnFromLaundryPayload, outcomes=(COMPLETED,)),
    ),
    transitions={
        ASSIGN_BIN: frozenset({BIN_ASSIGNED, FAILED}),
        BIN_ASSIGNED: frozenset({READY_FOR_LAUNDRY}),
        READY_FOR_LAUNDRY: frozenset({AT_LAUNDRY, FAILED}),
        AT_LAUNDRY: frozenset({COMPLETED, FAILED}),
        COMPLETED: frozenset(),
        FAILED: frozenset({ASSIGN_BIN}),
    },
    completion_states=frozenset({COMPLETED}),
    auto_transitions={BIN_ASSIGNED: READY_FOR_LAUNDRY},
    retryable=True,
)
