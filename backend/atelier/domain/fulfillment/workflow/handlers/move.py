"""Move workflow: scan an item, scan where it goes, put it there."""

import re

from pydantic import BaseModel, Field

from ....shared.exceptions import (
    InvalidRequestError,
    NotFoundError,
    UnavailableError,
    ValidationError,
)
from ...value_objects.enums import RequestType
from ...value_objects.item_status import ItemStatus
from ..context import StepContext
from ..definition import CREATED, FAILED, Step, StepOutcome, WorkflowDefinition

LOCATION_PATTERN = re.compile(r"[A-Z0-9-]+")

ITEM_SCAN = "ITEM_SCAN"
DESTINATION_SCAN = "DESTINATION_SCAN"
MOVE_COMPLETE = "MOVE_COMPLETE"


class ItemScanPayload(BaseModel):
    item_id: int


class DestinationScanPayload(BaseModel):
    destination: str = Field(min_length=1, max_length=50)
    is_bin: bool = False


class MoveCompletePayload(BaseModel):
    notes: str | None = None


def _require_available(item) -> None:
    if item.status1 != ItemStatus.AVAILABLE:
        raise UnavailableError(
            f"Item {item.id} is not available",
            code="ITEM_UNAVAILABLE",
            details={"status1": item.status1.value},
        )


def scan_item(ctx: StepContext, payload: ItemScanPayload) -> StepOutcome:
    if payload.item_id != ctx.request.item_id:
        raise InvalidRequestError(
            f"Scanned item {payload.item_id} does not belong to request {ctx.request.id}",
            code="ITEM_MISMATCH",
        )
    item = ctx.require_item()
    _require_available(item)

    ctx.metadata.scanned_item_id = item.id
    ctx.metadata.previous_location = item.location
    return StepOutcome(snapshot={"item_id": item.id, "location": item.location})


def scan_destination(ctx: StepContext, payload: DestinationScanPayload) -> StepOutcome:
    destination = payload.destination
    if not LOCATION_PATTERN.fullmatch(destination):
        raise ValidationError(
            "destination",
            destination,
            "Location codes may contain only A-Z, 0-9 and '-'",
            code="INVALID_LOCATION",
        )
    expected = ctx.metadata.expected_destination
    if expected and destination != expected:
        raise ValidationError(
            "destination",
            destination,
            f"Expected destination {expected}",
            code="DESTINATION_MISMATCH",
        )

    ctx.metadata.destination = destination
    ctx.metadata.destination_bin_id = None
    if payload.is_bin:
        bin_ = ctx.uow.bins.get_by_code(destination)
        if bin_ is None:
            raise NotFoundError("bin", destination)
        if not bin_.is_active:
            raise UnavailableError(f"Bin {bin_.code} is not active", code="BIN_INACTIVE")
        ctx.metadata.destination_bin_id = bin_.id

    return StepOutcome(snapshot={"destination": destination, "is_bin": payload.is_bin})


def complete_move(ctx: StepContext, payload: MoveCompletePayload) -> StepOutcome:
    item = ctx.require_item()
    _require_available(item)

    previous = item.location
    destination = ctx.metadata.destination
    if ctx.metadata.destination_bin_id is not None:
        bin_ = ctx.uow.bins.require(ctx.metadata.destination_bin_id)
        ctx.allocator.assign_item(item, bin_, ctx.operator_id, ctx.request.id)
    else:
        ctx.allocator.remove_item(item, ctx.operator_id, ctx.request.id)

    item.location = destination
    ctx.uow.session.add(item)
    return StepOutcome(snapshot={"from_location": previous, "to_location": destination})


DEFINITION = WorkflowDefinition(
    request_type=RequestType.MOVE,
    steps=(
        Step(ITEM_SCAN, scan_item, ItemScanPayload),
        Step(DESTINATION_SCAN, scan_destination, DestinationScanPayload),
        Step(MOVE_COMPLETE, complete_move, MoveCompletePayload),
    ),
    transitions={
        CREATED: frozenset({ITEM_SCAN, FAILED}),
        ITEM_SCAN: frozenset({DESTINATION_SCAN, FAILED}),
        DESTINATION_SCAN: frozenset({MOVE_COMPLETE, FAILED}),
        MOVE_COMPLETE: frozenset(),
        FAILED: frozenset(),
    },
    completion_states=frozenset({MOVE_COMPLETE}),
)
