"""Recovery workflow: repair a defective item and send it back to QC."""

from datetime import date

from pydantic import BaseModel, Field

from .....models.fulfillment import utcnow
from ....shared.exceptions import UnavailableError
from ...value_objects.enums import (
    NotificationType,
    ProblemStatus,
    RequestType,
    ResolutionAction,
    UserRole,
)
from ...value_objects.item_status import ItemStatus
from ...value_objects.metadata import QCMetadata
from ..actions import SendNotification, SpawnRequest
from ..context import StepContext
from ..definition import CREATED, FAILED, Step, StepOutcome, WorkflowDefinition

REPAIR_STARTED = "REPAIR_STARTED"
REPAIR_COMPLETE = "REPAIR_COMPLETE"

_REPAIRABLE = {ItemStatus.DEFECTIVE, ItemStatus.PROBLEM, ItemStatus.PENDING_REPAIR}


class RepairStartPayload(BaseModel):
    notes: str | None = Field(default=None, max_length=500)
    estimated_completion: date | None = None


class RepairCompletePayload(BaseModel):
    notes: str | None = Field(default=None, max_length=500)


def start_repair(ctx: StepContext, payload: RepairStartPayload) -> StepOutcome:
    item = ctx.require_item()
    if item.status1 not in _REPAIRABLE:
        raise UnavailableError(
            f"Item {item.id} is not awaiting repair",
            code="ITEM_NOT_REPAIRABLE",
            details={"status1": item.status1.value},
        )
    if item.status1 != ItemStatus.PENDING_REPAIR:
        ctx.transition_item(item, ItemStatus.PENDING_REPAIR)

    ctx.metadata.repair_notes = payload.notes
    ctx.metadata.estimated_completion = payload.estimated_completion
    return StepOutcome(snapshot={"item_id": item.id, "notes": payload.notes})


def complete_repair(ctx: StepContext, payload: RepairCompletePayload) -> StepOutcome:
    item = ctx.require_item()
    if item.status1 != ItemStatus.PENDING_REPAIR:
        raise UnavailableError(
            f"Item {item.id} is not under repair", code="ITEM_NOT_UNDER_REPAIR"
        )
    ctx.transition_item(item, ItemStatus.QC)
    if payload.notes:
        ctx.metadata.repair_notes = payload.notes

    problem_id = ctx.metadata.problem_id
    if problem_id is not None:
        problem = ctx.uow.problems.require(problem_id)
        if problem.status == ProblemStatus.REPORTED:
            problem.status = ProblemStatus.RESOLVED
            problem.resolution_action = ResolutionAction.REPAIR
            problem.resolution_notes = ctx.metadata.repair_notes
            problem.resolved_by = ctx.operator_id
            problem.resolved_at = utcnow()
            problem.recovery_request_id = ctx.request.id
            ctx.uow.session.add(problem)

    return StepOutcome(
        snapshot={"item_id": item.id, "problem_id": problem_id},
        actions=[
            SpawnRequest(
                request_type=RequestType.QC,
                item_id=item.id,
                order_id=ctx.request.order_id,
                metadata=QCMetadata(source_request_id=ctx.request.id),
                reason=f"Recovery request {ctx.request.id} completed",
            ),
            SendNotification(
                notification_type=NotificationType.STAGE_COMPLETED,
                message=f"Item {item.id} repaired and queued for QC",
                user_role=UserRole.QC_SUPERVISOR,
                details={"item_id": item.id, "request_id": ctx.request.id},
            ),
        ],
    )


DEFINITION = WorkflowDefinition(
    request_type=RequestType.RECOVERY,
    steps=(
        Step(REPAIR_STARTED, start_repair, RepairStartPayload),
        Step(REPAIR_COMPLETE, complete_repair, RepairCompletePayload),
    ),
    transitions={
        CREATED: frozenset({REPAIR_STARTED, FAILED}),
        REPAIR_STARTED: frozenset({REPAIR_COMPLETE, FAILED}),
        REPAIR_COMPLETE: frozenset(),
        FAILED: frozenset(),
    },
    completion_states=frozenset({REPAIR_COMPLETE}),
)
