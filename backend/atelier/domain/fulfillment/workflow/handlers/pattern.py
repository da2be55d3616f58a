"""Pattern workflow: validate a READY batch, make its pattern, complete it."""

from pydantic import BaseModel, Field

from ....shared.exceptions import InvalidRequestError, UnavailableError, ValidationError
from ...value_objects.enums import BatchStatus, NotificationType, RequestType, UserRole
from ...value_objects.sku import SKUCode
from ..actions import SendNotification
from ..context import StepContext
from ..definition import CREATED, FAILED, EmptyPayload, Step, StepOutcome, WorkflowDefinition

BATCH_VALIDATION = "BATCH_VALIDATION"
PATTERN_PROCESS = "PATTERN_PROCESS"
PATTERN_COMPLETE = "PATTERN_COMPLETE"


class BatchValidationPayload(BaseModel):
    batch_id: int
    quantity: int | None = Field(default=None, gt=0)
    style: str | None = None


def _require_status(batch, status: BatchStatus) -> None:
    if batch.status != status:
        raise UnavailableError(
            f"Batch {batch.code} is {batch.status.value}, expected {status.value}",
            code="INVALID_BATCH_STATUS",
        )


def validate_batch(ctx: StepContext, payload: BatchValidationPayload) -> StepOutcome:
    if payload.batch_id != ctx.request.batch_id:
        raise InvalidRequestError(
            f"Batch {payload.batch_id} does not belong to request {ctx.request.id}",
            code="BATCH_MISMATCH",
        )
    batch = ctx.require_batch()
    _require_status(batch, BatchStatus.READY)

    if payload.quantity is not None and payload.quantity != batch.quantity:
        raise ValidationError(
            "quantity",
            payload.quantity,
            f"Batch {batch.code} has {batch.quantity} units",
            code="QUANTITY_MISMATCH",
        )
    style = SKUCode.parse(batch.sku).style
    if payload.style is not None and payload.style != style:
        raise ValidationError(
            "style", payload.style, f"Batch {batch.code} is style {style}", code="STYLE_MISMATCH"
        )

    ctx.metadata.quantity = batch.quantity
    ctx.metadata.style = style
    return StepOutcome(
        snapshot={"batch_id": batch.id, "quantity": batch.quantity, "style": style}
    )


def process_pattern(ctx: StepContext, payload: EmptyPayload) -> StepOutcome:
    batch = ctx.require_batch()
    _require_status(batch, BatchStatus.READY)
    batch.status = BatchStatus.IN_PROGRESS
    ctx.uow.session.add(batch)
    return StepOutcome(snapshot={"batch_id": batch.id, "batch_status": batch.status.value})


def complete_pattern(ctx: StepContext, payload: EmptyPayload) -> StepOutcome:
    batch = ctx.require_batch()
    _require_status(batch, BatchStatus.IN_PROGRESS)
    batch.status = BatchStatus.COMPLETED
    ctx.uow.session.add(batch)
    return StepOutcome(
        snapshot={"batch_id": batch.id, "batch_status": batch.status.value},
        actions=[
            SendNotification(
                notification_type=NotificationType.STAGE_COMPLETED,
                message=f"Pattern completed for batch {batch.code}",
                user_role=UserRole.PRODUCTION_MANAGER,
                details={"request_id": ctx.request.id, "batch_id": batch.id},
            )
        ],
    )


DEFINITION = WorkflowDefinition(
    request_type=RequestType.PATTERN,
    steps=(
        Step(BATCH_VALIDATION, validate_batch, BatchValidationPayload),
        Step(PATTERN_PROCESS, process_pattern),
        Step(PATTERN_COMPLETE, complete_pattern),
    ),
    transitions={
        CREATED: frozenset({BATCH_VALIDATION, FAILED}),
        BATCH_VALIDATION: frozenset({PATTERN_PROCESS, FAILED}),
        PATTERN_PROCESS: frozenset({PATTERN_COMPLETE, FAILED}),
        PATTERN_COMPLETE: frozenset(),
        FAILED: frozenset(),
    },
    completion_states=frozenset({PATTERN_COMPLETE}),
    requires=frozenset({"batch"}),
)
