"""Cutting workflow: validate material, cut it, close out the batch."""

from pydantic import BaseModel, Field

from ....shared.exceptions import UnavailableError
from ...value_objects.enums import (
    BatchStatus,
    NotificationType,
    RequestType,
    UserRole,
)
from ...value_objects.item_status import ItemDetailStatus, ItemStatus
from ..actions import SendNotification
from ..context import StepContext
from ..definition import CREATED, FAILED, Step, StepOutcome, WorkflowDefinition

MATERIAL_VALIDATION = "MATERIAL_VALIDATION"
CUTTING_PROCESS = "CUTTING_PROCESS"
CUTTING_COMPLETE = "CUTTING_COMPLETE"


class MaterialValidationPayload(BaseModel):
    material_id: int


class CuttingProcessPayload(BaseModel):
    waste_percentage: float = Field(ge=0, le=100)
    pieces_count: int = Field(default=0, ge=0)


class CuttingCompletePayload(BaseModel):
    notes: str | None = None


def validate_material(ctx: StepContext, payload: MaterialValidationPayload) -> StepOutcome:
    material = ctx.uow.items.require(payload.material_id, code="MATERIAL_NOT_FOUND")
    if (material.status1, material.status2) != (ItemStatus.AVAILABLE, ItemDetailStatus.RAW):
        raise UnavailableError(
            f"Material {material.id} is not available raw stock",
            code="MATERIAL_UNAVAILABLE",
            details={"status1": material.status1.value, "status2": material.status2.value},
        )
    ctx.require_batch()

    ctx.metadata.material_id = material.id
    return StepOutcome(snapshot={"material_id": material.id})


def process_cutting(ctx: StepContext, payload: CuttingProcessPayload) -> StepOutcome:
    material = ctx.uow.items.require(ctx.metadata.material_id, code="MATERIAL_NOT_FOUND")
    batch = ctx.require_batch()
    if batch.status == BatchStatus.COMPLETED:
        raise UnavailableError(f"Batch {batch.code} is already completed", code="BATCH_UNAVAILABLE")

    ctx.transition_item(material, ItemStatus.IN_USE, ItemDetailStatus.CUTTING)
    batch.status = BatchStatus.IN_PROGRESS
    ctx.uow.session.add(batch)

    ctx.metadata.waste_percentage = payload.waste_percentage
    ctx.metadata.pieces_count = payload.pieces_count
    return StepOutcome(
        snapshot={
            "material_id": material.id,
            "batch_id": batch.id,
            "waste_percentage": payload.waste_percentage,
            "pieces_count": payload.pieces_count,
        }
    )


def complete_cutting(ctx: StepContext, payload: CuttingCompletePayload) -> StepOutcome:
    material = ctx.uow.items.require(ctx.metadata.material_id, code="MATERIAL_NOT_FOUND")
    if (material.status1, material.status2) != (ItemStatus.IN_USE, ItemDetailStatus.CUTTING):
        raise UnavailableError(
            f"Material {material.id} is not being cut",
            code="INVALID_MATERIAL_STATUS",
            details={"status1": material.status1.value, "status2": material.status2.value},
        )
    batch = ctx.require_batch()

    ctx.transition_item(material, ItemStatus.COMPLETED, ItemDetailStatus.CUT)
    batch.status = BatchStatus.COMPLETED
    ctx.uow.session.add(batch)

    return StepOutcome(
        snapshot={"material_id": material.id, "batch_id": batch.id},
        actions=[
            SendNotification(
                notification_type=NotificationType.STAGE_COMPLETED,
                message=f"Cutting completed for batch {batch.code}",
                user_role=UserRole.PRODUCTION_MANAGER,
                details={"request_id": ctx.request.id, "batch_id": batch.id},
            )
        ],
    )


DEFINITION = WorkflowDefinition(
    request_type=RequestType.CUTTING,
    steps=(
        Step(MATERIAL_VALIDATION, validate_material, MaterialValidationPayload),
        Step(CUTTING_PROCESS, process_cutting, CuttingProcessPayload),
        Step(CUTTING_COMPLETE, complete_cutting, CuttingCompletePayload),
    ),
    transitions={
        CREATED: frozenset({MATERIAL_VALIDATION, FAILED}),
        MATERIAL_VALIDATION: frozenset({CUTTING_PROCESS, FAILED}),
        CUTTING_PROCESS: frozenset({CUTTING_COMPLETE, FAILED}),
        CUTTING_COMPLETE: frozenset(),
        FAILED: frozenset(),
    },
    completion_states=frozenset({CUTTING_COMPLETE}),
    requires=frozenset({"batch"}),
)
