"""
QC workflow.

Measurements are checked against a size chart derived from the item's SKU,
then a visual inspection, then the item is placed in a finishing bin.
Either inspection failing ends the request in DEFECT_DETECTED and sends
the item back through wash.
"""

from pydantic import BaseModel, Field

from ....shared.exceptions import (
    NotFoundError,
    ResourceExhaustedError,
    UnavailableError,
    ValidationError,
)
from ...services.bin_allocator import find_optimal_bin
from ...value_objects.enums import (
    BinType,
    DefectType,
    NotificationType,
    ProblemCategory,
    RequestType,
    Severity,
    UserRole,
)
from ...value_objects.item_status import ItemStatus
from ...value_objects.metadata import FinishingMetadata, VisualDefect
from ...value_objects.size_chart import SizeChart, passes
from ...value_objects.sku import SKUCode
from ..actions import SendNotification, SpawnRequest
from ..context import StepContext
from ..defects import DefectReport, defect_branch
from ..definition import Step, StepOutcome, WorkflowDefinition

MEASUREMENTS_REQUIRED = "MEASUREMENTS_REQUIRED"
MEASUREMENTS_VALIDATED = "MEASUREMENTS_VALIDATED"
VISUAL_INSPECTION_REQUIRED = "VISUAL_INSPECTION_REQUIRED"
VISUAL_INSPECTION_PASSED = "VISUAL_INSPECTION_PASSED"
BIN_ASSIGNMENT_REQUIRED = "BIN_ASSIGNMENT_REQUIRED"
DEFECT_DETECTED = "DEFECT_DETECTED"
COMPLETED = "COMPLETED"

MEASUREMENTS = "MEASUREMENTS"
VISUAL_INSPECTION = "VISUAL_INSPECTION"
BIN_ASSIGNMENT = "BIN_ASSIGNMENT"


class MeasurementsPayload(BaseModel):
    waist: float = Field(gt=0)
    hip: float = Field(gt=0)
    thigh: float = Field(gt=0)
    inseam: float = Field(gt=0)


class VisualInspectionPayload(BaseModel):
    passed: bool
    notes: str | None = None
    defect: VisualDefect | None = None


class BinAssignmentPayload(BaseModel):
    bin_code: str | None = Field(default=None, max_length=30)


def _item_in_qc(ctx: StepContext):
    item = ctx.require_item()
    if item.status1 != ItemStatus.QC:
        item = ctx.transition_item(item, ItemStatus.QC)
    return item


def record_measurements(ctx: StepContext, payload: MeasurementsPayload) -> StepOutcome:
    item = _item_in_qc(ctx)
    results = SizeChart.for_sku(item.sku_code).evaluate(payload.model_dump())

    ctx.metadata.measurements = payload.model_dump()
    ctx.metadata.measurement_results = {r.dimension: r.to_dict() for r in results}

    if passes(results):
        return StepOutcome(
            state=MEASUREMENTS_VALIDATED,
            snapshot={"measurement_results": ctx.metadata.measurement_results},
        )

    failed = {r.dimension: r.to_dict() for r in results if not r.passed}
    return defect_branch(
        ctx,
        item,
        DefectReport(
            defect_type=DefectType.MEASUREMENTS,
            category=ProblemCategory.MEASUREMENT,
            severity=Severity.MEDIUM,
            reason=f"Out of tolerance: {', '.join(sorted(failed))}",
            details={"failed_dimensions": failed},
        ),
        DEFECT_DETECTED,
    )


def record_visual_inspection(
    ctx: StepContext, payload: VisualInspectionPayload
) -> StepOutcome:
    item = _item_in_qc(ctx)
    ctx.metadata.visual_passed = payload.passed
    ctx.metadata.visual_notes = payload.notes

    if payload.passed:
        return StepOutcome(state=VISUAL_INSPECTION_PASSED, snapshot={"notes": payload.notes})

    if payload.defect is None:
        raise ValidationError(
            "defect",
            None,
            "A failed inspection must describe the defect",
            code="DEFECT_REQUIRED",
        )
    ctx.metadata.defect = payload.defect
    return defect_branch(
        ctx,
        item,
        DefectReport(
            defect_type=DefectType.VISUAL,
            category=ProblemCategory.OTHER,
            severity=payload.defect.severity,
            reason=payload.defect.description or payload.defect.type,
            details={
                "defect_type": payload.defect.type,
                "severity": payload.defect.severity.value,
                "notes": payload.notes,
            },
        ),
        DEFECT_DETECTED,
    )


def _finishing_bin(ctx: StepContext, bin_code: str | None):
    if bin_code is not None:
        bin_ = ctx.uow.bins.get_by_code(bin_code)
        if bin_ is None:
            raise NotFoundError("bin", bin_code)
        if bin_.bin_type != BinType.FINISHING:
            raise UnavailableError(
                f"Bin {bin_.code} is not a finishing bin", code="WRONG_BIN_TYPE"
            )
        return bin_

    bin_ = find_optimal_bin(ctx.uow.bins.find_with_room(None, BinType.FINISHING), 1)
    if bin_ is None:
        raise ResourceExhaustedError(
            "No finishing bin has room", code="NO_FINISHING_BIN"
        )
    return bin_


def assign_finishing_bin(ctx: StepContext, payload: BinAssignmentPayload) -> StepOutcome:
    item = _item_in_qc(ctx)
    bin_ = _finishing_bin(ctx, payload.bin_code)

    ctx.allocator.assign_item(item, bin_, ctx.operator_id, ctx.request.id)
    ctx.transition_item(item, ItemStatus.FINISHING, location=bin_.code)
    ctx.metadata.bin_id = bin_.id

    target_length = None
    if item.order_item_id is not None:
        order_item = ctx.uow.order_items.require(item.order_item_id)
        wanted = SKUCode.parse(order_item.target_sku)
        if not wanted.has_universal_length:
            target_length = int(wanted.length)

    return StepOutcome(
        snapshot={"bin_id": bin_.id, "bin_code": bin_.code},
        actions=[
            SpawnRequest(
                request_type=RequestType.FINISHING,
                item_id=item.id,
                order_id=ctx.request.order_id,
                metadata=FinishingMetadata(
                    source_request_id=ctx.request.id, target_length=target_length
                ),
                reason=f"QC request {ctx.request.id} passed",
            ),
            SendNotification(
                notification_type=NotificationType.STAGE_COMPLETED,
                message=f"Item {item.id} passed QC",
                user_role=UserRole.PRODUCTION_MANAGER,
                details={"item_id": item.id, "request_id": ctx.request.id},
            ),
        ],
    )


DEFINITION = WorkflowDefinition(
    request_type=RequestType.QC,
    initial_state=MEASUREMENTS_REQUIRED,
    steps=(
        Step(
            MEASUREMENTS,
            record_measurements,
            MeasurementsPayload,
            outcomes=(MEASUREMENTS_VALIDATED, DEFECT_DETECTED),
        ),
        Step(
            VISUAL_INSPECTION,
            record_visual_inspection,
            VisualInspectionPayload,
            outcomes=(VISUAL_INSPECTION_PASSED, DEFECT_DETECTED),
        ),
        Step(BIN_ASSIGNMENT, assign_finishing_bin, BinAssignmentPayload, outcomes=(COMPLETED,)),
    ),
    transitions={
        MEASUREMENTS_REQUIRED: frozenset({MEASUREMENTS_VALIDATED, DEFECT_DETECTED}),
        MEASUREMENTS_VALIDATED: frozenset({VISUAL_INSPECTION_REQUIRED}),
        VISUAL_INSPECTION_REQUIRED: frozenset({VISUAL_INSPECTION_PASSED, DEFECT_DETECTED}),
        VISUAL_INSPECTION_PASSED: frozenset({BIN_ASSIGNMENT_REQUIRED}),
        BIN_ASSIGNMENT_REQUIRED: frozenset({COMPLETED}),
        COMPLETED: frozenset(),
        DEFECT_DETECTED: frozenset(),
    },
    completion_states=frozenset({COMPLETED}),
    failure_states=frozenset({DEFECT_DETECTED}),
    auto_transitions={
        MEASUREMENTS_VALIDATED: VISUAL_INSPECTION_REQUIRED,
        VISUAL_INSPECTION_PASSED: BIN_ASSIGNMENT_REQUIRED,
    },
)
