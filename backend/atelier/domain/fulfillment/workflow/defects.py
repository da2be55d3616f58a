"""
Defect branch shared by inspection steps.

A failed inspection ends the inspecting request in a failure state, marks
the item DEFECTIVE, records a problem and asks for a rework request that
points back at the failed request.
"""

from dataclasses import dataclass, field
from typing import Any

from ....models.fulfillment import InventoryItem, Problem
from ..value_objects.enums import (
    DefectType,
    NotificationType,
    ProblemCategory,
    RequestType,
    Severity,
    UserRole,
)
from ..value_objects.item_status import ItemStatus
from ..value_objects.metadata import FailureDetails, RecoveryMetadata, WashMetadata
from .actions import SendNotification, SpawnRequest
from .context import StepContext
from .definition import StepOutcome


@dataclass(frozen=True)
class DefectReport:
    defect_type: DefectType
    category: ProblemCategory
    severity: Severity
    reason: str
    details: dict[str, Any] = field(default_factory=dict)


def defect_branch(
    ctx: StepContext,
    item: InventoryItem,
    report: DefectReport,
    failed_state: str,
    rework_type: RequestType = RequestType.WASH,
) -> StepOutcome:
    """Build the outcome of a failed inspection and apply its item changes."""
    request = ctx.request
    ctx.metadata.failure = FailureDetails(
        reason=report.reason,
        failed_step=request.current_step,
        defect_type=report.defect_type,
        details=report.details,
    )

    if item.status1 != ItemStatus.DEFECTIVE:
        ctx.transition_item(item, ItemStatus.DEFECTIVE)

    problem = ctx.uow.problems.add(
        Problem(
            item_id=item.id,
            request_id=request.id,
            category=report.category,
            severity=report.severity,
            description=report.reason,
            discovered_during=request.request_type.value,
            reported_by=ctx.operator_id,
        )
    )

    if rework_type == RequestType.WASH:
        rework_metadata: Any = WashMetadata(
            source_request_id=request.id,
            defect_type=report.defect_type,
            defect_details={**report.details, "problem_id": problem.id},
        )
    else:
        rework_metadata = RecoveryMetadata(source_request_id=request.id, problem_id=problem.id)

    actions = [
        SpawnRequest(
            request_type=rework_type,
            item_id=item.id,
            order_id=request.order_id,
            metadata=rework_metadata,
            reason=f"{report.defect_type.value} defect on request {request.id}",
        ),
        SendNotification(
            notification_type=NotificationType.DEFECT_DETECTED,
            message=f"Item {item.id} failed {report.defect_type.value.lower()} inspection: "
            f"{report.reason}",
            user_role=UserRole.QC_SUPERVISOR,
            details={
                "item_id": item.id,
                "request_id": request.id,
                "problem_id": problem.id,
                "severity": report.severity.value,
            },
        ),
    ]
    return StepOutcome(
        state=failed_state,
        snapshot={
            "defect_type": report.defect_type.value,
            "problem_id": problem.id,
            "details": report.details,
        },
        actions=actions,
    )
