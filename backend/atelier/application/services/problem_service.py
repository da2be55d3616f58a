"""
Problem reporting and review.

Operators report problems they find on an item at any stage; a supervisor
then decides whether the item is repaired, scrapped or downgraded.
"""

from typing import Any

from ...core.observability import get_logger
from ...domain.fulfillment.services.bin_allocator import BinAllocator
from ...domain.fulfillment.value_objects.enums import (
    NotificationType,
    OrderItemStatus,
    ProblemCategory,
    ProblemStatus,
    RequestType,
    ResolutionAction,
    Severity,
    UserRole,
)
from ...domain.fulfillment.value_objects.item_status import ItemDetailStatus, ItemStatus
from ...domain.fulfillment.value_objects.metadata import RecoveryMetadata
from ...domain.fulfillment.workflow.actions import SendNotification
from ...domain.fulfillment.workflow.definition import FAILED
from ...domain.fulfillment.workflow.engine import WorkflowEngine
from ...domain.shared.exceptions import UnavailableError
from ...infrastructure.database.unit_of_work import SqlModelUnitOfWork
from ...models.fulfillment import InventoryItem, Problem, utcnow
from ..dtos import ItemRead, ProblemRead, ProblemReview, RequestRead
from .base import FulfillmentService, SideEffects, operation_boundary

logger = get_logger(__name__)


class ProblemService(FulfillmentService):
    def __init__(self, *args: Any, engine: WorkflowEngine | None = None, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.engine = engine or WorkflowEngine()

    @operation_boundary("report_problem")
    def report_problem(
        self,
        item_id: int,
        category: ProblemCategory,
        severity: Severity,
        description: str,
        discovered_during: str,
        operator_id: str,
        request_id: int | None = None,
    ) -> ProblemRead:
        """
        Record a problem and pull the item out of the flow.

        When ``request_id`` names an open request that may fail from its
        current step, that request is failed as well.
        """

        def operation(uow: SqlModelUnitOfWork, effects: SideEffects) -> ProblemRead:
            item = uow.items.require(item_id)
            if item.status1 != ItemStatus.PROBLEM:
                uow.items.transition(item, ItemStatus.PROBLEM, _commitment(item))

            problem = uow.problems.add(
                Problem(
                    item_id=item.id,
                    request_id=request_id,
                    category=ProblemCategory(category),
                    severity=Severity(severity),
                    description=description,
                    discovered_during=discovered_during,
                    reported_by=operator_id,
                )
            )

            if request_id is not None:
                self._fail_open_request(uow, request_id, problem, operator_id)

            effects.notify(
                SendNotification(
                    notification_type=NotificationType.PROBLEM_REPORTED,
                    message=f"{problem.severity.value} {problem.category.value.lower()} "
                    f"problem on item {item.id}: {description}",
                    user_role=UserRole.QC_SUPERVISOR,
                    details={"problem_id": problem.id, "item_id": item.id},
                )
            )
            effects.audit(
                "PROBLEM_REPORTED",
                operator_id,
                item_id=item.id,
                request_id=request_id,
                details={"problem_id": problem.id, "severity": problem.severity.value},
            )
            return ProblemRead.model_validate(problem)

        return self._run(operation)

    def _fail_open_request(
        self, uow: SqlModelUnitOfWork, request_id: int, problem: Problem, operator_id: str
    ) -> None:
        request = uow.requests.require(request_id)
        definition = self.engine.definition_for(request.request_type)
        if request.status.is_terminal or not definition.can_transition(
            request.current_step, FAILED
        ):
            return
        self.engine.fail(
            uow,
            request.id,
            f"Problem reported: {problem.description}",
            operator_id,
            {"problem_id": problem.id},
        )

    @operation_boundary("review_problem")
    def review_problem(
        self,
        problem_id: int,
        action: ResolutionAction,
        operator_id: str,
        notes: str | None = None,
    ) -> ProblemReview:
        """
        Decide what happens to a problem item.

        REPAIR opens a RECOVERY request and leaves the problem open until the
        repair completes; SCRAP and DOWNGRADE resolve it immediately.

        Raises:
            UnavailableError: If the problem is resolved or already in repair
        """
        action = ResolutionAction(action)

        def operation(uow: SqlModelUnitOfWork, effects: SideEffects) -> ProblemReview:
            problem = uow.problems.require(problem_id)
            if problem.status != ProblemStatus.REPORTED:
                raise UnavailableError(
                    f"Problem {problem.id} is already resolved", code="PROBLEM_RESOLVED"
                )
            if problem.recovery_request_id is not None:
                raise UnavailableError(
                    f"Problem {problem.id} is already being repaired",
                    code="PROBLEM_UNDER_REPAIR",
                )

            item = uow.items.require(problem.item_id)
            problem.resolution_action = action
            problem.resolution_notes = notes
            recovery = None

            if action == ResolutionAction.REPAIR:
                uow.items.transition(item, ItemStatus.PENDING_REPAIR, _commitment(item))
                recovery = self.engine.open_request(
                    uow,
                    RequestType.RECOVERY,
                    operator_id,
                    item_id=item.id,
                    order_id=_order_id_of(uow, item),
                    metadata=RecoveryMetadata(problem_id=problem.id, repair_notes=notes),
                    source_request_id=problem.request_id,
                )
                problem.recovery_request_id = recovery.id
            elif action == ResolutionAction.SCRAP:
                self._scrap(uow, item, operator_id)
                _resolve(problem, operator_id)
            else:
                uow.items.transition(item, ItemStatus.DOWNGRADED, _commitment(item))
                _resolve(problem, operator_id)

            uow.session.add(problem)
            uow.flush()
            effects.audit(
                "PROBLEM_REVIEWED",
                operator_id,
                item_id=item.id,
                request_id=recovery.id if recovery else None,
                details={"problem_id": problem.id, "action": action.value},
            )
            logger.info("problem_reviewed", problem_id=problem.id, action=action.value)
            return ProblemReview(
                problem=ProblemRead.model_validate(problem),
                item=ItemRead.model_validate(item),
                recovery_request=RequestRead.model_validate(recovery) if recovery else None,
            )

        return self._run(operation)

    def _scrap(self, uow: SqlModelUnitOfWork, item: InventoryItem, operator_id: str) -> None:
        BinAllocator(uow.bins, uow.bin_history).remove_item(item, operator_id)
        if item.order_item_id is not None:
            order_item = uow.order_items.require(item.order_item_id)
            order_item.status = OrderItemStatus.PENDING
            order_item.assigned_item_id = None
            uow.session.add(order_item)
        uow.items.transition(
            item, ItemStatus.SCRAPPED, ItemDetailStatus.UNCOMMITTED, order_item_id=None
        )


def _commitment(item: InventoryItem) -> ItemDetailStatus:
    if item.status2 in (ItemDetailStatus.COMMITTED, ItemDetailStatus.ASSIGNED):
        return item.status2
    return ItemDetailStatus.COMMITTED if item.order_item_id else ItemDetailStatus.UNCOMMITTED


def _order_id_of(uow: SqlModelUnitOfWork, item: InventoryItem) -> int | None:
    if item.order_item_id is None:
        return None
    return uow.order_items.require(item.order_item_id).order_id


def _resolve(problem: Problem, operator_id: str) -> None:
    problem.status = ProblemStatus.RESOLVED
    problem.resolved_by = operator_id
    problem.resolved_at = utcnow()
