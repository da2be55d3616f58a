"""
Request Orchestrator

Application entry points for request workflows. Each call is one retried
transaction: the engine advances the request, the orchestrator opens any
requests the step asked for in that same transaction, and notifications
and audit events go out after commit.
"""

from typing import Any

from pydantic import BaseModel

from ...core.observability import get_logger
from ...core.unit_of_work import transactional
from ...domain.fulfillment.value_objects.enums import NotificationType, RequestType, UserRole
from ...domain.fulfillment.value_objects.metadata import LaundryPickup
from ...domain.fulfillment.workflow.actions import SendNotification, notifications, spawns
from ...domain.fulfillment.workflow.engine import StepResult, WorkflowEngine, parse_payload
from ...domain.fulfillment.workflow.handlers import wash
from ...infrastructure.database.unit_of_work import SqlModelUnitOfWork
from ..dtos import (
    BinRead,
    LaundryPickupRead,
    RequestRead,
    StepResponse,
    TimelineEntryRead,
)
from .base import FulfillmentService, SideEffects, operation_boundary

logger = get_logger(__name__)


class RequestOrchestrator(FulfillmentService):
    """Creates, advances, fails and retries requests of every type."""

    def __init__(self, *args: Any, engine: WorkflowEngine | None = None, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.engine = engine or WorkflowEngine()

    def dispatch(
        self,
        uow: SqlModelUnitOfWork,
        effects: SideEffects,
        result: StepResult,
        operator_id: str,
    ) -> list[RequestRead]:
        """Carry out a step's next actions; returns the requests it opened."""
        spawned = []
        for action in spawns(result.actions):
            source_id = getattr(action.metadata, "source_request_id", None) or result.request.id
            request = self.engine.open_request(
                uow,
                action.request_type,
                operator_id,
                item_id=action.item_id,
                order_id=action.order_id,
                batch_id=action.batch_id,
                metadata=action.metadata,
                source_request_id=source_id,
            )
            effects.audit(
                "REQUEST_SPAWNED",
                operator_id,
                item_id=request.item_id,
                order_id=request.order_id,
                request_id=request.id,
                details={
                    "request_type": request.request_type.value,
                    "source_request_id": source_id,
                    "reason": action.reason,
                },
            )
            spawned.append(RequestRead.model_validate(request))
        for notification in notifications(result.actions):
            effects.notify(notification)
        return spawned

    def _respond(
        self,
        uow: SqlModelUnitOfWork,
        effects: SideEffects,
        result: StepResult,
        operator_id: str,
        event_type: str,
    ) -> StepResponse:
        spawned = self.dispatch(uow, effects, result, operator_id)
        request = result.request
        effects.audit(
            event_type,
            operator_id,
            item_id=request.item_id,
            order_id=request.order_id,
            request_id=request.id,
            details={
                "step": result.entry.step,
                "state": request.current_step,
                "status": request.status.value,
            },
        )
        return StepResponse(
            request=RequestRead.model_validate(request),
            entry=TimelineEntryRead.model_validate(result.entry),
            spawned_requests=spawned,
        )

    @operation_boundary("create_request")
    def create_request(
        self,
        request_type: RequestType,
        operator_id: str,
        item_id: int | None = None,
        order_id: int | None = None,
        batch_id: int | None = None,
        metadata: BaseModel | dict[str, Any] | None = None,
        annotations: dict[str, str] | None = None,
    ) -> RequestRead:
        def operation(uow: SqlModelUnitOfWork, effects: SideEffects) -> RequestRead:
            request = self.engine.open_request(
                uow,
                request_type,
                operator_id,
                item_id=item_id,
                order_id=order_id,
                batch_id=batch_id,
                metadata=metadata,
                annotations=annotations,
            )
            effects.audit(
                "REQUEST_CREATED",
                operator_id,
                item_id=item_id,
                order_id=order_id,
                request_id=request.id,
                details={"request_type": request.request_type.value},
            )
            return RequestRead.model_validate(request)

        return self._run(operation)

    @operation_boundary("advance_request")
    def advance(
        self,
        request_id: int,
        step: str,
        payload: BaseModel | dict[str, Any] | None,
        operator_id: str,
        request_type: RequestType | None = None,
    ) -> StepResponse:
        """
        Perform ``step`` on a request.

        Args:
            request_id: Request to advance
            step: Operation name from the request type's workflow
            payload: Step input
            operator_id: Who performs it
            request_type: When given, the request must be of this type
        """

        def operation(uow: SqlModelUnitOfWork, effects: SideEffects) -> StepResponse:
            result = self.engine.advance(
                uow, request_id, step, payload, operator_id, request_type=request_type
            )
            return self._respond(uow, effects, result, operator_id, "REQUEST_STEP")

        return self._run(operation)

    @operation_boundary("fail_request")
    def fail_request(
        self,
        request_id: int,
        reason: str,
        operator_id: str,
        details: dict[str, Any] | None = None,
    ) -> StepResponse:
        def operation(uow: SqlModelUnitOfWork, effects: SideEffects) -> StepResponse:
            result = self.engine.fail(uow, request_id, reason, operator_id, details)
            return self._respond(uow, effects, result, operator_id, "REQUEST_FAILED")

        return self._run(operation)

    @operation_boundary("retry_request")
    def retry_request(self, request_id: int, operator_id: str) -> StepResponse:
        def operation(uow: SqlModelUnitOfWork, effects: SideEffects) -> StepResponse:
            result = self.engine.retry(uow, request_id, operator_id)
            return self._respond(uow, effects, result, operator_id, "REQUEST_RETRIED")

        return self._run(operation)

    @operation_boundary("get_request")
    @transactional()
    def get_request(self, uow: SqlModelUnitOfWork, request_id: int) -> RequestRead:
        return RequestRead.model_validate(uow.requests.require(request_id))

    @operation_boundary("get_timeline")
    @transactional()
    def get_timeline(self, uow: SqlModelUnitOfWork, request_id: int) -> list[TimelineEntryRead]:
        uow.requests.require(request_id)
        return [
            TimelineEntryRead.model_validate(entry)
            for entry in uow.timeline.list_for_request(request_id)
        ]

    @operation_boundary("process_bin_for_laundry")
    def process_bin_for_laundry(
        self,
        bin_code: str,
        pickup: LaundryPickup | dict[str, Any],
        operator_id: str,
    ) -> LaundryPickupRead:
        """Send a whole wash bin to the laundry in one transaction."""
        pickup = parse_payload(LaundryPickup, pickup)

        def operation(uow: SqlModelUnitOfWork, effects: SideEffects) -> LaundryPickupRead:
            result = wash.process_bin_for_laundry(self.engine, uow, bin_code, pickup, operator_id)
            advanced = []
            for step_result in result.step_results:
                self._respond(uow, effects, step_result, operator_id, "REQUEST_STEP")
                advanced.append(RequestRead.model_validate(step_result.request))

            effects.audit(
                "LAUNDRY_PICKUP",
                operator_id,
                details={**result.to_dict(), "truck_id": pickup.truck_id},
            )
            effects.notify(
                SendNotification(
                    notification_type=NotificationType.LAUNDRY_PICKUP,
                    message=f"Bin {result.bin_code} picked up by truck {pickup.truck_id}",
                    user_role=UserRole.WAREHOUSE_MANAGER,
                    details={
                        **result.to_dict(),
                        "expected_return_date": pickup.expected_return_date.isoformat(),
                    },
                )
            )
            bin_ = uow.bins.require(result.bin_id)
            return LaundryPickupRead(
                bin=BinRead.model_validate(bin_),
                items_sent=result.items_sent,
                requests_advanced=advanced,
            )

        return self._run(operation)
