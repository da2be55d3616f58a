"""
Request Workflow Engine

Drives every request type from its ``WorkflowDefinition``. Each operation
runs against the caller's unit of work: it checks the request may take
the step, validates the payload, lets the step mutate the domain, then
writes the request's new state with a versioned update and appends one
timeline entry. Any error leaves the transaction to roll back whole.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ....core.config import settings
from ....core.observability import get_logger
from ...shared.exceptions import (
    InvalidRequestError,
    InvalidTransitionError,
    ValidationError,
)
from ..value_objects.enums import RequestStatus, RequestType
from ..value_objects.metadata import (
    FailureDetails,
    dump_metadata,
    empty_metadata,
    load_metadata,
)
from .context import StepContext
from .definition import FAILED, StepOutcome, WorkflowDefinition, validate_transition

if TYPE_CHECKING:
    from ....infrastructure.database.unit_of_work import SqlModelUnitOfWork
    from ....models.fulfillment import Request, RequestTimeline

logger = get_logger(__name__)

CREATED_ENTRY = "CREATED"
RETRY_ENTRY = "RETRY"


@dataclass
class StepResult:
    request: "Request"
    entry: "RequestTimeline"
    actions: list[Any] = field(default_factory=list)


def parse_payload(model: type[BaseModel], payload: Any) -> BaseModel:
    """Validate a raw payload into ``model``, raising a domain ValidationError."""
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload or {})
    except PydanticValidationError as e:
        errors = e.errors(include_url=False)
        first = errors[0]
        field_name = ".".join(str(part) for part in first["loc"]) or "payload"
        raise ValidationError(
            field_name,
            first.get("input"),
            first["msg"],
            code="INVALID_PAYLOAD",
            details={
                "errors": [
                    {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                    for err in errors
                ]
            },
        ) from None


class WorkflowEngine:
    """Generic state machine runner for all request types."""

    def __init__(self, definitions: Mapping[RequestType, WorkflowDefinition] | None = None):
        if definitions is None:
            from .registry import WORKFLOWS

            definitions = WORKFLOWS
        self.definitions = definitions

    def definition_for(self, request_type: RequestType) -> WorkflowDefinition:
        try:
            return self.definitions[RequestType(request_type)]
        except KeyError:
            raise InvalidRequestError(
                f"No workflow registered for {request_type}",
                code="UNSUPPORTED_REQUEST_TYPE",
            ) from None

    def open_request(
        self,
        uow: "SqlModelUnitOfWork",
        request_type: RequestType,
        operator_id: str,
        item_id: int | None = None,
        order_id: int | None = None,
        batch_id: int | None = None,
        metadata: BaseModel | dict[str, Any] | None = None,
        annotations: dict[str, str] | None = None,
        source_request_id: int | None = None,
    ) -> "Request":
        """
        Create a request at its workflow's initial state.

        Raises:
            InvalidRequestError: If a reference the type requires is missing
            NotFoundError: If a referenced item, order or batch does not exist
            ValidationError: If metadata does not fit the type's variant
        """
        from ....models.fulfillment import Request

        definition = self.definition_for(request_type)
        references = {"item": item_id, "order": order_id, "batch": batch_id}
        for name in sorted(definition.requires):
            if references[name] is None:
                raise InvalidRequestError(
                    f"{definition.request_type.value} requests require {name}_id",
                    code=f"MISSING_{name.upper()}",
                )
        if item_id is not None:
            uow.items.require(item_id)
        if order_id is not None:
            uow.orders.require(order_id)
        if batch_id is not None:
            uow.batches.require(batch_id)

        typed = self._coerce_metadata(definition.request_type, metadata)
        if source_request_id is not None and typed.source_request_id is None:
            typed.source_request_id = source_request_id

        request = uow.requests.add(
            Request(
                request_type=definition.request_type,
                status=RequestStatus.PENDING,
                current_step=definition.initial_state,
                item_id=item_id,
                order_id=order_id,
                batch_id=batch_id,
                source_request_id=source_request_id,
                meta=dump_metadata(typed),
                annotations=dict(annotations or {}),
                created_by=operator_id,
            )
        )
        uow.timeline.append(
            request.id,
            CREATED_ENTRY,
            RequestStatus.PENDING,
            operator_id,
            {"state": definition.initial_state, "source_request_id": source_request_id},
        )
        logger.info(
            "request_opened",
            request_id=request.id,
            request_type=definition.request_type.value,
            source_request_id=source_request_id,
        )
        return request

    def advance(
        self,
        uow: "SqlModelUnitOfWork",
        request_id: int,
        step_name: str,
        payload: Any,
        operator_id: str,
        request_type: RequestType | None = None,
    ) -> StepResult:
        """
        Run one step of a request.

        Args:
            uow: Active unit of work
            request_id: Request to advance
            step_name: Operation to perform
            payload: Step-specific input, validated against the step's model
            operator_id: Who performs the step
            request_type: When given, the request must be of this type

        Raises:
            NotFoundError: If the request does not exist
            InvalidRequestError: If the request type or step name is wrong
            InvalidTransitionError: If the request is terminal or the step
                is not allowed from its current state
            DomainError: Whatever the step's own checks raise
        """
        request = uow.requests.require(request_id)
        definition = self.definition_for(request.request_type)

        if request_type is not None and request.request_type != RequestType(request_type):
            raise InvalidRequestError(
                f"Request {request_id} is a {request.request_type.value} request",
                code="WRONG_REQUEST_TYPE",
                details={"expected": RequestType(request_type).value},
            )

        current = request.current_step
        self._ensure_open(definition, request, step_name)
        step = definition.get_step(step_name)
        if not any(definition.can_transition(current, t) for t in step.targets):
            raise InvalidTransitionError(
                f"{definition.request_type.value.lower()} request",
                current,
                step_name,
                details={"allowed": sorted(definition.allowed_from(current))},
            )

        parsed = parse_payload(step.payload_model, payload)
        ctx = StepContext(
            uow=uow,
            request=request,
            definition=definition,
            metadata=load_metadata(request.request_type, request.meta),
            operator_id=operator_id,
        )
        if step.validate is not None:
            step.validate(ctx, parsed)
        outcome = step.apply(ctx, parsed) or StepOutcome()

        target = outcome.state or step.targets[0]
        if target not in step.targets:
            raise RuntimeError(f"Step {step.name} produced undeclared outcome {target}")
        validate_transition(definition, current, target)
        resting = definition.settle(target)

        entry = self._commit_state(
            uow,
            definition,
            request,
            resting,
            ctx.metadata,
            operator_id,
            step_name,
            {"from": current, "to": resting, **outcome.snapshot},
        )
        logger.info(
            "request_step_completed",
            request_id=request.id,
            request_type=request.request_type.value,
            step=step_name,
            state=resting,
            status=request.status.value,
        )
        return StepResult(request=request, entry=entry, actions=list(outcome.actions))

    def fail(
        self,
        uow: "SqlModelUnitOfWork",
        request_id: int,
        reason: str,
        operator_id: str,
        details: dict[str, Any] | None = None,
    ) -> StepResult:
        """Mark a request FAILED where its current state allows it."""
        request = uow.requests.require(request_id)
        definition = self.definition_for(request.request_type)
        current = request.current_step
        self._ensure_open(definition, request, FAILED)
        validate_transition(definition, current, FAILED)

        metadata = load_metadata(request.request_type, request.meta)
        metadata.failure = FailureDetails(
            reason=reason, failed_step=current, details=details or {}
        )
        entry = self._commit_state(
            uow,
            definition,
            request,
            FAILED,
            metadata,
            operator_id,
            FAILED,
            {"from": current, "to": FAILED, "reason": reason},
        )
        logger.info("request_failed", request_id=request.id, reason=reason)
        return StepResult(request=request, entry=entry)

    def retry(self, uow: "SqlModelUnitOfWork", request_id: int, operator_id: str) -> StepResult:
        """
        Send a FAILED request of a retryable type back to its initial state.

        Raises:
            InvalidTransitionError: If the request is not FAILED, its type is
                not retryable, or it has used up its retries
        """
        request = uow.requests.require(request_id)
        definition = self.definition_for(request.request_type)
        current = request.current_step

        if request.status != RequestStatus.FAILED:
            raise InvalidTransitionError(
                "request",
                request.status.value,
                RequestStatus.PENDING.value,
                code="RETRY_NOT_FAILED",
            )
        if not definition.retryable:
            raise InvalidTransitionError(
                "request", current, definition.initial_state, code="RETRY_NOT_PERMITTED"
            )
        if request.retry_count >= settings.REQUEST_MAX_RETRIES:
            raise InvalidTransitionError(
                "request",
                current,
                definition.initial_state,
                code="RETRY_LIMIT_REACHED",
                details={"retry_count": request.retry_count},
            )
        validate_transition(definition, current, definition.initial_state)

        metadata = load_metadata(request.request_type, request.meta)
        previous_failure = metadata.failure
        metadata.failure = None
        entry = self._commit_state(
            uow,
            definition,
            request,
            definition.initial_state,
            metadata,
            operator_id,
            RETRY_ENTRY,
            {
                "from": current,
                "to": definition.initial_state,
                "attempt": request.retry_count + 1,
                "previous_failure": previous_failure.model_dump(mode="json")
                if previous_failure
                else None,
            },
            retry_count=request.retry_count + 1,
        )
        return StepResult(request=request, entry=entry)

    def _ensure_open(self, definition: WorkflowDefinition, request: "Request", target: str) -> None:
        if request.status.is_terminal or definition.is_terminal(request.current_step):
            raise InvalidTransitionError(
                f"{definition.request_type.value.lower()} request",
                request.current_step,
                target,
                code="REQUEST_TERMINAL",
                details={"status": request.status.value},
            )

    def _commit_state(
        self,
        uow: "SqlModelUnitOfWork",
        definition: WorkflowDefinition,
        request: "Request",
        state: str,
        metadata: Any,
        operator_id: str,
        entry_step: str,
        snapshot: dict[str, Any],
        **extra: Any,
    ) -> "RequestTimeline":
        status = definition.status_for(state)
        if status != request.status and not request.status.can_transition_to(status):
            raise InvalidTransitionError("request", request.status.value, status.value)

        uow.requests.update_versioned(
            request,
            current_step=state,
            status=status,
            meta=dump_metadata(metadata),
            **extra,
        )
        return uow.timeline.append(request.id, entry_step, status, operator_id, snapshot)

    def _coerce_metadata(self, request_type: RequestType, metadata: Any) -> Any:
        if metadata is None:
            return empty_metadata(request_type)
        if isinstance(metadata, BaseModel):
            metadata = metadata.model_dump(mode="json", exclude_none=True)
        try:
            return load_metadata(request_type, metadata)
        except PydanticValidationError as e:
            first = e.errors(include_url=False)[0]
            raise ValidationError(
                "metadata",
                None,
                f"{'.'.join(str(p) for p in first['loc'])}: {first['msg']}",
                code="INVALID_METADATA",
            ) from None
