"""
Declarative workflow definitions.

A request type is described by data: its operations (steps), the states
each operation may lead to, and a transition table between states. One
generic engine drives every type from these tables, so transition
legality can be checked mechanically with ``WorkflowDefinition.check``.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from ...shared.exceptions import InvalidRequestError, InvalidTransitionError
from ..value_objects.enums import RequestStatus, RequestType

if TYPE_CHECKING:
    from .context import StepContext

CREATED = "CREATED"
FAILED = "FAILED"


class EmptyPayload(BaseModel):
    """Payload for steps that take no input."""


@dataclass
class StepOutcome:
    """What a step's apply function decided.

    ``state`` selects among the step's possible outcomes; it may be left
    unset for single-outcome steps. ``actions`` are executed by the caller
    of the engine in the same transaction (spawns) or after commit
    (notifications).
    """

    state: str | None = None
    snapshot: dict[str, Any] = field(default_factory=dict)
    actions: list[Any] = field(default_factory=list)


StepApply = Callable[["StepContext", Any], StepOutcome | None]
StepValidator = Callable[["StepContext", Any], None]


@dataclass(frozen=True)
class Step:
    name: str
    apply: StepApply
    payload_model: type[BaseModel] = EmptyPayload
    outcomes: tuple[str, ...] = ()
    validate: StepValidator | None = None

    @property
    def targets(self) -> tuple[str, ...]:
        return self.outcomes or (self.name,)


@dataclass(frozen=True)
class WorkflowDefinition:
    request_type: RequestType
    steps: tuple[Step, ...]
    transitions: Mapping[str, frozenset[str]]
    completion_states: frozenset[str]
    initial_state: str = CREATED
    failure_states: frozenset[str] = frozenset({FAILED})
    auto_transitions: Mapping[str, str] = field(default_factory=dict)
    retryable: bool = False
    requires: frozenset[str] = frozenset({"item"})

    @property
    def states(self) -> frozenset[str]:
        return frozenset(self.transitions)

    def get_step(self, name: str) -> Step:
        for step in self.steps:
            if step.name == name:
                return step
        raise InvalidRequestError(
            f"{self.request_type.value} requests have no step {name}",
            code="UNKNOWN_STEP",
            details={"step": name, "request_type": self.request_type.value},
        )

    def allowed_from(self, state: str) -> frozenset[str]:
        return self.transitions.get(state, frozenset())

    def can_transition(self, current: str, target: str) -> bool:
        return target in self.allowed_from(current)

    def is_terminal(self, state: str) -> bool:
        return state in self.completion_states or state in self.failure_states

    def settle(self, state: str) -> str:
        """Follow automatic transitions from ``state`` to a resting state."""
        seen = {state}
        while state in self.auto_transitions:
            state = self.auto_transitions[state]
            if state in seen:
                raise RuntimeError(f"Automatic transition loop at {state}")
            seen.add(state)
        return state

    def status_for(self, state: str) -> RequestStatus:
        if state in self.completion_states:
            return RequestStatus.COMPLETED
        if state in self.failure_states:
            return RequestStatus.FAILED
        if state == self.initial_state:
            return RequestStatus.PENDING
        return RequestStatus.IN_PROGRESS

    def check(self) -> None:
        """
        Verify the tables are internally consistent.

        Raises:
            ValueError: Describing the first inconsistency found
        """
        states = self.states
        if self.initial_state not in states:
            raise ValueError(f"Initial state {self.initial_state} has no transitions entry")

        for state, targets in self.transitions.items():
            unknown = targets - states
            if unknown:
                raise ValueError(f"{state} leads to unknown states {sorted(unknown)}")

        for state in self.completion_states | self.failure_states:
            outgoing = self.allowed_from(state)
            if state in self.completion_states and outgoing:
                raise ValueError(f"Completion state {state} must not have transitions")
            if state in self.failure_states and outgoing - {self.initial_state}:
                raise ValueError(f"Failure state {state} may only lead back to the start")
            if outgoing and not self.retryable:
                raise ValueError(f"{state} allows a retry but the workflow is not retryable")

        for source, target in self.auto_transitions.items():
            if not self.can_transition(source, target):
                raise ValueError(f"Automatic transition {source} -> {target} is not allowed")

        reachable = {t for targets in self.transitions.values() for t in targets}
        for step in self.steps:
            for target in step.targets:
                if target not in states:
                    raise ValueError(f"Step {step.name} leads to unknown state {target}")
                if target not in reachable:
                    raise ValueError(f"Step {step.name} outcome {target} is unreachable")

        if not any(s in reachable for s in self.completion_states):
            raise ValueError("No completion state is reachable")


def validate_transition(definition: WorkflowDefinition, current: str, target: str) -> None:
    """Raise ``InvalidTransitionError`` unless ``current -> target`` is in the table."""
    if not definition.can_transition(current, target):
        raise InvalidTransitionError(
            f"{definition.request_type.value.lower()} request",
            current,
            target,
            details={"allowed": sorted(definition.allowed_from(current))},
        )
