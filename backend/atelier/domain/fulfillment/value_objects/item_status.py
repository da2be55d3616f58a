"""
Inventory item lifecycle.

An item carries two statuses: ``status1`` is the coarse lifecycle stage and
``status2`` the commitment or processing detail within that stage. Stage
changes follow ``ItemStatus.can_transition_to`` and every combination must
appear in ``ALLOWED_STATUS_PAIRS``.
"""

from enum import Enum

from ...shared.exceptions import InvalidTransitionError


class ItemStatus(str, Enum):
    """Coarse lifecycle stage (status1)."""

    PRODUCTION = "PRODUCTION"
    STOCK = "STOCK"
    AVAILABLE = "AVAILABLE"
    IN_USE = "IN_USE"
    WASH = "WASH"
    WASHING = "WASHING"
    QC = "QC"
    FINISHING = "FINISHING"
    PACKING = "PACKING"
    COMPLETED = "COMPLETED"
    PROBLEM = "PROBLEM"
    PENDING_REPAIR = "PENDING_REPAIR"
    DOWNGRADED = "DOWNGRADED"
    DEFECTIVE = "DEFECTIVE"
    SHIPPED = "SHIPPED"
    SCRAPPED = "SCRAPPED"

    @property
    def is_terminal(self) -> bool:
        return self in {ItemStatus.SHIPPED, ItemStatus.SCRAPPED}

    def can_transition_to(self, target_status: "ItemStatus") -> bool:
        """Check if the item may move from this stage to ``target_status``.

        Staying in the same stage is always allowed; only the detail status
        changes then.
        """
        if target_status == self:
            return not self.is_terminal
        return target_status in _STAGE_TRANSITIONS.get(self, set())


class ItemDetailStatus(str, Enum):
    """Commitment or processing detail (status2)."""

    UNCOMMITTED = "UNCOMMITTED"
    COMMITTED = "COMMITTED"
    ASSIGNED = "ASSIGNED"
    RAW = "RAW"
    CUTTING = "CUTTING"
    CUT = "CUT"
    IN_PROGRESS = "IN_PROGRESS"
    READY_FOR_PACKING = "READY_FOR_PACKING"
    PACKED = "PACKED"


_S = ItemStatus
_D = ItemDetailStatus

COMMITMENT_STATUSES = frozenset({_D.UNCOMMITTED, _D.COMMITTED, _D.ASSIGNED})

_STAGE_TRANSITIONS: dict[ItemStatus, set[ItemStatus]] = {
    _S.PRODUCTION: {_S.STOCK, _S.AVAILABLE, _S.WASH, _S.QC, _S.PROBLEM, _S.SCRAPPED},
    _S.STOCK: {_S.AVAILABLE, _S.WASH, _S.QC, _S.PROBLEM, _S.SCRAPPED},
    _S.AVAILABLE: {
        _S.STOCK,
        _S.IN_USE,
        _S.WASH,
        _S.QC,
        _S.FINISHING,
        _S.PACKING,
        _S.PROBLEM,
        _S.SCRAPPED,
    },
    _S.IN_USE: {_S.COMPLETED, _S.AVAILABLE, _S.PROBLEM},
    _S.WASH: {_S.WASHING, _S.PROBLEM},
    _S.WASHING: {_S.QC, _S.PROBLEM},
    _S.QC: {_S.FINISHING, _S.DEFECTIVE, _S.PROBLEM},
    _S.FINISHING: {_S.AVAILABLE, _S.DEFECTIVE, _S.PROBLEM},
    _S.PACKING: {_S.SHIPPED, _S.PROBLEM},
    _S.COMPLETED: {_S.SCRAPPED},
    _S.DEFECTIVE: {
        _S.WASH,
        _S.PENDING_REPAIR,
        _S.DOWNGRADED,
        _S.SCRAPPED,
        _S.PROBLEM,
    },
    _S.PROBLEM: {_S.PENDING_REPAIR, _S.DOWNGRADED, _S.SCRAPPED},
    _S.PENDING_REPAIR: {_S.QC, _S.PROBLEM, _S.SCRAPPED},
    _S.DOWNGRADED: {_S.STOCK, _S.AVAILABLE, _S.SCRAPPED},
    _S.SHIPPED: set(),  # Terminal state
    _S.SCRAPPED: set(),  # Terminal state
}

ALLOWED_STATUS_PAIRS: dict[ItemStatus, frozenset[ItemDetailStatus]] = {
    _S.PRODUCTION: COMMITMENT_STATUSES,
    _S.STOCK: COMMITMENT_STATUSES,
    _S.AVAILABLE: COMMITMENT_STATUSES | {_D.RAW, _D.READY_FOR_PACKING},
    _S.IN_USE: frozenset({_D.CUTTING}),
    _S.COMPLETED: frozenset({_D.CUT}),
    _S.WASH: COMMITMENT_STATUSES,
    _S.WASHING: frozenset({_D.IN_PROGRESS}),
    _S.QC: COMMITMENT_STATUSES | {_D.IN_PROGRESS},
    _S.FINISHING: COMMITMENT_STATUSES | {_D.IN_PROGRESS},
    _S.PACKING: frozenset({_D.PACKED}),
    _S.PROBLEM: COMMITMENT_STATUSES,
    _S.PENDING_REPAIR: COMMITMENT_STATUSES,
    _S.DOWNGRADED: COMMITMENT_STATUSES,
    _S.DEFECTIVE: COMMITMENT_STATUSES,
    _S.SHIPPED: frozenset({_D.PACKED}),
    _S.SCRAPPED: frozenset({_D.UNCOMMITTED}),
}

# Stages from which an item can be matched to an order.
MATCHABLE_STATUSES = frozenset({_S.PRODUCTION, _S.STOCK, _S.AVAILABLE})


def is_valid_pair(status1: ItemStatus, status2: ItemDetailStatus) -> bool:
    return status2 in ALLOWED_STATUS_PAIRS.get(status1, frozenset())


def validate_item_transition(
    current: tuple[ItemStatus, ItemDetailStatus],
    target: tuple[ItemStatus, ItemDetailStatus],
) -> None:
    """Raise ``InvalidTransitionError`` unless ``current -> target`` is legal."""
    current1, current2 = ItemStatus(current[0]), ItemDetailStatus(current[1])
    target1, target2 = ItemStatus(target[0]), ItemDetailStatus(target[1])

    if not current1.can_transition_to(target1):
        raise InvalidTransitionError(
            "item",
            f"{current1.value}/{current2.value}",
            f"{target1.value}/{target2.value}",
        )
    if not is_valid_pair(target1, target2):
        raise InvalidTransitionError(
            "item",
            f"{current1.value}/{current2.value}",
            f"{target1.value}/{target2.value}",
            code="INVALID_STATUS_PAIR",
        )


def commitment_of(order_item_id: int | None) -> ItemDetailStatus:
    """Commitment detail implied by an item's order assignment."""
    return _D.COMMITTED if order_item_id is not None else _D.UNCOMMITTED
