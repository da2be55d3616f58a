"""
Bin Allocator

Tracks occupancy of physical bins. Every change to ``current_count`` is a
conditional update re-checked by the database inside the caller's
transaction, so concurrent allocations cannot overfill a bin.
"""

from dataclasses import dataclass
from typing import Any

from ....core.observability import get_logger
from ....domain.shared.exceptions import (
    ConcurrencyConflictError,
    ResourceExhaustedError,
    UnavailableError,
    ValidationError,
)
from ..value_objects.enums import BinHistoryAction, BinType

logger = get_logger(__name__)


@dataclass(frozen=True)
class BinAllocation:
    bin: Any
    requested: int
    reserved: int

    @property
    def is_partial(self) -> bool:
        return self.reserved < self.requested

    def to_dict(self) -> dict[str, Any]:
        return {
            "bin_id": self.bin.id,
            "bin_code": self.bin.code,
            "requested": self.requested,
            "reserved": self.reserved,
        }


def find_optimal_bin(bins: list[Any], quantity: int) -> Any | None:
    """
    Pick a bin for ``quantity`` units.

    Prefers the fullest bin that can still take the whole quantity, to keep
    bins consolidated. When no bin fits everything, falls back to the bin
    with the most free space.
    """
    open_bins = [b for b in bins if b.capacity - b.current_count >= 1]
    if not open_bins:
        return None

    fitting = [b for b in open_bins if b.capacity - b.current_count >= quantity]
    if fitting:
        return min(fitting, key=lambda b: (-b.current_count, b.id))
    return min(open_bins, key=lambda b: (-(b.capacity - b.current_count), b.id))


class BinAllocator:
    """Assigns and reserves bin capacity atomically."""

    def __init__(self, bins, history):
        self.bins = bins
        self.history = history

    def allocate(
        self,
        sku_affinity: str | None,
        quantity: int = 1,
        bin_type: BinType = BinType.STORAGE,
        actor_id: str | None = None,
    ) -> BinAllocation:
        """
        Reserve capacity for ``quantity`` units of ``sku_affinity``.

        Returns:
            The chosen bin and how much of the quantity it reserved

        Raises:
            ValidationError: If quantity is not positive
            ResourceExhaustedError: If no active bin has any room
            ConcurrencyConflictError: If the chosen bin filled up meanwhile
        """
        if quantity < 1:
            raise ValidationError("quantity", quantity, "Quantity must be at least 1")

        candidates = self.bins.find_with_room(sku_affinity, bin_type)
        chosen = find_optimal_bin(candidates, quantity)
        if chosen is None:
            raise ResourceExhaustedError(
                f"No {bin_type.value} bin has room for {sku_affinity}",
                code="NO_BIN_AVAILABLE",
                details={"sku": sku_affinity, "quantity": quantity},
            )

        reserved = min(quantity, chosen.capacity - chosen.current_count)
        if not self.bins.try_increment(chosen, reserved):
            raise ConcurrencyConflictError("bin", chosen.id)

        self.history.record(
            chosen.id,
            BinHistoryAction.RESERVED,
            quantity=reserved,
            actor_id=actor_id,
            details={"sku": sku_affinity, "requested": quantity},
        )
        logger.info(
            "bin_allocated",
            bin_id=chosen.id,
            sku=sku_affinity,
            requested=quantity,
            reserved=reserved,
        )
        return BinAllocation(bin=chosen, requested=quantity, reserved=reserved)

    def release(self, bin_: Any, quantity: int = 1, actor_id: str | None = None) -> Any:
        """Give back previously reserved capacity."""
        if quantity < 1:
            raise ValidationError("quantity", quantity, "Quantity must be at least 1")
        if not self.bins.try_decrement(bin_, quantity):
            raise ValidationError(
                "quantity",
                quantity,
                f"Bin {bin_.code} holds only {bin_.current_count}",
                code="INVALID_RELEASE",
            )
        self.history.record(
            bin_.id, BinHistoryAction.RELEASED, quantity=quantity, actor_id=actor_id
        )
        return bin_

    def assign_item(
        self,
        item: Any,
        bin_: Any,
        actor_id: str | None = None,
        request_id: int | None = None,
    ) -> Any:
        """
        Place ``item`` in ``bin_``, taking one slot.

        Raises:
            UnavailableError: If the bin is inactive
            ResourceExhaustedError: If the bin is full
        """
        if not bin_.is_active:
            raise UnavailableError(f"Bin {bin_.code} is not active", code="BIN_INACTIVE")
        if item.bin_id == bin_.id:
            return bin_

        if not self.bins.try_increment(bin_, 1):
            raise ResourceExhaustedError(
                f"Bin {bin_.code} is full",
                details={
                    "bin_id": bin_.id,
                    "capacity": bin_.capacity,
                    "current_count": bin_.current_count,
                },
            )

        if item.bin_id is not None:
            self._take_out(item, actor_id, request_id)

        item.bin_id = bin_.id
        self.bins.session.add(item)
        self.history.record(
            bin_.id,
            BinHistoryAction.ITEM_ADDED,
            item_id=item.id,
            request_id=request_id,
            actor_id=actor_id,
        )
        return bin_

    def remove_item(
        self, item: Any, actor_id: str | None = None, request_id: int | None = None
    ) -> None:
        if item.bin_id is None:
            return
        self._take_out(item, actor_id, request_id)
        item.bin_id = None
        self.bins.session.add(item)

    def _take_out(self, item: Any, actor_id: str | None, request_id: int | None) -> None:
        previous = self.bins.require(item.bin_id)
        if not self.bins.try_decrement(previous, 1):
            raise ConcurrencyConflictError("bin", previous.id)
        self.history.record(
            previous.id,
            BinHistoryAction.ITEM_REMOVED,
            item_id=item.id,
            request_id=request_id,
            actor_id=actor_id,
        )

    def reset(
        self,
        bin_: Any,
        action: BinHistoryAction,
        actor_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> int:
        """Reset occupancy to zero; returns how many units were removed."""
        removed = bin_.current_count
        self.bins.reset_count(bin_)
        self.history.record(
            bin_.id, action, quantity=removed, actor_id=actor_id, details=details
        )
        return removed
