"""Per-step context handed to workflow step functions."""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ...shared.exceptions import InvalidRequestError
from ..services.bin_allocator import BinAllocator
from ..value_objects.item_status import ItemDetailStatus, ItemStatus, commitment_of

if TYPE_CHECKING:
    from ....infrastructure.database.unit_of_work import SqlModelUnitOfWork
    from ....models.fulfillment import Batch, InventoryItem, Order, Request
    from .definition import WorkflowDefinition


@dataclass
class StepContext:
    """
    Everything a step needs: the active unit of work, the request being
    advanced, a working copy of its typed metadata and the operator.

    Step functions mutate ``metadata`` in place; the engine persists it
    with the request's versioned update.
    """

    uow: "SqlModelUnitOfWork"
    request: "Request"
    definition: "WorkflowDefinition"
    metadata: Any
    operator_id: str

    @property
    def allocator(self) -> BinAllocator:
        return BinAllocator(self.uow.bins, self.uow.bin_history)

    def require_item(self) -> "InventoryItem":
        if self.request.item_id is None:
            raise InvalidRequestError(
                f"Request {self.request.id} is not linked to an item",
                code="MISSING_ITEM",
            )
        return self.uow.items.require(self.request.item_id)

    def require_order(self) -> "Order":
        if self.request.order_id is None:
            raise InvalidRequestError(
                f"Request {self.request.id} is not linked to an order",
                code="MISSING_ORDER",
            )
        return self.uow.orders.require(self.request.order_id)

    def require_batch(self) -> "Batch":
        if self.request.batch_id is None:
            raise InvalidRequestError(
                f"Request {self.request.id} is not linked to a batch",
                code="MISSING_BATCH",
            )
        return self.uow.batches.require(self.request.batch_id)

    def transition_item(
        self,
        item: "InventoryItem",
        status1: ItemStatus,
        status2: ItemDetailStatus | None = None,
        **changes: Any,
    ) -> "InventoryItem":
        """Transition ``item``; ``status2`` defaults to its commitment."""
        if status2 is None:
            status2 = commitment_of(item.order_item_id)
        return self.uow.items.transition(item, status1, status2, **changes)

    def order_specifications(self) -> dict[str, Any]:
        if self.request.order_id is None:
            return {}
        order = self.uow.orders.get(self.request.order_id)
        return dict(order.specifications) if order else {}
