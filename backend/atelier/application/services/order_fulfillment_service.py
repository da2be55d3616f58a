"""
Order Fulfillment Coordinator

Turns a NEW order into committed inventory: every order item is matched,
committed and binned, the order moves to PROCESSING with its shipment
details, and each item gets its first-stage request. Everything happens in
one transaction, so a single unmatched SKU leaves no trace.
"""

from datetime import timedelta
from typing import Any
from uuid import uuid4

from ...core.config import settings
from ...core.observability import get_logger
from ...core.unit_of_work import transactional
from ...domain.fulfillment.services.bin_allocator import BinAllocator
from ...domain.fulfillment.services.inventory_matcher import InventoryMatcher
from ...domain.fulfillment.services.sku_scorer import SKUCompatibilityScorer
from ...domain.fulfillment.value_objects.enums import (
    BinType,
    NotificationType,
    OrderItemStatus,
    OrderStatus,
    RequestType,
    UserRole,
)
from ...domain.fulfillment.value_objects.item_status import ItemDetailStatus, ItemStatus
from ...domain.fulfillment.value_objects.metadata import QCMetadata, WashMetadata
from ...domain.fulfillment.value_objects.sku import SKUCode
from ...domain.fulfillment.workflow.actions import SendNotification
from ...domain.fulfillment.workflow.engine import WorkflowEngine
from ...domain.shared.exceptions import (
    InvalidRequestError,
    SkuNotFoundError,
    UnavailableError,
)
from ...infrastructure.database.unit_of_work import SqlModelUnitOfWork
from ...models.fulfillment import Order, OrderCreate, OrderItem, OrderItemCreate, utcnow
from ..dtos import (
    ItemRead,
    OrderDetail,
    OrderItemMatch,
    OrderItemRead,
    OrderProcessingResult,
    OrderRead,
    RequestRead,
)
from .base import FulfillmentService, SideEffects, operation_boundary

logger = get_logger(__name__)


def shipment_details(order_number: str) -> dict[str, Any]:
    return {
        "courier": settings.DEFAULT_COURIER,
        "tracking_reference": f"{order_number}-{uuid4().hex[:8].upper()}",
        "estimated_delivery": (
            utcnow().date() + timedelta(days=settings.DELIVERY_ESTIMATE_DAYS)
        ).isoformat(),
    }


class OrderFulfillmentService(FulfillmentService):
    """Processes incoming orders against inventory."""

    def __init__(
        self,
        *args: Any,
        engine: WorkflowEngine | None = None,
        scorer: SKUCompatibilityScorer | None = None,
        **kwargs: Any,
    ):
        super().__init__(*args, **kwargs)
        self.engine = engine or WorkflowEngine()
        self.scorer = scorer or SKUCompatibilityScorer()

    @operation_boundary("process_order")
    def process_order(self, order_id: int, operator_id: str) -> OrderProcessingResult:
        """
        Match, commit and seed every item of a NEW order.

        Raises:
            NotFoundError: If the order does not exist
            UnavailableError: If the order is not NEW (INVALID_ORDER_STATUS)
            SkuNotFoundError: If any order item has no matching inventory
            ResourceExhaustedError: If no storage bin has room
        """

        def operation(uow: SqlModelUnitOfWork, effects: SideEffects) -> OrderProcessingResult:
            return self._process(uow, effects, order_id, operator_id)

        return self._run(operation)

    def _process(
        self,
        uow: SqlModelUnitOfWork,
        effects: SideEffects,
        order_id: int,
        operator_id: str,
    ) -> OrderProcessingResult:
        order = uow.orders.require(order_id)
        if order.status != OrderStatus.NEW:
            raise UnavailableError(
                f"Order {order.order_number} is {order.status.value}, expected NEW",
                code="INVALID_ORDER_STATUS",
                details={"status": order.status.value},
            )

        order_items = uow.order_items.list_for_order(order.id)
        if not order_items:
            raise InvalidRequestError(
                f"Order {order.order_number} has no items", code="ORDER_HAS_NO_ITEMS"
            )

        matcher = InventoryMatcher(uow.items, self.scorer)
        allocator = BinAllocator(uow.bins, uow.bin_history)
        matches = []
        seeded = []

        for order_item in order_items:
            match = matcher.find_best_match(order_item.target_sku, uncommitted_only=True)
            if match is None:
                raise SkuNotFoundError(order_item.target_sku)

            item = match.item
            bin_id = item.bin_id
            reserved = 0
            if bin_id is None:
                # the matched item takes exactly one slot
                allocation = allocator.allocate(item.sku, 1, BinType.STORAGE, operator_id)
                bin_id = allocation.bin.id
                reserved = allocation.reserved

            uow.items.transition(
                item,
                item.status1,
                ItemDetailStatus.COMMITTED,
                order_item_id=order_item.id,
                bin_id=bin_id,
            )

            order_item.status = OrderItemStatus.ASSIGNED
            order_item.assigned_item_id = item.id
            order_item.bin_id = bin_id
            order_item.reserved_quantity = reserved
            order_item.match_details = match.to_dict()
            uow.session.add(order_item)

            matches.append(
                OrderItemMatch(
                    order_item_id=order_item.id,
                    target_sku=order_item.target_sku,
                    item=ItemRead.model_validate(item),
                    bin_id=bin_id,
                    match=order_item.match_details,
                )
            )

        order.status = OrderStatus.PROCESSING
        order.shipment = shipment_details(order.order_number)
        uow.session.add(order)
        uow.flush()

        for order_item in order_items:
            item = uow.items.require(order_item.assigned_item_id)
            if item.status1 == ItemStatus.PRODUCTION:
                request_type, metadata = RequestType.WASH, WashMetadata()
            else:
                request_type, metadata = RequestType.QC, QCMetadata()
            request = self.engine.open_request(
                uow,
                request_type,
                operator_id,
                item_id=item.id,
                order_id=order.id,
                metadata=metadata,
            )
            seeded.append(RequestRead.model_validate(request))

        effects.audit(
            "ORDER_PROCESSED",
            operator_id,
            order_id=order.id,
            details={
                "matches": [m.match for m in matches],
                "seeded_request_ids": [r.id for r in seeded],
            },
        )
        effects.notify(
            SendNotification(
                notification_type=NotificationType.ORDER_PROCESSED,
                message=f"Order {order.order_number} is in production",
                user_role=UserRole.WAREHOUSE_MANAGER,
                details={"order_id": order.id, "items": len(matches)},
            )
        )
        logger.info(
            "order_processed",
            order_id=order.id,
            items=len(matches),
            substitutions=sum(1 for m in matches if m.match.get("substitutions")),
        )
        return OrderProcessingResult(
            order_id=order.id,
            order_number=order.order_number,
            status=order.status,
            shipment=order.shipment,
            matches=matches,
            seeded_requests=seeded,
        )

    @operation_boundary("create_order")
    def create_order(
        self, data: OrderCreate, items: list[OrderItemCreate], operator_id: str
    ) -> OrderRead:
        """
        Record a NEW order with its items.

        Raises:
            InvalidRequestError: If ``items`` is empty
            SKUFormatError: If a target SKU is malformed
            UnavailableError: If the order number is taken
        """
        if not items:
            raise InvalidRequestError(
                "An order needs at least one item", code="ORDER_HAS_NO_ITEMS"
            )
        for item in items:
            SKUCode.parse(item.target_sku)

        def operation(uow: SqlModelUnitOfWork, effects: SideEffects) -> OrderRead:
            if uow.orders.get_by_number(data.order_number) is not None:
                raise UnavailableError(
                    f"Order {data.order_number} already exists", code="DUPLICATE_ORDER"
                )
            order = uow.orders.add(Order.model_validate(data))
            for item in items:
                uow.order_items.add(
                    OrderItem(
                        order_id=order.id,
                        target_sku=SKUCode.parse(item.target_sku).format(),
                        quantity=item.quantity,
                    )
                )
            effects.audit(
                "ORDER_CREATED",
                operator_id,
                order_id=order.id,
                details={"order_number": order.order_number, "items": len(items)},
            )
            return OrderRead.model_validate(order)

        return self._run(operation)

    @operation_boundary("get_order")
    @transactional()
    def get_order(self, uow: SqlModelUnitOfWork, order_id: int) -> OrderDetail:
        order = uow.orders.require(order_id)
        return OrderDetail(
            order=OrderRead.model_validate(order),
            items=[
                OrderItemRead.model_validate(oi)
                for oi in uow.order_items.list_for_order(order.id)
            ],
        )
