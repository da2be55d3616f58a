"""Production batches: the start of every garment's lifecycle."""

from uuid import uuid4

from ...core.observability import get_logger
from ...domain.fulfillment.value_objects.enums import BatchStatus
from ...domain.fulfillment.value_objects.item_status import ItemDetailStatus, ItemStatus
from ...domain.fulfillment.value_objects.sku import SKUCode
from ...domain.shared.exceptions import UnavailableError, ValidationError
from ...infrastructure.database.unit_of_work import SqlModelUnitOfWork
from ...models.fulfillment import Batch, InventoryItem
from ..dtos import BatchRead, GeneratedBatch, ItemRead
from .base import FulfillmentService, SideEffects, operation_boundary

logger = get_logger(__name__)

MAX_BATCH_QUANTITY = 500
PRODUCTION_LOCATION = "PRODUCTION"


class ProductionService(FulfillmentService):
    @operation_boundary("generate_batch")
    def generate_batch(
        self,
        sku: str,
        quantity: int,
        operator_id: str,
        code: str | None = None,
    ) -> GeneratedBatch:
        """
        Create a READY batch and one PRODUCTION/UNCOMMITTED item per unit.

        Raises:
            SKUFormatError: If ``sku`` is not a valid SKU
            ValidationError: If quantity is outside 1..MAX_BATCH_QUANTITY
            UnavailableError: If ``code`` is already taken
        """
        sku_code = SKUCode.parse(sku)
        if not 1 <= quantity <= MAX_BATCH_QUANTITY:
            raise ValidationError(
                "quantity",
                quantity,
                f"Quantity must be between 1 and {MAX_BATCH_QUANTITY}",
                code="INVALID_QUANTITY",
            )

        def operation(uow: SqlModelUnitOfWork, effects: SideEffects) -> GeneratedBatch:
            batch_code = code or f"B-{sku_code.style}{sku_code.waist}-{uuid4().hex[:8].upper()}"
            if uow.batches.get_by_code(batch_code) is not None:
                raise UnavailableError(
                    f"Batch code {batch_code} is already in use", code="DUPLICATE_BATCH_CODE"
                )

            batch = uow.batches.add(
                Batch(
                    code=batch_code,
                    sku=sku_code.format(),
                    quantity=quantity,
                    status=BatchStatus.READY,
                    created_by=operator_id,
                )
            )
            items = [
                InventoryItem(
                    sku=batch.sku,
                    status1=ItemStatus.PRODUCTION,
                    status2=ItemDetailStatus.UNCOMMITTED,
                    location=PRODUCTION_LOCATION,
                    batch_id=batch.id,
                )
                for _ in range(quantity)
            ]
            uow.session.add_all(items)
            uow.flush()

            effects.audit(
                "BATCH_GENERATED",
                operator_id,
                details={"batch_id": batch.id, "sku": batch.sku, "quantity": quantity},
            )
            logger.info("batch_generated", batch_id=batch.id, sku=batch.sku, quantity=quantity)
            return GeneratedBatch(
                batch=BatchRead.model_validate(batch),
                items=[ItemRead.model_validate(item) for item in items],
            )

        return self._run(operation)
