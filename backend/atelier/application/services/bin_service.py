"""Bin administration: create, allocate, release and inspect bins."""

from ...core.unit_of_work import transactional
from ...domain.fulfillment.services.bin_allocator import BinAllocator
from ...domain.fulfillment.value_objects.enums import BinType
from ...domain.fulfillment.value_objects.sku import SKUCode
from ...domain.shared.exceptions import NotFoundError, UnavailableError
from ...infrastructure.database.unit_of_work import SqlModelUnitOfWork
from ...models.fulfillment import Bin, BinCreate
from ..dtos import BinAllocationRead, BinRead, ItemRead
from .base import FulfillmentService, SideEffects, operation_boundary


def _require_bin(uow: SqlModelUnitOfWork, bin_code: str) -> Bin:
    bin_ = uow.bins.get_by_code(bin_code)
    if bin_ is None:
        raise NotFoundError("bin", bin_code)
    return bin_


class BinService(FulfillmentService):
    @operation_boundary("create_bin")
    def create_bin(self, data: BinCreate, operator_id: str) -> BinRead:
        if data.affinity_sku is not None:
            SKUCode.parse(data.affinity_sku)

        def operation(uow: SqlModelUnitOfWork, effects: SideEffects) -> BinRead:
            if uow.bins.get_by_code(data.code) is not None:
                raise UnavailableError(
                    f"Bin code {data.code} is already in use", code="DUPLICATE_BIN_CODE"
                )
            bin_ = uow.bins.add(Bin.model_validate(data))
            effects.audit(
                "BIN_CREATED", operator_id, details={"bin_id": bin_.id, "code": bin_.code}
            )
            return BinRead.model_validate(bin_)

        return self._run(operation)

    @operation_boundary("allocate_bin")
    def allocate(
        self,
        sku_affinity: str | None,
        quantity: int,
        operator_id: str,
        bin_type: BinType = BinType.STORAGE,
    ) -> BinAllocationRead:
        """Reserve room for ``quantity`` units; may reserve less (see ``reserved``)."""

        def operation(uow: SqlModelUnitOfWork, effects: SideEffects) -> BinAllocationRead:
            allocation = BinAllocator(uow.bins, uow.bin_history).allocate(
                sku_affinity, quantity, BinType(bin_type), operator_id
            )
            effects.audit("BIN_ALLOCATED", operator_id, details=allocation.to_dict())
            return BinAllocationRead(
                bin=BinRead.model_validate(allocation.bin),
                requested=allocation.requested,
                reserved=allocation.reserved,
            )

        return self._run(operation)

    @operation_boundary("release_bin")
    def release(self, bin_code: str, quantity: int, operator_id: str) -> BinRead:
        def operation(uow: SqlModelUnitOfWork, effects: SideEffects) -> BinRead:
            bin_ = _require_bin(uow, bin_code)
            BinAllocator(uow.bins, uow.bin_history).release(bin_, quantity, operator_id)
            effects.audit(
                "BIN_RELEASED", operator_id, details={"bin_id": bin_.id, "quantity": quantity}
            )
            return BinRead.model_validate(bin_)

        return self._run(operation)

    @operation_boundary("set_bin_active")
    def set_active(self, bin_code: str, is_active: bool, operator_id: str) -> BinRead:
        def operation(uow: SqlModelUnitOfWork, effects: SideEffects) -> BinRead:
            bin_ = _require_bin(uow, bin_code)
            uow.bins.set_active(bin_, is_active)
            effects.audit(
                "BIN_ACTIVATED" if is_active else "BIN_DEACTIVATED",
                operator_id,
                details={"bin_id": bin_.id},
            )
            return BinRead.model_validate(bin_)

        return self._run(operation)

    @operation_boundary("get_bin")
    @transactional()
    def get_bin(self, uow: SqlModelUnitOfWork, bin_code: str) -> BinRead:
        return BinRead.model_validate(_require_bin(uow, bin_code))

    @operation_boundary("bin_contents")
    @transactional()
    def contents(self, uow: SqlModelUnitOfWork, bin_code: str) -> list[ItemRead]:
        bin_ = _require_bin(uow, bin_code)
        return [ItemRead.model_validate(item) for item in uow.items.list_in_bin(bin_.id)]
