"""Batch generation and bin administration."""

import pytest

from atelier.domain.fulfillment.value_objects.enums import BatchStatus, BinType
from atelier.domain.fulfillment.value_objects.item_status import ItemDetailStatus, ItemStatus
from atelier.domain.shared.exceptions import (
    NotFoundError,
    ResourceExhaustedError,
    SKUFormatError,
    UnavailableError,
    ValidationError,
)
from atelier.models.fulfillment import BinCreate
from atelier.tests.factories import OPERATOR, make_item

pytestmark = pytest.mark.integration


class TestGenerateBatch:
    def test_batch_creates_production_items(self, services):
        generated = services.production.generate_batch("ST-32-R-32-RAW", 3, OPERATOR)

        assert generated.batch.status == BatchStatus.READY
        assert generated.batch.quantity == 3
        assert generated.batch.code.startswith("B-ST32-")
        assert len(generated.items) == 3
        for item in generated.items:
            assert (item.status1, item.status2) == (
                ItemStatus.PRODUCTION,
                ItemDetailStatus.UNCOMMITTED,
            )
            assert item.location == "PRODUCTION"
            assert item.batch_id == generated.batch.id

    @pytest.mark.parametrize("quantity", [0, 501])
    def test_quantity_bounds(self, services, quantity):
        with pytest.raises(ValidationError) as exc_info:
            services.production.generate_batch("ST-32-R-32-RAW", quantity, OPERATOR)

        assert exc_info.value.code == "INVALID_QUANTITY"

    def test_duplicate_code(self, services):
        services.production.generate_batch("ST-32-R-32-RAW", 1, OPERATOR, code="B-1")

        with pytest.raises(UnavailableError) as exc_info:
            services.production.generate_batch("ST-32-R-32-RAW", 1, OPERATOR, code="B-1")

        assert exc_info.value.code == "DUPLICATE_BATCH_CODE"

    def test_invalid_sku(self, services):
        with pytest.raises(SKUFormatError):
            services.production.generate_batch("XX-32-R-32-RAW", 1, OPERATOR)


class TestBinService:
    def test_create_and_allocate(self, services):
        services.bins.create_bin(
            BinCreate(code="SHELF-1", capacity=4, affinity_sku="ST-32-R-32-RAW"), OPERATOR
        )

        allocation = services.bins.allocate("ST-32-R-32-RAW", 6, OPERATOR)

        assert allocation.bin.code == "SHELF-1"
        assert (allocation.requested, allocation.reserved) == (6, 4)
        assert services.bins.get_bin("SHELF-1").current_count == 4

    def test_duplicate_bin_code(self, services):
        services.bins.create_bin(BinCreate(code="SHELF-1", capacity=4), OPERATOR)

        with pytest.raises(UnavailableError) as exc_info:
            services.bins.create_bin(BinCreate(code="SHELF-1", capacity=2), OPERATOR)

        assert exc_info.value.code == "DUPLICATE_BIN_CODE"

    def test_inactive_bins_are_not_allocated(self, services):
        services.bins.create_bin(BinCreate(code="SHELF-1", capacity=4), OPERATOR)
        services.bins.set_active("SHELF-1", False, OPERATOR)

        with pytest.raises(ResourceExhaustedError):
            services.bins.allocate(None, 1, OPERATOR)

        assert services.bins.set_active("SHELF-1", True, OPERATOR).is_active

    def test_release(self, services):
        services.bins.create_bin(BinCreate(code="SHELF-1", capacity=4), OPERATOR)
        services.bins.allocate(None, 3, OPERATOR)

        assert services.bins.release("SHELF-1", 2, OPERATOR).current_count == 1
        with pytest.raises(ValidationError):
            services.bins.release("SHELF-1", 2, OPERATOR)

    def test_contents(self, services, uow_factory):
        created = services.bins.create_bin(
            BinCreate(code="WASH-1", capacity=4, bin_type=BinType.WASH), OPERATOR
        )
        with uow_factory() as uow:
            item = make_item(uow, bin_id=created.id)

        assert [i.id for i in services.bins.contents("WASH-1")] == [item.id]

    def test_unknown_bin(self, services):
        with pytest.raises(NotFoundError) as exc_info:
            services.bins.get_bin("NOPE")

        assert exc_info.value.code == "BIN_NOT_FOUND"
