"""Order processing: matching, commitment, binning and request seeding."""

import pytest

from atelier.domain.fulfillment.services.bin_allocator import BinAllocator
from atelier.domain.fulfillment.value_objects.enums import (
    BinType,
    OrderItemStatus,
    OrderStatus,
    RequestType,
)
from atelier.domain.fulfillment.value_objects.item_status import ItemDetailStatus, ItemStatus
from atelier.domain.shared.exceptions import (
    InvalidRequestError,
    NotFoundError,
    ResourceExhaustedError,
    SKUFormatError,
    SkuNotFoundError,
    UnavailableError,
)
from atelier.models.fulfillment import OrderCreate, OrderItemCreate
from atelier.tests.factories import OPERATOR, make_bin, make_item, make_order

pytestmark = pytest.mark.integration


@pytest.fixture
def storage_bin(uow_factory):
    with uow_factory() as uow:
        return make_bin(uow, BinType.STORAGE, capacity=10)


class TestProcessOrder:
    def test_happy_path(self, services, uow_factory, storage_bin):
        with uow_factory() as uow:
            stock = make_item(uow, "ST-32-R-32-RAW")
            fresh = make_item(uow, "SL-30-S-30-BLK", status1=ItemStatus.PRODUCTION)
            order, _ = make_order(uow, ["ST-32-R-32-RAW", "SL-30-S-30-BLK"])

        result = services.orders.process_order(order.id, OPERATOR)

        assert result.status == OrderStatus.PROCESSING
        assert result.shipment["courier"]
        assert result.shipment["tracking_reference"].startswith(order.order_number)
        assert [m.item.id for m in result.matches] == [stock.id, fresh.id]
        assert all(m.bin_id == storage_bin.id for m in result.matches)
        assert [(r.request_type, r.item_id) for r in result.seeded_requests] == [
            (RequestType.QC, stock.id),
            (RequestType.WASH, fresh.id),
        ]

        with uow_factory() as uow:
            for match in result.matches:
                item = uow.items.require(match.item.id)
                assert item.status2 == ItemDetailStatus.COMMITTED
                assert item.order_item_id == match.order_item_id
                assert item.bin_id == storage_bin.id
                order_item = uow.order_items.require(match.order_item_id)
                assert order_item.status == OrderItemStatus.ASSIGNED
                assert order_item.assigned_item_id == item.id
            assert uow.bins.require(storage_bin.id).current_count == 2

    def test_bin_slot_follows_the_item_not_the_quantity(self, services, uow_factory, storage_bin):
        with uow_factory() as uow:
            item = make_item(uow, "ST-32-R-32-RAW")
            order, (order_item,) = make_order(uow, ["ST-32-R-32-RAW"])
            order_item.quantity = 3
            uow.session.add(order_item)

        services.orders.process_order(order.id, OPERATOR)

        with uow_factory() as uow:
            bin_ = uow.bins.require(storage_bin.id)
            assert bin_.current_count == 1
            assert len(uow.items.list_in_bin(bin_.id)) == 1
            assert uow.order_items.require(order_item.id).reserved_quantity == 1

            BinAllocator(uow.bins, uow.bin_history).remove_item(uow.items.require(item.id))

        with uow_factory() as uow:
            bin_ = uow.bins.require(storage_bin.id)
            assert bin_.current_count == 0
            assert uow.items.list_in_bin(bin_.id) == []

    def test_substitution_is_recorded(self, services, uow_factory, storage_bin):
        with uow_factory() as uow:
            make_item(uow, "ST-32-R-33-RAW")
            order, (order_item,) = make_order(uow, ["ST-32-R-32-RAW"])

        result = services.orders.process_order(order.id, OPERATOR)

        match = result.matches[0].match
        assert match["phase"] == "SCORED"
        assert match["sku"] == "ST-32-R-33-RAW"
        with uow_factory() as uow:
            assert uow.order_items.require(order_item.id).match_details == match

    def test_one_missing_sku_commits_nothing(self, services, uow_factory, storage_bin):
        with uow_factory() as uow:
            item = make_item(uow, "ST-32-R-32-RAW")
            order, _ = make_order(uow, ["ST-32-R-32-RAW", "PT-40-R-30-DRK"])

        with pytest.raises(SkuNotFoundError) as exc_info:
            services.orders.process_order(order.id, OPERATOR)

        assert exc_info.value.code == "SKU_NOT_FOUND"
        with uow_factory() as uow:
            item = uow.items.require(item.id)
            assert item.status2 == ItemDetailStatus.UNCOMMITTED
            assert item.order_item_id is None
            assert item.bin_id is None
            assert uow.orders.require(order.id).status == OrderStatus.NEW
            assert uow.bins.require(storage_bin.id).current_count == 0
            assert uow.requests.list_for_order(order.id) == []

    def test_same_item_is_not_matched_twice(self, services, uow_factory, storage_bin):
        with uow_factory() as uow:
            make_item(uow, "ST-32-R-32-RAW")
            order, _ = make_order(uow, ["ST-32-R-32-RAW", "ST-32-R-32-RAW"])

        with pytest.raises(SkuNotFoundError):
            services.orders.process_order(order.id, OPERATOR)

    def test_only_new_orders_are_processed(self, services, uow_factory, storage_bin):
        with uow_factory() as uow:
            make_item(uow, "ST-32-R-32-RAW")
            order, _ = make_order(uow, ["ST-32-R-32-RAW"], status=OrderStatus.PROCESSING)

        with pytest.raises(UnavailableError) as exc_info:
            services.orders.process_order(order.id, OPERATOR)

        assert exc_info.value.code == "INVALID_ORDER_STATUS"

    def test_order_without_items(self, services, uow_factory):
        with uow_factory() as uow:
            order, _ = make_order(uow, [])

        with pytest.raises(InvalidRequestError) as exc_info:
            services.orders.process_order(order.id, OPERATOR)

        assert exc_info.value.code == "ORDER_HAS_NO_ITEMS"

    def test_unknown_order(self, services):
        with pytest.raises(NotFoundError) as exc_info:
            services.orders.process_order(999, OPERATOR)

        assert exc_info.value.code == "ORDER_NOT_FOUND"

    def test_no_storage_room_rolls_back(self, services, uow_factory):
        with uow_factory() as uow:
            make_bin(uow, BinType.STORAGE, capacity=1, current_count=1)
            item = make_item(uow, "ST-32-R-32-RAW")
            order, _ = make_order(uow, ["ST-32-R-32-RAW"])

        with pytest.raises(ResourceExhaustedError) as exc_info:
            services.orders.process_order(order.id, OPERATOR)

        assert exc_info.value.code == "NO_BIN_AVAILABLE"
        with uow_factory() as uow:
            assert uow.items.require(item.id).status2 == ItemDetailStatus.UNCOMMITTED

    def test_item_already_binned_keeps_its_bin(self, services, uow_factory):
        with uow_factory() as uow:
            shelf = make_bin(uow, capacity=5)
            item = make_item(uow, "ST-32-R-32-RAW")
            item.bin_id = shelf.id
            uow.bins.try_increment(shelf)
            order, _ = make_order(uow, ["ST-32-R-32-RAW"])

        result = services.orders.process_order(order.id, OPERATOR)

        assert result.matches[0].bin_id == shelf.id
        with uow_factory() as uow:
            assert uow.bins.require(shelf.id).current_count == 1


class TestCreateOrder:
    def test_create_and_read_back(self, services):
        created = services.orders.create_order(
            OrderCreate(order_number="ORD-100", specifications={"button_color": "brass"}),
            [OrderItemCreate(target_sku="ST-32-R-32-RAW", quantity=2)],
            OPERATOR,
        )

        detail = services.orders.get_order(created.id)

        assert detail.order.status == OrderStatus.NEW
        assert detail.order.specifications == {"button_color": "brass"}
        assert [(i.target_sku, i.quantity) for i in detail.items] == [("ST-32-R-32-RAW", 2)]

    def test_duplicate_order_number(self, services):
        items = [OrderItemCreate(target_sku="ST-32-R-32-RAW")]
        services.orders.create_order(OrderCreate(order_number="ORD-1"), items, OPERATOR)

        with pytest.raises(UnavailableError) as exc_info:
            services.orders.create_order(OrderCreate(order_number="ORD-1"), items, OPERATOR)

        assert exc_info.value.code == "DUPLICATE_ORDER"

    def test_malformed_sku_is_rejected(self, services):
        with pytest.raises(SKUFormatError):
            services.orders.create_order(
                OrderCreate(order_number="ORD-2"),
                [OrderItemCreate(target_sku="ST-99-R-32-RAW")],
                OPERATOR,
            )

    def test_empty_order_is_rejected(self, services):
        with pytest.raises(InvalidRequestError):
            services.orders.create_order(OrderCreate(order_number="ORD-3"), [], OPERATOR)
