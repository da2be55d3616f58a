"""Generic request behaviour shared by every workflow."""

import pytest

from atelier.core.config import settings
from atelier.domain.fulfillment.value_objects.enums import (
    BinType,
    RequestStatus,
    RequestType,
)
from atelier.domain.fulfillment.value_objects.item_status import ItemStatus
from atelier.domain.fulfillment.workflow.engine import WorkflowEngine
from atelier.domain.shared.exceptions import (
    ConcurrencyConflictError,
    InvalidRequestError,
    InvalidTransitionError,
    NotFoundError,
    UnavailableError,
    ValidationError,
)
from atelier.tests.factories import OPERATOR, make_bin, make_item

pytestmark = pytest.mark.integration


@pytest.fixture
def move_request(services, uow_factory):
    with uow_factory() as uow:
        item = make_item(uow, status1=ItemStatus.AVAILABLE)
    return services.requests.create_request(RequestType.MOVE, OPERATOR, item_id=item.id), item


def complete_move(services, request_id, item_id):
    services.requests.advance(request_id, "ITEM_SCAN", {"item_id": item_id}, OPERATOR)
    services.requests.advance(request_id, "DESTINATION_SCAN", {"destination": "RACK-1"}, OPERATOR)
    return services.requests.advance(request_id, "MOVE_COMPLETE", {}, OPERATOR)


class TestCreateRequest:
    def test_new_request_is_pending(self, move_request):
        request, item = move_request

        assert request.status == RequestStatus.PENDING
        assert request.current_step == "CREATED"
        assert request.item_id == item.id
        assert request.metadata == {"kind": "MOVE"}
        assert request.version == 0

    def test_unknown_item(self, services):
        with pytest.raises(NotFoundError) as exc_info:
            services.requests.create_request(RequestType.MOVE, OPERATOR, item_id=404)

        assert exc_info.value.code == "ITEM_NOT_FOUND"

    def test_metadata_must_fit_request_type(self, services, uow_factory):
        with uow_factory() as uow:
            item = make_item(uow)

        with pytest.raises(ValidationError) as exc_info:
            services.requests.create_request(
                RequestType.MOVE, OPERATOR, item_id=item.id, metadata={"waste_percentage": 3}
            )

        assert exc_info.value.code == "INVALID_METADATA"

    def test_annotations_are_kept(self, services, uow_factory):
        with uow_factory() as uow:
            item = make_item(uow)

        request = services.requests.create_request(
            RequestType.MOVE, OPERATOR, item_id=item.id, annotations={"priority": "rush"}
        )

        assert request.annotations == {"priority": "rush"}


class TestAdvance:
    def test_unknown_step(self, services, move_request):
        request, _ = move_request

        with pytest.raises(InvalidRequestError) as exc_info:
            services.requests.advance(request.id, "TELEPORT", {}, OPERATOR)

        assert exc_info.value.code == "UNKNOWN_STEP"

    def test_invalid_payload_lists_errors(self, services, move_request):
        request, _ = move_request

        with pytest.raises(ValidationError) as exc_info:
            services.requests.advance(request.id, "ITEM_SCAN", {"item_id": "abc"}, OPERATOR)

        error = exc_info.value
        assert error.code == "INVALID_PAYLOAD"
        assert error.details["errors"][0]["field"] == "item_id"

    def test_request_type_guard(self, services, move_request):
        request, item = move_request

        with pytest.raises(InvalidRequestError) as exc_info:
            services.requests.advance(
                request.id, "ITEM_SCAN", {"item_id": item.id}, OPERATOR, request_type=RequestType.QC
            )

        assert exc_info.value.code == "WRONG_REQUEST_TYPE"

    def test_completed_request_rejects_further_steps(self, services, move_request):
        request, item = move_request
        complete_move(services, request.id, item.id)
        timeline_before = services.requests.get_timeline(request.id)

        with pytest.raises(InvalidTransitionError) as exc_info:
            services.requests.advance(request.id, "MOVE_COMPLETE", {}, OPERATOR)

        assert exc_info.value.code == "REQUEST_TERMINAL"
        assert services.requests.get_timeline(request.id) == timeline_before

    def test_timeline_records_every_step(self, services, move_request):
        request, item = move_request
        final = complete_move(services, request.id, item.id)

        timeline = services.requests.get_timeline(request.id)

        assert [e.step for e in timeline] == [
            "CREATED",
            "ITEM_SCAN",
            "DESTINATION_SCAN",
            "MOVE_COMPLETE",
        ]
        assert [e.sequence for e in timeline] == sorted(e.sequence for e in timeline)
        assert timeline[-1].status == RequestStatus.COMPLETED
        assert timeline[1].snapshot["from"] == "CREATED"
        assert final.request.version == 3

    def test_unknown_request(self, services):
        with pytest.raises(NotFoundError):
            services.requests.get_timeline(12345)

    def test_stale_request_loses_race(self, uow_factory, move_request):
        request, item = move_request
        engine = WorkflowEngine()

        with uow_factory() as first:
            # loaded before the concurrent advance commits
            stale = first.requests.require(request.id)
            version_before = stale.version
            with uow_factory() as second:
                engine.advance(second, request.id, "ITEM_SCAN", {"item_id": item.id}, OPERATOR)

            with pytest.raises(ConcurrencyConflictError):
                engine.advance(first, request.id, "ITEM_SCAN", {"item_id": item.id}, OPERATOR)
            first.rollback()

        with uow_factory() as uow:
            timeline = uow.timeline.list_for_request(request.id)
            assert [e.step for e in timeline].count("ITEM_SCAN") == 1
            assert uow.requests.require(request.id).version == version_before + 1

    def test_failed_step_leaves_no_trace(self, services, uow_factory, move_request):
        request, item = move_request
        with uow_factory() as uow:
            make_bin(uow, BinType.STORAGE, code="CLOSED-1", is_active=False)
        services.requests.advance(request.id, "ITEM_SCAN", {"item_id": item.id}, OPERATOR)

        with pytest.raises(UnavailableError) as exc_info:
            services.requests.advance(
                request.id,
                "DESTINATION_SCAN",
                {"destination": "CLOSED-1", "is_bin": True},
                OPERATOR,
            )

        assert exc_info.value.code == "BIN_INACTIVE"

        stored = services.requests.get_request(request.id)
        assert stored.current_step == "ITEM_SCAN"
        assert len(services.requests.get_timeline(request.id)) == 2


class TestFailAndRetry:
    def test_retry_requires_failed_request(self, services, uow_factory):
        with uow_factory() as uow:
            item = make_item(uow)
        wash = services.requests.create_request(RequestType.WASH, OPERATOR, item_id=item.id)

        with pytest.raises(InvalidTransitionError) as exc_info:
            services.requests.retry_request(wash.id, OPERATOR)

        assert exc_info.value.code == "RETRY_NOT_FAILED"

    def test_retry_limit(self, services, uow_factory):
        with uow_factory() as uow:
            item = make_item(uow)
        wash = services.requests.create_request(RequestType.WASH, OPERATOR, item_id=item.id)

        for attempt in range(settings.REQUEST_MAX_RETRIES):
            services.requests.fail_request(wash.id, f"attempt {attempt}", OPERATOR)
            services.requests.retry_request(wash.id, OPERATOR)
        services.requests.fail_request(wash.id, "last straw", OPERATOR)

        with pytest.raises(InvalidTransitionError) as exc_info:
            services.requests.retry_request(wash.id, OPERATOR)

        assert exc_info.value.code == "RETRY_LIMIT_REACHED"
        assert services.requests.get_request(wash.id).retry_count == settings.REQUEST_MAX_RETRIES

    def test_fail_only_where_allowed(self, services, move_request):
        request, item = move_request
        complete_move(services, request.id, item.id)

        with pytest.raises(InvalidTransitionError):
            services.requests.fail_request(request.id, "too late", OPERATOR)
