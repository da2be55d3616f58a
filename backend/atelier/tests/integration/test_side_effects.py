"""Notifications, audit events and the service error boundary."""

import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import select

from atelier.application.services import OperationResult, RequestOrchestrator
from atelier.domain.fulfillment.value_objects.enums import BinType, RequestType
from atelier.domain.shared.exceptions import (
    ConcurrencyConflictError,
    ServiceError,
    SkuNotFoundError,
)
from atelier.infrastructure.database.unit_of_work import SqlModelUnitOfWork
from atelier.models.fulfillment import AuditEvent, Notification
from atelier.tests.factories import OPERATOR, make_bin, make_item, make_order, open_request

pytestmark = pytest.mark.integration


def stored(session_factory, model):
    with session_factory() as session:
        return list(session.exec(select(model).order_by(model.id)).all())


class RecordingEventLogger:
    def __init__(self):
        self.events = []

    def log_event(self, event):
        self.events.append(event)


class BrokenSink:
    def log_event(self, event):
        raise RuntimeError("audit store down")

    def create_notification(self, notification):
        raise RuntimeError("notification store down")


class TestPublishedAfterCommit:
    def test_order_processing_notifies_and_audits(self, services, uow_factory, session_factory):
        with uow_factory() as uow:
            make_bin(uow, BinType.STORAGE)
            make_item(uow, "ST-32-R-32-RAW")
            order, _ = make_order(uow, ["ST-32-R-32-RAW"])

        services.orders.process_order(order.id, OPERATOR)

        (notification,) = stored(session_factory, Notification)
        assert notification.notification_type == "ORDER_PROCESSED"
        assert notification.user_role == "WAREHOUSE_MANAGER"
        (event,) = [e for e in stored(session_factory, AuditEvent) if e.order_id == order.id]
        assert event.event_type == "ORDER_PROCESSED"
        assert event.actor_id == OPERATOR
        assert event.correlation_id

    def test_rolled_back_operation_publishes_nothing(
        self, services, uow_factory, session_factory
    ):
        with uow_factory() as uow:
            make_bin(uow, BinType.STORAGE)
            order, _ = make_order(uow, ["ST-32-R-32-RAW"])

        with pytest.raises(SkuNotFoundError):
            services.orders.process_order(order.id, OPERATOR)

        assert stored(session_factory, Notification) == []
        assert stored(session_factory, AuditEvent) == []

    def test_spawned_requests_are_audited(self, services, uow_factory, session_factory):
        with uow_factory() as uow:
            item = make_item(uow)
        qc = services.requests.create_request(RequestType.QC, OPERATOR, item_id=item.id)

        services.requests.advance(
            qc.id, "MEASUREMENTS", {"waist": 40, "hip": 40, "thigh": 23, "inseam": 32}, OPERATOR
        )

        events = {e.event_type: e for e in stored(session_factory, AuditEvent)}
        assert events["REQUEST_SPAWNED"].details["source_request_id"] == qc.id
        assert events["REQUEST_STEP"].request_id == qc.id
        (notification,) = stored(session_factory, Notification)
        assert notification.notification_type == "DEFECT_DETECTED"

    def test_failing_sinks_do_not_fail_the_operation(self, uow_factory, retry_config):
        with uow_factory() as uow:
            item = make_item(uow)
        sink = BrokenSink()
        orchestrator = RequestOrchestrator(
            uow_factory, retry_config, event_logger=sink, notification_service=sink
        )

        request = orchestrator.create_request(RequestType.MOVE, OPERATOR, item_id=item.id)

        assert request.id is not None

    def test_retried_attempts_publish_once(self, session_factory, retry_config):
        with SqlModelUnitOfWork(session_factory) as uow:
            item = make_item(uow)
        conflicts = [ConcurrencyConflictError("request", 0)]

        class ConflictOnceUnitOfWork(SqlModelUnitOfWork):
            def commit(self):
                if conflicts:
                    raise conflicts.pop()
                super().commit()

        recorder = RecordingEventLogger()
        orchestrator = RequestOrchestrator(
            lambda: ConflictOnceUnitOfWork(session_factory),
            retry_config,
            event_logger=recorder,
        )

        orchestrator.create_request(RequestType.MOVE, OPERATOR, item_id=item.id)

        assert [e.event_type for e in recorder.events] == ["REQUEST_CREATED"]
        with SqlModelUnitOfWork(session_factory) as uow:
            assert len(uow.requests.list_open_for_item(item.id)) == 1


class TestErrorBoundary:
    def test_unexpected_errors_become_service_errors(self, retry_config):
        def broken_factory():
            raise RuntimeError("connection string leaked here")

        orchestrator = RequestOrchestrator(broken_factory, retry_config)

        with pytest.raises(ServiceError) as exc_info:
            orchestrator.get_request(1)

        assert "leaked" not in exc_info.value.message
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert exc_info.value.to_dict()["type"] == "SERVICE_ERROR"

    def test_reads_retry_transient_database_errors(self, session_factory, retry_config):
        with SqlModelUnitOfWork(session_factory) as uow:
            item = make_item(uow)
            request = open_request(uow, RequestType.MOVE, item_id=item.id)
        calls = []

        def flaky_factory():
            calls.append(1)
            if len(calls) == 1:
                raise OperationalError("SELECT 1", {}, Exception("database is locked"))
            return SqlModelUnitOfWork(session_factory)

        orchestrator = RequestOrchestrator(flaky_factory, retry_config)

        assert orchestrator.get_request(request.id).id == request.id
        assert len(calls) == 2

    def test_operation_result_captures_domain_errors(self, services):
        result = OperationResult.capture(services.requests.get_request, 999)

        assert not result.success
        assert result.to_dict() == {
            "success": False,
            "error": {
                "type": "NOT_FOUND",
                "code": "REQUEST_NOT_FOUND",
                "message": "Request not found: 999",
                "details": {"entity_type": "request", "entity_id": "999"},
            },
        }

    def test_operation_result_serializes_data(self, services, uow_factory):
        with uow_factory() as uow:
            item = make_item(uow)
        request = services.requests.create_request(RequestType.MOVE, OPERATOR, item_id=item.id)

        result = OperationResult.capture(services.requests.get_request, request.id)

        payload = result.to_dict()
        assert payload["success"] is True
        assert payload["data"]["id"] == request.id
        assert payload["data"]["request_type"] == "MOVE"
