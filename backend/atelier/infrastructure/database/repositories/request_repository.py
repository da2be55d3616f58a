"""Request and timeline repositories."""

from typing import Any

from sqlalchemy import func, update
from sqlmodel import col, select

from ....domain.fulfillment.value_objects.enums import RequestStatus, RequestType
from ....domain.shared.exceptions import ConcurrencyConflictError
from ....models.fulfillment import Request, RequestTimeline, utcnow
from .base import BaseRepository

OPEN_STATUSES = (RequestStatus.PENDING, RequestStatus.IN_PROGRESS)


class RequestRepository(BaseRepository[Request]):
    entity_name = "request"

    @property
    def entity_class(self) -> type[Request]:
        return Request

    def list_open_for_item(
        self, item_id: int, request_type: RequestType | None = None
    ) -> list[Request]:
        statement = select(Request).where(
            Request.item_id == item_id, col(Request.status).in_(OPEN_STATUSES)
        )
        if request_type is not None:
            statement = statement.where(Request.request_type == request_type)
        return list(self.session.exec(statement.order_by(col(Request.id))).all())

    def list_for_order(self, order_id: int) -> list[Request]:
        statement = (
            select(Request).where(Request.order_id == order_id).order_by(col(Request.id))
        )
        return list(self.session.exec(statement).all())

    def update_versioned(self, request: Request, **values: Any) -> Request:
        """
        Write ``values`` if nobody advanced the request since it was read.

        Raises:
            ConcurrencyConflictError: If the stored version moved on
        """
        self.session.flush()
        statement = (
            update(Request)
            .where(col(Request.id) == request.id, col(Request.version) == request.version)
            .values(version=col(Request.version) + 1, updated_at=utcnow(), **values)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(statement)
        if result.rowcount != 1:
            raise ConcurrencyConflictError("request", request.id)

        self.session.refresh(request)
        return request


class TimelineRepository(BaseRepository[RequestTimeline]):
    entity_name = "timeline entry"

    @property
    def entity_class(self) -> type[RequestTimeline]:
        return RequestTimeline

    def append(
        self,
        request_id: int,
        step: str,
        status: RequestStatus,
        operator_id: str,
        snapshot: dict[str, Any] | None = None,
    ) -> RequestTimeline:
        count = self.session.exec(
            select(func.count()).select_from(RequestTimeline).where(
                RequestTimeline.request_id == request_id
            )
        ).one()
        return self.add(
            RequestTimeline(
                request_id=request_id,
                sequence=count + 1,
                step=step,
                status=status,
                operator_id=operator_id,
                snapshot=snapshot or {},
            )
        )

    def list_for_request(self, request_id: int) -> list[RequestTimeline]:
        statement = (
            select(RequestTimeline)
            .where(RequestTimeline.request_id == request_id)
            .order_by(col(RequestTimeline.sequence))
        )
        return list(self.session.exec(statement).all())
