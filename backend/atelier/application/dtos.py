"""Read models returned by application services.

Services build these inside the transaction, so callers never touch
session-bound entities.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..domain.fulfillment.value_objects.enums import (
    BatchStatus,
    BinType,
    OrderItemStatus,
    OrderStatus,
    ProblemCategory,
    ProblemStatus,
    RequestStatus,
    RequestType,
    ResolutionAction,
    Severity,
)
from ..domain.fulfillment.value_objects.item_status import ItemDetailStatus, ItemStatus


class _ReadModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class RequestRead(_ReadModel):
    id: int
    request_type: RequestType
    status: RequestStatus
    current_step: str
    item_id: int | None = None
    order_id: int | None = None
    batch_id: int | None = None
    source_request_id: int | None = None
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="meta")
    annotations: dict[str, str] = Field(default_factory=dict)
    retry_count: int = 0
    version: int = 0
    created_by: str | None = None
    created_at: datetime
    updated_at: datetime


class TimelineEntryRead(_ReadModel):
    id: int
    request_id: int
    sequence: int
    step: str
    status: RequestStatus
    operator_id: str
    snapshot: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class StepResponse(BaseModel):
    """Outcome of one request operation."""

    request: RequestRead
    entry: TimelineEntryRead
    spawned_requests: list[RequestRead] = Field(default_factory=list)


class ItemRead(_ReadModel):
    id: int
    sku: str
    status1: ItemStatus
    status2: ItemDetailStatus
    location: str | None = None
    bin_id: int | None = None
    order_item_id: int | None = None
    batch_id: int | None = None


class BinRead(_ReadModel):
    id: int
    code: str
    bin_type: BinType
    affinity_sku: str | None = None
    zone: str | None = None
    capacity: int
    current_count: int
    is_active: bool


class BinAllocationRead(BaseModel):
    bin: BinRead
    requested: int
    reserved: int


class BatchRead(_ReadModel):
    id: int
    code: str
    sku: str
    quantity: int
    status: BatchStatus
    created_by: str | None = None


class GeneratedBatch(BaseModel):
    batch: BatchRead
    items: list[ItemRead]


class OrderItemRead(_ReadModel):
    id: int
    order_id: int
    target_sku: str
    quantity: int
    status: OrderItemStatus
    assigned_item_id: int | None = None
    bin_id: int | None = None
    reserved_quantity: int = 0
    match_details: dict[str, Any] = Field(default_factory=dict)


class OrderRead(_ReadModel):
    id: int
    order_number: str
    customer_name: str | None = None
    status: OrderStatus
    specifications: dict[str, Any] = Field(default_factory=dict)
    shipment: dict[str, Any] = Field(default_factory=dict)


class OrderDetail(BaseModel):
    order: OrderRead
    items: list[OrderItemRead]


class OrderItemMatch(BaseModel):
    order_item_id: int
    target_sku: str
    item: ItemRead
    bin_id: int
    match: dict[str, Any]


class OrderProcessingResult(BaseModel):
    order_id: int
    order_number: str
    status: OrderStatus
    shipment: dict[str, Any]
    matches: list[OrderItemMatch]
    seeded_requests: list[RequestRead]


class ProblemRead(_ReadModel):
    id: int
    item_id: int
    request_id: int | None = None
    category: ProblemCategory
    severity: Severity
    description: str
    discovered_during: str
    reported_by: str
    status: ProblemStatus
    resolution_action: ResolutionAction | None = None
    resolution_notes: str | None = None
    resolved_by: str | None = None
    recovery_request_id: int | None = None


class ProblemReview(BaseModel):
    problem: ProblemRead
    item: ItemRead
    recovery_request: RequestRead | None = None


class LaundryPickupRead(BaseModel):
    bin: BinRead
    items_sent: list[int]
    requests_advanced: list[RequestRead]
