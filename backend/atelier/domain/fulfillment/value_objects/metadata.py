"""
Request Metadata

Each request type carries its own metadata model; the ``kind`` field
discriminates the union so the stored JSON always round-trips to the
variant its workflow expects. Free-form operator notes live in the
request's separate ``annotations`` map, not here.
"""

from datetime import date
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from .enums import DefectType, RequestType, Severity


class FailureDetails(BaseModel):
    """Why a request ended FAILED."""

    reason: str
    failed_step: str
    defect_type: DefectType | None = None
    details: dict[str, Any] = Field(default_factory=dict)


class VisualDefect(BaseModel):
    type: str
    severity: Severity = Severity.MEDIUM
    description: str | None = None


class LaundryPickup(BaseModel):
    truck_id: str
    driver_name: str
    expected_return_date: date


class _MetadataBase(BaseModel):
    model_config = ConfigDict(extra="forbid")

    source_request_id: int | None = None
    failure: FailureDetails | None = None


class MoveMetadata(_MetadataBase):
    kind: Literal["MOVE"] = "MOVE"
    expected_destination: str | None = None
    scanned_item_id: int | None = None
    destination: str | None = None
    destination_bin_id: int | None = None
    previous_location: str | None = None


class PatternMetadata(_MetadataBase):
    kind: Literal["PATTERN"] = "PATTERN"
    quantity: int | None = None
    style: str | None = None


class CuttingMetadata(_MetadataBase):
    kind: Literal["CUTTING"] = "CUTTING"
    material_id: int | None = None
    waste_percentage: float | None = None
    pieces_count: int | None = None


class QCMetadata(_MetadataBase):
    kind: Literal["QC"] = "QC"
    measurements: dict[str, float] = Field(default_factory=dict)
    measurement_results: dict[str, dict[str, Any]] = Field(default_factory=dict)
    visual_passed: bool | None = None
    visual_notes: str | None = None
    defect: VisualDefect | None = None
    bin_id: int | None = None


class WashMetadata(_MetadataBase):
    kind: Literal["WASH"] = "WASH"
    bin_id: int | None = None
    wash_group: str | None = None
    defect_type: DefectType | None = None
    defect_details: dict[str, Any] = Field(default_factory=dict)
    pickup: LaundryPickup | None = None
    return_location: str | None = None


class FinishingMetadata(_MetadataBase):
    kind: Literal["FINISHING"] = "FINISHING"
    target_length: int | None = None
    button_color: str | None = None
    button_quantity: int | None = None
    nametag_style: str | None = None
    nametag_placement: str | None = None
    original_sku: str | None = None
    final_sku: str | None = None
    final_qc_passed: bool | None = None


class PackingMetadata(_MetadataBase):
    kind: Literal["PACKING"] = "PACKING"
    validated_order_id: int | None = None
    scanned_item_id: int | None = None
    bin_id: int | None = None


class RecoveryMetadata(_MetadataBase):
    kind: Literal["RECOVERY"] = "RECOVERY"
    problem_id: int | None = None
    repair_notes: str | None = None
    estimated_completion: date | None = None


RequestMetadata = Annotated[
    Union[
        MoveMetadata,
        PatternMetadata,
        CuttingMetadata,
        QCMetadata,
        WashMetadata,
        FinishingMetadata,
        PackingMetadata,
        RecoveryMetadata,
    ],
    Field(discriminator="kind"),
]

metadata_adapter: TypeAdapter[RequestMetadata] = TypeAdapter(RequestMetadata)

METADATA_TYPES: dict[RequestType, type[_MetadataBase]] = {
    RequestType.MOVE: MoveMetadata,
    RequestType.PATTERN: PatternMetadata,
    RequestType.CUTTING: CuttingMetadata,
    RequestType.QC: QCMetadata,
    RequestType.WASH: WashMetadata,
    RequestType.FINISHING: FinishingMetadata,
    RequestType.PACKING: PackingMetadata,
    RequestType.RECOVERY: RecoveryMetadata,
}


def empty_metadata(request_type: RequestType) -> _MetadataBase:
    return METADATA_TYPES[RequestType(request_type)]()


def load_metadata(request_type: RequestType, raw: dict[str, Any] | None) -> Any:
    """Validate stored JSON into the variant for ``request_type``."""
    if not raw:
        return empty_metadata(request_type)
    data = {**raw, "kind": RequestType(request_type).value}
    return metadata_adapter.validate_python(data)


def dump_metadata(metadata: _MetadataBase) -> dict[str, Any]:
    return metadata.model_dump(mode="json", exclude_none=True)
