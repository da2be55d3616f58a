"""Tests for per-type request metadata."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from atelier.domain.fulfillment.value_objects.enums import RequestType
from atelier.domain.fulfillment.value_objects.metadata import (
    METADATA_TYPES,
    CuttingMetadata,
    QCMetadata,
    WashMetadata,
    dump_metadata,
    empty_metadata,
    load_metadata,
)


class TestRequestMetadata:
    def test_every_type_has_a_variant(self):
        assert set(METADATA_TYPES) == set(RequestType)

    @pytest.mark.parametrize("request_type", list(RequestType))
    def test_empty_metadata_carries_its_kind(self, request_type):
        assert empty_metadata(request_type).kind == request_type.value

    def test_load_picks_variant_for_type(self):
        metadata = load_metadata(RequestType.CUTTING, {"waste_percentage": 12.5})

        assert isinstance(metadata, CuttingMetadata)
        assert metadata.waste_percentage == 12.5

    def test_stored_kind_cannot_switch_variant(self):
        metadata = load_metadata(RequestType.QC, {"kind": "WASH"})

        assert isinstance(metadata, QCMetadata)

    def test_unknown_fields_are_rejected(self):
        with pytest.raises(PydanticValidationError):
            load_metadata(RequestType.WASH, {"truck": "T-1"})

    def test_dump_omits_unset_fields(self):
        data = dump_metadata(WashMetadata(source_request_id=4, wash_group="LIGHT"))

        assert data == {
            "kind": "WASH",
            "source_request_id": 4,
            "wash_group": "LIGHT",
            "defect_details": {},
        }

    def test_empty_raw_loads_defaults(self):
        assert load_metadata(RequestType.MOVE, None).kind == "MOVE"
