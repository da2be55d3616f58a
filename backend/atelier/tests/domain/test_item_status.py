"""Tests for the item lifecycle tables."""

import pytest

from atelier.domain.fulfillment.value_objects.item_status import (
    ALLOWED_STATUS_PAIRS,
    ItemDetailStatus,
    ItemStatus,
    commitment_of,
    is_valid_pair,
    validate_item_transition,
)
from atelier.domain.shared.exceptions import InvalidTransitionError

S = ItemStatus
D = ItemDetailStatus


class TestStageTransitions:
    @pytest.mark.parametrize(
        "current,target",
        [
            (S.PRODUCTION, S.WASH),
            (S.WASH, S.WASHING),
            (S.WASHING, S.QC),
            (S.QC, S.FINISHING),
            (S.FINISHING, S.AVAILABLE),
            (S.AVAILABLE, S.PACKING),
            (S.PACKING, S.SHIPPED),
            (S.QC, S.DEFECTIVE),
            (S.DEFECTIVE, S.WASH),
            (S.PENDING_REPAIR, S.QC),
        ],
    )
    def test_pipeline_transitions_are_allowed(self, current, target):
        assert current.can_transition_to(target)

    @pytest.mark.parametrize(
        "current,target",
        [
            (S.PRODUCTION, S.PACKING),
            (S.WASH, S.QC),
            (S.QC, S.AVAILABLE),
            (S.SHIPPED, S.AVAILABLE),
            (S.SCRAPPED, S.STOCK),
        ],
    )
    def test_skipping_stages_is_rejected(self, current, target):
        assert not current.can_transition_to(target)

    def test_same_stage_allowed_unless_terminal(self):
        assert S.QC.can_transition_to(S.QC)
        assert not S.SHIPPED.can_transition_to(S.SHIPPED)

    def test_terminal_stages(self):
        assert {s for s in S if s.is_terminal} == {S.SHIPPED, S.SCRAPPED}


class TestStatusPairs:
    def test_every_stage_has_pairs(self):
        assert set(ALLOWED_STATUS_PAIRS) == set(S)

    def test_known_pairs(self):
        assert is_valid_pair(S.IN_USE, D.CUTTING)
        assert is_valid_pair(S.AVAILABLE, D.READY_FOR_PACKING)
        assert is_valid_pair(S.PACKING, D.PACKED)
        assert not is_valid_pair(S.PACKING, D.COMMITTED)
        assert not is_valid_pair(S.SCRAPPED, D.COMMITTED)

    def test_validate_rejects_bad_pair(self):
        with pytest.raises(InvalidTransitionError) as exc_info:
            validate_item_transition((S.AVAILABLE, D.READY_FOR_PACKING), (S.PACKING, D.COMMITTED))

        assert exc_info.value.code == "INVALID_STATUS_PAIR"

    def test_validate_rejects_bad_stage(self):
        with pytest.raises(InvalidTransitionError) as exc_info:
            validate_item_transition((S.WASH, D.COMMITTED), (S.FINISHING, D.COMMITTED))

        assert exc_info.value.code == "INVALID_TRANSITION"
        assert exc_info.value.details["from"] == "WASH/COMMITTED"

    def test_validate_accepts_legal_move(self):
        validate_item_transition((S.AVAILABLE, D.RAW), (S.IN_USE, D.CUTTING))

    def test_commitment_follows_order_assignment(self):
        assert commitment_of(None) == D.UNCOMMITTED
        assert commitment_of(7) == D.COMMITTED
