"""Property-based checks for the SKU compatibility scorer."""

import pytest
from hypothesis import assume, given, strategies as st

from atelier.domain.fulfillment.services.sku_scorer import (
    SHAPE_SUBSTITUTIONS,
    WASH_SUBSTITUTIONS,
    MatchPriority,
    SKUCompatibilityScorer,
)
from atelier.domain.fulfillment.value_objects.sku import (
    LENGTH_RANGE,
    UNIVERSAL_LENGTH,
    VALID_SHAPES,
    VALID_STYLES,
    VALID_WASHES,
    WAIST_RANGE,
    SKUCode,
)

pytestmark = pytest.mark.property

TIER_BY_COMPONENT = {
    "shape": MatchPriority.SHAPE,
    "wash": MatchPriority.WASH,
}


@st.composite
def sku_codes(draw):
    length = draw(
        st.one_of(
            st.integers(min_value=LENGTH_RANGE[0], max_value=LENGTH_RANGE[1]).map(
                lambda n: f"{n:02d}"
            ),
            st.just(UNIVERSAL_LENGTH),
        )
    )
    return SKUCode(
        style=draw(st.sampled_from(sorted(VALID_STYLES))),
        waist=f"{draw(st.integers(min_value=WAIST_RANGE[0], max_value=WAIST_RANGE[1])):02d}",
        shape=draw(st.sampled_from(sorted(VALID_SHAPES))),
        length=length,
        wash=draw(st.sampled_from(sorted(VALID_WASHES))),
    )


def _stand_ins(table: dict[str, frozenset[str]], wanted: str) -> list[str]:
    """The requested value itself plus every value allowed to replace it."""
    return [wanted] + sorted(c for c, targets in table.items() if wanted in targets)


@st.composite
def sku_pairs(draw):
    """A target and a candidate built only from permitted substitutions."""
    target = draw(sku_codes())
    if target.has_universal_length:
        lengths = [UNIVERSAL_LENGTH]
    else:
        wanted = int(target.length)
        lengths = [target.length, UNIVERSAL_LENGTH] + [
            f"{wanted + offset:02d}"
            for offset in (-2, -1, 1, 2)
            if LENGTH_RANGE[0] <= wanted + offset <= LENGTH_RANGE[1]
        ]
    candidate = SKUCode(
        style=target.style,
        waist=target.waist,
        shape=draw(st.sampled_from(_stand_ins(SHAPE_SUBSTITUTIONS, target.shape))),
        length=draw(st.sampled_from(lengths)),
        wash=draw(st.sampled_from(_stand_ins(WASH_SUBSTITUTIONS, target.wash))),
    )
    return target, candidate


scorer = SKUCompatibilityScorer(length_adjustment_range=2)


def expected_tier(substitution) -> MatchPriority:
    if substitution.component == "length":
        if substitution.substitute == UNIVERSAL_LENGTH:
            return MatchPriority.UNIVERSAL
        return MatchPriority.LENGTH
    return TIER_BY_COMPONENT[substitution.component]


class TestScorerProperties:
    @given(sku=sku_codes())
    def test_identical_skus_are_exact(self, sku):
        result = scorer.score(sku, sku)

        assert result is not None
        assert result.score == MatchPriority.EXACT
        assert result.substitutions == ()

    @given(target=sku_codes(), candidate=sku_codes())
    def test_style_or_waist_difference_never_matches(self, target, candidate):
        assume(target.prefix != candidate.prefix)

        assert scorer.score(target, candidate) is None

    @given(pair=sku_pairs())
    def test_score_is_weakest_substitution_tier(self, pair):
        target, candidate = pair
        result = scorer.score(target, candidate)

        assert result is not None
        assert result.score <= MatchPriority.EXACT
        if result.substitutions:
            tiers = [expected_tier(s) for s in result.substitutions]
            assert result.score == min(tiers)
            assert not result.is_exact
        else:
            assert candidate == target

    @given(pair=sku_pairs())
    def test_substitutions_name_only_differing_components(self, pair):
        target, candidate = pair
        result = scorer.score(target, candidate)

        assert result is not None
        for substitution in result.substitutions:
            assert getattr(target, substitution.component) == substitution.original
            assert getattr(candidate, substitution.component) == substitution.substitute
            assert substitution.original != substitution.substitute

    @given(
        sku=sku_codes(),
        wanted=st.integers(min_value=LENGTH_RANGE[0], max_value=LENGTH_RANGE[1]),
        offset=st.integers(min_value=-4, max_value=4).filter(bool),
    )
    def test_length_adjustment_only_within_range(self, sku, wanted, offset):
        available = wanted + offset
        assume(LENGTH_RANGE[0] <= available <= LENGTH_RANGE[1])
        target = sku.with_length(wanted)
        candidate = sku.with_length(available)

        result = scorer.score(target, candidate)

        if abs(offset) > 2:
            assert result is None
        else:
            assert result.score == MatchPriority.LENGTH
            assert result.adjustment.difference == -offset
            assert result.adjustment.to_length == wanted
