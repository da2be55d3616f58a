"""
SKU Compatibility Scorer

Domain service deciding whether a candidate SKU can stand in for a
requested SKU, and at what priority. Style and waist are never
substituted; shape, length and wash may be, each at its own tier. When
several components are substituted the score is the weakest tier used.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Any

from ....core.config import settings
from ..value_objects.sku import UNIVERSAL_LENGTH, UNIVERSAL_SHAPE, SKUCode


class MatchPriority(IntEnum):
    """Fixed priorities; higher means a better fulfillment."""

    SHAPE = 20
    UNIVERSAL = 40
    LENGTH = 60
    WASH = 80
    EXACT = 100


# candidate wash -> requested washes it may stand in for
WASH_SUBSTITUTIONS: dict[str, frozenset[str]] = {
    "RAW": frozenset({"IND", "BLK"}),
    "IND": frozenset({"RAW", "BLK"}),
    "BLK": frozenset({"IND", "RAW"}),
    "STA": frozenset({"RAW"}),
}

# candidate shape -> requested shapes it may stand in for
SHAPE_SUBSTITUTIONS: dict[str, frozenset[str]] = {
    "S": frozenset({"R"}),
    "R": frozenset({"S"}),
    "L": frozenset({UNIVERSAL_SHAPE}),
    UNIVERSAL_SHAPE: frozenset({"S", "R", "L"}),
}


@dataclass(frozen=True)
class Substitution:
    component: str
    original: str
    substitute: str
    reason: str

    def to_dict(self) -> dict[str, str]:
        return {
            "component": self.component,
            "original": self.original,
            "substitute": self.substitute,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class LengthAdjustment:
    """Hemming needed to turn the candidate's length into the target's."""

    from_length: int
    to_length: int

    @property
    def difference(self) -> int:
        return self.to_length - self.from_length

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "LENGTH",
            "from": self.from_length,
            "to": self.to_length,
            "difference": self.difference,
        }


@dataclass(frozen=True)
class MatchScore:
    score: MatchPriority
    substitutions: tuple[Substitution, ...] = ()
    adjustment: LengthAdjustment | None = None

    @property
    def is_exact(self) -> bool:
        return self.score == MatchPriority.EXACT

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "score": int(self.score),
            "tier": self.score.name,
            "substitutions": [s.to_dict() for s in self.substitutions],
        }
        if self.adjustment is not None:
            data["adjustment"] = self.adjustment.to_dict()
        return data


class SKUCompatibilityScorer:
    """Scores a candidate SKU against a target SKU."""

    def __init__(
        self,
        length_adjustment_range: int | None = None,
        wash_substitutions: dict[str, frozenset[str]] | None = None,
        shape_substitutions: dict[str, frozenset[str]] | None = None,
    ):
        self.length_adjustment_range = (
            settings.SKU_LENGTH_ADJUSTMENT_RANGE
            if length_adjustment_range is None
            else length_adjustment_range
        )
        self.wash_substitutions = wash_substitutions or WASH_SUBSTITUTIONS
        self.shape_substitutions = shape_substitutions or SHAPE_SUBSTITUTIONS

    def score(self, target: SKUCode, candidate: SKUCode) -> MatchScore | None:
        """
        Score ``candidate`` as a fulfillment of ``target``.

        Args:
            target: Requested SKU
            candidate: SKU of an inventory item

        Returns:
            The match score with every substitution applied, or None when
            some differing component has no valid substitution
        """
        if target.style != candidate.style or target.waist != candidate.waist:
            return None

        tiers: list[MatchPriority] = []
        substitutions: list[Substitution] = []
        adjustment: LengthAdjustment | None = None

        if target.shape != candidate.shape:
            if target.shape not in self.shape_substitutions.get(candidate.shape, ()):
                return None
            tiers.append(MatchPriority.SHAPE)
            substitutions.append(
                Substitution("shape", target.shape, candidate.shape, "shape substitution")
            )

        if target.length != candidate.length:
            if candidate.length == UNIVERSAL_LENGTH:
                tiers.append(MatchPriority.UNIVERSAL)
                substitutions.append(
                    Substitution("length", target.length, candidate.length, "universal length")
                )
            elif target.length == UNIVERSAL_LENGTH:
                return None
            else:
                wanted, available = int(target.length), int(candidate.length)
                if abs(wanted - available) > self.length_adjustment_range:
                    return None
                tiers.append(MatchPriority.LENGTH)
                adjustment = LengthAdjustment(from_length=available, to_length=wanted)
                substitutions.append(
                    Substitution("length", target.length, candidate.length, "length adjustment")
                )

        if target.wash != candidate.wash:
            if target.wash not in self.wash_substitutions.get(candidate.wash, ()):
                return None
            tiers.append(MatchPriority.WASH)
            substitutions.append(
                Substitution("wash", target.wash, candidate.wash, "wash substitution")
            )

        return MatchScore(
            score=min(tiers, default=MatchPriority.EXACT),
            substitutions=tuple(substitutions),
            adjustment=adjustment,
        )
