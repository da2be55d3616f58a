"""
Inventory Matcher

Resolves a requested SKU against available inventory in three phases,
stopping at the first that succeeds:

1. exact SKU, oldest item first;
2. universal-length item of the same style, waist and shape whose wash is
   in the requested wash group;
3. every item sharing the style-waist prefix, scored and ranked.

The first two phases are single indexed lookups; only the third scans.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from ....core.observability import get_logger
from ..value_objects.sku import UNIVERSAL_LENGTH, WASH_GROUPS, SKUCode
from .sku_scorer import MatchPriority, MatchScore, SKUCompatibilityScorer

logger = get_logger(__name__)


class InventoryReader(Protocol):
    def find_first_by_skus(
        self, skus: list[str], uncommitted_only: bool = True
    ) -> Any: ...

    def find_by_prefix(self, prefix: str, uncommitted_only: bool = True) -> list[Any]: ...


class MatchPhase(str, Enum):
    EXACT = "EXACT"
    UNIVERSAL = "UNIVERSAL"
    SCORED = "SCORED"


@dataclass(frozen=True)
class InventoryMatch:
    item: Any
    phase: MatchPhase
    score: MatchScore

    def to_dict(self) -> dict[str, Any]:
        return {
            "item_id": self.item.id,
            "sku": self.item.sku,
            "phase": self.phase.value,
            **self.score.to_dict(),
        }


class InventoryMatcher:
    """Finds the best inventory item for a requested SKU."""

    def __init__(
        self,
        items: InventoryReader,
        scorer: SKUCompatibilityScorer | None = None,
    ):
        self.items = items
        self.scorer = scorer or SKUCompatibilityScorer()

    def find_matching_sku(
        self, target: str | SKUCode, uncommitted_only: bool = True
    ) -> Any | None:
        """Return the best matching inventory item, or None."""
        match = self.find_best_match(target, uncommitted_only)
        return match.item if match else None

    def find_best_match(
        self, target: str | SKUCode, uncommitted_only: bool = True
    ) -> InventoryMatch | None:
        """
        Find the best match together with how it was found.

        Args:
            target: Requested SKU string or parsed code
            uncommitted_only: Only consider items not promised to an order

        Returns:
            The winning match, or None if nothing can fulfil ``target``

        Raises:
            SKUFormatError: If ``target`` is not a valid SKU
        """
        target_sku = target if isinstance(target, SKUCode) else SKUCode.parse(target)

        item = self.items.find_first_by_skus([target_sku.format()], uncommitted_only)
        if item is not None:
            return InventoryMatch(item, MatchPhase.EXACT, MatchScore(MatchPriority.EXACT))

        universal = self._find_universal(target_sku, uncommitted_only)
        if universal is not None:
            return universal

        ranked = self.rank_candidates(
            target_sku, self.items.find_by_prefix(target_sku.prefix, uncommitted_only)
        )
        if not ranked:
            logger.info("sku_match_not_found", target=target_sku.format())
            return None
        return ranked[0]

    def _find_universal(
        self, target: SKUCode, uncommitted_only: bool
    ) -> InventoryMatch | None:
        if target.has_universal_length:
            return None

        group = target.wash_group
        washes = sorted(
            wash
            for wash, wash_group in WASH_GROUPS.items()
            if wash_group == group
            and (
                wash == target.wash
                or target.wash in self.scorer.wash_substitutions.get(wash, ())
            )
        )
        skus = [
            f"{target.prefix}-{target.shape}-{UNIVERSAL_LENGTH}-{wash}" for wash in washes
        ]
        item = self.items.find_first_by_skus(skus, uncommitted_only)
        if item is None:
            return None

        score = self.scorer.score(target, SKUCode.parse(item.sku))
        return InventoryMatch(item, MatchPhase.UNIVERSAL, score)

    def rank_candidates(
        self, target: SKUCode, candidates: list[Any]
    ) -> list[InventoryMatch]:
        """
        Score and order candidates, dropping those that cannot substitute.

        Ordering: higher score first, then fewer substitutions, then the
        oldest item.
        """
        matches = []
        for item in candidates:
            score = self.scorer.score(target, SKUCode.parse(item.sku))
            if score is not None:
                matches.append(InventoryMatch(item, MatchPhase.SCORED, score))

        matches.sort(
            key=lambda m: (
                -int(m.score.score),
                len(m.score.substitutions),
                m.item.created_at,
                m.item.id or 0,
            )
        )
        return matches
