"""Inventory item repository with matching queries and status compare-and-set."""

from collections.abc import Iterable
from typing import Any

from sqlalchemy import update
from sqlmodel import col, select

from ....domain.fulfillment.value_objects.item_status import (
    COMMITMENT_STATUSES,
    MATCHABLE_STATUSES,
    ItemDetailStatus,
    ItemStatus,
    validate_item_transition,
)
from ....domain.shared.exceptions import ConcurrencyConflictError
from ....models.fulfillment import InventoryItem, utcnow
from .base import BaseRepository


class InventoryRepository(BaseRepository[InventoryItem]):
    entity_name = "item"

    @property
    def entity_class(self) -> type[InventoryItem]:
        return InventoryItem

    def _matchable(self, uncommitted_only: bool):
        statement = select(InventoryItem).where(
            col(InventoryItem.status1).in_(MATCHABLE_STATUSES)
        )
        if uncommitted_only:
            statement = statement.where(
                InventoryItem.status2 == ItemDetailStatus.UNCOMMITTED,
                col(InventoryItem.order_item_id).is_(None),
            )
        else:
            statement = statement.where(
                col(InventoryItem.status2).in_(COMMITMENT_STATUSES)
            )
        return statement

    def find_first_by_skus(
        self, skus: Iterable[str], uncommitted_only: bool = True
    ) -> InventoryItem | None:
        """Earliest-created matchable item whose SKU is one of ``skus``."""
        statement = (
            self._matchable(uncommitted_only)
            .where(col(InventoryItem.sku).in_(list(skus)))
            .order_by(col(InventoryItem.created_at), col(InventoryItem.id))
            .limit(1)
        )
        return self.session.exec(statement).first()

    def find_by_prefix(
        self, prefix: str, uncommitted_only: bool = True
    ) -> list[InventoryItem]:
        """Matchable items sharing the style-waist prefix, oldest first."""
        statement = (
            self._matchable(uncommitted_only)
            .where(col(InventoryItem.sku).startswith(f"{prefix}-"))
            .order_by(col(InventoryItem.created_at), col(InventoryItem.id))
        )
        return list(self.session.exec(statement).all())

    def list_in_bin(self, bin_id: int) -> list[InventoryItem]:
        statement = (
            select(InventoryItem)
            .where(InventoryItem.bin_id == bin_id)
            .order_by(col(InventoryItem.id))
        )
        return list(self.session.exec(statement).all())

    def list_for_order_items(self, order_item_ids: Iterable[int]) -> list[InventoryItem]:
        statement = select(InventoryItem).where(
            col(InventoryItem.order_item_id).in_(list(order_item_ids))
        )
        return list(self.session.exec(statement).all())

    def transition(
        self,
        item: InventoryItem,
        status1: ItemStatus,
        status2: ItemDetailStatus,
        **changes: Any,
    ) -> InventoryItem:
        """
        Move an item to ``(status1, status2)`` and apply ``changes``.

        The update only matches while the row still holds the statuses this
        transaction read, so two operators cannot both complete the same
        transition.

        Raises:
            InvalidTransitionError: If the lifecycle table forbids the move
            ConcurrencyConflictError: If the row changed since it was read
        """
        validate_item_transition((item.status1, item.status2), (status1, status2))
        self.session.flush()

        statement = (
            update(InventoryItem)
            .where(
                col(InventoryItem.id) == item.id,
                col(InventoryItem.status1) == item.status1,
                col(InventoryItem.status2) == item.status2,
            )
            .values(status1=status1, status2=status2, updated_at=utcnow(), **changes)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(statement)
        if result.rowcount != 1:
            raise ConcurrencyConflictError("item", item.id)

        self.session.refresh(item)
        return item
