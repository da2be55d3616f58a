"""Bin repository. All occupancy changes are conditional single-statement updates."""

from typing import Any

from sqlalchemy import or_, update
from sqlmodel import col, select

from ....domain.fulfillment.value_objects.enums import BinHistoryAction, BinType
from ....models.fulfillment import Bin, BinHistory
from .base import BaseRepository


class BinRepository(BaseRepository[Bin]):
    entity_name = "bin"

    @property
    def entity_class(self) -> type[Bin]:
        return Bin

    def get_by_code(self, code: str) -> Bin | None:
        statement = select(Bin).where(Bin.code == code)
        return self.session.exec(statement).first()

    def find_with_room(
        self, sku_affinity: str | None, bin_type: BinType = BinType.STORAGE
    ) -> list[Bin]:
        """Active bins of ``bin_type`` with at least one free slot.

        A bin matches when its affinity equals ``sku_affinity`` or it has no
        affinity at all. Ordered fullest first.
        """
        statement = select(Bin).where(
            Bin.bin_type == bin_type,
            col(Bin.is_active).is_(True),
            col(Bin.current_count) < col(Bin.capacity),
        )
        if sku_affinity is not None:
            statement = statement.where(
                or_(Bin.affinity_sku == sku_affinity, col(Bin.affinity_sku).is_(None))
            )
        statement = statement.order_by(col(Bin.current_count).desc(), col(Bin.id))
        return list(self.session.exec(statement).all())

    def _conditional_update(self, bin_: Bin, *conditions: Any, **values: Any) -> bool:
        self.session.flush()
        statement = (
            update(Bin)
            .where(col(Bin.id) == bin_.id, *conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(statement)
        self.session.refresh(bin_)
        return result.rowcount == 1

    def try_increment(self, bin_: Bin, quantity: int = 1) -> bool:
        """Add ``quantity`` only if the bin is active and stays within capacity."""
        return self._conditional_update(
            bin_,
            col(Bin.is_active).is_(True),
            col(Bin.current_count) + quantity <= col(Bin.capacity),
            current_count=col(Bin.current_count) + quantity,
        )

    def try_decrement(self, bin_: Bin, quantity: int = 1) -> bool:
        """Remove ``quantity`` only if the count does not go below zero."""
        return self._conditional_update(
            bin_,
            col(Bin.current_count) - quantity >= 0,
            current_count=col(Bin.current_count) - quantity,
        )

    def reset_count(self, bin_: Bin) -> None:
        self._conditional_update(bin_, current_count=0)

    def set_active(self, bin_: Bin, is_active: bool) -> None:
        self._conditional_update(bin_, is_active=is_active)


class BinHistoryRepository(BaseRepository[BinHistory]):
    entity_name = "bin history"

    @property
    def entity_class(self) -> type[BinHistory]:
        return BinHistory

    def record(
        self,
        bin_id: int,
        action: BinHistoryAction,
        quantity: int = 1,
        item_id: int | None = None,
        request_id: int | None = None,
        actor_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> BinHistory:
        return self.add(
            BinHistory(
                bin_id=bin_id,
                action=action,
                quantity=quantity,
                item_id=item_id,
                request_id=request_id,
                actor_id=actor_id,
                details=details or {},
            )
        )

    def list_for_bin(self, bin_id: int) -> list[BinHistory]:
        statement = (
            select(BinHistory)
            .where(BinHistory.bin_id == bin_id)
            .order_by(col(BinHistory.id))
        )
        return list(self.session.exec(statement).all())
