"""
Unit of Work implementation for managing transactions across repositories.

One unit of work is one database transaction: it commits when its block
exits normally and rolls back when the block raises.
"""

import logging
from collections.abc import Callable
from typing import Any

from sqlalchemy.engine import Engine
from sqlmodel import Session

from ...core.db import engine as default_engine
from .repositories import (
    BatchRepository,
    BinHistoryRepository,
    BinRepository,
    InventoryRepository,
    OrderItemRepository,
    OrderRepository,
    ProblemRepository,
    RequestRepository,
    TimelineRepository,
)

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]


def session_factory_for(engine: Engine) -> SessionFactory:
    """Sessions whose loaded objects stay readable after commit."""

    def factory() -> Session:
        return Session(engine, expire_on_commit=False)

    return factory


class SqlModelUnitOfWork:
    """
    SQLModel-based implementation of Unit of Work pattern.

    Manages database transactions using SQLModel/SQLAlchemy sessions and provides
    access to all repositories within a single transactional boundary.
    """

    items: InventoryRepository
    orders: OrderRepository
    order_items: OrderItemRepository
    bins: BinRepository
    bin_history: BinHistoryRepository
    batches: BatchRepository
    requests: RequestRepository
    timeline: TimelineRepository
    problems: ProblemRepository

    def __init__(self, session_factory: SessionFactory | None = None):
        self._session_factory = session_factory or session_factory_for(default_engine)
        self._session: Session | None = None

    @property
    def session(self) -> Session:
        if self._session is None:
            raise RuntimeError("UnitOfWork is not active")
        return self._session

    def __enter__(self) -> "SqlModelUnitOfWork":
        if self._session is not None:
            raise RuntimeError("UnitOfWork is already active")

        self._session = self._session_factory()
        self._init_repositories()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        try:
            if exc_type is not None:
                self.rollback()
                logger.debug("Transaction rolled back: %s", exc_val)
            else:
                try:
                    self.commit()
                except Exception:
                    self.rollback()
                    raise
        finally:
            if self._session is not None:
                self._session.close()
                self._session = None

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    def flush(self) -> None:
        """Flush pending changes so generated IDs become available."""
        self.session.flush()

    def refresh(self, instance: Any) -> None:
        self.session.refresh(instance)

    def _init_repositories(self) -> None:
        """Initialize all repository instances with the current session."""
        session = self.session
        self.items = InventoryRepository(session)
        self.orders = OrderRepository(session)
        self.order_items = OrderItemRepository(session)
        self.bins = BinRepository(session)
        self.bin_history = BinHistoryRepository(session)
        self.batches = BatchRepository(session)
        self.requests = RequestRepository(session)
        self.timeline = TimelineRepository(session)
        self.problems = ProblemRepository(session)


UnitOfWorkFactory = Callable[[], SqlModelUnitOfWork]


def unit_of_work_factory(engine: Engine | None = None) -> UnitOfWorkFactory:
    session_factory = session_factory_for(engine or default_engine)

    def factory() -> SqlModelUnitOfWork:
        return SqlModelUnitOfWork(session_factory)

    return factory
