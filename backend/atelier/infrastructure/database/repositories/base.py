"""
Base repository implementation providing generic lookups.

Repositories never commit: the unit of work that owns the session decides
whether a transaction commits or rolls back.
"""

from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from sqlmodel import Session, SQLModel, select

from ....domain.shared.exceptions import NotFoundError

EntityType = TypeVar("EntityType", bound=SQLModel)


class BaseRepository(Generic[EntityType], ABC):
    """Common persistence operations for a single table model."""

    def __init__(self, session: Session):
        self.session = session

    @property
    @abstractmethod
    def entity_class(self) -> type[EntityType]:
        """Return the SQLModel entity class managed by this repository."""

    entity_name: str = "entity"

    def add(self, entity: EntityType) -> EntityType:
        """Stage a new entity and flush so it receives its primary key."""
        self.session.add(entity)
        self.session.flush()
        return entity

    def get(self, entity_id: Any) -> EntityType | None:
        if entity_id is None:
            return None
        return self.session.get(self.entity_class, entity_id)

    def require(self, entity_id: Any, code: str | None = None) -> EntityType:
        """
        Get entity by ID, raising if it does not exist.

        Raises:
            NotFoundError: If no entity has this ID
        """
        entity = self.get(entity_id)
        if entity is None:
            raise NotFoundError(self.entity_name, entity_id, code=code)
        return entity

    def list_all(self, limit: int = 100, offset: int = 0) -> list[EntityType]:
        statement = (
            select(self.entity_class)
            .order_by(self.entity_class.id)
            .offset(offset)
            .limit(limit)
        )
        return list(self.session.exec(statement).all())
