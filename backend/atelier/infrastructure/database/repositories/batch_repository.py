from sqlmodel import select

from ....models.fulfillment import Batch
from .base import BaseRepository


class BatchRepository(BaseRepository[Batch]):
    entity_name = "batch"

    @property
    def entity_class(self) -> type[Batch]:
        return Batch

    def get_by_code(self, code: str) -> Batch | None:
        return self.session.exec(select(Batch).where(Batch.code == code)).first()
