from sqlmodel import col, select

from ....domain.fulfillment.value_objects.enums import ProblemStatus
from ....models.fulfillment import Problem
from .base import BaseRepository


class ProblemRepository(BaseRepository[Problem]):
    entity_name = "problem"

    @property
    def entity_class(self) -> type[Problem]:
        return Problem

    def list_open_for_item(self, item_id: int) -> list[Problem]:
        statement = (
            select(Problem)
            .where(Problem.item_id == item_id, Problem.status == ProblemStatus.REPORTED)
            .order_by(col(Problem.id))
        )
        return list(self.session.exec(statement).all())
