from sqlmodel import col, select

from ....models.fulfillment import Order, OrderItem
from .base import BaseRepository


class OrderRepository(BaseRepository[Order]):
    entity_name = "order"

    @property
    def entity_class(self) -> type[Order]:
        return Order

    def get_by_number(self, order_number: str) -> Order | None:
        statement = select(Order).where(Order.order_number == order_number)
        return self.session.exec(statement).first()


class OrderItemRepository(BaseRepository[OrderItem]):
    entity_name = "order item"

    @property
    def entity_class(self) -> type[OrderItem]:
        return OrderItem

    def list_for_order(self, order_id: int) -> list[OrderItem]:
        statement = (
            select(OrderItem)
            .where(OrderItem.order_id == order_id)
            .order_by(col(OrderItem.id))
        )
        return list(self.session.exec(statement).all())
