from .batch_repository import BatchRepository
from .bin_repository import BinHistoryRepository, BinRepository
from .inventory_repository import InventoryRepository
from .order_repository import OrderItemRepository, OrderRepository
from .problem_repository import ProblemRepository
from .request_repository import RequestRepository, TimelineRepository

__all__ = [
    "BatchRepository",
    "BinHistoryRepository",
    "BinRepository",
    "InventoryRepository",
    "OrderItemRepository",
    "OrderRepository",
    "ProblemRepository",
    "RequestRepository",
    "TimelineRepository",
]
