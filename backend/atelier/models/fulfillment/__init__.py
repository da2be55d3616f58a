"""Fulfillment table models."""

from .audit import AuditEvent, Notification
from .base import utcnow
from .batch import Batch
from .bin import Bin, BinCreate, BinHistory
from .inventory import InventoryItem, InventoryItemCreate
from .order import Order, OrderCreate, OrderItem, OrderItemCreate
from .problem import Problem
from .request import Request, RequestTimeline

__all__ = [
    "AuditEvent",
    "Batch",
    "Bin",
    "BinCreate",
    "BinHistory",
    "InventoryItem",
    "InventoryItemCreate",
    "Notification",
    "Order",
    "OrderCreate",
    "OrderItem",
    "OrderItemCreate",
    "Problem",
    "Request",
    "RequestTimeline",
    "utcnow",
]
