"""
Application services for fulfillment use cases.

Each service runs its operations as retried transactions over the
fulfillment domain and returns read models from ``application.dtos``.
"""

from .base import FulfillmentService, OperationResult, operation_boundary
from .bin_service import BinService
from .container import FulfillmentServices, build_services
from .order_fulfillment_service import OrderFulfillmentService
from .problem_service import ProblemService
from .production_service import ProductionService
from .request_orchestrator import RequestOrchestrator

__all__ = [
    "BinService",
    "FulfillmentService",
    "FulfillmentServices",
    "OperationResult",
    "OrderFulfillmentService",
    "ProblemService",
    "ProductionService",
    "RequestOrchestrator",
    "build_services",
    "operation_boundary",
]
