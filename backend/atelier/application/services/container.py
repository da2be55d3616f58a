"""Wiring of the application services around one database engine."""

from dataclasses import dataclass

from sqlalchemy.engine import Engine

from ...core.db import engine as default_engine
from ...core.observability import setup_structured_logging
from ...core.unit_of_work import RetryConfig
from ...domain.fulfillment.workflow.engine import WorkflowEngine
from ...infrastructure.database.unit_of_work import session_factory_for, unit_of_work_factory
from ...infrastructure.events.event_logger import DatabaseEventLogger
from ...infrastructure.events.notification_service import DatabaseNotificationService
from .bin_service import BinService
from .order_fulfillment_service import OrderFulfillmentService
from .problem_service import ProblemService
from .production_service import ProductionService
from .request_orchestrator import RequestOrchestrator


@dataclass(frozen=True)
class FulfillmentServices:
    requests: RequestOrchestrator
    orders: OrderFulfillmentService
    problems: ProblemService
    production: ProductionService
    bins: BinService


def build_services(
    db_engine: Engine | None = None,
    retry_config: RetryConfig | None = None,
    workflow_engine: WorkflowEngine | None = None,
    configure_logging: bool = True,
) -> FulfillmentServices:
    """Build every service against ``db_engine``, sharing one workflow engine."""
    if configure_logging:
        setup_structured_logging()
    db_engine = db_engine or default_engine
    session_factory = session_factory_for(db_engine)
    common = {
        "uow_factory": unit_of_work_factory(db_engine),
        "retry_config": retry_config,
        "event_logger": DatabaseEventLogger(session_factory),
        "notification_service": DatabaseNotificationService(session_factory),
    }
    workflow_engine = workflow_engine or WorkflowEngine()
    return FulfillmentServices(
        requests=RequestOrchestrator(engine=workflow_engine, **common),
        orders=OrderFulfillmentService(engine=workflow_engine, **common),
        problems=ProblemService(engine=workflow_engine, **common),
        production=ProductionService(**common),
        bins=BinService(**common),
    )
