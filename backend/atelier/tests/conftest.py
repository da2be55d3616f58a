"""Shared fixtures: a fresh SQLite database per test and services bound to it."""

import pytest
from sqlalchemy.engine import Engine

from atelier.application.services import FulfillmentServices, build_services
from atelier.core.db import build_engine, init_db
from atelier.core.unit_of_work import RetryConfig
from atelier.infrastructure.database.unit_of_work import (
    UnitOfWorkFactory,
    session_factory_for,
    unit_of_work_factory,
)


@pytest.fixture
def db_engine(tmp_path) -> Engine:
    engine = build_engine(f"sqlite:///{tmp_path / 'atelier-test.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return session_factory_for(db_engine)


@pytest.fixture
def uow_factory(db_engine) -> UnitOfWorkFactory:
    return unit_of_work_factory(db_engine)


@pytest.fixture
def retry_config() -> RetryConfig:
    return RetryConfig(max_attempts=5, base_delay=0, sleep=lambda _: None)


@pytest.fixture
def services(db_engine, retry_config) -> FulfillmentServices:
    return build_services(db_engine, retry_config)
