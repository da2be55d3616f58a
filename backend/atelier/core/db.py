from typing import Any

from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine

from .config import settings


def build_engine(database_url: str | None = None, **overrides: Any) -> Engine:
    url = database_url or settings.DATABASE_URL
    engine_kwargs: dict[str, Any] = {"echo": settings.SQL_ECHO}

    if url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {
            "check_same_thread": False,
            "timeout": settings.TRANSACTION_TIMEOUT_SECONDS,
        }
    else:
        engine_kwargs.update(
            {
                "pool_pre_ping": True,  # Verify connections before use
                "pool_recycle": 3600,
                "pool_size": 10,
                "max_overflow": 20,
                "isolation_level": "READ COMMITTED",
                "connect_args": {
                    "connect_timeout": int(settings.TRANSACTION_TIMEOUT_SECONDS),
                    "application_name": settings.PROJECT_NAME,
                },
            }
        )

    engine_kwargs.update(overrides)
    return create_engine(url, **engine_kwargs)


engine = build_engine()


def init_db(target: Engine | None = None) -> None:
    # make sure all SQLModel models are imported before creating tables
    from .. import models  # noqa: F401

    SQLModel.metadata.create_all(target or engine)

