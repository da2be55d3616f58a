from functools import lru_cache
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing_extensions import Self


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    PROJECT_NAME: str = "atelier"
    ENVIRONMENT: Literal["local", "test", "staging", "production"] = "local"

    # Database
    DATABASE_URL: str = "sqlite:///./atelier.db"
    SQL_ECHO: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: Literal["json", "console"] = "console"

    # Transaction retry policy
    TRANSACTION_MAX_ATTEMPTS: int = 3
    TRANSACTION_RETRY_BASE_DELAY: float = 0.1  # seconds, doubled per attempt
    TRANSACTION_RETRY_MAX_DELAY: float = 2.0
    TRANSACTION_TIMEOUT_SECONDS: float = 10.0

    # SKU substitution rules
    SKU_LENGTH_ADJUSTMENT_RANGE: int = 2

    # Workflow
    REQUEST_MAX_RETRIES: int = 3
    WASH_RETURN_LOCATION: str = "WASH-RETURN"

    # Shipment preparation
    DEFAULT_COURIER: str = "STANDARD-GROUND"
    DELIVERY_ESTIMATE_DAYS: int = 3

    @model_validator(mode="after")
    def _check_retry_policy(self) -> Self:
        if self.TRANSACTION_MAX_ATTEMPTS < 1:
            raise ValueError("TRANSACTION_MAX_ATTEMPTS must be at least 1")
        if self.TRANSACTION_RETRY_BASE_DELAY < 0 or self.TRANSACTION_RETRY_MAX_DELAY < 0:
            raise ValueError("Transaction retry delays cannot be negative")
        if self.SKU_LENGTH_ADJUSTMENT_RANGE < 0:
            raise ValueError("SKU_LENGTH_ADJUSTMENT_RANGE cannot be negative")
        if self.REQUEST_MAX_RETRIES < 0:
            raise ValueError("REQUEST_MAX_RETRIES cannot be negative")
        return self


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
