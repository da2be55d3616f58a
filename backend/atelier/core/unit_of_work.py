"""
Transaction runner with bounded retries.

Every fulfillment operation runs inside ``run_in_transaction``: the whole
operation is replayed in a fresh unit of work when a transient failure
(lost optimistic-lock race, dropped connection, locked database) occurs.
"""

import logging
import time
from collections.abc import Callable
from functools import wraps
from typing import TYPE_CHECKING, Any, TypeVar

from sqlalchemy.exc import DisconnectionError, OperationalError

from ..domain.shared.exceptions import (
    ConcurrencyConflictError,
    DomainError,
    TransactionFailureError,
)
from .config import settings

if TYPE_CHECKING:
    from ..infrastructure.database.unit_of_work import SqlModelUnitOfWork

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryConfig:
    """Configuration for retry mechanism."""

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 0.1,
        max_delay: float = 2.0,
        exponential_backoff: bool = True,
        retryable_exceptions: list[type[Exception]] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_backoff = exponential_backoff
        self.retryable_exceptions = retryable_exceptions or [
            ConcurrencyConflictError,
            DisconnectionError,
            OperationalError,
        ]
        self.sleep = sleep

    @classmethod
    def from_settings(cls) -> "RetryConfig":
        return cls(
            max_attempts=settings.TRANSACTION_MAX_ATTEMPTS,
            base_delay=settings.TRANSACTION_RETRY_BASE_DELAY,
            max_delay=settings.TRANSACTION_RETRY_MAX_DELAY,
        )

    def is_retryable(self, error: Exception) -> bool:
        if isinstance(error, DomainError):
            return False
        return any(isinstance(error, exc_type) for exc_type in self.retryable_exceptions)

    def delay_for(self, attempt: int) -> float:
        """Delay before retrying after the zero-based ``attempt`` failed."""
        if not self.exponential_backoff:
            return self.base_delay
        return min(self.base_delay * (2**attempt), self.max_delay)


def run_in_transaction(
    operation: Callable[["SqlModelUnitOfWork"], T],
    uow_factory: Callable[[], "SqlModelUnitOfWork"],
    retry_config: RetryConfig | None = None,
) -> T:
    """
    Run ``operation`` in a unit of work, retrying transient failures.

    Args:
        operation: Callable receiving the active unit of work
        uow_factory: Creates a fresh unit of work per attempt
        retry_config: Retry policy; defaults to the configured settings

    Returns:
        Whatever ``operation`` returns once its transaction commits

    Raises:
        DomainError: Propagated unchanged on the first occurrence
        TransactionFailureError: When every attempt failed transiently
    """
    config = retry_config or RetryConfig.from_settings()
    last_exception: Exception | None = None

    for attempt in range(config.max_attempts):
        try:
            with uow_factory() as uow:
                return operation(uow)
        except Exception as e:
            if not config.is_retryable(e):
                raise

            last_exception = e
            if attempt < config.max_attempts - 1:
                delay = config.delay_for(attempt)
                logger.warning(
                    f"Transaction failed (attempt {attempt + 1}/{config.max_attempts}), "
                    f"retrying in {delay:.2f}s: {e}"
                )
                config.sleep(delay)
            else:
                logger.error(
                    f"Transaction failed after {config.max_attempts} attempts: {e}"
                )

    raise TransactionFailureError(config.max_attempts, last_exception) from last_exception


def transactional(retry_config: RetryConfig | None = None):
    """
    Decorator running a service method inside ``run_in_transaction``.

    The decorated method receives the unit of work as its first argument
    after ``self``; the instance must expose ``uow_factory`` and may expose
    ``retry_config``.

    Usage:
        @transactional()
        def get_request(self, uow, request_id):
            ...
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(self: Any, *args: Any, **kwargs: Any) -> T:
            config = retry_config or getattr(self, "retry_config", None)
            return run_in_transaction(
                lambda uow: func(self, uow, *args, **kwargs),
                self.uow_factory,
                config,
            )

        return wrapper

    return decorator
