"""Tests for the unit of work and the retrying transaction runner."""

import pytest
from sqlalchemy.exc import OperationalError

from atelier.core.unit_of_work import RetryConfig, run_in_transaction, transactional
from atelier.domain.shared.exceptions import (
    ConcurrencyConflictError,
    NotFoundError,
    TransactionFailureError,
)
from atelier.models.fulfillment import Bin
from atelier.tests.factories import make_bin


class TestRetryConfig:
    def test_exponential_backoff_is_capped(self):
        config = RetryConfig(base_delay=0.1, max_delay=0.3)

        assert [config.delay_for(n) for n in range(4)] == [0.1, 0.2, 0.3, 0.3]

    def test_fixed_delay(self):
        config = RetryConfig(base_delay=0.5, exponential_backoff=False)

        assert config.delay_for(3) == 0.5

    def test_domain_errors_are_not_retryable(self):
        config = RetryConfig()

        assert config.is_retryable(ConcurrencyConflictError("bin", 1))
        assert config.is_retryable(OperationalError("SELECT 1", {}, Exception("locked")))
        assert not config.is_retryable(NotFoundError("bin", 1))
        assert not config.is_retryable(ValueError("boom"))


@pytest.mark.integration
class TestRunInTransaction:
    def test_commits_on_success(self, uow_factory, retry_config):
        code = run_in_transaction(lambda uow: make_bin(uow).code, uow_factory, retry_config)

        with uow_factory() as uow:
            assert uow.bins.get_by_code(code) is not None

    def test_rolls_back_on_domain_error(self, uow_factory, retry_config):
        def operation(uow):
            make_bin(uow, code="ROLLED-BACK")
            raise NotFoundError("order", 42)

        with pytest.raises(NotFoundError):
            run_in_transaction(operation, uow_factory, retry_config)

        with uow_factory() as uow:
            assert uow.bins.get_by_code("ROLLED-BACK") is None

    def test_retries_transient_conflicts(self, uow_factory):
        delays = []
        attempts = []

        def operation(uow):
            attempts.append(1)
            if len(attempts) < 3:
                raise ConcurrencyConflictError("bin", 1)
            return "done"

        config = RetryConfig(max_attempts=3, base_delay=0.01, sleep=delays.append)

        assert run_in_transaction(operation, uow_factory, config) == "done"
        assert len(attempts) == 3
        assert delays == [0.01, 0.02]

    def test_exhausted_retries_raise_transaction_failure(self, uow_factory):
        def operation(uow):
            make_bin(uow, code="NEVER")
            raise ConcurrencyConflictError("bin", 1)

        config = RetryConfig(max_attempts=2, base_delay=0, sleep=lambda _: None)

        with pytest.raises(TransactionFailureError) as exc_info:
            run_in_transaction(operation, uow_factory, config)

        assert exc_info.value.attempts == 2
        assert exc_info.value.code == "TRANSACTION_FAILURE"
        assert isinstance(exc_info.value.last_error, ConcurrencyConflictError)
        with uow_factory() as uow:
            assert uow.bins.get_by_code("NEVER") is None

    def test_domain_errors_are_not_retried(self, uow_factory, retry_config):
        attempts = []

        def operation(uow):
            attempts.append(1)
            raise NotFoundError("bin", "X")

        with pytest.raises(NotFoundError):
            run_in_transaction(operation, uow_factory, retry_config)

        assert len(attempts) == 1


@pytest.mark.integration
class TestTransactionalDecorator:
    def test_method_receives_unit_of_work(self, uow_factory, retry_config):
        class BinCounter:
            def __init__(self):
                self.uow_factory = uow_factory
                self.retry_config = retry_config

            @transactional()
            def count(self, uow, prefix):
                return sum(1 for b in uow.bins.list_all() if b.code.startswith(prefix))

        with uow_factory() as uow:
            make_bin(uow, code="CNT-1")
            make_bin(uow, code="CNT-2")

        assert BinCounter().count("CNT") == 2


@pytest.mark.integration
class TestSqlModelUnitOfWork:
    def test_inactive_session_raises(self, uow_factory):
        uow = uow_factory()

        with pytest.raises(RuntimeError):
            uow.session

    def test_objects_stay_readable_after_commit(self, uow_factory):
        with uow_factory() as uow:
            bin_ = uow.bins.add(Bin(code="READABLE", capacity=2))

        assert bin_.code == "READABLE"
        assert bin_.current_count == 0
