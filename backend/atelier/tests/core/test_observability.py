"""Tests for structured logging and correlation tracking."""

import structlog

from atelier.core.observability import (
    CorrelationIdProcessor,
    bind_operation,
    clear_operation,
    correlation_id_var,
    get_correlation_id,
    get_logger,
    set_correlation_id,
    setup_structured_logging,
)


class TestCorrelationTracking:
    def test_set_correlation_id_generates_one(self):
        token = correlation_id_var.set("")
        try:
            correlation_id = set_correlation_id()

            assert correlation_id
            assert get_correlation_id() == correlation_id
        finally:
            correlation_id_var.reset(token)

    def test_explicit_correlation_id_is_kept(self):
        token = correlation_id_var.set("")
        try:
            set_correlation_id("corr-123")

            assert get_correlation_id() == "corr-123"
        finally:
            correlation_id_var.reset(token)

    def test_processor_adds_correlation_id(self):
        token = correlation_id_var.set("corr-abc")
        try:
            event = CorrelationIdProcessor()(None, "info", {"event": "bin_reset"})
        finally:
            correlation_id_var.reset(token)

        assert event == {"event": "bin_reset", "correlation_id": "corr-abc"}

    def test_processor_leaves_event_alone_without_id(self):
        token = correlation_id_var.set("")
        try:
            event = CorrelationIdProcessor()(None, "info", {"event": "bin_reset"})
        finally:
            correlation_id_var.reset(token)

        assert event == {"event": "bin_reset"}


class TestSetupStructuredLogging:
    def test_json_renderer_is_last_processor(self):
        setup_structured_logging(log_format="json")

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)
        assert any(isinstance(p, CorrelationIdProcessor) for p in processors)

    def test_console_renderer(self):
        setup_structured_logging(log_format="console")

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)

    def test_get_logger_returns_usable_logger(self):
        logger = get_logger("atelier.tests")

        logger.info("observability_test", bin_code="WAS-001")

    def test_processor_tags_service_and_environment(self):
        processor = CorrelationIdProcessor(service="atelier", environment="test")

        event = processor(None, "info", {"event": "order_processed"})

        assert event["service"] == "atelier"
        assert event["environment"] == "test"


class TestOperationBinding:
    def test_bind_and_clear_operation(self):
        bind_operation("process_order", operator_id="op-1")
        try:
            context = structlog.contextvars.get_contextvars()

            assert context["operation"] == "process_order"
            assert context["operator_id"] == "op-1"
        finally:
            clear_operation()

        assert "operation" not in structlog.contextvars.get_contextvars()
