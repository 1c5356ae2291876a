"""Tests for dosa.core.logging module."""

import json
import logging

import structlog

from dosa.core.errors import BackendUnavailableError, NotFoundError
from dosa.core.logging import (
    LogContext,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)


class TestConfigureLogging:
    def teardown_method(self):
        clear_context()
        structlog.reset_defaults()

    def test_json_output_uses_ecs_names(self, caplog):
        caplog.set_level(logging.INFO)
        configure_logging(level="INFO", json_format=True, service="dosa-test")
        get_logger("dosa.test").info("schema_upserted", scope="acct", version=3)

        event = json.loads(caplog.records[-1].getMessage())
        assert event["event"] == "schema_upserted"
        assert event["scope"] == "acct"
        assert event["version"] == 3
        assert event["service.name"] == "dosa-test"
        assert event["log.level"] == "info"
        assert "@timestamp" in event

    def test_dosa_error_is_flattened(self, caplog):
        caplog.set_level(logging.INFO)
        configure_logging(level="INFO", json_format=True)
        error = NotFoundError("no Order row").with_context(operation="read", connector="sqlite", entity="Order")
        get_logger("dosa.test").info("read_failed", error=error, scope="acct")

        event = json.loads(caplog.records[-1].getMessage())
        assert event["error"] == "no Order row"
        assert event["error.type"] == "NotFoundError"
        assert event["error.retryable"] is False
        assert event["connector"] == "sqlite"
        assert event["entity"] == "Order"
        assert event["scope"] == "acct"

    def test_event_fields_win_over_error_context(self, caplog):
        caplog.set_level(logging.INFO)
        configure_logging(level="INFO", json_format=True)
        error = BackendUnavailableError("database locked").with_context(scope="other")
        get_logger("dosa.test").info("upsert_failed", error=error, scope="acct")

        event = json.loads(caplog.records[-1].getMessage())
        assert event["scope"] == "acct"
        assert event["error.retryable"] is True
        assert event["error.category"] == error.category.value

    def test_level_filtering(self, caplog):
        caplog.set_level(logging.DEBUG)
        configure_logging(level="WARNING", json_format=True)
        get_logger("dosa.test").info("hidden_event")
        assert not any("hidden_event" in r.getMessage() for r in caplog.records)


class TestContext:
    def teardown_method(self):
        clear_context()

    def test_log_context_binds_and_unbinds(self):
        with LogContext(scope="acct", entity="Order"):
            bound = structlog.contextvars.get_contextvars()
            assert bound["scope"] == "acct"
            assert bound["entity"] == "Order"
        assert "scope" not in structlog.contextvars.get_contextvars()

    def test_bind_and_clear(self):
        bind_context(request_id="r-1")
        assert structlog.contextvars.get_contextvars()["request_id"] == "r-1"
        clear_context()
        assert structlog.contextvars.get_contextvars() == {}
