"""Tests for the in-memory reference connector."""

import threading

import pytest

from dosa.core.connectors.base import Condition, FieldNameValuePair, Operator, SchemaApplyStatus
from dosa.core.connectors.memory import MemoryConnector
from dosa.core.context import background
from dosa.core.entity import EntityInfo, SchemaRef, definition_of
from dosa.core.errors import (
    CancelledError,
    ConnectorClosedError,
    InvalidArgumentError,
    NotFoundError,
    NotImplementedOperationError,
)
from tests._support.entities import Order


@pytest.fixture
def info() -> EntityInfo:
    return EntityInfo(SchemaRef("acct", "billing", "Order"), definition_of(Order))


class TestSchemaAndScope:
    def test_schema_ops(self, memory_connector, ctx):
        definitions = [definition_of(Order)]
        assert memory_connector.check_schema(ctx, "acct", "billing", definitions) == 1
        status = memory_connector.upsert_schema(ctx, "acct", "billing", definitions)
        assert status.version == 1 and status.status is SchemaApplyStatus.APPLIED
        assert memory_connector.check_schema_status(ctx, "acct", "billing", 1).applied

    def test_scope_ops(self, memory_connector, ctx):
        memory_connector.create_scope(ctx, "acct")
        memory_connector.truncate_scope(ctx, "acct")
        memory_connector.drop_scope(ctx, "acct")
        assert memory_connector.scope_exists(ctx, "anything")


class TestSingleRow:
    def test_upsert_then_read_projection(self, memory_connector, ctx, info):
        memory_connector.upsert(ctx, info, {"ID": 7, "Total": 500})
        assert memory_connector.read(ctx, info, {"ID": 7}, ["Total"]) == {"Total": 500}

    def test_read_all_fields(self, memory_connector, ctx, info):
        memory_connector.upsert(ctx, info, {"ID": 7, "Total": 500})
        assert memory_connector.read(ctx, info, {"ID": 7}) == {"ID": 7, "Total": 500, "Note": None}

    def test_read_empty_entity(self, memory_connector, ctx, info):
        with pytest.raises(NotFoundError):
            memory_connector.read(ctx, info, {"ID": 1})

    def test_upsert_replaces_matching_row(self, memory_connector, ctx, info):
        memory_connector.upsert(ctx, info, {"ID": 7, "Total": 500})
        memory_connector.upsert(ctx, info, {"ID": 7, "Total": 900})
        assert memory_connector.row_count("Order") == 1
        assert memory_connector.read(ctx, info, {"ID": 7}, ["Total"]) == {"Total": 900}

    def test_upsert_appends_new_key(self, memory_connector, ctx, info):
        memory_connector.upsert(ctx, info, {"ID": 7, "Total": 500})
        memory_connector.upsert(ctx, info, {"ID": 8, "Total": 1})
        assert memory_connector.row_count("Order") == 2

    def test_read_returns_first_row_whatever_the_key(self, memory_connector, ctx, info):
        memory_connector.create_if_not_exists(ctx, info, {"ID": 1, "Total": 10})
        memory_connector.create_if_not_exists(ctx, info, {"ID": 2, "Total": 20})
        assert memory_connector.read(ctx, info, {"ID": 2}, ["Total"]) == {"Total": 10}

    def test_create_if_not_exists_appends(self, memory_connector, ctx, info):
        memory_connector.create_if_not_exists(ctx, info, {"ID": 1, "Total": 10})
        memory_connector.create_if_not_exists(ctx, info, {"ID": 1, "Total": 10})
        assert memory_connector.row_count("Order") == 2

    def test_remove(self, memory_connector, ctx, info):
        memory_connector.upsert(ctx, info, {"ID": 7, "Total": 500})
        memory_connector.remove(ctx, info, {"ID": 7})
        assert memory_connector.row_count("Order") == 0

    def test_remove_absent_key_succeeds(self, memory_connector, ctx, info):
        memory_connector.remove(ctx, info, {"ID": 404})
        memory_connector.upsert(ctx, info, {"ID": 7, "Total": 500})
        memory_connector.remove(ctx, info, {"ID": 404})
        assert memory_connector.row_count("Order") == 1

    def test_missing_key_rejected(self, memory_connector, ctx, info):
        with pytest.raises(InvalidArgumentError, match="missing value for key field 'ID'"):
            memory_connector.upsert(ctx, info, {"Total": 500})

    def test_wrong_type_rejected(self, memory_connector, ctx, info):
        with pytest.raises(InvalidArgumentError):
            memory_connector.upsert(ctx, info, {"ID": 7, "Total": "lots"})

    def test_invalid_entity_info(self, memory_connector, ctx):
        with pytest.raises(InvalidArgumentError, match="missing scope"):
            bad = EntityInfo(SchemaRef("", "billing", "Order"), definition_of(Order))
            memory_connector.upsert(ctx, bad, {"ID": 7})

    def test_cancelled_context(self, memory_connector, cancelled_ctx, info):
        with pytest.raises(CancelledError):
            memory_connector.upsert(cancelled_ctx, info, {"ID": 7})
        assert memory_connector.row_count("Order") == 0

    def test_concurrent_upserts(self, memory_connector, info):
        def worker(start):
            for i in range(start, start + 50):
                memory_connector.upsert(background(), info, {"ID": i, "Total": i})

        threads = [threading.Thread(target=worker, args=(n * 50,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert memory_connector.row_count("Order") == 200


class TestUnsupported:
    """Batch and scan calls fail explicitly instead of returning empty results."""

    @pytest.mark.parametrize(
        "call",
        [
            lambda c, ctx, ei: c.multi_read(ctx, ei, [{"ID": 1}]),
            lambda c, ctx, ei: c.multi_upsert(ctx, ei, [{"ID": 1}]),
            lambda c, ctx, ei: c.multi_remove(ctx, ei, [{"ID": 1}]),
            lambda c, ctx, ei: c.range(ctx, ei, {"ID": [Condition(Operator.EQ, 1)]}),
            lambda c, ctx, ei: c.search(ctx, ei, FieldNameValuePair("Total", 1)),
            lambda c, ctx, ei: c.scan(ctx, ei),
        ],
        ids=["multi_read", "multi_upsert", "multi_remove", "range", "search", "scan"],
    )
    def test_raises_not_implemented(self, memory_connector, ctx, info, call):
        with pytest.raises(NotImplementedOperationError) as exc_info:
            call(memory_connector, ctx, info)
        assert isinstance(exc_info.value, NotImplementedError)
        assert exc_info.value.connector == "memory"


class TestShutdown:
    def test_calls_after_shutdown(self, ctx, info):
        connector = MemoryConnector()
        connector.upsert(ctx, info, {"ID": 7, "Total": 500})
        connector.shutdown()
        assert connector.closed
        with pytest.raises(ConnectorClosedError):
            connector.read(ctx, info, {"ID": 7})
        with pytest.raises(ConnectorClosedError):
            connector.shutdown()

    def test_context_manager(self, ctx):
        with MemoryConnector() as connector:
            assert not connector.closed
        assert connector.closed
        assert repr(connector) == "MemoryConnector(closed)"
