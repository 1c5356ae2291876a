"""Tests for dosa.testing helpers."""

import pytest

from dosa.core.connectors.memory import MemoryConnector
from dosa.core.context import background
from dosa.core.errors import NotFoundError
from dosa.testing import TEST_NAME_PREFIX, TEST_SCOPE, new_test_client
from tests._support.entities import Order, Profile


class TestNewTestClient:
    def test_addressing(self):
        client = new_test_client(Order)
        assert client.registrar.scope == TEST_SCOPE == "testing"
        assert client.registrar.name_prefix == TEST_NAME_PREFIX == "dosa.testing"
        assert isinstance(client.connector, MemoryConnector)
        assert "dosa.testing.Order" in client.registrar

    def test_round_trip(self):
        ctx = background()
        client = new_test_client(Order)
        client.initialize(ctx)
        client.upsert(ctx, Order(ID=7, Total=500))
        assert client.read(ctx, Order(ID=7), fields=["Total"]).Total == 500

    def test_only_given_entities_are_registered(self):
        client = new_test_client(Order)
        with pytest.raises(NotFoundError):
            client.upsert(background(), Profile())
