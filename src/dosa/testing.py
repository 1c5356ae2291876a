"""
Test helpers.

``new_test_client`` gives unit tests a ready-to-use client over the
in-memory connector, so application code can be exercised without a
database.

Examples:
    >>> client = new_test_client(Order)
    >>> client.upsert(background(), Order(ID=7, Total=500))
"""

from __future__ import annotations

from typing import Any

from dosa.core.client import Client
from dosa.core.connectors.memory import MemoryConnector
from dosa.core.registry import Registrar

TEST_SCOPE = "testing"
TEST_NAME_PREFIX = "dosa.testing"


def new_test_client(*entities: Any) -> Client:
    """Client with scope ``testing``, prefix ``dosa.testing`` and a fresh MemoryConnector."""
    registrar = Registrar.from_entities(TEST_SCOPE, TEST_NAME_PREFIX, *entities)
    return Client(registrar, MemoryConnector())


__all__ = [
    "TEST_SCOPE",
    "TEST_NAME_PREFIX",
    "new_test_client",
]
