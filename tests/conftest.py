"""
Shared pytest fixtures for dosa tests.

This module provides:
- Execution contexts
- Connector fixtures (memory, sqlite) that shut down after each test
- Registrars and clients over the sample entities in tests._support.entities

Usage:
    Fixtures are auto-discovered by pytest; request them as test arguments.

    def test_read(sqlite_client):
        ...
"""

import sys
from pathlib import Path
from typing import Generator

import pytest

# Ensure dosa package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent.parent))

from dosa.core.client import Client
from dosa.core.connectors.memory import MemoryConnector
from dosa.core.connectors.sqlite import SQLiteConnector
from dosa.core.context import ExecutionContext, background
from dosa.core.registry import Registrar
from tests._support.entities import EventRecord, Order, Profile


# =============================================================================
# Contexts
# =============================================================================


@pytest.fixture
def ctx() -> ExecutionContext:
    """Fresh background context."""
    return background()


@pytest.fixture
def cancelled_ctx() -> ExecutionContext:
    """Context that has already been cancelled."""
    context = background()
    context.cancel()
    return context


# =============================================================================
# Registrars & connectors
# =============================================================================


@pytest.fixture
def registrar() -> Registrar:
    """Registrar for scope ``acct`` and prefix ``billing`` holding every sample entity."""
    return Registrar.from_entities("acct", "billing", Order, EventRecord, Profile)


@pytest.fixture
def memory_connector() -> Generator[MemoryConnector, None, None]:
    connector = MemoryConnector()
    yield connector
    if not connector.closed:
        connector.shutdown()


@pytest.fixture
def sqlite_connector() -> Generator[SQLiteConnector, None, None]:
    """In-memory SQLite connector."""
    connector = SQLiteConnector()
    yield connector
    if not connector.closed:
        connector.shutdown()


@pytest.fixture
def sqlite_client(registrar: Registrar, sqlite_connector: SQLiteConnector, ctx: ExecutionContext) -> Client:
    """Initialized client over SQLite (scope created, schema applied)."""
    client = Client(registrar, sqlite_connector)
    client.initialize(ctx)
    return client


@pytest.fixture
def memory_client(registrar: Registrar, memory_connector: MemoryConnector, ctx: ExecutionContext) -> Client:
    client = Client(registrar, memory_connector)
    client.initialize(ctx)
    return client
