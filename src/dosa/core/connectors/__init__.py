"""Storage connectors.

Manifesto:
    One abstract contract (:class:`Connector`), many backends. Backends are
    created by identifier through the connector registry, never imported by
    application code.

Features:
    - ``memory``: reference connector for tests (:class:`MemoryConnector`)
    - ``sqlite``: durable connector on sqlite3 (:class:`SQLiteConnector`)
    - ``get_connector()`` / ``connector_from_settings()`` factories

Tags:
    dosa-core, connector, registry

Doc-Types:
    api-reference
"""

from .base import (
    Condition,
    Conditions,
    Connector,
    FieldNameValuePair,
    FieldValues,
    Operator,
    Page,
    SchemaApplyStatus,
    SchemaStatus,
    apply_per_row,
)
from .memory import MemoryConnector
from .registry import (
    ConnectorFactory,
    ConnectorRegistry,
    connector_from_settings,
    default_registry,
    get_connector,
)
from .sqlite import SQLiteConnector, SQLiteConnectorConfig

__all__ = [
    # Contract
    "Connector",
    "FieldValues",
    "SchemaApplyStatus",
    "SchemaStatus",
    "Operator",
    "Condition",
    "Conditions",
    "FieldNameValuePair",
    "Page",
    "apply_per_row",
    # Backends
    "MemoryConnector",
    "SQLiteConnector",
    "SQLiteConnectorConfig",
    # Registry
    "ConnectorFactory",
    "ConnectorRegistry",
    "default_registry",
    "get_connector",
    "connector_from_settings",
]
