"""dosa core -- entity registry, null-safe values and the connector contract.

Manifesto:
    Application code declares record types once and stores them through a
    single abstract connector contract. Swapping the in-memory connector used
    in tests for SQLite (or any other backend) is a configuration change,
    not a rewrite.

    - **Explicit registration:** ``@entity`` attaches schema at class creation
    - **Null-safe scalars:** ``NullInt64`` and friends distinguish "unset" from zero
    - **One error vocabulary:** every backend raises the same DosaError subclasses
    - **Per-row batch outcomes:** ``Ok`` / ``Err`` per input position

Architecture::

    Layer 1 -- Errors & primitives
        errors.py          DosaError hierarchy with categories
        result.py          Ok / Err per-row outcomes
        context.py         ExecutionContext (cancel, deadline)
        locks.py           ReadWriteLock

    Layer 2 -- Values & schema
        fields.py          FieldType + text / JSON scalar codec
        nulls.py           Null-safe optional scalars
        fqn.py             Dotted fully-qualified names
        keyspec.py         Entity tag / primary-key grammar
        entity.py          EntityDefinition, EntityInfo, @entity
        registry.py        Registrar (immutable FQN index)

    Layer 3 -- Storage
        connectors/        Connector contract, registry, memory + sqlite
        client.py          Object-level Client

    Layer 4 -- Cross-cutting
        logging.py         structlog configuration
        settings.py        DosaSettings (pydantic-settings)

Tags:
    dosa-core, foundation, registry, connector-contract

Doc-Types:
    package-overview, architecture-map, module-index
"""

from dosa.core.client import Client
from dosa.core.connectors import (
    Condition,
    Connector,
    ConnectorRegistry,
    FieldNameValuePair,
    MemoryConnector,
    Operator,
    Page,
    SchemaApplyStatus,
    SchemaStatus,
    SQLiteConnector,
    SQLiteConnectorConfig,
    connector_from_settings,
    default_registry,
    get_connector,
)
from dosa.core.context import ExecutionContext, background, with_timeout
from dosa.core.entity import (
    ColumnDefinition,
    EntityDefinition,
    EntityInfo,
    SchemaRef,
    definition_of,
    entity,
    is_entity,
)
from dosa.core.errors import (
    AlreadyExistsError,
    BackendError,
    BackendUnavailableError,
    CancelledError,
    ConfigError,
    ConnectorClosedError,
    ConnectorNotFoundError,
    DeadlineExceededError,
    DosaError,
    DuplicateEntityError,
    EmptyRegistryError,
    EntityErrors,
    ErrorCategory,
    ErrorContext,
    InvalidArgumentError,
    InvalidConfigError,
    KeySpecError,
    NotFoundError,
    NotImplementedOperationError,
    NullValueError,
    ParseError,
    RegistryError,
    SchemaIncompatibleError,
    TypeMismatchError,
    categorize_error,
    is_retryable,
)
from dosa.core.fields import FieldType, Int32
from dosa.core.fqn import FQN, to_fqn
from dosa.core.keyspec import ClusteringKey, PrimaryKey, parse_entity_tag, parse_primary_key
from dosa.core.logging import LogContext, configure_logging, get_logger
from dosa.core.nulls import NullBool, NullFloat64, NullInt32, NullInt64, NullTime, NullUUID
from dosa.core.registry import DiscoveryResult, EntityDiscovery, RegisteredEntity, Registrar
from dosa.core.result import Err, Ok, Result, partition_results
from dosa.core.settings import DosaSettings

__all__ = [
    # Client
    "Client",
    # Connectors
    "Connector",
    "ConnectorRegistry",
    "MemoryConnector",
    "SQLiteConnector",
    "SQLiteConnectorConfig",
    "SchemaApplyStatus",
    "SchemaStatus",
    "Operator",
    "Condition",
    "FieldNameValuePair",
    "Page",
    "default_registry",
    "get_connector",
    "connector_from_settings",
    # Context
    "ExecutionContext",
    "background",
    "with_timeout",
    # Entities
    "ColumnDefinition",
    "EntityDefinition",
    "EntityInfo",
    "SchemaRef",
    "entity",
    "definition_of",
    "is_entity",
    # Errors
    "DosaError",
    "ErrorCategory",
    "ErrorContext",
    "InvalidArgumentError",
    "ParseError",
    "TypeMismatchError",
    "KeySpecError",
    "NullValueError",
    "NotFoundError",
    "AlreadyExistsError",
    "SchemaIncompatibleError",
    "CancelledError",
    "DeadlineExceededError",
    "NotImplementedOperationError",
    "BackendUnavailableError",
    "ConnectorClosedError",
    "BackendError",
    "ConfigError",
    "ConnectorNotFoundError",
    "InvalidConfigError",
    "RegistryError",
    "EntityErrors",
    "DuplicateEntityError",
    "EmptyRegistryError",
    "is_retryable",
    "categorize_error",
    # Values
    "FieldType",
    "Int32",
    "NullBool",
    "NullInt32",
    "NullInt64",
    "NullFloat64",
    "NullUUID",
    "NullTime",
    # Names & keys
    "FQN",
    "to_fqn",
    "ClusteringKey",
    "PrimaryKey",
    "parse_primary_key",
    "parse_entity_tag",
    # Registry
    "Registrar",
    "RegisteredEntity",
    "DiscoveryResult",
    "EntityDiscovery",
    # Results
    "Ok",
    "Err",
    "Result",
    "partition_results",
    # Ambient
    "configure_logging",
    "get_logger",
    "LogContext",
    "DosaSettings",
]
