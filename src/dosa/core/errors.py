"""
Structured error types for dosa.

Every failure that crosses the Connector contract, the Registry, or the
null-safe codec is a :class:`DosaError` subclass. Callers branch on the
exception type (``except NotFoundError``), route on the category, and decide
on retries with :func:`is_retryable`.

Manifesto:
    - **One vocabulary for every backend:** A SQLite constraint violation and
      a remote "row exists" reply both surface as ``AlreadyExistsError``
    - **Context, not leakage:** Backend errors are wrapped with operation,
      entity and scope context; the driver exception is chained as ``cause``
      instead of being copied into the message
    - **Unsupported is not empty:** ``NotImplementedOperationError`` is a
      distinct, branchable type (and a built-in ``NotImplementedError``)

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                          DosaError                               │
        │  (category, retryable, context, cause)                          │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  InvalidArgumentError     NotFoundError       AlreadyExistsError │
        │    ParseError               (NOT_FOUND)         (CONFLICT)       │
        │      TypeMismatchError                                           │
        │      KeySpecError                                                │
        │                                                                  │
        │  NullValueError           SchemaIncompatibleError                │
        │  CancelledError           BackendUnavailableError (retryable)    │
        │    DeadlineExceededError  ConnectorClosedError                   │
        │  BackendError             NotImplementedOperationError           │
        │                                                                  │
        │  ConfigError              RegistryError                          │
        │    ConnectorNotFoundError   EntityErrors                         │
        │    InvalidConfigError       DuplicateEntityError                 │
        │                             EmptyRegistryError                   │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> error = NotFoundError("no row for key").with_context(
    ...     operation="read", entity="Order", scope="acct"
    ... )
    >>> error.context.entity
    'Order'
    >>> error.to_dict()["category"]
    'NOT_FOUND'

Guardrails:
    ❌ DON'T: Raise bare ``Exception`` or ``KeyError`` across the contract
    ✅ DO: Raise the matching DosaError subclass

    ❌ DON'T: Put driver error text into messages returned to callers
    ✅ DO: Wrap with :func:`wrap_backend_error` and chain the cause

Tags:
    error-handling, exception-hierarchy, connector-contract, dosa-core

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    # Caller errors (never retryable)
    VALIDATION = "VALIDATION"     # Malformed addressing, missing key fields
    PARSE = "PARSE"               # Text / JSON decoding
    NULL_VALUE = "NULL_VALUE"     # Access to an invalid optional

    # Data state
    NOT_FOUND = "NOT_FOUND"       # Missing row, entity, schema version
    CONFLICT = "CONFLICT"         # Key already present
    SCHEMA = "SCHEMA"             # Incompatible schema change

    # Execution
    CANCELLED = "CANCELLED"       # Context cancelled or deadline passed
    UNSUPPORTED = "UNSUPPORTED"   # Operation not implemented by a backend

    # Infrastructure
    UNAVAILABLE = "UNAVAILABLE"   # Backend unreachable or shut down
    STORAGE = "STORAGE"           # Backend-originated failure

    # Configuration
    CONFIG = "CONFIG"             # Unknown connector, bad options
    REGISTRY = "REGISTRY"         # Entity registration problems

    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        operation: Connector or client operation name (``read``, ``multi_upsert``)
        connector: Backend identifier (``memory``, ``sqlite``)
        scope: Scope of the addressed entity
        name_prefix: Name prefix of the addressed entity
        entity: Entity name
        metadata: Additional key-value pairs
    """

    operation: str | None = None
    connector: str | None = None
    scope: str | None = None
    name_prefix: str | None = None
    entity: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["operation", "connector", "scope", "name_prefix", "entity"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class DosaError(Exception):
    """
    Base exception for all dosa errors.

    Subclasses set ``default_category`` and ``default_retryable``; callers may
    override both per instance.

    Examples:
        >>> error = DosaError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.retryable
        False
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> DosaError:
        """
        Add context to this error (fluent API).

        Usage:
            raise NotFoundError("no such row").with_context(
                operation="read", entity="Order"
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = type(self.cause).__name__
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CALLER ERRORS
# =============================================================================


class InvalidArgumentError(DosaError):
    """
    Malformed input: bad addressing, missing key fields, wrong value types.

    Raised by local validation before any backend is contacted.
    """

    default_category = ErrorCategory.VALIDATION
    default_retryable = False

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.field:
            result["field"] = self.field
        if self.value is not None:
            result["value"] = repr(self.value)
        return result


class ParseError(InvalidArgumentError):
    """Text or JSON could not be decoded into the declared scalar kind."""

    default_category = ErrorCategory.PARSE


class TypeMismatchError(ParseError):
    """Decoded value has the wrong type for the declared kind (e.g. 1.5 into an integer)."""


class KeySpecError(ParseError):
    """Malformed entity tag or primary-key specification."""

    def __init__(self, message: str, *, text: str = "", position: int | None = None, **kwargs: Any):
        if position is not None:
            message = f"{message} at position {position} in {text!r}"
        super().__init__(message, value=text or None, **kwargs)
        self.text = text
        self.position = position


class NullValueError(DosaError):
    """Access to the value of an optional scalar in the invalid (null) state."""

    default_category = ErrorCategory.NULL_VALUE
    default_retryable = False

    def __init__(self, message: str = "Value is null", **kwargs: Any):
        super().__init__(message, **kwargs)


# =============================================================================
# DATA STATE ERRORS
# =============================================================================


class NotFoundError(DosaError):
    """No row, entity registration, or schema version matched."""

    default_category = ErrorCategory.NOT_FOUND
    default_retryable = False


class AlreadyExistsError(DosaError):
    """A conditional create found the primary key already present."""

    default_category = ErrorCategory.CONFLICT
    default_retryable = False


class SchemaIncompatibleError(DosaError):
    """Proposed entity definitions cannot be applied on top of the stored schema."""

    default_category = ErrorCategory.SCHEMA
    default_retryable = False

    def __init__(self, message: str, *, problems: Sequence[str] = (), **kwargs: Any):
        if problems:
            message = f"{message}: " + "; ".join(problems)
        super().__init__(message, **kwargs)
        self.problems = list(problems)


# =============================================================================
# EXECUTION ERRORS
# =============================================================================


class CancelledError(DosaError):
    """The caller's execution context was cancelled before the work completed."""

    default_category = ErrorCategory.CANCELLED
    default_retryable = False


class DeadlineExceededError(CancelledError):
    """The caller's execution context passed its deadline."""


class NotImplementedOperationError(DosaError, NotImplementedError):
    """
    The backend does not support this operation.

    Distinct from every success shape, so "not supported" can never be read
    as "no rows". Also a built-in ``NotImplementedError``.
    """

    default_category = ErrorCategory.UNSUPPORTED
    default_retryable = False

    def __init__(self, operation: str, connector: str | None = None, message: str | None = None):
        self.operation = operation
        self.connector = connector
        if message is None:
            where = f" by connector {connector!r}" if connector else ""
            message = f"{operation} is not implemented{where}"
        super().__init__(message, context=ErrorContext(operation=operation, connector=connector))


# =============================================================================
# INFRASTRUCTURE ERRORS
# =============================================================================


class BackendUnavailableError(DosaError):
    """Backend could not be reached. Usually transient."""

    default_category = ErrorCategory.UNAVAILABLE
    default_retryable = True


class ConnectorClosedError(DosaError):
    """The connector was shut down; it accepts no further calls."""

    default_category = ErrorCategory.UNAVAILABLE
    default_retryable = False


class BackendError(DosaError):
    """Backend-originated failure, wrapped with operation context."""

    default_category = ErrorCategory.STORAGE
    default_retryable = False


# =============================================================================
# CONFIGURATION / REGISTRY ERRORS
# =============================================================================


class ConfigError(DosaError):
    """Configuration error. Never retryable."""

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class ConnectorNotFoundError(ConfigError, LookupError):
    """No connector factory is registered under the requested identifier."""

    def __init__(self, name: str, available: Sequence[str] = ()):
        self.name = name
        self.available = list(available)
        listing = ", ".join(self.available) or "none"
        super().__init__(f"Unknown connector: {name!r} (available: {listing})")


class InvalidConfigError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, message: str | None = None, **kwargs: Any):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid configuration for {key}: {value!r}", **kwargs)


class RegistryError(DosaError):
    """Entity registration error."""

    default_category = ErrorCategory.REGISTRY
    default_retryable = False


class EntityErrors(RegistryError):
    """Discovery reported entities with invalid annotations; all of them are listed."""

    def __init__(self, warnings: Sequence[Any]):
        self.warnings = list(warnings)
        lines = "\n".join(f"  - {w}" for w in self.warnings)
        super().__init__(f"{len(self.warnings)} entity definition(s) are invalid:\n{lines}")


class DuplicateEntityError(RegistryError):
    """Two entity definitions resolve to the same fully-qualified name."""

    def __init__(self, fqn: str):
        self.fqn = fqn
        super().__init__(f"Entity {fqn!r} is registered more than once")


class EmptyRegistryError(RegistryError):
    """The registry holds no entities, which signals an upstream configuration failure."""

    def __init__(self, message: str = "registry holds no entities"):
        super().__init__(message)


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_retryable(error: Exception) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, DosaError):
        return error.retryable
    return isinstance(error, (ConnectionError, BrokenPipeError))


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, DosaError):
        return error.category
    if isinstance(error, ConnectionError):
        return ErrorCategory.UNAVAILABLE
    if isinstance(error, NotImplementedError):
        return ErrorCategory.UNSUPPORTED
    if isinstance(error, ValueError):
        return ErrorCategory.VALIDATION
    return ErrorCategory.UNKNOWN


def wrap_backend_error(
    error: Exception,
    *,
    operation: str,
    connector: str | None = None,
    scope: str | None = None,
    name_prefix: str | None = None,
    entity: str | None = None,
) -> DosaError:
    """
    Wrap a driver exception for the abstract contract.

    DosaErrors pass through with the missing context filled in; anything else
    becomes a :class:`BackendError` whose message names only the operation.
    """
    fields = {
        "operation": operation,
        "connector": connector,
        "scope": scope,
        "name_prefix": name_prefix,
        "entity": entity,
    }
    if isinstance(error, DosaError):
        for key, value in fields.items():
            if value is not None and getattr(error.context, key) is None:
                setattr(error.context, key, value)
        return error

    where = f" on {entity!r}" if entity else ""
    context = ErrorContext(**fields)
    return BackendError(f"{operation} failed{where}", context=context, cause=error)


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "DosaError",
    # Caller
    "InvalidArgumentError",
    "ParseError",
    "TypeMismatchError",
    "KeySpecError",
    "NullValueError",
    # Data state
    "NotFoundError",
    "AlreadyExistsError",
    "SchemaIncompatibleError",
    # Execution
    "CancelledError",
    "DeadlineExceededError",
    "NotImplementedOperationError",
    # Infrastructure
    "BackendUnavailableError",
    "ConnectorClosedError",
    "BackendError",
    # Config / registry
    "ConfigError",
    "ConnectorNotFoundError",
    "InvalidConfigError",
    "RegistryError",
    "EntityErrors",
    "DuplicateEntityError",
    "EmptyRegistryError",
    # Utilities
    "is_retryable",
    "categorize_error",
    "wrap_backend_error",
]
