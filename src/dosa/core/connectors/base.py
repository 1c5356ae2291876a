"""Connector contract.

Manifesto:
    Application code and the registry never talk to a storage engine
    directly. Every backend implements this one abstract class, so moving
    from the in-memory reference connector in tests to SQLite (or any other
    backend) is a configuration change.

Contract highlights:
    - Every call takes the caller's ``ExecutionContext`` first and fails with
      ``CancelledError`` once the caller has given up
    - ``create_if_not_exists`` is conditional, ``upsert`` is not, ``remove``
      is idempotent, ``read`` raises ``NotFoundError`` for a missing row
    - Batch calls return one ``Ok``/``Err`` per input position; only a
      failure of the batch mechanism itself is raised
    - Scan calls return a ``Page`` with an opaque continuation token
      (``""`` when exhausted)
    - Unsupported operations raise ``NotImplementedOperationError``
    - After ``shutdown()`` every call raises ``ConnectorClosedError``

Features:
    - Abstract ``Connector`` with shared open/cancel/addressing checks
    - ``apply_per_row()`` helper giving backends independent per-row outcomes
    - Value types: ``SchemaStatus``, ``Operator``, ``Condition``,
      ``FieldNameValuePair``, ``Page``

Tags:
    dosa-core, connector, abstract-base, adapter-pattern

Doc-Types:
    api-reference
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, TypeVar

from dosa.core.context import ExecutionContext
from dosa.core.entity import EntityDefinition, EntityInfo
from dosa.core.errors import (
    CancelledError,
    ConnectorClosedError,
    InvalidArgumentError,
    NotImplementedOperationError,
)
from dosa.core.fields import FieldValue
from dosa.core.logging import get_logger
from dosa.core.result import Err, Ok, Result

logger = get_logger(__name__)

FieldValues = dict[str, FieldValue]

T = TypeVar("T")
R = TypeVar("R")


class SchemaApplyStatus(str, Enum):
    """Whether a schema change is live yet."""

    APPLIED = "APPLIED"
    PENDING = "PENDING"


@dataclass(frozen=True)
class SchemaStatus:
    """Outcome of a schema upsert or status poll."""

    version: int
    status: SchemaApplyStatus = SchemaApplyStatus.APPLIED

    @property
    def applied(self) -> bool:
        return self.status == SchemaApplyStatus.APPLIED


class Operator(str, Enum):
    """Comparison used in range conditions."""

    EQ = "eq"
    LT = "lt"
    LT_OR_EQ = "le"
    GT = "gt"
    GT_OR_EQ = "ge"


@dataclass(frozen=True)
class Condition:
    """One predicate on one column: ``<column> <op> value``."""

    op: Operator
    value: FieldValue


@dataclass(frozen=True)
class FieldNameValuePair:
    """Secondary lookup: rows whose ``name`` column equals ``value``."""

    name: str
    value: FieldValue


@dataclass(frozen=True)
class Page:
    """One page of rows plus the token that resumes after it (``""`` when done)."""

    rows: list[FieldValues] = field(default_factory=list)
    token: str = ""

    @property
    def has_more(self) -> bool:
        return bool(self.token)


Conditions = Mapping[str, Sequence[Condition]]


def apply_per_row(
    ctx: ExecutionContext,
    operation: str,
    items: Sequence[T],
    fn: Callable[[T], R],
) -> list[Result[R]]:
    """
    Run ``fn`` for every item, capturing each outcome independently.

    The returned list always has ``len(items)`` entries. A row failure never
    stops its siblings. If the context is cancelled mid-batch, every row not
    yet attempted gets ``Err(CancelledError)``.
    """
    results: list[Result[R]] = []
    for index, item in enumerate(items):
        try:
            ctx.check(operation)
        except CancelledError as e:
            results.extend(Err(e) for _ in items[index:])
            break
        try:
            results.append(Ok(fn(item)))
        except Exception as e:
            results.append(Err(e))

    errors = [r.error for r in results if r.is_err()]
    if errors:
        logger.debug(
            "batch_completed", operation=operation, rows=len(items), failed=len(errors), error=errors[0]
        )
    else:
        logger.debug("batch_completed", operation=operation, rows=len(items), failed=0)
    return results


class Connector(ABC):
    """
    Abstract base class for storage backends.

    Subclasses implement the abstract operations and :meth:`_release`; the
    base class owns the shutdown state and the local checks every operation
    runs before touching the backend (see :meth:`_prepare`).
    """

    name: ClassVar[str] = "connector"

    def __init__(self) -> None:
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    # -- shared checks ------------------------------------------------------

    def _ensure_open(self, operation: str) -> None:
        if self._closed:
            raise ConnectorClosedError(f"{operation} called on a shut-down connector").with_context(
                operation=operation, connector=self.name
            )

    def _prepare(self, ctx: ExecutionContext, operation: str, ei: EntityInfo | None = None) -> None:
        """Closed, cancelled and addressing checks; nothing reaches the backend first."""
        self._ensure_open(operation)
        if ctx is None:
            raise InvalidArgumentError(f"{operation} needs an execution context")
        ctx.check(operation)
        if ei is not None:
            try:
                ei.validate()
            except InvalidArgumentError as e:
                raise e.with_context(operation=operation, connector=self.name)

    def _not_implemented(self, operation: str) -> NotImplementedOperationError:
        return NotImplementedOperationError(operation, connector=self.name)

    # -- schema -------------------------------------------------------------

    @abstractmethod
    def check_schema(
        self, ctx: ExecutionContext, scope: str, name_prefix: str, definitions: Sequence[EntityDefinition]
    ) -> int:
        """Validate definitions against the stored schema without changing it; return its version."""
        ...

    @abstractmethod
    def upsert_schema(
        self, ctx: ExecutionContext, scope: str, name_prefix: str, definitions: Sequence[EntityDefinition]
    ) -> SchemaStatus:
        """Apply (or begin applying) a schema change."""
        ...

    @abstractmethod
    def check_schema_status(
        self, ctx: ExecutionContext, scope: str, name_prefix: str, version: int
    ) -> SchemaStatus:
        """Poll a pending schema application."""
        ...

    # -- scope --------------------------------------------------------------

    @abstractmethod
    def create_scope(self, ctx: ExecutionContext, scope: str) -> None: ...

    @abstractmethod
    def truncate_scope(self, ctx: ExecutionContext, scope: str) -> None: ...

    @abstractmethod
    def drop_scope(self, ctx: ExecutionContext, scope: str) -> None: ...

    @abstractmethod
    def scope_exists(self, ctx: ExecutionContext, scope: str) -> bool: ...

    # -- single row ---------------------------------------------------------

    @abstractmethod
    def create_if_not_exists(self, ctx: ExecutionContext, ei: EntityInfo, values: FieldValues) -> None:
        """Insert only when the primary key is absent; AlreadyExistsError otherwise."""
        ...

    @abstractmethod
    def upsert(self, ctx: ExecutionContext, ei: EntityInfo, values: FieldValues) -> None:
        """Insert or replace."""
        ...

    @abstractmethod
    def read(
        self,
        ctx: ExecutionContext,
        ei: EntityInfo,
        keys: FieldValues,
        fields_to_read: Sequence[str] | None = None,
    ) -> FieldValues:
        """Requested fields of the row matching ``keys``; NotFoundError when none does."""
        ...

    @abstractmethod
    def remove(self, ctx: ExecutionContext, ei: EntityInfo, keys: FieldValues) -> None:
        """Delete by key. Removing an absent key is not an error."""
        ...

    # -- batch --------------------------------------------------------------

    @abstractmethod
    def multi_read(
        self,
        ctx: ExecutionContext,
        ei: EntityInfo,
        keys: Sequence[FieldValues],
        fields_to_read: Sequence[str] | None = None,
    ) -> list[Result[FieldValues]]: ...

    @abstractmethod
    def multi_upsert(
        self, ctx: ExecutionContext, ei: EntityInfo, values: Sequence[FieldValues]
    ) -> list[Result[None]]: ...

    @abstractmethod
    def multi_remove(
        self, ctx: ExecutionContext, ei: EntityInfo, keys: Sequence[FieldValues]
    ) -> list[Result[None]]: ...

    # -- scan ---------------------------------------------------------------

    @abstractmethod
    def range(
        self,
        ctx: ExecutionContext,
        ei: EntityInfo,
        conditions: Conditions,
        fields_to_read: Sequence[str] | None = None,
        token: str = "",
        limit: int = 100,
    ) -> Page:
        """Rows of one partition matching ``conditions``."""
        ...

    @abstractmethod
    def search(
        self,
        ctx: ExecutionContext,
        ei: EntityInfo,
        field_pair: FieldNameValuePair,
        fields_to_read: Sequence[str] | None = None,
        token: str = "",
        limit: int = 100,
    ) -> Page:
        """Rows whose ``field_pair.name`` column equals ``field_pair.value``."""
        ...

    @abstractmethod
    def scan(
        self,
        ctx: ExecutionContext,
        ei: EntityInfo,
        fields_to_read: Sequence[str] | None = None,
        token: str = "",
        limit: int = 100,
    ) -> Page:
        """Every row of the entity, one page at a time."""
        ...

    # -- lifecycle ----------------------------------------------------------

    @abstractmethod
    def _release(self) -> None:
        """Free backend resources. Called exactly once, by :meth:`shutdown`."""
        ...

    def shutdown(self) -> None:
        """Release all backend resources. Every later call raises ConnectorClosedError."""
        self._ensure_open("shutdown")
        self._closed = True
        self._release()
        logger.debug("connector_shutdown", connector=self.name)

    def __enter__(self) -> Connector:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if not self._closed:
            self.shutdown()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"{type(self).__name__}({state})"


__all__ = [
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
]
