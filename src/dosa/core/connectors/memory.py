"""
In-memory reference connector.

Stores rows per entity name in a plain dict guarded by one reader/writer
lock. Intended for unit tests and examples; nothing survives the process.

Limitations (kept deliberately small):
    - ``read`` returns the first stored row of the entity whatever key is
      asked for; ``NotFoundError`` only when the entity has no rows at all
    - ``create_if_not_exists`` appends without a uniqueness check
    - Schema calls always report version 1 / APPLIED; scope calls are no-ops
    - Batch and scan calls raise ``NotImplementedOperationError``

Examples:
    >>> connector = MemoryConnector()
    >>> connector.upsert(background(), info, {"ID": 7, "Total": 500})
    >>> connector.read(background(), info, {"ID": 7}, ["Total"])
    {'Total': 500}

Tags:
    connector, memory, testing, dosa-core
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from dosa.core.context import ExecutionContext
from dosa.core.entity import EntityDefinition, EntityInfo
from dosa.core.errors import NotFoundError
from dosa.core.locks import ReadWriteLock
from dosa.core.logging import get_logger
from dosa.core.result import Result

from .base import (
    Conditions,
    Connector,
    FieldNameValuePair,
    FieldValues,
    Page,
    SchemaApplyStatus,
    SchemaStatus,
)

logger = get_logger(__name__)

_SCHEMA_VERSION = 1


def _matches(row: Mapping[str, Any], keys: Mapping[str, Any]) -> bool:
    return all(row.get(name) == value for name, value in keys.items())


class MemoryConnector(Connector):
    """Connector backed by ``dict[entity_name, list[row]]``."""

    name = "memory"

    def __init__(self) -> None:
        super().__init__()
        self._lock = ReadWriteLock()
        self._data: dict[str, list[FieldValues]] = {}

    # -- schema -------------------------------------------------------------

    def check_schema(
        self, ctx: ExecutionContext, scope: str, name_prefix: str, definitions: Sequence[EntityDefinition]
    ) -> int:
        self._prepare(ctx, "check_schema")
        return _SCHEMA_VERSION

    def upsert_schema(
        self, ctx: ExecutionContext, scope: str, name_prefix: str, definitions: Sequence[EntityDefinition]
    ) -> SchemaStatus:
        self._prepare(ctx, "upsert_schema")
        return SchemaStatus(_SCHEMA_VERSION, SchemaApplyStatus.APPLIED)

    def check_schema_status(
        self, ctx: ExecutionContext, scope: str, name_prefix: str, version: int
    ) -> SchemaStatus:
        self._prepare(ctx, "check_schema_status")
        return SchemaStatus(_SCHEMA_VERSION, SchemaApplyStatus.APPLIED)

    # -- scope --------------------------------------------------------------

    def create_scope(self, ctx: ExecutionContext, scope: str) -> None:
        self._prepare(ctx, "create_scope")

    def truncate_scope(self, ctx: ExecutionContext, scope: str) -> None:
        self._prepare(ctx, "truncate_scope")

    def drop_scope(self, ctx: ExecutionContext, scope: str) -> None:
        self._prepare(ctx, "drop_scope")

    def scope_exists(self, ctx: ExecutionContext, scope: str) -> bool:
        self._prepare(ctx, "scope_exists")
        return True

    # -- single row ---------------------------------------------------------

    def create_if_not_exists(self, ctx: ExecutionContext, ei: EntityInfo, values: FieldValues) -> None:
        self._prepare(ctx, "create_if_not_exists", ei)
        row = ei.definition.validate_values(values)
        ei.definition.validate_keys(row)
        with self._lock.write():
            self._data.setdefault(ei.entity_name, []).append(row)

    def upsert(self, ctx: ExecutionContext, ei: EntityInfo, values: FieldValues) -> None:
        self._prepare(ctx, "upsert", ei)
        row = ei.definition.validate_values(values)
        keys = ei.definition.validate_keys(row)
        with self._lock.write():
            rows = self._data.setdefault(ei.entity_name, [])
            for index, existing in enumerate(rows):
                if _matches(existing, keys):
                    rows[index] = {**existing, **row}
                    return
            rows.append(row)

    def read(
        self,
        ctx: ExecutionContext,
        ei: EntityInfo,
        keys: FieldValues,
        fields_to_read: Sequence[str] | None = None,
    ) -> FieldValues:
        self._prepare(ctx, "read", ei)
        ei.definition.validate_keys(keys)
        names = ei.definition.validate_fields_to_read(fields_to_read)
        with self._lock.read():
            rows = self._data.get(ei.entity_name)
            if not rows:
                raise NotFoundError(f"no rows stored for {ei.entity_name}").with_context(
                    operation="read", connector=self.name, entity=ei.entity_name
                )
            first = rows[0]
            return {name: first.get(name) for name in names}

    def remove(self, ctx: ExecutionContext, ei: EntityInfo, keys: FieldValues) -> None:
        self._prepare(ctx, "remove", ei)
        key_values = ei.definition.validate_keys(keys)
        with self._lock.write():
            rows = self._data.get(ei.entity_name)
            if rows:
                rows[:] = [row for row in rows if not _matches(row, key_values)]

    # -- unsupported --------------------------------------------------------

    def multi_read(
        self,
        ctx: ExecutionContext,
        ei: EntityInfo,
        keys: Sequence[FieldValues],
        fields_to_read: Sequence[str] | None = None,
    ) -> list[Result[FieldValues]]:
        self._prepare(ctx, "multi_read", ei)
        raise self._not_implemented("multi_read")

    def multi_upsert(
        self, ctx: ExecutionContext, ei: EntityInfo, values: Sequence[FieldValues]
    ) -> list[Result[None]]:
        self._prepare(ctx, "multi_upsert", ei)
        raise self._not_implemented("multi_upsert")

    def multi_remove(
        self, ctx: ExecutionContext, ei: EntityInfo, keys: Sequence[FieldValues]
    ) -> list[Result[None]]:
        self._prepare(ctx, "multi_remove", ei)
        raise self._not_implemented("multi_remove")

    def range(
        self,
        ctx: ExecutionContext,
        ei: EntityInfo,
        conditions: Conditions,
        fields_to_read: Sequence[str] | None = None,
        token: str = "",
        limit: int = 100,
    ) -> Page:
        self._prepare(ctx, "range", ei)
        raise self._not_implemented("range")

    def search(
        self,
        ctx: ExecutionContext,
        ei: EntityInfo,
        field_pair: FieldNameValuePair,
        fields_to_read: Sequence[str] | None = None,
        token: str = "",
        limit: int = 100,
    ) -> Page:
        self._prepare(ctx, "search", ei)
        raise self._not_implemented("search")

    def scan(
        self,
        ctx: ExecutionContext,
        ei: EntityInfo,
        fields_to_read: Sequence[str] | None = None,
        token: str = "",
        limit: int = 100,
    ) -> Page:
        self._prepare(ctx, "scan", ei)
        raise self._not_implemented("scan")

    # -- lifecycle ----------------------------------------------------------

    def _release(self) -> None:
        with self._lock.write():
            self._data.clear()

    def row_count(self, entity_name: str) -> int:
        """Rows currently stored for an entity."""
        with self._lock.read():
            return len(self._data.get(entity_name, ()))


def register_connector(registry: Any) -> None:
    """Setup hook called by :func:`dosa.core.connectors.registry.default_registry`."""
    registry.register(MemoryConnector.name, lambda config: MemoryConnector())


__all__ = [
    "MemoryConnector",
    "register_connector",
]
