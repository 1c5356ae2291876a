"""
SQLite connector.

A complete, durable backend on the standard-library ``sqlite3`` driver.
Every entity gets one table named ``"<scope>.<name_prefix>.<entity>"``;
scopes and schema versions live in two bookkeeping tables.

Manifesto:
    The in-memory connector proves the contract compiles; this one proves it
    holds. Key uniqueness, partial updates, versioned schema evolution,
    partition-bounded range scans with continuation tokens and cancellation
    inside long-running statements all behave the way the contract says.

Architecture:
    ::

        _dosa_scopes   (name PK, created_at)
        _dosa_schemas  (scope, name_prefix, version, definitions JSON)
                         PK (scope, name_prefix, version)

        upsert_schema(ctx, "acct", "billing", [Order])
            │
            ├── stored v2 ──► compatibility check ──► SchemaIncompatibleError
            ├── CREATE TABLE / ALTER TABLE ADD COLUMN
            └── INSERT _dosa_schemas v3            ──► SchemaStatus(3, APPLIED)

    All statements run on one connection guarded by a re-entrant lock, each
    call inside its own transaction. A progress handler aborts a statement
    once the caller's context is cancelled or past its deadline.

Compatibility rule:
    Same primary key; no column removed or retyped; new columns allowed.

Tags:
    connector, sqlite, persistence, schema-evolution, dosa-core

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import base64
import json
import math
import sqlite3
import threading
import uuid
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from dosa.core.context import ExecutionContext
from dosa.core.entity import EntityDefinition, EntityInfo
from dosa.core.errors import (
    AlreadyExistsError,
    BackendUnavailableError,
    CancelledError,
    DosaError,
    InvalidArgumentError,
    InvalidConfigError,
    NotFoundError,
    SchemaIncompatibleError,
    wrap_backend_error,
)
from dosa.core.fields import FieldType, FieldValue, validate_value
from dosa.core.logging import get_logger
from dosa.core.result import Result

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

logger = get_logger(__name__)

# Virtual machine instructions between cancellation checks
_PROGRESS_STEPS = 1000

_SQL_TYPES = {
    FieldType.BOOL: "INTEGER",
    FieldType.INT32: "INTEGER",
    FieldType.INT64: "INTEGER",
    FieldType.DOUBLE: "REAL",
    FieldType.STRING: "TEXT",
    FieldType.BLOB: "BLOB",
    FieldType.UUID: "TEXT",
    FieldType.TIMESTAMP: "INTEGER",
}

# Timestamps are stored as integer microseconds since the Unix epoch, UTC.
# Naive datetimes are taken to be UTC; reads return aware UTC datetimes.
_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_MICROSECOND = timedelta(microseconds=1)

# Largest value SQLite binds as an INTEGER
_MAX_SQL_INT = 2**63 - 1

_SQL_OPERATORS = {
    Operator.EQ: "=",
    Operator.LT: "<",
    Operator.LT_OR_EQ: "<=",
    Operator.GT: ">",
    Operator.GT_OR_EQ: ">=",
}

_BOOTSTRAP = (
    """
    CREATE TABLE IF NOT EXISTS _dosa_scopes (
        name TEXT PRIMARY KEY,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS _dosa_schemas (
        scope TEXT NOT NULL,
        name_prefix TEXT NOT NULL,
        version INTEGER NOT NULL,
        definitions TEXT NOT NULL,
        created_at TEXT NOT NULL,
        PRIMARY KEY (scope, name_prefix, version)
    )
    """,
)


class SQLiteConnectorConfig(BaseModel):
    """Options accepted by the ``sqlite`` connector."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    path: str = Field(default=":memory:", min_length=1, description="Database file, URI or :memory:")
    timeout: float = Field(default=5.0, gt=0, description="Seconds to wait on a locked database")

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any] | None) -> SQLiteConnectorConfig:
        """Validate a raw config mapping; failures become InvalidConfigError."""
        try:
            return cls.model_validate(dict(config or {}))
        except ValidationError as e:
            first = e.errors()[0]
            key = ".".join(str(part) for part in first["loc"]) or "config"
            raise InvalidConfigError(
                key, first.get("input"), f"Invalid sqlite connector config for {key}: {first['msg']}", cause=e
            ) from e


# =============================================================================
# VALUE MAPPING
# =============================================================================


def _quote(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'


def _table(scope: str, name_prefix: str, entity_name: str) -> str:
    return _quote(f"{scope}.{name_prefix}.{entity_name}")


def _to_sql(kind: FieldType, value: FieldValue) -> Any:
    if value is None:
        return None
    match kind:
        case FieldType.BOOL:
            return int(value)
        case FieldType.DOUBLE:
            if math.isnan(value):
                # sqlite3 binds NaN as NULL
                raise InvalidArgumentError("NaN cannot be stored in a sqlite DOUBLE column", value=value)
            return value
        case FieldType.UUID:
            return str(value)
        case FieldType.TIMESTAMP:
            if value.tzinfo is None:
                value = value.replace(tzinfo=UTC)
            return (value - _EPOCH) // _MICROSECOND
        case _:
            return value


def _from_sql(kind: FieldType, value: Any) -> FieldValue:
    if value is None:
        return None
    match kind:
        case FieldType.BOOL:
            return bool(value)
        case FieldType.DOUBLE:
            return float(value)
        case FieldType.UUID:
            return uuid.UUID(value)
        case FieldType.TIMESTAMP:
            return _EPOCH + timedelta(microseconds=value)
        case FieldType.BLOB:
            return bytes(value)
        case _:
            return value


def _encode_token(offset: int) -> str:
    return base64.urlsafe_b64encode(json.dumps({"offset": offset}).encode()).decode()


def _decode_token(token: str) -> int:
    if not token:
        return 0
    try:
        offset = json.loads(base64.urlsafe_b64decode(token.encode()))["offset"]
    except (ValueError, KeyError, TypeError) as e:
        raise InvalidArgumentError("invalid continuation token", value=token, cause=e) from e
    if not isinstance(offset, int) or isinstance(offset, bool) or not 0 <= offset <= _MAX_SQL_INT:
        raise InvalidArgumentError("invalid continuation token", value=token)
    return offset


def _order_by(definition: EntityDefinition) -> str:
    terms = [f"{_quote(name)} ASC" for name in definition.partition_key_names()]
    terms += [
        f"{_quote(ck.name)} {'DESC' if ck.descending else 'ASC'}" for ck in definition.clustering_keys()
    ]
    return ", ".join(terms)


def _now() -> str:
    return datetime.now(UTC).isoformat()


class SQLiteConnector(Connector):
    """Connector persisting entities in a SQLite database."""

    name = "sqlite"

    def __init__(self, config: SQLiteConnectorConfig | Mapping[str, Any] | None = None):
        super().__init__()
        if not isinstance(config, SQLiteConnectorConfig):
            config = SQLiteConnectorConfig.from_mapping(config)
        self._config = config
        self._lock = threading.RLock()
        self._conn = self._connect()

    @property
    def config(self) -> SQLiteConnectorConfig:
        return self._config

    def _connect(self) -> sqlite3.Connection:
        path = self._config.path
        try:
            conn = sqlite3.connect(
                path,
                timeout=self._config.timeout,
                check_same_thread=False,
                isolation_level=None,
                uri=path.startswith("file:"),
            )
            for statement in _BOOTSTRAP:
                conn.execute(statement)
        except sqlite3.Error as e:
            raise BackendUnavailableError(
                "Failed to open SQLite database", cause=e
            ).with_context(connector=self.name, path=path) from e
        logger.debug("sqlite_connected", path=path)
        return conn

    # -- plumbing -----------------------------------------------------------

    @contextmanager
    def _session(
        self,
        ctx: ExecutionContext,
        operation: str,
        ei: EntityInfo | None = None,
        scope: str | None = None,
        name_prefix: str | None = None,
    ) -> Iterator[sqlite3.Connection]:
        """One transaction on the shared connection, aborted if ``ctx`` gives up."""
        self._prepare(ctx, operation, ei)
        if ei is not None:
            scope, name_prefix = ei.ref.scope, ei.ref.name_prefix
        where = {
            "operation": operation,
            "connector": self.name,
            "scope": scope,
            "name_prefix": name_prefix,
            "entity": ei.entity_name if ei is not None else None,
        }

        with self._lock:
            self._ensure_open(operation)
            conn = self._conn
            conn.set_progress_handler(ctx.done, _PROGRESS_STEPS)
            try:
                conn.execute("BEGIN")
                yield conn
                conn.execute("COMMIT")
            except DosaError as e:
                conn.rollback()
                raise wrap_backend_error(e, **where)
            except sqlite3.Error as e:
                conn.rollback()
                if ctx.done():
                    try:
                        ctx.check(operation)
                    except CancelledError as cancelled:
                        raise wrap_backend_error(cancelled, **where) from e
                raise wrap_backend_error(e, **where) from e
            except BaseException:
                conn.rollback()
                raise
            finally:
                conn.set_progress_handler(None, 0)

    def _require_scope(self, conn: sqlite3.Connection, scope: str) -> None:
        row = conn.execute("SELECT 1 FROM _dosa_scopes WHERE name = ?", (scope,)).fetchone()
        if row is None:
            raise NotFoundError(f"scope {scope!r} does not exist")

    def _load_schema(
        self, conn: sqlite3.Connection, scope: str, name_prefix: str
    ) -> tuple[int, dict[str, EntityDefinition]]:
        row = conn.execute(
            "SELECT version, definitions FROM _dosa_schemas"
            " WHERE scope = ? AND name_prefix = ? ORDER BY version DESC LIMIT 1",
            (scope, name_prefix),
        ).fetchone()
        if row is None:
            return 0, {}
        version, payload = row
        definitions = [EntityDefinition.from_dict(d) for d in json.loads(payload)]
        return version, {d.name: d for d in definitions}

    @staticmethod
    def _plan(
        stored: Mapping[str, EntityDefinition], proposed: Sequence[EntityDefinition]
    ) -> tuple[list[str], list[EntityDefinition]]:
        """Compatibility problems and the definitions that actually change."""
        seen: set[str] = set()
        problems: list[str] = []
        changed: list[EntityDefinition] = []
        for definition in proposed:
            if definition.name in seen:
                raise InvalidArgumentError(
                    f"entity {definition.name!r} appears twice in one schema", field=definition.name
                )
            seen.add(definition.name)
            current = stored.get(definition.name)
            if current is None:
                changed.append(definition)
                continue
            problems.extend(current.compatibility_problems(definition))
            if definition != current:
                changed.append(definition)
        return problems, changed

    def _require_definition(self, conn: sqlite3.Connection, ei: EntityInfo) -> EntityDefinition:
        """Stored definition the caller's definition must agree with."""
        self._require_scope(conn, ei.ref.scope)
        _, stored = self._load_schema(conn, ei.ref.scope, ei.ref.name_prefix)
        current = stored.get(ei.entity_name)
        if current is None:
            raise SchemaIncompatibleError(f"no schema applied for entity {ei.entity_name!r}")
        problems = []
        if ei.definition.key != current.key:
            problems.append(f"{ei.entity_name}: primary key {ei.definition.key} does not match {current.key}")
        stored_types = current.column_types()
        for column in ei.definition.columns:
            stored = stored_types.get(column.name)
            if stored is None:
                problems.append(f"{ei.entity_name}: column {column.name!r} not applied")
            elif stored != column.type:
                problems.append(f"{ei.entity_name}: column {column.name!r} is stored as {stored.value}")
        if problems:
            raise SchemaIncompatibleError(
                f"definition of {ei.entity_name!r} differs from the applied schema", problems=problems
            )
        return current

    def _table_for(self, ei: EntityInfo) -> str:
        return _table(ei.ref.scope, ei.ref.name_prefix, ei.entity_name)

    def _key_clause(self, definition: EntityDefinition, keys: Mapping[str, FieldValue]) -> tuple[str, list[Any]]:
        names = definition.key_names()
        clause = " AND ".join(f"{_quote(n)} = ?" for n in names)
        params = [_to_sql(definition.type_of(n), keys[n]) for n in names]
        return clause, params

    @staticmethod
    def _decode_row(definition: EntityDefinition, names: Sequence[str], row: Sequence[Any]) -> FieldValues:
        return {name: _from_sql(definition.type_of(name), value) for name, value in zip(names, row)}

    # -- schema -------------------------------------------------------------

    def check_schema(
        self, ctx: ExecutionContext, scope: str, name_prefix: str, definitions: Sequence[EntityDefinition]
    ) -> int:
        with self._session(ctx, "check_schema", scope=scope, name_prefix=name_prefix) as conn:
            version, stored = self._load_schema(conn, scope, name_prefix)
            problems, _ = self._plan(stored, definitions)
            if problems:
                raise SchemaIncompatibleError(
                    f"schema for {scope}.{name_prefix} is incompatible", problems=problems
                )
            return version

    def upsert_schema(
        self, ctx: ExecutionContext, scope: str, name_prefix: str, definitions: Sequence[EntityDefinition]
    ) -> SchemaStatus:
        with self._session(ctx, "upsert_schema", scope=scope, name_prefix=name_prefix) as conn:
            self._require_scope(conn, scope)
            version, stored = self._load_schema(conn, scope, name_prefix)
            problems, changed = self._plan(stored, definitions)
            if problems:
                raise SchemaIncompatibleError(
                    f"schema for {scope}.{name_prefix} is incompatible", problems=problems
                )
            if not changed:
                return SchemaStatus(version, SchemaApplyStatus.APPLIED)

            for definition in changed:
                table = _table(scope, name_prefix, definition.name)
                current = stored.get(definition.name)
                if current is None:
                    columns = [
                        f"{_quote(c.name)} {_SQL_TYPES[c.type]}"
                        + (" NOT NULL" if definition.is_key(c.name) else "")
                        for c in definition.columns
                    ]
                    key = ", ".join(_quote(n) for n in definition.key_names())
                    conn.execute(f"CREATE TABLE IF NOT EXISTS {table} ({', '.join(columns)}, PRIMARY KEY ({key}))")
                else:
                    known = current.column_types()
                    for column in definition.columns:
                        if column.name not in known:
                            conn.execute(
                                f"ALTER TABLE {table} ADD COLUMN {_quote(column.name)} {_SQL_TYPES[column.type]}"
                            )

            merged = {**stored, **{d.name: d for d in changed}}
            new_version = version + 1
            conn.execute(
                "INSERT INTO _dosa_schemas (scope, name_prefix, version, definitions, created_at)"
                " VALUES (?, ?, ?, ?, ?)",
                (
                    scope,
                    name_prefix,
                    new_version,
                    json.dumps([merged[name].to_dict() for name in sorted(merged)]),
                    _now(),
                ),
            )
        logger.info(
            "schema_upserted",
            scope=scope,
            name_prefix=name_prefix,
            version=new_version,
            changed=[d.name for d in changed],
        )
        return SchemaStatus(new_version, SchemaApplyStatus.APPLIED)

    def check_schema_status(
        self, ctx: ExecutionContext, scope: str, name_prefix: str, version: int
    ) -> SchemaStatus:
        with self._session(ctx, "check_schema_status", scope=scope, name_prefix=name_prefix) as conn:
            row = conn.execute(
                "SELECT 1 FROM _dosa_schemas WHERE scope = ? AND name_prefix = ? AND version = ?",
                (scope, name_prefix, version),
            ).fetchone()
            if row is None:
                raise NotFoundError(f"schema version {version} not found for {scope}.{name_prefix}")
            return SchemaStatus(version, SchemaApplyStatus.APPLIED)

    # -- scope --------------------------------------------------------------

    def _scope_tables(self, conn: sqlite3.Connection, scope: str) -> list[str]:
        prefixes = [
            row[0]
            for row in conn.execute(
                "SELECT DISTINCT name_prefix FROM _dosa_schemas WHERE scope = ?", (scope,)
            ).fetchall()
        ]
        tables = []
        for prefix in prefixes:
            _, stored = self._load_schema(conn, scope, prefix)
            tables.extend(_table(scope, prefix, name) for name in sorted(stored))
        return tables

    def create_scope(self, ctx: ExecutionContext, scope: str) -> None:
        if not scope:
            raise InvalidArgumentError("create_scope needs a scope name")
        with self._session(ctx, "create_scope", scope=scope) as conn:
            try:
                conn.execute("INSERT INTO _dosa_scopes (name, created_at) VALUES (?, ?)", (scope, _now()))
            except sqlite3.IntegrityError as e:
                raise AlreadyExistsError(f"scope {scope!r} already exists", cause=e) from e
        logger.debug("scope_created", scope=scope)

    def truncate_scope(self, ctx: ExecutionContext, scope: str) -> None:
        with self._session(ctx, "truncate_scope", scope=scope) as conn:
            self._require_scope(conn, scope)
            for table in self._scope_tables(conn, scope):
                conn.execute(f"DELETE FROM {table}")
        logger.debug("scope_truncated", scope=scope)

    def drop_scope(self, ctx: ExecutionContext, scope: str) -> None:
        with self._session(ctx, "drop_scope", scope=scope) as conn:
            self._require_scope(conn, scope)
            for table in self._scope_tables(conn, scope):
                conn.execute(f"DROP TABLE IF EXISTS {table}")
            conn.execute("DELETE FROM _dosa_schemas WHERE scope = ?", (scope,))
            conn.execute("DELETE FROM _dosa_scopes WHERE name = ?", (scope,))
        logger.debug("scope_dropped", scope=scope)

    def scope_exists(self, ctx: ExecutionContext, scope: str) -> bool:
        with self._session(ctx, "scope_exists", scope=scope) as conn:
            row = conn.execute("SELECT 1 FROM _dosa_scopes WHERE name = ?", (scope,)).fetchone()
            return row is not None

    # -- single row ---------------------------------------------------------

    def _insert(self, conn: sqlite3.Connection, ei: EntityInfo, row: FieldValues, upsert: bool) -> None:
        definition = ei.definition
        names = list(row)
        columns = ", ".join(_quote(n) for n in names)
        placeholders = ", ".join("?" for _ in names)
        sql = f"INSERT INTO {self._table_for(ei)} ({columns}) VALUES ({placeholders})"
        if upsert:
            keys = ", ".join(_quote(n) for n in definition.key_names())
            updates = [f"{_quote(n)} = excluded.{_quote(n)}" for n in names if not definition.is_key(n)]
            if updates:
                sql += f" ON CONFLICT ({keys}) DO UPDATE SET {', '.join(updates)}"
            else:
                sql += f" ON CONFLICT ({keys}) DO NOTHING"
        conn.execute(sql, [_to_sql(definition.type_of(n), row[n]) for n in names])

    def create_if_not_exists(self, ctx: ExecutionContext, ei: EntityInfo, values: FieldValues) -> None:
        self._prepare(ctx, "create_if_not_exists", ei)
        row = ei.definition.validate_values(values)
        ei.definition.validate_keys(row)
        with self._session(ctx, "create_if_not_exists", ei) as conn:
            self._require_definition(conn, ei)
            try:
                self._insert(conn, ei, row, upsert=False)
            except sqlite3.IntegrityError as e:
                raise AlreadyExistsError(f"{ei.entity_name} row already exists", cause=e) from e

    def upsert(self, ctx: ExecutionContext, ei: EntityInfo, values: FieldValues) -> None:
        self._prepare(ctx, "upsert", ei)
        row = ei.definition.validate_values(values)
        ei.definition.validate_keys(row)
        with self._session(ctx, "upsert", ei) as conn:
            self._require_definition(conn, ei)
            self._insert(conn, ei, row, upsert=True)

    def read(
        self,
        ctx: ExecutionContext,
        ei: EntityInfo,
        keys: FieldValues,
        fields_to_read: Sequence[str] | None = None,
    ) -> FieldValues:
        self._prepare(ctx, "read", ei)
        key_values = ei.definition.validate_keys(keys)
        names = ei.definition.validate_fields_to_read(fields_to_read)
        with self._session(ctx, "read", ei) as conn:
            definition = self._require_definition(conn, ei)
            clause, params = self._key_clause(definition, key_values)
            columns = ", ".join(_quote(n) for n in names)
            row = conn.execute(
                f"SELECT {columns} FROM {self._table_for(ei)} WHERE {clause}", params
            ).fetchone()
            if row is None:
                raise NotFoundError(f"no {ei.entity_name} row for key {key_values!r}")
            return self._decode_row(definition, names, row)

    def remove(self, ctx: ExecutionContext, ei: EntityInfo, keys: FieldValues) -> None:
        self._prepare(ctx, "remove", ei)
        key_values = ei.definition.validate_keys(keys)
        with self._session(ctx, "remove", ei) as conn:
            definition = self._require_definition(conn, ei)
            clause, params = self._key_clause(definition, key_values)
            conn.execute(f"DELETE FROM {self._table_for(ei)} WHERE {clause}", params)

    # -- batch --------------------------------------------------------------

    def multi_read(
        self,
        ctx: ExecutionContext,
        ei: EntityInfo,
        keys: Sequence[FieldValues],
        fields_to_read: Sequence[str] | None = None,
    ) -> list[Result[FieldValues]]:
        self._prepare(ctx, "multi_read", ei)
        return apply_per_row(ctx, "multi_read", keys, lambda k: self.read(ctx, ei, k, fields_to_read))

    def multi_upsert(
        self, ctx: ExecutionContext, ei: EntityInfo, values: Sequence[FieldValues]
    ) -> list[Result[None]]:
        self._prepare(ctx, "multi_upsert", ei)
        return apply_per_row(ctx, "multi_upsert", values, lambda v: self.upsert(ctx, ei, v))

    def multi_remove(
        self, ctx: ExecutionContext, ei: EntityInfo, keys: Sequence[FieldValues]
    ) -> list[Result[None]]:
        self._prepare(ctx, "multi_remove", ei)
        return apply_per_row(ctx, "multi_remove", keys, lambda k: self.remove(ctx, ei, k))

    # -- scan ---------------------------------------------------------------

    def _page(
        self,
        conn: sqlite3.Connection,
        definition: EntityDefinition,
        table: str,
        names: Sequence[str],
        where: str,
        params: Sequence[Any],
        offset: int,
        limit: int,
    ) -> Page:
        columns = ", ".join(_quote(n) for n in names)
        sql = f"SELECT {columns} FROM {table}"
        if where:
            sql += f" WHERE {where}"
        sql += f" ORDER BY {_order_by(definition)} LIMIT ? OFFSET ?"
        rows = conn.execute(sql, [*params, limit + 1, offset]).fetchall()
        token = _encode_token(offset + limit) if len(rows) > limit else ""
        return Page([self._decode_row(definition, names, row) for row in rows[:limit]], token)

    @staticmethod
    def _check_limit(limit: int) -> None:
        if limit <= 0:
            raise InvalidArgumentError(f"limit must be positive, got {limit}", field="limit", value=limit)
        if limit >= _MAX_SQL_INT:
            raise InvalidArgumentError(f"limit {limit} is too large", field="limit", value=limit)

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
        definition = ei.definition
        self._check_limit(limit)
        offset = _decode_token(token)
        names = definition.validate_fields_to_read(fields_to_read)

        clauses: list[str] = []
        params: list[Any] = []
        for column, column_conditions in conditions.items():
            kind = definition.type_of(column)
            if not definition.is_key(column):
                raise InvalidArgumentError(
                    f"range conditions are limited to key columns, got {column!r}", field=column
                )
            for condition in column_conditions:
                clauses.append(self._condition_sql(definition, column, kind, condition))
                params.append(_to_sql(kind, condition.value))
        for column in definition.partition_key_names():
            if not any(c.op == Operator.EQ for c in conditions.get(column, ())):
                raise InvalidArgumentError(
                    f"range needs an equality condition on partition key {column!r}", field=column
                )

        with self._session(ctx, "range", ei) as conn:
            stored = self._require_definition(conn, ei)
            return self._page(conn, stored, self._table_for(ei), names, " AND ".join(clauses), params, offset, limit)

    @staticmethod
    def _condition_sql(definition: EntityDefinition, column: str, kind: FieldType, condition: Condition) -> str:
        if condition.value is None:
            raise InvalidArgumentError(f"range condition on {column!r} needs a value", field=column)
        validate_value(kind, condition.value, field=column)
        if column in definition.partition_key_names() and condition.op != Operator.EQ:
            raise InvalidArgumentError(
                f"partition key {column!r} only supports equality, got {condition.op.name}", field=column
            )
        return f"{_quote(column)} {_SQL_OPERATORS[Operator(condition.op)]} ?"

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
        definition = ei.definition
        self._check_limit(limit)
        offset = _decode_token(token)
        names = definition.validate_fields_to_read(fields_to_read)
        kind = definition.type_of(field_pair.name)
        if field_pair.value is None:
            raise InvalidArgumentError(f"search on {field_pair.name!r} needs a value", field=field_pair.name)
        value = validate_value(kind, field_pair.value, field=field_pair.name)

        with self._session(ctx, "search", ei) as conn:
            stored = self._require_definition(conn, ei)
            return self._page(
                conn,
                stored,
                self._table_for(ei),
                names,
                f"{_quote(field_pair.name)} = ?",
                [_to_sql(kind, value)],
                offset,
                limit,
            )

    def scan(
        self,
        ctx: ExecutionContext,
        ei: EntityInfo,
        fields_to_read: Sequence[str] | None = None,
        token: str = "",
        limit: int = 100,
    ) -> Page:
        self._prepare(ctx, "scan", ei)
        self._check_limit(limit)
        offset = _decode_token(token)
        names = ei.definition.validate_fields_to_read(fields_to_read)
        with self._session(ctx, "scan", ei) as conn:
            stored = self._require_definition(conn, ei)
            return self._page(conn, stored, self._table_for(ei), names, "", (), offset, limit)

    # -- lifecycle ----------------------------------------------------------

    def _release(self) -> None:
        with self._lock:
            self._conn.close()


def register_connector(registry: Any) -> None:
    """Setup hook called by :func:`dosa.core.connectors.registry.default_registry`."""
    registry.register(SQLiteConnector.name, lambda config: SQLiteConnector(SQLiteConnectorConfig.from_mapping(config)))


__all__ = [
    "SQLiteConnector",
    "SQLiteConnectorConfig",
    "register_connector",
]
