"""
Object-level client.

``Client`` joins a :class:`Registrar` (what entities exist and where they
live) with a :class:`Connector` (where rows are stored). Callers pass entity
instances; the client resolves each to its registration, extracts key and
column values, and fills objects back in on reads.

Examples:
    >>> client = Client(Registrar.from_entities("acct", "billing", Order), connector)
    >>> client.initialize(background())
    >>> client.upsert(background(), Order(ID=7, Total=500))
    >>> order = client.read(background(), Order(ID=7), fields=["Total"])
    >>> order.Total
    500

Tags:
    client, dosa-core
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, TypeVar

from dosa.core.context import ExecutionContext
from dosa.core.errors import InvalidArgumentError
from dosa.core.logging import get_logger
from dosa.core.registry import RegisteredEntity, Registrar
from dosa.core.result import Err, Ok, Result

from .connectors.base import Connector, SchemaStatus

logger = get_logger(__name__)

E = TypeVar("E")


class Client:
    """Entity-level operations over one registrar and one connector."""

    def __init__(self, registrar: Registrar, connector: Connector):
        self._registrar = registrar
        self._connector = connector
        self._schema: SchemaStatus | None = None

    @property
    def registrar(self) -> Registrar:
        return self._registrar

    @property
    def connector(self) -> Connector:
        return self._connector

    @property
    def schema_status(self) -> SchemaStatus | None:
        """Result of the last :meth:`initialize`, or None before it ran."""
        return self._schema

    def initialize(self, ctx: ExecutionContext) -> SchemaStatus:
        """Create the scope if needed and upsert the schema of every registered entity."""
        scope = self._registrar.scope
        prefix = self._registrar.name_prefix
        definitions = [r.definition for r in self._registrar.find_all()]
        if not self._connector.scope_exists(ctx, scope):
            self._connector.create_scope(ctx, scope)
        self._schema = self._connector.upsert_schema(ctx, scope, prefix, definitions)
        logger.info(
            "client_initialized",
            scope=scope,
            name_prefix=prefix,
            version=self._schema.version,
            entities=[d.name for d in definitions],
        )
        return self._schema

    # -- single object ------------------------------------------------------

    def _written_fields(self, registered: RegisteredEntity, fields: Sequence[str] | None) -> list[str] | None:
        if not fields:
            return None
        return list(dict.fromkeys([*registered.definition.key_names(), *fields]))

    def create_if_not_exists(self, ctx: ExecutionContext, obj: Any) -> None:
        registered = self._registrar.find(obj)
        self._connector.create_if_not_exists(ctx, registered.info, registered.field_values(obj))

    def upsert(self, ctx: ExecutionContext, obj: Any, fields: Sequence[str] | None = None) -> None:
        """Write ``fields`` (all columns when omitted); key fields are always written."""
        registered = self._registrar.find(obj)
        values = registered.field_values(obj, self._written_fields(registered, fields))
        self._connector.upsert(ctx, registered.info, values)

    def read(self, ctx: ExecutionContext, obj: E, fields: Sequence[str] | None = None) -> E:
        """Fill ``obj`` with the stored values of ``fields`` for its key; returns ``obj``."""
        registered = self._registrar.find(obj)
        values = self._connector.read(ctx, registered.info, registered.key_values(obj), fields)
        registered.set_field_values(obj, values)
        return obj

    def remove(self, ctx: ExecutionContext, obj: Any) -> None:
        registered = self._registrar.find(obj)
        self._connector.remove(ctx, registered.info, registered.key_values(obj))

    # -- batch --------------------------------------------------------------

    def _common_registration(self, objs: Sequence[Any]) -> RegisteredEntity:
        registered = self._registrar.find(objs[0])
        for obj in objs[1:]:
            if self._registrar.find(obj).fqn != registered.fqn:
                raise InvalidArgumentError(
                    f"batch mixes entity types: expected every object to be {registered.name}"
                )
        return registered

    def multi_read(
        self, ctx: ExecutionContext, objs: Sequence[E], fields: Sequence[str] | None = None
    ) -> list[Result[E]]:
        """Read each object; successful positions are filled in place."""
        if not objs:
            return []
        registered = self._common_registration(objs)
        keys = [registered.key_values(obj) for obj in objs]
        results = self._connector.multi_read(ctx, registered.info, keys, fields)

        filled: list[Result[E]] = []
        for obj, result in zip(objs, results):
            match result:
                case Ok(value):
                    registered.set_field_values(obj, value)
                    filled.append(Ok(obj))
                case Err(error):
                    filled.append(Err(error))
        return filled

    def multi_upsert(
        self, ctx: ExecutionContext, objs: Sequence[Any], fields: Sequence[str] | None = None
    ) -> list[Result[None]]:
        if not objs:
            return []
        registered = self._common_registration(objs)
        names = self._written_fields(registered, fields)
        values = [registered.field_values(obj, names) for obj in objs]
        return self._connector.multi_upsert(ctx, registered.info, values)

    def multi_remove(self, ctx: ExecutionContext, objs: Sequence[Any]) -> list[Result[None]]:
        if not objs:
            return []
        registered = self._common_registration(objs)
        keys = [registered.key_values(obj) for obj in objs]
        return self._connector.multi_remove(ctx, registered.info, keys)

    # -- lifecycle ----------------------------------------------------------

    def shutdown(self) -> None:
        self._connector.shutdown()

    def __enter__(self) -> Client:
        return self

    def __exit__(self, *args: Any) -> None:
        if not self._connector.closed:
            self._connector.shutdown()


__all__ = [
    "Client",
]
