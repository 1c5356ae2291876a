"""
Entity definitions and addressing.

An :class:`EntityDefinition` is the immutable schema of one record type: its
structural name, primary key and typed columns. Definitions are attached to
application classes explicitly with the :func:`entity` decorator, or built
directly by a discovery collaborator. :class:`EntityInfo` pairs a definition
with its address (scope, name prefix, entity name) and is what every
connector call receives.

Manifesto:
    - **Explicit registration:** ``@entity(primary_key="(ID)")`` attaches the
      definition at class-creation time; nothing is discovered by scanning
    - **Immutable:** Definitions and addresses are frozen dataclasses
    - **Validated once:** Names, key components and column uniqueness are
      checked on construction, so connectors can trust what they receive

Examples:
    >>> @entity(primary_key="ID")
    ... @dataclass
    ... class Order:
    ...     ID: int = 0
    ...     Total: int = 0
    >>> definition_of(Order).key_names()
    ('ID',)

Tags:
    entity, schema, addressing, dosa-core

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import typing
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from types import NoneType, UnionType
from typing import Any, TypeVar

from dosa.core.errors import InvalidArgumentError
from dosa.core.fields import FieldType, FieldValue, field_type_for, validate_value
from dosa.core.fqn import is_valid_name
from dosa.core.keyspec import ClusteringKey, PrimaryKey, parse_entity_tag, parse_primary_key

ENTITY_ATTR = "__dosa_entity__"

C = TypeVar("C", bound=type)


@dataclass(frozen=True)
class ColumnDefinition:
    """One typed column."""

    name: str
    type: FieldType


@dataclass(frozen=True)
class EntityDefinition:
    """
    Immutable schema for one record type.

    ``name`` is the stored entity (table) name. ``struct_name`` is the
    structural name FQNs are built from; it defaults to ``name`` and is not
    part of the stored schema.
    """

    name: str
    key: PrimaryKey
    columns: tuple[ColumnDefinition, ...]
    struct_name: str = field(default="", compare=False)
    _types: Mapping[str, FieldType] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not is_valid_name(self.name):
            raise InvalidArgumentError(f"invalid entity name {self.name!r}", value=self.name)
        if not self.struct_name:
            object.__setattr__(self, "struct_name", self.name)
        elif not is_valid_name(self.struct_name):
            raise InvalidArgumentError(
                f"invalid structural name {self.struct_name!r}", value=self.struct_name
            )
        object.__setattr__(self, "columns", tuple(self.columns))

        types: dict[str, FieldType] = {}
        for column in self.columns:
            if not is_valid_name(column.name):
                raise InvalidArgumentError(
                    f"{self.name}: invalid column name {column.name!r}", field=column.name
                )
            if column.name in types:
                raise InvalidArgumentError(
                    f"{self.name}: duplicate column {column.name!r}", field=column.name
                )
            types[column.name] = FieldType(column.type)
        for key_name in self.key.names():
            if key_name not in types:
                raise InvalidArgumentError(
                    f"{self.name}: key component {key_name!r} is not a column", field=key_name
                )
        object.__setattr__(self, "_types", types)

    @classmethod
    def build(
        cls,
        name: str,
        primary_key: str | PrimaryKey,
        columns: Mapping[str, FieldType] | Iterable[ColumnDefinition],
        struct_name: str = "",
    ) -> EntityDefinition:
        """Convenience constructor taking a key spec string and a name → type mapping."""
        key = parse_primary_key(primary_key) if isinstance(primary_key, str) else primary_key
        if isinstance(columns, Mapping):
            cols = tuple(ColumnDefinition(n, FieldType(t)) for n, t in columns.items())
        else:
            cols = tuple(columns)
        return cls(name=name, key=key, columns=cols, struct_name=struct_name)

    # -- lookups ------------------------------------------------------------

    def column_names(self) -> tuple[str, ...]:
        return tuple(c.name for c in self.columns)

    def column_types(self) -> dict[str, FieldType]:
        return dict(self._types)

    def type_of(self, name: str) -> FieldType:
        try:
            return self._types[name]
        except KeyError:
            raise InvalidArgumentError(f"{self.name} has no column {name!r}", field=name) from None

    def key_names(self) -> tuple[str, ...]:
        return self.key.names()

    def partition_key_names(self) -> tuple[str, ...]:
        return self.key.partition_keys

    def clustering_keys(self) -> tuple[ClusteringKey, ...]:
        return self.key.clustering_keys

    def is_key(self, name: str) -> bool:
        return name in self.key.names()

    # -- value checks -------------------------------------------------------

    def validate_values(self, values: Mapping[str, FieldValue]) -> dict[str, FieldValue]:
        """Type-check every supplied value; unknown columns are rejected."""
        checked: dict[str, FieldValue] = {}
        for name, value in values.items():
            checked[name] = validate_value(self.type_of(name), value, field=name)
        return checked

    def validate_keys(self, values: Mapping[str, FieldValue]) -> dict[str, FieldValue]:
        """Type-check and return exactly the primary-key values; all must be present and non-null."""
        keys: dict[str, FieldValue] = {}
        for name in self.key.names():
            if values.get(name) is None:
                raise InvalidArgumentError(f"{self.name}: missing value for key field {name!r}", field=name)
            keys[name] = validate_value(self._types[name], values[name], field=name)
        return keys

    def validate_fields_to_read(self, names: Iterable[str] | None) -> tuple[str, ...]:
        """Resolve a projection; ``None`` or empty means every column."""
        if not names:
            return self.column_names()
        resolved = tuple(names)
        for name in resolved:
            self.type_of(name)
        return resolved

    # -- evolution ----------------------------------------------------------

    def compatibility_problems(self, proposed: EntityDefinition) -> list[str]:
        """
        Why ``proposed`` cannot replace this definition, or ``[]`` when it can.

        A compatible change keeps the primary key, keeps every column with the
        same type, and may add columns.
        """
        problems = []
        if proposed.name != self.name:
            problems.append(f"entity name changed from {self.name!r} to {proposed.name!r}")
        if proposed.key != self.key:
            problems.append(f"{self.name}: primary key changed from {self.key} to {proposed.key}")
        for column in self.columns:
            new_type = proposed._types.get(column.name)
            if new_type is None:
                problems.append(f"{self.name}: column {column.name!r} removed")
            elif new_type != column.type:
                problems.append(
                    f"{self.name}: column {column.name!r} changed from {column.type.value} to {new_type.value}"
                )
        return problems

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "partition_keys": list(self.key.partition_keys),
            "clustering_keys": [
                {"name": ck.name, "descending": ck.descending} for ck in self.key.clustering_keys
            ],
            "columns": [{"name": c.name, "type": c.type.value} for c in self.columns],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> EntityDefinition:
        key = PrimaryKey(
            tuple(data["partition_keys"]),
            tuple(ClusteringKey(ck["name"], ck["descending"]) for ck in data["clustering_keys"]),
        )
        columns = tuple(ColumnDefinition(c["name"], FieldType(c["type"])) for c in data["columns"])
        return cls(name=data["name"], key=key, columns=columns)


@dataclass(frozen=True)
class SchemaRef:
    """Address of one entity: scope, name prefix, entity name, schema version."""

    scope: str
    name_prefix: str
    entity_name: str
    version: int = 0


@dataclass(frozen=True)
class EntityInfo:
    """Address plus definition; the unit passed into every connector call."""

    ref: SchemaRef | None
    definition: EntityDefinition | None

    @property
    def entity_name(self) -> str:
        return self.ref.entity_name if self.ref else ""

    def validate(self) -> None:
        """Local addressing checks, run before any backend is contacted."""
        if self.ref is None:
            raise InvalidArgumentError("invalid entity info: missing schema reference")
        if not self.ref.entity_name:
            raise InvalidArgumentError("invalid entity info: missing entity name")
        if not self.ref.scope:
            raise InvalidArgumentError("invalid entity info: missing scope")
        if not self.ref.name_prefix:
            raise InvalidArgumentError("invalid entity info: missing name prefix")
        if self.definition is None:
            raise InvalidArgumentError(
                f"invalid entity info: missing definition for {self.ref.entity_name!r}"
            )

    def with_version(self, version: int) -> EntityInfo:
        ref = self.ref
        if ref is None:
            raise InvalidArgumentError("invalid entity info: missing schema reference")
        return EntityInfo(
            SchemaRef(ref.scope, ref.name_prefix, ref.entity_name, version), self.definition
        )


# =============================================================================
# EXPLICIT REGISTRATION
# =============================================================================


def _unwrap_optional(annotation: Any) -> Any:
    origin = typing.get_origin(annotation)
    if origin in (typing.Union, UnionType):
        args = [a for a in typing.get_args(annotation) if a is not NoneType]
        if len(args) == 1:
            return args[0]
    return annotation


def _columns_from_annotations(
    cls: type, overrides: Mapping[str, FieldType]
) -> tuple[ColumnDefinition, ...]:
    hints = typing.get_type_hints(cls)
    columns = []
    for name, annotation in hints.items():
        if name.startswith("_") or typing.get_origin(annotation) is typing.ClassVar:
            continue
        kind = overrides.get(name) or field_type_for(_unwrap_optional(annotation))
        if kind is None:
            raise InvalidArgumentError(
                f"{cls.__name__}.{name}: cannot map annotation {annotation!r} to a field type",
                field=name,
            )
        columns.append(ColumnDefinition(name, FieldType(kind)))
    return tuple(columns)


def entity(
    primary_key: str | None = None,
    *,
    name: str | None = None,
    tag: str | None = None,
    types: Mapping[str, FieldType] | None = None,
) -> Callable[[C], C]:
    """
    Class decorator attaching an :class:`EntityDefinition`.

    Columns come from the class annotations (``int`` → INT64, ``Int32`` →
    INT32, ``NullTime`` → TIMESTAMP, ``Optional[X]`` → X); ``types`` overrides
    individual columns. Pass either ``primary_key`` or a full ``tag``
    (``"name=orders primaryKey=(ID)"``).
    A ``name`` (argument or tag item) sets the stored entity name only; the
    registry keys the class by its own name.
    """
    if (primary_key is None) == (tag is None):
        raise InvalidArgumentError("entity() needs exactly one of primary_key or tag")

    def decorator(cls: C) -> C:
        if tag is not None:
            parsed = parse_entity_tag(tag)
            key, tag_name = parsed.primary_key, parsed.name
        else:
            key, tag_name = parse_primary_key(primary_key), None
        definition = EntityDefinition(
            name=name or tag_name or cls.__name__,
            struct_name=cls.__name__,
            key=key,
            columns=_columns_from_annotations(cls, types or {}),
        )
        setattr(cls, ENTITY_ATTR, definition)
        return cls

    return decorator


def definition_of(obj: Any) -> EntityDefinition:
    """Definition attached to an entity class or instance."""
    cls = obj if isinstance(obj, type) else type(obj)
    definition = getattr(cls, ENTITY_ATTR, None)
    if not isinstance(definition, EntityDefinition):
        raise InvalidArgumentError(f"{cls.__name__} is not a registered entity type (missing @entity)")
    return definition


def is_entity(obj: Any) -> bool:
    cls = obj if isinstance(obj, type) else type(obj)
    return isinstance(getattr(cls, ENTITY_ATTR, None), EntityDefinition)


__all__ = [
    "ColumnDefinition",
    "EntityDefinition",
    "SchemaRef",
    "EntityInfo",
    "entity",
    "definition_of",
    "is_entity",
    "ENTITY_ATTR",
]
