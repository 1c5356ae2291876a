"""Entity registry and FQN resolution.

Manifesto:
    A Registrar is built once per process from a scope, a name prefix and a
    set of entity definitions, and is never mutated afterwards. Concurrent
    lookups need no locking. Construction fails loudly: invalid definitions
    reported by discovery abort with every problem listed, and two
    definitions resolving to the same FQN are rejected instead of one
    silently replacing the other.

Features:
    - ``Registrar.from_entities()`` for ``@entity`` classes
    - ``Registrar.from_discovery()`` for an external ``EntityDiscovery``
    - ``find()`` resolves an instance or class to its ``RegisteredEntity``
    - ``find_all()`` treats an empty registry as an error

Tags:
    dosa-core, registry, fqn, lookup

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Protocol, runtime_checkable

from dosa.core.entity import EntityDefinition, EntityInfo, SchemaRef, definition_of
from dosa.core.errors import (
    DuplicateEntityError,
    EmptyRegistryError,
    EntityErrors,
    InvalidArgumentError,
    NotFoundError,
)
from dosa.core.fields import FieldValue
from dosa.core.fqn import FQN, to_fqn
from dosa.core.logging import get_logger
from dosa.core.nulls import Nullable

logger = get_logger(__name__)


@dataclass(frozen=True)
class RegisteredEntity:
    """An entity definition bound to a scope and name prefix under one FQN."""

    scope: str
    name_prefix: str
    definition: EntityDefinition
    fqn: FQN

    @property
    def info(self) -> EntityInfo:
        ref = SchemaRef(self.scope, self.name_prefix, self.definition.name)
        return EntityInfo(ref=ref, definition=self.definition)

    @property
    def name(self) -> str:
        """Stored entity name."""
        return self.definition.name

    @property
    def struct_name(self) -> str:
        """Structural name the FQN ends with."""
        return self.definition.struct_name

    def key_values(self, obj: Any) -> dict[str, FieldValue]:
        """Primary-key values read from an entity instance."""
        return self.field_values(obj, self.definition.key_names())

    def field_values(self, obj: Any, names: Iterable[str] | None = None) -> dict[str, FieldValue]:
        """Column values read from an entity instance; ``Null*`` wrappers unwrap to value or None."""
        values: dict[str, FieldValue] = {}
        for name in self.definition.validate_fields_to_read(names):
            value = getattr(obj, name, None)
            values[name] = value.to_field_value() if isinstance(value, Nullable) else value
        return values

    def set_field_values(self, obj: Any, values: Mapping[str, FieldValue]) -> None:
        """Write connector values back onto an entity instance."""
        for name, value in values.items():
            self.definition.type_of(name)
            current = getattr(obj, name, None)
            if isinstance(current, Nullable):
                current.load(value)
            else:
                setattr(obj, name, value)


@dataclass(frozen=True)
class DiscoveryResult:
    """Output of an external discovery pass.

    ``warnings`` describe declarations that were found but carry invalid
    annotations.
    """

    definitions: Sequence[EntityDefinition]
    warnings: Sequence[Any] = field(default_factory=tuple)


@runtime_checkable
class EntityDiscovery(Protocol):
    """External collaborator that locates entity declarations."""

    def find_entities(self) -> DiscoveryResult:
        """Return every definition found. I/O and parse errors are raised."""
        ...


class Registrar:
    """Immutable FQN → RegisteredEntity index for one scope and name prefix."""

    def __init__(self, scope: str, name_prefix: str, definitions: Iterable[EntityDefinition]):
        if not scope:
            raise InvalidArgumentError("registrar needs a scope")
        base = to_fqn(name_prefix)

        index: dict[FQN, RegisteredEntity] = {}
        for definition in definitions:
            fqn = base.child(definition.struct_name)
            if fqn in index:
                raise DuplicateEntityError(fqn)
            index[fqn] = RegisteredEntity(scope, name_prefix, definition, fqn)

        self._scope = scope
        self._name_prefix = name_prefix
        self._base_fqn = base
        self._index: Mapping[FQN, RegisteredEntity] = MappingProxyType(index)
        logger.debug(
            "registrar_built",
            scope=scope,
            name_prefix=name_prefix,
            entities=sorted(index),
        )

    @classmethod
    def from_entities(cls, scope: str, name_prefix: str, *entities: Any) -> Registrar:
        """Register ``@entity`` classes (or instances of them)."""
        return cls(scope, name_prefix, [definition_of(e) for e in entities])

    @classmethod
    def from_discovery(cls, scope: str, name_prefix: str, discovery: EntityDiscovery) -> Registrar:
        """
        Register everything an external discovery pass finds.

        Raises:
            EntityErrors: discovery reported invalid declarations
            Exception: whatever the collaborator raises, unchanged
        """
        result = discovery.find_entities()
        if result.warnings:
            raise EntityErrors(result.warnings)
        return cls(scope, name_prefix, result.definitions)

    @property
    def scope(self) -> str:
        return self._scope

    @property
    def name_prefix(self) -> str:
        return self._name_prefix

    @property
    def base_fqn(self) -> FQN:
        return self._base_fqn

    def find(self, entity: Any) -> RegisteredEntity:
        """Registration for an entity instance or class.

        Raises:
            NotFoundError: the entity's FQN is not registered here
        """
        try:
            name = definition_of(entity).struct_name
        except InvalidArgumentError:
            name = entity.__name__ if isinstance(entity, type) else type(entity).__name__
        return self.find_by_name(name)

    def find_by_name(self, name: str) -> RegisteredEntity:
        """Registration for a structural entity name."""
        try:
            fqn = self._base_fqn.child(name)
        except InvalidArgumentError:
            raise NotFoundError(f"failed to find registration for entity {name}") from None
        registered = self._index.get(fqn)
        if registered is None:
            raise NotFoundError(f"failed to find registration for entity {name}").with_context(
                entity=name, scope=self._scope, name_prefix=self._name_prefix
            )
        return registered

    def find_all(self) -> list[RegisteredEntity]:
        """Every registration, ordered by FQN.

        Raises:
            EmptyRegistryError: nothing is registered
        """
        if not self._index:
            raise EmptyRegistryError("registry.find_all returned empty")
        return [self._index[fqn] for fqn in sorted(self._index)]

    def __len__(self) -> int:
        return len(self._index)

    def __contains__(self, fqn: object) -> bool:
        return fqn in self._index

    def __repr__(self) -> str:
        return f"Registrar(scope={self._scope!r}, name_prefix={self._name_prefix!r}, entities={len(self)})"


__all__ = [
    "RegisteredEntity",
    "DiscoveryResult",
    "EntityDiscovery",
    "Registrar",
]
