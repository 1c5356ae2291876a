"""Null-safe optional scalars.

Each class holds a ``(value, valid)`` pair so that "absent" stays distinct
from every representable value, including ``0``, ``False`` and the epoch.
Text and JSON round trips go through :mod:`dosa.core.fields`, dispatched on
the class's ``kind``.

Examples:
    >>> v = NullInt64(42)
    >>> v.to_json()
    '42'
    >>> v.nullify()
    >>> v.to_json()
    'null'
    >>> NullInt64.from_json("null").get()
    Traceback (most recent call last):
    ...
    dosa.core.errors.NullValueError: Value is null
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, ClassVar, Generic, TypeVar

from dosa.core.errors import NullValueError
from dosa.core.fields import (
    FieldType,
    FieldValue,
    decode_json,
    decode_text,
    encode_json,
    encode_text,
    validate_value,
)

T = TypeVar("T")


class Nullable(Generic[T]):
    """Base for the optional scalar wrappers; subclasses only set ``kind``."""

    kind: ClassVar[FieldType]

    __slots__ = ("_value", "_valid")

    def __init__(self, value: T | None = None):
        self._value: Any = None
        self._valid = False
        if value is not None:
            self.set(value)

    @classmethod
    def null(cls) -> Nullable[T]:
        return cls()

    @property
    def valid(self) -> bool:
        return self._valid

    def set(self, value: T) -> None:
        """Store ``value`` and mark valid."""
        if value is None:
            raise NullValueError(f"{type(self).__name__}.set() needs a value; use nullify()")
        self._value = validate_value(self.kind, value)
        self._valid = True

    def nullify(self) -> None:
        """Mark invalid. The stored value is no longer meaningful."""
        self._valid = False

    def get(self) -> T:
        """Return the value, or raise NullValueError when invalid."""
        if not self._valid:
            raise NullValueError()
        return self._value

    def to_field_value(self) -> FieldValue:
        return self._value if self._valid else None

    def load(self, value: FieldValue) -> None:
        """Set from a connector field value; ``None`` nullifies."""
        if value is None:
            self.nullify()
        else:
            self.set(value)

    # -- text ---------------------------------------------------------------

    def to_text(self) -> str:
        return encode_text(self.kind, self.to_field_value())

    def load_text(self, text: str | bytes) -> None:
        """Decode in place. On a parse error the value is left invalid."""
        self._valid = False
        self.load(decode_text(self.kind, text))

    @classmethod
    def from_text(cls, text: str | bytes) -> Nullable[T]:
        instance = cls()
        instance.load_text(text)
        return instance

    # -- JSON ---------------------------------------------------------------

    def to_json(self) -> str:
        return encode_json(self.kind, self.to_field_value())

    def load_json(self, data: str | bytes) -> None:
        """Decode in place. On a decode error the value is left invalid."""
        self._valid = False
        self.load(decode_json(self.kind, data))

    @classmethod
    def from_json(cls, data: str | bytes) -> Nullable[T]:
        instance = cls()
        instance.load_json(data)
        return instance

    # -- dunder -------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        if not (self._valid or other._valid):
            return True
        return self._valid == other._valid and self._value == other._value

    def __hash__(self) -> int:
        return hash((type(self), self._valid, self._value if self._valid else None))

    def __repr__(self) -> str:
        if not self._valid:
            return f"{type(self).__name__}(null)"
        return f"{type(self).__name__}({self._value!r})"

    def __str__(self) -> str:
        return self.to_text()


class NullBool(Nullable[bool]):
    """Optional boolean."""

    kind = FieldType.BOOL
    __slots__ = ()


class NullInt32(Nullable[int]):
    """Optional 32-bit integer."""

    kind = FieldType.INT32
    __slots__ = ()


class NullInt64(Nullable[int]):
    """Optional 64-bit integer."""

    kind = FieldType.INT64
    __slots__ = ()


class NullFloat64(Nullable[float]):
    """Optional double."""

    kind = FieldType.DOUBLE
    __slots__ = ()


class NullUUID(Nullable[uuid.UUID]):
    """Optional UUID."""

    kind = FieldType.UUID
    __slots__ = ()


class NullTime(Nullable[datetime]):
    """Optional timestamp."""

    kind = FieldType.TIMESTAMP
    __slots__ = ()


NULL_TYPES: dict[FieldType, type[Nullable[Any]]] = {
    cls.kind: cls for cls in (NullBool, NullInt32, NullInt64, NullFloat64, NullUUID, NullTime)
}


__all__ = [
    "Nullable",
    "NullBool",
    "NullInt32",
    "NullInt64",
    "NullFloat64",
    "NullUUID",
    "NullTime",
    "NULL_TYPES",
]
