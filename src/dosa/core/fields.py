"""
Scalar field kinds and their text / JSON codecs.

A ``FieldValue`` is one scalar for one column of one row: ``bool``, ``int``
(32 or 64 bit), ``float``, ``str``, ``bytes``, ``uuid.UUID``,
``datetime.datetime``, or ``None`` for the absent state. The codec functions
here are dispatched on the column's declared :class:`FieldType` rather than
on whatever Python type the parser happened to produce.

Manifesto:
    - **Dispatch on declared kind:** ``decode_json(INT64, "9007199254740993")``
      is exact; integers never travel through a float
    - **Null is not a value:** ``""`` / ``"null"`` (text) and JSON ``null``
      decode to ``None`` for every kind
    - **Strict types:** ``True`` is not an integer here, and 1.5 is not an int

Wire formats:
    ::

        kind        text                     JSON
        ─────────   ──────────────────────   ─────────────────────────
        BOOL        true / false             true / false
        INT32/64    decimal                  number
        DOUBLE      shortest repr            number
        STRING      as-is                    string
        BLOB        base64                   base64 string
        UUID        canonical 8-4-4-4-12     string
        TIMESTAMP   ISO-8601                 ISO-8601 string
        (absent)    ""                       null

Tags:
    codec, serialization, null-safety, field-types, dosa-core

Doc-Types:
    - API Reference
    - Wire Format Reference
"""

from __future__ import annotations

import base64
import binascii
import json
import re
import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, NewType

from dosa.core.errors import InvalidArgumentError, ParseError, TypeMismatchError

FieldValue = bool | int | float | str | bytes | uuid.UUID | datetime | None

Int32 = NewType("Int32", int)
"""Annotation marker for 32-bit integer columns (plain ``int`` maps to INT64)."""


class FieldType(str, Enum):
    """Scalar kinds a column may hold."""

    BOOL = "bool"
    INT32 = "int32"
    INT64 = "int64"
    DOUBLE = "double"
    STRING = "string"
    BLOB = "blob"
    UUID = "uuid"
    TIMESTAMP = "timestamp"

    @property
    def is_integer(self) -> bool:
        return self in (FieldType.INT32, FieldType.INT64)


INT_RANGES = {
    FieldType.INT32: (-(2**31), 2**31 - 1),
    FieldType.INT64: (-(2**63), 2**63 - 1),
}

PYTHON_TYPES: dict[Any, FieldType] = {
    bool: FieldType.BOOL,
    int: FieldType.INT64,
    Int32: FieldType.INT32,
    float: FieldType.DOUBLE,
    str: FieldType.STRING,
    bytes: FieldType.BLOB,
    uuid.UUID: FieldType.UUID,
    datetime: FieldType.TIMESTAMP,
}

_TRUE_TOKENS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_TOKENS = frozenset({"0", "f", "F", "FALSE", "false", "False"})
_INT_TEXT = re.compile(r"[+-]?[0-9]+")


# =============================================================================
# VALIDATION
# =============================================================================


def _check_range(kind: FieldType, value: int) -> int:
    low, high = INT_RANGES[kind]
    if not low <= value <= high:
        raise ParseError(f"{value} is out of range for {kind.value}", value=value)
    return value


def validate_value(kind: FieldType, value: Any, *, field: str | None = None) -> FieldValue:
    """
    Check that ``value`` is representable as ``kind``.

    ``None`` is always accepted. Ints are accepted for DOUBLE columns and
    returned as floats; nothing else is coerced.

    Raises:
        InvalidArgumentError: wrong Python type or integer out of range
    """
    if value is None:
        return None

    label = f"field {field!r}" if field else kind.value
    match kind:
        case FieldType.BOOL:
            ok = isinstance(value, bool)
        case FieldType.INT32 | FieldType.INT64:
            ok = isinstance(value, int) and not isinstance(value, bool)
            if ok:
                low, high = INT_RANGES[kind]
                if not low <= value <= high:
                    raise InvalidArgumentError(
                        f"{label}: {value} is out of range for {kind.value}", field=field, value=value
                    )
        case FieldType.DOUBLE:
            ok = isinstance(value, (int, float)) and not isinstance(value, bool)
            if ok:
                value = float(value)
        case FieldType.STRING:
            ok = isinstance(value, str)
        case FieldType.BLOB:
            ok = isinstance(value, (bytes, bytearray))
            if ok:
                value = bytes(value)
        case FieldType.UUID:
            ok = isinstance(value, uuid.UUID)
        case FieldType.TIMESTAMP:
            ok = isinstance(value, datetime)
        case _:
            ok = False

    if not ok:
        raise InvalidArgumentError(
            f"{label}: expected {kind.value}, got {type(value).__name__}", field=field, value=value
        )
    return value


# =============================================================================
# TEXT CODEC
# =============================================================================


def encode_text(kind: FieldType, value: FieldValue) -> str:
    """Render a value as canonical text; ``None`` renders as ``""``."""
    if value is None:
        return ""
    value = validate_value(kind, value)
    match kind:
        case FieldType.BOOL:
            return "true" if value else "false"
        case FieldType.INT32 | FieldType.INT64:
            return str(value)
        case FieldType.DOUBLE:
            return repr(value)
        case FieldType.BLOB:
            return base64.b64encode(value).decode("ascii")
        case FieldType.TIMESTAMP:
            return value.isoformat()
        case _:
            return str(value)


def decode_text(kind: FieldType, text: str | bytes) -> FieldValue:
    """
    Parse canonical text.

    ``""`` and ``"null"`` decode to ``None`` without error.

    Raises:
        ParseError: text is not a valid rendering of ``kind``
    """
    if isinstance(text, bytes):
        text = text.decode("utf-8")
    if text == "" or text == "null":
        return None

    match kind:
        case FieldType.BOOL:
            if text in _TRUE_TOKENS:
                return True
            if text in _FALSE_TOKENS:
                return False
        case FieldType.INT32 | FieldType.INT64:
            if _INT_TEXT.fullmatch(text):
                try:
                    number = int(text)
                except ValueError as e:
                    raise ParseError(f"cannot parse {text[:32]!r}... as {kind.value}", value=text) from e
                return _check_range(kind, number)
        case FieldType.DOUBLE:
            try:
                return float(text)
            except ValueError:
                pass
        case FieldType.STRING:
            return text
        case FieldType.BLOB:
            try:
                return base64.b64decode(text, validate=True)
            except binascii.Error:
                pass
        case FieldType.UUID:
            try:
                return uuid.UUID(text)
            except ValueError:
                pass
        case FieldType.TIMESTAMP:
            try:
                return datetime.fromisoformat(text)
            except ValueError:
                pass

    raise ParseError(f"cannot parse {text!r} as {kind.value}", value=text)


# =============================================================================
# JSON CODEC
# =============================================================================


def to_json_scalar(kind: FieldType, value: FieldValue) -> Any:
    """Native JSON-compatible Python object for ``value`` (``None`` stays ``None``)."""
    if value is None:
        return None
    value = validate_value(kind, value)
    match kind:
        case FieldType.BLOB:
            return base64.b64encode(value).decode("ascii")
        case FieldType.UUID:
            return str(value)
        case FieldType.TIMESTAMP:
            return value.isoformat()
        case _:
            return value


def from_json_scalar(kind: FieldType, obj: Any) -> FieldValue:
    """
    Coerce a parsed JSON scalar into ``kind``.

    Fractional numbers are expected as ``Decimal`` (see :func:`decode_json`),
    so integral values beyond 2**53 arrive intact.

    Raises:
        TypeMismatchError: JSON type does not fit ``kind``
        ParseError: right JSON type, but not a valid value (range, format)
    """
    if obj is None:
        return None

    def mismatch() -> TypeMismatchError:
        return TypeMismatchError(
            f"cannot decode JSON {type(obj).__name__} into {kind.value}", value=obj
        )

    is_number = isinstance(obj, (int, float, Decimal)) and not isinstance(obj, bool)

    match kind:
        case FieldType.BOOL:
            if isinstance(obj, bool):
                return obj
            raise mismatch()
        case FieldType.INT32 | FieldType.INT64:
            if not is_number:
                raise mismatch()
            if isinstance(obj, int):
                return _check_range(kind, obj)
            number = Decimal(obj) if isinstance(obj, float) else obj
            if not number.is_finite() or number != number.to_integral_value():
                raise TypeMismatchError(
                    f"fractional number {obj} cannot be decoded into {kind.value}", value=obj
                )
            return _check_range(kind, int(number))
        case FieldType.DOUBLE:
            if not is_number:
                raise mismatch()
            return float(obj)
        case FieldType.STRING:
            if isinstance(obj, str):
                return obj
            raise mismatch()
        case FieldType.BLOB | FieldType.UUID | FieldType.TIMESTAMP:
            if not isinstance(obj, str):
                raise mismatch()
            return decode_text(kind, obj) if obj else _empty_text(kind)
    raise mismatch()


def _empty_text(kind: FieldType) -> FieldValue:
    if kind is FieldType.BLOB:
        return b""
    raise ParseError(f"empty string is not a valid {kind.value}", value="")


def encode_json(kind: FieldType, value: FieldValue) -> str:
    """Render a value as a JSON document; ``None`` renders as ``null``."""
    try:
        return json.dumps(to_json_scalar(kind, value), allow_nan=False)
    except ValueError as e:
        raise InvalidArgumentError(f"{value!r} has no JSON representation", value=value) from e


def decode_json(kind: FieldType, data: str | bytes) -> FieldValue:
    """
    Parse a JSON document holding one scalar of ``kind``.

    Raises:
        ParseError: malformed JSON
        TypeMismatchError: JSON type does not fit ``kind``
    """
    try:
        obj = json.loads(data, parse_float=Decimal)
    except ValueError as e:
        # JSONDecodeError, UnicodeDecodeError and int digit-limit overflow
        raise ParseError(f"malformed JSON for {kind.value}: {e}", value=data) from e
    return from_json_scalar(kind, obj)


def field_type_for(annotation: Any) -> FieldType | None:
    """Map a Python annotation (``int``, ``Int32``, ``NullInt64``...) to its kind."""
    kind = PYTHON_TYPES.get(annotation)
    if kind is not None:
        return kind
    declared = getattr(annotation, "kind", None)
    return declared if isinstance(declared, FieldType) else None


__all__ = [
    "FieldType",
    "FieldValue",
    "Int32",
    "INT_RANGES",
    "validate_value",
    "encode_text",
    "decode_text",
    "to_json_scalar",
    "from_json_scalar",
    "encode_json",
    "decode_json",
    "field_type_for",
]
