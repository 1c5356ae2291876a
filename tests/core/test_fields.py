"""Tests for dosa.core.fields module."""

import math
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from dosa.core.errors import InvalidArgumentError, ParseError, TypeMismatchError
from dosa.core.fields import (
    FieldType,
    Int32,
    decode_json,
    decode_text,
    encode_json,
    encode_text,
    field_type_for,
    from_json_scalar,
    validate_value,
)
from dosa.core.nulls import NullTime


class TestValidateValue:
    def test_none_always_accepted(self):
        for kind in FieldType:
            assert validate_value(kind, None) is None

    def test_bool_is_not_an_integer(self):
        with pytest.raises(InvalidArgumentError, match="expected int64"):
            validate_value(FieldType.INT64, True)

    def test_int32_range(self):
        assert validate_value(FieldType.INT32, 2**31 - 1) == 2**31 - 1
        with pytest.raises(InvalidArgumentError, match="out of range"):
            validate_value(FieldType.INT32, 2**31)

    def test_int_widened_for_double(self):
        value = validate_value(FieldType.DOUBLE, 3)
        assert value == 3.0 and isinstance(value, float)

    def test_bytearray_becomes_bytes(self):
        assert validate_value(FieldType.BLOB, bytearray(b"ab")) == b"ab"

    def test_field_name_in_message(self):
        with pytest.raises(InvalidArgumentError, match="field 'Total'") as exc_info:
            validate_value(FieldType.INT64, "500", field="Total")
        assert exc_info.value.field == "Total"


class TestTextCodec:
    @pytest.mark.parametrize(
        "kind,value,text",
        [
            (FieldType.BOOL, True, "true"),
            (FieldType.INT64, -42, "-42"),
            (FieldType.DOUBLE, 1.5, "1.5"),
            (FieldType.STRING, "hi", "hi"),
            (FieldType.BLOB, b"\x00\x01", "AAE="),
            (FieldType.UUID, uuid.UUID(int=1), "00000000-0000-0000-0000-000000000001"),
        ],
    )
    def test_encode(self, kind, value, text):
        assert encode_text(kind, value) == text
        assert decode_text(kind, text) == value

    def test_none_encodes_empty(self):
        assert encode_text(FieldType.INT64, None) == ""

    @pytest.mark.parametrize("text", ["", "null", b"null"])
    def test_null_tokens_decode_to_none(self, text):
        assert decode_text(FieldType.INT64, text) is None

    @pytest.mark.parametrize("token", ["1", "t", "TRUE", "True"])
    def test_bool_tokens(self, token):
        assert decode_text(FieldType.BOOL, token) is True

    def test_timestamp_iso(self):
        when = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        assert decode_text(FieldType.TIMESTAMP, encode_text(FieldType.TIMESTAMP, when)) == when

    @pytest.mark.parametrize(
        "kind,text",
        [
            (FieldType.INT64, "12abc"),
            (FieldType.INT64, "1.5"),
            (FieldType.INT32, "4294967296"),
            (FieldType.BOOL, "yes"),
            (FieldType.DOUBLE, "one"),
            (FieldType.UUID, "not-a-uuid"),
            (FieldType.BLOB, "!!"),
        ],
    )
    def test_parse_errors(self, kind, text):
        with pytest.raises(ParseError):
            decode_text(kind, text)

    def test_integer_beyond_digit_limit(self):
        with pytest.raises(ParseError):
            decode_text(FieldType.INT64, "9" * 5000)


class TestJsonCodec:
    def test_large_integer_is_exact(self):
        assert decode_json(FieldType.INT64, "9007199254740993") == 9007199254740993

    def test_integral_fraction_accepted(self):
        assert decode_json(FieldType.INT64, "42.0") == 42

    def test_fraction_into_integer_is_type_mismatch(self):
        with pytest.raises(TypeMismatchError, match="fractional"):
            decode_json(FieldType.INT64, "1.5")

    def test_wrong_json_type(self):
        with pytest.raises(TypeMismatchError):
            decode_json(FieldType.INT64, '"42"')
        with pytest.raises(TypeMismatchError):
            from_json_scalar(FieldType.BOOL, 1)

    def test_malformed_json(self):
        with pytest.raises(ParseError, match="malformed JSON"):
            decode_json(FieldType.INT64, "{")

    def test_integer_beyond_digit_limit(self):
        with pytest.raises(ParseError):
            decode_json(FieldType.INT64, "9" * 5000)

    def test_invalid_utf8(self):
        with pytest.raises(ParseError):
            decode_json(FieldType.STRING, b"\"\xff\"")

    def test_null(self):
        assert encode_json(FieldType.STRING, None) == "null"
        assert decode_json(FieldType.STRING, "null") is None

    def test_double_from_decimal(self):
        assert from_json_scalar(FieldType.DOUBLE, Decimal("2.5")) == 2.5

    def test_nan_has_no_json(self):
        with pytest.raises(InvalidArgumentError):
            encode_json(FieldType.DOUBLE, float("nan"))

    def test_blob_round_trip(self):
        assert decode_json(FieldType.BLOB, encode_json(FieldType.BLOB, b"abc")) == b"abc"


class TestFieldTypeFor:
    def test_builtin_annotations(self):
        assert field_type_for(int) is FieldType.INT64
        assert field_type_for(Int32) is FieldType.INT32
        assert field_type_for(str) is FieldType.STRING
        assert field_type_for(uuid.UUID) is FieldType.UUID

    def test_nullable_wrapper(self):
        assert field_type_for(NullTime) is FieldType.TIMESTAMP

    def test_unknown(self):
        assert field_type_for(list) is None


ROUND_TRIP_VALUES = [
    (FieldType.BOOL, True),
    (FieldType.BOOL, False),
    (FieldType.INT32, -(2**31)),
    (FieldType.INT32, 2**31 - 1),
    (FieldType.INT32, 0),
    (FieldType.INT64, -(2**63)),
    (FieldType.INT64, 2**63 - 1),
    (FieldType.INT64, 2**53 + 1),
    (FieldType.DOUBLE, -0.0),
    (FieldType.DOUBLE, 0.1),
    (FieldType.DOUBLE, 1e300),
    (FieldType.DOUBLE, 5e-324),
    (FieldType.STRING, "héllo, wörld"),
    (FieldType.STRING, "null "),
    (FieldType.BLOB, b"\x00\xff\x10"),
    (FieldType.UUID, uuid.UUID(int=0)),
    (FieldType.UUID, uuid.UUID("12345678-1234-5678-1234-567812345678")),
    (FieldType.TIMESTAMP, datetime(2024, 1, 2, 3, 4, 5, 678901, tzinfo=timezone.utc)),
    (FieldType.TIMESTAMP, datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone(timedelta(hours=-7)))),
    (FieldType.TIMESTAMP, datetime(2024, 1, 2, 3, 4, 5)),
]


def _same(kind, left, right):
    if kind is FieldType.DOUBLE:
        return left == right and math.copysign(1, left) == math.copysign(1, right)
    if kind is FieldType.TIMESTAMP:
        return left == right and left.utcoffset() == right.utcoffset()
    return left == right and type(left) is type(right)


class TestRoundTrip:
    """``decode(encode(x)) == x`` for every kind, in both encodings."""

    def test_every_kind_covered(self):
        assert {kind for kind, _ in ROUND_TRIP_VALUES} == set(FieldType)

    @pytest.mark.parametrize("kind,value", ROUND_TRIP_VALUES)
    def test_text(self, kind, value):
        assert _same(kind, decode_text(kind, encode_text(kind, value)), value)

    @pytest.mark.parametrize("kind,value", ROUND_TRIP_VALUES)
    def test_json(self, kind, value):
        assert _same(kind, decode_json(kind, encode_json(kind, value)), value)

    def test_empty_blob_json(self):
        assert decode_json(FieldType.BLOB, encode_json(FieldType.BLOB, b"")) == b""

    def test_empty_values_are_null_in_text(self):
        # text reserves "" for null
        assert decode_text(FieldType.STRING, encode_text(FieldType.STRING, "")) is None
        assert decode_text(FieldType.BLOB, encode_text(FieldType.BLOB, b"")) is None

    @pytest.mark.parametrize("kind", list(FieldType))
    def test_null(self, kind):
        assert decode_text(kind, encode_text(kind, None)) is None
        assert decode_json(kind, encode_json(kind, None)) is None
