"""Tests for dosa.core.fqn module."""

import pytest

from dosa.core.errors import InvalidArgumentError
from dosa.core.fqn import FQN, is_valid_name, to_fqn


class TestFQN:
    def test_segments_and_name(self):
        fqn = FQN("dosa.testing.Order")
        assert fqn.segments == ("dosa", "testing", "Order")
        assert fqn.name == "Order"
        assert fqn.parent == "dosa.testing"
        assert FQN("root").parent is None

    def test_child_preserves_case(self):
        assert FQN("billing").child("Order") == "billing.Order"

    def test_parse(self):
        fqn = FQN.parse("billing").child("Order")
        assert fqn == "billing.Order"
        assert isinstance(fqn, FQN)

    def test_is_plain_string(self):
        fqn = to_fqn("billing.Order")
        assert isinstance(fqn, str)
        assert {fqn: 1}["billing.Order"] == 1

    def test_ancestor(self):
        assert FQN("billing").is_ancestor_of("billing.Order")
        assert not FQN("billing").is_ancestor_of("billingx.Order")

    @pytest.mark.parametrize("value", ["", "a..b", "1abc", "a.b-c", ".a", "a."])
    def test_invalid(self, value):
        with pytest.raises(InvalidArgumentError):
            FQN(value)

    def test_invalid_child(self):
        with pytest.raises(InvalidArgumentError):
            FQN("billing").child("has.dot")

    def test_is_valid_name(self):
        assert is_valid_name("_Order2")
        assert not is_valid_name("2Order")
        assert not is_valid_name("a.b")
