"""Fully-qualified entity names.

An FQN is a dotted path rooted at a name prefix, with the entity's structural
name as the last segment: prefix ``billing`` plus entity ``Order`` gives
``billing.Order``. Segments are identifiers; case is preserved and
significant.
"""

from __future__ import annotations

import re

from dosa.core.errors import InvalidArgumentError

_SEGMENT = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def is_valid_name(name: str) -> bool:
    """True if ``name`` can be a single FQN segment (and so an entity or column name)."""
    return isinstance(name, str) and _SEGMENT.fullmatch(name) is not None


class FQN(str):
    """A validated dotted name. Behaves as the plain string it wraps."""

    __slots__ = ()

    def __new__(cls, value: str) -> FQN:
        if not isinstance(value, str) or not value:
            raise InvalidArgumentError("FQN must be a non-empty string", value=value)
        for segment in value.split("."):
            if not is_valid_name(segment):
                raise InvalidArgumentError(f"invalid FQN {value!r}: bad segment {segment!r}", value=value)
        return super().__new__(cls, value)

    @classmethod
    def parse(cls, value: str) -> FQN:
        return to_fqn(value)

    @property
    def segments(self) -> tuple[str, ...]:
        return tuple(self.split("."))

    @property
    def name(self) -> str:
        """Last segment."""
        return self.segments[-1]

    @property
    def parent(self) -> FQN | None:
        head, _, _ = self.rpartition(".")
        return FQN(head) if head else None

    def child(self, name: str) -> FQN:
        """Append one segment."""
        if not is_valid_name(name):
            raise InvalidArgumentError(f"invalid FQN segment {name!r}", value=name)
        return FQN(f"{self}.{name}")

    def is_ancestor_of(self, other: str) -> bool:
        return other.startswith(f"{self}.")

    def __repr__(self) -> str:
        return f"FQN({str.__repr__(self)})"


def to_fqn(value: str) -> FQN:
    """Parse ``value`` as an FQN, raising InvalidArgumentError when malformed."""
    return value if isinstance(value, FQN) else FQN(value)


__all__ = [
    "FQN",
    "to_fqn",
    "is_valid_name",
]
