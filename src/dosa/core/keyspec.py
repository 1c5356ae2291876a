"""
Primary-key specifications and the entity tag grammar.

Entity declarations carry a tag such as::

    name=orders primaryKey=((CustomerID, Region), CreatedAt desc, OrderID)

which this module parses into a :class:`PrimaryKey` with ordered partition
components and ordered clustering components (each ascending unless marked
``desc``).

Grammar:
    ::

        tag         := item (WS item)*
        item        := "name" "=" IDENT
                     | "primaryKey" "=" key
        key         := IDENT                       single partition key
                     | "(" body ")"
        body        := partition ("," clustering)*
        partition   := IDENT
                     | "(" IDENT ("," IDENT)* ")"  composite partition key
        clustering  := IDENT [ "asc" | "desc" ]

Examples:
    >>> parse_primary_key("primaryKey=(PartKey, PrimaryKey desc)")
    PrimaryKey(partition_keys=('PartKey',), clustering_keys=(ClusteringKey(name='PrimaryKey', descending=True),))
    >>> str(parse_primary_key("((A, B))"))
    '((A, B))'

Tags:
    parser, recursive-descent, primary-key, dosa-core

Doc-Types:
    - API Reference
    - Entity Declaration Reference
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple

from dosa.core.errors import KeySpecError


@dataclass(frozen=True)
class ClusteringKey:
    """One clustering component and its sort direction."""

    name: str
    descending: bool = False

    def __str__(self) -> str:
        return f"{self.name} desc" if self.descending else self.name


@dataclass(frozen=True)
class PrimaryKey:
    """Ordered partition components plus ordered clustering components."""

    partition_keys: tuple[str, ...]
    clustering_keys: tuple[ClusteringKey, ...] = ()

    def __post_init__(self) -> None:
        if not self.partition_keys:
            raise KeySpecError("primary key needs at least one partition key")
        seen: set[str] = set()
        for name in self.names():
            if name in seen:
                raise KeySpecError(f"key component {name!r} appears more than once")
            seen.add(name)

    def names(self) -> tuple[str, ...]:
        """All key component names, partition first."""
        return self.partition_keys + tuple(ck.name for ck in self.clustering_keys)

    def __str__(self) -> str:
        partition = ", ".join(self.partition_keys)
        if len(self.partition_keys) > 1:
            partition = f"({partition})"
        parts = [partition] + [str(ck) for ck in self.clustering_keys]
        return f"({', '.join(parts)})"


class EntityTag(NamedTuple):
    name: str | None
    primary_key: PrimaryKey


# =============================================================================
# LEXER
# =============================================================================


class _Token(NamedTuple):
    kind: str  # "ident", "(", ")", ",", "=", "eof"
    text: str
    pos: int


def _tokenize(text: str) -> list[_Token]:
    tokens: list[_Token] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch.isspace():
            i += 1
        elif ch in "(),=":
            tokens.append(_Token(ch, ch, i))
            i += 1
        elif ch.isalpha() or ch == "_":
            start = i
            while i < len(text) and (text[i].isalnum() or text[i] == "_"):
                i += 1
            tokens.append(_Token("ident", text[start:i], start))
        else:
            raise KeySpecError(f"unexpected character {ch!r}", text=text, position=i)
    tokens.append(_Token("eof", "", len(text)))
    return tokens


# =============================================================================
# PARSER
# =============================================================================


class _Parser:
    def __init__(self, text: str):
        self.text = text
        self.tokens = _tokenize(text)
        self.index = 0

    @property
    def current(self) -> _Token:
        return self.tokens[self.index]

    def error(self, message: str) -> KeySpecError:
        return KeySpecError(message, text=self.text, position=self.current.pos)

    def advance(self) -> _Token:
        token = self.current
        self.index += 1
        return token

    def expect(self, kind: str) -> _Token:
        if self.current.kind != kind:
            found = self.current.text or "end of input"
            raise self.error(f"expected {kind!r}, found {found!r}")
        return self.advance()

    def at(self, kind: str) -> bool:
        return self.current.kind == kind

    def peek_is_assignment(self) -> bool:
        return self.at("ident") and self.tokens[self.index + 1].kind == "="

    # -- productions --------------------------------------------------------

    def parse_tag(self) -> EntityTag:
        name: str | None = None
        key: PrimaryKey | None = None
        while not self.at("eof"):
            item = self.expect("ident")
            self.expect("=")
            if item.text == "name":
                if name is not None:
                    raise KeySpecError("duplicate 'name'", text=self.text, position=item.pos)
                name = self.expect("ident").text
            elif item.text == "primaryKey":
                if key is not None:
                    raise KeySpecError("duplicate 'primaryKey'", text=self.text, position=item.pos)
                key = self.parse_key()
            else:
                raise KeySpecError(f"unknown tag item {item.text!r}", text=self.text, position=item.pos)
        if key is None:
            raise KeySpecError("missing 'primaryKey'", text=self.text, position=len(self.text))
        return EntityTag(name, key)

    def parse_key(self) -> PrimaryKey:
        if self.at("ident"):
            return self.build(partition=(self.advance().text,), clustering=())
        self.expect("(")
        partition = self.parse_partition()
        clustering: list[ClusteringKey] = []
        while self.at(","):
            self.advance()
            clustering.append(self.parse_clustering())
        self.expect(")")
        return self.build(tuple(partition), tuple(clustering))

    def parse_partition(self) -> list[str]:
        if self.at("ident"):
            return [self.advance().text]
        self.expect("(")
        names = [self.expect("ident").text]
        while self.at(","):
            self.advance()
            names.append(self.expect("ident").text)
        self.expect(")")
        return names

    def parse_clustering(self) -> ClusteringKey:
        name = self.expect("ident").text
        descending = False
        # a following ident is a direction modifier unless it starts the next tag item
        if self.at("ident") and not self.peek_is_assignment():
            direction = self.current.text.lower()
            if direction not in ("asc", "desc"):
                raise self.error(f"expected 'asc' or 'desc', found {self.current.text!r}")
            self.advance()
            descending = direction == "desc"
        return ClusteringKey(name, descending)

    def build(self, partition: tuple[str, ...], clustering: tuple[ClusteringKey, ...]) -> PrimaryKey:
        try:
            return PrimaryKey(partition, clustering)
        except KeySpecError as e:
            raise KeySpecError(e.message, text=self.text) from None


def parse_primary_key(spec: str) -> PrimaryKey:
    """
    Parse a primary-key specification, with or without the ``primaryKey=`` prefix.

    Raises:
        KeySpecError: malformed specification
    """
    text = spec.strip()
    parser = _Parser(text)
    if parser.at("ident") and parser.current.text == "primaryKey" and parser.peek_is_assignment():
        parser.advance()
        parser.advance()
    key = parser.parse_key()
    if not parser.at("eof"):
        raise parser.error(f"unexpected {parser.current.text!r} after primary key")
    return key


def parse_entity_tag(tag: str) -> EntityTag:
    """
    Parse a full entity tag (``name=... primaryKey=...``).

    Raises:
        KeySpecError: malformed tag, unknown item, or missing ``primaryKey``
    """
    return _Parser(tag.strip()).parse_tag()


__all__ = [
    "ClusteringKey",
    "PrimaryKey",
    "EntityTag",
    "parse_primary_key",
    "parse_entity_tag",
]
