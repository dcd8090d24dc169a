"""
Column types for CQLStore.

The store's type system is a fixed, closed set. Every declared CQL type
string maps onto exactly one ColumnKind; types outside the set become
ColumnKind.other and are passed through untouched by the converters.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

__all__ = ['ColumnKind', 'ColumnType', 'parse_column_type']


class ColumnKind(Enum):
    """Storage type kinds supported by CQLStore"""

    text = "text"
    int = "int"
    bigint = "bigint"
    varint = "varint"
    decimal = "decimal"
    float = "float"
    double = "double"
    boolean = "boolean"
    timestamp = "timestamp"
    blob = "blob"
    uuid = "uuid"
    timeuuid = "timeuuid"
    inet = "inet"
    list = "list"
    set = "set"
    map = "map"
    other = "other"

    def __str__(self):
        return self.value

    @property
    def is_collection(self) -> bool:
        return self in (ColumnKind.list, ColumnKind.set, ColumnKind.map)


# Declared type name -> kind
_SIMPLE_KINDS = {
    "ascii": ColumnKind.text,
    "text": ColumnKind.text,
    "varchar": ColumnKind.text,
    "int": ColumnKind.int,
    "smallint": ColumnKind.int,
    "tinyint": ColumnKind.int,
    "counter": ColumnKind.bigint,
    "bigint": ColumnKind.bigint,
    "varint": ColumnKind.varint,
    "decimal": ColumnKind.decimal,
    "float": ColumnKind.float,
    "double": ColumnKind.double,
    "boolean": ColumnKind.boolean,
    "timestamp": ColumnKind.timestamp,
    "blob": ColumnKind.blob,
    "uuid": ColumnKind.uuid,
    "timeuuid": ColumnKind.timeuuid,
    "inet": ColumnKind.inet,
}


@dataclass(frozen=True)
class ColumnType:
    """
    A declared column type.

    Attributes:
        kind: The closed-set kind this type belongs to
        name: The declared type string (e.g. 'list<int>')
        element: Element type for list/set, value type for map
        key: Key type for map
    """

    kind: ColumnKind
    name: str
    element: Optional['ColumnType'] = None
    key: Optional['ColumnType'] = None

    @classmethod
    def parse(cls, declared) -> 'ColumnType':
        """
        Parse a declared CQL type string.

        Examples:
            >>> ColumnType.parse('varchar').kind
            <ColumnKind.text: 'text'>
            >>> t = ColumnType.parse('frozen<map<text, list<int>>>')
            >>> t.kind, t.key.kind, t.element.element.kind
            (<ColumnKind.map: 'map'>, <ColumnKind.text: 'text'>, <ColumnKind.int: 'int'>)
        """
        if isinstance(declared, ColumnType):
            return declared
        if isinstance(declared, ColumnKind):
            return cls(kind=declared, name=declared.value)

        name = " ".join(str(declared).split()).lower()
        base, args = _split_type(name)

        if base == "frozen" and len(args) == 1:
            inner = cls.parse(args[0])
            return cls(kind=inner.kind, name=name, element=inner.element, key=inner.key)

        if base in ("list", "set") and len(args) == 1:
            return cls(kind=ColumnKind(base), name=name, element=cls.parse(args[0]))

        if base == "map" and len(args) == 2:
            return cls(kind=ColumnKind.map, name=name, key=cls.parse(args[0]), element=cls.parse(args[1]))

        if not args and base in _SIMPLE_KINDS:
            return cls(kind=_SIMPLE_KINDS[base], name=name)

        return cls(kind=ColumnKind.other, name=name)

    def __str__(self):
        return self.name


def parse_column_type(declared) -> ColumnType:
    """Shortcut for ColumnType.parse."""
    return ColumnType.parse(declared)


def _split_type(name: str):
    """Split 'map<text, list<int>>' into ('map', ['text', 'list<int>'])."""
    if "<" not in name:
        return name.strip(), []
    if not name.endswith(">"):
        return name.strip(), [name]

    base, _, rest = name.partition("<")
    return base.strip(), _split_args(rest[:-1])


def _split_args(text: str) -> List[str]:
    """Split type arguments on top-level commas."""
    args = []
    depth = 0
    current = []
    for ch in text:
        if ch == "<":
            depth += 1
        elif ch == ">":
            depth -= 1
        if ch == "," and depth == 0:
            args.append("".join(current).strip())
            current = []
            continue
        current.append(ch)
    if current:
        args.append("".join(current).strip())
    return args
