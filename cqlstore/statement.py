"""
Statement model for CQLStore.

A PendingStatement is the intermediate form the ClauseBuilder accumulates
between the facade call and rendering. It holds the operation kind, the
target table, assignments, predicates and QueryOptions. It is built fresh
for every call and discarded afterwards.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, NamedTuple, Optional, Sequence, Tuple, Union, Mapping

from .exceptions import QueryBuildError

__all__ = [
    'StatementKind',
    'Predicate',
    'QueryOptions',
    'PendingStatement',
    'BoundParameter',
    'RenderedStatement',
]


class StatementKind(Enum):
    """Operation kinds a statement can have"""

    select = "SELECT"
    insert = "INSERT"
    update = "UPDATE"
    delete = "DELETE"
    raw = "RAW"

    def __str__(self):
        return self.value


class Predicate:
    """
    A single WHERE predicate.

    The column may be a single name or a tuple of names (tuple predicate).
    A predicate without a value is a raw, caller-supplied fragment and is
    emitted verbatim with no placeholder.

    Example:
        >>> Predicate('age', [18, 30], 'BETWEEN')
        >>> Predicate(('year', 'month'), [(2024, 1), (2024, 2)], 'IN')
        >>> Predicate('token(id) > token(5)')
    """

    # Operators taking one value per column
    SINGLE_VALUE_OPERATORS = {"=", "!=", "<>", ">", ">=", "<", "<=", "LIKE", "CONTAINS", "CONTAINS KEY"}
    # Operators taking a list of values
    MULTI_VALUE_OPERATORS = {"IN", "NOT IN"}
    # Operators taking a (lower, upper) pair
    RANGE_OPERATORS = {"BETWEEN", "NOT BETWEEN"}

    OPERATORS = SINGLE_VALUE_OPERATORS | MULTI_VALUE_OPERATORS | RANGE_OPERATORS

    def __init__(self, column: Union[str, Sequence[str]], value: Any = None, operator: str = "="):
        if isinstance(column, (list, tuple)):
            if not column:
                raise QueryBuildError("Tuple predicate needs at least one column")
            column = tuple(column)
        elif not isinstance(column, str) or not column.strip():
            raise QueryBuildError(f"Invalid predicate column: {column!r}")

        operator = " ".join(str(operator).split()).upper()
        if operator not in self.OPERATORS:
            raise QueryBuildError(f"Invalid predicate operator: {operator}")

        self.column = column
        self.value = value
        self.operator = operator

        if self.is_raw:
            if self.is_tuple:
                raise QueryBuildError(f"Tuple predicate on {column!r} needs a value")
        else:
            self._validate_value()

    @property
    def is_raw(self) -> bool:
        return self.value is None

    @property
    def is_tuple(self) -> bool:
        return isinstance(self.column, tuple)

    @property
    def columns(self) -> Tuple[str, ...]:
        return self.column if self.is_tuple else (self.column,)

    def _validate_value(self):
        if self.operator in self.MULTI_VALUE_OPERATORS:
            if not isinstance(self.value, (list, tuple, set, frozenset)):
                raise QueryBuildError(f"{self.operator} needs a list of values for {self.column!r}")
            if not self.value:
                raise QueryBuildError(f"{self.operator} needs at least one value for {self.column!r}")
            groups = list(self.value)
        elif self.operator in self.RANGE_OPERATORS:
            if not isinstance(self.value, (list, tuple)) or len(self.value) != 2:
                raise QueryBuildError(f"{self.operator} needs exactly two values for {self.column!r}")
            groups = list(self.value)
        else:
            groups = [self.value]

        if self.is_tuple:
            width = len(self.column)
            for group in groups:
                if not isinstance(group, (list, tuple)) or len(group) != width:
                    raise QueryBuildError(
                        f"Tuple predicate on {self.column!r} needs {width}-element values, got {group!r}"
                    )

    def value_groups(self) -> List[Any]:
        """Values in emission order: one entry per placeholder group."""
        if self.is_raw:
            return []
        if self.operator in self.MULTI_VALUE_OPERATORS or self.operator in self.RANGE_OPERATORS:
            return list(self.value)
        return [self.value]

    def __repr__(self):
        if self.is_raw:
            return f"Predicate({self.column!r})"
        return f"Predicate({self.column!r}, {self.value!r}, {self.operator!r})"


# Recognized option keys (upper-cased)
OPTION_TTL = "TTL"
OPTION_TIMESTAMP = "TIMESTAMP"
OPTION_IF = "IF"
OPTION_IF_EXISTS = "IF EXISTS"
OPTION_IF_NOT_EXISTS = "IF NOT EXISTS"
OPTION_ALLOW_FILTERING = "ALLOW FILTERING"

FLAG_OPTIONS = {OPTION_IF_EXISTS, OPTION_IF_NOT_EXISTS, OPTION_ALLOW_FILTERING}
VALUE_OPTIONS = {OPTION_TTL, OPTION_TIMESTAMP, OPTION_IF}
RECOGNIZED_OPTIONS = FLAG_OPTIONS | VALUE_OPTIONS


@dataclass
class QueryOptions:
    """
    Structured statement options.

    Attributes:
        ttl: Time-to-live in seconds
        timestamp: Write time in the store's native unit (microseconds)
        conditions: IF conditions as ordered (column, value) pairs, ANDed
        if_exists: IF EXISTS guard
        if_not_exists: IF NOT EXISTS guard
        allow_filtering: Append ALLOW FILTERING
        limit: Row count, or (offset, count) where the dialect supports it
    """

    ttl: Optional[int] = None
    timestamp: Optional[int] = None
    conditions: List[Tuple[str, Any]] = field(default_factory=list)
    if_exists: bool = False
    if_not_exists: bool = False
    allow_filtering: bool = False
    limit: Optional[Union[int, Tuple[int, int]]] = None

    @property
    def has_guard(self) -> bool:
        return self.if_exists or self.if_not_exists

    @property
    def is_empty(self) -> bool:
        return self == QueryOptions()

    @classmethod
    def from_value(cls, value) -> 'QueryOptions':
        """
        Build options from the loosely-typed forms callers pass.

        Accepted forms:
            None
            'ALLOW FILTERING'                              (single flag)
            ['IF NOT EXISTS', 'ALLOW FILTERING']           (flags)
            {'TTL': 3600, 'IF': [{'balance': '10.50'}]}    (mapping)

        Raises:
            QueryBuildError: On unrecognized keys or badly typed values
        """
        if value is None:
            return cls()
        if isinstance(value, QueryOptions):
            return cls(**{f: getattr(value, f) for f in value.__dataclass_fields__})

        options = cls()
        if isinstance(value, str):
            options._set(value, None)
        elif isinstance(value, Mapping):
            for key, param in value.items():
                options._set(key, param)
        elif isinstance(value, (list, tuple, set)):
            for item in value:
                if not isinstance(item, str):
                    raise QueryBuildError(f"Option flags must be strings, got {item!r}")
                options._set(item, None)
        else:
            raise QueryBuildError(f"Unsupported options value: {value!r}")
        return options

    def _set(self, key, param):
        if not isinstance(key, str):
            raise QueryBuildError(f"Option names must be strings, got {key!r}")
        name = " ".join(key.split()).upper()

        if name not in RECOGNIZED_OPTIONS:
            supported = ", ".join(sorted(RECOGNIZED_OPTIONS))
            raise QueryBuildError(f"Unrecognized option: {key!r}. Supported options: {supported}")

        if name in FLAG_OPTIONS:
            if param not in (None, True):
                raise QueryBuildError(f"Option {name} is a flag and takes no value, got {param!r}")
            if name == OPTION_IF_EXISTS:
                self.if_exists = True
            elif name == OPTION_IF_NOT_EXISTS:
                self.if_not_exists = True
            else:
                self.allow_filtering = True
        elif name == OPTION_TTL:
            self.ttl = _validate_int(name, param, minimum=0)
        elif name == OPTION_TIMESTAMP:
            self.timestamp = _validate_int(name, param)
        else:
            self.conditions = _normalize_conditions(param)

    def merge(self, other: 'QueryOptions') -> 'QueryOptions':
        """
        Combine with options staged later.

        Scalars from ``other`` win, IF lists concatenate and flags OR together.
        """
        return QueryOptions(
            ttl=other.ttl if other.ttl is not None else self.ttl,
            timestamp=other.timestamp if other.timestamp is not None else self.timestamp,
            conditions=list(self.conditions) + list(other.conditions),
            if_exists=self.if_exists or other.if_exists,
            if_not_exists=self.if_not_exists or other.if_not_exists,
            allow_filtering=self.allow_filtering or other.allow_filtering,
            limit=other.limit if other.limit is not None else self.limit,
        )


def _validate_int(name: str, value, minimum: int = None) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise QueryBuildError(f"Option {name} needs an integer, got {value!r}")
    if minimum is not None and value < minimum:
        raise QueryBuildError(f"Option {name} must be >= {minimum}, got {value}")
    return value


def _normalize_conditions(param) -> List[Tuple[str, Any]]:
    """Turn [{'col': v}, ('col2', v2)] into [('col', v), ('col2', v2)]."""
    if isinstance(param, Mapping):
        param = [{k: v} for k, v in param.items()]
    if not isinstance(param, (list, tuple)) or not param:
        raise QueryBuildError(f"Option IF needs a non-empty list of column=value pairs, got {param!r}")

    conditions = []
    for item in param:
        if isinstance(item, Mapping) and len(item) == 1:
            column, value = next(iter(item.items()))
        elif isinstance(item, (list, tuple)) and len(item) == 2:
            column, value = item
        else:
            raise QueryBuildError(f"IF condition must be a single column=value pair, got {item!r}")
        if not isinstance(column, str) or not column:
            raise QueryBuildError(f"IF condition column must be a name, got {column!r}")
        conditions.append((column, value))
    return conditions


@dataclass
class PendingStatement:
    """The statement being composed by one facade call."""

    kind: Optional[StatementKind] = None
    table: Optional[str] = None
    columns: List[str] = field(default_factory=list)
    assignments: List[Tuple[str, Any]] = field(default_factory=list)
    predicates: List[Predicate] = field(default_factory=list)
    options: QueryOptions = field(default_factory=QueryOptions)


class BoundParameter(NamedTuple):
    """
    A value bound to one positional placeholder, tagged with its column.

    ``target`` says which part of a collection column the value is compared
    against: None for the column itself, 'element' for CONTAINS and 'key'
    for CONTAINS KEY.
    """

    column: str
    value: Any
    target: Optional[str] = None


class RenderedStatement(NamedTuple):
    """Statement text plus the parameters in placeholder order."""

    text: str
    parameters: List[BoundParameter]
    kind: StatementKind
    table: Optional[str] = None
    conditional: bool = False

    @property
    def values(self) -> List[Any]:
        return [p.value for p in self.parameters]
