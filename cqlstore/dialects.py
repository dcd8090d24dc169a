"""
Statement dialects for CQLStore.

A dialect owns everything store-specific about rendering a statement:
- Placeholder syntax
- The order in which clauses are emitted for each operation kind
- The keyword used for the existence guard
- LIMIT syntax and whether offsets are supported

The ClauseBuilder asks the dialect for the clause order and renders each
named clause in turn, so a store variant only needs a new Dialect subclass.
"""

from abc import ABC, abstractmethod
from typing import List, Tuple, Union

from .statement import StatementKind
from .exceptions import QueryBuildError


class Dialect(ABC):
    """
    Base dialect.

    Clause names understood by the ClauseBuilder:
    select, insert, update, delete, set, using, where, limit, conditions,
    guard, allow_filtering
    """

    name: str = "base"
    placeholder: str = "?"
    supports_offset: bool = False

    @abstractmethod
    def clause_order(self, kind: StatementKind) -> List[str]:
        """Return clause names in emission order for an operation kind."""
        pass

    @abstractmethod
    def existence_guard(self, kind: StatementKind) -> str:
        """Return the existence guard keyword for an operation kind."""
        pass

    def supported_options(self, kind: StatementKind) -> set:
        """Return the option names an operation kind accepts."""
        return set()

    def format_limit(self, limit: Union[int, Tuple[int, int]]) -> str:
        """
        Render a LIMIT clause.

        Raises:
            QueryBuildError: If the value is invalid or offsets are unsupported
        """
        if isinstance(limit, tuple):
            if not self.supports_offset:
                raise QueryBuildError(f"Dialect '{self.name}' does not support LIMIT with an offset")
            offset, count = limit
            _check_count(count)
            if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
                raise QueryBuildError(f"LIMIT offset must be a non-negative integer, got {offset!r}")
            return self.format_offset_limit(offset, count)

        _check_count(limit)
        return f"LIMIT {limit}"

    def format_offset_limit(self, offset: int, count: int) -> str:
        """Render an offset limit. Dialects that set supports_offset implement this."""
        raise NotImplementedError(f"Dialect '{self.name}' has no offset LIMIT syntax")


def _check_count(count):
    if isinstance(count, bool) or not isinstance(count, int) or count <= 0:
        raise QueryBuildError(f"LIMIT must be a positive integer, got {count!r}")


class CassandraDialect(Dialect):
    """
    CQL as spoken by Apache Cassandra and ScyllaDB.

    INSERT puts its guard before USING; UPDATE and DELETE put USING right
    after the table, before SET / WHERE.
    """

    name = "cassandra"

    _CLAUSES = {
        StatementKind.select: ["select", "where", "limit", "allow_filtering"],
        StatementKind.insert: ["insert", "guard", "using", "allow_filtering"],
        StatementKind.update: ["update", "using", "set", "where", "conditions", "guard", "allow_filtering"],
        StatementKind.delete: ["delete", "using", "where", "limit", "conditions", "guard", "allow_filtering"],
    }

    _OPTIONS = {
        StatementKind.select: {"allow_filtering", "limit"},
        StatementKind.insert: {"ttl", "timestamp", "guard", "allow_filtering"},
        StatementKind.update: {"ttl", "timestamp", "conditions", "guard", "allow_filtering"},
        StatementKind.delete: {"timestamp", "conditions", "guard", "allow_filtering", "limit"},
    }

    def clause_order(self, kind: StatementKind) -> List[str]:
        if kind not in self._CLAUSES:
            raise QueryBuildError(f"Dialect '{self.name}' cannot build {kind} statements")
        return list(self._CLAUSES[kind])

    def existence_guard(self, kind: StatementKind) -> str:
        return "IF NOT EXISTS" if kind == StatementKind.insert else "IF EXISTS"

    def supported_options(self, kind: StatementKind) -> set:
        return set(self._OPTIONS.get(kind, set()))


# Dialect registry
DIALECT_MAP = {
    'cassandra': CassandraDialect,
    'cql': CassandraDialect,
    'scylla': CassandraDialect,
    'scylladb': CassandraDialect,
}


def get_dialect(name: str = "cassandra") -> Dialect:
    """
    Get the dialect for a store type.

    Args:
        name: Dialect or store type name (case-insensitive)

    Returns:
        Dialect instance

    Raises:
        CQLStoreError: If the name is not supported
    """
    from .exceptions import CQLStoreError

    if isinstance(name, Dialect):
        return name

    key = (name or "cassandra").lower()
    if key not in DIALECT_MAP:
        raise CQLStoreError(
            f"Unsupported dialect: {name}.\n"
            f"Supported dialects: {', '.join(sorted(DIALECT_MAP.keys()))}"
        )
    return DIALECT_MAP[key]()
