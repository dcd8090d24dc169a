"""
CQL statement builder.

The ClauseBuilder accumulates one PendingStatement (kind, table,
assignments, predicates, options) and renders it to statement text with
positional placeholders plus the BoundParameter list in placeholder order.

Values are held as given; type coercion happens later, at bind time, in
the TypeCoercer. Clause order comes from the dialect:

    UPDATE accounts USING TTL 60 SET balance = ? WHERE id = ? IF balance = ?
    INSERT INTO accounts (id, name) VALUES (?, ?) IF NOT EXISTS USING TTL 60
    SELECT * FROM accounts WHERE age BETWEEN ? AND ? LIMIT 10 ALLOW FILTERING
"""

from typing import Any, List, Sequence, Union

from .dialects import Dialect, get_dialect
from .exceptions import QueryBuildError
from .statement import (
    BoundParameter,
    PendingStatement,
    Predicate,
    QueryOptions,
    RenderedStatement,
    StatementKind,
)

# Collection operators compare against part of the column's type
_CONTAINS_TARGETS = {"CONTAINS": "element", "CONTAINS KEY": "key"}


class ClauseBuilder:
    """
    Mutable builder for a single statement.

    Example:
        >>> builder = ClauseBuilder()
        >>> builder.start(StatementKind.select, 'accounts')
        >>> builder.add_predicate(Predicate('age', [18, 30], 'BETWEEN'))
        >>> builder.set_limit(10)
        >>> builder.render().text
        'SELECT * FROM accounts WHERE age BETWEEN ? AND ? LIMIT 10'
    """

    def __init__(self, dialect: Union[str, Dialect, None] = None):
        self.dialect = get_dialect(dialect or "cassandra")
        self.statement = PendingStatement()

    # ========== Accumulation ==========

    def start(self, kind: StatementKind, table: str, columns: Union[str, Sequence[str], None] = None) -> 'ClauseBuilder':
        """Set the operation kind, target table and (SELECT/DELETE) column list."""
        if not isinstance(table, str) or not table.strip():
            raise QueryBuildError(f"Invalid table name: {table!r}")
        self.statement.kind = kind
        self.statement.table = table.strip()
        self.statement.columns = _normalize_columns(columns)
        return self

    def add_assignment(self, column: str, value: Any) -> 'ClauseBuilder':
        if not isinstance(column, str) or not column:
            raise QueryBuildError(f"Invalid column name: {column!r}")
        self.statement.assignments.append((column, value))
        return self

    def add_predicate(self, predicate: Predicate) -> 'ClauseBuilder':
        self.statement.predicates.append(predicate)
        return self

    def set_options(self, options) -> 'ClauseBuilder':
        """Merge options into the staged ones (later values win, IF lists extend)."""
        self.statement.options = self.statement.options.merge(QueryOptions.from_value(options))
        return self

    def set_limit(self, limit) -> 'ClauseBuilder':
        self.statement.options.limit = limit
        return self

    def reset(self) -> None:
        """Drop everything staged so the next statement starts clean."""
        self.statement = PendingStatement()

    @property
    def has_predicates(self) -> bool:
        return bool(self.statement.predicates)

    # ========== Rendering ==========

    def render(self) -> RenderedStatement:
        """
        Render the pending statement.

        Returns:
            RenderedStatement with text and parameters in placeholder order

        Raises:
            QueryBuildError: On a structurally invalid statement or a
                forbidden option combination
        """
        stmt = self.statement
        if stmt.kind is None or stmt.table is None:
            raise QueryBuildError("No statement started")
        if stmt.kind in (StatementKind.insert, StatementKind.update) and not stmt.assignments:
            raise QueryBuildError(f"{stmt.kind} into '{stmt.table}' needs at least one column value")
        if stmt.kind == StatementKind.insert and stmt.predicates:
            raise QueryBuildError("INSERT does not take WHERE predicates")

        self._validate_options()

        parts: List[str] = []
        params: List[BoundParameter] = []
        for clause in self.dialect.clause_order(stmt.kind):
            sql = getattr(self, f"_clause_{clause}")(params)
            if sql:
                parts.append(sql)

        return RenderedStatement(
            text=" ".join(parts),
            parameters=params,
            kind=stmt.kind,
            table=stmt.table,
            conditional=bool(stmt.options.conditions or stmt.options.has_guard),
        )

    def _validate_options(self):
        stmt = self.statement
        options = stmt.options

        if options.conditions and options.has_guard:
            raise QueryBuildError("IF conditions cannot be combined with IF EXISTS / IF NOT EXISTS")
        if options.if_exists and options.if_not_exists:
            raise QueryBuildError("IF EXISTS and IF NOT EXISTS cannot be used together")

        requested = []
        if options.ttl is not None:
            requested.append(("ttl", "TTL"))
        if options.timestamp is not None:
            requested.append(("timestamp", "TIMESTAMP"))
        if options.conditions:
            requested.append(("conditions", "IF"))
        if options.has_guard:
            requested.append(("guard", "IF EXISTS" if options.if_exists else "IF NOT EXISTS"))
        if options.allow_filtering:
            requested.append(("allow_filtering", "ALLOW FILTERING"))
        if options.limit is not None:
            requested.append(("limit", "LIMIT"))

        supported = self.dialect.supported_options(stmt.kind)
        for name, label in requested:
            if name not in supported:
                raise QueryBuildError(f"Option {label} is not supported for {stmt.kind} statements")

    # ========== Clauses ==========
    # Each returns the clause text (or None) and appends its parameters.

    def _clause_select(self, params):
        columns = ", ".join(self.statement.columns) or "*"
        return f"SELECT {columns} FROM {self.statement.table}"

    def _clause_delete(self, params):
        if self.statement.columns:
            return f"DELETE {', '.join(self.statement.columns)} FROM {self.statement.table}"
        return f"DELETE FROM {self.statement.table}"

    def _clause_insert(self, params):
        placeholder = self.dialect.placeholder
        names = []
        for column, value in self.statement.assignments:
            names.append(column)
            params.append(BoundParameter(column, value))
        values = ", ".join(placeholder for _ in names)
        return f"INSERT INTO {self.statement.table} ({', '.join(names)}) VALUES ({values})"

    def _clause_update(self, params):
        return f"UPDATE {self.statement.table}"

    def _clause_set(self, params):
        items = []
        for column, value in self.statement.assignments:
            items.append(f"{column} = {self.dialect.placeholder}")
            params.append(BoundParameter(column, value))
        return "SET " + ", ".join(items)

    def _clause_using(self, params):
        options = self.statement.options
        using = []
        if options.ttl is not None:
            using.append(f"TTL {options.ttl}")
        if options.timestamp is not None:
            using.append(f"TIMESTAMP {options.timestamp}")
        if not using:
            return None
        return "USING " + " AND ".join(using)

    def _clause_where(self, params):
        if not self.statement.predicates:
            return None
        rendered = [self._render_predicate(p, params) for p in self.statement.predicates]
        return "WHERE " + " AND ".join(rendered)

    def _clause_limit(self, params):
        if self.statement.options.limit is None:
            return None
        return self.dialect.format_limit(self.statement.options.limit)

    def _clause_conditions(self, params):
        conditions = self.statement.options.conditions
        if not conditions:
            return None
        items = []
        for column, value in conditions:
            items.append(f"{column} = {self.dialect.placeholder}")
            params.append(BoundParameter(column, value))
        return "IF " + " AND ".join(items)

    def _clause_guard(self, params):
        if not self.statement.options.has_guard:
            return None
        return self.dialect.existence_guard(self.statement.kind)

    def _clause_allow_filtering(self, params):
        if not self.statement.options.allow_filtering:
            return None
        return "ALLOW FILTERING"

    # ========== Predicates ==========

    def _render_predicate(self, predicate: Predicate, params: List[BoundParameter]) -> str:
        if predicate.is_raw:
            return predicate.column

        if predicate.is_tuple:
            left = f"({', '.join(predicate.column)})"
        else:
            left = predicate.column

        groups = [self._render_group(predicate, group, params) for group in predicate.value_groups()]

        if predicate.operator in Predicate.MULTI_VALUE_OPERATORS:
            return f"{left} {predicate.operator} ({', '.join(groups)})"
        if predicate.operator in Predicate.RANGE_OPERATORS:
            return f"{left} {predicate.operator} {groups[0]} AND {groups[1]}"
        return f"{left} {predicate.operator} {groups[0]}"

    def _render_group(self, predicate: Predicate, group: Any, params: List[BoundParameter]) -> str:
        """One placeholder for a plain column, a parenthesized group for a tuple."""
        placeholder = self.dialect.placeholder
        if not predicate.is_tuple:
            params.append(BoundParameter(predicate.column, group, _CONTAINS_TARGETS.get(predicate.operator)))
            return placeholder

        for column, value in zip(predicate.column, group):
            params.append(BoundParameter(column, value))
        return "(" + ", ".join(placeholder for _ in predicate.column) + ")"


def _normalize_columns(columns) -> List[str]:
    """Accept None, '*', 'a, b' or ['a', 'b']."""
    if columns is None:
        return []
    if isinstance(columns, str):
        columns = [c.strip() for c in columns.split(",")]
    columns = [c for c in columns if c and c != "*"]
    for c in columns:
        if not isinstance(c, str):
            raise QueryBuildError(f"Invalid column name: {c!r}")
    return list(columns)
