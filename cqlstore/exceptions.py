"""
Exception classes for CQLStore
"""

__all__ = [
    'CQLStoreError',
    'ConnectionError',
    'SchemaLookupError',
    'TableNotFoundError',
    'ColumnNotFoundError',
    'TypeConversionError',
    'QueryBuildError',
    'ExecutionError',
    'WriteNotAppliedError',
]


class CQLStoreError(Exception):
    """Base exception for all CQLStore errors."""

    pass


class ConnectionError(CQLStoreError):
    """Raised when connecting to the cluster fails."""

    pass


class SchemaLookupError(CQLStoreError):
    """Raised when a table or column is not present in the keyspace schema."""

    pass


class TableNotFoundError(SchemaLookupError):
    """Raised when a referenced table does not exist in the keyspace.

    Example:
        raise TableNotFoundError(table="accounts", keyspace="bank")
    """

    def __init__(self, table: str, keyspace: str = None):
        self.table = table
        self.keyspace = keyspace

        msg = f"Table '{table}' not found"
        if keyspace:
            msg += f" in keyspace '{keyspace}'"
        super().__init__(msg)


class ColumnNotFoundError(SchemaLookupError):
    """Raised when a referenced column does not exist in a table.

    Provides the column name and optionally lists available columns.

    Example:
        raise ColumnNotFoundError(
            column="nonexistent_col",
            table="accounts",
            available_columns=["id", "name", "balance"]
        )
    """

    def __init__(self, column: str, table: str = None, available_columns: list = None):
        self.column = column
        self.table = table
        self.available_columns = available_columns

        msg = f"Column '{column}' not found"
        if table:
            msg += f" in table '{table}'"
        if available_columns:
            if len(available_columns) <= 10:
                cols_str = ", ".join(repr(c) for c in available_columns)
                msg += f". Available columns: [{cols_str}]"
            else:
                cols_str = ", ".join(repr(c) for c in available_columns[:10])
                msg += f". Available columns (first 10 of {len(available_columns)}): [{cols_str}, ...]"
        super().__init__(msg)


class TypeConversionError(CQLStoreError):
    """Raised when a bound value cannot be coerced to its column's type.

    Example:
        raise TypeConversionError(
            column="balance",
            type_name="decimal",
            value="ten",
            reason="not a numeric string"
        )
    """

    def __init__(self, column: str, type_name: str, value, reason: str = None):
        self.column = column
        self.type_name = type_name
        self.value = value
        self.reason = reason

        msg = f"Cannot convert {value!r} for column '{column}' to {type_name}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class QueryBuildError(CQLStoreError):
    """Raised when a statement cannot be built from the staged request."""

    pass


class ExecutionError(CQLStoreError):
    """Raised when the driver fails to execute a well-formed statement."""

    pass


class WriteNotAppliedError(ExecutionError):
    """Raised when a conditional write (IF / IF [NOT] EXISTS) is rejected by the store.

    The row returned by the store is kept on ``current`` so callers can see
    the values that made the condition fail.
    """

    def __init__(self, statement: str, current: dict = None):
        self.statement = statement
        self.current = current or {}

        msg = f"Conditional write was not applied: {statement}"
        if self.current:
            msg += f" (current values: {self.current})"
        super().__init__(msg)
