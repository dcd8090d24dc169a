"""
Per-table column type cache.

Column types are looked up from the cluster metadata the first time a
table is referenced and kept for the lifetime of the store. Schema changes
made after the first lookup are not observed until clear() is called.
"""

from typing import Dict, List

from .config import get_logger
from .exceptions import ColumnNotFoundError
from .types import ColumnType


class SchemaCache:
    """
    Lazy table -> {column -> ColumnType} cache.

    The connection only has to provide ``table_schema(table)`` returning
    ``{column_name: declared_type_string}`` and raising TableNotFoundError
    for unknown tables.

    Example:
        >>> cache = SchemaCache(connection)
        >>> cache.column_type('accounts', 'balance')
        ColumnType(kind=<ColumnKind.decimal: 'decimal'>, name='decimal', element=None, key=None)
    """

    def __init__(self, connection):
        self._connection = connection
        self._tables: Dict[str, Dict[str, ColumnType]] = {}
        self._logger = get_logger()

    def resolve(self, table: str) -> Dict[str, ColumnType]:
        """
        Get the column types of a table, fetching them on first use.

        Raises:
            TableNotFoundError: If the table is not in the keyspace
        """
        if table in self._tables:
            return self._tables[table]

        declared = self._connection.table_schema(table)
        schema = {name: ColumnType.parse(type_name) for name, type_name in declared.items()}
        self._tables[table] = schema
        self._logger.debug("[Schema] Cached %d columns for table '%s'", len(schema), table)
        return schema

    def column_type(self, table: str, column: str) -> ColumnType:
        """
        Get the declared type of one column.

        Raises:
            TableNotFoundError: If the table is not in the keyspace
            ColumnNotFoundError: If the table has no such column
        """
        schema = self.resolve(table)
        if column not in schema:
            raise ColumnNotFoundError(column, table=table, available_columns=list(schema.keys()))
        return schema[column]

    def columns(self, table: str) -> List[str]:
        return list(self.resolve(table).keys())

    def is_cached(self, table: str) -> bool:
        return table in self._tables

    def clear(self, table: str = None) -> None:
        """Forget one table, or every table when none is given."""
        if table is None:
            self._tables.clear()
        else:
            self._tables.pop(table, None)
