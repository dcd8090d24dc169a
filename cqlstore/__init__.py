"""
CQLStore - Statement builder and executor for Cassandra/ScyllaDB
================================================================

CQLStore composes CQL statements from incremental predicates and options,
binds values coerced against the live table schema, executes them through
the DataStax cassandra-driver and returns rows as plain Python values.

Key Features:
- Chainable where() staging for SELECT/UPDATE/DELETE
- Schema-driven type coercion (decimal, timestamp, uuid, inet, collections)
- TTL, TIMESTAMP, IF, IF [NOT] EXISTS and ALLOW FILTERING options
- Eager row sequences or lazily fetched pages
- Builder state reset after every operation, success or failure

Example:
    >>> from cqlstore import CQLStore
    >>>
    >>> store = CQLStore.from_uri("cassandra://10.0.0.1:9042/bank")
    >>> store.insert('accounts', {'id': None, 'name': 'Ann', 'balance': '10.50'})
    True
    >>> store.where('name', 'Ann', options='ALLOW FILTERING').get_one('accounts')
    Row({'id': '4f3c...', 'name': 'Ann', 'balance': 10.5})
    >>>
    >>> # Page through a large table
    >>> for page in store.get('events', page_size=500):
    ...     handle(page)

Core Classes:
- CQLStore: Facade exposing get/get_one/insert/update/delete/where/raw_query
- ClauseBuilder: Renders statements with positional placeholders
- TypeCoercer: Host <-> driver value conversion
- SchemaCache: Per-table column types
- ResultPager: Row and page materialization
"""

from .core import CQLStore, connect_all
from .connection import Connection, ResultHandle
from .cql_builder import ClauseBuilder
from .converters import TypeCoercer
from .schema_cache import SchemaCache
from .results import ResultPager, Row, RowSequence, ResultPage, PagedResultSet
from .statement import (
    StatementKind,
    Predicate,
    QueryOptions,
    PendingStatement,
    BoundParameter,
    RenderedStatement,
)
from .types import ColumnKind, ColumnType, parse_column_type
from .dialects import Dialect, CassandraDialect, get_dialect
from .uri_parser import parse_uri
from .exceptions import (
    CQLStoreError,
    ConnectionError,
    SchemaLookupError,
    TableNotFoundError,
    ColumnNotFoundError,
    TypeConversionError,
    QueryBuildError,
    ExecutionError,
    WriteNotAppliedError,
)
from .config import (
    config,
    ConnectionSettings,
    load_databases,
    set_log_level,
    set_log_format,
    enable_debug,
    disable_debug,
    get_logger,
    set_auto_convert,
    is_auto_convert_enabled,
)

__version__ = "0.1.0"
cqlstore_version = tuple(__version__.split('.'))

__all__ = [
    # Core
    "CQLStore",
    "connect_all",
    "Connection",
    "ResultHandle",
    "ClauseBuilder",
    "TypeCoercer",
    "SchemaCache",
    "ResultPager",
    # Results
    "Row",
    "RowSequence",
    "ResultPage",
    "PagedResultSet",
    # Statements
    "StatementKind",
    "Predicate",
    "QueryOptions",
    "PendingStatement",
    "BoundParameter",
    "RenderedStatement",
    # Types
    "ColumnKind",
    "ColumnType",
    "parse_column_type",
    # Dialects
    "Dialect",
    "CassandraDialect",
    "get_dialect",
    "parse_uri",
    # Exceptions
    "CQLStoreError",
    "ConnectionError",
    "SchemaLookupError",
    "TableNotFoundError",
    "ColumnNotFoundError",
    "TypeConversionError",
    "QueryBuildError",
    "ExecutionError",
    "WriteNotAppliedError",
    # Config
    "config",
    "ConnectionSettings",
    "load_databases",
    "set_log_level",
    "set_log_format",
    "enable_debug",
    "disable_debug",
    "get_logger",
    "set_auto_convert",
    "is_auto_convert_enabled",
    "__version__",
    "cqlstore_version",
]
