"""
Connection management for CQLStore using the DataStax cassandra-driver.

This module centralizes ALL statement execution against the cluster with
unified logging.

All driver calls go through this module for:
- Unified logging format
- Centralized error handling
- Prepared statement reuse
- Page-by-page result access
"""

import time
from typing import Any, Callable, Dict, List, Optional, Sequence

from cassandra.auth import PlainTextAuthProvider
from cassandra.cluster import Cluster
from cassandra.query import SimpleStatement, tuple_factory

from .config import ConnectionSettings, get_logger
from .exceptions import ConnectionError, ExecutionError, TableNotFoundError


class Connection:
    """
    Wrapper around a cassandra-driver Cluster and its Session.

    This class centralizes ALL statement execution for:
    - Consistent logging
    - Unified error handling
    - Single point of control for prepare/execute

    The cluster is created through ``cluster_factory`` (``Cluster`` by
    default), called with the keyword arguments Cluster accepts.
    """

    def __init__(self, settings: ConnectionSettings, cluster_factory: Optional[Callable[..., Any]] = None):
        """
        Initialize the connection.

        Args:
            settings: Seeds, credentials, port and keyspace
            cluster_factory: Callable building the cluster object
        """
        self.settings = settings
        self._cluster_factory = cluster_factory or Cluster
        self._cluster = None
        self._session = None
        self._prepared: Dict[str, Any] = {}
        self._logger = get_logger()

    @property
    def is_connected(self) -> bool:
        return self._session is not None

    @property
    def session(self):
        if self._session is None:
            raise ConnectionError("Not connected. Call connect() first.")
        return self._session

    @property
    def keyspace(self) -> str:
        return self.settings.keyspace

    def connect(self) -> 'Connection':
        """Connect to the cluster. A no-op when already connected."""
        if self._session is not None:
            return self

        kwargs = {"contact_points": list(self.settings.seeds)}
        if self.settings.port is not None:
            kwargs["port"] = self.settings.port
        if self.settings.has_credentials:
            kwargs["auth_provider"] = PlainTextAuthProvider(
                username=self.settings.username,
                password=self.settings.password,
            )

        try:
            self._cluster = self._cluster_factory(**kwargs)
            if self.settings.keyspace:
                self._session = self._cluster.connect(self.settings.keyspace)
            else:
                self._session = self._cluster.connect()
            self._session.row_factory = tuple_factory
        except Exception as e:
            self._logger.error("[CQL] Connect failed: %s", e)
            self._shutdown_cluster()
            raise ConnectionError(f"Failed to connect to {', '.join(self.settings.seeds) or 'cluster'}: {e}") from e

        self._logger.debug(
            "[CQL] Connected to %s (keyspace: %s)", ", ".join(self.settings.seeds), self.settings.keyspace or "-"
        )
        return self

    def table_schema(self, table: str) -> Dict[str, str]:
        """
        Get the declared column types of a table from the cluster metadata.

        Returns:
            {column_name: declared_type_string}

        Raises:
            TableNotFoundError: If the table is not in the keyspace
        """
        self.connect()
        keyspace = self.settings.keyspace or getattr(self._session, "keyspace", None)

        keyspace_meta = self._cluster.metadata.keyspaces.get(keyspace) if keyspace else None
        if keyspace_meta is None:
            raise TableNotFoundError(table, keyspace)

        table_meta = keyspace_meta.tables.get(table)
        if table_meta is None:
            table_meta = keyspace_meta.tables.get(table.lower())
        if table_meta is None:
            raise TableNotFoundError(table, keyspace)

        return {name: column.cql_type for name, column in table_meta.columns.items()}

    def prepare(self, text: str):
        """Prepare a statement, reusing an earlier preparation of the same text."""
        self.connect()
        prepared = self._prepared.get(text)
        if prepared is not None:
            self._logger.debug("[CQL] Prepared cache hit")
            return prepared

        try:
            prepared = self._session.prepare(text)
        except Exception as e:
            self._logger.error("[CQL] Prepare failed: %s", e)
            raise ExecutionError(f"Statement preparation failed: {e}\nCQL: {text}") from e

        self._prepared[text] = prepared
        self._logger.debug("[CQL] Prepared: %s", text)
        return prepared

    def execute(self, text: str, values: Sequence[Any] = (), page_size: Optional[int] = None,
                paging_state: Optional[bytes] = None) -> 'ResultHandle':
        """
        Prepare, bind and execute a statement.

        Args:
            text: Statement text with positional placeholders
            values: Driver-native values in placeholder order
            page_size: Rows per page (None uses the driver default)
            paging_state: Continuation cursor of an earlier page

        Returns:
            ResultHandle positioned on the first (or resumed) page
        """
        prepared = self.prepare(text)
        self._log_query(text, "Prepared", values)

        try:
            bound = prepared.bind(list(values))
            if page_size:
                bound.fetch_size = page_size
            return self._run(bound, text, paging_state)
        except ExecutionError:
            raise
        except Exception as e:
            self._logger.error("[CQL] Bind failed: %s", e)
            raise ExecutionError(f"Statement binding failed: {e}\nCQL: {text}") from e

    def execute_simple(self, text: str, page_size: Optional[int] = None) -> 'ResultHandle':
        """Execute caller-supplied statement text verbatim, without preparing it."""
        self.connect()
        self._log_query(text, "Simple")

        statement = SimpleStatement(text)
        if page_size:
            statement.fetch_size = page_size
        return self._run(statement, text)

    def _run(self, statement, text: str, paging_state: Optional[bytes] = None) -> 'ResultHandle':
        try:
            start_time = time.perf_counter()
            if paging_state is not None:
                result = self._session.execute(statement, paging_state=paging_state)
            else:
                result = self._session.execute(statement)
            elapsed_ms = (time.perf_counter() - start_time) * 1000
        except Exception as e:
            self._logger.error("[CQL] Statement failed: %s", e)
            raise ExecutionError(f"Statement execution failed: {e}\nCQL: {text}") from e

        handle = ResultHandle(result, text)
        self._logger.debug("[CQL] Result: %d rows, last page: %s", handle.row_count, handle.is_last_page)
        self._logger.debug("[CQL] Query time: %.2fms", elapsed_ms)
        return handle

    def _log_query(self, text: str, statement_type: str = "Prepared", values: Sequence[Any] = None):
        """Unified statement logging."""
        self._logger.debug("=" * 70)
        self._logger.debug("[CQL] %s statement execution", statement_type)
        self._logger.debug("-" * 70)
        for line in text.split('\n'):
            self._logger.debug("  %s", line)
        if values:
            self._logger.debug("[CQL] Parameters: %r", list(values))
        self._logger.debug("=" * 70)

    def _shutdown_cluster(self):
        cluster = self._cluster
        self._cluster = None
        self._session = None
        if cluster is not None:
            try:
                cluster.shutdown()
            except Exception as e:
                self._logger.warning("[CQL] Cluster shutdown failed: %s", e)

    def close(self):
        """Drop prepared statements and shut the cluster down."""
        self._prepared.clear()
        if self._cluster is not None:
            self._logger.debug("[CQL] Closing connection")
        self._shutdown_cluster()

    def __enter__(self):
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()


class ResultHandle:
    """
    One page of a driver result.

    Rows and metadata are captured when the handle is created; next_page()
    asks the driver for the following page once and caches the handle it
    produces, so a page is never fetched twice.
    """

    def __init__(self, result, text: str = ""):
        self._result = result
        self.text = text
        self.rows: List[Any] = list(getattr(result, "current_rows", None) or [])
        self.column_names: List[str] = list(getattr(result, "column_names", None) or [])
        self.column_types: List[Any] = list(getattr(result, "column_types", None) or [])
        self.paging_state: Optional[bytes] = getattr(result, "paging_state", None)
        self.is_last_page: bool = not getattr(result, "has_more_pages", False)
        self._next: Optional['ResultHandle'] = None

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def next_page(self) -> Optional['ResultHandle']:
        """
        Fetch the page after this one.

        Returns:
            ResultHandle for the next page, or None on the last page
        """
        if self.is_last_page:
            return None
        if self._next is None:
            get_logger().debug("[CQL] Fetching next page")
            try:
                self._result.fetch_next_page()
            except Exception as e:
                get_logger().error("[CQL] Fetching next page failed: %s", e)
                raise ExecutionError(f"Fetching next page failed: {e}\nCQL: {self.text}") from e
            self._next = ResultHandle(self._result, self.text)
        return self._next
