"""
Pytest configuration for cqlstore tests.

Provides an in-memory stand-in for the cassandra-driver cluster so the
builder, binder and pager can be exercised without a running store:

- FakeCluster: metadata (keyspaces -> tables -> columns) and connect()
- FakeSession: records prepare/execute calls and replays queued results
- FakeResultSet: a result split into pages, walked with fetch_next_page()
"""

from collections import deque

import pytest

from cqlstore import CQLStore


ACCOUNTS_SCHEMA = {
    "id": "uuid",
    "name": "text",
    "balance": "decimal",
    "age": "int",
    "visits": "bigint",
    "ratio": "double",
    "active": "boolean",
    "created": "timestamp",
    "event": "timeuuid",
    "ip": "inet",
    "data": "blob",
    "tags": "set<text>",
    "scores": "list<int>",
    "attrs": "map<text, int>",
    "country": "text",
}

EVENTS_SCHEMA = {
    "id": "int",
    "seq": "int",
    "payload": "text",
}


class FakeColumn:
    def __init__(self, name, cql_type):
        self.name = name
        self.cql_type = cql_type


class FakeTable:
    def __init__(self, name, columns):
        self.name = name
        self.columns = {col: FakeColumn(col, cql_type) for col, cql_type in columns.items()}


class FakeKeyspace:
    def __init__(self, name, tables):
        self.name = name
        self.tables = {table: FakeTable(table, columns) for table, columns in tables.items()}


class FakeMetadata:
    def __init__(self, keyspaces):
        self.keyspaces = keyspaces


class FakeResultSet:
    """A driver result made of pages; only the current page is visible."""

    def __init__(self, pages=None, column_names=None, column_types=None):
        self._pages = [list(page) for page in (pages or [[]])]
        self._index = 0
        self.column_names = column_names
        self.column_types = column_types
        self.fetch_count = 0

    @property
    def current_rows(self):
        return self._pages[self._index]

    @property
    def has_more_pages(self):
        return self._index < len(self._pages) - 1

    @property
    def paging_state(self):
        if not self.has_more_pages:
            return None
        return f"page-{self._index + 1}".encode()

    def fetch_next_page(self):
        if not self.has_more_pages:
            raise RuntimeError("no more pages")
        self._index += 1
        self.fetch_count += 1


class FakePrepared:
    def __init__(self, query_string):
        self.query_string = query_string

    def bind(self, values):
        return FakeBound(self, values)


class FakeBound:
    def __init__(self, prepared, values):
        self.prepared = prepared
        self.values = list(values)
        self.fetch_size = None

    @property
    def query_string(self):
        return self.prepared.query_string


class FakeSession:
    def __init__(self, cluster, keyspace=None):
        self.cluster = cluster
        self.keyspace = keyspace
        self.row_factory = None
        self.prepared = []
        self.executed = []
        self.responses = deque()
        self.execute_error = None
        self.prepare_error = None

    def prepare(self, text):
        if self.prepare_error is not None:
            raise self.prepare_error
        self.prepared.append(text)
        return FakePrepared(text)

    def execute(self, statement, paging_state=None):
        self.executed.append((statement, paging_state))
        if self.execute_error is not None:
            raise self.execute_error
        if self.responses:
            return self.responses.popleft()
        return FakeResultSet()

    @property
    def last_statement(self):
        return self.executed[-1][0]


class FakeCluster:
    """Stands in for cassandra.cluster.Cluster; use ``factory`` as cluster_factory."""

    def __init__(self, tables=None, keyspace="bank"):
        self.metadata = FakeMetadata({keyspace: FakeKeyspace(keyspace, tables or {})})
        self.session = FakeSession(self, keyspace)
        self.factory_kwargs = None
        self.connect_calls = 0
        self.connect_error = None
        self.is_shutdown = False

    def factory(self, **kwargs):
        self.factory_kwargs = kwargs
        return self

    def connect(self, keyspace=None):
        self.connect_calls += 1
        if self.connect_error is not None:
            raise self.connect_error
        self.session.keyspace = keyspace
        return self.session

    def shutdown(self):
        self.is_shutdown = True

    def queue(self, *results):
        """Queue results returned by the next execute() calls."""
        self.session.responses.extend(results)


@pytest.fixture
def cluster():
    return FakeCluster({"accounts": ACCOUNTS_SCHEMA, "events": EVENTS_SCHEMA})


@pytest.fixture
def session(cluster):
    return cluster.session


@pytest.fixture
def store(cluster):
    return CQLStore(seeds=["10.0.0.1"], keyspace="bank", cluster_factory=cluster.factory)
