"""
Tests for the CQLStore facade: staging, execution, reset and factories.
"""

import uuid
from decimal import Decimal

import pytest

from cqlstore import CQLStore, connect_all
from cqlstore.config import ConnectionSettings
from cqlstore.exceptions import (
    ColumnNotFoundError,
    CQLStoreError,
    QueryBuildError,
    TableNotFoundError,
    TypeConversionError,
    WriteNotAppliedError,
)
from cqlstore.results import PagedResultSet, Row, RowSequence

from conftest import FakeResultSet


ACCOUNT_ID = uuid.UUID("12345678-1234-5678-1234-567812345678")


class TestInsert:
    """Test INSERT through the store"""

    def test_insert_binds_coerced_values(self, store, session):
        assert store.insert("accounts", {"name": "Ann", "balance": "10.50"}) is True
        statement = session.last_statement
        assert statement.query_string == "INSERT INTO accounts (name, balance) VALUES (?, ?)"
        assert statement.values == ["Ann", Decimal("10.50")]

    def test_generated_uuid_exposed(self, store, session):
        assert store.last_uuid is None
        store.insert("accounts", {"id": None, "name": "Ann"})
        generated = session.last_statement.values[0]
        assert isinstance(generated, uuid.UUID)
        assert store.last_uuid == str(generated)

    def test_omitted_id_not_generated(self, store, session):
        """Only an id passed as None is generated"""
        store.insert("accounts", {"name": "Ann"})
        assert session.last_statement.query_string == "INSERT INTO accounts (name) VALUES (?)"
        assert store.last_uuid is None

    def test_if_not_exists_applied(self, store, session, cluster):
        cluster.queue(FakeResultSet([[(True,)]], ["[applied]"], ["boolean"]))
        assert store.insert("accounts", {"id": ACCOUNT_ID}, options="IF NOT EXISTS") is True
        assert session.last_statement.query_string == "INSERT INTO accounts (id) VALUES (?) IF NOT EXISTS"

    def test_if_not_exists_rejected(self, store, cluster):
        cluster.queue(FakeResultSet([[(False, ACCOUNT_ID, "Bob")]], ["[applied]", "id", "name"], ["boolean", "uuid", "text"]))
        with pytest.raises(WriteNotAppliedError) as exc_info:
            store.insert("accounts", {"id": ACCOUNT_ID, "name": "Ann"}, options=["IF NOT EXISTS"])
        assert exc_info.value.current == {"id": str(ACCOUNT_ID), "name": "Bob"}

    def test_insert_with_ttl(self, store, session):
        store.insert("accounts", {"id": ACCOUNT_ID}, options={"TTL": 60})
        assert session.last_statement.query_string == "INSERT INTO accounts (id) VALUES (?) USING TTL 60"

    def test_insert_requires_mapping(self, store, session):
        with pytest.raises(QueryBuildError, match="must be a mapping"):
            store.insert("accounts", [("name", "Ann")])
        assert session.executed == []


class TestGet:
    """Test SELECT through the store"""

    def test_between_with_limit(self, store, session, cluster):
        cluster.queue(FakeResultSet([[(ACCOUNT_ID, "Ann", 20)]], ["id", "name", "age"], ["uuid", "text", "int"]))
        rows = store.where("age", [18, 30], "BETWEEN").get("accounts", limit=10)
        statement = session.last_statement
        assert statement.query_string == "SELECT * FROM accounts WHERE age BETWEEN ? AND ? LIMIT 10"
        assert statement.values == [18, 30]
        assert isinstance(rows, RowSequence)
        assert rows == [{"id": str(ACCOUNT_ID), "name": "Ann", "age": 20}]

    def test_chained_predicates_and_columns(self, store, session):
        store.where("country", ["AM", "GE"], "IN").where("age", "18", ">=", options="ALLOW FILTERING").get(
            "accounts", columns=["id", "name"]
        )
        statement = session.last_statement
        assert statement.query_string == (
            "SELECT id, name FROM accounts WHERE country IN (?, ?) AND age >= ? ALLOW FILTERING"
        )
        assert statement.values == ["AM", "GE", 18]

    def test_no_rows_is_none(self, store):
        assert store.where("id", ACCOUNT_ID).get("accounts") is None

    def test_get_one(self, store, session, cluster):
        cluster.queue(FakeResultSet([[(ACCOUNT_ID, "Ann")]], ["id", "name"], ["uuid", "text"]))
        row = store.where("id", str(ACCOUNT_ID)).get_one("accounts", columns="id, name")
        assert isinstance(row, Row)
        assert row["name"] == "Ann"
        statement = session.last_statement
        assert statement.query_string == "SELECT id, name FROM accounts WHERE id = ? LIMIT 1"
        assert statement.values == [ACCOUNT_ID]

    def test_get_one_not_found(self, store):
        assert store.where("id", ACCOUNT_ID).get_one("accounts") is None

    def test_contains_bound_to_element_type(self, store, session):
        store.where("scores", "7", "CONTAINS", options="ALLOW FILTERING").get("accounts")
        assert session.last_statement.values == [7]

    def test_paged(self, store, session, cluster):
        cluster.queue(FakeResultSet([[(1, 1, "a")], [(1, 2, "b")]], ["id", "seq", "payload"], ["int", "int", "text"]))
        result = store.where("id", 1).get("events", page_size=1)
        assert isinstance(result, PagedResultSet)
        assert session.last_statement.fetch_size == 1
        assert [row["payload"] for row in result.rows()] == ["a", "b"]

    def test_invalid_page_size(self, store):
        with pytest.raises(QueryBuildError, match="page_size"):
            store.get("events", page_size=-1)

    def test_invalid_limit(self, store):
        with pytest.raises(QueryBuildError, match="positive integer"):
            store.get("events", limit=0)


class TestUpdateDelete:
    """Test UPDATE and DELETE through the store"""

    def test_update_with_condition(self, store, session):
        result = store.where("id", ACCOUNT_ID).update(
            "accounts", {"balance": "0"}, options={"IF": [{"balance": "10.50"}]}
        )
        assert result is True
        statement = session.last_statement
        assert statement.query_string == "UPDATE accounts SET balance = ? WHERE id = ? IF balance = ?"
        assert statement.values == [Decimal("0"), ACCOUNT_ID, Decimal("10.50")]

    def test_update_condition_rejected(self, store, cluster):
        cluster.queue(FakeResultSet([[(False, Decimal("7"))]], ["[applied]", "balance"], ["boolean", "decimal"]))
        with pytest.raises(WriteNotAppliedError) as exc_info:
            store.where("id", ACCOUNT_ID).update("accounts", {"balance": 0}, options={"IF": {"balance": 10}})
        assert exc_info.value.current == {"balance": 7.0}

    def test_update_collections(self, store, session):
        store.where("id", ACCOUNT_ID).update("accounts", {"tags": ["vip", "vip"], "attrs": {"x": "1"}})
        assert session.last_statement.values == [{"vip"}, {"x": 1}, ACCOUNT_ID]

    def test_delete(self, store, session):
        assert store.where("id", ACCOUNT_ID).delete("accounts") is True
        assert session.last_statement.query_string == "DELETE FROM accounts WHERE id = ?"

    def test_delete_columns_if_exists(self, store, session):
        store.where("id", ACCOUNT_ID).delete("accounts", columns=["name"], options="IF EXISTS")
        assert session.last_statement.query_string == "DELETE name FROM accounts WHERE id = ? IF EXISTS"


class TestStagedStateReset:
    """Staged predicates and options never leak into the next operation"""

    def test_reset_after_success(self, store, session):
        store.where("id", ACCOUNT_ID).get("accounts")
        store.get("accounts")
        assert session.last_statement.query_string == "SELECT * FROM accounts"

    def test_reset_after_build_error(self, store, session, cluster):
        with pytest.raises(QueryBuildError, match="INSERT does not take WHERE"):
            store.where("id", ACCOUNT_ID).insert("accounts", {"name": "Ann"})
        assert session.executed == []
        assert cluster.connect_calls == 0

        store.get("accounts")
        assert session.last_statement.query_string == "SELECT * FROM accounts"

    def test_build_error_before_network(self, store, session, cluster):
        with pytest.raises(QueryBuildError):
            store.where("id", ACCOUNT_ID).update("accounts", {"age": 1}, options={"IF": {"age": 0}, "IF EXISTS": None})
        assert cluster.connect_calls == 0
        assert session.prepared == []

    def test_conversion_error_before_execute(self, store, session):
        with pytest.raises(TypeConversionError):
            store.where("balance", "ten").get("accounts")
        assert session.prepared == []
        assert session.executed == []

        store.get("accounts")
        assert session.last_statement.query_string == "SELECT * FROM accounts"

    def test_unknown_column(self, store, session):
        with pytest.raises(ColumnNotFoundError, match="nope"):
            store.where("nope", 1).get("accounts")
        assert session.executed == []

    def test_unknown_table(self, store):
        with pytest.raises(TableNotFoundError):
            store.where("id", 1).get("ghost")

    def test_invalid_where_resets(self, store, session):
        store.where("id", ACCOUNT_ID)
        with pytest.raises(QueryBuildError):
            store.where("age", 5, "IN")
        store.get("accounts")
        assert session.last_statement.query_string == "SELECT * FROM accounts"

    def test_all_errors_share_base(self, store):
        with pytest.raises(CQLStoreError):
            store.where("id", 1).get("ghost")


class TestRawQuery:
    """Test verbatim statement execution"""

    def test_statement_without_rows(self, store, session):
        assert store.raw_query("TRUNCATE accounts") is True
        assert session.last_statement.query_string == "TRUNCATE accounts"
        assert session.prepared == []

    def test_rows_converted(self, store, cluster):
        cluster.queue(FakeResultSet([[(Decimal("1.5"),)]], ["balance"], ["decimal"]))
        rows = store.raw_query("SELECT balance FROM accounts")
        assert rows == [{"balance": 1.5}]

    def test_discards_staged_state(self, store, session):
        store.where("id", ACCOUNT_ID)
        store.raw_query("SELECT * FROM accounts")
        store.get("accounts")
        assert session.last_statement.query_string == "SELECT * FROM accounts"

    def test_empty_text(self, store):
        with pytest.raises(QueryBuildError, match="cannot be empty"):
            store.raw_query("  ")


class TestLifecycle:
    """Test connection lifecycle and conversion switch"""

    def test_connects_lazily_once(self, store, cluster):
        assert cluster.connect_calls == 0
        store.get("accounts")
        store.get("events")
        assert cluster.connect_calls == 1

    def test_context_manager(self, cluster):
        with CQLStore(seeds="10.0.0.1", keyspace="bank", cluster_factory=cluster.factory) as store:
            assert store.connection.is_connected
        assert cluster.is_shutdown
        assert not store.connection.is_connected

    def test_close_clears_schema(self, store):
        store.where("id", ACCOUNT_ID).get("accounts")
        assert store.schema.is_cached("accounts")
        store.close()
        assert not store.schema.is_cached("accounts")

    def test_auto_convert_switch(self, store, cluster):
        store.auto_convert = False
        cluster.queue(FakeResultSet([[(Decimal("1.5"),)]], ["balance"], ["decimal"]))
        assert store.get("accounts")[0]["balance"] == Decimal("1.5")

    def test_repr_hides_password(self, cluster):
        store = CQLStore(seeds=["h"], keyspace="bank", username="u", password="secret", cluster_factory=cluster.factory)
        assert "secret" not in repr(store)
        assert "secret" not in repr(store.settings)

    def test_unknown_dialect(self):
        with pytest.raises(CQLStoreError, match="Unsupported dialect"):
            CQLStore(seeds=["h"], keyspace="bank", dialect="mysql")


class TestFactories:
    """Test building stores from configuration"""

    def test_from_settings_mapping(self, cluster):
        store = CQLStore.from_settings(
            {
                "database.type": "cassandra",
                "database.seeds": ["192.168.100.200"],
                "database.port": 9042,
                "database.keyspace": "bank",
                "database.user": "",
                "database.pass": "",
            },
            cluster_factory=cluster.factory,
        )
        store.connect()
        assert cluster.factory_kwargs == {"contact_points": ["192.168.100.200"], "port": 9042}
        assert store.settings.keyspace == "bank"

    def test_from_settings_object(self):
        settings = ConnectionSettings(seeds=["h"], keyspace="bank")
        assert CQLStore.from_settings(settings).settings is settings

    def test_from_uri(self):
        store = CQLStore.from_uri("scylla://u:p@h1,h2:9042/bank")
        assert store.settings.seeds == ["h1", "h2"]
        assert store.settings.username == "u"
        assert store.settings.dialect == "scylla"

    def test_connect_all(self, cluster):
        stores = connect_all(
            {
                "cassandra": {"database.type": "cassandra", "database.seeds": ["h"], "database.keyspace": "bank"},
                "mysql": {"database.type": "mysql", "database.host": "localhost"},
            },
            cluster_factory=cluster.factory,
        )
        assert list(stores) == ["cassandra"]
        assert stores["cassandra"].settings.keyspace == "bank"

    def test_class_level_config(self):
        from cqlstore import config

        assert CQLStore.config is config
