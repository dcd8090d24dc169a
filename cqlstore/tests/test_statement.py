"""
Tests for predicates and statement options.
"""

import pytest

from cqlstore.exceptions import QueryBuildError
from cqlstore.statement import Predicate, QueryOptions, RenderedStatement, BoundParameter, StatementKind


class TestPredicate:
    """Test Predicate construction and validation"""

    def test_default_operator_is_equality(self):
        p = Predicate("id", 5)
        assert p.operator == "="
        assert p.value_groups() == [5]

    def test_operator_normalized(self):
        """Operators are case-insensitive and whitespace-normalized"""
        assert Predicate("age", [1, 2], "not   in").operator == "NOT IN"
        assert Predicate("tags", "x", "contains key").operator == "CONTAINS KEY"

    def test_invalid_operator(self):
        with pytest.raises(QueryBuildError, match="Invalid predicate operator"):
            Predicate("age", 1, "=~")

    def test_raw_predicate(self):
        """A predicate without a value is a raw fragment"""
        p = Predicate("token(id) > token(5)")
        assert p.is_raw
        assert p.value_groups() == []

    def test_in_requires_list(self):
        with pytest.raises(QueryBuildError, match="needs a list"):
            Predicate("age", 5, "IN")

    def test_in_rejects_empty_list(self):
        with pytest.raises(QueryBuildError, match="at least one value"):
            Predicate("age", [], "IN")

    def test_between_requires_pair(self):
        with pytest.raises(QueryBuildError, match="exactly two values"):
            Predicate("age", [1, 2, 3], "BETWEEN")

    def test_tuple_predicate(self):
        p = Predicate(["year", "month"], [(2024, 1), (2024, 2)], "IN")
        assert p.is_tuple
        assert p.columns == ("year", "month")
        assert p.value_groups() == [(2024, 1), (2024, 2)]

    def test_tuple_width_mismatch(self):
        with pytest.raises(QueryBuildError, match="2-element values"):
            Predicate(("year", "month"), [(2024,)], "IN")

    def test_tuple_predicate_needs_value(self):
        with pytest.raises(QueryBuildError):
            Predicate(("year", "month"))

    def test_invalid_column(self):
        with pytest.raises(QueryBuildError):
            Predicate("", 1)
        with pytest.raises(QueryBuildError):
            Predicate(42, 1)


class TestQueryOptionsFromValue:
    """Test the loosely-typed option forms callers pass"""

    def test_none(self):
        assert QueryOptions.from_value(None).is_empty

    def test_single_flag_string(self):
        options = QueryOptions.from_value("allow filtering")
        assert options.allow_filtering
        assert not options.if_exists

    def test_flag_list(self):
        options = QueryOptions.from_value(["IF NOT EXISTS", "ALLOW FILTERING"])
        assert options.if_not_exists
        assert options.allow_filtering

    def test_mapping(self):
        options = QueryOptions.from_value({"ttl": 3600, "Timestamp": 1700000000000000, "IF": [{"balance": "10.50"}]})
        assert options.ttl == 3600
        assert options.timestamp == 1700000000000000
        assert options.conditions == [("balance", "10.50")]

    def test_flags_in_mapping(self):
        options = QueryOptions.from_value({"IF EXISTS": None, "ALLOW FILTERING": True})
        assert options.if_exists
        assert options.allow_filtering

    def test_flag_with_value_rejected(self):
        with pytest.raises(QueryBuildError, match="is a flag"):
            QueryOptions.from_value({"IF EXISTS": "yes"})

    def test_unrecognized_key(self):
        with pytest.raises(QueryBuildError, match="Unrecognized option"):
            QueryOptions.from_value({"CONSISTENCY": "QUORUM"})

    def test_unrecognized_flag(self):
        with pytest.raises(QueryBuildError, match="Unrecognized option"):
            QueryOptions.from_value(["ALLOW EVERYTHING"])

    def test_ttl_validation(self):
        with pytest.raises(QueryBuildError, match="needs an integer"):
            QueryOptions.from_value({"TTL": "60"})
        with pytest.raises(QueryBuildError, match="needs an integer"):
            QueryOptions.from_value({"TTL": True})
        with pytest.raises(QueryBuildError, match=">= 0"):
            QueryOptions.from_value({"TTL": -1})

    def test_if_condition_forms(self):
        """IF accepts a mapping, single-entry dicts or pairs, order kept"""
        assert QueryOptions.from_value({"IF": {"a": 1, "b": 2}}).conditions == [("a", 1), ("b", 2)]
        assert QueryOptions.from_value({"IF": [("a", 1), {"b": 2}]}).conditions == [("a", 1), ("b", 2)]

    def test_if_condition_invalid(self):
        with pytest.raises(QueryBuildError):
            QueryOptions.from_value({"IF": []})
        with pytest.raises(QueryBuildError, match="single column=value pair"):
            QueryOptions.from_value({"IF": [{"a": 1, "b": 2}]})

    def test_unsupported_value_type(self):
        with pytest.raises(QueryBuildError, match="Unsupported options value"):
            QueryOptions.from_value(42)

    def test_copy_of_options(self):
        original = QueryOptions(ttl=5)
        copied = QueryOptions.from_value(original)
        assert copied == original
        assert copied is not original


class TestQueryOptionsMerge:
    """Test combining options staged by successive calls"""

    def test_later_scalars_win(self):
        merged = QueryOptions(ttl=10, timestamp=1).merge(QueryOptions(ttl=20))
        assert merged.ttl == 20
        assert merged.timestamp == 1

    def test_conditions_concatenate(self):
        merged = QueryOptions(conditions=[("a", 1)]).merge(QueryOptions(conditions=[("b", 2)]))
        assert merged.conditions == [("a", 1), ("b", 2)]

    def test_flags_or_together(self):
        merged = QueryOptions(allow_filtering=True).merge(QueryOptions(if_exists=True))
        assert merged.allow_filtering
        assert merged.if_exists


def test_rendered_statement_values():
    rendered = RenderedStatement(
        text="SELECT * FROM t WHERE a = ?",
        parameters=[BoundParameter("a", 1)],
        kind=StatementKind.select,
    )
    assert rendered.values == [1]
    assert not rendered.conditional
