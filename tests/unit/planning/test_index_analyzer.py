"""Unit tests for required-index analysis."""

from __future__ import annotations

import pytest

from firescan.config import StoreCapabilities
from firescan.domain import Direction, FilterOperator, collection_query
from firescan.exceptions import ConfigurationError
from firescan.planning import analyze_query_indexes, has_multiple_inequality_filters, inequality_fields


@pytest.mark.unit
class TestAnalyzeQueryIndexes:
    @pytest.mark.parametrize(
        "query",
        [
            collection_query("users"),
            collection_query("users").where("city", "==", "NYC"),
            collection_query("users").where("age", ">", 30),
            collection_query("users").where("tags", "array-contains-any", ["a", "b"]),
        ],
    )
    def test_single_filter_without_sort_needs_no_index(self, query):
        assert analyze_query_indexes(query) is None

    def test_equality_then_inequality(self):
        query = collection_query("users").where("city", "==", "NYC").where("age", ">", 30)
        required = analyze_query_indexes(query)

        assert required is not None
        assert required.signature == (("city", Direction.ASCENDING), ("age", Direction.ASCENDING))
        assert required.collection_group == "users"

    def test_inequality_filter_before_equality_still_ordered_after(self):
        query = collection_query("users").where("age", "<=", 40).where("city", "==", "NYC")
        required = analyze_query_indexes(query)

        assert required.field_paths == ("city", "age")

    def test_sort_fields_keep_direction_and_deduplicate(self):
        query = (
            collection_query("users")
            .where("city", "==", "NYC")
            .where("age", ">", 30)
            .order_by("age", "desc")
            .order_by("name", "desc")
        )
        required = analyze_query_indexes(query)

        assert required.signature == (
            ("city", Direction.ASCENDING),
            ("age", Direction.ASCENDING),
            ("name", Direction.DESCENDING),
        )

    def test_sort_only_on_single_field_needs_no_index(self):
        assert analyze_query_indexes(collection_query("users").order_by("age")) is None

    def test_filter_plus_sort_on_other_field(self):
        query = collection_query("users").where("city", "==", "NYC").order_by("age", "desc")
        required = analyze_query_indexes(query)

        assert required.signature == (("city", Direction.ASCENDING), ("age", Direction.DESCENDING))

    def test_membership_filters_count_as_equality(self):
        query = collection_query("users").where("city", "in", ["NYC", "LA"]).where("age", ">", 30)
        required = analyze_query_indexes(query)

        assert required.field_paths == ("city", "age")

    def test_inequality_on_two_fields_fails_naming_both(self):
        query = collection_query("users").where("age", ">", 30).where("name", "!=", "Tom")

        with pytest.raises(ConfigurationError, match="age and name"):
            analyze_query_indexes(query)

    def test_two_inequalities_on_same_field_are_fine(self):
        query = collection_query("users").where("age", ">", 20).where("age", "<", 30)

        assert inequality_fields(query) == ["age"]
        assert analyze_query_indexes(query) is None


@pytest.mark.unit
class TestMultipleInequality:
    def test_single_inequality_field(self):
        query = collection_query("users").where("age", ">", 20).where("age", "<", 30)
        assert not has_multiple_inequality_filters(query)

    def test_membership_counts_as_inequality_for_store_limits(self):
        query = collection_query("users").where("city", "in", ["NYC", "LA"]).where("age", ">", 30)
        assert has_multiple_inequality_filters(query)

    def test_equality_filters_never_count(self):
        query = collection_query("users").where("city", "==", "NYC").where("age", ">", 30)
        assert not has_multiple_inequality_filters(query)

    def test_capability_table_raises_the_limit(self):
        query = collection_query("users").where("city", "in", ["NYC"]).where("age", ">", 30)
        relaxed = StoreCapabilities(max_inequality_fields=2)

        assert not has_multiple_inequality_filters(query, relaxed)

    def test_capability_table_can_exclude_membership(self):
        query = collection_query("users").where("city", "in", ["NYC"]).where("age", ">", 30)
        strict_only = StoreCapabilities(
            multi_inequality_operators=frozenset({FilterOperator.GREATER_THAN, FilterOperator.LESS_THAN})
        )

        assert not has_multiple_inequality_filters(query, strict_only)
