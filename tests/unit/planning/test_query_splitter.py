"""Unit tests for splitting a query into store and residual parts."""

from __future__ import annotations

import pytest

from firescan.config import StoreCapabilities
from firescan.domain import IndexDefinition, collection_query
from firescan.planning import filters_covered, split_query


@pytest.mark.unit
class TestSplitQuery:
    def test_uncovered_pushes_only_equality_filters(self):
        query = (
            collection_query("users").where("city", "==", "NYC").where("age", ">", 30).order_by("age").with_limit(5)
        )

        split = split_query(query, [])

        assert not split.filters_covered
        assert [f.field_path for f in split.db_query.filters] == ["city"]
        assert [f.field_path for f in split.residual.filters] == ["age"]
        assert split.residual.sort_orders == query.sort_orders
        assert split.residual.limit == 5

    def test_db_query_never_carries_ordering_or_pagination(self):
        query = collection_query("users").where("city", "==", "NYC").order_by("age").with_offset(2).with_limit(1)
        split = split_query(query, [IndexDefinition.of("city", "age")])

        assert split.db_query.sort_orders == ()
        assert split.db_query.limit is None
        assert split.db_query.offset is None
        assert split.residual.offset == 2

    def test_covered_filters_all_pushed(self):
        query = collection_query("users").where("city", "==", "NYC").where("age", ">", 30).order_by("name")
        available = [IndexDefinition.of("city", "age")]

        split = split_query(query, available)

        assert split.filters_covered
        assert len(split.db_query.filters) == 2
        assert not split.residual.has_filters
        assert split.residual.sort_orders == query.sort_orders

    def test_only_one_membership_filter_pushed(self):
        query = (
            collection_query("users")
            .where("city", "in", ["NYC", "LA"])
            .where("tags", "array-contains-any", ["a"])
            .where("active", "==", True)
        )

        split = split_query(query, [])

        pushed = [f.field_path for f in split.db_query.filters]
        assert pushed == ["city", "active"]
        assert [f.field_path for f in split.residual.filters] == ["tags"]

    def test_membership_cap_applies_even_when_covered(self):
        query = collection_query("users").where("city", "in", ["NYC"]).where("tags", "array-contains-any", ["a"])
        available = [IndexDefinition.of("city", "tags")]

        split = split_query(query, available, StoreCapabilities(max_inequality_fields=2))

        assert split.filters_covered
        assert [f.field_path for f in split.db_query.filters] == ["city"]
        assert [f.field_path for f in split.residual.filters] == ["tags"]

    def test_multi_inequality_is_never_covered(self):
        query = collection_query("users").where("city", "in", ["NYC"]).where("age", ">", 30)
        available = [IndexDefinition.of("city", "age")]

        assert not filters_covered(query, available)
        split = split_query(query, available)
        assert [f.field_path for f in split.db_query.filters] == ["city"]

    def test_inequality_on_two_fields_is_uncovered_not_fatal(self):
        query = collection_query("users").where("age", ">", 30).where("name", "!=", "Tom")
        assert not filters_covered(query, [])
