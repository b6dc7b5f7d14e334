"""Unit tests for required-vs-deployed index matching."""

from __future__ import annotations

import pytest

from firescan.domain import IndexDefinition
from firescan.planning import is_index_present


REQUIRED = IndexDefinition.of("city", "age", collection_group="users")


@pytest.mark.unit
class TestIsIndexPresent:
    def test_nothing_required(self):
        assert is_index_present([], None)

    def test_empty_available_set(self):
        assert not is_index_present([], REQUIRED)

    def test_exact_match(self):
        assert is_index_present([IndexDefinition.of("city", "age")], REQUIRED)

    @pytest.mark.parametrize(
        "candidate",
        [
            IndexDefinition.of("age", "city"),
            IndexDefinition.of("city", ("age", "desc")),
            IndexDefinition.of("city", "age", "name"),
            IndexDefinition.of("city", "name"),
        ],
    )
    def test_no_partial_credit(self, candidate):
        assert not is_index_present([candidate], REQUIRED)

    def test_collection_group_must_agree_when_both_set(self):
        other = IndexDefinition.of("city", "age", collection_group="orders")
        same = IndexDefinition.of("city", "age", collection_group="users")

        assert not is_index_present([other], REQUIRED)
        assert is_index_present([other, same], REQUIRED)
