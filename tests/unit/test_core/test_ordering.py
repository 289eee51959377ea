"""Unit tests for order tags and sort specifications."""
from __future__ import annotations

import pytest

from keyset_pagination.core.exceptions import EmptySortSpec, InvalidSortSpec
from keyset_pagination.core.pagination.ordering import (
    NullPolicy,
    QueryOrder,
    SortDirection,
    SortKey,
    SortSpec,
    reverse_order_by,
)

# The nested declaration from the module docs, with five keys across
# three clauses.
NESTED_ORDER_BY = [
    {"name": "ASC", "parent1": {"age": "DESC"}},
    {"parent1": {"parent2": {"id": "ASC"}}},
    {"parent2": {"name": "DESC"}},
    {"id": "ASC"},
]


# ──────────────────────────────────────────────────────────────
# Test QueryOrder
# ──────────────────────────────────────────────────────────────


@pytest.mark.unit
class TestQueryOrder:
    """Tests for compound order tags."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("ASC", QueryOrder.ASC),
            ("desc", QueryOrder.DESC),
            ("asc_nulls_last", QueryOrder.ASC_NULLS_LAST),
            ("Desc Nulls First", QueryOrder.DESC_NULLS_FIRST),
            ("ASC  NULLS   FIRST", QueryOrder.ASC_NULLS_FIRST),
        ],
    )
    def test_parsing_is_lenient(self, raw, expected):
        """Tags parse case-insensitively with underscores for spaces."""
        assert QueryOrder(raw) is expected

    def test_unknown_tag_raises(self):
        """Unknown tags are not silently mapped."""
        with pytest.raises(ValueError):
            QueryOrder("SIDEWAYS")

    def test_direction_and_null_policy(self):
        """Each tag exposes its direction and null placement."""
        assert QueryOrder.ASC.direction is SortDirection.ASC
        assert QueryOrder.ASC.null_policy is NullPolicy.NONE
        assert QueryOrder.DESC_NULLS_LAST.direction is SortDirection.DESC
        assert QueryOrder.DESC_NULLS_LAST.null_policy is NullPolicy.NULLS_LAST

    @pytest.mark.parametrize(
        ("order", "reverse"),
        [
            (QueryOrder.ASC, QueryOrder.DESC),
            (QueryOrder.DESC, QueryOrder.ASC),
            (QueryOrder.ASC_NULLS_FIRST, QueryOrder.DESC_NULLS_LAST),
            (QueryOrder.ASC_NULLS_LAST, QueryOrder.DESC_NULLS_FIRST),
            (QueryOrder.DESC_NULLS_FIRST, QueryOrder.ASC_NULLS_LAST),
            (QueryOrder.DESC_NULLS_LAST, QueryOrder.ASC_NULLS_FIRST),
        ],
    )
    def test_reversal_flips_direction_and_nulls(self, order, reverse):
        """Reversal flips the direction and the null placement together."""
        assert order.reversed() is reverse

    @pytest.mark.parametrize("order", list(QueryOrder))
    def test_reversal_is_involution(self, order):
        """Reversing twice gives the original tag."""
        assert order.reversed().reversed() is order

    def test_compose(self):
        """Direction and policy compose back into a tag."""
        assert QueryOrder.compose(SortDirection.DESC, NullPolicy.NONE) is QueryOrder.DESC
        assert (
            QueryOrder.compose(SortDirection.ASC, NullPolicy.NULLS_LAST)
            is QueryOrder.ASC_NULLS_LAST
        )

    def test_wire_values(self):
        """Tags serialize to the exact wire strings."""
        assert [order.value for order in QueryOrder] == [
            "ASC",
            "ASC NULLS FIRST",
            "ASC NULLS LAST",
            "DESC",
            "DESC NULLS FIRST",
            "DESC NULLS LAST",
        ]


# ──────────────────────────────────────────────────────────────
# Test SortSpec
# ──────────────────────────────────────────────────────────────


@pytest.mark.unit
class TestSortSpec:
    """Tests for normalizing ordering declarations."""

    def test_flattens_nested_declaration(self):
        """Nested clauses flatten depth-first in declaration order."""
        spec = SortSpec.from_order_by(NESTED_ORDER_BY)

        assert spec.paths == [
            "name",
            "parent1.age",
            "parent1.parent2.id",
            "parent2.name",
            "id",
        ]
        assert [key.order for key in spec] == [
            QueryOrder.ASC,
            QueryOrder.DESC,
            QueryOrder.ASC,
            QueryOrder.DESC,
            QueryOrder.ASC,
        ]

    def test_single_mapping_declaration(self):
        """A bare mapping is a one-clause declaration."""
        spec = SortSpec.from_order_by({"name": "asc", "id": "desc_nulls_last"})

        assert list(spec) == [
            SortKey("name", QueryOrder.ASC),
            SortKey("id", QueryOrder.DESC_NULLS_LAST),
        ]
        assert len(spec) == 2

    @pytest.mark.parametrize("order_by", [[], {}, [{}], [{}, {}]])
    def test_empty_declaration_raises(self, order_by):
        """Declarations without keys are rejected at construction."""
        with pytest.raises(EmptySortSpec, match="Cannot create cursor with empty order_by"):
            SortSpec.from_order_by(order_by)

    def test_empty_sort_spec_is_invalid_sort_spec(self):
        """EmptySortSpec can be caught as InvalidSortSpec."""
        with pytest.raises(InvalidSortSpec):
            SortSpec(())

    def test_unknown_leaf_raises_with_path(self):
        """A bad leaf names the offending path."""
        with pytest.raises(InvalidSortSpec) as exc_info:
            SortSpec.from_order_by({"parent1": {"age": "UP"}})

        assert exc_info.value.details == {"path": "parent1.age"}

    @pytest.mark.parametrize("order_by", ["name", 42, ["name"]])
    def test_malformed_declaration_raises(self, order_by):
        """Only mappings and lists of mappings are declarations."""
        with pytest.raises(InvalidSortSpec):
            SortSpec.from_order_by(order_by)

    @pytest.mark.parametrize(
        "order_by",
        [
            [{"id": "ASC"}, {"id": "ASC"}],
            [{"id": "ASC"}, {"name": "DESC"}, {"id": "DESC"}],
            [{"parent1": {"id": "ASC"}}, {"parent1.id": "DESC"}],
        ],
    )
    def test_repeated_path_raises(self, order_by):
        """A path may only be sorted on once."""
        with pytest.raises(InvalidSortSpec, match="declared twice") as exc_info:
            SortSpec.from_order_by(order_by)

        assert exc_info.value.details["path"] in {"id", "parent1.id"}

    def test_from_order_by_accepts_spec(self):
        """An existing spec passes through unchanged."""
        spec = SortSpec.from_order_by({"id": "ASC"})

        assert SortSpec.from_order_by(spec) is spec


@pytest.mark.unit
class TestToOrderBy:
    """Tests for rebuilding nested declarations."""

    def test_merges_into_single_mapping(self):
        """Keys merge into one mapping when precedence is unchanged."""
        spec = SortSpec.from_order_by(NESTED_ORDER_BY)

        assert spec.to_order_by() == {
            "name": QueryOrder.ASC,
            "parent1": {"age": QueryOrder.DESC, "parent2": {"id": QueryOrder.ASC}},
            "parent2": {"name": QueryOrder.DESC},
            "id": QueryOrder.ASC,
        }

    def test_keeps_precedence_with_list(self):
        """A key that merging would reorder opens a new clause."""
        spec = SortSpec.from_order_by(
            [{"parent1": {"age": "ASC"}}, {"name": "ASC"}, {"parent1": {"id": "ASC"}}]
        )

        rebuilt = spec.to_order_by()

        assert rebuilt == [
            {"parent1": {"age": QueryOrder.ASC}, "name": QueryOrder.ASC},
            {"parent1": {"id": QueryOrder.ASC}},
        ]
        assert SortSpec.from_order_by(rebuilt) == spec

    def test_tags_serialize_as_wire_strings(self):
        """Rebuilt tags compare equal to their wire strings."""
        assert SortSpec.from_order_by({"age": "desc nulls first"}).to_order_by() == {
            "age": "DESC NULLS FIRST"
        }

    def test_reverse_order_by(self):
        """Every key of a declaration is reversed."""
        assert reverse_order_by(NESTED_ORDER_BY) == {
            "name": "DESC",
            "parent1": {"age": "ASC", "parent2": {"id": "DESC"}},
            "parent2": {"name": "ASC"},
            "id": "DESC",
        }

    def test_reversed_spec_is_involution(self):
        """Reversing a spec twice gives it back."""
        spec = SortSpec.from_order_by([{"name": "ASC"}, {"age": "DESC NULLS FIRST"}, {"id": "ASC"}])

        assert spec.reversed().reversed() == spec
