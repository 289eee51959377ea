"""Sort specifications for keyset pagination.

An ordering declaration is one mapping, or a list of mappings, from field
name to order tag. Nested mappings address fields through relations:

    [
        {"name": "ASC", "parent1": {"age": "DESC"}},
        {"parent1": {"parent2": {"id": "ASC"}}},
        {"id": "ASC"},
    ]

normalizes to the key sequence::

    name ASC, parent1.age DESC, parent1.parent2.id ASC, id ASC

Key order is tie-break precedence: the first key wins, later keys only
decide between rows that are equal on every earlier key.
"""

from __future__ import annotations

import copy
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from keyset_pagination.core.exceptions import EmptySortSpec, InvalidSortSpec
from keyset_pagination.core.pagination.paths import join_path, set_path

OrderBy = Mapping[str, Any] | Sequence[Mapping[str, Any]]


class SortDirection(str, Enum):
    """Direction of a single sort key."""

    ASC = "ASC"
    DESC = "DESC"


class NullPolicy(str, Enum):
    """Where null values sort relative to non-null values."""

    NONE = "NONE"
    NULLS_FIRST = "NULLS FIRST"
    NULLS_LAST = "NULLS LAST"


class QueryOrder(str, Enum):
    """Compound order tag: direction plus null placement.

    Values are the wire representation used inside cursor tokens. Lookup
    is case-insensitive and accepts underscores, so ``"asc_nulls_last"``
    and ``"ASC NULLS LAST"`` are the same tag.
    """

    ASC = "ASC"
    ASC_NULLS_FIRST = "ASC NULLS FIRST"
    ASC_NULLS_LAST = "ASC NULLS LAST"
    DESC = "DESC"
    DESC_NULLS_FIRST = "DESC NULLS FIRST"
    DESC_NULLS_LAST = "DESC NULLS LAST"

    @classmethod
    def _missing_(cls, value: object) -> QueryOrder | None:
        if not isinstance(value, str):
            return None
        normalized = " ".join(value.replace("_", " ").upper().split())
        for member in cls:
            if member.value == normalized:
                return member
        return None

    @classmethod
    def compose(cls, direction: SortDirection, null_policy: NullPolicy) -> QueryOrder:
        """Build the tag for a direction and null policy."""
        if null_policy is NullPolicy.NONE:
            return cls(direction.value)
        return cls(f"{direction.value} {null_policy.value}")

    @property
    def direction(self) -> SortDirection:
        return SortDirection(self.value.split(" ", 1)[0])

    @property
    def null_policy(self) -> NullPolicy:
        _, _, policy = self.value.partition(" ")
        return NullPolicy(policy) if policy else NullPolicy.NONE

    def reversed(self) -> QueryOrder:
        """Tag that walks the same rows in exactly the opposite order."""
        return _REVERSED_ORDER[self]


# Direction and null placement flip together: "ASC NULLS FIRST" read
# backwards is "DESC NULLS LAST". Applying the table twice is the identity.
_REVERSED_ORDER: dict[QueryOrder, QueryOrder] = {
    QueryOrder.ASC: QueryOrder.DESC,
    QueryOrder.ASC_NULLS_FIRST: QueryOrder.DESC_NULLS_LAST,
    QueryOrder.ASC_NULLS_LAST: QueryOrder.DESC_NULLS_FIRST,
    QueryOrder.DESC: QueryOrder.ASC,
    QueryOrder.DESC_NULLS_FIRST: QueryOrder.ASC_NULLS_LAST,
    QueryOrder.DESC_NULLS_LAST: QueryOrder.ASC_NULLS_FIRST,
}


def parse_order(value: Any, path: str | None = None) -> QueryOrder:
    """Parse an order tag.

    Raises:
        InvalidSortSpec: If ``value`` is not a known tag
    """
    if isinstance(value, QueryOrder):
        return value
    if isinstance(value, str):
        try:
            return QueryOrder(value)
        except ValueError:
            pass
    raise InvalidSortSpec(f"Unknown order tag {value!r}", path=path)


@dataclass(slots=True, frozen=True)
class SortKey:
    """One ordering clause.

    Attributes:
        path: Dot-path of the field, possibly through relations
        order: Direction and null placement
    """

    path: str
    order: QueryOrder

    @property
    def direction(self) -> SortDirection:
        return self.order.direction

    @property
    def null_policy(self) -> NullPolicy:
        return self.order.null_policy

    def reversed(self) -> SortKey:
        return SortKey(self.path, self.order.reversed())


@dataclass(slots=True, frozen=True)
class SortSpec:
    """Normalized, non-empty sequence of sort keys.

    Example:
        spec = SortSpec.from_order_by([{"name": "ASC"}, {"id": "ASC"}])
        [key.path for key in spec]  # ["name", "id"]
        spec.reversed().to_order_by()  # {"name": "DESC", "id": "DESC"}
    """

    keys: tuple[SortKey, ...]

    def __post_init__(self) -> None:
        if not self.keys:
            raise EmptySortSpec
        seen: set[str] = set()
        for key in self.keys:
            if key.path in seen:
                raise InvalidSortSpec(f"Sort key {key.path!r} is declared twice", path=key.path)
            seen.add(key.path)

    @classmethod
    def from_order_by(cls, order_by: OrderBy | SortSpec) -> SortSpec:
        """Normalize an ordering declaration.

        Raises:
            EmptySortSpec: If the declaration holds no keys
            InvalidSortSpec: If the declaration is malformed
        """
        if isinstance(order_by, SortSpec):
            return order_by
        return cls(tuple(flatten_order_by(order_by)))

    def __iter__(self) -> Iterator[SortKey]:
        return iter(self.keys)

    def __len__(self) -> int:
        return len(self.keys)

    @property
    def paths(self) -> list[str]:
        return [key.path for key in self.keys]

    def reversed(self) -> SortSpec:
        return SortSpec(tuple(key.reversed() for key in self.keys))

    def to_order_by(self) -> dict[str, Any] | list[dict[str, Any]]:
        """Rebuild a nested ordering declaration.

        Consecutive keys share one mapping while the merged mapping still
        flattens to the same key sequence. A key that would be pulled in
        front of an earlier one opens a new clause, in which case a list of
        clauses is returned.
        """
        clauses: list[dict[str, Any]] = []
        for key in self.keys:
            if clauses:
                candidate = copy.deepcopy(clauses[-1])
                set_path(candidate, key.path, key.order)
                if flatten_order_by(candidate) == [*flatten_order_by(clauses[-1]), key]:
                    clauses[-1] = candidate
                    continue
            clauses.append(set_path({}, key.path, key.order))
        return clauses[0] if len(clauses) == 1 else clauses


def flatten_order_by(order_by: OrderBy) -> list[SortKey]:
    """Depth-first walk of an ordering declaration into sort keys."""
    if isinstance(order_by, Mapping):
        clauses: Sequence[Any] = [order_by]
    elif isinstance(order_by, Sequence) and not isinstance(order_by, (str, bytes)):
        clauses = order_by
    else:
        raise InvalidSortSpec(
            f"order_by must be a mapping or a list of mappings, got {type(order_by).__name__}"
        )

    keys: list[SortKey] = []
    for clause in clauses:
        if not isinstance(clause, Mapping):
            raise InvalidSortSpec(
                f"order_by clause must be a mapping, got {type(clause).__name__}"
            )
        _walk_clause(clause, (), keys)
    return keys


def _walk_clause(clause: Mapping[str, Any], prefix: tuple[str, ...], keys: list[SortKey]) -> None:
    for field, value in clause.items():
        segments = (*prefix, str(field))
        if isinstance(value, Mapping):
            _walk_clause(value, segments, keys)
        else:
            path = join_path(*segments)
            keys.append(SortKey(path, parse_order(value, path)))


def reverse_order_by(order_by: OrderBy) -> dict[str, Any] | list[dict[str, Any]]:
    """Reverse every key of an ordering declaration."""
    return SortSpec.from_order_by(order_by).reversed().to_order_by()


__all__ = [
    "NullPolicy",
    "OrderBy",
    "QueryOrder",
    "SortDirection",
    "SortKey",
    "SortSpec",
    "flatten_order_by",
    "parse_order",
    "reverse_order_by",
]
