"""Boundary predicates for keyset pagination.

The seek method replaces OFFSET with a WHERE clause that selects exactly the
rows beyond a reference row. For keys (a, b, c) with reference values
(v1, v2, v3) the predicate is the disjunction:

    (a op v1) OR
    (a = v1 AND b op v2) OR
    (a = v1 AND b = v2 AND c op v3)

where each ``op`` is ``$gt`` or ``$lt`` depending on the key's direction and
on whether we walk forward or backward. Nullable keys add one twist: nulls
sit at one end of the key's order, so a clause either admits nulls (they are
still ahead of us), excludes them (they are behind us) or, when the
reference value is itself null, may disappear entirely.

Predicates are filter documents:

    {"name": {"$gt": "Joe"}}
    {"name": "Joe", "age": {"$lt": 20, "$ne": None}}
    {"$or": [{"age": {"$gt": 20}}, {"age": None}]}
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from enum import Enum
from typing import TYPE_CHECKING, Any, NamedTuple

from keyset_pagination.core.pagination.ordering import QueryOrder
from keyset_pagination.core.pagination.paths import set_path

if TYPE_CHECKING:
    from keyset_pagination.core.pagination.cursor import CursorEntry

GT = "$gt"
LT = "$lt"
NE = "$ne"
AND = "$and"
OR = "$or"


class TraversalDirection(str, Enum):
    """Which way a page walks relative to the declared order."""

    FORWARD = "forward"
    BACKWARD = "backward"


class NullHandling(Enum):
    """What a boundary clause does with null values of its key."""

    IGNORE = "ignore"  # key has no null policy
    EXCLUDE = "exclude"  # nulls are behind the walk
    ADMIT = "admit"  # nulls are ahead of the walk


class Boundary(NamedTuple):
    operator: str
    nulls: NullHandling


BOUNDARY_TABLE: dict[tuple[TraversalDirection, QueryOrder], Boundary] = {
    (TraversalDirection.FORWARD, QueryOrder.ASC): Boundary(GT, NullHandling.IGNORE),
    (TraversalDirection.FORWARD, QueryOrder.ASC_NULLS_FIRST): Boundary(GT, NullHandling.EXCLUDE),
    (TraversalDirection.FORWARD, QueryOrder.ASC_NULLS_LAST): Boundary(GT, NullHandling.ADMIT),
    (TraversalDirection.FORWARD, QueryOrder.DESC): Boundary(LT, NullHandling.IGNORE),
    (TraversalDirection.FORWARD, QueryOrder.DESC_NULLS_FIRST): Boundary(LT, NullHandling.EXCLUDE),
    (TraversalDirection.FORWARD, QueryOrder.DESC_NULLS_LAST): Boundary(LT, NullHandling.ADMIT),
    (TraversalDirection.BACKWARD, QueryOrder.ASC): Boundary(LT, NullHandling.IGNORE),
    (TraversalDirection.BACKWARD, QueryOrder.ASC_NULLS_FIRST): Boundary(LT, NullHandling.ADMIT),
    (TraversalDirection.BACKWARD, QueryOrder.ASC_NULLS_LAST): Boundary(LT, NullHandling.EXCLUDE),
    (TraversalDirection.BACKWARD, QueryOrder.DESC): Boundary(GT, NullHandling.IGNORE),
    (TraversalDirection.BACKWARD, QueryOrder.DESC_NULLS_FIRST): Boundary(GT, NullHandling.ADMIT),
    (TraversalDirection.BACKWARD, QueryOrder.DESC_NULLS_LAST): Boundary(GT, NullHandling.EXCLUDE),
}


def boundary_condition(
    path: str,
    order: QueryOrder,
    value: Any,
    direction: TraversalDirection,
) -> dict[str, Any] | None:
    """Strict inequality on one key, oriented for the walk.

    Args:
        path: Dot-path of the key
        order: The key's order tag
        value: Reference row's value for the key (None for null)
        direction: Walk direction

    Returns:
        Filter document, or None when no row can lie beyond a null
        reference value on this key alone
    """
    boundary = BOUNDARY_TABLE[(direction, order)]
    operator = boundary.operator

    if value is None:
        match boundary.nulls:
            case NullHandling.IGNORE:
                return set_path({}, path, {operator: None})
            case NullHandling.EXCLUDE:
                return set_path({}, path, {NE: None})
            case NullHandling.ADMIT:
                return None

    match boundary.nulls:
        case NullHandling.IGNORE:
            return set_path({}, path, {operator: value})
        case NullHandling.EXCLUDE:
            return set_path({}, path, {operator: value, NE: None})
        case NullHandling.ADMIT:
            return {OR: [set_path({}, path, {operator: value}), set_path({}, path, None)]}


def build_where_or(
    entries: Sequence[CursorEntry],
    direction: TraversalDirection,
) -> list[dict[str, Any]]:
    """Disjunction of clauses selecting the rows beyond a reference row.

    Clause ``i`` pins keys ``0..i-1`` to their reference values and applies
    the boundary condition to key ``i``. Clauses with no boundary are left
    out; an empty list matches no rows.
    """
    clauses: list[dict[str, Any]] = []
    for i, entry in enumerate(entries):
        clause = boundary_condition(entry.path, entry.order, entry.value, direction)
        if clause is None:
            continue
        for previous in entries[:i]:
            set_path(clause, previous.path, previous.value)
        clauses.append(clause)
    return clauses


def merge_where(where: Mapping[str, Any], where_or: list[dict[str, Any]]) -> dict[str, Any]:
    """AND a base filter with a boundary disjunction."""
    return {AND: [dict(where), {OR: where_or}]}


__all__ = [
    "BOUNDARY_TABLE",
    "Boundary",
    "NullHandling",
    "TraversalDirection",
    "boundary_condition",
    "build_where_or",
    "merge_where",
]
