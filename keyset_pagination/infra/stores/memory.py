"""In-memory record store.

Evaluates the pagination filter and order documents over plain dict rows.
Comparison semantics follow SQL so pages match what a database returns:

- ``{"age": None}`` and ``{"age": {"$eq": None}}`` match null values
- ``$gt``/``$gte``/``$lt``/``$lte`` never match null, and never match
  anything when compared against null
- ``{"$ne": v}`` with a non-null ``v`` does not match null values
- keys without a null policy sort nulls as the smallest value
- JSON operands (cursor values) are compared in the stored value's type,
  so Decimal and datetime keys keep their numeric and temporal order
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from functools import cmp_to_key
from typing import Any
from uuid import UUID

from keyset_pagination.core.exceptions import UnsupportedFilterError
from keyset_pagination.core.pagination.ordering import (
    NullPolicy,
    OrderBy,
    QueryOrder,
    SortDirection,
    SortKey,
    SortSpec,
)
from keyset_pagination.core.pagination.paths import get_path

logger = logging.getLogger(__name__)

Row = dict[str, Any]


def _compare(operator: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def apply(value: Any, operand: Any) -> bool:
        if value is None or operand is None:
            return False
        return operator(value, operand)

    return apply


def _equals(value: Any, operand: Any) -> bool:
    return value is None if operand is None else value == operand


def _not_equals(value: Any, operand: Any) -> bool:
    if operand is None:
        return value is not None
    return value is not None and value != operand


def _in(value: Any, operand: Any) -> bool:
    return value is not None and value in operand


def _not_in(value: Any, operand: Any) -> bool:
    return value is not None and value not in operand


OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "$eq": _equals,
    "$ne": _not_equals,
    "$gt": _compare(lambda a, b: a > b),
    "$gte": _compare(lambda a, b: a >= b),
    "$lt": _compare(lambda a, b: a < b),
    "$lte": _compare(lambda a, b: a <= b),
    "$in": _in,
    "$nin": _not_in,
}


def _native(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _coerce(value: Any, operand: Any) -> Any:
    """Bring a filter operand to the type of the stored value.

    Cursor values travel as JSON, so datetimes, UUIDs and Decimals arrive as
    strings while rows hold the native objects.
    """
    operand = _native(operand)
    if isinstance(operand, (list, tuple, set, frozenset)):
        return [_coerce(value, item) for item in operand]
    if not isinstance(operand, str):
        return operand

    match value:
        case datetime():
            return datetime.fromisoformat(operand)
        case date():
            return date.fromisoformat(operand)
        case time():
            return time.fromisoformat(operand)
        case Decimal():
            return Decimal(operand)
        case UUID():
            return UUID(operand)
    return operand


def matches(row: Mapping[str, Any], where: Mapping[str, Any]) -> bool:
    """Whether a plain row satisfies a filter document."""
    return _match(row, where, None)


def _match(scope: Any, condition: Mapping[str, Any], value: Any) -> bool:
    """Evaluate ``condition`` inside ``scope``.

    ``scope`` is the mapping field keys are read from; ``value`` is the
    current field value operator keys compare against.
    """
    for key, operand in condition.items():
        if key == "$and":
            if not all(_match(scope, item, value) for item in operand):
                return False
        elif key == "$or":
            if not any(_match(scope, item, value) for item in operand):
                return False
        elif key == "$not":
            if _match(scope, operand, value):
                return False
        elif key.startswith("$"):
            operator = OPERATORS.get(key)
            if operator is None:
                raise UnsupportedFilterError(f"Unsupported operator {key}", operator=key)
            if not operator(value, _coerce(value, operand)):
                return False
        else:
            field_value = _native(scope.get(key)) if isinstance(scope, Mapping) else None
            if isinstance(operand, Mapping):
                if not _match(field_value, operand, field_value):
                    return False
            elif not _equals(field_value, _coerce(field_value, operand)):
                return False
    return True


def _compare_values(a: Any, b: Any, order: QueryOrder) -> int:
    if a is None or b is None:
        if a is None and b is None:
            return 0
        match order.null_policy:
            case NullPolicy.NULLS_FIRST:
                nulls_first = True
            case NullPolicy.NULLS_LAST:
                nulls_first = False
            case NullPolicy.NONE:
                nulls_first = order.direction is SortDirection.ASC
        if a is None:
            return -1 if nulls_first else 1
        return 1 if nulls_first else -1

    result = (a > b) - (a < b)
    return result if order.direction is SortDirection.ASC else -result


def sort_rows(rows: Iterable[Row], keys: Sequence[SortKey]) -> list[Row]:
    """Sort plain rows by sort keys; ties keep insertion order."""

    def compare(a: Row, b: Row) -> int:
        for key in keys:
            result = _compare_values(
                _native(get_path(a, key.path)), _native(get_path(b, key.path)), key.order
            )
            if result:
                return result
        return 0

    return sorted(rows, key=cmp_to_key(compare))


class InMemoryStore:
    """In-memory record store for development and testing.

    Rows are plain nested dicts grouped by entity name. Related rows are
    embedded (``{"id": 1, "parent1": {"id": 2, "age": 48}}``), so the
    ``populate`` option has nothing to do and is accepted for parity.

    Note: Not suitable for production - every query scans the collection.

    Example:
        store = InMemoryStore({"users": [{"id": 1, "name": "Joe"}]})
        rows = await store.find("users", {"name": "Joe"}, order_by={"id": "ASC"})
    """

    def __init__(self, collections: Mapping[str, Iterable[Mapping[str, Any]]] | None = None) -> None:
        """Initialize in-memory store.

        Args:
            collections: Initial rows keyed by entity name
        """
        self._collections: dict[str, list[Row]] = {}
        for entity, rows in (collections or {}).items():
            self.add(entity, *rows)

    def add(self, entity: str, *rows: Mapping[str, Any]) -> None:
        """Append rows to an entity collection (rows are copied)."""
        self._collections.setdefault(entity, []).extend(copy.deepcopy(dict(row)) for row in rows)

    def _rows(self, entity: str) -> list[Row]:
        return self._collections.get(entity, [])

    def _filter(self, entity: str, where: Mapping[str, Any]) -> list[Row]:
        return [row for row in self._rows(entity) if matches(row, where)]

    async def count(self, entity: str, where: Mapping[str, Any]) -> int:
        """Count rows of ``entity`` matching ``where``."""
        return len(self._filter(entity, where))

    async def find(
        self,
        entity: str,
        where: Mapping[str, Any],
        *,
        order_by: OrderBy,
        limit: int | None = None,
        populate: Sequence[str] | None = None,
        **options: Any,
    ) -> list[Row]:
        """Return copies of matching rows in ``order_by`` order."""
        if options:
            logger.debug("InMemoryStore ignores find options: %s", sorted(options))
        keys = SortSpec.from_order_by(order_by).keys
        rows = sort_rows(self._filter(entity, where), keys)
        if limit is not None:
            rows = rows[:limit]
        return copy.deepcopy(rows)


__all__ = ["OPERATORS", "InMemoryStore", "matches", "sort_rows"]
