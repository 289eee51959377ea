"""Record store contract consumed by the paginator.

The paginator never talks to a database directly. It builds filter and
order documents and hands them to a store that knows how to evaluate them:

    filter: {"$and": [{"age": {"$gte": 18}}, {"$or": [...]}]}
    order:  {"name": "ASC", "parent1": {"age": "DESC NULLS LAST"}}

Reference implementations live in ``keyset_pagination.infra``:
- InMemoryStore: plain dict rows, used for fixtures and unit tests
- SQLAlchemyStore: compiles documents to SQLAlchemy select statements
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol, TypeVar, runtime_checkable

from keyset_pagination.core.pagination.ordering import OrderBy

# Find options owned by the paginator; callers may not pass them through.
RESERVED_FIND_OPTIONS = frozenset({"limit", "offset", "order_by", "orderBy"})

T = TypeVar("T")


@runtime_checkable
class RecordStore(Protocol[T]):
    """Capability contract of a paginatable record source."""

    async def count(self, entity: Any, where: Mapping[str, Any]) -> int:
        """Count rows of ``entity`` matching ``where``."""
        ...

    async def find(
        self,
        entity: Any,
        where: Mapping[str, Any],
        *,
        order_by: OrderBy,
        limit: int | None = None,
        **options: Any,
    ) -> Sequence[T]:
        """Return rows of ``entity`` matching ``where``.

        Args:
            entity: Store-specific entity reference (collection name, model class)
            where: Filter document
            order_by: Ordering declaration, honored exactly
            limit: Maximum number of rows, None for no limit
            **options: Store-specific options passed through verbatim
                (for example ``populate`` for related rows)
        """
        ...


__all__ = ["RESERVED_FIND_OPTIONS", "RecordStore"]
