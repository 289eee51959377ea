"""Cursor-paginated fetches against a record store.

Three traversal modes, selected from the arguments:

- first page: no cursor, ``first`` rows in the caller's ``order_by``
- forward: ``first`` rows after the ``after`` cursor
- backward: ``last`` rows before the ``before`` cursor

Forward and backward fetch one row more than requested. When that sentinel
row comes back there is another page in the walk direction; the sentinel is
dropped before edges are built. The row count of the base filter is
fetched concurrently with the page.

Example:
    page = await paginate(
        store,
        User,
        {"first": 10, "order_by": {"name": "ASC", "id": "ASC"}},
        {"age": {"$gt": 20}},
        {"populate": ["parent1"]},
    )

    if page.page_info.has_next_page:
        next_page = await paginate(
            store,
            User,
            {"first": 10, "after": page.page_info.end_cursor},
            {"age": {"$gt": 20}},
            {"populate": ["parent1"]},
        )
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from enum import Enum
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from pydantic import ValidationError

from keyset_pagination.core.exceptions import InvalidPaginationArgs
from keyset_pagination.core.pagination.cursor import Cursor
from keyset_pagination.core.pagination.filters import TraversalDirection, merge_where
from keyset_pagination.core.pagination.ordering import SortSpec
from keyset_pagination.core.pagination.schemas import (
    Connection,
    Edge,
    PageInfo,
    PaginationArgs,
)
from keyset_pagination.core.pagination.store import RESERVED_FIND_OPTIONS
from keyset_pagination.core.settings import get_pagination_settings
from keyset_pagination.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from keyset_pagination.core.pagination.ordering import OrderBy
    from keyset_pagination.core.pagination.store import RecordStore
    from keyset_pagination.core.settings import PaginationSettings

T = TypeVar("T")


class PaginationMode(str, Enum):
    """Traversal mode of one pagination call."""

    FIRST_PAGE = "first_page"
    FORWARD = "forward"
    BACKWARD = "backward"


class CursorPaginator(Generic[T]):
    """Keyset paginator bound to a record store.

    Provides:
        - paginate(entity, pagination, where, options) -> Connection[T]
        - resolve_mode(args, options) -> PaginationMode

    The paginator holds no state between calls; each call is a function of
    its arguments and of the store contents at call time.

    Example:
        paginator = CursorPaginator(SQLAlchemyStore(session_factory))
        page = await paginator.paginate(User, {"first": 2, "order_by": {"id": "ASC"}})
    """

    __slots__ = ("store", "settings", "_lazy")

    def __init__(
        self,
        store: RecordStore[T],
        settings: PaginationSettings | None = None,
    ) -> None:
        """Initialize paginator.

        Args:
            store: Record store that evaluates filters and orderings
            settings: Pagination settings (defaults to cached settings)
        """
        self.store = store
        self.settings = settings or get_pagination_settings()
        # Lazy logger for DEBUG (zero overhead when DEBUG disabled)
        self._lazy = get_lazy_logger("pagination.paginator")

    async def paginate(
        self,
        entity: Any,
        pagination: PaginationArgs | Mapping[str, Any],
        where: Mapping[str, Any] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> Connection[T]:
        """Fetch one page.

        Args:
            entity: Store entity reference
            pagination: first/after/last/before/order_by arguments
            where: Base filter, ANDed with the cursor boundary
            options: Store find options, passed through verbatim
                (``limit``, ``offset`` and ``order_by`` are rejected)

        Returns:
            Connection with total count, edges and page info

        Raises:
            InvalidPaginationArgs: If the arguments select no single mode
            EmptySortSpec: If the first page is requested with an empty order_by
            InvalidCursor: If ``after``/``before`` cannot be decoded
        """
        args = self._coerce_args(pagination)
        base_where = dict(where or {})
        find_options = dict(options or {})
        mode = self.resolve_mode(args, find_options)

        match mode:
            case PaginationMode.FIRST_PAGE:
                return await self._first_page(entity, args, base_where, find_options)
            case PaginationMode.FORWARD:
                return await self._forward(
                    entity, args.after, args.first, base_where, find_options  # type: ignore[arg-type]
                )
            case PaginationMode.BACKWARD:
                return await self._backward(
                    entity, args.before, args.last, base_where, find_options  # type: ignore[arg-type]
                )

    def resolve_mode(
        self,
        args: PaginationArgs,
        options: Mapping[str, Any] | None = None,
    ) -> PaginationMode:
        """Validate arguments and select the traversal mode.

        Raises:
            InvalidPaginationArgs: On contradictory or out-of-range arguments
        """
        reserved = sorted(RESERVED_FIND_OPTIONS.intersection(options or {}))
        if reserved:
            raise InvalidPaginationArgs(
                f"Options {', '.join(reserved)} are managed by the paginator",
                argument=reserved[0],
            )
        if args.after is not None and args.before is not None:
            raise InvalidPaginationArgs("Cannot use both 'after' and 'before' at the same time")
        if args.first is not None and args.last is not None:
            raise InvalidPaginationArgs("Cannot use both 'first' and 'last' at the same time")

        for name, size in (("first", args.first), ("last", args.last)):
            if size is None:
                continue
            if size < 0:
                raise InvalidPaginationArgs(
                    f"'{name}' must be greater than or equal to 0", argument=name
                )
            max_page_size = self.settings.max_page_size
            if max_page_size is not None and size > max_page_size:
                raise InvalidPaginationArgs(
                    f"'{name}' must be less than or equal to {max_page_size}", argument=name
                )

        if args.after is not None:
            if args.first is None:
                raise InvalidPaginationArgs("'after' requires 'first'", argument="first")
            return PaginationMode.FORWARD
        if args.before is not None:
            if args.last is None:
                raise InvalidPaginationArgs("'before' requires 'last'", argument="last")
            return PaginationMode.BACKWARD
        if args.last is not None:
            raise InvalidPaginationArgs("'last' requires a 'before' cursor", argument="before")
        if args.order_by is None:
            raise InvalidPaginationArgs(
                "'order_by' is required when no cursor is given", argument="order_by"
            )
        return PaginationMode.FIRST_PAGE

    async def _first_page(
        self,
        entity: Any,
        args: PaginationArgs,
        where: dict[str, Any],
        options: dict[str, Any],
    ) -> Connection[T]:
        spec = SortSpec.from_order_by(args.order_by or {})

        total_count, rows = await asyncio.gather(
            self.store.count(entity, where),
            self.store.find(
                entity,
                where,
                order_by=spec.to_order_by(),
                limit=args.first,
                **options,
            ),
        )

        # No over-fetch here: the count of the same filter decides
        has_next_page = args.first is not None and total_count > args.first
        return self._connection(
            PaginationMode.FIRST_PAGE,
            total_count,
            self._edges(rows, spec),
            has_next_page=has_next_page,
            has_previous_page=False,
        )

    async def _forward(
        self,
        entity: Any,
        after: str,
        first: int,
        where: dict[str, Any],
        options: dict[str, Any],
    ) -> Connection[T]:
        cursor = Cursor.from_token(after, urlsafe=self.settings.urlsafe_tokens)
        limit = first + 1  # Fetch one more to know if there is a next page

        rows, total_count = await self._fetch(
            entity, cursor, where, options, limit, TraversalDirection.FORWARD
        )

        has_next_page = len(rows) == limit
        if has_next_page:
            rows.pop()

        return self._connection(
            PaginationMode.FORWARD,
            total_count,
            self._edges(rows, cursor.sort_spec),
            has_next_page=has_next_page,
            has_previous_page=True,
        )

    async def _backward(
        self,
        entity: Any,
        before: str,
        last: int,
        where: dict[str, Any],
        options: dict[str, Any],
    ) -> Connection[T]:
        cursor = Cursor.from_token(before, urlsafe=self.settings.urlsafe_tokens)
        limit = last + 1  # Fetch one more to know if there is a previous page

        rows, total_count = await self._fetch(
            entity, cursor, where, options, limit, TraversalDirection.BACKWARD
        )

        has_previous_page = len(rows) == limit
        if has_previous_page:
            rows.pop()
        rows.reverse()

        # Edge cursors keep the forward order so they resume with `after`
        return self._connection(
            PaginationMode.BACKWARD,
            total_count,
            self._edges(rows, cursor.sort_spec),
            has_next_page=True,
            has_previous_page=has_previous_page,
        )

    async def _fetch(
        self,
        entity: Any,
        cursor: Cursor,
        where: dict[str, Any],
        options: dict[str, Any],
        limit: int,
        direction: TraversalDirection,
    ) -> tuple[list[T], int]:
        order_by: OrderBy = cursor.order_by(direction=direction)
        paginated_where = merge_where(where, cursor.where_or(direction=direction))

        total_count, rows = await asyncio.gather(
            self.store.count(entity, where),
            self.store.find(
                entity,
                paginated_where,
                order_by=order_by,
                limit=limit,
                **options,
            ),
        )
        return list(rows), total_count

    def _edges(self, rows: Sequence[T], spec: SortSpec) -> list[Edge[T]]:
        urlsafe = self.settings.urlsafe_tokens
        return [
            Edge(node=row, cursor=Cursor.from_row(row, spec).to_token(urlsafe=urlsafe))
            for row in rows
        ]

    def _connection(
        self,
        mode: PaginationMode,
        total_count: int,
        edges: list[Edge[T]],
        *,
        has_next_page: bool,
        has_previous_page: bool,
    ) -> Connection[T]:
        page_info = PageInfo(
            has_previous_page=has_previous_page,
            has_next_page=has_next_page,
            start_cursor=edges[0].cursor if edges else None,
            end_cursor=edges[-1].cursor if edges else None,
        )

        self._lazy.debug(
            lambda: f"pagination.paginate: {mode.value} -> {len(edges)} of {total_count} items, "
            f"has_next={has_next_page}, has_prev={has_previous_page}"
        )

        return Connection(total_count=total_count, edges=edges, page_info=page_info)

    @staticmethod
    def _coerce_args(pagination: PaginationArgs | Mapping[str, Any]) -> PaginationArgs:
        if isinstance(pagination, PaginationArgs):
            return pagination
        try:
            return PaginationArgs.model_validate(dict(pagination))
        except ValidationError as e:
            raise InvalidPaginationArgs(f"Malformed pagination arguments: {e}") from e


async def paginate(
    store: RecordStore[T],
    entity: Any,
    pagination: PaginationArgs | Mapping[str, Any],
    where: Mapping[str, Any] | None = None,
    options: Mapping[str, Any] | None = None,
    *,
    settings: PaginationSettings | None = None,
) -> Connection[T]:
    """Cursor-based pagination with support for multiple order by keys.

    To keep pagination consistent when rows share values on the ordered
    keys, finish ``order_by`` with a unique key (usually the primary key):

        await paginate(store, User, {
            "first": 10,
            "order_by": {"first_name": "DESC", "last_name": "DESC", "id": "ASC"},
        })

    Args:
        store: Record store
        entity: Store entity reference
        pagination: first/after/last/before/order_by arguments
        where: Base filter, ANDed with every generated filter
        options: Store find options without limit/offset/order_by
        settings: Pagination settings override

    Returns:
        Connection with total count, edges and page info
    """
    paginator: CursorPaginator[T] = CursorPaginator(store, settings)
    return await paginator.paginate(entity, pagination, where, options)


__all__ = ["CursorPaginator", "PaginationMode", "paginate"]
