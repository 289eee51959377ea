"""Cursor pagination dependency for FastAPI routes.

Reads the Relay-style ``first``/``after``/``last``/``before`` query
parameters into ``PaginationArgs``. The ordering of the first page is a
route concern, so routes add ``order_by`` themselves.

Usage:
    from keyset_pagination.core.dependencies.pagination import CursorPagination

    @router.get("/users")
    async def list_users(pagination: CursorPagination) -> CursorPage[UserOut]:
        args = pagination.model_copy(update={"order_by": [{"name": "ASC"}, {"id": "ASC"}]})
        page = await paginate(store, User, args)
        return page.to_cursor_page()
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Query

from keyset_pagination.core.pagination.schemas import PaginationArgs
from keyset_pagination.core.settings import get_pagination_settings


def get_cursor_pagination(
    first: Annotated[
        int | None,
        Query(ge=0, description="Number of items after the cursor"),
    ] = None,
    after: Annotated[
        str | None,
        Query(description="Cursor to continue forward from"),
    ] = None,
    last: Annotated[
        int | None,
        Query(ge=0, description="Number of items before the cursor"),
    ] = None,
    before: Annotated[
        str | None,
        Query(description="Cursor to continue backward from"),
    ] = None,
) -> PaginationArgs:
    """Get cursor pagination arguments.

    Uses the settings default when the client omits the page size and
    enforces the maximum from settings.

    Args:
        first: Items per page walking forward.
        after: Forward cursor.
        last: Items per page walking backward.
        before: Backward cursor.

    Returns:
        PaginationArgs without ``order_by``.
    """
    settings = get_pagination_settings()

    if first is None and last is None:
        if before is not None:
            last = settings.default_page_size
        else:
            first = settings.default_page_size

    # Enforce max page size from settings
    if settings.max_page_size is not None:
        if first is not None:
            first = min(first, settings.max_page_size)
        if last is not None:
            last = min(last, settings.max_page_size)

    return PaginationArgs(first=first, after=after, last=last, before=before)


# Type alias for cleaner route signatures
CursorPagination = Annotated[PaginationArgs, Depends(get_cursor_pagination)]
