"""Pagination argument and response schemas.

Pages follow the GraphQL Connection pattern (Relay specification): edges
carry a node and its cursor, PageInfo carries navigation metadata and the
connection carries the total count of the unpaginated filter.

A Connection can be projected to a simpler REST-style CursorPage. Both use
the same cursors.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class PaginationArgs(BaseModel):
    """Relay-style pagination arguments.

    None and absent are the same. ``order_by`` is only read on the first
    page; cursors carry their own ordering.

    Attributes:
        first: Page size when walking forward (or on the first page)
        after: Cursor to walk forward from
        last: Page size when walking backward
        before: Cursor to walk backward from
        order_by: Ordering declaration for the first page
    """

    first: int | None = Field(default=None, description="Items after the cursor")
    after: str | None = Field(default=None, description="Forward cursor")
    last: int | None = Field(default=None, description="Items before the cursor")
    before: str | None = Field(default=None, description="Backward cursor")
    order_by: dict[str, Any] | list[dict[str, Any]] | None = Field(
        default=None,
        alias="orderBy",
        description="Ordering declaration used without a cursor",
    )

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")


class PageInfo(BaseModel):
    """Pagination metadata following GraphQL Relay specification.

    Attributes:
        has_previous_page: Whether there are items before the current page
        has_next_page: Whether there are items after the current page
        start_cursor: Cursor of the first item in this page
        end_cursor: Cursor of the last item in this page
    """

    has_previous_page: bool = Field(
        description="Whether previous items exist"
    )
    has_next_page: bool = Field(
        description="Whether more items exist"
    )
    start_cursor: str | None = Field(
        default=None,
        description="Cursor of the first item",
    )
    end_cursor: str | None = Field(
        default=None,
        description="Cursor of the last item",
    )


class Edge(BaseModel, Generic[T]):
    """Edge wrapper for paginated items (Relay pattern).

    Attributes:
        node: The actual data item
        cursor: Cursor for this specific item
    """

    node: T = Field(description="The data item")
    cursor: str = Field(description="Cursor for this item")


class Connection(BaseModel, Generic[T]):
    """One page of keyset-paginated rows.

    Client navigation:
        # First page
        paginate(store, "users", {"first": 10, "order_by": {"id": "ASC"}})

        # Next page (using end_cursor from previous page)
        paginate(store, "users", {"first": 10, "after": page.page_info.end_cursor})

        # Previous page (using start_cursor)
        paginate(store, "users", {"last": 10, "before": page.page_info.start_cursor})

    Attributes:
        total_count: Rows matching the base filter, ignoring pagination
        edges: List of Edge objects containing nodes and cursors
        page_info: Navigation metadata
    """

    total_count: int = Field(
        ge=0,
        description="Total count of the unpaginated filter",
    )
    edges: list[Edge[T]] = Field(
        default_factory=list,
        description="List of edges (items with cursors)",
    )
    page_info: PageInfo = Field(
        description="Pagination metadata",
    )

    @property
    def nodes(self) -> list[T]:
        """Get just the nodes without edge wrappers."""
        return [edge.node for edge in self.edges]

    def to_cursor_page(self) -> CursorPage[T]:
        """Convert to simple REST-style pagination.

        Returns:
            CursorPage with items and cursors
        """
        return CursorPage(
            items=self.nodes,
            next_cursor=self.page_info.end_cursor if self.page_info.has_next_page else None,
            prev_cursor=self.page_info.start_cursor if self.page_info.has_previous_page else None,
            has_more=self.page_info.has_next_page,
            total_count=self.total_count,
        )


class CursorPage(BaseModel, Generic[T]):
    """Simple REST-style cursor pagination response.

    Attributes:
        items: List of data items
        next_cursor: Cursor for the next page (None if no more)
        prev_cursor: Cursor for the previous page (None if at start)
        has_more: Whether more items exist after this page
        total_count: Total count of the unpaginated filter
    """

    items: list[T] = Field(
        default_factory=list,
        description="List of items",
    )
    next_cursor: str | None = Field(
        default=None,
        description="Cursor to fetch next page",
    )
    prev_cursor: str | None = Field(
        default=None,
        description="Cursor to fetch previous page",
    )
    has_more: bool = Field(
        default=False,
        description="Whether more items exist",
    )
    total_count: int | None = Field(
        default=None,
        description="Total count (optional)",
    )


__all__ = [
    "Connection",
    "CursorPage",
    "Edge",
    "PageInfo",
    "PaginationArgs",
]
