"""Cursor-based (keyset) pagination over multi-key, nullable-aware orderings.

This package provides keyset pagination that is:
- Stable: rows don't shift when data changes between pages
- Performant: bounded seeks instead of OFFSET scans
- General: any number of keys, each ASC/DESC with its own null placement,
  addressed through relations with dot-paths

Usage:
    from keyset_pagination.core.pagination import paginate

    page = await paginate(
        store,
        User,
        {"first": 50, "order_by": [{"name": "ASC"}, {"age": "DESC NULLS FIRST"}, {"id": "ASC"}]},
    )
    next_page = await paginate(store, User, {"first": 50, "after": page.page_info.end_cursor})

The cursor encodes the sort key values, paths and order tags needed to seek
to the next page. Cursors are opaque base64 strings that clients pass back
unchanged.
"""

from keyset_pagination.core.pagination.cursor import Cursor, CursorEntry
from keyset_pagination.core.pagination.filters import (
    BOUNDARY_TABLE,
    NullHandling,
    TraversalDirection,
    build_where_or,
)
from keyset_pagination.core.pagination.ordering import (
    NullPolicy,
    OrderBy,
    QueryOrder,
    SortDirection,
    SortKey,
    SortSpec,
    reverse_order_by,
)
from keyset_pagination.core.pagination.paginator import (
    CursorPaginator,
    PaginationMode,
    paginate,
)
from keyset_pagination.core.pagination.paths import get_path, set_path
from keyset_pagination.core.pagination.projection import to_json_value, to_plain
from keyset_pagination.core.pagination.schemas import (
    Connection,
    CursorPage,
    Edge,
    PageInfo,
    PaginationArgs,
)
from keyset_pagination.core.pagination.store import RecordStore

__all__ = [
    "BOUNDARY_TABLE",
    # GraphQL-style schemas
    "Connection",
    # Cursor algebra
    "Cursor",
    "CursorEntry",
    # REST-style schema
    "CursorPage",
    # Paginator
    "CursorPaginator",
    "Edge",
    "NullHandling",
    "NullPolicy",
    "OrderBy",
    "PageInfo",
    "PaginationArgs",
    "PaginationMode",
    "QueryOrder",
    "RecordStore",
    "SortDirection",
    "SortKey",
    "SortSpec",
    "TraversalDirection",
    "build_where_or",
    "get_path",
    "paginate",
    "reverse_order_by",
    "set_path",
    "to_json_value",
    "to_plain",
]
