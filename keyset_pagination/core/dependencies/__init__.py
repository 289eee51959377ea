"""FastAPI dependencies for route handlers."""

from .pagination import CursorPagination, get_cursor_pagination

__all__ = ["CursorPagination", "get_cursor_pagination"]
