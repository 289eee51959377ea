"""Cursor encoding, decoding and boundary algebra.

A cursor records, for one reference row, the value of every sort key
together with the key's path and order tag. Because paths and tags travel
inside the token, resuming pagination never requires the caller to pass
the ordering again.

The token format is:
1. JSON array of ``[path, tag, value]`` triples, in sort key order
2. Base64 encoded (standard alphabet, or URL-safe when configured)

Example cursor payload:
    [["name","ASC","Joe"],["age","DESC NULLS FIRST",null],["id","ASC",2]]

Encoded: W1sibmFtZSIsIkFTQyIsIkpvZSJdLFsiYWdlIiwiREVTQyBOVUxMUyBGSVJTVCIsbnVsbF0sWyJpZCIsIkFTQyIsMl1d
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any

from keyset_pagination.core.exceptions import InvalidCursor
from keyset_pagination.core.pagination.filters import TraversalDirection, build_where_or
from keyset_pagination.core.pagination.ordering import (
    OrderBy,
    QueryOrder,
    SortKey,
    SortSpec,
)
from keyset_pagination.core.pagination.paths import get_path
from keyset_pagination.core.pagination.projection import to_json_value, to_plain

_URLSAFE_ALTCHARS = b"-_"


@dataclass(slots=True, frozen=True)
class CursorEntry:
    """One sort key of a cursor.

    Attributes:
        path: Dot-path of the field
        order: Order tag of the key
        value: Reference row's JSON-compatible value (None for null/absent)
    """

    path: str
    order: QueryOrder
    value: Any


@dataclass(slots=True, frozen=True)
class Cursor:
    """Immutable position in a keyset-ordered result set.

    Usage:
        # Encoding
        cursor = Cursor.from_row(user, [{"name": "ASC"}, {"id": "ASC"}])
        token = cursor.to_token()

        # Decoding and seeking past the row
        cursor = Cursor.from_token(token)
        where_or = cursor.where_or(direction="forward")
        order_by = cursor.order_by(direction="forward")
    """

    entries: tuple[CursorEntry, ...]

    @classmethod
    def from_row(cls, row: Any, order_by: OrderBy | SortSpec) -> Cursor:
        """Create a cursor from a row.

        Args:
            row: Record to take the sort key values from
            order_by: Ordering declaration or normalized SortSpec

        Returns:
            Cursor with one entry per sort key

        Raises:
            EmptySortSpec: If ``order_by`` holds no keys
        """
        spec = SortSpec.from_order_by(order_by)
        data = to_plain(row)
        return cls(
            tuple(
                CursorEntry(key.path, key.order, to_json_value(get_path(data, key.path)))
                for key in spec
            )
        )

    @classmethod
    def from_token(cls, token: str, *, urlsafe: bool = False) -> Cursor:
        """Decode a cursor token.

        Args:
            token: Base64 token produced by ``to_token``
            urlsafe: Whether the token uses the URL-safe alphabet

        Returns:
            Decoded cursor

        Raises:
            InvalidCursor: If the token is malformed in any way
        """
        if not isinstance(token, str) or not token:
            raise InvalidCursor("token must be a non-empty string")
        try:
            raw = base64.b64decode(
                token,
                altchars=_URLSAFE_ALTCHARS if urlsafe else None,
                validate=True,
            )
        except (binascii.Error, ValueError) as e:
            raise InvalidCursor("token is not valid base64") from e
        try:
            payload = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            raise InvalidCursor("token does not contain JSON") from e
        return cls(_parse_entries(payload))

    def to_json(self) -> str:
        """Canonical JSON text of the cursor state."""
        state = [[entry.path, entry.order.value, entry.value] for entry in self.entries]
        return json.dumps(state, separators=(",", ":"), ensure_ascii=False)

    def to_token(self, *, urlsafe: bool = False) -> str:
        """Encode the cursor to an opaque token."""
        raw = self.to_json().encode("utf-8")
        if urlsafe:
            return base64.urlsafe_b64encode(raw).decode("ascii")
        return base64.b64encode(raw).decode("ascii")

    @property
    def sort_spec(self) -> SortSpec:
        return SortSpec(tuple(SortKey(entry.path, entry.order) for entry in self.entries))

    @property
    def values(self) -> dict[str, Any]:
        """Mapping of path to reference value."""
        return {entry.path: entry.value for entry in self.entries}

    def order_by(
        self,
        *,
        direction: TraversalDirection | str = TraversalDirection.FORWARD,
    ) -> dict[str, Any] | list[dict[str, Any]]:
        """Ordering declaration for walking from this cursor.

        Forward returns the recorded order; backward reverses every key so
        the store returns rows in exactly the opposite physical order.
        """
        spec = self.sort_spec
        if TraversalDirection(direction) is TraversalDirection.BACKWARD:
            spec = spec.reversed()
        return spec.to_order_by()

    def where_or(
        self,
        *,
        direction: TraversalDirection | str = TraversalDirection.FORWARD,
    ) -> list[dict[str, Any]]:
        """Boundary disjunction selecting the rows beyond this cursor."""
        return build_where_or(self.entries, TraversalDirection(direction))


def _parse_entries(payload: Any) -> tuple[CursorEntry, ...]:
    if not isinstance(payload, list) or not payload:
        raise InvalidCursor("payload must be a non-empty list")

    entries: list[CursorEntry] = []
    for position, item in enumerate(payload):
        if not isinstance(item, list) or len(item) != 3:
            raise InvalidCursor(f"entry {position} must be a [path, order, value] triple")
        path, tag, value = item
        if not isinstance(path, str) or not path:
            raise InvalidCursor(f"entry {position} has an invalid path")
        if any(entry.path == path for entry in entries):
            raise InvalidCursor(f"entry {position} repeats path {path!r}")
        if not isinstance(tag, str):
            raise InvalidCursor(f"entry {position} has an invalid order tag")
        try:
            order = QueryOrder(tag)
        except ValueError as e:
            raise InvalidCursor(f"entry {position} has unknown order tag {tag!r}") from e
        entries.append(CursorEntry(path, order, value))
    return tuple(entries)


__all__ = ["Cursor", "CursorEntry"]
