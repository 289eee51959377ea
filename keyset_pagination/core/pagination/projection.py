"""Plain-data projection of rows and cursor values.

Cursors read sort keys out of a plain snapshot of a row, so a key that
crosses a relation (``parent1.age``) resolves to the related row's own
field regardless of whether the row is a dict, a Pydantic model, a
dataclass or a SQLAlchemy instance.

Cursor values are stored in JSON-compatible form so a token decodes back to
exactly the values it was built from.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import InstanceState

_SCALARS = (str, int, float, bool, datetime, date, time, UUID, Decimal, Enum, bytes)


def to_json_value(value: Any) -> Any:
    """Convert a value to its JSON-compatible form.

    Handles special types like datetime, UUID and Decimal; containers are
    converted recursively. Unknown objects fall back to ``str()``.
    """
    if value is None:
        return None
    if isinstance(value, Enum):
        return to_json_value(value.value)
    if isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, Mapping):
        return {str(k): to_json_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_json_value(v) for v in value]
    return str(value)


def to_plain(row: Any) -> dict[str, Any]:
    """Project a row to nested plain data.

    Only data that is already loaded is read; SQLAlchemy relationships that
    were not loaded are left out instead of triggering a lazy load.

    Raises:
        TypeError: If the row has no field structure to project
    """
    plain = _project(row, set())
    if not isinstance(plain, dict):
        raise TypeError(f"Cannot project {type(row).__name__} to plain data")
    return plain


def _project(value: Any, seen: set[int]) -> Any:
    if value is None or isinstance(value, _SCALARS):
        return value
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_project(item, seen) for item in value]
    if isinstance(value, Mapping):
        return {str(k): _project(v, seen) for k, v in value.items()}

    # Relations can point back at a row already being projected
    if id(value) in seen:
        return None
    seen = seen | {id(value)}

    if isinstance(value, BaseModel):
        return value.model_dump()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)

    state = sa_inspect(value, raiseerr=False)
    if isinstance(state, InstanceState):
        return _project_mapped(state, seen)

    if hasattr(value, "__dict__"):
        return {
            key: _project(item, seen)
            for key, item in vars(value).items()
            if not key.startswith("_")
        }
    return value


def _project_mapped(state: InstanceState[Any], seen: set[int]) -> dict[str, Any]:
    loaded = state.dict
    data: dict[str, Any] = {}
    for attr in state.mapper.column_attrs:
        if attr.key in loaded:
            data[attr.key] = loaded[attr.key]
    for relationship in state.mapper.relationships:
        if relationship.key in loaded:
            data[relationship.key] = _project(loaded[relationship.key], seen)
    return data


__all__ = ["to_json_value", "to_plain"]
