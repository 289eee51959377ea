"""SQLAlchemy record store.

Compiles pagination filter and order documents into SQLAlchemy 2.x select
statements. Dot-paths that cross to-one relationships are resolved through
aliased LEFT OUTER JOINs, and every joined relationship is populated with
``contains_eager`` so cursors can read related keys from the returned rows.

How it works:
    For where {"name": "Joe", "parent1": {"age": {"$lt": 48}}}
    and order {"parent1": {"age": "DESC NULLS LAST"}, "id": "ASC"}:

    SELECT ... FROM user
    LEFT OUTER JOIN user AS user_1 ON user_1.id = user.parent1_id
    WHERE user.name = 'Joe' AND user_1.age < 48
    ORDER BY user_1.age DESC NULLS LAST, user.id ASC

Each operation opens its own session from the session factory, so the
concurrent count and fetch of one page never share a session.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date, datetime, time
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import and_, false, func, inspect, not_, or_, select, true
from sqlalchemy.orm import aliased, contains_eager

from keyset_pagination.core.exceptions import UnsupportedFilterError
from keyset_pagination.core.pagination.ordering import (
    NullPolicy,
    OrderBy,
    SortDirection,
    SortSpec,
)
from keyset_pagination.core.pagination.paths import join_path, split_path
from keyset_pagination.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from sqlalchemy import ColumnElement, Select
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
    from sqlalchemy.orm import InstrumentedAttribute
    from sqlalchemy.orm.strategy_options import _AbstractLoad

_COMPARISONS = {
    "$gt": lambda column, value: column > value,
    "$gte": lambda column, value: column >= value,
    "$lt": lambda column, value: column < value,
    "$lte": lambda column, value: column <= value,
}


def convert_value(column: InstrumentedAttribute[Any], value: Any) -> Any:
    """Convert a JSON value to the column's Python type.

    Handles datetime strings, UUIDs, etc. that were serialized when the
    cursor was created.
    """
    if not isinstance(value, str):
        return value
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return value

    if python_type is datetime:
        return datetime.fromisoformat(value)
    if python_type is date:
        return date.fromisoformat(value)
    if python_type is time:
        return time.fromisoformat(value)
    if python_type is Decimal:
        return Decimal(value)
    if isinstance(python_type, type) and issubclass(python_type, UUID):
        return UUID(value)
    return value


class StatementBuilder:
    """Build one select statement for a model from filter/order documents.

    Relationship paths are joined once per statement; the same alias is
    reused by the filter, the ordering and the eager loading.

    Example:
        builder = StatementBuilder(User)
        stmt = builder.statement(
            {"parent1": {"age": {"$gt": 40}}},
            order_by={"parent1": {"age": "ASC"}, "id": "ASC"},
        )
        stmt = stmt.options(*builder.eager_options())
    """

    def __init__(self, model: type[Any]) -> None:
        self.model = model
        self._entities: dict[tuple[str, ...], Any] = {(): model}
        self._joins: list[tuple[tuple[str, ...], Any]] = []

    def entity(self, segments: tuple[str, ...]) -> Any:
        """Aliased entity reached by following relationship ``segments``."""
        if segments in self._entities:
            return self._entities[segments]

        parent = self.entity(segments[:-1])
        name = segments[-1]
        path = join_path(*segments)
        relationship = inspect(parent).mapper.relationships.get(name)
        if relationship is None:
            raise UnsupportedFilterError(
                f"{path!r} is not a relationship of {self.model.__name__}", operator=path
            )
        if relationship.uselist:
            raise UnsupportedFilterError(
                f"Cannot traverse to-many relationship {path!r}", operator=path
            )

        target = aliased(relationship.mapper.class_)
        self._entities[segments] = target
        self._joins.append((segments, getattr(parent, name).of_type(target)))
        return target

    def column(self, segments: tuple[str, ...]) -> InstrumentedAttribute[Any]:
        """Column attribute addressed by a field path."""
        *relations, name = segments
        entity = self.entity(tuple(relations))
        if name not in inspect(entity).mapper.column_attrs:
            path = join_path(*segments)
            raise UnsupportedFilterError(
                f"Unknown column {path!r} on {self.model.__name__}", operator=path
            )
        return getattr(entity, name)

    def where_clause(
        self,
        where: Mapping[str, Any],
        prefix: tuple[str, ...] = (),
    ) -> ColumnElement[bool]:
        """Compile a filter document; ``prefix`` is the enclosing field path."""
        conditions: list[ColumnElement[bool]] = []
        for key, operand in where.items():
            if key == "$and":
                conditions.append(and_(true(), *(self.where_clause(item, prefix) for item in operand)))
            elif key == "$or":
                conditions.append(or_(false(), *(self.where_clause(item, prefix) for item in operand)))
            elif key == "$not":
                conditions.append(not_(self.where_clause(operand, prefix)))
            elif key.startswith("$"):
                conditions.append(self._operator(prefix, key, operand))
            elif isinstance(operand, Mapping):
                conditions.append(self.where_clause(operand, (*prefix, key)))
            else:
                conditions.append(self._equals(self.column((*prefix, key)), operand))
        return and_(true(), *conditions)

    def _equals(self, column: InstrumentedAttribute[Any], operand: Any) -> ColumnElement[bool]:
        if operand is None:
            return column.is_(None)
        return column == convert_value(column, operand)

    def _operator(self, prefix: tuple[str, ...], key: str, operand: Any) -> ColumnElement[bool]:
        if not prefix:
            raise UnsupportedFilterError(f"Operator {key} must be applied to a field", operator=key)
        column = self.column(prefix)

        match key:
            case "$eq":
                return self._equals(column, operand)
            case "$ne":
                if operand is None:
                    return column.is_not(None)
                return column != convert_value(column, operand)
            case "$gt" | "$gte" | "$lt" | "$lte":
                # Comparing with NULL is never true
                if operand is None:
                    return false()
                return _COMPARISONS[key](column, convert_value(column, operand))
            case "$in":
                return column.in_([convert_value(column, item) for item in operand])
            case "$nin":
                return column.not_in([convert_value(column, item) for item in operand])
            case _:
                raise UnsupportedFilterError(f"Unsupported operator {key}", operator=key)

    def order_clauses(self, order_by: OrderBy) -> list[Any]:
        """Compile an ordering declaration into ORDER BY expressions."""
        clauses = []
        for key in SortSpec.from_order_by(order_by):
            column = self.column(tuple(split_path(key.path)))
            expression = column.asc() if key.direction is SortDirection.ASC else column.desc()
            match key.null_policy:
                case NullPolicy.NULLS_FIRST:
                    expression = expression.nulls_first()
                case NullPolicy.NULLS_LAST:
                    expression = expression.nulls_last()
                case NullPolicy.NONE:
                    pass
            clauses.append(expression)
        return clauses

    def statement(
        self,
        where: Mapping[str, Any],
        *,
        order_by: OrderBy | None = None,
        populate: Sequence[str] = (),
    ) -> Select[Any]:
        """Select statement with joins, criteria and ordering applied."""
        criteria = self.where_clause(where)
        ordering = self.order_clauses(order_by) if order_by is not None else []
        for path in populate:
            self.entity(tuple(split_path(path)))

        statement = select(self.model)
        for _, attribute in self._joins:
            statement = statement.outerjoin(attribute)
        return statement.where(criteria).order_by(*ordering)

    def eager_options(self) -> list[_AbstractLoad]:
        """``contains_eager`` chains populating every joined relationship."""
        options = []
        for segments, _ in self._joins:
            option = None
            for depth in range(1, len(segments) + 1):
                parent = self._entities[segments[: depth - 1]]
                attribute = getattr(parent, segments[depth - 1]).of_type(
                    self._entities[segments[:depth]]
                )
                option = contains_eager(attribute) if option is None else option.contains_eager(attribute)
            options.append(option)
        return options


class SQLAlchemyStore:
    """Record store backed by SQLAlchemy async sessions.

    Entities are mapped model classes. Find options:
        populate: relationship paths to load with the rows
        anything else: passed to ``Select.execution_options``

    Example:
        store = SQLAlchemyStore(async_sessionmaker(engine, expire_on_commit=False))
        page = await paginate(store, User, {"first": 10, "order_by": {"id": "ASC"}})
    """

    __slots__ = ("session_factory", "_lazy")

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Initialize store with a session factory.

        Args:
            session_factory: Factory for the per-operation sessions
        """
        self.session_factory = session_factory
        # Lazy logger for DEBUG (zero overhead when DEBUG disabled)
        self._lazy = get_lazy_logger("pagination.store.sqlalchemy")

    async def count(self, entity: type[Any], where: Mapping[str, Any]) -> int:
        """Count rows of ``entity`` matching ``where``."""
        statement = StatementBuilder(entity).statement(where)
        count_stmt = select(func.count()).select_from(statement.subquery())

        async with self.session_factory() as session:
            total = (await session.execute(count_stmt)).scalar_one()

        self._lazy.debug(lambda: f"db.count: {entity.__name__} -> {total}")
        return total

    async def find(
        self,
        entity: type[Any],
        where: Mapping[str, Any],
        *,
        order_by: OrderBy,
        limit: int | None = None,
        populate: Sequence[str] | None = None,
        **options: Any,
    ) -> list[Any]:
        """Return rows of ``entity`` matching ``where`` in ``order_by`` order."""
        builder = StatementBuilder(entity)
        statement = builder.statement(where, order_by=order_by, populate=populate or ())
        statement = statement.options(*builder.eager_options())
        if limit is not None:
            statement = statement.limit(limit)
        if options:
            statement = statement.execution_options(**options)

        async with self.session_factory() as session:
            result = await session.execute(statement)
            rows = list(result.scalars().all())

        self._lazy.debug(
            lambda: f"db.find: {entity.__name__}(limit={limit}) -> {len(rows)} rows"
        )
        return rows


__all__ = ["SQLAlchemyStore", "StatementBuilder", "convert_value"]
