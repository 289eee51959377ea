"""Integration tests for keyset pagination against SQLite through SQLAlchemy."""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

import pytest

from keyset_pagination.core.exceptions import UnsupportedFilterError
from keyset_pagination.core.pagination import NullPolicy, QueryOrder, RecordStore, paginate
from keyset_pagination.infra.database import SQLAlchemyStore
from tests.fixtures.models import User

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

pytestmark = pytest.mark.integration

START = datetime(2025, 1, 1, 9, 0)


def ids(connection) -> list[int]:
    return [node["id"] if isinstance(node, dict) else node.id for node in connection.nodes]


@pytest.fixture
async def store(
    session_factory: async_sessionmaker[AsyncSession],
    users: list[dict[str, Any]],
) -> SQLAlchemyStore:
    """Store over the ``users`` rows; u1's parents are u2 and u4."""
    async with session_factory() as session:
        for position, row in enumerate(users):
            session.add(
                User(
                    id=row["id"],
                    name=row["name"],
                    age=row["age"],
                    created_at=START + timedelta(hours=position % 3),
                )
            )
        await session.flush()
        u1 = await session.get(User, 1)
        u1.parent1_id = 2
        u1.parent2_id = 4
        await session.commit()

    return SQLAlchemyStore(session_factory)


async def walk_forward(store, entity, order_by, size: int, where=None) -> list[list[int]]:
    pages = []
    page = await paginate(store, entity, {"first": size, "order_by": order_by}, where)
    pages.append(ids(page))
    while page.page_info.has_next_page:
        page = await paginate(
            store, entity, {"first": size, "after": page.page_info.end_cursor}, where
        )
        pages.append(ids(page))
    return pages


class TestSQLAlchemyStore:
    """Tests for store operations."""

    def test_satisfies_protocol(self, store):
        assert isinstance(store, RecordStore)

    async def test_count(self, store):
        assert await store.count(User, {}) == 5
        assert await store.count(User, {"age": None}) == 2
        assert await store.count(User, {"parent1": {"name": "Joe"}}) == 1

    async def test_find_with_populate(self, store):
        rows = await store.find(
            User, {"id": 1}, order_by={"id": "ASC"}, populate=["parent1", "parent2"]
        )

        (user,) = rows
        assert user.parent1.id == 2
        assert user.parent2.name == "John"

    async def test_find_limit(self, store):
        rows = await store.find(User, {}, order_by={"id": "DESC"}, limit=2)

        assert [row.id for row in rows] == [5, 4]

    async def test_unknown_relation_rejected(self, store):
        with pytest.raises(UnsupportedFilterError):
            await store.find(User, {"children": {"id": 1}}, order_by={"id": "ASC"})


class TestPaginateUsers:
    """Page walks through the database store."""

    async def test_walk_forward_and_back(self, store, order_by):
        page1 = await paginate(store, User, {"first": 2, "order_by": order_by})
        page2 = await paginate(store, User, {"first": 2, "after": page1.page_info.end_cursor})
        page3 = await paginate(store, User, {"first": 2, "after": page2.page_info.end_cursor})

        assert [ids(page1), ids(page2), ids(page3)] == [[2, 5], [4, 1], [3]]
        assert [p.page_info.has_next_page for p in (page1, page2, page3)] == [True, True, False]
        assert [p.page_info.has_previous_page for p in (page1, page2, page3)] == [False, True, True]
        assert {p.total_count for p in (page1, page2, page3)} == {5}

        back2 = await paginate(store, User, {"last": 2, "before": page3.page_info.start_cursor})
        back1 = await paginate(store, User, {"last": 2, "before": back2.page_info.start_cursor})

        assert ids(back2) == [4, 1]
        assert ids(back1) == [2, 5]
        assert back1.page_info.has_previous_page is False
        assert [edge.cursor for edge in back2.edges] == [edge.cursor for edge in page2.edges]

    async def test_empty_page_after_last_row(self, store):
        page = await paginate(store, User, {"first": 5, "order_by": {"id": "ASC"}})
        after_last = await paginate(store, User, {"first": 5, "after": page.page_info.end_cursor})

        assert after_last.edges == []
        assert after_last.page_info.has_next_page is False
        assert after_last.total_count == 5

    async def test_merge_where(self, store, order_by):
        page1 = await paginate(store, User, {"first": 1, "order_by": order_by}, {"age": None})
        page2 = await paginate(
            store, User, {"first": 1, "after": page1.page_info.end_cursor}, {"age": None}
        )

        assert (page1.total_count, page2.total_count) == (2, 2)
        assert (ids(page1), ids(page2)) == ([2], [4])
        assert page2.page_info.has_next_page is False

    async def test_populate_option(self, store):
        page = await paginate(
            store,
            User,
            {"first": 5, "order_by": {"id": "ASC"}},
            options={"populate": ["parent1", "parent2"]},
        )

        first = page.nodes[0]
        assert (first.parent1.name, first.parent2.name) == ("Joe", "John")
        assert all(node.parent1 is None for node in page.nodes[1:])

    async def test_order_by_relation(self, store):
        order_by = [{"parent2": {"id": "ASC NULLS LAST"}}, {"id": "DESC"}]

        assert await walk_forward(store, User, order_by, 2) == [[1, 5], [4, 3], [2]]

    async def test_datetime_keys(self, store):
        """Datetime cursor values are converted back for the comparison."""
        order_by = [{"created_at": "DESC"}, {"id": "ASC"}]

        # created_at offsets by id: 1 -> +0h, 2 -> +1h, 3 -> +2h, 4 -> +0h, 5 -> +1h
        assert await walk_forward(store, User, order_by, 2) == [[3, 2], [5, 1], [4]]


@pytest.mark.parametrize("order", list(QueryOrder))
async def test_matches_in_memory_store(store, memory_store, order):
    """Both stores page identically for every order tag."""
    order_by = [{"age": order.value}, {"id": "ASC"}]

    database_pages = await walk_forward(store, User, order_by, 2)
    memory_pages = await walk_forward(memory_store, "users", order_by, 2)

    assert database_pages == memory_pages
    if order.null_policy is not NullPolicy.NONE:
        assert sorted(sum(database_pages, [])) == [1, 2, 3, 4, 5]
