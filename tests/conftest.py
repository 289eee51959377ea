"""Pytest configuration and shared fixtures.

This module provides reusable fixtures for testing across the entire test suite.
Fixtures are organized by category to make them easy to discover and extend.

Organization:
    - Settings Fixtures: environment isolation and cache clearing
    - Data Fixtures: the user rows most pagination tests walk through
    - Store Fixtures: in-memory store and SQLAlchemy engine/session factory
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from typing import TYPE_CHECKING, Any

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from keyset_pagination.core.settings import clear_all_caches
from keyset_pagination.infra.stores import InMemoryStore

if TYPE_CHECKING:
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncEngine


# ============================================================================
# Settings Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def _isolate_settings(monkeypatch: pytest.MonkeyPatch):
    """Drop PAGINATION_* variables and reset cached settings around each test."""
    for key in list(os.environ):
        if key.startswith("PAGINATION_"):
            monkeypatch.delenv(key, raising=False)
    clear_all_caches()
    yield
    clear_all_caches()


# ============================================================================
# Data Fixtures
# ============================================================================

# Ordered [name ASC, age DESC NULLS FIRST, id ASC] these rows read
# u2, u5, u4, u1, u3.
USER_ORDER_BY: list[dict[str, str]] = [
    {"name": "ASC"},
    {"age": "DESC NULLS FIRST"},
    {"id": "ASC"},
]


@pytest.fixture
def order_by() -> list[dict[str, str]]:
    """Ordering declaration with a nullable middle key."""
    return [dict(clause) for clause in USER_ORDER_BY]


@pytest.fixture
def users() -> list[dict[str, Any]]:
    """Five users, two with a null age.

    ``u1`` embeds its parents (``parent1`` is u2, ``parent2`` is u4) the way
    a populated relation would appear.

    Returns:
        Plain dict rows keyed like the ``User`` model.
    """
    u2 = {"id": 2, "name": "Joe", "age": None, "parent1": None, "parent2": None}
    u4 = {"id": 4, "name": "John", "age": None, "parent1": None, "parent2": None}
    return [
        {"id": 1, "name": "John", "age": 20, "parent1": dict(u2), "parent2": dict(u4)},
        u2,
        {"id": 3, "name": "John", "age": 20, "parent1": None, "parent2": None},
        u4,
        {"id": 5, "name": "Joe", "age": 20, "parent1": None, "parent2": None},
    ]


# ============================================================================
# Store Fixtures
# ============================================================================


@pytest.fixture
def memory_store(users: list[dict[str, Any]]) -> InMemoryStore:
    """In-memory store holding the ``users`` rows under ``"users"``."""
    return InMemoryStore({"users": users})


@pytest.fixture
async def db_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine]:
    """Create async SQLAlchemy engine backed by a SQLite file.

    A file database (rather than ``:memory:``) lets the concurrent count
    and fetch of a page use separate connections that see the same data.

    Yields:
        Async SQLAlchemy engine with the test tables created.
    """
    from tests.fixtures.models import Base

    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'pagination.db'}",
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory for the store and for seeding data.

    Example:
        async def test_store(session_factory):
            store = SQLAlchemyStore(session_factory)
    """
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
