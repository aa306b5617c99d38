"""
Pytest fixtures.

Every test gets its own SQLite database file. Tables are created with a plain
synchronous engine; the async engine under test uses NullPool so no
connection outlives the event loop that opened it.
"""

import asyncio
import base64
import os

# the app module builds its default engine at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from dlvery.db.database import Base, make_session_maker
from dlvery.db import document  # noqa: F401
from dlvery.db.store import CollectionStore, get_store


SIGNATURE = "data:image/png;base64," + base64.b64encode(b"\x89PNG\r\n\x1a\n" + b"\x00" * 64).decode()


def _make_store(db_path, create_tables: bool = True) -> CollectionStore:
    if create_tables:
        sync_engine = create_engine(f"sqlite:///{db_path}")
        Base.metadata.create_all(sync_engine)
        sync_engine.dispose()
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    return CollectionStore(make_session_maker(engine))


@pytest.fixture
def store(tmp_path) -> CollectionStore:
    return _make_store(tmp_path / "dlvery.db")


@pytest.fixture
def bare_store(tmp_path) -> CollectionStore:
    """A store whose database has no tables, so every statement fails."""
    return _make_store(tmp_path / "empty.db", create_tables=False)


@pytest.fixture
def run():
    """Run a coroutine to completion; tests stay plain functions."""
    return asyncio.run


@pytest.fixture
def client(store, monkeypatch):
    from dlvery import main

    async def tables_exist():
        return None

    # tables were created with the store; startup must not open the default engine
    monkeypatch.setattr(main, "create_db_and_tables", tables_exist)
    app = main.app
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def signature() -> str:
    return SIGNATURE


async def add_item(store: CollectionStore, **overrides) -> str:
    doc = {
        "sku": "A1",
        "category": "Fresh Produce",
        "quantity": 10,
        "perishable": False,
        "damaged": False,
        "expiry": "",
        "createdAt": "2024-04-01T09:00:00+00:00",
        "updatedAt": "2024-04-01T09:00:00+00:00",
    }
    doc.update(overrides)
    return await store.create("inventory", doc)


async def add_delivery(store: CollectionStore, **overrides) -> str:
    doc = {
        "sku": "A1",
        "name": "Fresh Produce",
        "agent": "agent@x.com",
        "quantity": 3,
        "status": "pending",
        "type": "normal",
        "perishable": False,
        "damaged": False,
        "deliveryDate": "2024-05-01",
        "createdAt": "2024-04-01T09:00:00+00:00",
    }
    doc.update(overrides)
    return await store.create("deliveries", doc)
