"""Shared fixtures: every backend runs against a throwaway SQLite file."""

import datetime as dt

import pytest
import pytest_asyncio

from tourdesk.db import create_engine
from tourdesk.stores import LocalStore, RemoteStore

BACKENDS = {"local": LocalStore, "remote": RemoteStore}


async def make_store(backend: str, path):
    """Create a store of the given backend on a fresh SQLite file."""
    store = BACKENDS[backend](create_engine(f"sqlite+aiosqlite:///{path}"))
    await store.create_schema()
    return store


@pytest_asyncio.fixture(params=sorted(BACKENDS))
async def store(request, tmp_path):
    """Each backend in turn, so contract tests run against both."""
    store = await make_store(request.param, tmp_path / f"{request.param}.db")
    yield store
    await store.dispose()


@pytest_asyncio.fixture
async def local_store(tmp_path):
    store = await make_store("local", tmp_path / "local-only.db")
    yield store
    await store.dispose()


@pytest_asyncio.fixture
async def store_factory(tmp_path):
    """Create named stores on demand; all are disposed after the test."""
    created = []

    async def factory(backend: str, name: str):
        store = await make_store(backend, tmp_path / f"{name}.db")
        created.append(store)
        return store

    yield factory
    for store in created:
        await store.dispose()


@pytest.fixture
def tour_data():
    """Minimal valid tour input: 2 adults + 1 child over three days."""
    return {
        "tour_code": "AT-250101",
        "client_name": "Mrs. Matilde Lamura",
        "adults": 2,
        "children": 1,
        "start_date": dt.date(2025, 1, 1),
        "end_date": dt.date(2025, 1, 3),
    }
