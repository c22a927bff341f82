"""Shared fixtures for audiovault unit tests.

Each test gets its own file-backed SQLite database through aiosqlite.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from audiovault.persistence.db import StoreHandle
from audiovault.storage.chunked import ChunkedBlobStore

TEST_CHUNK_SIZE = 1024


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'audio.db'}"


@pytest_asyncio.fixture
async def engine(database_url: str) -> AsyncIterator[AsyncEngine]:
    engine = create_async_engine(database_url, connect_args={"timeout": 30})
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def store(engine: AsyncEngine) -> AsyncIterator[ChunkedBlobStore]:
    store = ChunkedBlobStore()
    handle = await store.initialize(engine, chunk_size=TEST_CHUNK_SIZE)
    yield store
    await handle.close()


@pytest.fixture
def handle(store: ChunkedBlobStore) -> StoreHandle:
    return store.handle
