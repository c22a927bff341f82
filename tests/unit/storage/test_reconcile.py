"""Tests for orphan chunk reconciliation."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from audiovault.models import Chunk
from audiovault.persistence.chunks import ChunkRepository
from audiovault.persistence.tables import utc_now
from audiovault.storage.chunked import ChunkedBlobStore, new_blob_id
from audiovault.storage.reconcile import OrphanSweeper


async def _write_orphan(store: ChunkedBlobStore, chunks: int = 3) -> str:
    """Write chunk rows with no metadata, as an aborted upload would."""
    blob_id = new_blob_id()
    async with store.handle.session() as session:
        repo = ChunkRepository(session)
        for sequence in range(chunks):
            await repo.write(Chunk(blob_id=blob_id, sequence=sequence, data=b"o" * 10))
    return blob_id


async def _chunk_count(store: ChunkedBlobStore, blob_id: str) -> int:
    async with store.handle.session() as session:
        return await ChunkRepository(session).count(blob_id)


class TestSweep:
    """Test one-off sweeps."""

    @pytest.mark.asyncio
    async def test_removes_orphans_past_cutoff(self, store: ChunkedBlobStore) -> None:
        """Chunks without metadata are deleted once older than the cutoff."""
        orphan = await _write_orphan(store)

        report = await OrphanSweeper(store).sweep(older_than=utc_now() + timedelta(seconds=5))

        assert report.orphaned_ids == (orphan,)
        assert report.chunks_deleted == 3
        assert not report.dry_run
        assert await _chunk_count(store, orphan) == 0

    @pytest.mark.asyncio
    async def test_keeps_committed_blobs(self, store: ChunkedBlobStore) -> None:
        """Committed blobs are never touched."""
        blob_id = await store.store(b"k" * 3000, "k.webm", "audio/webm")

        report = await OrphanSweeper(store, grace_seconds=0).sweep(
            older_than=utc_now() + timedelta(seconds=5)
        )

        assert report.orphaned_ids == ()
        assert await _chunk_count(store, blob_id) == 3
        blob = await store.retrieve(blob_id)
        assert blob is not None

    @pytest.mark.asyncio
    async def test_grace_period_protects_recent_orphans(self, store: ChunkedBlobStore) -> None:
        """In-flight uploads look like orphans; the grace period spares them."""
        orphan = await _write_orphan(store)

        report = await OrphanSweeper(store, grace_seconds=3600).sweep()

        assert report.orphaned_ids == ()
        assert await _chunk_count(store, orphan) == 3

    @pytest.mark.asyncio
    async def test_dry_run_reports_without_deleting(self, store: ChunkedBlobStore) -> None:
        """Dry run lists orphans but leaves them in place."""
        orphan = await _write_orphan(store, chunks=2)

        report = await OrphanSweeper(store).sweep(
            older_than=utc_now() + timedelta(seconds=5), dry_run=True
        )

        assert report.dry_run
        assert report.orphaned_ids == (orphan,)
        assert report.chunks_deleted == 0
        assert await _chunk_count(store, orphan) == 2

    @pytest.mark.asyncio
    async def test_empty_store(self, store: ChunkedBlobStore) -> None:
        report = await OrphanSweeper(store).sweep()
        assert report.orphaned_ids == ()
        assert report.chunks_deleted == 0


class TestPeriodicSweep:
    """Test the background sweep task."""

    @pytest.mark.asyncio
    async def test_start_and_stop(self, store: ChunkedBlobStore) -> None:
        """Background task sweeps and stops cleanly."""
        orphan = await _write_orphan(store)
        sweeper = OrphanSweeper(store, grace_seconds=-60)

        task = sweeper.start(0.01)
        assert sweeper.start(0.01) is task

        for _ in range(100):
            if await _chunk_count(store, orphan) == 0:
                break
            await asyncio.sleep(0.01)

        await sweeper.stop()
        assert task.done()
        assert await _chunk_count(store, orphan) == 0

    @pytest.mark.asyncio
    async def test_errors_do_not_stop_the_loop(
        self, store: ChunkedBlobStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A failing pass is logged and the loop keeps running."""
        sweeper = OrphanSweeper(store)
        calls = 0

        async def failing_sweep(*args, **kwargs):
            nonlocal calls
            calls += 1
            raise RuntimeError("boom")

        monkeypatch.setattr(sweeper, "sweep", failing_sweep)

        sweeper.start(0.001)
        for _ in range(100):
            if calls >= 2:
                break
            await asyncio.sleep(0.01)
        await sweeper.stop()

        assert calls >= 2

    @pytest.mark.asyncio
    async def test_stop_without_start(self, store: ChunkedBlobStore) -> None:
        await OrphanSweeper(store).stop()
