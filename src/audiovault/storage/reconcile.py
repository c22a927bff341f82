"""Orphan chunk reconciliation.

Aborted uploads can leave chunk rows with no committed metadata row. The
sweep removes such chunks once their newest row is older than a grace
period, so uploads still in flight are not touched. It runs outside the
hot path, either on demand or as a periodic background task.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError

from audiovault.config import settings
from audiovault.errors import DeleteFailure
from audiovault.persistence.catalog import MetadataCatalog
from audiovault.persistence.chunks import ChunkRepository
from audiovault.persistence.tables import utc_now
from audiovault.storage.chunked import ChunkedBlobStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SweepReport:
    """Result of one orphan sweep."""

    orphaned_ids: tuple[str, ...]
    chunks_deleted: int
    cutoff: datetime
    dry_run: bool


class OrphanSweeper:
    """Delete chunks that belong to no committed blob."""

    def __init__(self, store: ChunkedBlobStore, grace_seconds: int | None = None):
        self.store = store
        self.grace_seconds = (
            grace_seconds if grace_seconds is not None else settings.orphan_grace_seconds
        )
        self._task: asyncio.Task[None] | None = None

    async def sweep(self, older_than: datetime | None = None, dry_run: bool = False) -> SweepReport:
        """Run one reconciliation pass.

        Args:
            older_than: Only orphans whose newest chunk predates this are
                removed. Defaults to now minus the grace period.
            dry_run: Report orphans without deleting them
        """
        handle = self.store.handle
        cutoff = older_than or utc_now() - timedelta(seconds=self.grace_seconds)

        try:
            async with handle.session() as session:
                orphaned = await MetadataCatalog(session).orphaned_blob_ids(cutoff)
        except SQLAlchemyError as e:
            raise DeleteFailure(f"Failed to scan for orphaned chunks: {e}") from e

        deleted = 0
        if not dry_run:
            for blob_id in orphaned:
                try:
                    async with handle.session() as session:
                        deleted += await ChunkRepository(session).delete_orphaned(blob_id)
                except SQLAlchemyError as e:
                    raise DeleteFailure(
                        f"Failed to delete orphaned chunks of {blob_id}: {e}", blob_id
                    ) from e

        if orphaned:
            logger.info(
                f"Orphan sweep found {len(orphaned)} blob(s), deleted {deleted} chunk(s)"
                + (" (dry run)" if dry_run else "")
            )
        return SweepReport(
            orphaned_ids=tuple(orphaned),
            chunks_deleted=deleted,
            cutoff=cutoff,
            dry_run=dry_run,
        )

    async def run_periodic(self, interval_seconds: float) -> None:
        """Sweep forever, sleeping ``interval_seconds`` between passes."""
        while True:
            try:
                await self.sweep()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Orphan sweep failed: {e}", exc_info=True)
            await asyncio.sleep(interval_seconds)

    def start(self, interval_seconds: float) -> asyncio.Task[None]:
        """Start the periodic sweep as a background task."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run_periodic(interval_seconds))
        return self._task

    async def stop(self) -> None:
        """Cancel the background task and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
