"""Metadata catalog over committed audio blobs.

The catalog is insert-once: metadata is written in the same transaction that
commits an upload and is never updated afterwards. Lookups and deletes are by
id only.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from audiovault.models import BlobMetadata
from audiovault.persistence.tables import AudioChunkTable, AudioFileTable


def _as_utc(value: datetime) -> datetime:
    # SQLite returns naive datetimes even for timezone-aware columns
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def row_to_metadata(row: AudioFileTable) -> BlobMetadata:
    """Convert an ORM row into immutable BlobMetadata."""
    return BlobMetadata(
        id=row.id,
        filename=row.filename,
        content_type=row.content_type,
        length=row.length,
        chunk_size=row.chunk_size,
        chunk_count=row.chunk_count,
        created_at=_as_utc(row.created_at),
        tags={str(key): str(value) for key, value in (row.tags or {}).items()},
    )


class MetadataCatalog:
    """Keyed lookup over BlobMetadata records."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def insert(self, metadata: BlobMetadata) -> None:
        """Add a metadata row; becomes visible when the session commits."""
        self.session.add(
            AudioFileTable(
                id=metadata.id,
                filename=metadata.filename,
                content_type=metadata.content_type,
                length=metadata.length,
                chunk_size=metadata.chunk_size,
                chunk_count=metadata.chunk_count,
                tags=dict(metadata.tags),
                created_at=metadata.created_at,
            )
        )
        await self.session.flush()

    async def get(self, blob_id: str) -> BlobMetadata | None:
        """Point lookup by id."""
        stmt = select(AudioFileTable).where(AudioFileTable.id == blob_id)
        result = await self.session.execute(stmt)
        row = result.scalar_one_or_none()
        if row is None:
            return None
        return row_to_metadata(row)

    async def exists(self, blob_id: str) -> bool:
        stmt = select(AudioFileTable.id).where(AudioFileTable.id == blob_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def delete(self, blob_id: str) -> bool:
        """Delete metadata by id. Returns False if no row existed."""
        stmt = delete(AudioFileTable).where(AudioFileTable.id == blob_id)
        result = await self.session.execute(stmt)
        return bool(result.rowcount)

    async def orphaned_blob_ids(self, cutoff: datetime) -> list[str]:
        """Return owners of chunks that have no committed metadata row.

        Only owners whose newest chunk is older than ``cutoff`` are returned,
        so uploads still in progress are left alone.
        """
        committed = select(AudioFileTable.id)
        stmt = (
            select(AudioChunkTable.blob_id)
            .where(AudioChunkTable.blob_id.not_in(committed))
            .group_by(AudioChunkTable.blob_id)
            .having(func.max(AudioChunkTable.created_at) < cutoff)
            .order_by(AudioChunkTable.blob_id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
