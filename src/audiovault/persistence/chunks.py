"""Chunk rows addressable by (blob_id, sequence)."""

from __future__ import annotations

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from audiovault.models import Chunk
from audiovault.persistence.tables import AudioChunkTable, AudioFileTable, utc_now


class ChunkRepository:
    """Read/write access to chunk rows within one session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def write(self, chunk: Chunk) -> None:
        """Insert one chunk row."""
        self.session.add(
            AudioChunkTable(
                blob_id=chunk.blob_id,
                sequence=chunk.sequence,
                data=chunk.data,
                created_at=utc_now(),
            )
        )
        await self.session.flush()

    async def read(self, blob_id: str, sequence: int) -> bytes | None:
        """Fetch the payload of a single chunk, or None if absent."""
        stmt = select(AudioChunkTable.data).where(
            AudioChunkTable.blob_id == blob_id,
            AudioChunkTable.sequence == sequence,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def count(self, blob_id: str) -> int:
        stmt = (
            select(func.count())
            .select_from(AudioChunkTable)
            .where(AudioChunkTable.blob_id == blob_id)
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def delete_all(self, blob_id: str) -> int:
        """Delete every chunk of a blob. Returns the number of rows removed."""
        stmt = delete(AudioChunkTable).where(AudioChunkTable.blob_id == blob_id)
        result = await self.session.execute(stmt)
        return int(result.rowcount or 0)

    async def delete_orphaned(self, blob_id: str) -> int:
        """Delete a blob's chunks only while it has no committed metadata row."""
        committed = select(AudioFileTable.id).where(AudioFileTable.id == blob_id)
        stmt = delete(AudioChunkTable).where(
            AudioChunkTable.blob_id == blob_id,
            ~committed.exists(),
        )
        result = await self.session.execute(stmt)
        return int(result.rowcount or 0)
