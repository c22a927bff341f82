"""Chunked blob store over the SQLAlchemy backing engine.

Write path:
    chunks are written one transaction at a time in increasing sequence
    order; the metadata row is inserted in a final transaction only after
    the producer reaches end of stream. Readers look up metadata first, so
    an upload is invisible until that last commit.

Failure path:
    no metadata is committed. Already-written chunks are removed on a
    best-effort basis; anything left behind is reclaimed by the orphan
    sweep (see audiovault.storage.reconcile).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import aclosing
from dataclasses import dataclass, field
from uuid import UUID, uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from audiovault.errors import (
    DeleteFailure,
    ReadFailure,
    StoreNotInitialized,
    UploadAborted,
    WriteFailure,
)
from audiovault.models import BlobMetadata, Chunk, expected_chunk_count
from audiovault.persistence.catalog import MetadataCatalog
from audiovault.persistence.chunks import ChunkRepository
from audiovault.persistence.db import StoreHandle, initialize
from audiovault.persistence.tables import utc_now
from audiovault.storage.codec import ByteProducer, reassemble, split_chunks

logger = logging.getLogger(__name__)


def new_blob_id() -> str:
    """Mint an opaque identifier, independent of filename and content."""
    return str(uuid4())


def is_valid_blob_id(blob_id: str) -> bool:
    """Return whether ``blob_id`` has the shape of a minted identifier."""
    try:
        UUID(blob_id)
    except (TypeError, ValueError, AttributeError):
        return False
    return True


class _ProducerError(Exception):
    """Internal marker wrapping an exception raised by the byte producer."""

    def __init__(self, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(str(cause))


async def _guard_producer(chunks: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
    """Re-raise producer exceptions as _ProducerError so they can be told apart."""
    try:
        while True:
            try:
                data = await chunks.__anext__()
            except StopAsyncIteration:
                return
            except Exception as e:
                raise _ProducerError(e) from e
            yield data
    finally:
        await chunks.aclose()


@dataclass
class ChunkAccessor:
    """Lazy, ordered access to the chunks of one committed blob.

    Each chunk is read in its own short session so no cursor stays open
    between reads.
    """

    handle: StoreHandle
    metadata: BlobMetadata

    async def read(self, sequence: int) -> bytes:
        """Read one chunk payload."""
        if not 0 <= sequence < self.metadata.chunk_count:
            raise IndexError(f"Chunk {sequence} out of range for {self.metadata.id}")
        try:
            async with self.handle.session() as session:
                data = await ChunkRepository(session).read(self.metadata.id, sequence)
        except SQLAlchemyError as e:
            raise ReadFailure(
                f"Failed to read chunk {sequence} of {self.metadata.id}: {e}", self.metadata.id
            ) from e
        if data is None:
            raise ReadFailure(
                f"Chunk {sequence} of {self.metadata.id} is missing", self.metadata.id
            )
        return data

    async def chunks(self) -> AsyncIterator[Chunk]:
        """Yield Chunk records in ascending sequence order."""
        for sequence in range(self.metadata.chunk_count):
            data = await self.read(sequence)
            yield Chunk(blob_id=self.metadata.id, sequence=sequence, data=data)

    def __aiter__(self) -> AsyncIterator[bytes]:
        return reassemble(self.chunks())


@dataclass(frozen=True)
class BlobHandle:
    """Result of ChunkedBlobStore.retrieve: metadata plus lazy chunk access."""

    metadata: BlobMetadata
    chunks: ChunkAccessor = field(repr=False)


class ChunkedBlobStore:
    """Store, retrieve and delete blobs as ordered fixed-size chunks.

    Usage:
        store = ChunkedBlobStore()
        await store.initialize("sqlite+aiosqlite:///audio.db")
        blob_id = await store.store(data, "note.webm", "audio/webm", {})
    """

    def __init__(self, handle: StoreHandle | None = None):
        self._handle = handle

    async def initialize(
        self,
        connection: AsyncEngine | str | None = None,
        *,
        chunk_size: int | None = None,
        create_tables: bool = True,
    ) -> StoreHandle:
        """Bind this store to the backing engine and return the handle."""
        self._handle = await initialize(
            connection, chunk_size=chunk_size, create_tables=create_tables
        )
        return self._handle

    @property
    def is_initialized(self) -> bool:
        return self._handle is not None and not self._handle.closed

    @property
    def handle(self) -> StoreHandle:
        """Return the bound handle or raise StoreNotInitialized."""
        if self._handle is None or self._handle.closed:
            raise StoreNotInitialized()
        return self._handle

    @property
    def chunk_size(self) -> int:
        return self.handle.chunk_size

    # -------------------------------------------------------------------------
    # Write path
    # -------------------------------------------------------------------------

    async def store(
        self,
        producer: ByteProducer,
        filename: str,
        content_type: str,
        tags: dict[str, str] | None = None,
    ) -> str:
        """Consume ``producer`` to exhaustion and return the new blob id."""
        metadata = await self.put(producer, filename, content_type, tags)
        return metadata.id

    async def put(
        self,
        producer: ByteProducer,
        filename: str,
        content_type: str,
        tags: dict[str, str] | None = None,
    ) -> BlobMetadata:
        """Store a blob and return its committed metadata.

        Raises:
            StoreNotInitialized: If the store is not bound to an engine
            UploadAborted: If the producer raises before end of stream
            WriteFailure: If the engine rejects a chunk or metadata write
        """
        handle = self.handle
        chunk_size = handle.chunk_size
        blob_id = new_blob_id()
        length = 0
        sequence = 0

        try:
            async with aclosing(_guard_producer(split_chunks(producer, chunk_size))) as chunks:
                async for data in chunks:
                    await self._write_chunk(Chunk(blob_id=blob_id, sequence=sequence, data=data))
                    sequence += 1
                    length += len(data)

            metadata = BlobMetadata(
                id=blob_id,
                filename=filename,
                content_type=content_type,
                length=length,
                chunk_size=chunk_size,
                chunk_count=expected_chunk_count(length, chunk_size),
                created_at=utc_now(),
                tags=dict(tags or {}),
            )
            try:
                async with handle.session() as session:
                    # Chunks may have been swept while the producer stalled
                    stored = await ChunkRepository(session).count(blob_id)
                    if stored != metadata.chunk_count:
                        raise WriteFailure(
                            f"Upload {blob_id} lost chunks before commit: "
                            f"{stored} of {metadata.chunk_count} present",
                            blob_id,
                        )
                    await MetadataCatalog(session).insert(metadata)
            except SQLAlchemyError as e:
                raise WriteFailure(f"Failed to commit metadata for {blob_id}: {e}", blob_id) from e
        except _ProducerError as e:
            await self._discard(blob_id, sequence)
            raise UploadAborted(f"Upload {blob_id} aborted by producer: {e.cause}", blob_id) from e.cause
        except BaseException:
            # WriteFailure, StoreNotInitialized and cancellation all land here
            await self._discard(blob_id, sequence)
            raise

        logger.debug(
            f"Stored blob {blob_id} ({length} bytes, {sequence} chunks of {chunk_size})"
        )
        return metadata

    async def _write_chunk(self, chunk: Chunk) -> None:
        """Persist one chunk in its own transaction."""
        try:
            async with self.handle.session() as session:
                await ChunkRepository(session).write(chunk)
        except SQLAlchemyError as e:
            raise WriteFailure(
                f"Failed to write chunk {chunk.sequence} of {chunk.blob_id}: {e}", chunk.blob_id
            ) from e

    async def _discard(self, blob_id: str, written: int) -> None:
        """Best-effort removal of chunks from a failed upload."""
        if written == 0 or self._handle is None or self._handle.closed:
            return
        try:
            # Shielded so a cancelled upload still gets its cleanup attempt
            await asyncio.shield(self._delete_chunks(blob_id))
        except (SQLAlchemyError, asyncio.CancelledError) as e:
            logger.debug(f"Left {written} orphaned chunks for {blob_id}: {e!r}")

    async def _delete_chunks(self, blob_id: str) -> None:
        async with self.handle.session() as session:
            await ChunkRepository(session).delete_all(blob_id)

    # -------------------------------------------------------------------------
    # Read path
    # -------------------------------------------------------------------------

    async def get_metadata(self, blob_id: str) -> BlobMetadata | None:
        """Look up committed metadata; None for unknown or malformed ids."""
        handle = self.handle
        if not is_valid_blob_id(blob_id):
            return None
        try:
            async with handle.session() as session:
                return await MetadataCatalog(session).get(blob_id)
        except SQLAlchemyError as e:
            raise ReadFailure(f"Failed to read metadata for {blob_id}: {e}", blob_id) from e

    async def retrieve(self, blob_id: str) -> BlobHandle | None:
        """Resolve a blob id to metadata plus a lazy chunk accessor.

        Returns None when no committed blob has this id. No chunk bytes
        are read here.
        """
        metadata = await self.get_metadata(blob_id)
        if metadata is None:
            return None
        return BlobHandle(metadata=metadata, chunks=ChunkAccessor(self.handle, metadata))

    async def exists(self, blob_id: str) -> bool:
        return await self.get_metadata(blob_id) is not None

    # -------------------------------------------------------------------------
    # Delete path
    # -------------------------------------------------------------------------

    async def delete(self, blob_id: str) -> bool:
        """Delete metadata and all chunks in one transaction.

        Returns:
            True if a committed blob was deleted, False if the id was unknown

        Raises:
            DeleteFailure: On an engine-level error
        """
        handle = self.handle
        if not is_valid_blob_id(blob_id):
            return False
        try:
            async with handle.session() as session:
                existed = await MetadataCatalog(session).delete(blob_id)
                removed = await ChunkRepository(session).delete_all(blob_id)
        except SQLAlchemyError as e:
            raise DeleteFailure(f"Failed to delete {blob_id}: {e}", blob_id) from e

        if existed:
            logger.debug(f"Deleted blob {blob_id} ({removed} chunks)")
        return existed
