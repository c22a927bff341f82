"""Streaming upload pipeline.

Bridges a byte producer (typically an HTTP request body) to the chunked
blob store without accumulating the payload: the codec holds at most one
chunk between producer and store.
"""

from __future__ import annotations

import time
from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime

from audiovault.storage.chunked import ChunkedBlobStore
from audiovault.storage.codec import ByteProducer, iter_producer

UPLOAD_DATE_TAG = "uploadDate"


@dataclass(frozen=True)
class UploadResult:
    """Outcome of a committed upload."""

    id: str
    length: int
    filename: str
    chunk_count: int


def display_filename(filename: str, now_ms: int | None = None) -> str:
    """Prefix a caller-supplied name with an epoch-millisecond disambiguator.

    The result is a display name only; it is not unique and never used as
    the blob identifier.
    """
    stamp = now_ms if now_ms is not None else time.time_ns() // 1_000_000
    return f"{stamp}-{filename}"


class UploadTooLarge(ValueError):
    """Raised inside the producer when an upload exceeds the size limit."""


async def _limit(producer: ByteProducer, max_bytes: int) -> AsyncIterator[bytes]:
    total = 0
    async for piece in iter_producer(producer):
        total += len(piece)
        if total > max_bytes:
            raise UploadTooLarge(f"Upload exceeds {max_bytes} bytes")
        yield piece


class UploadPipeline:
    """Drive a byte producer through a ChunkedBlobStore."""

    def __init__(self, store: ChunkedBlobStore, max_bytes: int | None = None):
        self.store = store
        self.max_bytes = max_bytes

    async def upload(
        self,
        producer: ByteProducer,
        filename: str,
        content_type: str,
        tags: Mapping[str, str] | None = None,
    ) -> UploadResult:
        """Store the producer's bytes and return the new id and length.

        Raises:
            UploadAborted: The producer failed before end of stream
            WriteFailure: The backing engine rejected a write
            StoreNotInitialized: The store is not bound to an engine

        Cancellation of the calling task stops further chunk writes; no
        metadata is committed for the cancelled attempt.
        """
        blob_tags = {str(key): str(value) for key, value in (tags or {}).items()}
        blob_tags[UPLOAD_DATE_TAG] = datetime.now(UTC).isoformat()

        if self.max_bytes is not None:
            producer = _limit(producer, self.max_bytes)

        metadata = await self.store.put(
            producer,
            display_filename(filename),
            content_type,
            blob_tags,
        )

        return UploadResult(
            id=metadata.id,
            length=metadata.length,
            filename=metadata.filename,
            chunk_count=metadata.chunk_count,
        )
