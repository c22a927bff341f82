"""Streaming download pipeline.

Resolves metadata before any streaming begins, then reads chunks strictly
in ascending sequence order, emitting each chunk as soon as it is read.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import aclosing
from datetime import datetime

from audiovault.models import BlobMetadata
from audiovault.storage.chunked import BlobHandle, ChunkedBlobStore
from audiovault.storage.codec import reassemble

logger = logging.getLogger(__name__)


class AudioStream:
    """A committed blob's metadata plus a single-use byte stream.

    Iterate with ``async for`` or pass ``stream()`` to a StreamingResponse.
    Breaking out early or calling ``aclose()`` stops further chunk reads.
    """

    def __init__(self, blob: BlobHandle):
        self._blob = blob
        self._iterator: AsyncIterator[bytes] | None = None
        self._closed = False
        self.chunks_read = 0

    @property
    def metadata(self) -> BlobMetadata:
        return self._blob.metadata

    @property
    def id(self) -> str:
        return self._blob.metadata.id

    @property
    def filename(self) -> str:
        return self._blob.metadata.filename

    @property
    def content_type(self) -> str:
        return self._blob.metadata.content_type

    @property
    def length(self) -> int:
        return self._blob.metadata.length

    @property
    def tags(self) -> dict[str, str]:
        return self._blob.metadata.tags

    @property
    def created_at(self) -> datetime:
        return self._blob.metadata.created_at

    @property
    def closed(self) -> bool:
        return self._closed

    async def _generate(self) -> AsyncIterator[bytes]:
        try:
            async with (
                aclosing(self._blob.chunks.chunks()) as records,
                aclosing(reassemble(records)) as payloads,
            ):
                async for data in payloads:
                    if self._closed:
                        return
                    self.chunks_read += 1
                    yield data
        finally:
            self._closed = True

    def stream(self) -> AsyncIterator[bytes]:
        """Return the byte iterator. A stream can be consumed only once."""
        if self._iterator is not None or self._closed:
            raise RuntimeError(f"Stream for {self.id} already consumed")
        self._iterator = self._generate()
        return self._iterator

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self.stream()

    async def read_all(self) -> bytes:
        """Collect the whole payload. Intended for small blobs and tests."""
        return b"".join([data async for data in self.stream()])

    async def aclose(self) -> None:
        """Stop streaming; no further chunks are read."""
        self._closed = True
        if self._iterator is not None:
            await self._iterator.aclose()  # type: ignore[attr-defined]

    async def __aenter__(self) -> AudioStream:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()


class DownloadPipeline:
    """Open byte streams for stored blobs."""

    def __init__(self, store: ChunkedBlobStore):
        self.store = store

    async def open(self, blob_id: str) -> AudioStream | None:
        """Resolve ``blob_id`` and return a stream, or None if it does not exist.

        Raises:
            ReadFailure: Metadata could not be read
            StoreNotInitialized: The store is not bound to an engine
        """
        blob = await self.store.retrieve(blob_id)
        if blob is None:
            logger.debug(f"Audio file {blob_id} not found")
            return None
        return AudioStream(blob)
