"""Chunk codec: split byte producers into fixed-size chunks and back.

Producers may be plain bytes, a binary file object, a sync iterable of byte
pieces (e.g. a generator) or an async iterable (e.g. an ASGI request body).
At most one chunk plus the piece currently being sliced is held in memory.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import AsyncIterable, AsyncIterator, Iterable
from typing import BinaryIO, Union

from audiovault.errors import ReadFailure
from audiovault.models import Chunk

ByteProducer = Union[bytes, bytearray, memoryview, BinaryIO, Iterable[bytes], AsyncIterable[bytes]]

# Read size for file-like producers
_READ_SIZE = 64 * 1024


async def iter_producer(producer: ByteProducer) -> AsyncIterator[bytes]:
    """Normalize any supported producer into an async iterator of bytes."""
    if isinstance(producer, (bytes, bytearray, memoryview)):
        if len(producer):
            yield bytes(producer)
        return

    read = getattr(producer, "read", None)
    if callable(read):
        # Async file handles (e.g. aiofiles) are awaited; sync reads run off the loop
        is_async = inspect.iscoroutinefunction(read)
        while True:
            if is_async:
                piece = await read(_READ_SIZE)
            else:
                piece = await asyncio.to_thread(read, _READ_SIZE)
                if inspect.isawaitable(piece):
                    piece = await piece
            if not piece:
                return
            yield bytes(piece)

    if isinstance(producer, AsyncIterable):
        async for piece in producer:
            if piece:
                yield bytes(piece)
        return

    if isinstance(producer, Iterable):
        for piece in producer:
            if piece:
                yield bytes(piece)
        return

    raise TypeError(f"Unsupported byte producer: {type(producer).__name__}")


async def split_chunks(producer: ByteProducer, chunk_size: int) -> AsyncIterator[bytes]:
    """Yield chunk payloads of exactly ``chunk_size`` bytes; the last may be shorter.

    An empty producer yields nothing.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be > 0")

    buffer = bytearray()
    async for piece in iter_producer(producer):
        view = memoryview(piece)
        while view:
            take = min(chunk_size - len(buffer), len(view))
            buffer += view[:take]
            view = view[take:]
            if len(buffer) == chunk_size:
                yield bytes(buffer)
                buffer.clear()
    if buffer:
        yield bytes(buffer)


async def reassemble(chunks: AsyncIterable[Chunk]) -> AsyncIterator[bytes]:
    """Yield chunk payloads in order, checking sequence numbers are contiguous."""
    expected = 0
    async for chunk in chunks:
        if chunk.sequence != expected:
            raise ReadFailure(
                f"Chunk sequence gap in {chunk.blob_id}: expected {expected}, got {chunk.sequence}",
                chunk.blob_id,
            )
        expected += 1
        yield chunk.data
