"""Tests for the chunk codec."""

from __future__ import annotations

import io
import threading

import pytest

from audiovault.errors import ReadFailure
from audiovault.models import Chunk
from audiovault.storage.codec import iter_producer, reassemble, split_chunks


async def _collect(aiter) -> list[bytes]:
    return [piece async for piece in aiter]


async def _agen(pieces: list[bytes]):
    for piece in pieces:
        yield piece


async def _chunks(records: list[Chunk]):
    for record in records:
        yield record


class TestIterProducer:
    """Producer normalization."""

    @pytest.mark.asyncio
    async def test_bytes(self) -> None:
        assert await _collect(iter_producer(b"abc")) == [b"abc"]

    @pytest.mark.asyncio
    async def test_empty_bytes_yields_nothing(self) -> None:
        assert await _collect(iter_producer(b"")) == []

    @pytest.mark.asyncio
    async def test_file_object(self) -> None:
        data = bytes(range(256)) * 1000
        pieces = await _collect(iter_producer(io.BytesIO(data)))
        assert b"".join(pieces) == data
        assert len(pieces) > 1

    @pytest.mark.asyncio
    async def test_file_object_reads_run_off_the_event_loop(self) -> None:
        """Blocking reads on sync file objects happen in a worker thread."""
        loop_thread = threading.get_ident()
        read_threads: set[int] = set()

        class RecordingReader(io.BytesIO):
            def read(self, size: int | None = -1) -> bytes:
                read_threads.add(threading.get_ident())
                return super().read(size)

        data = b"r" * 200_000
        pieces = await _collect(iter_producer(RecordingReader(data)))

        assert b"".join(pieces) == data
        assert read_threads
        assert loop_thread not in read_threads

    @pytest.mark.asyncio
    async def test_async_file_object_is_awaited(self) -> None:
        class AsyncReader:
            def __init__(self, data: bytes) -> None:
                self._buffer = io.BytesIO(data)

            async def read(self, size: int = -1) -> bytes:
                return self._buffer.read(size)

        pieces = await _collect(iter_producer(AsyncReader(b"a" * 70_000)))
        assert b"".join(pieces) == b"a" * 70_000

    @pytest.mark.asyncio
    async def test_sync_iterable_skips_empty_pieces(self) -> None:
        assert await _collect(iter_producer(iter([b"a", b"", b"b"]))) == [b"a", b"b"]

    @pytest.mark.asyncio
    async def test_async_iterable(self) -> None:
        assert await _collect(iter_producer(_agen([b"x", b"y"]))) == [b"x", b"y"]

    @pytest.mark.asyncio
    async def test_unsupported_producer(self) -> None:
        with pytest.raises(TypeError, match="Unsupported byte producer"):
            await _collect(iter_producer(42))  # type: ignore[arg-type]


class TestSplitChunks:
    """Fixed-size splitting."""

    @pytest.mark.asyncio
    async def test_exact_multiple(self) -> None:
        chunks = await _collect(split_chunks(b"a" * 12, 4))
        assert chunks == [b"aaaa"] * 3

    @pytest.mark.asyncio
    async def test_last_chunk_shorter(self) -> None:
        chunks = await _collect(split_chunks(b"abcdefghij", 4))
        assert chunks == [b"abcd", b"efgh", b"ij"]

    @pytest.mark.asyncio
    async def test_empty_producer_yields_no_chunks(self) -> None:
        assert await _collect(split_chunks(b"", 4)) == []

    @pytest.mark.asyncio
    async def test_regroups_uneven_pieces(self) -> None:
        pieces = [b"a", b"bcdefg", b"h", b"", b"ijklmnopq"]
        chunks = await _collect(split_chunks(_agen(pieces), 5))
        assert chunks == [b"abcde", b"fghij", b"klmno", b"pq"]

    @pytest.mark.asyncio
    async def test_rejects_non_positive_chunk_size(self) -> None:
        with pytest.raises(ValueError, match="chunk_size"):
            await _collect(split_chunks(b"abc", 0))

    @pytest.mark.asyncio
    async def test_emits_before_producer_is_exhausted(self) -> None:
        """The first chunk is available after one chunk's worth of input."""
        produced = 0

        async def producer():
            nonlocal produced
            for _ in range(100):
                produced += 10
                yield b"x" * 10

        splitter = split_chunks(producer(), 20)
        first = await splitter.__anext__()
        assert first == b"x" * 20
        assert produced == 20
        await splitter.aclose()


class TestReassemble:
    """Ordered reassembly."""

    @pytest.mark.asyncio
    async def test_yields_in_order(self) -> None:
        records = [Chunk("b", 0, b"he"), Chunk("b", 1, b"ll"), Chunk("b", 2, b"o")]
        assert b"".join(await _collect(reassemble(_chunks(records)))) == b"hello"

    @pytest.mark.asyncio
    async def test_gap_raises_read_failure(self) -> None:
        records = [Chunk("b", 0, b"he"), Chunk("b", 2, b"o")]
        with pytest.raises(ReadFailure, match="expected 1, got 2") as exc_info:
            await _collect(reassemble(_chunks(records)))
        assert exc_info.value.blob_id == "b"

    @pytest.mark.asyncio
    async def test_must_start_at_zero(self) -> None:
        with pytest.raises(ReadFailure):
            await _collect(reassemble(_chunks([Chunk("b", 1, b"x")])))
