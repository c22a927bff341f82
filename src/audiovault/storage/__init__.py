"""Chunked audio storage for audiovault.

Provides:
- Chunk codec (split producers into fixed-size chunks, reassemble in order)
- ChunkedBlobStore over the SQLAlchemy backing engine
- Streaming upload and download pipelines
- Reference resolver for externally reachable audio links
- Orphan chunk reconciliation sweep

Chunk data and metadata live in the database; metadata is committed only
after the last chunk, so readers never see a partially written blob.
"""

from audiovault.storage.chunked import BlobHandle, ChunkAccessor, ChunkedBlobStore
from audiovault.storage.codec import reassemble, split_chunks
from audiovault.storage.download import AudioStream, DownloadPipeline
from audiovault.storage.reconcile import OrphanSweeper, SweepReport
from audiovault.storage.resolver import resolve_address
from audiovault.storage.upload import UploadPipeline, UploadResult

__all__ = [
    "ChunkedBlobStore",
    "BlobHandle",
    "ChunkAccessor",
    "split_chunks",
    "reassemble",
    "UploadPipeline",
    "UploadResult",
    "DownloadPipeline",
    "AudioStream",
    "resolve_address",
    "OrphanSweeper",
    "SweepReport",
]
