"""audiovault: chunked storage and streaming for chat voice-message audio."""

from audiovault.errors import (
    AudioStoreError,
    BlobNotFoundError,
    DeleteFailure,
    ReadFailure,
    StoreNotInitialized,
    UploadAborted,
    WriteFailure,
)
from audiovault.models import BlobMetadata, Chunk
from audiovault.persistence.db import StoreHandle, initialize
from audiovault.storage import (
    AudioStream,
    ChunkedBlobStore,
    DownloadPipeline,
    OrphanSweeper,
    UploadPipeline,
    UploadResult,
    resolve_address,
)

__version__ = "0.1.0"

__all__ = [
    "AudioStoreError",
    "AudioStream",
    "BlobMetadata",
    "BlobNotFoundError",
    "Chunk",
    "ChunkedBlobStore",
    "DeleteFailure",
    "DownloadPipeline",
    "OrphanSweeper",
    "ReadFailure",
    "StoreHandle",
    "StoreNotInitialized",
    "UploadAborted",
    "UploadPipeline",
    "UploadResult",
    "WriteFailure",
    "initialize",
    "resolve_address",
]
