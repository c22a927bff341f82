"""Typed errors for audiovault."""

from __future__ import annotations


class AudioStoreError(Exception):
    """Base exception for all audio storage errors."""

    def __init__(self, message: str, blob_id: str | None = None) -> None:
        self.blob_id = blob_id
        super().__init__(message)


class StoreNotInitialized(AudioStoreError):
    """Raised when an operation runs before the store is bound to an engine."""

    def __init__(self) -> None:
        super().__init__("Audio store not initialized")


class BlobNotFoundError(AudioStoreError):
    """Raised by callers that treat a missing blob as an error."""

    def __init__(self, blob_id: str) -> None:
        super().__init__(f"Audio file not found: {blob_id}", blob_id)


class WriteFailure(AudioStoreError):
    """Raised when a chunk or metadata record cannot be persisted."""


class UploadAborted(WriteFailure):
    """Raised when the byte producer fails before end of stream."""


class ReadFailure(AudioStoreError):
    """Raised when chunk data cannot be read while streaming."""


class DeleteFailure(AudioStoreError):
    """Raised on an engine-level error while removing a blob."""
