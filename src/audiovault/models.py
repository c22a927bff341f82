"""Core data types for chunked audio storage."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class BlobMetadata:
    """Metadata for a committed blob."""

    id: str
    filename: str
    content_type: str
    length: int
    chunk_size: int
    chunk_count: int
    created_at: datetime
    tags: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Chunk:
    """One fixed-size slice of a blob, ordered by sequence."""

    blob_id: str
    sequence: int
    data: bytes


def expected_chunk_count(length: int, chunk_size: int) -> int:
    """Return how many chunks a payload of ``length`` bytes splits into."""
    if chunk_size <= 0:
        raise ValueError("chunk_size must be > 0")
    return math.ceil(length / chunk_size)
