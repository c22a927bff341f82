"""SQLAlchemy ORM models for chunked audio storage.

Two tables mirror the GridFS layout:
- audio_files: one metadata row per committed blob
- audio_file_chunks: ordered chunk rows addressable by (blob_id, sequence)

Chunk rows carry no foreign key to audio_files. Chunks are written before their
metadata row is committed, so an in-progress upload owns chunks without a parent.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, BigInteger, DateTime, Index, Integer, LargeBinary, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> datetime:
    """Return the current timezone-aware UTC timestamp."""
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class AudioFileTable(Base):
    """Blob metadata table."""

    __tablename__ = "audio_files"

    # Opaque identifier minted when the upload opens
    id: Mapped[str] = mapped_column(String(36), primary_key=True)

    filename: Mapped[str] = mapped_column(Text, nullable=False)
    content_type: Mapped[str] = mapped_column(String(255), nullable=False)

    # Total byte count and chunk layout
    length: Mapped[int] = mapped_column(BigInteger, nullable=False)
    chunk_size: Mapped[int] = mapped_column(Integer, nullable=False)
    chunk_count: Mapped[int] = mapped_column(Integer, nullable=False)

    # Caller-supplied tags (JSONB on PostgreSQL)
    tags: Mapped[dict[str, Any]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=dict
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )


class AudioChunkTable(Base):
    """Chunk data table."""

    __tablename__ = "audio_file_chunks"

    blob_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    sequence: Mapped[int] = mapped_column(Integer, primary_key=True)
    data: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)

    # Used by the orphan sweep grace period
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )

    __table_args__ = (
        Index("idx_audio_file_chunks_blob_id", blob_id),
        Index("idx_audio_file_chunks_created_at", created_at),
    )
