"""Persistence layer for audiovault.

This module provides:
- Async engine and the explicit StoreHandle produced by initialize()
- SQLAlchemy ORM models for blob metadata and chunk rows
- Metadata catalog and chunk repository over a single session
"""

from audiovault.persistence.catalog import MetadataCatalog
from audiovault.persistence.chunks import ChunkRepository
from audiovault.persistence.db import StoreHandle, create_engine, initialize
from audiovault.persistence.tables import AudioChunkTable, AudioFileTable, Base

__all__ = [
    # DB
    "StoreHandle",
    "create_engine",
    "initialize",
    # Tables
    "Base",
    "AudioFileTable",
    "AudioChunkTable",
    # Repositories
    "MetadataCatalog",
    "ChunkRepository",
]
