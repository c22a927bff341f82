"""Reference resolver: externally reachable addresses for stored audio."""

from __future__ import annotations

from audiovault.config import settings

AUDIO_PATH = "/api/chat/audio"


def resolve_address(blob_id: str, base_location: str | None = None) -> str:
    """Return ``<base_location>/api/chat/audio/<blob_id>``.

    Never touches storage and does not check that the blob exists; a
    missing blob is reported when the address is dereferenced.
    """
    base = settings.api_url if base_location is None else base_location
    return f"{base.rstrip('/')}{AUDIO_PATH}/{blob_id}"
