"""Voice-message audio endpoints.

Thin HTTP adapter over the upload/download pipelines:
    POST   /api/chat/audio          stream request body into storage
    GET    /api/chat/audio/{id}     stream stored audio back
    DELETE /api/chat/audio/{id}     delete stored audio
"""

from __future__ import annotations

import logging
from urllib.parse import quote

import orjson
from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field
from starlette.responses import StreamingResponse

from audiovault.api.errors import BadRequestError
from audiovault.errors import BlobNotFoundError
from audiovault.observability.logging import LogContext
from audiovault.storage.chunked import ChunkedBlobStore
from audiovault.storage.download import DownloadPipeline
from audiovault.storage.resolver import AUDIO_PATH, resolve_address
from audiovault.storage.upload import UploadPipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix=AUDIO_PATH, tags=["Chat Audio"])

TAGS_HEADER = "x-audio-tags"


class UploadResponse(BaseModel):
    model_config = {"populate_by_name": True}

    id: str
    url: str
    filename: str
    length: int
    content_type: str = Field(alias="contentType")


class DeleteResponse(BaseModel):
    id: str
    deleted: bool


def get_store(request: Request) -> ChunkedBlobStore:
    """Return the store bound during application startup."""
    return request.app.state.audio_store


def _parse_tags(raw: str | None) -> dict[str, str]:
    if not raw:
        return {}
    try:
        parsed = orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        raise BadRequestError(f"Invalid {TAGS_HEADER} header: {e.msg}") from e
    if not isinstance(parsed, dict):
        raise BadRequestError(f"{TAGS_HEADER} header must be a JSON object")
    return {str(key): str(value) for key, value in parsed.items()}


@router.post("", status_code=201, response_model=UploadResponse)
async def upload_audio(
    request: Request,
    filename: str = Query("voice-message.webm", min_length=1),
    store: ChunkedBlobStore = Depends(get_store),
) -> UploadResponse:
    """Store the raw request body as a new audio blob."""
    content_type = request.headers.get("content-type", "application/octet-stream")
    tags = _parse_tags(request.headers.get(TAGS_HEADER))

    pipeline = UploadPipeline(store, max_bytes=request.app.state.max_upload_bytes)
    result = await pipeline.upload(request.stream(), filename, content_type, tags)

    with LogContext(blob_id=result.id):
        logger.info(f"Audio file stored ({result.length} bytes, {result.chunk_count} chunks)")

    return UploadResponse(
        id=result.id,
        url=resolve_address(result.id, request.app.state.api_url),
        filename=result.filename,
        length=result.length,
        contentType=content_type,
    )


@router.get("/{blob_id}")
async def get_audio(
    blob_id: str,
    store: ChunkedBlobStore = Depends(get_store),
) -> StreamingResponse:
    """Stream stored audio by id."""
    audio = await DownloadPipeline(store).open(blob_id)
    if audio is None:
        raise BlobNotFoundError(blob_id)

    headers = {
        "Content-Length": str(audio.length),
        "Content-Disposition": f"inline; filename*=UTF-8''{quote(audio.filename)}",
        "Accept-Ranges": "none",
    }
    return StreamingResponse(
        audio.stream(),
        media_type=audio.content_type,
        headers=headers,
    )


@router.delete("/{blob_id}", response_model=DeleteResponse)
async def delete_audio(
    blob_id: str,
    store: ChunkedBlobStore = Depends(get_store),
) -> DeleteResponse:
    """Delete stored audio. Deleting an unknown id reports deleted=false."""
    deleted = await store.delete(blob_id)
    if deleted:
        with LogContext(blob_id=blob_id):
            logger.info("Audio file deleted")
    return DeleteResponse(id=blob_id, deleted=deleted)
