"""JSON error bodies for the audio API.

Every error response carries the same shape:

    {"messages": [{"code": "NotFound", "messageType": "Error",
                   "text": "Audio file not found: ...", "timestamp": "..."}]}
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from enum import Enum

from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from audiovault.errors import (
    AudioStoreError,
    BlobNotFoundError,
    DeleteFailure,
    ReadFailure,
    StoreNotInitialized,
    UploadAborted,
    WriteFailure,
)
from audiovault.storage.upload import UploadTooLarge

logger = logging.getLogger(__name__)


class MessageType(str, Enum):
    ERROR = "Error"  # caller's fault
    EXCEPTION = "Exception"  # server-side failure


class Message(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    code: str
    message_type: MessageType = Field(alias="messageType")
    text: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ErrorBody(BaseModel):
    messages: list[Message]


def error_body(code: str, text: str, message_type: MessageType = MessageType.ERROR) -> dict:
    """Build a serialized single-message error body."""
    body = ErrorBody(messages=[Message(code=code, message_type=message_type, text=text)])
    return body.model_dump(mode="json", by_alias=True)


class ApiError(Exception):
    """Request-level error raised by route handlers."""

    status_code = 500
    code = "InternalServerError"

    def __init__(self, text: str):
        self.text = text
        super().__init__(text)


class BadRequestError(ApiError):
    status_code = 400
    code = "BadRequest"


# Checked in order; subclasses before their bases
_STORE_ERRORS: list[tuple[type[AudioStoreError], int, str, MessageType]] = [
    (BlobNotFoundError, 404, "NotFound", MessageType.ERROR),
    (StoreNotInitialized, 503, "StoreNotInitialized", MessageType.EXCEPTION),
    (UploadAborted, 400, "UploadAborted", MessageType.ERROR),
    (WriteFailure, 500, "WriteFailure", MessageType.EXCEPTION),
    (ReadFailure, 500, "ReadFailure", MessageType.EXCEPTION),
    (DeleteFailure, 500, "DeleteFailure", MessageType.EXCEPTION),
]


def status_for(exc: AudioStoreError) -> tuple[int, str, MessageType]:
    """Map a storage error to (HTTP status, code, message type)."""
    if isinstance(exc, UploadAborted) and isinstance(exc.__cause__, UploadTooLarge):
        return 413, "PayloadTooLarge", MessageType.ERROR
    for error_type, status_code, code, message_type in _STORE_ERRORS:
        if isinstance(exc, error_type):
            return status_code, code, message_type
    return 500, "InternalServerError", MessageType.EXCEPTION


async def api_exception_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.code, exc.text))


async def store_exception_handler(request: Request, exc: AudioStoreError) -> JSONResponse:
    """Render storage errors; server-side failures are logged with their cause."""
    status_code, code, message_type = status_for(exc)
    if status_code >= 500:
        logger.error(f"{code}: {exc}", exc_info=exc)
    return JSONResponse(status_code=status_code, content=error_body(code, str(exc), message_type))


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content=error_body(
            "InternalServerError", "An unexpected error occurred", MessageType.EXCEPTION
        ),
    )
