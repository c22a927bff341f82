"""Request correlation middleware.

Every request gets an id: the caller's ``x-request-id`` header when present,
otherwise a fresh uuid4. The id is available as ``request.state.request_id``,
tags all log records emitted while the request is handled and is echoed back
in the response.
"""

from __future__ import annotations

import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from audiovault.observability.logging import LogContext

REQUEST_ID_HEADER = "x-request-id"


class CorrelationMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        with LogContext(request_id=request_id):
            response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
