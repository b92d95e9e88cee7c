"""Per-request middleware.

- RequestIDMiddleware tags every request with an ``X-Request-ID`` (taken
  from the incoming header when present) and echoes it on the response.
- BodySizeLimitMiddleware rejects bodies larger than the configured cap
  with 413, whether or not a Content-Length is declared.
"""

import logging
from uuid import uuid4

from fastapi import HTTPException, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a request id to request state and response headers."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class BodySizeLimitMiddleware:
    """Reject request bodies larger than ``max_bytes``.

    A declared Content-Length over the cap is rejected before the app runs.
    Bodies without one (chunked transfer) are counted as they are received,
    and reading past the cap raises a 413 HTTPException inside the app.
    """

    def __init__(self, app: ASGIApp, max_bytes: int = 16 * 1024) -> None:
        self.app = app
        self.max_bytes = max_bytes

    def _log_rejection(self, request: Request, size: int) -> None:
        logger.warning(
            f"Rejected {request.method} {request.url.path}: body of "
            f"{size} bytes exceeds {self.max_bytes}",
            extra={"request_id": getattr(request.state, "request_id", None)},
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        content_length = request.headers.get("content-length")

        if content_length is not None:
            try:
                declared = int(content_length)
            except ValueError:
                response = JSONResponse(
                    status_code=400,
                    content={"code": 400, "message": "INVALID_CONTENT_LENGTH"},
                )
                await response(scope, receive, send)
                return

            if declared > self.max_bytes:
                self._log_rejection(request, declared)
                response = JSONResponse(
                    status_code=413,
                    content={"code": 413, "message": "PAYLOAD_TOO_LARGE"},
                )
                await response(scope, receive, send)
                return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    self._log_rejection(request, received)
                    raise HTTPException(status_code=413)
            return message

        await self.app(scope, limited_receive, send)
