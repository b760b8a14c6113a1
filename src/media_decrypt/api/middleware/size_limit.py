"""
Request size limit middleware.

Rejects request bodies larger than the configured limit before they
reach the route handlers.
"""

import logging
from typing import Awaitable, Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

DEFAULT_MAX_REQUEST_SIZE = 5 * 1024 * 1024


def format_size(size_bytes: int) -> str:
    """
    Format byte size as human-readable string.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "5.0 MB")
    """
    for unit, divisor in [("GB", 1024**3), ("MB", 1024**2), ("KB", 1024)]:
        if size_bytes >= divisor:
            return f"{size_bytes / divisor:.1f} {unit}"
    return f"{size_bytes} bytes"


class SizeLimitMiddleware(BaseHTTPMiddleware):
    """Middleware to enforce a maximum request body size (413 when exceeded)."""

    def __init__(
        self,
        app: ASGIApp,
        *,
        max_request_size: int = DEFAULT_MAX_REQUEST_SIZE,
    ) -> None:
        super().__init__(app)
        self._max_request_size = max_request_size

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        content_length = request.headers.get("content-length")
        if content_length:
            try:
                request_size = int(content_length)
            except ValueError:
                return JSONResponse(
                    status_code=400,
                    content={
                        "error": {
                            "type": "invalid_content_length",
                            "message": "Content-Length header is not a number",
                        }
                    },
                )
            if request_size > self._max_request_size:
                logger.warning(
                    f"Request to {request.url.path} rejected: {format_size(request_size)} "
                    f"exceeds {format_size(self._max_request_size)}"
                )
                return JSONResponse(
                    status_code=413,
                    content={
                        "error": {
                            "type": "request_too_large",
                            "message": f"Request body exceeds {format_size(self._max_request_size)}",
                        }
                    },
                )

        return await call_next(request)
