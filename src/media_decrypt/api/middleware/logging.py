"""
Request logging middleware.

Logs one structured record per request with timing information. Download
paths embed artifact handles, which are bearer capabilities for one-time
media, so only a short prefix of the handle reaches the log.
"""

import logging
import re
import time
from typing import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

# /download/<id>[.ext] and /downloads/<id>[.ext]
_DOWNLOAD_PATH = re.compile(r"^(/downloads?/)([0-9A-Za-z-]{8})[^/]*$")


def mask_download_path(path: str) -> str:
    """Shorten the artifact handle in a download path to its first 8 characters."""
    match = _DOWNLOAD_PATH.match(path)
    if match is None:
        return path
    return f"{match.group(1)}{match.group(2)}***"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log every request with status, duration and bytes sent.

    Query strings and bodies are never logged: decode requests carry
    media keys and media URLs can carry access tokens.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        logger_instance: logging.Logger | None = None,
        skip_paths: set[str] | None = None,
    ) -> None:
        """
        Initialize the logging middleware.

        Args:
            app: ASGI application
            logger_instance: Custom logger instance
            skip_paths: Paths to skip logging for (default: {"/health"})
        """
        super().__init__(app)
        self._logger = logger_instance or logger
        self._skip_paths = skip_paths if skip_paths is not None else {"/health"}

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        if request.url.path in self._skip_paths:
            return await call_next(request)

        started = time.perf_counter()
        fields = {
            "method": request.method,
            "path": mask_download_path(request.url.path),
            "client_ip": self._client_ip(request),
        }

        try:
            response = await call_next(request)
        except Exception as e:
            fields["duration_ms"] = self._elapsed_ms(started)
            self._logger.error(
                f"{fields['method']} {fields['path']} failed after "
                f"{fields['duration_ms']:.2f}ms: {type(e).__name__}",
                extra={"event": "request_failed", **fields},
                exc_info=True,
            )
            raise

        fields["duration_ms"] = self._elapsed_ms(started)
        fields["status_code"] = response.status_code
        fields["bytes_sent"] = int(response.headers.get("content-length", 0))
        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        self._logger.log(
            level,
            f"{fields['method']} {fields['path']} -> {response.status_code} "
            f"({fields['bytes_sent']} bytes, {fields['duration_ms']:.2f}ms)",
            extra={"event": "request_completed", **fields},
        )
        response.headers["X-Process-Time"] = f"{fields['duration_ms']:.2f}"
        return response

    @staticmethod
    def _elapsed_ms(started: float) -> float:
        return round((time.perf_counter() - started) * 1000, 2)

    @staticmethod
    def _client_ip(request: Request) -> str:
        """First hop of X-Forwarded-For, else the socket peer."""
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
        if request.client:
            return request.client.host
        return "unknown"
