"""
API middleware.

Request logging and body size limits.
"""

from media_decrypt.api.middleware.logging import RequestLoggingMiddleware
from media_decrypt.api.middleware.size_limit import SizeLimitMiddleware

__all__ = ["RequestLoggingMiddleware", "SizeLimitMiddleware"]
