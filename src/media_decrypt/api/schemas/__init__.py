"""
API schemas.

Request bodies, response bodies and HTTP exception types.
"""

from media_decrypt.api.schemas.exceptions import (
    APIException,
    IntegrityError,
    InternalError,
    NotFoundError,
    UpstreamError,
    ValidationError,
    to_api_exception,
)
from media_decrypt.api.schemas.requests import DecodeRequestBody
from media_decrypt.api.schemas.responses import DecodeResponse, DeleteResponse, HealthResponse

__all__ = [
    "APIException",
    "IntegrityError",
    "InternalError",
    "NotFoundError",
    "UpstreamError",
    "ValidationError",
    "to_api_exception",
    "DecodeRequestBody",
    "DecodeResponse",
    "DeleteResponse",
    "HealthResponse",
]
