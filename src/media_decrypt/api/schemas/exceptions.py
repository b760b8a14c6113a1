"""
Exception classes for API error handling.
"""

from media_decrypt.core.exceptions import (
    FetchError,
    IntegrityCheckFailed,
    MalformedBlob,
    MediaDecryptError,
    MediaIntegrityError,
    PaddingError,
    StorageReadFailed,
    StorageWriteFailed,
    ValidationError as CoreValidationError,
)


class APIException(Exception):
    """
    Base exception for API errors.

    All API exceptions should inherit from this class to ensure
    consistent error response formatting.
    """

    status_code: int = 500
    error_type: str = "api_error"
    message: str = "An error occurred"
    detail: str | None = None

    def __init__(
        self,
        message: str | None = None,
        detail: str | None = None,
        status_code: int | None = None,
        error_type: str | None = None,
    ) -> None:
        self.message = message or self.message
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code
        if error_type is not None:
            self.error_type = error_type
        super().__init__(self.message)


class ValidationError(APIException):
    """Exception raised when request validation fails."""

    status_code = 400
    error_type = "validation_error"
    message = "Request validation failed"


class NotFoundError(APIException):
    """Exception raised when a requested artifact is absent, consumed or expired."""

    status_code = 404
    error_type = "not_found"
    message = "Not found"


class IntegrityError(APIException):
    """Exception raised when media fails authentication or decryption."""

    status_code = 422
    error_type = "integrity_check_failed"
    message = "Media failed integrity check"


class UpstreamError(APIException):
    """Exception raised when the encrypted media cannot be fetched."""

    status_code = 502
    error_type = "fetch_failed"
    message = "Failed to fetch encrypted media"


class InternalError(APIException):
    """Exception raised for internal server errors."""

    status_code = 500
    error_type = "internal_error"
    message = "Internal server error"


def to_api_exception(error: MediaDecryptError) -> APIException:
    """
    Map a pipeline error onto its HTTP representation.

    Args:
        error: Error raised by the decrypt pipeline

    Returns:
        APIException with the matching status code and error type
    """
    if isinstance(error, CoreValidationError):
        return ValidationError(message=error.message, detail=error.field)
    if isinstance(error, FetchError):
        return UpstreamError(message=error.message)
    if isinstance(error, MediaIntegrityError):
        error_type = {
            IntegrityCheckFailed: "integrity_check_failed",
            PaddingError: "padding_error",
            MalformedBlob: "malformed_blob",
        }.get(type(error), "integrity_check_failed")
        return IntegrityError(message=error.message, error_type=error_type)
    if isinstance(error, StorageWriteFailed):
        return InternalError(message=error.message, error_type="storage_write_failed")
    if isinstance(error, StorageReadFailed):
        return InternalError(message=error.message, error_type="storage_read_failed")
    return InternalError(message="failed_to_decode", detail=error.message)
