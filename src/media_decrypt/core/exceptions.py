"""
Media Decrypt Exception Hierarchy.

Defines the typed failures of the decrypt pipeline so callers can tell
bad input, network trouble, tampered data and storage faults apart
without matching on messages.
"""

from typing import Any


class MediaDecryptError(Exception):
    """
    Base exception for all Media Decrypt errors.

    All custom exceptions inherit from this class, allowing
    generic catch blocks and consistent error handling.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None):
        """
        Initialize a MediaDecryptError.

        Args:
            message: Human-readable error message
            details: Optional structured data for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation with details."""
        base = self.message
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{base} ({details_str})"
        return base

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(MediaDecryptError):
    """
    Errors during input validation.

    Raised before any cryptographic work when:
    - Required fields are missing
    - The media key is not valid base64
    - The media key has the wrong length
    - The type tag is not recognized
    """

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        """
        Initialize a ValidationError.

        Args:
            message: Human-readable error message
            field: Field name that failed validation
            details: Optional structured data for debugging
        """
        details = details or {}
        if field:
            details["field"] = field

        super().__init__(message, details=details)
        self.field = field


class InvalidKeyLength(ValidationError):
    """Raised when a raw media key is not exactly 32 bytes."""

    def __init__(
        self,
        message: str = "Media key must be 32 bytes",
        *,
        expected: int = 32,
        actual: int | None = None,
    ):
        details = {"expected": expected}
        if actual is not None:
            details["actual"] = actual
        super().__init__(message, field="mediaKey", details=details)
        self.expected = expected
        self.actual = actual


class UnknownTypeTag(ValidationError):
    """Raised when a type tag does not name a recognized media type."""

    def __init__(
        self,
        message: str = "Unknown media type tag",
        *,
        type_tag: str | None = None,
    ):
        details = {}
        if type_tag is not None:
            details["type_tag"] = type_tag
        super().__init__(message, field="messageType", details=details)
        self.type_tag = type_tag


class FetchError(MediaDecryptError):
    """
    Errors retrieving the encrypted blob.

    Raised when:
    - The connection fails or times out
    - The remote server answers with an error status
    """

    def __init__(
        self,
        message: str,
        *,
        url: str | None = None,
        status_code: int | None = None,
        attempts: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        """
        Initialize a FetchError.

        Args:
            message: Human-readable error message
            url: URL that was being fetched
            status_code: HTTP status code if a response was received
            attempts: Number of attempts made
            details: Optional structured data for debugging
        """
        details = details or {}
        if url:
            details["url"] = url
        if status_code:
            details["status_code"] = status_code
        if attempts is not None:
            details["attempts"] = attempts

        super().__init__(message, details=details)
        self.url = url
        self.status_code = status_code
        self.attempts = attempts


class MediaIntegrityError(MediaDecryptError):
    """
    The blob does not authenticate or decrypt under the given key.

    Either the data was tampered with or the key is wrong. Never retried.
    """


class MalformedBlob(MediaIntegrityError):
    """Raised when the blob is too short or not block aligned."""

    def __init__(
        self,
        message: str = "Encrypted blob is malformed",
        *,
        length: int | None = None,
    ):
        details = {}
        if length is not None:
            details["length"] = length
        super().__init__(message, details=details)
        self.length = length


class IntegrityCheckFailed(MediaIntegrityError):
    """Raised when the trailing MAC does not match the computed one."""

    def __init__(self, message: str = "Media MAC verification failed"):
        super().__init__(message)


class PaddingError(MediaIntegrityError):
    """Raised when PKCS#7 padding is invalid after decryption."""

    def __init__(self, message: str = "Invalid PKCS#7 padding"):
        super().__init__(message)


class DecryptionError(MediaDecryptError):
    """Raised when decryption completes but yields no usable output."""


class StorageWriteFailed(MediaDecryptError):
    """Raised when an artifact cannot be written to the storage medium."""

    def __init__(
        self,
        message: str = "Failed to write artifact",
        *,
        artifact_id: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if artifact_id:
            details["artifact_id"] = artifact_id
        super().__init__(message, details=details)
        self.artifact_id = artifact_id


class StorageReadFailed(MediaDecryptError):
    """Raised when an artifact exists but cannot be read back."""

    def __init__(
        self,
        message: str = "Failed to read artifact",
        *,
        artifact_id: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if artifact_id:
            details["artifact_id"] = artifact_id
        super().__init__(message, details=details)
        self.artifact_id = artifact_id


class ConfigurationError(MediaDecryptError):
    """
    Errors in configuration loading or validation.

    Raised when:
    - Required environment variables are malformed
    - Configuration values are out of range
    """

    def __init__(
        self,
        message: str,
        *,
        env_var: str | None = None,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        """
        Initialize a ConfigurationError.

        Args:
            message: Human-readable error message
            env_var: Environment variable name if applicable
            config_key: Configuration key if applicable
            details: Optional structured data for debugging
        """
        details = details or {}
        if env_var:
            details["env_var"] = env_var
        if config_key:
            details["config_key"] = config_key

        super().__init__(message, details=details)
        self.env_var = env_var
        self.config_key = config_key


def is_retriable_error(error: Exception) -> bool:
    """
    Determine if an error is suitable for retry.

    Only transport-level fetch failures qualify; validation and
    integrity failures are deterministic.

    Args:
        error: The exception to check

    Returns:
        True if the error should be retried
    """
    if isinstance(error, FetchError):
        if error.status_code is None:
            return True
        if error.status_code >= 500 or error.status_code == 429:
            return True
    return False
