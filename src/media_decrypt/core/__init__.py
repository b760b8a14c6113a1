"""
Media Decrypt Core Module.

Provides configuration values and the exception hierarchy.
"""

__all__ = [
    # Configuration
    "ServiceConfig",
    "StoreConfig",
    "RetentionConfig",
    "FetchConfig",
    # Exceptions
    "MediaDecryptError",
    "ValidationError",
    "InvalidKeyLength",
    "UnknownTypeTag",
    "FetchError",
    "MediaIntegrityError",
    "MalformedBlob",
    "IntegrityCheckFailed",
    "PaddingError",
    "DecryptionError",
    "StorageWriteFailed",
    "StorageReadFailed",
    "ConfigurationError",
]

from media_decrypt.core.config import (
    FetchConfig,
    RetentionConfig,
    ServiceConfig,
    StoreConfig,
)
from media_decrypt.core.exceptions import (
    ConfigurationError,
    DecryptionError,
    FetchError,
    IntegrityCheckFailed,
    InvalidKeyLength,
    MalformedBlob,
    MediaDecryptError,
    MediaIntegrityError,
    PaddingError,
    StorageReadFailed,
    StorageWriteFailed,
    UnknownTypeTag,
    ValidationError,
)
