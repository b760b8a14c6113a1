"""
Media Decrypt Crypto Module.

Key expansion and authenticated decryption of encrypted media blobs.
"""

from .decryptor import compute_mac, decrypt_media, encrypt_media
from .keys import (
    ExpandedMediaKey,
    MediaType,
    decode_media_key,
    expand_media_key,
    resolve_media_type,
)

__all__ = [
    # Keys
    "MediaType",
    "ExpandedMediaKey",
    "expand_media_key",
    "decode_media_key",
    "resolve_media_type",
    # Decryption
    "decrypt_media",
    "encrypt_media",
    "compute_mac",
]
