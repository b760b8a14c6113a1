"""
Media blob decryption.

Wire format: AES-256-CBC(plaintext) || HMAC-SHA256(mac_key, iv || ciphertext)[:10].
The MAC is verified before any decryption is attempted.
"""

import hashlib
import hmac

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from media_decrypt.core.exceptions import IntegrityCheckFailed, MalformedBlob, PaddingError
from media_decrypt.crypto.keys import ExpandedMediaKey

MAC_LENGTH = 10
BLOCK_SIZE = 16


def compute_mac(key: ExpandedMediaKey, ciphertext: bytes) -> bytes:
    """Compute the truncated media MAC over iv || ciphertext."""
    return hmac.new(key.mac_key, key.iv + ciphertext, hashlib.sha256).digest()[:MAC_LENGTH]


def decrypt_media(blob: bytes, key: ExpandedMediaKey) -> bytes:
    """
    Verify and decrypt an encrypted media blob.

    Args:
        blob: Encrypted bytes as downloaded (ciphertext || 10-byte MAC)
        key: Expanded media key

    Returns:
        Plaintext bytes

    Raises:
        MalformedBlob: If the blob is shorter than the MAC or not block aligned
        IntegrityCheckFailed: If the MAC does not match
        PaddingError: If PKCS#7 padding is invalid
    """
    if len(blob) < MAC_LENGTH:
        raise MalformedBlob(
            f"Encrypted blob is {len(blob)} bytes, shorter than the {MAC_LENGTH}-byte MAC",
            length=len(blob),
        )

    ciphertext = blob[:-MAC_LENGTH]
    tag = blob[-MAC_LENGTH:]

    if not hmac.compare_digest(compute_mac(key, ciphertext), tag):
        raise IntegrityCheckFailed()

    if not ciphertext or len(ciphertext) % BLOCK_SIZE:
        raise MalformedBlob(
            f"Ciphertext length {len(ciphertext)} is not a positive multiple of {BLOCK_SIZE}",
            length=len(blob),
        )

    decryptor = Cipher(algorithms.AES(key.cipher_key), modes.CBC(key.iv)).decryptor()
    padded = decryptor.update(ciphertext) + decryptor.finalize()

    unpadder = padding.PKCS7(BLOCK_SIZE * 8).unpadder()
    try:
        return unpadder.update(padded) + unpadder.finalize()
    except ValueError:
        raise PaddingError() from None


def encrypt_media(plaintext: bytes, key: ExpandedMediaKey) -> bytes:
    """Encrypt plaintext into the media wire format."""
    padder = padding.PKCS7(BLOCK_SIZE * 8).padder()
    padded = padder.update(plaintext) + padder.finalize()

    encryptor = Cipher(algorithms.AES(key.cipher_key), modes.CBC(key.iv)).encryptor()
    ciphertext = encryptor.update(padded) + encryptor.finalize()
    return ciphertext + compute_mac(key, ciphertext)
