"""
Media key expansion.

Derives the 112 bytes of key material used to verify and decrypt a
media blob from the 32-byte media key and the media type's info string.
"""

import base64
import binascii
from dataclasses import dataclass
from enum import Enum

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from media_decrypt.core.exceptions import InvalidKeyLength, UnknownTypeTag, ValidationError

MEDIA_KEY_LENGTH = 32
EXPANDED_KEY_LENGTH = 112
HKDF_SALT = bytes(32)


class MediaType(Enum):
    """Recognized media types and their HKDF info strings."""

    AUDIO = "WhatsApp Audio Keys"
    IMAGE = "WhatsApp Image Keys"
    VIDEO = "WhatsApp Video Keys"
    DOCUMENT = "WhatsApp Document Keys"

    @property
    def info(self) -> bytes:
        """Return the HKDF info parameter for this type."""
        return self.value.encode("utf-8")

    @classmethod
    def parse(cls, tag: "MediaType | str") -> "MediaType":
        """
        Parse a strict type tag.

        Accepts a MediaType, an enum name in any case ("Audio", "AUDIO")
        or the info string itself ("WhatsApp Audio Keys").

        Raises:
            UnknownTypeTag: If the tag is not recognized
        """
        if isinstance(tag, cls):
            return tag
        if isinstance(tag, str):
            for media_type in cls:
                if tag == media_type.value or tag.upper() == media_type.name:
                    return media_type
        raise UnknownTypeTag(f"Unknown media type tag: {tag!r}", type_tag=str(tag))


# Message-type hints as sent by messaging clients
MESSAGE_TYPE_HINTS: dict[str, MediaType] = {
    "audiomessage": MediaType.AUDIO,
    "pttmessage": MediaType.AUDIO,
    "imagemessage": MediaType.IMAGE,
    "stickermessage": MediaType.IMAGE,
    "videomessage": MediaType.VIDEO,
    "ptvmessage": MediaType.VIDEO,
    "documentmessage": MediaType.DOCUMENT,
    "documentwithcaptionmessage": MediaType.DOCUMENT,
}


def resolve_media_type(
    hint: str | None = None,
    mime_type: str | None = None,
) -> MediaType:
    """
    Normalize a loose type hint into a MediaType.

    Resolution order: strict tag (name or info string), message-type
    hint ("audioMessage"), then the mime type prefix when no hint is
    given at all.

    Args:
        hint: Type tag or message-type hint
        mime_type: MIME type used when hint is empty

    Returns:
        Resolved MediaType

    Raises:
        UnknownTypeTag: If a non-empty hint is not recognized
    """
    if hint:
        hint = hint.strip()
        mapped = MESSAGE_TYPE_HINTS.get(hint.lower())
        if mapped is not None:
            return mapped
        return MediaType.parse(hint)

    mime = (mime_type or "").lower()
    if mime.startswith("audio/"):
        return MediaType.AUDIO
    if mime.startswith("image/"):
        return MediaType.IMAGE
    if mime.startswith("video/"):
        return MediaType.VIDEO
    return MediaType.DOCUMENT


def decode_media_key(media_key_b64: str) -> bytes:
    """
    Decode a base64 media key.

    Raises:
        ValidationError: If the value is empty or not valid base64
    """
    if not media_key_b64:
        raise ValidationError("mediaKey is required", field="mediaKey")
    try:
        return base64.b64decode(media_key_b64, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("mediaKey is not valid base64", field="mediaKey") from None


@dataclass(frozen=True)
class ExpandedMediaKey:
    """The 112-byte HKDF output, sliced into its four parts."""

    material: bytes

    def __post_init__(self) -> None:
        if len(self.material) != EXPANDED_KEY_LENGTH:
            raise ValueError(
                f"Expanded key must be {EXPANDED_KEY_LENGTH} bytes, got {len(self.material)}"
            )

    @property
    def iv(self) -> bytes:
        return self.material[0:16]

    @property
    def cipher_key(self) -> bytes:
        return self.material[16:48]

    @property
    def mac_key(self) -> bytes:
        return self.material[48:80]

    @property
    def ref_key(self) -> bytes:
        """Reserved; not used for decryption."""
        return self.material[80:112]

    def __repr__(self) -> str:
        return "ExpandedMediaKey(<redacted>)"


def expand_media_key(raw_key: bytes, media_type: MediaType | str) -> ExpandedMediaKey:
    """
    Expand a media key with HKDF-SHA256.

    Extract uses a 32-byte zero salt; expand uses the media type's info
    string and produces 112 bytes. Pure and deterministic.

    Args:
        raw_key: 32-byte media key
        media_type: MediaType or strict type tag

    Returns:
        ExpandedMediaKey

    Raises:
        InvalidKeyLength: If raw_key is not 32 bytes
        UnknownTypeTag: If media_type is not recognized
    """
    if len(raw_key) != MEDIA_KEY_LENGTH:
        raise InvalidKeyLength(
            f"Media key must be {MEDIA_KEY_LENGTH} bytes, got {len(raw_key)}",
            expected=MEDIA_KEY_LENGTH,
            actual=len(raw_key),
        )
    resolved = MediaType.parse(media_type)

    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=EXPANDED_KEY_LENGTH,
        salt=HKDF_SALT,
        info=resolved.info,
    )
    return ExpandedMediaKey(hkdf.derive(raw_key))
