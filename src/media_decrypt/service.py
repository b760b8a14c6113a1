"""
Decrypt-and-store service.

The single entry point that ties the pipeline together:
validate -> fetch -> expand key -> verify and decrypt -> transform -> store.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from media_decrypt.artifacts import AccessMode, ArtifactMetadata, ArtifactStore, StorageError
from media_decrypt.core.exceptions import (
    DecryptionError,
    StorageReadFailed,
    StorageWriteFailed,
    ValidationError,
)
from media_decrypt.crypto import (
    MediaType,
    decode_media_key,
    decrypt_media,
    expand_media_key,
    resolve_media_type,
)
from media_decrypt.fetch import MediaFetcher

logger = logging.getLogger(__name__)

# Post-decrypt hook, e.g. a transcoder: (plaintext, mime_type) -> (bytes, mime_type)
MediaTransform = Callable[[bytes, str | None], tuple[bytes, str | None]]


@dataclass(frozen=True)
class DecodeRequest:
    """A normalized decode request."""

    url: str
    media_key: str
    type_hint: str | None = None
    mime_type: str | None = None
    access_mode: AccessMode | None = None

    def validate(self) -> None:
        """Reject missing mandatory fields before any work is done."""
        missing = [
            name
            for name, value in (("url", self.url), ("mediaKey", self.media_key))
            if not value
        ]
        if missing:
            raise ValidationError(
                f"{' and '.join(missing)} {'is' if len(missing) == 1 else 'are'} required",
                field=missing[0],
                details={"missing": missing},
            )


@dataclass(frozen=True)
class DecodeResult:
    """Outcome of a successful decode-and-store."""

    artifact_id: str
    metadata: ArtifactMetadata
    media_type: MediaType

    @property
    def filename(self) -> str:
        return self.metadata.filename

    @property
    def size(self) -> int:
        return self.metadata.size_bytes


class MediaDecryptService:
    """
    Canonical decrypt-and-store pipeline.

    Input normalization (message-type hints) happens before the core,
    an optional transform (e.g. transcoding) after it.
    """

    def __init__(
        self,
        store: ArtifactStore,
        fetcher: MediaFetcher | None = None,
        transform: MediaTransform | None = None,
    ):
        """
        Initialize the service.

        Args:
            store: Artifact store receiving decrypted media
            fetcher: Fetcher for encrypted blobs (default: MediaFetcher())
            transform: Optional post-decrypt hook
        """
        self._store = store
        self._fetcher = fetcher or MediaFetcher()
        self._transform = transform

    @property
    def store(self) -> ArtifactStore:
        return self._store

    def decrypt_bytes(
        self,
        blob: bytes,
        media_key: str,
        type_hint: str | None = None,
        mime_type: str | None = None,
    ) -> bytes:
        """
        Decrypt an already-fetched blob.

        Args:
            blob: Encrypted media bytes
            media_key: Base64 media key
            type_hint: Type tag or message-type hint
            mime_type: MIME hint used when type_hint is empty

        Returns:
            Plaintext bytes

        Raises:
            ValidationError: On bad key or type tag
            MediaIntegrityError: On tampered data or wrong key
            DecryptionError: If decryption yields no bytes
        """
        raw_key = decode_media_key(media_key)
        media_type = resolve_media_type(type_hint, mime_type)
        plaintext = decrypt_media(blob, expand_media_key(raw_key, media_type))
        if not plaintext:
            raise DecryptionError("Empty buffer returned from decoder")
        return plaintext

    def decode_and_store(self, request: DecodeRequest) -> DecodeResult:
        """
        Fetch, decrypt and store media.

        Args:
            request: Decode request

        Returns:
            DecodeResult describing the stored artifact

        Raises:
            ValidationError: On missing or malformed input
            FetchError: If the blob cannot be downloaded
            MediaIntegrityError: On tampered data or wrong key
            DecryptionError: If decryption yields no bytes
            StorageWriteFailed: If the artifact cannot be written
        """
        request.validate()

        # Validate key and type before touching the network
        raw_key = decode_media_key(request.media_key)
        media_type = resolve_media_type(request.type_hint, request.mime_type)
        key = expand_media_key(raw_key, media_type)

        blob = self._fetcher.fetch(request.url)
        plaintext = decrypt_media(blob, key)
        if not plaintext:
            raise DecryptionError("Empty buffer returned from decoder")

        mime_type = request.mime_type
        if self._transform is not None:
            plaintext, mime_type = self._transform(plaintext, mime_type)

        result = self._store.put(plaintext, mime_type=mime_type, access_mode=request.access_mode)
        if not result.success or result.metadata is None:
            raise StorageWriteFailed(
                result.message or "Failed to write artifact",
                artifact_id=result.artifact_id,
            )

        logger.info(
            f"Decoded {media_type.name.lower()} media into artifact {result.artifact_id} "
            f"({result.metadata.size_bytes} bytes)"
        )
        return DecodeResult(
            artifact_id=result.artifact_id,
            metadata=result.metadata,
            media_type=media_type,
        )

    def retrieve(self, artifact_id: str, *, consume: bool = True) -> tuple[bytes, ArtifactMetadata] | None:
        """
        Retrieve a stored artifact.

        Args:
            artifact_id: Artifact id
            consume: Use one-time semantics (default); otherwise only
                persistent artifacts are served

        Returns:
            (content, metadata), or None if absent, consumed or expired

        Raises:
            StorageReadFailed: If the artifact exists but cannot be read
        """
        if consume:
            result = self._store.consume(artifact_id)
        else:
            # One-time artifacts are never read through the persistent route
            metadata = self._store.get_metadata(artifact_id)
            if metadata is None or metadata.access_mode is not AccessMode.PERSISTENT:
                return None
            result = self._store.read(artifact_id)
        if result.success and result.content is not None and result.metadata is not None:
            return result.content, result.metadata
        if result.error is StorageError.READ_FAILED:
            raise StorageReadFailed(result.message or "Failed to read artifact", artifact_id=artifact_id)
        return None
