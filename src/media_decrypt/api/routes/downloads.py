"""
Download endpoints.

One-time download, persistent download and manual deletion of stored
artifacts. Paths take the stored filename (`<artifact_id><ext>`); the
bare artifact id is accepted too.
"""

import logging

from fastapi import APIRouter, Depends, Response

from media_decrypt.api.deps import get_service, get_store
from media_decrypt.api.schemas.exceptions import (
    InternalError,
    NotFoundError,
    ValidationError,
    to_api_exception,
)
from media_decrypt.api.schemas.responses import DeleteResponse
from media_decrypt.artifacts import ArtifactMetadata, ArtifactStore, StorageError
from media_decrypt.core.exceptions import StorageReadFailed
from media_decrypt.service import MediaDecryptService

router = APIRouter()
logger = logging.getLogger(__name__)

PERSISTENT_CACHE_CONTROL = "public, max-age=604800"


def _artifact_id_from(filename: str) -> str:
    """Strip the extension from a download filename, rejecting bad names."""
    if not filename or "/" in filename or ".." in filename:
        raise ValidationError(message="Invalid filename", error_type="invalid_filename")
    artifact_id = filename.split(".", 1)[0]
    if not ArtifactStore.is_valid_id(artifact_id):
        raise ValidationError(message="Invalid filename", error_type="invalid_filename")
    return artifact_id


def _attachment(content: bytes, metadata: ArtifactMetadata, **headers: str) -> Response:
    return Response(
        content=content,
        media_type=metadata.mime_type or "application/octet-stream",
        headers={
            "Content-Disposition": f'attachment; filename="{metadata.filename}"',
            **headers,
        },
    )


@router.get("/download/{filename}")
def download_once(
    filename: str,
    service: MediaDecryptService = Depends(get_service),
) -> Response:
    """
    Send an artifact; one-time artifacts are deleted as they are claimed.

    A second request for the same one-time artifact returns 404.
    """
    artifact_id = _artifact_id_from(filename)
    try:
        found = service.retrieve(artifact_id, consume=True)
    except StorageReadFailed as e:
        raise to_api_exception(e) from e
    if found is None:
        raise NotFoundError()

    content, metadata = found
    return _attachment(content, metadata)


@router.get("/downloads/{filename}")
def download_persistent(
    filename: str,
    service: MediaDecryptService = Depends(get_service),
) -> Response:
    """Send a persistent artifact without deleting it."""
    artifact_id = _artifact_id_from(filename)
    try:
        found = service.retrieve(artifact_id, consume=False)
    except StorageReadFailed as e:
        raise to_api_exception(e) from e
    if found is None:
        raise NotFoundError()

    content, metadata = found
    return _attachment(content, metadata, **{"Cache-Control": PERSISTENT_CACHE_CONTROL})


@router.delete("/downloads/{filename}", response_model=DeleteResponse)
def delete_artifact(
    filename: str,
    store: ArtifactStore = Depends(get_store),
) -> DeleteResponse:
    """Delete an artifact."""
    artifact_id = _artifact_id_from(filename)
    result = store.delete(artifact_id)
    if result.error is StorageError.NOT_FOUND:
        raise NotFoundError(message="not_found")
    if not result.success:
        logger.error(f"[delete] {artifact_id}: {result.message}")
        raise InternalError(message=result.message or "Failed to delete artifact", error_type="storage_write_failed")

    logger.info(f"[delete] deleted artifact {artifact_id}")
    return DeleteResponse(filename=filename)

