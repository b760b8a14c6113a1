"""
Decode endpoint.

Fetches and decrypts media, stores the plaintext and returns download links.
"""

import logging

from fastapi import APIRouter, Depends

from media_decrypt.api.deps import get_config, get_service
from media_decrypt.api.schemas.exceptions import to_api_exception
from media_decrypt.api.schemas.requests import DecodeRequestBody
from media_decrypt.api.schemas.responses import DecodeResponse
from media_decrypt.artifacts import AccessMode
from media_decrypt.core.config import ServiceConfig
from media_decrypt.core.exceptions import MediaDecryptError
from media_decrypt.service import MediaDecryptService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/decode", response_model=DecodeResponse)
def decode_media(
    body: DecodeRequestBody | None = None,
    service: MediaDecryptService = Depends(get_service),
    config: ServiceConfig = Depends(get_config),
) -> DecodeResponse:
    """
    Decode media, save it and return download link(s).

    The returned downloadUrl is the one-time link for one-time artifacts
    and the static link for persistent ones.

    Returns:
        DecodeResponse with links, filename and size
    """
    body = body or DecodeRequestBody()

    try:
        result = service.decode_and_store(body.to_decode_request())
    except MediaDecryptError as e:
        logger.warning(f"[decode] {e.__class__.__name__}: {e.message}")
        raise to_api_exception(e) from e

    base_url = config.public_base_url
    one_time_url = f"{base_url}/download/{result.filename}"
    static_url = f"{base_url}/downloads/{result.filename}"
    access_mode = result.metadata.access_mode

    return DecodeResponse(
        download_url=one_time_url if access_mode is AccessMode.ONE_TIME else static_url,
        static_url=static_url,
        filename=result.filename,
        artifact_id=result.artifact_id,
        size=result.size,
        access_mode=access_mode.value,
    )
