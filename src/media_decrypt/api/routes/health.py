"""
Health check endpoint.
"""

from fastapi import APIRouter, Depends

from media_decrypt.api.deps import get_store, get_sweeper
from media_decrypt.api.schemas.responses import HealthResponse
from media_decrypt.artifacts import ArtifactStore, RetentionSweeper
from media_decrypt.version import __version__

router = APIRouter()


@router.get("", response_model=HealthResponse)
def health_check(
    store: ArtifactStore = Depends(get_store),
    sweeper: RetentionSweeper = Depends(get_sweeper),
) -> HealthResponse:
    """Report service status, version and retention sweeper state."""
    stats = store.get_storage_stats()
    return HealthResponse(
        status="ok",
        version=__version__,
        retention=sweeper.status.value,
        artifacts=stats.get("total_count", 0),
    )
