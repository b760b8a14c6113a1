"""
Pydantic response schemas for API endpoints.

All API responses conform to these schemas for consistent output.
"""

from pydantic import BaseModel, ConfigDict, Field


class DecodeResponse(BaseModel):
    """Response of POST /decode."""

    model_config = ConfigDict(populate_by_name=True)

    status: str = Field("ok", description="Always 'ok' on success")
    download_url: str = Field(..., alias="downloadUrl", description="Link to hand out")
    static_url: str = Field(..., alias="staticUrl", description="Persistent-access link")
    filename: str = Field(..., description="Stored filename")
    artifact_id: str = Field(..., alias="artifactId", description="Artifact id")
    size: int = Field(..., description="Plaintext size in bytes")
    access_mode: str = Field(..., alias="accessMode", description="one_time or persistent")


class DeleteResponse(BaseModel):
    """Response of DELETE /downloads/{filename}."""

    status: str = Field("deleted", description="Always 'deleted' on success")
    filename: str = Field(..., description="Filename that was deleted")


class HealthResponse(BaseModel):
    """Response of GET /health."""

    status: str = Field("ok", description="Service status")
    version: str = Field(..., description="Service version")
    retention: str = Field(..., description="Retention sweeper status")
    artifacts: int = Field(0, description="Active artifacts in the store")
