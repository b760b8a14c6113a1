"""
Pydantic models for the artifact store.

Defines metadata, operation results and sweep results used throughout
the artifacts module.
"""

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, field_validator


class AccessMode(Enum):
    """How an artifact may be retrieved."""

    ONE_TIME = "one_time"
    PERSISTENT = "persistent"


class ArtifactStatus(Enum):
    """Lifecycle status of an artifact."""

    ACTIVE = "active"
    CONSUMED = "consumed"
    DELETED = "deleted"


class StorageError(Enum):
    """Types of storage errors."""

    NOT_FOUND = "not_found"
    INVALID_ID = "invalid_id"
    WRITE_FAILED = "write_failed"
    READ_FAILED = "read_failed"


class ArtifactMetadata(BaseModel):
    """Metadata associated with a stored artifact."""

    artifact_id: str = Field(description="Unique UUID for the artifact")
    filename: str = Field(description="Download filename (id plus extension)")
    mime_type: str | None = Field(default=None, description="MIME hint supplied at put time")
    size_bytes: int = Field(description="Size in bytes")
    content_hash: str = Field(description="SHA256 hash of content")
    created_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
        description="ISO timestamp of creation",
    )
    access_mode: AccessMode = Field(description="One-time or persistent access")
    status: ArtifactStatus = Field(
        default=ArtifactStatus.ACTIVE, description="Current status"
    )
    storage_path: Path = Field(description="Path of the content file")

    @field_validator("access_mode", mode="before")
    @classmethod
    def validate_access_mode(cls, v):
        """Convert string to AccessMode enum."""
        if isinstance(v, str):
            return AccessMode(v)
        return v

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v):
        """Convert string to ArtifactStatus enum."""
        if isinstance(v, str):
            return ArtifactStatus(v)
        return v


class StorageResult(BaseModel):
    """Result of an artifact store operation."""

    success: bool = Field(description="Whether operation succeeded")
    artifact_id: str | None = Field(default=None, description="Artifact ID involved")
    content: bytes | None = Field(default=None, description="Content for read operations")
    metadata: ArtifactMetadata | None = Field(default=None, description="Artifact metadata")
    error: StorageError | None = Field(default=None, description="Error kind if failed")
    message: str | None = Field(default=None, description="Error message if failed")

    @property
    def not_found(self) -> bool:
        """Return True if the artifact was absent, consumed or expired."""
        return self.error in (StorageError.NOT_FOUND, StorageError.INVALID_ID)


class SweepResult(BaseModel):
    """Result of a retention sweep."""

    scanned_count: int = Field(default=0, description="Aged artifacts found")
    deleted_count: int = Field(default=0, description="Artifacts deleted")
    reclaimed_count: int = Field(default=0, description="Leftover claimed artifacts removed")
    skipped_count: int = Field(default=0, description="Artifacts already gone")
    freed_bytes: int = Field(default=0, description="Bytes of storage freed")
    errors: list[str] = Field(default_factory=list, description="Any errors encountered")

    @property
    def success(self) -> bool:
        return not self.errors
