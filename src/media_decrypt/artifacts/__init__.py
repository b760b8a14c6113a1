"""
Media Decrypt Artifacts Module.

Provides the artifact store for decrypted media and the retention
sweeper that reclaims stale artifacts.
"""

from .models import (
    AccessMode,
    ArtifactMetadata,
    ArtifactStatus,
    StorageError,
    StorageResult,
    SweepResult,
)
from .storage import ArtifactStore
from .lifecycle import RetentionSweeper, SweeperStatus

__all__ = [
    # Models
    "AccessMode",
    "ArtifactMetadata",
    "ArtifactStatus",
    "StorageError",
    "StorageResult",
    "SweepResult",
    # Storage
    "ArtifactStore",
    # Lifecycle
    "RetentionSweeper",
    "SweeperStatus",
]
