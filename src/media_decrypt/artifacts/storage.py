"""
Artifact storage backend.

Persists decrypted media under the configured storage directory, tracks
metadata in a SQLite registry, and enforces one-time versus persistent
access. Every mutation of an artifact is serialized per identifier so
that a consumer and the retention sweeper never both delete it.
"""

import hashlib
import logging
import os
import shutil
import sqlite3
import threading
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from media_decrypt.core.config import StoreConfig
from media_decrypt.mime import extension_from_mime

from .models import (
    AccessMode,
    ArtifactMetadata,
    ArtifactStatus,
    StorageError,
    StorageResult,
)

logger = logging.getLogger(__name__)


def _utcnow_iso(now: datetime | None = None) -> str:
    """Return a fixed-width ISO timestamp so registry rows sort lexically."""
    return (now or datetime.now(timezone.utc)).astimezone(timezone.utc).isoformat(
        timespec="microseconds"
    )


class ArtifactStore:
    """
    Artifact storage backend.

    Manages the storage directory structure:
    - {storage_dir}/{artifact_id}/{artifact_id}{ext}
    - {storage_dir}/.index.db (SQLite registry)

    An artifact becomes visible only once its registry row is inserted,
    after the content file has been atomically renamed into place.

    A row that has been claimed (consumed or deleted) but still exists
    means its files could not be removed. Such rows are never served
    again; reclaim() finishes the removal.
    """

    def __init__(
        self,
        config: StoreConfig | None = None,
        registry_path: Path | None = None,
    ):
        """
        Initialize artifact storage.

        Args:
            config: Store configuration (default: StoreConfig())
            registry_path: Path to SQLite registry (default: {storage_dir}/.index.db)
        """
        self._config = config or StoreConfig()
        self._storage_dir = Path(self._config.storage_dir)
        self._registry_path = registry_path or self._storage_dir / ".index.db"
        self._local = threading.local()
        self._connections: list[sqlite3.Connection] = []
        self._connections_lock = threading.Lock()

        # Per-id lock table: artifact_id -> [lock, waiter count]
        self._id_locks: dict[str, list[Any]] = {}
        self._id_locks_guard = threading.Lock()

        self._storage_dir.mkdir(parents=True, exist_ok=True)
        self._init_registry()

    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def storage_dir(self) -> Path:
        return self._storage_dir

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local SQLite connection."""
        if not hasattr(self._local, "conn") or self._local.conn is None:
            conn = sqlite3.connect(
                str(self._registry_path),
                check_same_thread=False,
                timeout=30.0,
            )
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("PRAGMA synchronous = NORMAL")
            self._local.conn = conn
            with self._connections_lock:
                self._connections.append(conn)
        return self._local.conn

    def _init_registry(self) -> None:
        """Initialize the SQLite registry schema."""
        conn = self._get_connection()
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS artifact_index (
                artifact_id TEXT PRIMARY KEY,
                filename TEXT NOT NULL,
                mime_type TEXT,
                size_bytes INTEGER NOT NULL,
                content_hash TEXT NOT NULL,
                created_at TEXT NOT NULL,
                access_mode TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'active',
                storage_path TEXT NOT NULL
            )
            """
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_status_created ON artifact_index(status, created_at)"
        )
        conn.commit()

    @contextmanager
    def _locked(self, artifact_id: str) -> Iterator[None]:
        """Serialize all mutations of one artifact id."""
        with self._id_locks_guard:
            entry = self._id_locks.get(artifact_id)
            if entry is None:
                entry = [threading.Lock(), 0]
                self._id_locks[artifact_id] = entry
            entry[1] += 1

        entry[0].acquire()
        try:
            yield
        finally:
            entry[0].release()
            with self._id_locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._id_locks[artifact_id]

    @staticmethod
    def is_valid_id(artifact_id: str) -> bool:
        """Return True if artifact_id is a canonical UUID string."""
        try:
            return str(uuid.UUID(artifact_id)) == artifact_id
        except (ValueError, AttributeError, TypeError):
            return False

    def generate_artifact_id(self) -> str:
        """Generate a unique artifact ID."""
        return str(uuid.uuid4())

    def _artifact_dir(self, artifact_id: str) -> Path:
        return self._storage_dir / artifact_id

    def _row_to_metadata(self, row: sqlite3.Row) -> ArtifactMetadata:
        """Convert database row to ArtifactMetadata."""
        return ArtifactMetadata(
            artifact_id=row["artifact_id"],
            filename=row["filename"],
            mime_type=row["mime_type"],
            size_bytes=row["size_bytes"],
            content_hash=row["content_hash"],
            created_at=row["created_at"],
            access_mode=row["access_mode"],
            status=row["status"],
            storage_path=Path(row["storage_path"]),
        )

    def _fetch_row(self, artifact_id: str) -> sqlite3.Row | None:
        conn = self._get_connection()
        return conn.execute(
            "SELECT * FROM artifact_index WHERE artifact_id = ?",
            (artifact_id,),
        ).fetchone()

    def _transition(self, artifact_id: str, new_status: ArtifactStatus) -> bool:
        """
        Claim an active artifact by moving it out of the active status.

        Returns True only for the caller whose UPDATE matched the row.
        """
        conn = self._get_connection()
        cursor = conn.execute(
            "UPDATE artifact_index SET status = ? WHERE artifact_id = ? AND status = 'active'",
            (new_status.value, artifact_id),
        )
        conn.commit()
        return cursor.rowcount == 1

    def _purge(self, metadata: ArtifactMetadata) -> None:
        """Remove a claimed artifact's files and registry row."""
        artifact_dir = self._artifact_dir(metadata.artifact_id)
        if artifact_dir.exists():
            shutil.rmtree(artifact_dir)
        conn = self._get_connection()
        conn.execute(
            "DELETE FROM artifact_index WHERE artifact_id = ?",
            (metadata.artifact_id,),
        )
        conn.commit()

    def _invalid_id(self, artifact_id: str) -> StorageResult:
        return StorageResult(
            success=False,
            artifact_id=artifact_id,
            error=StorageError.INVALID_ID,
            message="Invalid artifact id",
        )

    def _not_found(self, artifact_id: str) -> StorageResult:
        return StorageResult(
            success=False,
            artifact_id=artifact_id,
            error=StorageError.NOT_FOUND,
            message="Artifact not found",
        )

    def put(
        self,
        content: bytes,
        mime_type: str | None = None,
        access_mode: AccessMode | None = None,
    ) -> StorageResult:
        """
        Store an artifact.

        Args:
            content: Artifact bytes
            mime_type: MIME hint, used for the download filename
            access_mode: One-time or persistent (default from config)

        Returns:
            StorageResult with the new artifact's id and metadata
        """
        if access_mode is None:
            access_mode = (
                AccessMode.ONE_TIME if self._config.one_time_download else AccessMode.PERSISTENT
            )

        artifact_id = self.generate_artifact_id()
        filename = f"{artifact_id}{extension_from_mime(mime_type)}"
        artifact_dir = self._artifact_dir(artifact_id)
        content_path = artifact_dir / filename

        try:
            artifact_dir.mkdir(parents=True, exist_ok=False)

            tmp_path = artifact_dir / f".{filename}.tmp"
            with open(tmp_path, "wb") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, content_path)

            metadata = ArtifactMetadata(
                artifact_id=artifact_id,
                filename=filename,
                mime_type=mime_type,
                size_bytes=len(content),
                content_hash=hashlib.sha256(content).hexdigest(),
                created_at=_utcnow_iso(),
                access_mode=access_mode,
                storage_path=content_path,
            )

            conn = self._get_connection()
            conn.execute(
                """
                INSERT INTO artifact_index (
                    artifact_id, filename, mime_type, size_bytes, content_hash,
                    created_at, access_mode, status, storage_path
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    metadata.artifact_id,
                    metadata.filename,
                    metadata.mime_type,
                    metadata.size_bytes,
                    metadata.content_hash,
                    metadata.created_at,
                    metadata.access_mode.value,
                    metadata.status.value,
                    str(metadata.storage_path),
                ),
            )
            conn.commit()

        except (OSError, sqlite3.Error) as e:
            logger.error(f"Failed to store artifact {artifact_id}: {e}")
            shutil.rmtree(artifact_dir, ignore_errors=True)
            return StorageResult(
                success=False,
                artifact_id=artifact_id,
                error=StorageError.WRITE_FAILED,
                message=f"I/O error: {e}",
            )

        logger.info(
            f"Stored artifact {artifact_id} ({metadata.size_bytes} bytes, {access_mode.value})"
        )
        return StorageResult(success=True, artifact_id=artifact_id, metadata=metadata)

    def get_metadata(self, artifact_id: str) -> ArtifactMetadata | None:
        """Return metadata for an active artifact, or None."""
        if not self.is_valid_id(artifact_id):
            return None
        row = self._fetch_row(artifact_id)
        if row is None or row["status"] != ArtifactStatus.ACTIVE.value:
            return None
        return self._row_to_metadata(row)

    def read(self, artifact_id: str) -> StorageResult:
        """
        Read an artifact without consuming it.

        Args:
            artifact_id: ID of artifact to read

        Returns:
            StorageResult with content, or NOT_FOUND / READ_FAILED
        """
        if not self.is_valid_id(artifact_id):
            return self._invalid_id(artifact_id)

        with self._locked(artifact_id):
            metadata = self.get_metadata(artifact_id)
            if metadata is None:
                return self._not_found(artifact_id)
            return self._read_content(metadata)

    def _read_content(self, metadata: ArtifactMetadata) -> StorageResult:
        """Read content for metadata; caller holds the id lock."""
        try:
            content = metadata.storage_path.read_bytes()
        except OSError as e:
            logger.error(f"Failed to read artifact {metadata.artifact_id}: {e}")
            return StorageResult(
                success=False,
                artifact_id=metadata.artifact_id,
                metadata=metadata,
                error=StorageError.READ_FAILED,
                message=f"I/O error: {e}",
            )
        return StorageResult(
            success=True,
            artifact_id=metadata.artifact_id,
            content=content,
            metadata=metadata,
        )

    def consume(self, artifact_id: str) -> StorageResult:
        """
        Retrieve an artifact, deleting it if it is one-time.

        For one-time artifacts this is an atomic claim-then-delete:
        exactly one caller receives the content, every later or
        concurrent caller receives NOT_FOUND. Persistent artifacts are
        read without deletion.

        Args:
            artifact_id: ID of artifact to consume

        Returns:
            StorageResult with content, or NOT_FOUND / READ_FAILED
        """
        if not self.is_valid_id(artifact_id):
            return self._invalid_id(artifact_id)

        with self._locked(artifact_id):
            metadata = self.get_metadata(artifact_id)
            if metadata is None:
                return self._not_found(artifact_id)

            if metadata.access_mode is AccessMode.PERSISTENT:
                return self._read_content(metadata)

            if not self._transition(artifact_id, ArtifactStatus.CONSUMED):
                return self._not_found(artifact_id)

            result = self._read_content(metadata)
            if not result.success:
                # Nothing was delivered; release the claim
                conn = self._get_connection()
                conn.execute(
                    "UPDATE artifact_index SET status = 'active' WHERE artifact_id = ?",
                    (artifact_id,),
                )
                conn.commit()
                return result

            try:
                self._purge(metadata)
            except (OSError, sqlite3.Error) as e:
                # Row stays consumed; the next sweep reclaims the files
                logger.error(f"Consumed artifact {artifact_id} but cleanup failed: {e}")

        logger.info(f"Consumed one-time artifact {artifact_id}")
        metadata.status = ArtifactStatus.CONSUMED
        return result

    def delete(self, artifact_id: str) -> StorageResult:
        """
        Delete an artifact.

        Deleting an absent or already consumed artifact yields a
        NOT_FOUND result rather than raising.

        Args:
            artifact_id: ID of artifact to delete

        Returns:
            StorageResult with operation outcome
        """
        if not self.is_valid_id(artifact_id):
            return self._invalid_id(artifact_id)

        with self._locked(artifact_id):
            metadata = self.get_metadata(artifact_id)
            if metadata is None or not self._transition(artifact_id, ArtifactStatus.DELETED):
                return self._not_found(artifact_id)

            try:
                self._purge(metadata)
            except (OSError, sqlite3.Error) as e:
                # Row stays deleted; the next sweep reclaims the files
                logger.error(f"Failed to delete artifact {artifact_id}: {e}")
                return StorageResult(
                    success=False,
                    artifact_id=artifact_id,
                    metadata=metadata,
                    error=StorageError.WRITE_FAILED,
                    message=f"I/O error: {e}",
                )

        metadata.status = ArtifactStatus.DELETED
        return StorageResult(success=True, artifact_id=artifact_id, metadata=metadata)

    def list_unreclaimed(self) -> Iterator[str]:
        """Yield ids of claimed artifacts whose files were not removed."""
        conn = self._get_connection()
        rows = conn.execute(
            """
            SELECT artifact_id FROM artifact_index
            WHERE status != 'active'
            ORDER BY created_at ASC
            """
        ).fetchall()
        for row in rows:
            yield row["artifact_id"]

    def reclaim(self, artifact_id: str) -> StorageResult:
        """
        Finish removing a consumed or deleted artifact.

        Active artifacts are left alone and yield NOT_FOUND, as do ids
        with no registry row.

        Args:
            artifact_id: ID of the claimed artifact

        Returns:
            StorageResult with the reclaimed metadata, or NOT_FOUND / WRITE_FAILED
        """
        if not self.is_valid_id(artifact_id):
            return self._invalid_id(artifact_id)

        with self._locked(artifact_id):
            row = self._fetch_row(artifact_id)
            if row is None or row["status"] == ArtifactStatus.ACTIVE.value:
                return self._not_found(artifact_id)

            metadata = self._row_to_metadata(row)
            try:
                self._purge(metadata)
            except (OSError, sqlite3.Error) as e:
                logger.error(f"Failed to reclaim artifact {artifact_id}: {e}")
                return StorageResult(
                    success=False,
                    artifact_id=artifact_id,
                    metadata=metadata,
                    error=StorageError.WRITE_FAILED,
                    message=f"I/O error: {e}",
                )

        logger.info(f"Reclaimed {metadata.status.value} artifact {artifact_id}")
        return StorageResult(success=True, artifact_id=artifact_id, metadata=metadata)

    def list_aged_beyond(
        self,
        threshold: timedelta,
        now: datetime | None = None,
    ) -> Iterator[str]:
        """
        Yield ids of active artifacts created before now - threshold.

        The registry is snapshotted when iteration starts; calling again
        takes a fresh snapshot.

        Args:
            threshold: Minimum age
            now: Reference time (default: current UTC time)

        Yields:
            Artifact ids, oldest first
        """
        cutoff = _utcnow_iso((now or datetime.now(timezone.utc)) - threshold)
        conn = self._get_connection()
        rows = conn.execute(
            """
            SELECT artifact_id FROM artifact_index
            WHERE status = 'active' AND created_at < ?
            ORDER BY created_at ASC
            """,
            (cutoff,),
        ).fetchall()
        for row in rows:
            yield row["artifact_id"]

    def get_storage_stats(self) -> dict[str, Any]:
        """Get statistics about artifact storage."""
        try:
            conn = self._get_connection()
            row = conn.execute(
                """
                SELECT
                    COUNT(*) as total_count,
                    SUM(size_bytes) as total_size,
                    COUNT(CASE WHEN access_mode = 'one_time' THEN 1 END) as one_time_count,
                    COUNT(CASE WHEN access_mode = 'persistent' THEN 1 END) as persistent_count,
                    MIN(created_at) as oldest
                FROM artifact_index
                WHERE status = 'active'
                """
            ).fetchone()

            return {
                "total_count": row["total_count"] or 0,
                "total_size_bytes": row["total_size"] or 0,
                "one_time_count": row["one_time_count"] or 0,
                "persistent_count": row["persistent_count"] or 0,
                "oldest_created_at": row["oldest"],
                "storage_path": str(self._storage_dir),
            }

        except sqlite3.Error:
            return {}

    def close(self) -> None:
        """Close database connections (call on shutdown)."""
        with self._connections_lock:
            for conn in self._connections:
                conn.close()
            self._connections.clear()
        self._local = threading.local()
