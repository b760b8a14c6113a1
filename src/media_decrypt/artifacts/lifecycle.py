"""
Artifact retention sweeping.

Periodically deletes artifacts older than the configured retention
threshold. The sweeper runs as a daemon thread, waking once per sweep
interval until stopped or the process exits.
"""

import logging
import threading
from collections.abc import Callable
from datetime import datetime, timedelta
from enum import Enum

from media_decrypt.core.config import RetentionConfig

from .models import StorageError, StorageResult, SweepResult
from .storage import ArtifactStore

logger = logging.getLogger(__name__)


class SweeperStatus(Enum):
    """Status of the retention sweeper."""

    DISABLED = "disabled"
    STOPPED = "stopped"
    RUNNING = "running"


class RetentionSweeper:
    """
    Age-based garbage collection for the artifact store.

    Deletes go through ArtifactStore.delete, so a sweep racing a one-time
    download never deletes the same artifact twice: whichever side
    claims it first wins and the other sees NOT_FOUND.
    """

    def __init__(
        self,
        store: ArtifactStore,
        config: RetentionConfig | None = None,
    ):
        """
        Initialize the sweeper.

        Args:
            store: ArtifactStore to sweep
            config: Retention configuration (default: RetentionConfig())
        """
        self._store = store
        self._config = config or RetentionConfig()
        self._thread: threading.Thread | None = None
        self._shutdown_event = threading.Event()
        self._sweep_lock = threading.Lock()
        self._last_result: SweepResult | None = None

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    @property
    def threshold(self) -> timedelta:
        return timedelta(hours=self._config.retention_hours)

    @property
    def status(self) -> SweeperStatus:
        if not self.enabled:
            return SweeperStatus.DISABLED
        if self._thread is not None and self._thread.is_alive():
            return SweeperStatus.RUNNING
        return SweeperStatus.STOPPED

    @property
    def last_result(self) -> SweepResult | None:
        return self._last_result

    def sweep_once(self, now: datetime | None = None) -> SweepResult:
        """
        Delete every artifact older than the retention threshold.

        Leftovers of earlier consumes or deletes whose files could not be
        removed are reclaimed first, whatever their age. Per-artifact
        failures are logged and collected, never raised.

        Args:
            now: Reference time (default: current UTC time)

        Returns:
            SweepResult with operation details
        """
        result = SweepResult()
        if not self.enabled:
            return result

        with self._sweep_lock:
            for artifact_id in self._store.list_unreclaimed():
                if self._apply(self._store.reclaim, artifact_id, "reclaim", result):
                    result.reclaimed_count += 1

            for artifact_id in self._store.list_aged_beyond(self.threshold, now=now):
                result.scanned_count += 1
                if self._apply(self._store.delete, artifact_id, "delete", result):
                    result.deleted_count += 1
                    logger.info(f"[retention] deleted stale artifact: {artifact_id}")

        self._last_result = result
        return result

    def _apply(
        self,
        operation: Callable[[str], StorageResult],
        artifact_id: str,
        verb: str,
        result: SweepResult,
    ) -> bool:
        """Run one store operation, folding its outcome into result."""
        try:
            outcome = operation(artifact_id)
        except Exception as e:
            logger.exception(f"[retention] {verb} raised for {artifact_id}")
            result.errors.append(f"Failed to {verb} {artifact_id}: {e}")
            return False

        if outcome.success:
            if outcome.metadata is not None:
                result.freed_bytes += outcome.metadata.size_bytes
            return True
        if outcome.error is StorageError.NOT_FOUND:
            result.skipped_count += 1
        else:
            logger.error(f"[retention] failed to {verb} {artifact_id}: {outcome.message}")
            result.errors.append(f"Failed to {verb} {artifact_id}: {outcome.message}")
        return False

    def start(self) -> bool:
        """
        Start the background sweep thread.

        Returns:
            True if the thread is running, False if sweeping is disabled
        """
        if not self.enabled:
            logger.info("Retention sweeping disabled (retention_hours <= 0)")
            return False
        if self.status is SweeperStatus.RUNNING:
            return True

        self._shutdown_event.clear()
        self._thread = threading.Thread(
            target=self._sweep_loop,
            name="RetentionSweeper",
            daemon=True,
        )
        self._thread.start()
        logger.info(
            f"Retention sweeper started (threshold={self._config.retention_hours}h, "
            f"interval={self._config.sweep_interval_seconds}s)"
        )
        return True

    def stop(self, timeout: float = 10.0) -> None:
        """Signal the sweep thread to exit and wait for it."""
        self._shutdown_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        self._thread = None

    def _sweep_loop(self) -> None:
        """Main sweep loop."""
        while not self._shutdown_event.wait(self._config.sweep_interval_seconds):
            try:
                result = self.sweep_once()
                if result.deleted_count or result.reclaimed_count or result.errors:
                    logger.info(
                        f"[retention] sweep deleted {result.deleted_count} artifact(s), "
                        f"reclaimed {result.reclaimed_count}, {len(result.errors)} error(s)"
                    )
            except Exception:
                # Keep sweeping on the next tick
                logger.exception("[retention] sweep error")
