"""
Replay of queued mutations against the origin.

Delivery is at-least-once: a record the origin accepted but that could not
be marked synced is submitted again on the next trigger. The origin is
expected to handle duplicates idempotently; every submission carries the
record id for that purpose.
"""
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from ..errors import OriginUnreachable, OriginRejected, StoreFailure
from ..origin import OriginClient
from ..queue.mutations import OfflineMutationQueue
from ..queue.records import MutationKind, SyncTag

logger = logging.getLogger("sync.coordinator")


@dataclass
class SyncResult:
    """Result of one sync run for a tag."""
    tag: Optional[str]
    attempted: int = 0
    synced: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0
    skipped: bool = False  # Another run for the tag was already in progress

    @property
    def success(self) -> bool:
        return self.failed == 0 and not self.errors

    def to_dict(self) -> Dict[str, object]:
        return {
            "tag": self.tag,
            "attempted": self.attempted,
            "synced": self.synced,
            "failed": self.failed,
            "skipped": self.skipped,
            "errors": list(self.errors),
            "durationSeconds": round(self.duration_seconds, 3),
        }


class SyncCoordinator:
    """
    Drains unsynced records of one kind per trigger.

    Records are submitted one at a time to bound concurrent writes to the
    origin. A failed record stays unsynced and is retried on the next trigger
    (no backoff, no retry cap). At most one run per tag is in progress; a
    trigger arriving meanwhile is absorbed by that run and returns a skipped
    result right away.
    """

    def __init__(
        self,
        queue: OfflineMutationQueue,
        origin: OriginClient,
        endpoints: Dict[MutationKind, str],
    ):
        """
        Args:
            queue: Offline mutation queue to drain
            origin: Origin client used for submissions
            endpoints: Sync endpoint path per mutation kind
        """
        self.queue = queue
        self.origin = origin
        self.endpoints = dict(endpoints)
        self._in_progress: Dict[SyncTag, threading.Lock] = {tag: threading.Lock() for tag in SyncTag}
        self._stats = {
            "runs": 0,
            "skipped": 0,
            "submissions": 0,
            "synced": 0,
            "failed": 0,
        }

    def run(self, tag: Union[SyncTag, str]) -> SyncResult:
        """
        Handle a trigger for a sync tag.

        Unknown tags are logged and ignored.
        """
        if isinstance(tag, str):
            parsed = SyncTag.parse(tag)
            if parsed is None:
                logger.warning(f"Unknown sync tag: {tag}")
                return SyncResult(tag=tag)
            tag = parsed

        logger.info(f"Background sync triggered: {tag.value}")
        guard = self._in_progress[tag]
        if not guard.acquire(blocking=False):
            logger.info(f"Sync {tag.value} already in progress, trigger absorbed")
            self._stats["skipped"] += 1
            return SyncResult(tag=tag.value, skipped=True)

        try:
            return self._sync(tag)
        finally:
            guard.release()

    def run_all(self) -> List[SyncResult]:
        """Manual "sync now" over every tag."""
        return [self.run(tag) for tag in SyncTag]

    def _sync(self, tag: SyncTag) -> SyncResult:
        kind = tag.kind
        endpoint = self.endpoints[kind]
        result = SyncResult(tag=tag.value)
        start_time = time.time()
        self._stats["runs"] += 1

        try:
            records = self.queue.list_unsynced(kind)
        except StoreFailure as e:
            logger.error(f"Sync {tag.value} failed to load records: {e}")
            result.errors.append(f"Store error: {e}")
            result.duration_seconds = time.time() - start_time
            return result

        logger.info(f"Syncing {len(records)} {kind.value} records to {endpoint}")

        for record in records:
            result.attempted += 1
            self._stats["submissions"] += 1
            try:
                response = self.origin.post_json(endpoint, record.to_submission())
                if not response.ok:
                    raise OriginRejected(endpoint, response.status)
            except (OriginUnreachable, OriginRejected) as e:
                result.failed += 1
                self._stats["failed"] += 1
                logger.error(f"Failed to sync {kind.value} #{record.id}: {e}")
                continue

            try:
                self.queue.mark_synced(record.id)
            except StoreFailure as e:
                # Accepted by the origin; it will be resubmitted next run
                result.failed += 1
                self._stats["failed"] += 1
                result.errors.append(f"Could not mark #{record.id} synced: {e}")
                logger.error(f"Synced {kind.value} #{record.id} but could not record it: {e}")
                continue

            result.synced += 1
            self._stats["synced"] += 1
            logger.info(f"{kind.value} #{record.id} synced successfully")

        result.duration_seconds = time.time() - start_time
        logger.info(
            f"Sync {tag.value} completed in {result.duration_seconds:.2f}s "
            f"({result.synced}/{result.attempted} synced)"
        )
        return result

    def is_running(self, tag: SyncTag) -> bool:
        return self._in_progress[tag].locked()

    def get_stats(self) -> Dict[str, int]:
        return dict(self._stats)
