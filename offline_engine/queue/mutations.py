"""
Offline mutation queue over the persistent store.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..errors import StoreFailure
from .records import MutationKind, MutationRecord
from .store import PersistentStore

logger = logging.getLogger("queue.mutations")


class OfflineMutationQueue:
    """
    Captures writes that could not reach the origin.

    Store failures never propagate out of enqueue: the request that triggered
    the enqueue must still get its response. They are logged and counted.
    """

    def __init__(self, store: PersistentStore):
        self.store = store
        self._stats = {
            "enqueued": 0,
            "enqueue_failures": 0,
            "marked_synced": 0,
        }

    def enqueue(self, kind: MutationKind, payload: Dict[str, Any]) -> Optional[int]:
        """
        Persist an unsynced record.

        Returns:
            The new record id, or None if the store failed
        """
        record = MutationRecord(
            kind=kind,
            payload=dict(payload or {}),
            created_at=datetime.utcnow(),
            synced=False,
        )
        try:
            record_id = self.store.insert(record)
        except (StoreFailure, OSError) as e:
            self._stats["enqueue_failures"] += 1
            logger.error(f"Failed to queue {kind.value} mutation: {e}")
            return None

        self._stats["enqueued"] += 1
        logger.info(f"Queued {kind.value} mutation #{record_id} for sync")
        return record_id

    def list_unsynced(self, kind: MutationKind) -> List[MutationRecord]:
        """Unsynced records of a kind, oldest first."""
        return self.store.scan(kind=kind, synced=False)

    def mark_synced(self, record_id: int) -> bool:
        """
        Flag a record as delivered. The flag is never cleared again.

        Returns:
            True if the record existed
        """
        updated = self.store.update(record_id, {"synced": True})
        if updated:
            self._stats["marked_synced"] += 1
        else:
            logger.warning(f"Cannot mark unknown mutation #{record_id} as synced")
        return updated

    def offline_data(self) -> Dict[str, List[Dict[str, Any]]]:
        """
        All unsynced score and timer-event records, for the host application.

        Falls back to empty lists if the store cannot be read.
        """
        try:
            scores = self.list_unsynced(MutationKind.SCORE)
            timer_events = self.list_unsynced(MutationKind.TIMER_EVENT)
        except StoreFailure as e:
            logger.error(f"Failed to get offline data: {e}")
            return {"scores": [], "timerEvents": []}

        return {
            "scores": [r.to_dict() for r in scores],
            "timerEvents": [r.to_dict() for r in timer_events],
        }

    def get_stats(self) -> Dict[str, Any]:
        return dict(self._stats)
