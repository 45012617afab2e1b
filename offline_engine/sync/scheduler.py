"""
Deferred sync trigger collaborator.

The engine only asks for a tag to be scheduled; it never assumes the trigger
will fire. Hosts deliver triggers by calling SyncCoordinator.run (or the
gateway's sync endpoints).
"""
import threading
import logging
from abc import ABC, abstractmethod
from typing import List

from ..queue.records import SyncTag

logger = logging.getLogger("sync.scheduler")


class SyncScheduler(ABC):
    """External scheduler that fires sync tags later."""

    @abstractmethod
    def register(self, tag: SyncTag) -> None:
        """Request a deferred trigger for the tag. Best effort."""
        pass


class PendingTagScheduler(SyncScheduler):
    """
    Records requested tags until the host drains them.

    Duplicate requests for a tag collapse into one pending trigger.
    """

    def __init__(self):
        self._pending: List[SyncTag] = []
        self._lock = threading.Lock()

    def register(self, tag: SyncTag) -> None:
        with self._lock:
            if tag not in self._pending:
                self._pending.append(tag)
                logger.info(f"Sync requested for tag {tag.value}")

    def pending(self) -> List[SyncTag]:
        with self._lock:
            return list(self._pending)

    def drain(self) -> List[SyncTag]:
        """Return and clear the pending tags."""
        with self._lock:
            tags, self._pending = self._pending, []
            return tags
