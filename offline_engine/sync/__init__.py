"""
Replay of queued mutations once connectivity returns.
"""
from .scheduler import SyncScheduler, PendingTagScheduler
from .coordinator import SyncCoordinator, SyncResult

__all__ = [
    "SyncScheduler",
    "PendingTagScheduler",
    "SyncCoordinator",
    "SyncResult",
]
