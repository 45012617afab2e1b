"""
Durable queue of mutations captured while offline.
"""
from .records import MutationKind, MutationRecord, SyncTag, TAG_TO_KIND
from .store import PersistentStore, SqlAlchemyStore, InMemoryStore
from .mutations import OfflineMutationQueue

__all__ = [
    # Records
    "MutationKind",
    "MutationRecord",
    "SyncTag",
    "TAG_TO_KIND",
    # Stores
    "PersistentStore",
    "SqlAlchemyStore",
    "InMemoryStore",
    # Queue
    "OfflineMutationQueue",
]
