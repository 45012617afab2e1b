"""
Named, bounded cache partitions with insertion-order eviction.
"""
import threading
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Any

from ..errors import CacheMiss
from .core import CachePartition, CachedEntry, ResponseSnapshot, CacheSource

logger = logging.getLogger("cache.partitions")


@dataclass(frozen=True)
class PartitionNames:
    """Versioned names of the partitions one engine version uses."""
    prefix: str = "dope"
    version: str = "1.0.0"

    def _name(self, kind: str) -> str:
        return f"{self.prefix}-{kind}-v{self.version}"

    @property
    def static(self) -> str:
        return self._name("static")

    @property
    def dynamic(self) -> str:
        return self._name("dynamic")

    @property
    def api(self) -> str:
        return self._name("api")

    def expected(self) -> List[str]:
        """Every partition name this version keeps on activation."""
        return [self.static, self.dynamic, self.api]

    def limits(self, per_kind: Dict[str, int]) -> Dict[str, int]:
        """Map limits keyed by kind ("static", "dynamic", "api") to partition names."""
        names = {"static": self.static, "dynamic": self.dynamic, "api": self.api}
        return {names[kind]: limit for kind, limit in per_kind.items() if kind in names}


class CachePartitionManager:
    """
    Owns every cache partition and serializes access to them.

    - Partitions are created on first open and live until dropped
    - Entry limits are supplied per partition name by the caller
    - Eviction is FIFO: reads never change an entry's eviction order
    - Stored and returned responses are independent copies
    """

    def __init__(self, limits: Optional[Dict[str, int]] = None):
        """
        Initialize the manager.

        Args:
            limits: Maximum entry count per partition name. Partitions not
                listed are unbounded.
        """
        self._limits: Dict[str, int] = dict(limits or {})
        self._partitions: Dict[str, CachePartition] = {}
        self._lock = threading.RLock()

        # Stats tracking
        self._stats = {
            "hits": 0,
            "misses": 0,
            "puts": 0,
            "evictions": 0,
        }

    def open(self, name: str) -> CachePartition:
        """Return the named partition, creating it if absent."""
        with self._lock:
            partition = self._partitions.get(name)
            if partition is None:
                partition = CachePartition(name=name, max_entries=self._limits.get(name))
                self._partitions[name] = partition
                logger.debug(f"Opened partition {name} (limit={partition.max_entries})")
            return partition

    def limit_for(self, name: str) -> Optional[int]:
        return self._limits.get(name)

    def get(self, name: str, key: str) -> Optional[ResponseSnapshot]:
        """
        Look up a stored response.

        Returns:
            A copy of the stored response tagged as cache-sourced, or None
        """
        with self._lock:
            entry = self.open(name).entries.get(key)
            if entry is None:
                self._stats["misses"] += 1
                logger.debug(f"CACHE MISS: {name} {key}")
                return None
            self._stats["hits"] += 1
            logger.debug(f"CACHE HIT: {name} {key} [age={entry.age_seconds:.1f}s]")
            return entry.response.clone(source=CacheSource.CACHE)

    def lookup(self, name: str, key: str) -> ResponseSnapshot:
        """
        Like get, for callers that treat a miss as an error.

        Raises:
            CacheMiss: If nothing is stored under the key
        """
        cached = self.get(name, key)
        if cached is None:
            raise CacheMiss(name, key)
        return cached

    def put(self, name: str, key: str, response: ResponseSnapshot) -> None:
        """
        Store a copy of a response, replacing any entry under the same key.

        A new key inserted into a bounded partition first evicts the oldest
        entries, so the partition never exceeds its limit.
        """
        with self._lock:
            partition = self.open(name)
            if key in partition.entries:
                del partition.entries[key]
            elif partition.max_entries is not None:
                self._evict(partition, partition.max_entries)

            partition.entries[key] = CachedEntry(
                response=response.clone(),
                insertion_index=partition.next_index,
            )
            partition.next_index += 1
            self._stats["puts"] += 1

    def delete(self, name: str, key: str) -> bool:
        """
        Remove a single entry.

        Returns:
            True if the entry was found and removed
        """
        with self._lock:
            partition = self._partitions.get(name)
            if partition is None or key not in partition.entries:
                return False
            del partition.entries[key]
            return True

    def list_keys(self, name: str) -> List[str]:
        """Keys of a partition, oldest first."""
        with self._lock:
            return list(self.open(name).entries.keys())

    def evict_if_needed(self, name: str, max_entries: int) -> int:
        """
        Make room for one insert.

        If the partition holds max_entries or more, removes the oldest
        count - max_entries + 1 entries.

        Returns:
            Number of entries evicted
        """
        with self._lock:
            return self._evict(self.open(name), max_entries)

    def _evict(self, partition: CachePartition, max_entries: int) -> int:
        count = len(partition.entries)
        if count < max_entries:
            return 0
        to_remove = count - max_entries + 1
        for _ in range(to_remove):
            partition.entries.popitem(last=False)
        self._stats["evictions"] += to_remove
        logger.info(f"Evicted {to_remove} entries from {partition.name} (limit={max_entries})")
        return to_remove

    def names(self) -> List[str]:
        """Names of all existing partitions."""
        with self._lock:
            return list(self._partitions.keys())

    def drop(self, name: str) -> bool:
        """
        Delete a whole partition.

        Returns:
            True if the partition existed
        """
        with self._lock:
            if name in self._partitions:
                del self._partitions[name]
                logger.info(f"Dropped partition {name}")
                return True
            return False

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            lookups = self._stats["hits"] + self._stats["misses"]
            hit_rate = (self._stats["hits"] / lookups * 100) if lookups > 0 else 0

            return {
                "partitions": {
                    name: {"entries": len(p), "limit": p.max_entries}
                    for name, p in self._partitions.items()
                },
                "hits": self._stats["hits"],
                "misses": self._stats["misses"],
                "puts": self._stats["puts"],
                "evictions": self._stats["evictions"],
                "hit_rate_percent": round(hit_rate, 1),
            }
