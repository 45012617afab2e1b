"""
Cache partitions with FIFO eviction and detached background revalidation.
"""
from .core import (
    CacheSource,
    CachedEntry,
    CachePartition,
    RequestDescriptor,
    ResponseSnapshot,
    RouteCategory,
    make_cache_key,
)
from .partitions import CachePartitionManager, PartitionNames
from .revalidation import BackgroundRevalidator, BackgroundFailure

__all__ = [
    # Core types
    "CacheSource",
    "CachedEntry",
    "CachePartition",
    "RequestDescriptor",
    "ResponseSnapshot",
    "RouteCategory",
    "make_cache_key",
    # Partitions
    "CachePartitionManager",
    "PartitionNames",
    # Revalidation
    "BackgroundRevalidator",
    "BackgroundFailure",
]
