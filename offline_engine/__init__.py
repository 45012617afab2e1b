"""
Offline-first request engine for live competition clients.

Classifies intercepted requests, resolves them from cache and/or network,
and queues undeliverable mutations for at-least-once replay.
"""
from .engine import OfflineEngine

__version__ = "1.0.0"

__all__ = ["OfflineEngine", "__version__"]
