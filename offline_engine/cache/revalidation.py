"""
Detached background revalidation with a failure side-channel.

Revalidations are fire-and-forget from the caller's point of view: nothing
is returned to or raised at the request that triggered them. Failures are
logged and kept in a bounded error log so they remain observable.
"""
import threading
import logging
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Deque, Dict, List, Optional, Set, Any

logger = logging.getLogger("cache.revalidation")


@dataclass
class BackgroundFailure:
    """A captured background task failure."""
    key: str
    error: str
    error_type: str
    failed_at: datetime = field(default_factory=datetime.utcnow)


class BackgroundRevalidator:
    """
    Runs revalidations on a small thread pool.

    At most one revalidation per key is in flight; a second trigger for a key
    already being revalidated is ignored.
    """

    def __init__(self, max_workers: int = 4, error_log_size: int = 100):
        """
        Args:
            max_workers: Thread pool size for background revalidation
            error_log_size: Number of recent failures kept for inspection
        """
        self._pool = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="cache-revalidate",
        )
        self._in_flight: Set[str] = set()
        self._futures: Set[Future] = set()
        self._lock = threading.Lock()
        self._errors: Deque[BackgroundFailure] = deque(maxlen=error_log_size)

        self._stats = {
            "started": 0,
            "succeeded": 0,
            "failed": 0,
            "skipped": 0,
        }

    def submit(self, key: str, task: Callable[[], Any]) -> Optional[Future]:
        """
        Launch a revalidation without blocking.

        Returns:
            The future of the launched task, or None if the key is already
            being revalidated
        """
        with self._lock:
            if key in self._in_flight:
                logger.debug(f"Already revalidating: {key}")
                self._stats["skipped"] += 1
                return None
            self._in_flight.add(key)
            self._stats["started"] += 1

        def run():
            try:
                logger.debug(f"Background revalidation started: {key}")
                task()
                with self._lock:
                    self._stats["succeeded"] += 1
                logger.debug(f"Background revalidation complete: {key}")
            except Exception as e:
                logger.warning(f"Background revalidation failed: {key} - {e}")
                with self._lock:
                    self._stats["failed"] += 1
                    self._errors.append(BackgroundFailure(
                        key=key,
                        error=str(e),
                        error_type=type(e).__name__,
                    ))
            finally:
                with self._lock:
                    self._in_flight.discard(key)

        future = self._pool.submit(run)
        with self._lock:
            self._futures.add(future)
        future.add_done_callback(self._forget)
        return future

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._futures.discard(future)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Block until every launched revalidation has finished.

        Returns:
            True if all finished within the timeout
        """
        with self._lock:
            pending = list(self._futures)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def recent_failures(self) -> List[BackgroundFailure]:
        with self._lock:
            return list(self._errors)

    def shutdown(self, wait_for_pending: bool = True) -> None:
        self._pool.shutdown(wait=wait_for_pending)

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                **self._stats,
                "in_flight": len(self._in_flight),
                "recent_failures": len(self._errors),
            }
