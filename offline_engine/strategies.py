"""
Caching strategies, one per route category.

Only success responses to GET requests are ever stored, and every stored
response is a copy of the one handed back to the caller.
"""
import json
import logging
from typing import Any, Callable, Dict, Optional

from .cache.core import RouteCategory, RequestDescriptor, ResponseSnapshot
from .cache.partitions import CachePartitionManager, PartitionNames
from .cache.revalidation import BackgroundRevalidator
from .errors import CacheMiss, ClassificationAmbiguous, OriginRejected, OriginUnreachable
from .origin import OriginClient
from .queue.mutations import OfflineMutationQueue
from .queue.records import MutationKind, SyncTag
from .responses import offline_html_response, offline_response, queued_response
from .routing import is_mutating_path
from .sync.scheduler import SyncScheduler

logger = logging.getLogger("engine.strategies")


def mutation_kind_for_path(path: str, api_prefix: str = "/api/") -> MutationKind:
    """Timer endpoints produce timer events; every other mutation is a score."""
    if path.startswith(f"{api_prefix}timer/"):
        return MutationKind.TIMER_EVENT
    return MutationKind.SCORE


def capture_payload(request: RequestDescriptor) -> Dict[str, Any]:
    """Opaque payload stored for a mutation that could not be delivered."""
    body: Any = None
    if request.body:
        text = request.body.decode("utf-8", errors="replace")
        try:
            body = json.loads(text)
        except ValueError:
            body = text
    return {
        "method": request.method,
        "path": request.path_with_query,
        "body": body,
    }


class StrategyEngine:
    """
    Resolves a classified request from cache, network, or both.

    Strategies:
    - CACHE_FIRST: API partition, background revalidation on hit
    - NETWORK_FIRST: origin, API partition as fallback, 503 when both fail
    - NETWORK_ONLY: origin, mutations queued for sync when unreachable
    - STATIC: static partition, no revalidation
    - PAGE: origin, dynamic partition or offline document as fallback
    - DYNAMIC: origin, bounded dynamic partition as fallback
    """

    def __init__(
        self,
        partitions: CachePartitionManager,
        origin: OriginClient,
        queue: OfflineMutationQueue,
        scheduler: SyncScheduler,
        revalidator: BackgroundRevalidator,
        names: PartitionNames,
        api_prefix: str = "/api/",
    ):
        self.partitions = partitions
        self.origin = origin
        self.queue = queue
        self.scheduler = scheduler
        self.revalidator = revalidator
        self.names = names
        self.api_prefix = api_prefix

        self._strategies: Dict[RouteCategory, Callable[[RequestDescriptor], ResponseSnapshot]] = {
            RouteCategory.CACHE_FIRST: self.cache_first,
            RouteCategory.NETWORK_FIRST: self.network_first,
            RouteCategory.NETWORK_ONLY: self.network_only,
            RouteCategory.STATIC: self.static,
            RouteCategory.PAGE: self.page,
            RouteCategory.DYNAMIC: self.dynamic,
        }

    def execute(self, category: RouteCategory, request: RequestDescriptor) -> ResponseSnapshot:
        strategy = self._strategies.get(category)
        if strategy is None:
            raise ClassificationAmbiguous(f"No strategy for category {category!r}")
        return strategy(request)

    @staticmethod
    def _cacheable(request: RequestDescriptor, response: ResponseSnapshot) -> bool:
        return request.method == "GET" and response.ok

    def _store(self, partition: str, request: RequestDescriptor, response: ResponseSnapshot) -> None:
        if self._cacheable(request, response):
            self.partitions.put(partition, request.cache_key, response)

    def _cached_or(
        self,
        partition: str,
        request: RequestDescriptor,
        fallback: Callable[[], ResponseSnapshot],
    ) -> ResponseSnapshot:
        """Stored response for the request, or the fallback on a miss."""
        try:
            return self.partitions.lookup(partition, request.cache_key)
        except CacheMiss as e:
            logger.info(f"{e}, serving fallback")
            return fallback()

    # ===== API STRATEGIES =====

    def cache_first(self, request: RequestDescriptor) -> ResponseSnapshot:
        """
        Serve from the API partition, refreshing it in the background.

        Raises:
            OriginUnreachable: On a cache miss with the origin down; this
                strategy has no offline fallback of its own
        """
        partition = self.names.api
        cached = self.partitions.get(partition, request.cache_key)

        if cached is not None:
            self.revalidator.submit(
                f"{partition}:{request.cache_key}",
                lambda: self._refresh(partition, request),
            )
            return cached

        response = self.origin.fetch(request)
        self._store(partition, request, response)
        return response

    def _refresh(self, partition: str, request: RequestDescriptor) -> None:
        response = self.origin.fetch(request)
        self._store(partition, request, response)

    def network_first(self, request: RequestDescriptor) -> ResponseSnapshot:
        """Prefer the origin; fall back to the API partition, then to a 503."""
        partition = self.names.api
        try:
            response = self.origin.fetch(request)
            if not response.ok:
                raise OriginRejected(request.url, response.status)
            self._store(partition, request, response)
            return response
        except (OriginUnreachable, OriginRejected) as e:
            logger.info(f"Network failed, trying cache: {request.path} - {e}")

        return self._cached_or(partition, request, offline_response)

    def network_only(self, request: RequestDescriptor) -> ResponseSnapshot:
        """
        Always go to the origin; its response is returned whatever the status.

        When the origin is unreachable, mutating requests are queued for sync
        and answered with 202; anything else gets a 503.
        """
        try:
            return self.origin.fetch(request)
        except OriginUnreachable as e:
            logger.warning(f"Network-only request failed: {request.method} {request.path} - {e}")

        if is_mutating_path(request.path):
            self.capture(request)
            return queued_response()
        return offline_response()

    def capture(self, request: RequestDescriptor) -> Optional[int]:
        """Queue an undeliverable mutation and ask for its sync tag."""
        kind = mutation_kind_for_path(request.path, self.api_prefix)
        record_id = self.queue.enqueue(kind, capture_payload(request))

        tag = SyncTag.for_kind(kind)
        try:
            self.scheduler.register(tag)
        except Exception as e:
            logger.error(f"Background sync registration failed for {tag.value}: {e}")
        return record_id

    # ===== ASSET STRATEGIES =====

    def static(self, request: RequestDescriptor) -> ResponseSnapshot:
        """Static partition first, origin on miss, generic fallback offline."""
        partition = self.names.static
        cached = self.partitions.get(partition, request.cache_key)
        if cached is not None:
            return cached

        try:
            response = self.origin.fetch(request)
        except OriginUnreachable as e:
            logger.info(f"Failed to load static asset: {request.path} - {e}")
            return offline_response()

        self._store(partition, request, response)
        return response

    def page(self, request: RequestDescriptor) -> ResponseSnapshot:
        """Origin first for navigations; cached page or offline document otherwise."""
        partition = self.names.dynamic
        try:
            response = self.origin.fetch(request)
        except OriginUnreachable as e:
            logger.info(f"Page request failed, trying cache: {request.path} - {e}")
            return self._cached_or(partition, request, offline_html_response)

        self._store(partition, request, response)
        return response

    def dynamic(self, request: RequestDescriptor) -> ResponseSnapshot:
        """Origin first; the dynamic partition is trimmed before each insert."""
        partition = self.names.dynamic
        try:
            response = self.origin.fetch(request)
        except OriginUnreachable as e:
            logger.info(f"Dynamic request failed, trying cache: {request.path} - {e}")
            return self._cached_or(partition, request, offline_response)

        if self._cacheable(request, response):
            limit = self.partitions.limit_for(partition)
            if limit is not None:
                self.partitions.evict_if_needed(partition, limit)
            self.partitions.put(partition, request.cache_key, response)
        return response
