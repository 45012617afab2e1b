"""
Offline engine facade.

Every intercepted request goes through OfflineEngine.handle, which always
resolves with some response: origin, cache, or synthesized.
"""
import logging
from typing import Any, Dict, Optional, Union, assert_never

from .cache.core import RequestDescriptor, ResponseSnapshot, SOURCE_HEADER
from .cache.partitions import CachePartitionManager, PartitionNames
from .cache.revalidation import BackgroundRevalidator
from .commands import (
    Command,
    CacheScore,
    CacheTimerEvent,
    GetOfflineData,
    SkipWaiting,
    parse_command,
)
from .errors import OriginUnreachable
from .lifecycle import ClientRegistry, LifecycleManager
from .origin import OriginClient, RequestsOrigin
from .queue.mutations import OfflineMutationQueue
from .queue.records import MutationKind, SyncTag
from .queue.store import PersistentStore, SqlAlchemyStore
from .responses import offline_response
from .routing import RoutePolicy, classify_request
from .strategies import StrategyEngine
from .sync.coordinator import SyncCoordinator, SyncResult
from .sync.scheduler import PendingTagScheduler, SyncScheduler

logger = logging.getLogger("engine")


class OfflineEngine:
    """
    Wires classification, strategies, the mutation queue, sync and lifecycle.
    """

    def __init__(
        self,
        policy: RoutePolicy,
        partitions: CachePartitionManager,
        origin: OriginClient,
        queue: OfflineMutationQueue,
        scheduler: SyncScheduler,
        coordinator: SyncCoordinator,
        lifecycle: LifecycleManager,
        revalidator: BackgroundRevalidator,
        names: PartitionNames,
    ):
        self.policy = policy
        self.partitions = partitions
        self.origin = origin
        self.queue = queue
        self.scheduler = scheduler
        self.coordinator = coordinator
        self.lifecycle = lifecycle
        self.revalidator = revalidator
        self.names = names
        self.strategies = StrategyEngine(
            partitions=partitions,
            origin=origin,
            queue=queue,
            scheduler=scheduler,
            revalidator=revalidator,
            names=names,
            api_prefix=policy.api_prefix,
        )

    @classmethod
    def from_settings(
        cls,
        settings,
        origin: Optional[OriginClient] = None,
        store: Optional[PersistentStore] = None,
        scheduler: Optional[SyncScheduler] = None,
        clients: Optional[ClientRegistry] = None,
        precache_backoff: float = 1.0,
    ) -> "OfflineEngine":
        """
        Build an engine from Settings.

        Collaborators not supplied are created from the settings: a requests
        origin, a SQLAlchemy store and a pending-tag scheduler.
        """
        names = PartitionNames(prefix=settings.cache_prefix, version=settings.engine_version)
        origin = origin or RequestsOrigin(
            settings.origin_base_url,
            timeout=settings.origin_timeout_seconds,
        )
        store = store or SqlAlchemyStore(settings.database_url)
        scheduler = scheduler or PendingTagScheduler()
        partitions = CachePartitionManager(limits=names.limits(settings.partition_limits))
        queue = OfflineMutationQueue(store)
        coordinator = SyncCoordinator(
            queue=queue,
            origin=origin,
            endpoints={
                MutationKind.SCORE: settings.score_sync_endpoint,
                MutationKind.TIMER_EVENT: settings.timer_sync_endpoint,
            },
        )
        lifecycle = LifecycleManager(
            partitions=partitions,
            origin=origin,
            store=store,
            names=names,
            critical_assets=settings.critical_assets,
            clients=clients,
            precache_attempts=settings.precache_attempts,
            precache_backoff=precache_backoff,
        )
        return cls(
            policy=RoutePolicy.from_settings(settings),
            partitions=partitions,
            origin=origin,
            queue=queue,
            scheduler=scheduler,
            coordinator=coordinator,
            lifecycle=lifecycle,
            revalidator=BackgroundRevalidator(max_workers=settings.revalidation_workers),
            names=names,
        )

    # ===== REQUESTS =====

    def handle(self, request: RequestDescriptor) -> ResponseSnapshot:
        """
        Resolve an intercepted request.

        Non-GET requests outside the API prefix are forwarded untouched.
        """
        category = classify_request(self.policy, request)

        try:
            if category is None:
                logger.debug(f"Passthrough: {request.method} {request.path}")
                response = self.origin.fetch(request)
            else:
                logger.debug(f"{category.value}: {request.method} {request.path}")
                response = self.strategies.execute(category, request)
        except OriginUnreachable as e:
            logger.warning(f"No response available for {request.method} {request.path}: {e}")
            response = offline_response()

        response.headers[SOURCE_HEADER] = response.source.value
        return response

    # ===== COMMANDS =====

    def handle_message(self, message: Union[Command, Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        """
        Apply a command from the host application.

        Returns:
            The reply for commands that have one, otherwise None

        Raises:
            pydantic.ValidationError: For an unknown or malformed raw message
            AssertionError: For a command object outside the Command union
        """
        command = message if not isinstance(message, dict) else parse_command(message)
        logger.info(f"Message received: {command.type}")

        if isinstance(command, SkipWaiting):
            self.lifecycle.skip_waiting()
            return None
        if isinstance(command, CacheScore):
            self.queue.enqueue(MutationKind.SCORE, command.payload)
            return None
        if isinstance(command, CacheTimerEvent):
            self.queue.enqueue(MutationKind.TIMER_EVENT, command.payload)
            return None
        if isinstance(command, GetOfflineData):
            return self.queue.offline_data()
        assert_never(command)

    # ===== SYNC =====

    def sync(self, tag: Union[SyncTag, str]) -> SyncResult:
        """Deliver a sync trigger."""
        return self.coordinator.run(tag)

    def sync_pending(self) -> Dict[str, SyncResult]:
        """Fire every tag the scheduler is holding, if it holds them."""
        drain = getattr(self.scheduler, "drain", None)
        tags = drain() if drain else []
        return {tag.value: self.coordinator.run(tag) for tag in tags}

    def sync_now(self) -> Dict[str, SyncResult]:
        """Manual sync of every tag, independent of scheduled triggers."""
        return {result.tag: result for result in self.coordinator.run_all()}

    def shutdown(self) -> None:
        self.revalidator.shutdown()

    def get_stats(self) -> Dict[str, Any]:
        return {
            "version": self.names.version,
            "state": self.lifecycle.state.value,
            "cache": self.partitions.get_stats(),
            "revalidation": self.revalidator.get_stats(),
            "queue": self.queue.get_stats(),
            "sync": self.coordinator.get_stats(),
            "clients": len(self.lifecycle.clients),
            "pendingTags": [t.value for t in getattr(self.scheduler, "pending", list)()],
        }
