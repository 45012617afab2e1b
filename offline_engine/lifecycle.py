"""
Install and activation of an engine version.

Install seeds the static partition with the critical assets and writes the
offline-status sentinel. Activation prunes partitions left by other versions,
prepares the mutation store and takes control of connected clients.
"""
import threading
import logging
from enum import Enum
from typing import Dict, List, Optional, Sequence, Set, Tuple

from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from .cache.core import RequestDescriptor, ResponseSnapshot, make_cache_key
from .cache.partitions import CachePartitionManager, PartitionNames
from .errors import InstallError, OriginUnreachable, StoreFailure
from .origin import OriginClient
from .queue.store import PersistentStore
from .responses import offline_status_response

logger = logging.getLogger("engine.lifecycle")

OFFLINE_STATUS_PATH = "/api/offline-status"


class LifecycleState(Enum):
    """Lifecycle of one engine version."""
    PARSED = "parsed"
    INSTALLING = "installing"
    INSTALLED = "installed"         # Waiting for activation
    ACTIVATING = "activating"
    ACTIVATED = "activated"
    REDUNDANT = "redundant"         # Install failed


class ClientRegistry:
    """
    Connected client sessions and the engine version controlling each.

    The gateway registers a client the first time it sees its X-Client-Id
    header; hosts embedding the engine directly call connect themselves.
    """

    def __init__(self):
        self._controllers: Dict[str, Optional[str]] = {}
        self._lock = threading.Lock()

    def connect(self, client_id: str, controller: Optional[str] = None) -> None:
        with self._lock:
            self._controllers[client_id] = controller

    def connect_if_absent(self, client_id: str, controller: Optional[str] = None) -> bool:
        """
        Register a client unless it is already known.

        Returns:
            True if the client was newly registered
        """
        with self._lock:
            if client_id in self._controllers:
                return False
            self._controllers[client_id] = controller
            return True

    def disconnect(self, client_id: str) -> None:
        with self._lock:
            self._controllers.pop(client_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._controllers)

    def controller_of(self, client_id: str) -> Optional[str]:
        with self._lock:
            return self._controllers.get(client_id)

    def claim(self, version: str) -> List[str]:
        """
        Put every connected client under the given version.

        Returns:
            Ids of clients whose controller changed
        """
        with self._lock:
            changed = [cid for cid, ctrl in self._controllers.items() if ctrl != version]
            for cid in self._controllers:
                self._controllers[cid] = version
            return changed


class LifecycleManager:
    """Drives one engine version through install and activation."""

    def __init__(
        self,
        partitions: CachePartitionManager,
        origin: OriginClient,
        store: PersistentStore,
        names: PartitionNames,
        critical_assets: Sequence[str] = (),
        clients: Optional[ClientRegistry] = None,
        precache_attempts: int = 3,
        precache_backoff: float = 1.0,
    ):
        """
        Args:
            partitions: Cache partition manager
            origin: Origin client used to fetch the critical assets
            store: Mutation store prepared on activation
            names: Partition names of this version
            critical_assets: Paths that must all be cached for install to succeed
            clients: Registry of connected clients
            precache_attempts: Attempts per asset on transport failure
            precache_backoff: Exponential backoff multiplier in seconds
        """
        self.partitions = partitions
        self.origin = origin
        self.store = store
        self.names = names
        self.critical_assets = list(critical_assets)
        self.clients = clients or ClientRegistry()
        self.precache_attempts = max(1, precache_attempts)
        self.precache_backoff = precache_backoff

        self.state = LifecycleState.PARSED
        self._skip_waiting = False
        self._lock = threading.RLock()

    @property
    def version(self) -> str:
        return self.names.version

    def install(self) -> None:
        """
        Seed caches, then activate right away instead of waiting for handoff.

        Raises:
            InstallError: If any critical asset could not be cached; the
                version becomes redundant
        """
        with self._lock:
            logger.info(f"Installing engine version {self.version}...")
            self.state = LifecycleState.INSTALLING
            try:
                self._precache_static()
            except InstallError:
                self.state = LifecycleState.REDUNDANT
                raise

            logger.info("Initializing API cache")
            self.partitions.put(
                self.names.api,
                make_cache_key("GET", self.origin.url_for(OFFLINE_STATUS_PATH)),
                offline_status_response(self.version),
            )
            self.state = LifecycleState.INSTALLED
            self.skip_waiting()

    def _fetch_asset(self, path: str) -> ResponseSnapshot:
        fetch = retry(
            stop=stop_after_attempt(self.precache_attempts),
            wait=wait_exponential(multiplier=self.precache_backoff, max=10),
            retry=retry_if_exception_type(OriginUnreachable),
            reraise=True,
        )(self.origin.fetch)
        return fetch(RequestDescriptor(method="GET", url=self.origin.url_for(path)))

    def _precache_static(self) -> None:
        """All-or-nothing: nothing is stored unless every asset succeeded."""
        logger.info(f"Caching {len(self.critical_assets)} static assets")
        fetched: List[Tuple[str, ResponseSnapshot]] = []
        for path in self.critical_assets:
            try:
                response = self._fetch_asset(path)
            except OriginUnreachable as e:
                raise InstallError(f"Could not fetch critical asset {path}: {e}") from e
            if not response.ok:
                raise InstallError(f"Critical asset {path} returned status {response.status}")
            fetched.append((make_cache_key("GET", self.origin.url_for(path)), response))

        for key, response in fetched:
            self.partitions.put(self.names.static, key, response)

    def skip_waiting(self) -> None:
        """Force activation of an installed version."""
        with self._lock:
            self._skip_waiting = True
            if self.state == LifecycleState.INSTALLED:
                self.activate()

    def register_client(self, client_id: str) -> Optional[str]:
        """
        Record a client session seen by the host.

        A client first seen after activation is controlled by this version
        straight away; one seen earlier stays uncontrolled until the next
        activation claims it.

        Returns:
            The version controlling the client, if any
        """
        with self._lock:
            controller = self.version if self.state == LifecycleState.ACTIVATED else None
            if self.clients.connect_if_absent(client_id, controller):
                logger.debug(f"Client connected: {client_id} (controller={controller})")
            return self.clients.controller_of(client_id)

    @property
    def waiting(self) -> bool:
        return self.state == LifecycleState.INSTALLED

    def activate(self) -> List[str]:
        """
        Prune stale partitions, prepare the store and claim clients.

        Returns:
            Names of the partitions that were deleted
        """
        with self._lock:
            logger.info(f"Activating engine version {self.version}...")
            self.state = LifecycleState.ACTIVATING

            removed = self.cleanup_old_partitions()

            try:
                self.store.init()
                logger.info("Offline storage initialized")
            except StoreFailure as e:
                logger.error(f"Failed to initialize offline storage: {e}")

            claimed = self.clients.claim(self.version)
            if claimed:
                logger.info(f"Claimed {len(claimed)} clients")

            self.state = LifecycleState.ACTIVATED
            return removed

    def cleanup_old_partitions(self) -> List[str]:
        """Delete every partition not expected by this version."""
        expected: Set[str] = set(self.names.expected())
        stale = [name for name in self.partitions.names() if name not in expected]
        for name in stale:
            self.partitions.drop(name)
        if stale:
            logger.info(f"Deleted {len(stale)} old partitions: {stale}")
        return stale
