"""
Shared fixtures: a scripted in-process origin and engines wired to it.
"""
import json
import threading
from typing import Any, Callable, Dict, List, Optional, Union

import pytest

from config.settings import Settings
from offline_engine.cache.core import RequestDescriptor, ResponseSnapshot
from offline_engine.engine import OfflineEngine
from offline_engine.errors import OriginUnreachable
from offline_engine.origin import OriginClient
from offline_engine.queue.store import InMemoryStore

ORIGIN = "http://origin.test"

Route = Union[ResponseSnapshot, Callable[[RequestDescriptor], ResponseSnapshot]]


def json_response(payload: Any, status: int = 200) -> ResponseSnapshot:
    return ResponseSnapshot(
        status=status,
        headers={"Content-Type": "application/json"},
        body=json.dumps(payload).encode("utf-8"),
    )


def text_response(text: str, status: int = 200, content_type: str = "text/plain") -> ResponseSnapshot:
    return ResponseSnapshot(
        status=status,
        headers={"Content-Type": content_type},
        body=text.encode("utf-8"),
    )


def request(
    path: str,
    method: str = "GET",
    body: Optional[Any] = None,
    headers: Optional[Dict[str, str]] = None,
    destination: str = "",
) -> RequestDescriptor:
    raw = b""
    if body is not None:
        raw = body if isinstance(body, bytes) else json.dumps(body).encode("utf-8")
    return RequestDescriptor(
        method=method,
        url=f"{ORIGIN}{path}",
        headers=headers or {},
        body=raw,
        destination=destination,
    )


class FakeOrigin(OriginClient):
    """
    Origin double answering from a route table.

    Unknown paths answer 404. While offline, or for paths listed in
    unreachable, fetch raises OriginUnreachable. Every call is recorded.
    """

    def __init__(self):
        super().__init__(ORIGIN)
        self.routes: Dict[str, Route] = {}
        self.offline = False
        self.unreachable: set = set()
        self.calls: List[RequestDescriptor] = []
        self._lock = threading.Lock()

    def route(self, path: str, response: Route) -> None:
        self.routes[path] = response

    def fetch(self, request: RequestDescriptor) -> ResponseSnapshot:
        with self._lock:
            self.calls.append(request)
        if self.offline or request.path in self.unreachable:
            raise OriginUnreachable(request.url)
        handler = self.routes.get(request.path_with_query, self.routes.get(request.path))
        if handler is None:
            return text_response("not found", status=404)
        if callable(handler):
            return handler(request)
        return handler.clone()

    def calls_to(self, path: str, method: Optional[str] = None) -> List[RequestDescriptor]:
        with self._lock:
            return [
                c for c in self.calls
                if c.path == path and (method is None or c.method == method)
            ]


@pytest.fixture
def origin():
    return FakeOrigin()


@pytest.fixture
def test_settings():
    return Settings(
        origin_base_url=ORIGIN,
        critical_assets=["/", "/index.html"],
        partition_limits={"static": 50, "dynamic": 3, "api": 200},
        revalidation_workers=2,
    )


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def engine(test_settings, origin, store):
    engine = OfflineEngine.from_settings(
        test_settings,
        origin=origin,
        store=store,
        precache_backoff=0,
    )
    yield engine
    engine.shutdown()
