"""
Core request, response and cache data structures.
"""
import json
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from urllib.parse import urlsplit, urlunsplit


class RouteCategory(Enum):
    """Route categories, each resolved by its own strategy."""
    CACHE_FIRST = "cache_first"       # Reference data, background revalidation
    NETWORK_FIRST = "network_first"   # Live data, cache only as fallback
    NETWORK_ONLY = "network_only"     # Mutations, queued when offline
    STATIC = "static"                 # Static files, cache-first without revalidation
    PAGE = "page"                     # Document navigations
    DYNAMIC = "dynamic"               # Everything else, bounded cache


class CacheSource(Enum):
    """Where a response handed to the caller came from."""
    NETWORK = "network"       # Fetched from the origin
    CACHE = "cache"           # Served from a partition
    SYNTHETIC = "synthetic"   # Built by the engine itself


SOURCE_HEADER = "X-Offline-Source"


@dataclass
class ResponseSnapshot:
    """
    A fully-read response: status, headers and body bytes.

    Bodies are read once when the snapshot is created, so cloning is a copy
    and the caller's copy never aliases the stored copy.
    """
    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    source: CacheSource = CacheSource.NETWORK

    @property
    def ok(self) -> bool:
        """True for a success (2xx) status."""
        return 200 <= self.status < 300

    @property
    def content_type(self) -> Optional[str]:
        return self.header("content-type")

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None

    def clone(self, source: Optional[CacheSource] = None) -> "ResponseSnapshot":
        """Independent copy, optionally re-tagged with a new source."""
        return ResponseSnapshot(
            status=self.status,
            headers=dict(self.headers),
            body=bytes(self.body),
            source=source or self.source,
        )

    def json(self) -> Any:
        return json.loads(self.body.decode("utf-8"))

    @classmethod
    def from_json(
        cls,
        payload: Any,
        status: int = 200,
        source: CacheSource = CacheSource.SYNTHETIC,
    ) -> "ResponseSnapshot":
        """Build a JSON response snapshot."""
        return cls(
            status=status,
            headers={"Content-Type": "application/json"},
            body=json.dumps(payload).encode("utf-8"),
            source=source,
        )


@dataclass
class RequestDescriptor:
    """
    An intercepted request, independent of the transport that carried it.
    """
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    destination: str = ""  # "document", "script", "image", ... or empty

    def __post_init__(self):
        self.method = self.method.upper()

    @property
    def path(self) -> str:
        return urlsplit(self.url).path or "/"

    @property
    def query(self) -> str:
        return urlsplit(self.url).query

    @property
    def path_with_query(self) -> str:
        return f"{self.path}?{self.query}" if self.query else self.path

    @property
    def accept(self) -> str:
        for key, value in self.headers.items():
            if key.lower() == "accept":
                return value
        return ""

    @property
    def cache_key(self) -> str:
        """Normalized METHOD + URL used as the partition key."""
        return make_cache_key(self.method, self.url)


def make_cache_key(method: str, url: str) -> str:
    """
    Normalize method and URL into a cache key.

    Scheme and host are lower-cased and the fragment is dropped; path and
    query are kept verbatim.
    """
    parts = urlsplit(url)
    normalized = urlunsplit((
        parts.scheme.lower(),
        parts.netloc.lower(),
        parts.path or "/",
        parts.query,
        "",
    ))
    return f"{method.upper()} {normalized}"


@dataclass
class CachedEntry:
    """A stored response with its insertion metadata."""
    response: ResponseSnapshot
    insertion_index: int
    stored_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def age_seconds(self) -> float:
        """Seconds since the entry was stored."""
        return (datetime.utcnow() - self.stored_at).total_seconds()


@dataclass
class CachePartition:
    """
    A named, bounded container of cached entries.

    Entries are kept in insertion order. Reads never reorder them; re-inserting
    a key replaces the old entry and appends the new one at the end.
    """
    name: str
    max_entries: Optional[int] = None
    entries: "OrderedDict[str, CachedEntry]" = field(default_factory=OrderedDict)
    next_index: int = 0

    def __len__(self) -> int:
        return len(self.entries)
