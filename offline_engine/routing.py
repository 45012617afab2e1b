"""
Route policy and request classification.

Classification is a pure function of the request's method, path, accept
header and destination, checked against the configured prefix lists in a
fixed priority order.
"""
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from .cache.core import RouteCategory, RequestDescriptor


DEFAULT_STATIC_EXTENSIONS: Tuple[str, ...] = (
    ".js", ".css", ".png", ".jpg", ".jpeg", ".svg",
    ".woff", ".woff2", ".mp3", ".wav",
)

# Path fragments that mark a network-only request as a mutation worth queueing
MUTATING_MARKERS: Tuple[str, ...] = ("submit", "start", "stop")


@dataclass(frozen=True)
class RoutePolicy:
    """Prefix lists and matching rules supplied at initialization."""
    network_only: Tuple[str, ...] = ()
    cache_first: Tuple[str, ...] = ()
    network_first: Tuple[str, ...] = ()
    api_prefix: str = "/api/"
    static_extensions: Tuple[str, ...] = DEFAULT_STATIC_EXTENSIONS

    @classmethod
    def from_settings(cls, settings) -> "RoutePolicy":
        return cls(
            network_only=tuple(settings.network_only_routes),
            cache_first=tuple(settings.cache_first_routes),
            network_first=tuple(settings.network_first_routes),
            api_prefix=settings.api_prefix,
            static_extensions=tuple(settings.static_extensions),
        )

    def is_api(self, path: str) -> bool:
        return path.startswith(self.api_prefix)


def _matches_any(path: str, prefixes: Sequence[str]) -> bool:
    return any(path.startswith(prefix) for prefix in prefixes)


def classify(
    policy: RoutePolicy,
    method: str,
    path: str,
    accept: str = "",
    destination: str = "",
) -> Optional[RouteCategory]:
    """
    Determine the route category for a request.

    Args:
        policy: Configured route policy
        method: HTTP method
        path: URL path (no query string)
        accept: Value of the Accept header, empty if absent
        destination: Declared request destination ("document", ...)

    Returns:
        The RouteCategory, or None for non-GET requests outside the API
        prefix, which are passed through untouched
    """
    is_api = policy.is_api(path)

    if method.upper() != "GET" and not is_api:
        return None

    if _matches_any(path, policy.network_only):
        return RouteCategory.NETWORK_ONLY
    if _matches_any(path, policy.cache_first):
        return RouteCategory.CACHE_FIRST
    if _matches_any(path, policy.network_first):
        return RouteCategory.NETWORK_FIRST

    if not is_api:
        if any(path.endswith(ext) for ext in policy.static_extensions):
            return RouteCategory.STATIC
        if destination == "document" or "text/html" in (accept or ""):
            return RouteCategory.PAGE
        return RouteCategory.DYNAMIC

    # Unknown API routes default to network-first
    return RouteCategory.NETWORK_FIRST


def classify_request(policy: RoutePolicy, request: RequestDescriptor) -> Optional[RouteCategory]:
    """Classify a request descriptor."""
    return classify(
        policy,
        request.method,
        request.path,
        accept=request.accept,
        destination=request.destination,
    )


def is_mutating_path(path: str, markers: Sequence[str] = MUTATING_MARKERS) -> bool:
    """True if the path names a mutating action (submit, start, stop)."""
    return any(marker in path for marker in markers)
