"""
Origin fetch collaborator.

The strategy layer only depends on OriginClient.fetch; RequestsOrigin is the
production transport talking to the live competition backend.
"""
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import requests

from .cache.core import RequestDescriptor, ResponseSnapshot, CacheSource
from .errors import OriginUnreachable

logger = logging.getLogger("engine.origin")

# Headers that describe a single transport hop and must not be forwarded or stored
HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
    "host",
    "content-length",
    "content-encoding",
}


def strip_hop_by_hop(headers: Dict[str, str]) -> Dict[str, str]:
    return {k: v for k, v in headers.items() if k.lower() not in HOP_BY_HOP_HEADERS}


class OriginClient(ABC):
    """Abstract origin transport."""

    def __init__(self, base_url: str = ""):
        self.base_url = base_url.rstrip("/")

    def url_for(self, path: str) -> str:
        """Absolute origin URL for a path (optionally with query)."""
        if not path.startswith("/"):
            path = "/" + path
        return f"{self.base_url}{path}"

    @abstractmethod
    def fetch(self, request: RequestDescriptor) -> ResponseSnapshot:
        """
        Send a request to the origin.

        Returns:
            The origin's response, whatever its status

        Raises:
            OriginUnreachable: On any transport-level failure
        """
        pass

    def post_json(self, path: str, payload: Any) -> ResponseSnapshot:
        """POST a JSON body to an origin path."""
        request = RequestDescriptor(
            method="POST",
            url=self.url_for(path),
            headers={"Content-Type": "application/json"},
            body=json.dumps(payload, default=str).encode("utf-8"),
        )
        return self.fetch(request)


class RequestsOrigin(OriginClient):
    """
    Origin transport built on requests.

    Every call carries an explicit timeout so a hung origin cannot block a
    strategy indefinitely.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        """
        Args:
            base_url: Origin base URL, e.g. "https://scores.example.org"
            timeout: Seconds before a fetch is abandoned
            session: Optional pre-configured session
        """
        super().__init__(base_url)
        self.timeout = timeout
        self._session = session or requests.Session()

    def fetch(self, request: RequestDescriptor) -> ResponseSnapshot:
        url = self.url_for(request.path_with_query)
        try:
            response = self._session.request(
                request.method,
                url,
                headers=strip_hop_by_hop(request.headers),
                data=request.body or None,
                timeout=self.timeout,
                allow_redirects=True,
            )
        except requests.RequestException as e:
            logger.warning(f"Origin fetch failed: {request.method} {url} - {e}")
            raise OriginUnreachable(url, e) from e

        logger.debug(f"Origin {request.method} {url} -> {response.status_code}")
        return ResponseSnapshot(
            status=response.status_code,
            headers=strip_hop_by_hop(dict(response.headers)),
            body=response.content,
            source=CacheSource.NETWORK,
        )

    def close(self) -> None:
        self._session.close()
