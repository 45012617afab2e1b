"""
Responses synthesized by the engine itself rather than the origin.
"""
import time
from typing import Optional

from pydantic import BaseModel

from .cache.core import ResponseSnapshot, CacheSource


QUEUED_MESSAGE = "Request queued for when connection is restored"


# ===== RESPONSE SCHEMAS =====

class OfflineError(BaseModel):
    """Body of the 503 returned when neither origin nor cache can answer"""
    error: str = "Network unavailable"
    offline: bool = True


class QueuedMutation(BaseModel):
    """Body of the 202 returned when a mutation was captured for replay"""
    success: bool = False
    offline: bool = True
    queued: bool = True
    message: str = QUEUED_MESSAGE


class OfflineStatus(BaseModel):
    """Diagnostic sentinel stored in the API partition on install"""
    offline: bool = True
    timestamp: int
    version: str


# ===== BUILDERS =====

def offline_response() -> ResponseSnapshot:
    """503 offline error, also used as the generic asset fallback."""
    return ResponseSnapshot.from_json(OfflineError().model_dump(), status=503)


def queued_response() -> ResponseSnapshot:
    """202 accepted for a mutation queued for later sync."""
    return ResponseSnapshot.from_json(QueuedMutation().model_dump(), status=202)


def offline_status_response(version: str, timestamp: Optional[int] = None) -> ResponseSnapshot:
    """Offline-status sentinel; timestamp is epoch milliseconds."""
    status = OfflineStatus(
        timestamp=timestamp if timestamp is not None else int(time.time() * 1000),
        version=version,
    )
    return ResponseSnapshot.from_json(status.model_dump(), status=200)


OFFLINE_HTML = """<!DOCTYPE html>
<html>
<head>
  <title>Offline - Competition</title>
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <style>
    body { font-family: sans-serif; padding: 20px; text-align: center; background: #000; color: #dc2626; }
    .offline-container { max-width: 400px; margin: 0 auto; }
    button { background: #dc2626; color: white; border: none; padding: 12px 24px; border-radius: 8px; font-size: 16px; cursor: pointer; }
  </style>
</head>
<body>
  <div class="offline-container">
    <h1>You're Offline</h1>
    <p>Check your internet connection and try again.</p>
    <button onclick="location.reload()">Retry</button>
  </div>
</body>
</html>
"""


def offline_html_response() -> ResponseSnapshot:
    """Offline document for failed page navigations."""
    return ResponseSnapshot(
        status=200,
        headers={"Content-Type": "text/html; charset=utf-8"},
        body=OFFLINE_HTML.encode("utf-8"),
        source=CacheSource.SYNTHETIC,
    )
