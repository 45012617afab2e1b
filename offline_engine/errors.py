"""
Error taxonomy for the offline engine.

Origin errors are handled inside the strategy layer. Store errors are logged
and absorbed by the queue and the sync coordinator. None of these is fatal
to the host process.
"""
from typing import Optional


class OfflineEngineError(Exception):
    """Base class for all engine errors."""
    pass


class OriginUnreachable(OfflineEngineError):
    """Transport-level failure talking to the origin."""

    def __init__(self, url: str, cause: Optional[BaseException] = None):
        self.url = url
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Origin unreachable for {url}{detail}")


class OriginRejected(OfflineEngineError):
    """Origin answered with a non-success status."""

    def __init__(self, url: str, status: int):
        self.url = url
        self.status = status
        super().__init__(f"Origin rejected {url} with status {status}")


class CacheMiss(OfflineEngineError):
    """No entry stored under the requested key."""

    def __init__(self, partition: str, key: str):
        self.partition = partition
        self.key = key
        super().__init__(f"No entry for {key} in partition {partition}")


class StoreFailure(OfflineEngineError):
    """A persistent store operation failed."""
    pass


class ClassificationAmbiguous(OfflineEngineError):
    """A route category could not be mapped to a strategy. Indicates a defect."""
    pass


class InstallError(OfflineEngineError):
    """Critical assets could not all be cached during install."""
    pass
