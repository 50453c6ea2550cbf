"""
Error taxonomy for the collection context.

A field extraction that doesn't match is not an error: extractors return None.
"""

from typing import Optional


class CollectionError(Exception):
    """Base exception for collection errors."""

    pass


class NetworkError(CollectionError):
    """Terminal failure of a single request (after any retries)."""

    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class TransientNetworkError(NetworkError):
    """5xx, throttling, timeouts, connection resets. Retried."""

    pass


class ClientRejection(NetworkError):
    """4xx response. Never retried; the field or page is treated as unavailable."""

    pass


class MalformedResponse(CollectionError):
    """Non-JSON body where JSON was expected, or the expected array is missing."""

    pass


class RouteDiscoveryError(CollectionError):
    """The bootstrap page could not be fetched, so the API strategy cannot run."""

    pass
