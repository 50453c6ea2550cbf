"""HTTP helpers shared by the collection strategies."""

import json
import random
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

import requests
from loguru import logger

from clearscout.contexts.collection.errors import (
    ClientRejection,
    MalformedResponse,
    NetworkError,
    TransientNetworkError,
)

TransientErrorTypes = (requests.exceptions.ConnectionError, requests.exceptions.Timeout)

LINK_GOOD = "success"
LINK_BAD = "failure"
LINK_UNKNOWN = "transient failure"

DEFAULT_TIMEOUT = 20.0  # seconds
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
DEFAULT_HEADERS = {
    "User-Agent": DEFAULT_USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}
JSON_HEADERS = {
    "Accept": "application/json, text/plain, */*",
    "X-Requested-With": "XMLHttpRequest",
}


@dataclass
class FetchRequest:
    url: str
    params: Optional[Dict[str, str]] = None
    headers: Optional[Dict[str, str]] = None
    accept_json: bool = False


@dataclass
class FetchResponse:
    url: str
    status_code: int
    text: str
    headers: Dict[str, str] = field(default_factory=dict)

    def json(self):
        """Decode the body, raising MalformedResponse instead of a decode error."""
        try:
            return json.loads(self.text)
        except (TypeError, ValueError) as e:
            raise MalformedResponse(f"Expected JSON from {self.url}: {e}") from e


# A transport takes a FetchRequest and returns a FetchResponse for any status code.
# It raises requests exceptions for transport-level failures.
Transport = Callable[[FetchRequest], FetchResponse]


def classify_http_outcome(
    status_code: Optional[int] = None,
    exception: Optional[Exception] = None,
) -> str:
    if status_code is not None:  # We received a response.
        if 200 <= status_code < 300:
            return LINK_GOOD
        elif status_code >= 500:
            return LINK_UNKNOWN
        else:
            return LINK_BAD

    elif exception is not None:  # No response, only an exception.
        if isinstance(exception, (TransientErrorTypes, TransientNetworkError)):
            return LINK_UNKNOWN
        else:
            return LINK_BAD
    else:
        # We received nothing. We know nothing about the link.
        return LINK_UNKNOWN


def is_retryable(error: Exception) -> bool:
    return classify_http_outcome(exception=error) == LINK_UNKNOWN


def _error_for_response(response: FetchResponse) -> Optional[NetworkError]:
    outcome = classify_http_outcome(status_code=response.status_code)
    if outcome == LINK_GOOD:
        return None
    message = f"HTTP {response.status_code} for {response.url}"
    if outcome == LINK_UNKNOWN:
        return TransientNetworkError(message, url=response.url, status_code=response.status_code)
    return ClientRejection(message, url=response.url, status_code=response.status_code)


def _error_for_exception(exception: requests.RequestException, url: str) -> NetworkError:
    message = f"{type(exception).__name__} for {url}: {exception}"
    if isinstance(exception, TransientErrorTypes):
        return TransientNetworkError(message, url=url)
    return NetworkError(message, url=url)


def request_with_retry(
    transport: Transport,
    request: FetchRequest,
    max_attempts: int = 3,
    delay: float = 1.0,
    jitter: float = 0.25,
    retryable: Callable[[Exception], bool] = is_retryable,
    sleep: Callable[[float], None] = time.sleep,
) -> FetchResponse:
    """
    Make an HTTP request with automatic retry on transient failure.

    Args:
        transport: Callable issuing a single request
        request: The request to issue
        max_attempts: How many times to try the request (default: 3)
        delay: Base delay in seconds; attempt n waits delay * n plus jitter
        jitter: Upper bound of the random delay added to each wait
        retryable: Predicate deciding whether an error is worth another attempt
        sleep: Sleep function (injectable for tests)

    Returns:
        FetchResponse: The successful (2xx) response

    Raises:
        ClientRejection: On a 4xx response, without retrying
        TransientNetworkError: If every attempt failed transiently
        NetworkError: On a non-transient transport error, without retrying
    """
    most_recent_exception = None

    for attempt in range(1, max_attempts + 1):
        try:
            response = transport(request)
            error = _error_for_response(response)
            if error is None:
                return response
        except requests.RequestException as e:
            error = _error_for_exception(e, request.url)
            error.__cause__ = e

        if not retryable(error):
            raise error
        most_recent_exception = error

        if attempt < max_attempts:
            wait_time = delay * attempt + random.uniform(0, jitter)
            logger.debug(f"{error}; retrying in {wait_time:.2f}s (attempt {attempt}/{max_attempts})")
            sleep(wait_time)

    raise most_recent_exception


class RequestsFetcher:
    """
    Transport over a ``requests.Session``.

    Header/identity rotation is not this class's business: pass a
    ``header_provider`` callable and its headers are merged into every request.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        proxy_url: Optional[str] = None,
        header_provider: Optional[Callable[[], Dict[str, str]]] = None,
        session: Optional[requests.Session] = None,
    ):
        self.timeout = timeout
        self.proxies = {"http": proxy_url, "https": proxy_url} if proxy_url else None
        self.header_provider = header_provider
        self.session = session or requests.Session()
        self.session.headers.update(DEFAULT_HEADERS)

    def __call__(self, request: FetchRequest) -> FetchResponse:
        headers = {}
        if self.header_provider is not None:
            headers.update(self.header_provider())
        if request.accept_json:
            headers.update(JSON_HEADERS)
        headers.update(request.headers or {})

        response = self.session.get(
            request.url,
            params=request.params,
            headers=headers,
            timeout=self.timeout,
            proxies=self.proxies,
        )
        return FetchResponse(
            url=response.url,
            status_code=response.status_code,
            text=response.text,
            headers=dict(response.headers),
        )

    def close(self):
        self.session.close()


class NetworkCircuitBreakerException(Exception):
    pass


class URLFetcher:
    def __init__(
        self,
        transport: Transport,
        max_consecutive_failures=5,
        request_delay=1.0,
        max_retries=3,
        retry_jitter=0.25,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.transport = transport
        self.max_consecutive_failures = max_consecutive_failures
        self.request_delay = request_delay
        self.max_retries = max_retries
        self.retry_jitter = retry_jitter
        self.sleep = sleep
        self.consecutive_failures = 0
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, fetch_config, transport: Optional[Transport] = None, **kwargs) -> "URLFetcher":
        """Build a fetcher from a fetch.yaml config, creating a RequestsFetcher if no transport is given."""
        if transport is None:
            transport = RequestsFetcher(
                timeout=fetch_config.request_timeout,
                proxy_url=fetch_config.get("proxy_url"),
            )
        return cls(
            transport,
            max_consecutive_failures=fetch_config.max_consecutive_failures,
            request_delay=fetch_config.request_delay,
            max_retries=fetch_config.max_retries,
            retry_jitter=fetch_config.retry_jitter,
            **kwargs,
        )

    def fetch(self, url, params=None, headers=None, accept_json=False, count_failures=True) -> FetchResponse:
        """
        Fetch URL with retry, classification, and circuit breaking.

        Args:
            count_failures: Whether a transient failure counts toward the circuit breaker

        Raises:
            NetworkError: Terminal failure for this URL (ClientRejection, TransientNetworkError, ...)
            NetworkCircuitBreakerException: If consecutive transient failures exceed threshold
        """
        request = FetchRequest(url=url, params=params, headers=headers, accept_json=accept_json)
        try:
            response = request_with_retry(
                self.transport,
                request,
                max_attempts=self.max_retries,
                delay=self.request_delay,
                jitter=self.retry_jitter,
                sleep=self.sleep,
            )
        except TransientNetworkError:
            if count_failures:
                self._record_transient_failure()
            raise
        except NetworkError:
            self._reset_failures()
            raise

        self._reset_failures()
        return response

    def try_fetch(self, url, params=None, headers=None, accept_json=False) -> Optional[FetchResponse]:
        """
        Per-item fetch: a terminal failure for this URL returns None instead of raising.

        Per-item failures never trip the circuit breaker; only fetch() callers
        (listing, bootstrap and sitemap index) do.
        """
        try:
            return self.fetch(url, params=params, headers=headers, accept_json=accept_json, count_failures=False)
        except NetworkError as e:
            logger.debug(f"Unavailable: {e}")
            return None

    def _record_transient_failure(self):
        with self._lock:
            self.consecutive_failures += 1
            failures = self.consecutive_failures
            self.consecutive_failures = 0 if failures >= self.max_consecutive_failures else failures

        if failures >= self.max_consecutive_failures:
            raise NetworkCircuitBreakerException(
                f"Circuit breaker: {failures} consecutive transient failures"
            )

    def _reset_failures(self):
        with self._lock:
            self.consecutive_failures = 0
