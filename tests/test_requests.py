"""Tests for retry classification and the circuit breaker."""

import pytest
import requests

from clearscout.contexts.collection.errors import ClientRejection, NetworkError, TransientNetworkError
from clearscout.contexts.collection.requests import (
    LINK_BAD,
    LINK_GOOD,
    LINK_UNKNOWN,
    FetchRequest,
    FetchResponse,
    NetworkCircuitBreakerException,
    URLFetcher,
    classify_http_outcome,
    request_with_retry,
)
from conftest import FakeTransport

URL = "https://example.test/page"


def no_sleep(seconds):
    pass


class TestClassification:
    @pytest.mark.parametrize(
        "status, expected",
        [(200, LINK_GOOD), (204, LINK_GOOD), (404, LINK_BAD), (403, LINK_BAD), (408, LINK_BAD), (429, LINK_BAD), (500, LINK_UNKNOWN), (503, LINK_UNKNOWN)],
    )
    def test_status_codes(self, status, expected):
        assert classify_http_outcome(status_code=status) == expected

    def test_transport_errors(self):
        assert classify_http_outcome(exception=requests.ConnectionError("reset")) == LINK_UNKNOWN
        assert classify_http_outcome(exception=requests.Timeout("slow")) == LINK_UNKNOWN
        assert classify_http_outcome(exception=requests.exceptions.InvalidURL("bad")) == LINK_BAD


class TestRequestWithRetry:
    def test_server_errors_are_retried_until_attempts_run_out(self):
        transport = FakeTransport({URL: (500, "boom")})

        with pytest.raises(TransientNetworkError) as exc_info:
            request_with_retry(transport, FetchRequest(URL), max_attempts=3, delay=0, jitter=0, sleep=no_sleep)

        assert len(transport.calls) == 3
        assert exc_info.value.status_code == 500

    @pytest.mark.parametrize("status", [400, 404, 408, 429, 499])
    def test_client_errors_are_not_retried(self, status):
        transport = FakeTransport({URL: (status, "rejected")})

        with pytest.raises(ClientRejection) as exc_info:
            request_with_retry(transport, FetchRequest(URL), max_attempts=3, delay=0, jitter=0, sleep=no_sleep)

        assert exc_info.value.status_code == status
        assert len(transport.calls) == 1

    def test_recovers_after_transient_failure(self):
        transport = FakeTransport({URL: [requests.ConnectionError("reset"), (502, ""), (200, "ok")]})

        response = request_with_retry(transport, FetchRequest(URL), max_attempts=3, delay=0, jitter=0, sleep=no_sleep)

        assert response.text == "ok"
        assert len(transport.calls) == 3

    def test_unknown_transport_error_is_terminal(self):
        transport = FakeTransport({URL: requests.exceptions.InvalidURL("nope")})

        with pytest.raises(NetworkError) as exc_info:
            request_with_retry(transport, FetchRequest(URL), max_attempts=3, delay=0, jitter=0, sleep=no_sleep)

        assert not isinstance(exc_info.value, TransientNetworkError)
        assert len(transport.calls) == 1

    def test_backoff_grows_with_attempt_number(self):
        waits = []
        transport = FakeTransport({URL: (503, "")})

        with pytest.raises(TransientNetworkError):
            request_with_retry(transport, FetchRequest(URL), max_attempts=3, delay=1.0, jitter=0, sleep=waits.append)

        assert waits == [1.0, 2.0]


class TestURLFetcher:
    def test_try_fetch_returns_none_on_terminal_failure(self, fetcher, transport):
        transport.routes[URL] = (410, "gone")
        assert fetcher.try_fetch(URL) is None

    def test_circuit_breaker_trips_after_consecutive_transient_failures(self):
        transport = FakeTransport({URL: (500, "")})
        fetcher = URLFetcher(transport, max_consecutive_failures=2, request_delay=0, max_retries=1, retry_jitter=0, sleep=no_sleep)

        with pytest.raises(TransientNetworkError):
            fetcher.fetch(URL)
        with pytest.raises(NetworkCircuitBreakerException):
            fetcher.fetch(URL)

    def test_rate_limited_page_is_unavailable_after_one_attempt(self, fetcher, transport):
        transport.routes[URL] = (429, "slow down")
        assert fetcher.try_fetch(URL) is None
        assert len(transport.calls) == 1

    def test_per_item_failures_never_trip_the_breaker(self):
        transport = FakeTransport({URL: (503, "")})
        fetcher = URLFetcher(transport, max_consecutive_failures=2, request_delay=0, max_retries=1, retry_jitter=0, sleep=no_sleep)

        assert [fetcher.try_fetch(URL) for _ in range(5)] == [None] * 5
        assert fetcher.consecutive_failures == 0
        # The breaker still guards fetch() callers
        with pytest.raises(TransientNetworkError):
            fetcher.fetch(URL)

    def test_success_resets_the_breaker(self):
        transport = FakeTransport({URL: [(500, ""), (200, "ok"), (500, "")]})
        fetcher = URLFetcher(transport, max_consecutive_failures=2, request_delay=0, max_retries=1, retry_jitter=0, sleep=no_sleep)

        with pytest.raises(TransientNetworkError):
            fetcher.fetch(URL)
        assert fetcher.fetch(URL).text == "ok"
        with pytest.raises(TransientNetworkError):
            fetcher.fetch(URL)

    def test_json_decoding_failure_is_malformed_response(self):
        from clearscout.contexts.collection.errors import MalformedResponse

        with pytest.raises(MalformedResponse):
            FetchResponse(url=URL, status_code=200, text="<html>").json()
