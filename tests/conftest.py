"""
Shared fixtures: an in-memory transport, a list sink and fetcher factories.

No test touches the network.
"""

import json
from pathlib import Path
from urllib.parse import urlencode

import pytest
from omegaconf import OmegaConf

from clearscout.contexts.collection.requests import FetchResponse, URLFetcher
from clearscout.contexts.storage.sink import RecordSink
from clearscout.utils.config_helpers import load_config

BASE_URL = "https://example.test"
FETCH_CONFIG = load_config("fetch", config_dir=Path(__file__).parent.parent / "config")


def page_html(title="Intel Analyst", company="Acme Corp", location="Reston, VA", body="", json_ld=None):
    """A job page shaped like the site's: h1 header with company/location links and labelled text."""
    ld_block = ""
    if json_ld is not None:
        ld_block = f'<script type="application/ld+json">{json.dumps(json_ld)}</script>'
    return f"""
    <html><head>{ld_block}<script>var tracking = "Location: Nowhere";</script></head>
    <body>
      <div class="header">
        <h1>{title}</h1>
        <a href="/company/acme-corp-1">{company}</a>
        <a href="/jobs?location=x">{location}</a>
      </div>
      {body}
    </body></html>
    """


def json_body(data) -> str:
    return json.dumps(data)


class FakeTransport:
    """
    Transport answering from a url -> response table.

    Values may be (status, text), a list of those (consumed one per call, the
    last one repeating), an exception instance to raise, or a callable taking
    the FetchRequest. Unknown URLs answer 404. Query params are folded into the
    url before lookup.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []

    @staticmethod
    def full_url(request) -> str:
        if request.params:
            return f"{request.url}?{urlencode(request.params)}"
        return request.url

    def __call__(self, request):
        url = self.full_url(request)
        self.calls.append(request)

        spec = self.routes.get(url, (404, "not found"))
        if callable(spec):
            spec = spec(request)
        if isinstance(spec, list):
            spec = spec.pop(0) if len(spec) > 1 else spec[0]
        if isinstance(spec, Exception):
            raise spec

        status, text = spec
        return FetchResponse(url=url, status_code=status, text=text)

    def urls_called(self):
        return [self.full_url(request) for request in self.calls]

    def count(self, prefix: str) -> int:
        return sum(1 for url in self.urls_called() if url.startswith(prefix))

    def close(self):
        pass


class ListSink(RecordSink):
    def __init__(self):
        self.records = []
        self.closed = False

    def write(self, record) -> None:
        self.records.append(record)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def fetcher(transport) -> URLFetcher:
    """URLFetcher over the fake transport with the production breaker threshold and no sleeping."""
    return URLFetcher(
        transport,
        max_consecutive_failures=FETCH_CONFIG.max_consecutive_failures,
        request_delay=0.0,
        max_retries=3,
        retry_jitter=0.0,
        sleep=lambda seconds: None,
    )


@pytest.fixture
def sink() -> ListSink:
    return ListSink()


@pytest.fixture
def collection_config():
    return OmegaConf.create(
        {
            "base_url": BASE_URL,
            "results_wanted": 3,
            "keywords": "",
            "location": "",
            "clearance": "",
            "remote": "",
            "sort": "",
            "batch_width": 2,
            "batch_delay": 0.0,
            "max_pages": 10,
            "min_description_chars": 20,
            "max_directory_pages": 5,
            "max_requests": 100,
            "bootstrap_path": "/jobs",
            "sitemap_path": "/sitemap.xml",
            "directory_path": "/employer-directory",
            "prefer_html_only": False,
        }
    )
