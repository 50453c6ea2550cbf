"""
Job collection domain.

Collects job records from the site through interchangeable strategies
(structured API, sitemap, directory walk) with shared dedup and quota state.
"""

from clearscout.contexts.collection.api import APICollector
from clearscout.contexts.collection.base import (
    CollectionStrategy,
    PageCollector,
    parse_job_page,
)
from clearscout.contexts.collection.directory import DirectoryCollector
from clearscout.contexts.collection.errors import (
    ClientRejection,
    CollectionError,
    MalformedResponse,
    NetworkError,
    RouteDiscoveryError,
    TransientNetworkError,
)
from clearscout.contexts.collection.orchestration import (
    CollectionReport,
    build_strategies,
    run_collection,
    run_strategy,
)
from clearscout.contexts.collection.requests import (
    NetworkCircuitBreakerException,
    RequestsFetcher,
    URLFetcher,
    classify_http_outcome,
    request_with_retry,
)
from clearscout.contexts.collection.resolver import merge_missing, resolve
from clearscout.contexts.collection.routes import discover, discover_or_fallback
from clearscout.contexts.collection.schema import JobRecord, RawSourceFragment, SourceStrategy
from clearscout.contexts.collection.sitemap import SitemapCollector
from clearscout.contexts.collection.state import CollectionState

__all__ = [
    "CollectionStrategy",
    "PageCollector",
    "APICollector",
    "SitemapCollector",
    "DirectoryCollector",
    "parse_job_page",
    "request_with_retry",
    "RequestsFetcher",
    "URLFetcher",
    "NetworkCircuitBreakerException",
    "classify_http_outcome",
    "CollectionError",
    "NetworkError",
    "TransientNetworkError",
    "ClientRejection",
    "MalformedResponse",
    "RouteDiscoveryError",
    "resolve",
    "merge_missing",
    "discover",
    "discover_or_fallback",
    "JobRecord",
    "RawSourceFragment",
    "SourceStrategy",
    "CollectionState",
    "CollectionReport",
    "build_strategies",
    "run_collection",
    "run_strategy",
]
