"""
Base classes for collection strategies.

This module defines the abstract base classes and common functionality for all strategies:
- CollectionStrategy: Abstract base with bounded-concurrency batching and persistence
- PageCollector: For strategies that discover job page URLs and parse each page
  (sitemap, directory walk)

The API strategy lives in api.py and builds directly on CollectionStrategy.
"""

import time
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, Iterator, List, Optional, Sequence, TypeVar

from loguru import logger
from tqdm import tqdm

from clearscout.contexts.collection.extraction import parse_page
from clearscout.contexts.collection.requests import URLFetcher
from clearscout.contexts.collection.resolver import resolve
from clearscout.contexts.collection.schema import JobRecord, RawSourceFragment, SourceStrategy
from clearscout.contexts.collection.state import CollectionState

T = TypeVar("T")
R = TypeVar("R")


def parse_job_page(url: str, html: str, source_strategy: SourceStrategy = SourceStrategy.HTML) -> JobRecord:
    """
    Turn one job page into a JobRecord.

    Precedence per field: JSON-LD JobPosting, then labelled-line patterns from
    the page text (scripts and styles removed), then header/DOM heuristics.
    The title is never taken from body text.
    """
    page = parse_page(html)
    fragments = RawSourceFragment(
        structured_data=page["structured_data"],
        text_fields=page["text_fields"],
        header=page["header"],
        page_text=page["page_text"],
        url=url,
    )
    record = resolve(fragments, source_strategy=source_strategy)
    # The page we fetched is the identity, whatever url the JSON-LD advertises.
    record.url = url
    return record


def batched(items: Sequence[T], width: int) -> Iterator[List[T]]:
    """Split items into consecutive lists of at most width elements."""
    assert width > 0, "Batch width must be a positive number"
    for start in range(0, len(items), width):
        yield list(items[start : start + width])


class CollectionStrategy(ABC):
    """
    Abstract base class for all collection strategies.

    Provides common functionality:
    - Bounded-concurrency batches with results in submission order
    - Persistence through CollectionState (dedup + quota)
    - Optional client-side search filtering
    """

    name = "strategy"
    applies_search_filter = False

    def __init__(
        self,
        fetcher: URLFetcher,
        sink,
        base_url: str,
        batch_width: int = 5,
        batch_delay: float = 0.0,
        search_filter=None,
        verbose: bool = True,
    ):
        assert batch_width > 0, "batch_width must be a positive number"
        self.fetcher = fetcher
        self.sink = sink
        self.base_url = base_url.rstrip("/")
        self.batch_width = batch_width
        self.batch_delay = batch_delay
        self.search_filter = search_filter
        self.verbose = verbose

    @abstractmethod
    def collect(self, state: CollectionState, remaining: int) -> int:
        """
        Collect up to `remaining` new records into state/sink.

        Returns: number of records this strategy saved
        """
        pass

    def run_batch(self, func: Callable[[T], R], items: Sequence[T]) -> List[R]:
        """
        Run func over items with at most batch_width in flight.

        Results come back in the order of items, whatever order the work finishes in.
        """
        if len(items) <= 1:
            return [func(item) for item in items]
        with ThreadPoolExecutor(max_workers=min(self.batch_width, len(items))) as pool:
            return list(pool.map(func, items))

    def persist(self, state: CollectionState, record: Optional[JobRecord]) -> bool:
        """Single persistence path for every strategy."""
        if record is None:
            return False
        if self.applies_search_filter and self.search_filter is not None and not self.search_filter.matches(record):
            logger.debug(f"Filtered out: {record.title or record.url}")
            return False
        return state.save(record, self.sink)

    @staticmethod
    def _done(state: CollectionState, saved: int, remaining: int) -> bool:
        return saved >= remaining or state.quota_met

    def _pause(self):
        # Be polite to the server
        if self.batch_delay:
            time.sleep(self.batch_delay)


class PageCollector(CollectionStrategy):
    """
    Base class for strategies that end in individual job pages.

    Subclasses discover candidate job page URLs; this class fetches and parses
    them in concurrent batches and persists results in discovery order.
    """

    source_strategy = SourceStrategy.HTML
    applies_search_filter = True

    def fetch_job_record(self, url: str) -> Optional[JobRecord]:
        """Fetch and parse one job page. A terminal fetch failure yields None."""
        response = self.fetcher.try_fetch(url)
        if response is None:
            return None
        return parse_job_page(url, response.text, source_strategy=self.source_strategy)

    def collect_job_pages(self, state: CollectionState, urls: Iterable[str], remaining: int) -> int:
        """Fetch job pages batch by batch until remaining is used up or urls run out."""
        candidates = [url for url in dict.fromkeys(urls) if url not in state.seen]
        saved = 0

        with tqdm(total=len(candidates), disable=not self.verbose, desc=self.name) as progress:
            for batch in batched(candidates, self.batch_width):
                if self._done(state, saved, remaining):
                    break

                records = self.run_batch(self.fetch_job_record, batch)
                progress.update(len(batch))

                # Quota may have moved while the batch was in flight: re-check per record.
                for record in records:
                    if self._done(state, saved, remaining):
                        break
                    if self.persist(state, record):
                        saved += 1

                self._pause()

        return saved
