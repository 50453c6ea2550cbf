"""
Structured API strategy.

Paginates the JSON listing endpoint, enriches every item with its detail and
additional-info sub-resources, and, when the merged record still has gaps,
with the structured data of the item's own job page.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urljoin

from loguru import logger

from clearscout.contexts.collection.base import CollectionStrategy, batched
from clearscout.contexts.collection.errors import MalformedResponse, NetworkError, RouteDiscoveryError
from clearscout.contexts.collection.extraction import extract_custom_blocks, parse_page
from clearscout.contexts.collection.resolver import merge_missing, resolve
from clearscout.contexts.collection.routes import DiscoveredSession, discover_or_fallback
from clearscout.contexts.collection.schema import JobRecord, RawSourceFragment, SourceStrategy
from clearscout.contexts.collection.state import CollectionState

# A record missing any of these gets one extra fetch of its job page.
ENRICHMENT_FIELDS = ("description_text", "employment_type", "clearance_level", "location")


def extract_listing_items(body: Any) -> List[Dict[str, Any]]:
    """
    Find the jobs array in a listing response: ``data``, ``jobs`` or ``data.jobs``.

    Raises:
        MalformedResponse: If there is no such array
    """
    if isinstance(body, dict):
        for candidate in (body.get("data"), body.get("jobs")):
            if isinstance(candidate, list):
                return [item for item in candidate if isinstance(item, dict)]
            if isinstance(candidate, dict) and isinstance(candidate.get("jobs"), list):
                return [item for item in candidate["jobs"] if isinstance(item, dict)]
    raise MalformedResponse("Listing response has no jobs array")


def extract_next_link(body: Any) -> Optional[str]:
    if not isinstance(body, dict):
        return None
    links = body.get("links")
    if isinstance(links, dict) and links.get("next"):
        return links["next"]
    return body.get("next_page_url") or None


class APICollector(CollectionStrategy):
    """
    Page(n) -> fetch listing -> enrich in batches -> Page(n+1) while a next link
    exists, the quota is unmet and the page budget remains.
    """

    name = "api"

    def __init__(
        self,
        fetcher,
        sink,
        base_url: str,
        bootstrap_path: str = "/jobs",
        keywords: Optional[str] = None,
        location: Optional[str] = None,
        clearance: Optional[str] = None,
        remote: Optional[str] = None,
        sort: Optional[str] = None,
        max_pages: int = 10,
        min_description_chars: int = 200,
        enrich_from_page: bool = True,
        **kwargs,
    ):
        super().__init__(fetcher, sink, base_url, **kwargs)
        self.bootstrap_url = urljoin(self.base_url + "/", bootstrap_path.lstrip("/"))
        self.keywords = keywords
        self.location = location
        self.clearance = clearance
        self.remote = remote
        self.sort = sort
        self.max_pages = max_pages
        self.min_description_chars = min_description_chars
        self.enrich_from_page = enrich_from_page
        self.session: Optional[DiscoveredSession] = None
        self.pages_fetched = 0
        self._subrequests: Optional[ThreadPoolExecutor] = None

    def listing_params(self, page: int) -> Dict[str, Any]:
        params = {
            "page": page,
            "keywords": self.keywords,
            "sort": self.sort,
            "city_state_zip": self.location,
            "remote": self.remote,
            "clearance": self.clearance,
        }
        return {key: value for key, value in params.items() if value not in (None, "")}

    def collect(self, state: CollectionState, remaining: int) -> int:
        self.session = discover_or_fallback(self.fetcher, self.bootstrap_url, self.base_url)
        if self.session is None:
            raise RouteDiscoveryError(f"Could not load bootstrap page {self.bootstrap_url}")

        saved = 0
        page = 1
        url, params = self.session.endpoints.listing(), self.listing_params(page)

        with ThreadPoolExecutor(max_workers=2 * self.batch_width) as subrequests:
            self._subrequests = subrequests
            try:
                while page <= self.max_pages and not self._done(state, saved, remaining):
                    items, next_link = self.fetch_listing_page(url, params)
                    logger.info(f"API page {page}: {len(items)} items")
                    if not items:
                        break

                    saved += self.enrich_and_persist(state, items, remaining - saved)

                    if not next_link:
                        break
                    page += 1
                    # The cursor carries the query; follow it as given.
                    url, params = urljoin(self.base_url + "/", next_link), None
                    self._pause()
            finally:
                self._subrequests = None

        logger.info(f"API strategy finished after {self.pages_fetched} page(s), saved {saved}")
        return saved

    def fetch_listing_page(self, url: str, params: Optional[Dict[str, Any]]) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        """One listing page. A terminal failure or malformed body means "page unavailable": ([], None)."""
        self.pages_fetched += 1
        try:
            response = self.fetcher.fetch(url, params=params, headers=self.session.headers, accept_json=True)
            body = response.json()
            return extract_listing_items(body), extract_next_link(body)
        except (NetworkError, MalformedResponse) as e:
            logger.warning(f"Listing page unavailable ({url}): {e}")
            return [], None

    def enrich_and_persist(self, state: CollectionState, items: List[Dict[str, Any]], remaining: int) -> int:
        saved = 0
        for batch in batched(items, self.batch_width):
            if self._done(state, saved, remaining):
                break

            records = self.run_batch(self.enrich_item, batch)

            # Results are applied in listing order; the rest of a batch is dropped once the quota is met.
            for record in records:
                if self._done(state, saved, remaining):
                    break
                if self.persist(state, record):
                    saved += 1
        return saved

    def fetch_data(self, url: str) -> Optional[Dict[str, Any]]:
        """GET a JSON sub-resource and unwrap its ``data`` key. Unavailable -> None."""
        response = self.fetcher.try_fetch(url, headers=self.session.headers, accept_json=True)
        if response is None:
            return None
        try:
            body = response.json()
        except MalformedResponse as e:
            logger.debug(str(e))
            return None
        if isinstance(body, dict) and isinstance(body.get("data"), dict):
            return body["data"]
        return body if isinstance(body, dict) else None

    def enrich_item(self, item: Dict[str, Any]) -> JobRecord:
        endpoints = self.session.endpoints
        job_id = item.get("id") or item.get("job_id")

        detail = additional = None
        if job_id is not None:
            if self._subrequests is not None:
                detail_future = self._subrequests.submit(self.fetch_data, endpoints.detail(job_id))
                additional_future = self._subrequests.submit(self.fetch_data, endpoints.additional(job_id))
                detail, additional = detail_future.result(), additional_future.result()
            else:
                detail, additional = self.fetch_data(endpoints.detail(job_id)), self.fetch_data(endpoints.additional(job_id))

        fragments = RawSourceFragment(
            listing=item,
            detail=detail,
            additional=additional,
            custom_blocks=extract_custom_blocks(detail, additional, item),
        )
        record = resolve(fragments, source_strategy=SourceStrategy.API)

        if record.url:
            record.url = urljoin(self.base_url + "/", record.url)
        elif job_id is not None:
            record.url = endpoints.job_page(job_id)

        if self.enrich_from_page and record.url and self.needs_page_enrichment(record):
            record = self.enrich_from_job_page(record)
        return record

    def needs_page_enrichment(self, record: JobRecord) -> bool:
        if record.missing(*ENRICHMENT_FIELDS):
            return True
        return len(record.description_text or "") < self.min_description_chars

    def enrich_from_job_page(self, record: JobRecord) -> JobRecord:
        """
        Fill gaps from the job page's JSON-LD and labelled fields; page data never
        overrides API values. Header heuristics and whole-body text are not used.
        """
        response = self.fetcher.try_fetch(record.url)
        if response is None:
            return record

        page = parse_page(response.text)
        page_record = resolve(
            RawSourceFragment(structured_data=page["structured_data"], text_fields=page["text_fields"], url=record.url),
            source_strategy=SourceStrategy.API,
        )

        # An implausibly short description is replaced by a longer one from the page.
        current = record.description_text or ""
        if len(current) < self.min_description_chars and len(page_record.description_text or "") > len(current):
            record.description_text = page_record.description_text
            record.description_html = page_record.description_html or record.description_html

        record = merge_missing(record, page_record)
        record.source_strategy = SourceStrategy.API
        return record
