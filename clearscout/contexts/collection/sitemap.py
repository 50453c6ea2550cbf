"""
Sitemap strategy.

Reads the sitemap index, keeps the child sitemaps that list active jobs,
collects their job page URLs and hands them to the page collector.
"""

import re
from typing import Collection, List
from urllib.parse import urljoin, urlparse

from loguru import logger

from clearscout.contexts.collection.base import PageCollector
from clearscout.contexts.collection.errors import NetworkError
from clearscout.contexts.collection.extraction import parse_sitemap_locs
from clearscout.contexts.collection.schema import SourceStrategy
from clearscout.contexts.collection.state import CollectionState

# jobs.xml, jobs-2.xml, active-jobs.xml, jobs_active_1.xml, ...
ACTIVE_JOBS_SITEMAP = re.compile(r"^(active[-_]?)?jobs?([-_](active|\d+))*\.xml$", re.IGNORECASE)
INACTIVE_SITEMAP = re.compile(r"expired|archive|closed", re.IGNORECASE)
JOB_PAGE_PATH = re.compile(r"/job/[^/?#]+", re.IGNORECASE)

# Candidate URLs fetched per remaining record
CANDIDATE_FACTOR = 2


def is_active_jobs_sitemap(url: str) -> bool:
    name = urlparse(url).path.rsplit("/", 1)[-1]
    return bool(ACTIVE_JOBS_SITEMAP.search(name)) and not INACTIVE_SITEMAP.search(name)


def is_job_page_url(url: str) -> bool:
    return bool(JOB_PAGE_PATH.search(urlparse(url).path))


def is_sitemap_index(xml: str) -> bool:
    return "<sitemapindex" in (xml or "")


class SitemapCollector(PageCollector):
    name = "sitemap"
    source_strategy = SourceStrategy.SITEMAP

    def __init__(self, fetcher, sink, base_url: str, sitemap_path: str = "/sitemap.xml", **kwargs):
        super().__init__(fetcher, sink, base_url, **kwargs)
        self.sitemap_url = urljoin(self.base_url + "/", sitemap_path.lstrip("/"))

    def discover_job_urls(self, limit: int, exclude: Collection[str] = ()) -> List[str]:
        """
        Job page URLs from the active-jobs sitemaps, deduplicated, minus exclude, at most limit of them.

        An index that is itself a urlset is read directly.
        """
        try:
            index_xml = self.fetcher.fetch(self.sitemap_url).text
        except NetworkError as e:
            logger.warning(f"Sitemap index unavailable: {e}")
            return []

        if is_sitemap_index(index_xml):
            child_sitemaps = [url for url in parse_sitemap_locs(index_xml) if is_active_jobs_sitemap(url)]
            logger.info(f"{len(child_sitemaps)} active job sitemap(s) in {self.sitemap_url}")
        else:
            child_sitemaps = []

        job_urls = [] if child_sitemaps else [url for url in parse_sitemap_locs(index_xml) if is_job_page_url(url)]
        for sitemap_url in child_sitemaps:
            if len(job_urls) >= limit:
                break
            response = self.fetcher.try_fetch(sitemap_url)
            if response is None:
                continue
            job_urls += [url for url in parse_sitemap_locs(response.text) if is_job_page_url(url)]

        return [url for url in dict.fromkeys(job_urls) if url not in exclude][:limit]

    def collect(self, state: CollectionState, remaining: int) -> int:
        candidates = self.discover_job_urls(limit=CANDIDATE_FACTOR * remaining, exclude=state.seen)
        logger.info(f"Sitemap: {len(candidates)} candidate job page(s)")
        if not candidates:
            return 0
        return self.collect_job_pages(state, candidates, remaining)
