"""
Directory walk strategy.

Breadth-first walk seeded from the employer directory:
- directory pages link to company pages and to further directory pages
  (bounded by max_directory_pages)
- company pages link to job pages (and "View All Jobs" pages, treated as
  company pages)
- job pages are terminal: their outbound links are never followed
"""

import re
from collections import deque
from typing import List, Tuple
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from loguru import logger

from clearscout.contexts.collection.base import PageCollector
from clearscout.contexts.collection.schema import SourceStrategy
from clearscout.contexts.collection.state import CollectionState
from clearscout.utils.text_processing import normalize_space

DIRECTORY = "EMPLOYER_DIRECTORY"
COMPANY = "COMPANY"

COMPANY_PAGE = re.compile(r"/company/[a-z0-9\-]+-\d+", re.IGNORECASE)
DIRECTORY_PAGINATION = re.compile(r"employer-directory.*page=", re.IGNORECASE)
JOB_PAGE = re.compile(r"/job/", re.IGNORECASE)
VIEW_ALL_JOBS = re.compile(r"view all jobs", re.IGNORECASE)
QUERY_OR_FRAGMENT = re.compile(r"[#?].*$")


def _absolute_links(soup: BeautifulSoup, page_url: str) -> List[Tuple[str, str]]:
    """(absolute href, link text) for every anchor with an href."""
    return [
        (urljoin(page_url, a["href"]), normalize_space(a.get_text(" ")) or "")
        for a in soup.find_all("a", href=True)
    ]


def directory_links(html: str, page_url: str) -> Tuple[List[str], List[str]]:
    """Company page links and directory pagination links found on a directory page."""
    soup = BeautifulSoup(html or "", "html.parser")
    companies, directories = [], []
    for href, _ in _absolute_links(soup, page_url):
        if "/company/" in href and COMPANY_PAGE.search(href):
            companies.append(href)
        elif DIRECTORY_PAGINATION.search(href):
            directories.append(href)
    return list(dict.fromkeys(companies)), list(dict.fromkeys(directories))


def company_links(html: str, page_url: str) -> Tuple[List[str], List[str]]:
    """Job page links (query and fragment stripped) and "View All Jobs" links found on a company page."""
    soup = BeautifulSoup(html or "", "html.parser")
    jobs, more_companies = [], []
    for href, text in _absolute_links(soup, page_url):
        if JOB_PAGE.search(href):
            jobs.append(QUERY_OR_FRAGMENT.sub("", href))
        elif VIEW_ALL_JOBS.search(text):
            more_companies.append(href)
    return list(dict.fromkeys(jobs)), list(dict.fromkeys(more_companies))


class DirectoryCollector(PageCollector):
    name = "directory"
    source_strategy = SourceStrategy.HTML

    def __init__(
        self,
        fetcher,
        sink,
        base_url: str,
        directory_path: str = "/employer-directory",
        max_directory_pages: int = 20,
        max_requests: int = 5000,
        **kwargs,
    ):
        super().__init__(fetcher, sink, base_url, **kwargs)
        self.directory_url = urljoin(self.base_url + "/", directory_path.lstrip("/"))
        self.max_directory_pages = max_directory_pages
        self.max_requests = max_requests
        self.requests_made = 0
        self.directory_pages_fetched = 0

    def _budget_left(self) -> int:
        return max(self.max_requests - self.requests_made, 0)

    def collect(self, state: CollectionState, remaining: int) -> int:
        queue = deque([(self.directory_url, DIRECTORY)])
        visited = {self.directory_url}
        saved = 0

        def enqueue(urls, label):
            for url in urls:
                if url not in visited:
                    visited.add(url)
                    queue.append((url, label))

        while queue and self._budget_left() and not self._done(state, saved, remaining):
            url, label = queue.popleft()

            if label == DIRECTORY:
                if self.directory_pages_fetched >= self.max_directory_pages:
                    continue
                self.directory_pages_fetched += 1

            logger.info(f"{label}: {url}")
            self.requests_made += 1
            response = self.fetcher.try_fetch(url)
            if response is None:
                continue

            if label == DIRECTORY:
                companies, directories = directory_links(response.text, url)
                enqueue(companies, COMPANY)
                enqueue(directories, DIRECTORY)
                continue

            job_urls, more_companies = company_links(response.text, url)
            enqueue(more_companies, COMPANY)

            job_urls = [job_url for job_url in job_urls if job_url not in visited and job_url not in state.seen]
            visited.update(job_urls)
            job_urls = job_urls[: self._budget_left()]
            if job_urls:
                self.requests_made += len(job_urls)
                saved += self.collect_job_pages(state, job_urls, remaining - saved)

        logger.info(
            f"Directory walk finished: {self.directory_pages_fetched} directory page(s), "
            f"{self.requests_made} request(s), saved {saved}"
        )
        return saved
