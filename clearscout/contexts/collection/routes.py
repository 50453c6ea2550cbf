"""
Route and session discovery for the structured API.

The site's search page embeds its route table (name -> URI template) in an
inline script and an anti-forgery token in a ``<meta>`` tag. Both are read from
that bootstrap page; routes missing from the table fall back to DEFAULT_ROUTES.
"""

import json
import re
from dataclasses import dataclass, field
from typing import Dict, Optional
from urllib.parse import quote, urljoin

from bs4 import BeautifulSoup
from loguru import logger

from clearscout.contexts.collection.errors import NetworkError

LISTING_ROUTE = "api.jobs.index"
DETAIL_ROUTE = "api.jobs.show"
ADDITIONAL_ROUTE = "api.jobs.additional"
JOB_PAGE_ROUTE = "jobs.show"

DEFAULT_ROUTES = {
    LISTING_ROUTE: "api/v1/jobs",
    DETAIL_ROUTE: "api/v1/jobs/{job}",
    ADDITIONAL_ROUTE: "api/v1/jobs/{job}/additional",
    JOB_PAGE_ROUTE: "job/{job}",
}

CSRF_HEADER = "X-CSRF-TOKEN"

PLACEHOLDER = re.compile(r"\{(\w+)(\?)?\}")
DOUBLE_SLASH = re.compile(r"(?<!:)/{2,}")
# "routes": {...} as emitted by Ziggy-style route helpers
ROUTES_KEY = re.compile(r"[\"']?routes[\"']?\s*:\s*\{")


def _balanced_object(text: str, start: int) -> Optional[str]:
    """Return the ``{...}`` object starting at text[start], honouring strings and nesting."""
    depth = 0
    in_string = None
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == in_string:
                in_string = None
        elif char in "\"'":
            in_string = char
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : index + 1]
    return None


def parse_route_table(script_text: str) -> Dict[str, str]:
    """
    Extract ``name -> uri template`` from inline script content.

    Accepts both ``{"name": {"uri": "..."}}`` and flat ``{"name": "..."}`` tables.
    Returns an empty dict when no parseable table is present.
    """
    match = ROUTES_KEY.search(script_text or "")
    if not match:
        return {}

    raw = _balanced_object(script_text, match.end() - 1)
    if raw is None:
        return {}
    try:
        table = json.loads(raw)
    except ValueError:
        return {}

    routes = {}
    for name, spec in table.items():
        uri = spec.get("uri") if isinstance(spec, dict) else spec
        if isinstance(uri, str):
            routes[name] = uri
    return routes


def fill_template(template: str, **params) -> str:
    """
    Substitute ``{param}`` / ``{param?}`` placeholders with URL-encoded values.

    Missing optional parameters are dropped along with their leading slash.

    Raises:
        KeyError: If a required placeholder has no value
    """

    def substitute(match: re.Match) -> str:
        name, optional = match.group(1), match.group(2)
        value = params.get(name)
        if value is None:
            if optional:
                return ""
            raise KeyError(f"Route parameter '{name}' is required by '{template}'")
        return quote(str(value), safe="")

    return DOUBLE_SLASH.sub("/", PLACEHOLDER.sub(substitute, template)).rstrip("/")


@dataclass
class EndpointSet:
    base_url: str
    routes: Dict[str, str] = field(default_factory=dict)

    def template(self, name: str) -> str:
        return self.routes.get(name) or DEFAULT_ROUTES[name]

    def build(self, name: str, **params) -> str:
        path = fill_template(self.template(name), **params)
        return urljoin(self.base_url.rstrip("/") + "/", path.lstrip("/"))

    def listing(self) -> str:
        return self.build(LISTING_ROUTE)

    def detail(self, job_id) -> str:
        return self.build(DETAIL_ROUTE, job=job_id)

    def additional(self, job_id) -> str:
        return self.build(ADDITIONAL_ROUTE, job=job_id)

    def job_page(self, job_id) -> str:
        return self.build(JOB_PAGE_ROUTE, job=job_id)


@dataclass
class DiscoveredSession:
    endpoints: EndpointSet
    csrf_token: Optional[str] = None

    @property
    def headers(self) -> Dict[str, str]:
        return {CSRF_HEADER: self.csrf_token} if self.csrf_token else {}


def discover(bootstrap_html: str, base_url: str) -> DiscoveredSession:
    """Read the route table and CSRF token from the bootstrap page."""
    soup = BeautifulSoup(bootstrap_html or "", "html.parser")

    routes = {}
    for script in soup.find_all("script"):
        if script.get("src"):
            continue
        routes = parse_route_table(script.string or script.get_text())
        if routes:
            break

    token_tag = soup.find("meta", attrs={"name": "csrf-token"})
    csrf_token = token_tag.get("content") if token_tag is not None else None

    missing = [name for name in DEFAULT_ROUTES if name not in routes]
    if missing:
        logger.info(f"Route table lacks {', '.join(missing)}; using default paths for those")

    known = {name: uri for name, uri in routes.items() if name in DEFAULT_ROUTES}
    return DiscoveredSession(endpoints=EndpointSet(base_url=base_url, routes=known), csrf_token=csrf_token or None)


def discover_or_fallback(fetcher, bootstrap_url: str, base_url: str) -> Optional[DiscoveredSession]:
    """
    Fetch the bootstrap page and discover the session.

    Returns None when the page cannot be fetched after retries; a page that
    loads but has no route table still yields a session with default routes.
    """
    try:
        response = fetcher.fetch(bootstrap_url)
    except NetworkError as e:
        logger.warning(f"Bootstrap page unavailable: {e}")
        return None
    return discover(response.text, base_url)
