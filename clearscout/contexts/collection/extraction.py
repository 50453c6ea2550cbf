"""
Field extraction primitives for job pages and API payloads.

Every extractor returns None (or an empty mapping) when its pattern does not
match; a miss is never an error.
"""

import json
import re
from typing import Any, Dict, Iterable, List, Optional

from bs4 import BeautifulSoup

from clearscout.utils.text_processing import (
    clean_body_lines,
    clean_body_text,
    normalize_space,
    strip_tags,
)

# Labelled lines on a job page. Each pattern captures up to the end of the line
# or the next known label, whichever comes first.
_LABEL_STOP = r"(?=\n|\s{2,}|Location:|Posted:|Relocation Assistance:|Remote/Telework:|Description of Duties:|$)"
TEXT_FIELD_PATTERNS = {
    "clearance_level": re.compile(r"Security Clearance:\s*(.+?)" + _LABEL_STOP, re.IGNORECASE),
    "location": re.compile(r"Location:\s*(.+?)" + _LABEL_STOP, re.IGNORECASE),
    "date_posted": re.compile(r"Posted:\s*([A-Za-z]+\s+\d{1,2},\s+\d{4})", re.IGNORECASE),
    "job_reference_id": re.compile(r"Job Reference ID:\s*([A-Za-z0-9\-]+)", re.IGNORECASE),
    "description_text": re.compile(
        r"Description of Duties:\s*(.*?)\s*(?:#{2,6}\s*Job Information|Job Information\s*:?|#{2,6}\s*Related jobs|Related jobs|Trending Job Titles|#{2,6}\s*Trending)",
        re.IGNORECASE | re.DOTALL,
    ),
}

# Custom field block labels, matched case-insensitively.
CUSTOM_BLOCK_LABELS = {
    "security clearance": "clearance_level",
    "salary": "salary",
    "job type": "employment_type",
    "location": "location",
}

JOB_POSTING_TYPE = "JobPosting"


def safe_json_loads(raw: Optional[str]) -> Any:
    if not raw:
        return None
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return None


def _is_job_posting(item: Any) -> bool:
    if not isinstance(item, dict):
        return False
    kind = item.get("@type")
    if isinstance(kind, list):
        return JOB_POSTING_TYPE in kind
    return kind == JOB_POSTING_TYPE


def find_job_posting(json_ld: Any) -> Optional[Dict[str, Any]]:
    """Find the JobPosting object in a decoded JSON-LD block (plain object, list or @graph)."""
    if isinstance(json_ld, dict) and isinstance(json_ld.get("@graph"), list):
        items = json_ld["@graph"]
    elif isinstance(json_ld, list):
        items = json_ld
    else:
        items = [json_ld]
    return next((item for item in items if _is_job_posting(item)), None)


def format_address(job_location: Any) -> Optional[str]:
    """Render schema.org jobLocation (object or list of them) as "Locality, Region, Country"."""
    if isinstance(job_location, list):
        rendered = [format_address(loc) for loc in job_location]
        rendered = [loc for loc in rendered if loc]
        return "; ".join(rendered) or None
    if isinstance(job_location, str):
        return normalize_space(job_location) or None
    if not isinstance(job_location, dict):
        return None

    address = job_location.get("address", job_location)
    if isinstance(address, str):
        return normalize_space(address) or None
    if not isinstance(address, dict):
        return None

    country = address.get("addressCountry")
    if isinstance(country, dict):
        country = country.get("name")
    parts = [address.get("addressLocality"), address.get("addressRegion"), country]
    return normalize_space(", ".join(str(p) for p in parts if p)) or None


def format_salary(base_salary: Any) -> Optional[str]:
    """
    Render schema.org baseSalary as text.

    Numbers are stringified without formatting; a MonetaryAmount becomes
    "min-max unit" (or "value unit").
    """
    if base_salary is None or isinstance(base_salary, (str, int, float)):
        return normalize_space(base_salary) if base_salary is not None else None
    if not isinstance(base_salary, dict):
        return None

    value = base_salary.get("value", base_salary)
    if not isinstance(value, dict):
        return normalize_space(value)

    low, high = value.get("minValue"), value.get("maxValue")
    if low is not None and high is not None:
        amount = f"{low}-{high}"
    else:
        amount = next((str(v) for v in (value.get("value"), low, high) if v is not None), None)
    if amount is None:
        return None
    unit = value.get("unitText")
    return normalize_space(f"{amount} {unit}" if unit else amount)


def extract_structured_data(soup: BeautifulSoup) -> Optional[Dict[str, Any]]:
    """
    Pull the first JobPosting out of the page's ``application/ld+json`` blocks.

    Returns a flat mapping with normalized values (title, company, location,
    description_html, description_text, date_posted, valid_through,
    employment_type, salary, clearance_level, url) or None.
    """
    for script in soup.find_all("script", type="application/ld+json"):
        posting = find_job_posting(safe_json_loads(script.string or script.get_text()))
        if posting is not None:
            return normalize_job_posting(posting)
    return None


def normalize_job_posting(posting: Dict[str, Any]) -> Dict[str, Any]:
    organization = posting.get("hiringOrganization")
    company = organization.get("name") if isinstance(organization, dict) else organization

    employment_type = posting.get("employmentType")
    if isinstance(employment_type, list):
        employment_type = ", ".join(str(t) for t in employment_type if t)

    description = posting.get("description")
    return {
        "title": normalize_space(posting.get("title") or posting.get("name")),
        "company": normalize_space(company),
        "location": format_address(posting.get("jobLocation")),
        "description_html": description,
        "description_text": strip_tags(description) if description else None,
        "date_posted": normalize_space(posting.get("datePosted")),
        "valid_through": normalize_space(posting.get("validThrough")),
        "employment_type": normalize_space(employment_type),
        "salary": format_salary(posting.get("baseSalary")),
        "clearance_level": normalize_space(posting.get("securityClearanceRequirement")),
        "url": posting.get("url") or posting.get("directApplyUrl"),
        "id": normalize_space(posting.get("identifier", {}).get("value"))
        if isinstance(posting.get("identifier"), dict)
        else None,
    }


def extract_text_fields(text: str) -> Dict[str, Optional[str]]:
    """Apply the labelled-line patterns to page text (scripts and styles already removed)."""
    fields = {}
    for name, pattern in TEXT_FIELD_PATTERNS.items():
        match = pattern.search(text or "")
        fields[name] = normalize_space(match.group(1)) or None if match else None
    return fields


def extract_header(soup: BeautifulSoup) -> Dict[str, Optional[str]]:
    """
    Title, company and location from the page header.

    The title is the first ``h1``. Company and location are the first two links
    in the ``h1``'s parent, then class-based selectors.
    """
    h1 = soup.find("h1")
    title = normalize_space(h1.get_text(" ")) if h1 else None

    links = h1.parent.find_all("a") if h1 is not None and h1.parent is not None else []
    company = normalize_space(links[0].get_text(" ")) if len(links) > 0 else None
    location = normalize_space(links[1].get_text(" ")) if len(links) > 1 else None

    def by_class(*selectors: str) -> Optional[str]:
        for selector in selectors:
            node = soup.select_one(selector)
            if node is not None:
                text = normalize_space(node.get_text(" "))
                if text:
                    return text
        return None

    description_node = soup.select_one(".job-description, .description, #job-description")
    return {
        "title": title or None,
        "company": company or by_class(".company", ".company-name", ".employer"),
        "location": location or by_class(".location", ".job-location"),
        "description_html": description_node.decode_contents() if description_node is not None else None,
    }


def extract_custom_blocks(*payloads: Optional[Dict[str, Any]]) -> Dict[str, str]:
    """
    Collect labelled custom fields from API payloads.

    Payloads carry them as a list of ``{"label"|"name"|"title": ..., "value": ...}``
    entries under ``custom_fields``/``customFields``/``custom_blocks``. Labels
    match case-insensitively; the first payload to supply a label wins.
    """
    blocks: Dict[str, str] = {}
    for payload in payloads:
        for entry in _custom_entries(payload):
            label = normalize_space(entry.get("label") or entry.get("name") or entry.get("title"))
            value = entry.get("value")
            if isinstance(value, list):
                value = ", ".join(str(v) for v in value if v)
            field_name = CUSTOM_BLOCK_LABELS.get((label or "").lower())
            if field_name and value not in (None, "") and field_name not in blocks:
                blocks[field_name] = normalize_space(strip_tags(str(value)))
    return blocks


def _custom_entries(payload: Optional[Dict[str, Any]]) -> Iterable[Dict[str, Any]]:
    if not isinstance(payload, dict):
        return []
    for key in ("custom_fields", "customFields", "custom_blocks"):
        entries = payload.get(key)
        if isinstance(entries, list):
            return [e for e in entries if isinstance(e, dict)]
        if isinstance(entries, dict):
            return [{"label": k, "value": v} for k, v in entries.items()]
    return []


def parse_page(html: str) -> Dict[str, Any]:
    """Run every page extractor over one job page."""
    soup = BeautifulSoup(html or "", "html.parser")
    return {
        "structured_data": extract_structured_data(soup),
        "text_fields": extract_text_fields(clean_body_lines(soup)),
        "header": extract_header(soup),
        "page_text": clean_body_text(soup) or None,
    }


def parse_sitemap_locs(xml: str) -> List[str]:
    """All ``<loc>`` values of a sitemap or sitemap index, in document order."""
    soup = BeautifulSoup(xml or "", "xml")
    return [normalize_space(loc.get_text()) for loc in soup.find_all("loc") if loc.get_text().strip()]
