"""
Field resolution across partial sources.

Each output field has an ordered list of (source_name, extractor) pairs. The
resolver walks the list left to right and keeps the first non-empty value, so
precedence can be read (and tested) straight off FIELD_PRIORITY.
"""

from dataclasses import fields, replace
from typing import Any, Callable, Dict, List, Optional, Tuple

from clearscout.contexts.collection.extraction import format_address, format_salary
from clearscout.contexts.collection.schema import JobRecord, RawSourceFragment, SourceStrategy
from clearscout.utils.text_processing import first_non_empty, strip_tags

Extractor = Callable[[RawSourceFragment], Any]


def _key(view: str, *names: str) -> Extractor:
    """Extractor reading the first present key of one API view (listing/detail/additional)."""

    def extract(fragments: RawSourceFragment) -> Any:
        payload = getattr(fragments, view)
        if not isinstance(payload, dict):
            return None
        return first_non_empty(*(payload.get(name) for name in names))

    return extract


def _nested(view: str, outer: str, inner: str) -> Extractor:
    def extract(fragments: RawSourceFragment) -> Any:
        payload = getattr(fragments, view)
        value = payload.get(outer) if isinstance(payload, dict) else None
        return value.get(inner) if isinstance(value, dict) else value

    return extract


def _mapping(attribute: str, name: str) -> Extractor:
    """Extractor for the page-derived mappings (structured_data, text_fields, header, custom_blocks)."""

    def extract(fragments: RawSourceFragment) -> Any:
        mapping = getattr(fragments, attribute) or {}
        return mapping.get(name)

    return extract


def _api_views(*names: str) -> List[Tuple[str, Extractor]]:
    return [(view, _key(view, *names)) for view in ("detail", "listing", "additional")]


def _api_location(view: str) -> Extractor:
    def extract(fragments: RawSourceFragment) -> Any:
        payload = getattr(fragments, view)
        if not isinstance(payload, dict):
            return None
        location = first_non_empty(payload.get("location"), payload.get("job_location"))
        if isinstance(location, (dict, list)):
            return format_address(location)
        if location:
            return location
        parts = [payload.get("city"), payload.get("state")]
        return ", ".join(str(p) for p in parts if p) or None

    return extract


def _api_salary(view: str) -> Extractor:
    def extract(fragments: RawSourceFragment) -> Any:
        payload = getattr(fragments, view)
        if not isinstance(payload, dict):
            return None
        salary = first_non_empty(payload.get("salary"), payload.get("compensation"))
        if isinstance(salary, dict):
            return format_salary(salary)
        if salary is not None:
            return str(salary)
        low, high = payload.get("salary_min"), payload.get("salary_max")
        if low is not None and high is not None:
            return f"{low}-{high}"
        return None

    return extract


FIELD_PRIORITY: Dict[str, List[Tuple[str, Extractor]]] = {
    "id": [
        *_api_views("id", "job_id", "uuid"),
        ("structured_data", _mapping("structured_data", "id")),
    ],
    "url": [
        *_api_views("url", "job_url", "permalink"),
        ("structured_data", _mapping("structured_data", "url")),
        ("page", lambda fragments: fragments.url),
    ],
    "title": [
        *_api_views("title", "job_title", "name"),
        ("structured_data", _mapping("structured_data", "title")),
        ("header", _mapping("header", "title")),
    ],
    "company": [
        ("detail", _nested("detail", "company", "name")),
        ("listing", _nested("listing", "company", "name")),
        ("additional", _nested("additional", "company", "name")),
        *_api_views("company_name", "employer"),
        ("structured_data", _mapping("structured_data", "company")),
        ("header", _mapping("header", "company")),
    ],
    "location": [
        ("detail", _api_location("detail")),
        ("listing", _api_location("listing")),
        ("additional", _api_location("additional")),
        ("structured_data", _mapping("structured_data", "location")),
        ("custom_block", _mapping("custom_blocks", "location")),
        ("text_fields", _mapping("text_fields", "location")),
        ("header", _mapping("header", "location")),
    ],
    "clearance_level": [
        *_api_views("security_clearance", "clearance", "clearance_level"),
        ("structured_data", _mapping("structured_data", "clearance_level")),
        ("custom_block", _mapping("custom_blocks", "clearance_level")),
        ("text_fields", _mapping("text_fields", "clearance_level")),
    ],
    "salary": [
        ("detail", _api_salary("detail")),
        ("listing", _api_salary("listing")),
        ("additional", _api_salary("additional")),
        ("structured_data", _mapping("structured_data", "salary")),
        ("custom_block", _mapping("custom_blocks", "salary")),
    ],
    "employment_type": [
        *_api_views("job_type", "employment_type", "type"),
        ("structured_data", _mapping("structured_data", "employment_type")),
        ("custom_block", _mapping("custom_blocks", "employment_type")),
    ],
    "date_posted": [
        ("text_fields", _mapping("text_fields", "date_posted")),
        *_api_views("date_posted", "posted_at", "created_at", "published_at"),
        ("structured_data", _mapping("structured_data", "date_posted")),
    ],
    "description_html": [
        *_api_views("description", "description_html", "body"),
        ("structured_data", _mapping("structured_data", "description_html")),
        ("header", _mapping("header", "description_html")),
    ],
    "job_reference_id": [
        ("text_fields", _mapping("text_fields", "job_reference_id")),
        *_api_views("reference_id", "job_reference_id"),
    ],
}

# description_text is not a plain first-non-empty lookup: it depends on the
# resolved description_html, so it is resolved separately in resolve().
DESCRIPTION_TEXT_PRIORITY: List[Tuple[str, Extractor]] = [
    ("structured_data", _mapping("structured_data", "description_text")),
    ("text_fields", _mapping("text_fields", "description_text")),
]


def resolve_field(name: str, fragments: RawSourceFragment) -> Tuple[Optional[str], Any]:
    """Return (winning source name, value) for one field, or (None, None)."""
    for source_name, extractor in FIELD_PRIORITY[name]:
        value = first_non_empty(extractor(fragments))
        if value is not None:
            return source_name, value
    return None, None


def resolve(fragments: RawSourceFragment, source_strategy: SourceStrategy = SourceStrategy.API) -> JobRecord:
    """
    Build a JobRecord from the fragments by per-field source priority.

    For page-derived records, source_strategy is upgraded to JSONLD when the
    title came from structured data.

    description_text is the first of: structured-data plain text, the
    "Description of Duties" text pattern, text derived from description_html,
    and (pages only) the whole cleaned body text.
    """
    values = {}
    for name in FIELD_PRIORITY:
        source_name, value = resolve_field(name, fragments)
        if name == "salary" and isinstance(value, (int, float)):
            value = str(value)
        values[name] = value
        if name == "title" and source_name == "structured_data" and source_strategy != SourceStrategy.API:
            source_strategy = SourceStrategy.JSONLD

    description_text = first_non_empty(
        *(extractor(fragments) for _, extractor in DESCRIPTION_TEXT_PRIORITY),
        strip_tags(values["description_html"]) if values["description_html"] else None,
        fragments.page_text,
    )

    record = JobRecord(
        **values,
        description_text=description_text,
        source_strategy=source_strategy,
    )
    return record.normalized()


def merge_missing(record: JobRecord, enrichment: JobRecord) -> JobRecord:
    """Fill only the null fields of record from enrichment (lowest-priority source)."""
    updates = {
        f.name: getattr(enrichment, f.name)
        for f in fields(record)
        if f.name != "source_strategy"
        and getattr(record, f.name) in (None, "")
        and getattr(enrichment, f.name) not in (None, "")
    }
    return replace(record, **updates).normalized()
