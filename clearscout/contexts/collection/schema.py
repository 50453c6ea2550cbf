"""
Record types for the collection context.

JobRecord is the canonical output. RawSourceFragment is the per-record bundle of
partial views the field resolver merges. CanonicalSchema maps record fields to
the column names storage backends expect.
"""

import os
from dataclasses import asdict, dataclass, field, fields, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from omegaconf import OmegaConf

from clearscout.utils.text_processing import normalize_space, strip_tags

load_dotenv()
CONFIG_PATH = Path(os.getenv("CONFIG_PATH", "config"))


class SourceStrategy(str, Enum):
    API = "api"
    JSONLD = "jsonld"
    HTML = "html"
    SITEMAP = "sitemap"


@dataclass
class JobRecord:
    id: Optional[str] = None
    url: Optional[str] = None
    title: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    clearance_level: Optional[str] = None
    salary: Optional[str] = None
    employment_type: Optional[str] = None
    date_posted: Optional[str] = None
    description_html: Optional[str] = None
    description_text: Optional[str] = None
    job_reference_id: Optional[str] = None
    source_strategy: SourceStrategy = SourceStrategy.API

    @property
    def identity_key(self) -> Optional[str]:
        """The url when present, otherwise the id (prefixed so the two namespaces never collide)."""
        if self.url:
            return self.url
        if self.id:
            return f"id:{self.id}"
        return None

    def normalized(self) -> "JobRecord":
        """
        Return a copy with every string field whitespace-normalized and
        description_text derived from description_html when it is missing.

        description_html keeps its markup; whitespace between and inside tags
        is collapsed like any other string. Empty strings become None.
        """
        updates = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name == "source_strategy" or value is None:
                continue
            updates[f.name] = normalize_space(value) or None

        record = replace(self, **updates)
        if record.description_html and not record.description_text:
            record.description_text = strip_tags(record.description_html) or None
        return record

    def missing(self, *names: str) -> List[str]:
        return [name for name in names if getattr(self, name) in (None, "")]

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["source_strategy"] = self.source_strategy.value
        return data


@dataclass
class RawSourceFragment:
    """
    Up to four partial views of one job, plus page-derived extras.

    listing: item from the paginated index
    detail: per-item detail payload
    additional: secondary per-item payload
    structured_data: schema.org JobPosting from embedded JSON-LD
    custom_blocks: label -> value pairs from custom field blocks
    text_fields: labelled-line extraction from page text
    header: DOM heuristics from the page header
    """

    listing: Optional[Dict[str, Any]] = None
    detail: Optional[Dict[str, Any]] = None
    additional: Optional[Dict[str, Any]] = None
    structured_data: Optional[Dict[str, Any]] = None
    custom_blocks: Dict[str, str] = field(default_factory=dict)
    text_fields: Dict[str, Optional[str]] = field(default_factory=dict)
    header: Dict[str, Optional[str]] = field(default_factory=dict)
    page_text: Optional[str] = None
    url: Optional[str] = None


class CanonicalSchema:
    """
    Field-to-column mapping for storage backends, read from ``data_schema.yaml``.

    Each entry under ``canonical_schema`` names a JobRecord field and carries its
    ``db_name``, SQL ``type``, ``required`` flag and a description.
    """

    def __init__(self, schema_path: Optional[Path] = None):
        path = Path(schema_path) if schema_path is not None else CONFIG_PATH / "data_schema.yaml"
        self.fields: Dict[str, Dict[str, Any]] = OmegaConf.to_container(OmegaConf.load(path).canonical_schema)

    @property
    def field_names(self) -> List[str]:
        return list(self.fields)

    @property
    def required_fields(self) -> List[str]:
        return [name for name, spec in self.fields.items() if spec.get("required")]

    def column_names(self) -> Dict[str, str]:
        """JobRecord field -> database column."""
        return {name: spec.get("db_name", name) for name, spec in self.fields.items()}

    def field_info(self, name: str) -> Dict[str, Any]:
        try:
            return dict(self.fields[name])
        except KeyError:
            raise KeyError(f"Unknown field '{name}'; schema defines: {', '.join(self.fields)}") from None

    def to_row(self, record: JobRecord) -> Dict[str, Any]:
        """The record as a {column: value} row in schema order."""
        data = record.to_dict()
        return {column: data.get(name) for name, column in self.column_names().items()}
