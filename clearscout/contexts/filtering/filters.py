"""
Client-side search filtering for page-derived job records.

The API applies keyword/location/clearance filters server-side; records found
by crawling pages have to be checked here instead.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from clearscout.contexts.collection.schema import JobRecord


def contains_term(value: Optional[str], term: Optional[str]) -> bool:
    """Case-insensitive substring check. An empty term always matches."""
    if not term:
        return True
    return term.strip().lower() in (value or "").lower()


@dataclass(frozen=True)
class SearchFilter:
    keywords: Optional[str] = None
    location: Optional[str] = None
    clearance: Optional[str] = None

    @classmethod
    def from_config(cls, config) -> "SearchFilter":
        return cls(
            keywords=config.get("keywords") or None,
            location=config.get("location") or None,
            clearance=config.get("clearance") or None,
        )

    @property
    def is_empty(self) -> bool:
        return not (self.keywords or self.location or self.clearance)

    def matches(self, record: "JobRecord") -> bool:
        """
        Keywords are matched against the title, location against the location
        and clearance against the clearance level.
        """
        return (
            contains_term(record.title, self.keywords)
            and contains_term(record.location, self.location)
            and contains_term(record.clearance_level, self.clearance)
        )
