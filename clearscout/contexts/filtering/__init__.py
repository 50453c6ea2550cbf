"""
Job filtering domain.

Handles client-side filtering of collected job records by search criteria.
"""

from clearscout.contexts.filtering.filters import (
    SearchFilter,
    contains_term,
)

__all__ = [
    "SearchFilter",
    "contains_term",
]
