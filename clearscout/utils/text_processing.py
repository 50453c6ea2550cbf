"""
Text processing utilities for clearscout.

Whitespace normalization and HTML-to-text helpers shared by every collection strategy.
"""

import html
import re
from typing import Any, Optional

from bs4 import BeautifulSoup

WHITESPACE_RUN = re.compile(r"\s+")
HTML_TAG = re.compile(r"</?[^>]+(>|$)")
HORIZONTAL_WHITESPACE_RUN = re.compile(r"[^\S\n]+")

NOISE_TAGS = ("script", "style", "noscript")


def normalize_space(text: Any) -> Optional[str]:
    """
    Collapse every whitespace run to a single space and strip the ends.

    Non-string values are coerced with ``str()`` (so a numeric salary of 85000
    becomes "85000"). None stays None.

    Example:
        >>> normalize_space("  Senior \\n  Analyst ")
        'Senior Analyst'
    """
    if text is None:
        return None
    if not isinstance(text, str):
        text = str(text)
    return WHITESPACE_RUN.sub(" ", text).strip()


def strip_tags(html_string: Optional[str]) -> Optional[str]:
    """
    Convert an HTML fragment to plain text.

    Every tag is replaced with a space (so adjacent block elements don't glue
    words together), entities are unescaped, then whitespace is normalized.

    Example:
        >>> strip_tags("<p>A  B</p>")
        'A B'
    """
    if html_string is None:
        return None
    text = HTML_TAG.sub(" ", str(html_string))
    return normalize_space(html.unescape(text))


def _body_without_noise(soup: BeautifulSoup):
    body = soup.body or soup
    # Work on a copy so the caller's tree keeps its scripts (JSON-LD lives there)
    body = BeautifulSoup(str(body), "html.parser")
    for tag in body.find_all(NOISE_TAGS):
        tag.decompose()
    return body


def clean_body_text(soup: BeautifulSoup) -> str:
    """Body text without script/style/noscript content, on one normalized line."""
    return normalize_space(_body_without_noise(soup).get_text(" ")) or ""


def clean_body_lines(soup: BeautifulSoup) -> str:
    """
    Body text without script/style/noscript content, keeping line structure.

    Each line is whitespace-normalized and blank lines are dropped, which is the
    shape the labelled-field patterns ("Location: ...") are written against.
    """
    text = _body_without_noise(soup).get_text("\n")
    lines = (HORIZONTAL_WHITESPACE_RUN.sub(" ", line).strip() for line in text.splitlines())
    return "\n".join(line for line in lines if line)


def first_non_empty(*values: Any) -> Any:
    """Return the first value that is not None and not an empty/whitespace string."""
    for value in values:
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        if isinstance(value, (list, dict)) and not value:
            continue
        return value
    return None
