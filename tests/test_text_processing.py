"""Tests for whitespace normalization and HTML-to-text helpers."""

from bs4 import BeautifulSoup

from clearscout.utils.text_processing import (
    clean_body_lines,
    clean_body_text,
    first_non_empty,
    normalize_space,
    strip_tags,
)


def test_normalize_space_collapses_runs_and_strips():
    assert normalize_space("  Senior \n\t Analyst  ") == "Senior Analyst"


def test_normalize_space_is_idempotent():
    once = normalize_space(" a \n b   c ")
    assert normalize_space(once) == once


def test_normalize_space_keeps_none_and_stringifies_numbers():
    assert normalize_space(None) is None
    assert normalize_space(85000) == "85000"
    assert normalize_space(85000.5) == "85000.5"


def test_strip_tags():
    assert strip_tags("<p>A  B</p>") == "A B"
    assert strip_tags("<p>One</p><p>Two</p>") == "One Two"
    assert strip_tags("Fish &amp; Chips") == "Fish & Chips"
    assert strip_tags(None) is None


def test_clean_body_text_drops_scripts_and_styles():
    soup = BeautifulSoup(
        "<html><body><script>var x = 1;</script><style>p {}</style><p>Hello   world</p>"
        "<noscript>enable js</noscript></body></html>",
        "html.parser",
    )
    assert clean_body_text(soup) == "Hello world"
    # The caller's tree still has its scripts
    assert soup.find("script") is not None


def test_clean_body_lines_keeps_line_structure():
    soup = BeautifulSoup("<body><div>Location:  Reston, VA</div><div>Posted: May 1, 2024</div></body>", "html.parser")
    assert clean_body_lines(soup).splitlines() == ["Location: Reston, VA", "Posted: May 1, 2024"]


def test_first_non_empty_skips_blank_values():
    assert first_non_empty(None, "", "  ", [], "x", "y") == "x"
    assert first_non_empty(None, 0) == 0
    assert first_non_empty(None, "") is None
