"""Tests for the client-side search filter."""

from omegaconf import OmegaConf

from clearscout.contexts.collection.schema import JobRecord
from clearscout.contexts.filtering import SearchFilter, contains_term

RECORD = JobRecord(url="https://example.test/job/1", title="Senior Cyber Analyst", location="Reston, VA", clearance_level="TS/SCI")


def test_empty_filter_matches_everything():
    search_filter = SearchFilter()
    assert search_filter.is_empty
    assert search_filter.matches(JobRecord())


def test_terms_match_case_insensitively():
    assert SearchFilter(keywords="cyber", location="reston", clearance="ts/sci").matches(RECORD)


def test_any_mismatch_rejects():
    assert not SearchFilter(keywords="cyber", location="Denver").matches(RECORD)
    assert not SearchFilter(clearance="polygraph").matches(RECORD)


def test_missing_value_does_not_match_a_term():
    assert not SearchFilter(clearance="Secret").matches(JobRecord(title="Analyst"))


def test_from_config_treats_blank_as_unset():
    config = OmegaConf.create({"keywords": "analyst", "location": "", "clearance": None})
    assert SearchFilter.from_config(config) == SearchFilter(keywords="analyst")


def test_contains_term():
    assert contains_term("Anything", "")
    assert contains_term("Network Engineer", " engineer ")
    assert not contains_term(None, "engineer")
