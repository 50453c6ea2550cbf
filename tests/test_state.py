"""Tests for deduplication and quota enforcement in CollectionState."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from clearscout.contexts.collection.schema import JobRecord
from clearscout.contexts.collection.state import CollectionState


def test_save_writes_and_counts(sink):
    state = CollectionState(results_wanted=2)

    assert state.save(JobRecord(url="https://example.test/job/1", title=" Analyst "), sink)
    assert state.saved == 1
    assert state.remaining == 1
    # Records are normalized on the way out
    assert sink.records[0].title == "Analyst"


def test_duplicate_identity_is_skipped(sink):
    state = CollectionState(results_wanted=5)
    state.save(JobRecord(url="https://example.test/job/1"), sink)

    assert not state.save(JobRecord(url="https://example.test/job/1", title="again"), sink)
    assert len(sink.records) == 1


def test_id_is_identity_when_url_missing(sink):
    state = CollectionState(results_wanted=5)
    assert state.save(JobRecord(id="42"), sink)
    assert not state.save(JobRecord(id="42"), sink)
    assert state.seen == {"id:42"}


def test_record_without_identity_is_not_saved(sink):
    state = CollectionState(results_wanted=5)
    assert not state.save(JobRecord(title="Anonymous"), sink)
    assert sink.records == []


def test_quota_is_never_exceeded(sink):
    state = CollectionState(results_wanted=1)
    state.save(JobRecord(url="https://example.test/job/1"), sink)

    assert state.quota_met
    assert not state.save(JobRecord(url="https://example.test/job/2"), sink)
    assert len(sink.records) == 1


def test_concurrent_saves_respect_quota(sink):
    state = CollectionState(results_wanted=10)
    records = [JobRecord(url=f"https://example.test/job/{n}") for n in range(50)]

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda record: state.save(record, sink), records))

    assert state.saved == 10
    assert len(sink.records) == 10


def test_zero_quota(sink):
    state = CollectionState(results_wanted=0)
    assert state.quota_met
    assert not state.save(JobRecord(url="https://example.test/job/1"), sink)


def test_negative_quota_rejected():
    with pytest.raises(ValueError):
        CollectionState(results_wanted=-1)


def test_is_seen_uses_identity_key(sink):
    state = CollectionState(results_wanted=3, seen={"https://example.test/job/9"})
    assert state.is_seen(JobRecord(url="https://example.test/job/9"))
    assert not state.is_seen(JobRecord(title="no identity"))
