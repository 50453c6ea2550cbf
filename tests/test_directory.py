"""Tests for the employer directory walk."""

from clearscout.contexts.collection.directory import DirectoryCollector, company_links, directory_links
from clearscout.contexts.collection.schema import SourceStrategy
from clearscout.contexts.collection.state import CollectionState
from conftest import BASE_URL, page_html

DIRECTORY_URL = f"{BASE_URL}/employer-directory"


def links(*hrefs):
    return "<html><body>" + "".join(f'<a href="{href}">{text}</a>' for href, text in hrefs) + "</body></html>"


def serve_directory(transport):
    transport.routes[DIRECTORY_URL] = (
        200,
        links(
            ("/company/acme-corp-1", "Acme Corp"),
            ("/company/globex-2", "Globex"),
            ("/employer-directory?page=2", "Next"),
            ("/about", "About us"),
        ),
    )
    transport.routes[f"{DIRECTORY_URL}?page=2"] = (
        200,
        links(("/company/initech-3", "Initech"), ("/employer-directory?page=3", "Next")),
    )
    transport.routes[f"{DIRECTORY_URL}?page=3"] = (200, links(("/company/hooli-4", "Hooli")))
    transport.routes[f"{BASE_URL}/company/acme-corp-1"] = (
        200,
        links(("/job/1?ref=directory", "Analyst"), ("/job/2#apply", "Engineer"), ("/company/acme-corp-1/jobs", "View All Jobs")),
    )
    transport.routes[f"{BASE_URL}/company/acme-corp-1/jobs"] = (200, links(("/job/1", "Analyst"), ("/job/4", "Architect")))
    transport.routes[f"{BASE_URL}/company/initech-3"] = (200, links(("/job/3", "Developer")))
    for n, title in [(1, "Analyst"), (2, "Engineer"), (3, "Developer"), (4, "Architect")]:
        # Job pages link elsewhere; the walk must not follow them
        transport.routes[f"{BASE_URL}/job/{n}"] = (
            200,
            page_html(title=title, body='<a href="/company/other-co-99">Other employer</a>'),
        )


def make_collector(fetcher, sink, **kwargs):
    options = {"batch_width": 2, "verbose": False, "max_directory_pages": 2}
    options.update(kwargs)
    return DirectoryCollector(fetcher, sink, BASE_URL, **options)


def test_directory_links():
    html = links(("/company/acme-corp-1", "Acme"), ("/employer-directory?page=2", "2"), ("/company/about", "no id"))
    assert directory_links(html, DIRECTORY_URL) == (
        [f"{BASE_URL}/company/acme-corp-1"],
        [f"{DIRECTORY_URL}?page=2"],
    )


def test_company_links_strip_query_and_fragment():
    html = links(("/job/1?ref=x", "A"), ("/job/1#apply", "A again"), ("/company/acme-corp-1/jobs", "View All Jobs"))
    assert company_links(html, f"{BASE_URL}/company/acme-corp-1") == (
        [f"{BASE_URL}/job/1"],
        [f"{BASE_URL}/company/acme-corp-1/jobs"],
    )


def test_walk_collects_job_pages_breadth_first(fetcher, transport, sink):
    serve_directory(transport)
    collector = make_collector(fetcher, sink)

    saved = collector.collect(CollectionState(results_wanted=10), remaining=10)

    assert saved == 4
    assert [record.url for record in sink.records] == [f"{BASE_URL}/job/{n}" for n in (1, 2, 4, 3)]
    assert all(record.source_strategy == SourceStrategy.HTML for record in sink.records)


def test_directory_page_budget(fetcher, transport, sink):
    serve_directory(transport)
    collector = make_collector(fetcher, sink)

    collector.collect(CollectionState(results_wanted=10), remaining=10)

    assert collector.directory_pages_fetched == 2
    assert transport.count(f"{DIRECTORY_URL}?page=3") == 0
    assert transport.count(f"{BASE_URL}/company/hooli-4") == 0


def test_job_pages_are_terminal(fetcher, transport, sink):
    serve_directory(transport)

    make_collector(fetcher, sink).collect(CollectionState(results_wanted=10), remaining=10)

    assert transport.count(f"{BASE_URL}/company/other-co-99") == 0
    assert transport.count(f"{BASE_URL}/job/1") == 1


def test_walk_stops_when_quota_met(fetcher, transport, sink):
    serve_directory(transport)
    collector = make_collector(fetcher, sink)

    assert collector.collect(CollectionState(results_wanted=2), remaining=2) == 2
    assert transport.count(f"{DIRECTORY_URL}?page=2") == 0


def test_request_budget(fetcher, transport, sink):
    serve_directory(transport)
    collector = make_collector(fetcher, sink, max_requests=3)

    collector.collect(CollectionState(results_wanted=10), remaining=10)

    # Directory page, one company page, then a single job page fits the budget
    assert collector.requests_made == 3
    assert len(sink.records) == 1
