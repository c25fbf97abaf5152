"""
Frontier Populator Tests

Tests for sequential source processing, nesting, failures and filters.
"""

import asyncio

import pytest

from conftest import (
    SITEMAP_URLS,
    SITEMAP_XML,
    STREAM_FIRST_CHUNK,
    STREAM_SECOND_CHUNK,
    sitemap_index,
    urlset,
    wait_until,
)
from sitemap_request_list.frontier import SourceFrontier
from sitemap_request_list.models.sitemap import SourceStatus
from sitemap_request_list.queue import RequestQueue
from sitemap_request_list.workers.populator import FrontierPopulator


def make_populator(fetcher, urls, **kwargs) -> FrontierPopulator:
    return FrontierPopulator(SourceFrontier(urls), RequestQueue(), fetcher, **kwargs)


def pending_urls(populator: FrontierPopulator) -> list[str]:
    return [request.url for request in populator.queue.pending_requests()]


@pytest.mark.asyncio
async def test_single_sitemap(scripted_fetcher):
    fetcher = scripted_fetcher({"http://test/sitemap.xml": [SITEMAP_XML]})
    populator = make_populator(fetcher, ["http://test/sitemap.xml"])

    await populator.run()

    assert populator.finished
    assert pending_urls(populator) == SITEMAP_URLS
    assert populator.pages_enqueued == 5
    assert populator.frontier.is_consumed()


@pytest.mark.asyncio
async def test_items_available_before_stream_ends(scripted_fetcher):
    gate = asyncio.Event()
    fetcher = scripted_fetcher(
        {"http://test/stream.xml": [STREAM_FIRST_CHUNK, gate, STREAM_SECOND_CHUNK]}
    )
    populator = make_populator(fetcher, ["http://test/stream.xml"])

    task = asyncio.create_task(populator.run())
    await wait_until(lambda: populator.queue.pending_count == 2)

    assert not populator.finished
    assert populator.frontier.active.status == SourceStatus.ACTIVE

    gate.set()
    await task

    assert populator.queue.pending_count == 3
    assert populator.finished


@pytest.mark.asyncio
async def test_next_source_not_requested_until_current_ends(scripted_fetcher):
    gate = asyncio.Event()
    fetcher = scripted_fetcher(
        {
            "http://test/slow.xml": [STREAM_FIRST_CHUNK, gate, "</urlset>"],
            "http://test/sitemap.xml": [SITEMAP_XML],
        }
    )
    populator = make_populator(
        fetcher, ["http://test/slow.xml", "http://test/sitemap.xml"]
    )

    task = asyncio.create_task(populator.run())
    await wait_until(lambda: populator.queue.pending_count == 2)
    await asyncio.sleep(0.05)

    assert fetcher.requested == ["http://test/slow.xml"]

    gate.set()
    await task

    assert fetcher.requested == ["http://test/slow.xml", "http://test/sitemap.xml"]
    assert pending_urls(populator)[2:] == SITEMAP_URLS


@pytest.mark.asyncio
async def test_nested_sitemaps_processed_depth_first(scripted_fetcher):
    fetcher = scripted_fetcher(
        {
            "http://test/index.xml": [
                sitemap_index("http://test/a.xml", "http://test/b.xml")
            ],
            "http://test/a.xml": [urlset("http://x.com/a1", "http://x.com/a2")],
            "http://test/b.xml": [urlset("http://x.com/b1")],
            "http://test/tail.xml": [urlset("http://x.com/t1")],
        }
    )
    populator = make_populator(fetcher, ["http://test/index.xml", "http://test/tail.xml"])

    await populator.run()

    assert fetcher.requested == [
        "http://test/index.xml",
        "http://test/a.xml",
        "http://test/b.xml",
        "http://test/tail.xml",
    ]
    assert pending_urls(populator) == [
        "http://x.com/a1",
        "http://x.com/a2",
        "http://x.com/b1",
        "http://x.com/t1",
    ]
    assert populator.frontier.sources[1].parent_url == "http://test/index.xml"


@pytest.mark.asyncio
async def test_sitemap_index_cycle_fetched_once(scripted_fetcher):
    fetcher = scripted_fetcher(
        {
            "http://test/index.xml": [
                sitemap_index("http://test/index.xml", "http://test/a.xml")
            ],
            "http://test/a.xml": [sitemap_index("http://test/index.xml")],
        }
    )
    populator = make_populator(fetcher, ["http://test/index.xml"])

    await populator.run()

    assert fetcher.requested == ["http://test/index.xml", "http://test/a.xml"]


@pytest.mark.asyncio
async def test_failed_source_skipped(scripted_fetcher):
    fetcher = scripted_fetcher({"http://test/sitemap.xml": [SITEMAP_XML]})
    populator = make_populator(
        fetcher, ["http://test/missing.xml", "http://test/sitemap.xml"]
    )

    await populator.run()

    assert pending_urls(populator) == SITEMAP_URLS
    assert [f.url for f in populator.failures] == ["http://test/missing.xml"]
    assert "404" in populator.failures[0].error
    assert populator.frontier.sources[0].status == SourceStatus.FAILED
    assert populator.finished


@pytest.mark.asyncio
async def test_mid_stream_failure_keeps_delivered_entries(scripted_fetcher):
    fetcher = scripted_fetcher(
        {
            "http://test/broken.xml": [
                STREAM_FIRST_CHUNK,
                ConnectionResetError("connection reset"),
            ],
        }
    )
    populator = make_populator(fetcher, ["http://test/broken.xml"])

    await populator.run()

    assert populator.queue.pending_count == 2
    assert populator.frontier.sources[0].status == SourceStatus.FAILED
    assert len(populator.failures) == 1


@pytest.mark.asyncio
async def test_unexpected_error_propagates(scripted_fetcher):
    fetcher = scripted_fetcher({"http://test/bad.xml": [KeyError("bug")]})
    populator = make_populator(fetcher, ["http://test/bad.xml"])

    with pytest.raises(KeyError):
        await populator.run()
    assert not populator.finished


@pytest.mark.asyncio
async def test_duplicate_pages_across_sources(scripted_fetcher):
    fetcher = scripted_fetcher(
        {
            "http://test/1.xml": [urlset("http://x.com/a", "http://x.com/b")],
            "http://test/2.xml": [urlset("http://x.com/b", "http://x.com/c")],
        }
    )
    populator = make_populator(fetcher, ["http://test/1.xml", "http://test/2.xml"])

    await populator.run()

    assert pending_urls(populator) == [
        "http://x.com/a",
        "http://x.com/b",
        "http://x.com/c",
    ]
    assert populator.pages_enqueued == 3


@pytest.mark.asyncio
async def test_include_and_exclude_filters(scripted_fetcher):
    fetcher = scripted_fetcher({"http://test/sitemap.xml": [SITEMAP_XML]})
    populator = make_populator(
        fetcher,
        ["http://test/sitemap.xml"],
        include=[r"catalog"],
        exclude=[r"vacation_new"],
    )

    await populator.run()

    assert pending_urls(populator) == [
        "http://not-exists.com/catalog?item=12&desc=vacation_hawaii",
        "http://not-exists.com/catalog?item=83&desc=vacation_usa",
    ]


@pytest.mark.asyncio
async def test_progress_callback(scripted_fetcher):
    calls = []
    fetcher = scripted_fetcher({"http://test/sitemap.xml": [SITEMAP_XML]})
    populator = make_populator(
        fetcher, ["http://test/sitemap.xml"], on_progress=lambda: calls.append(1)
    )

    await populator.run()

    # one call per enqueued page plus one on finish
    assert len(calls) == 6


@pytest.mark.asyncio
async def test_parse_warnings_counted(scripted_fetcher):
    fetcher = scripted_fetcher(
        {
            "http://test/sitemap.xml": [
                "<urlset><url><loc>not a url</loc></url>"
                "<url><loc>http://x.com/ok</loc></url></urlset>"
            ]
        }
    )
    populator = make_populator(fetcher, ["http://test/sitemap.xml"])

    await populator.run()

    assert pending_urls(populator) == ["http://x.com/ok"]
    assert populator.parse_warnings == 1
