"""
Test configuration and fixtures for sitemap request list tests
"""

import os

# Set environment before importing any modules that read settings
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SITEMAP_STATE_STORE_URL", "memory://")
os.environ.setdefault("SITEMAP_FETCH_RETRY_ATTEMPTS", "1")

import asyncio

import pytest

from sitemap_request_list.services.fetcher import SourceFetchError

SITEMAP_XML = "\n".join(
    [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">',
        "<url>",
        "<loc>http://not-exists.com/</loc>",
        "</url>",
        "<url>",
        "<loc>http://not-exists.com/catalog?item=12&amp;desc=vacation_hawaii</loc>",
        "</url>",
        "<url>",
        "<loc>http://not-exists.com/catalog?item=73&amp;desc=vacation_new_zealand</loc>",
        "</url>",
        "<url>",
        "<loc>http://not-exists.com/catalog?item=74&amp;desc=vacation_newfoundland</loc>",
        "</url>",
        "<url>",
        "<loc>http://not-exists.com/catalog?item=83&amp;desc=vacation_usa</loc>",
        "</url>",
        "</urlset>",
    ]
)

SITEMAP_URLS = [
    "http://not-exists.com/",
    "http://not-exists.com/catalog?item=12&desc=vacation_hawaii",
    "http://not-exists.com/catalog?item=73&desc=vacation_new_zealand",
    "http://not-exists.com/catalog?item=74&desc=vacation_newfoundland",
    "http://not-exists.com/catalog?item=83&desc=vacation_usa",
]

STREAM_FIRST_CHUNK = "\n".join(
    [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">',
        "<url>",
        "<loc>http://not-exists.com/catalog?item=80&amp;desc=vacation_turkey</loc>",
        "</url>",
        "<url>",
        "<loc>http://not-exists.com/catalog?item=80&amp;desc=vacation_mauritius</loc>",
        "</url>",
    ]
)

STREAM_SECOND_CHUNK = "\n".join(
    [
        "<url>",
        "<loc>http://not-exists.com/catalog?item=81&amp;desc=vacation_maledives</loc>",
        "</url>",
        "</urlset>",
    ]
)

LINGER_FIRST_CHUNK = "\n".join(
    [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">',
        "<url>",
        "<loc>http://not-exists.com/catalog?item=80&amp;desc=vacation_turkey</loc>",
        "</url>",
        "<url>",
        "<loc>http://not-exists.com/catalog?item=81&amp;desc=vacation_maledives</loc>",
        "</url>",
    ]
)


def sitemap_index(*locs: str) -> str:
    entries = "".join(f"<sitemap><loc>{loc}</loc></sitemap>\n" for loc in locs)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">\n'
        f"{entries}</sitemapindex>"
    )


def urlset(*locs: str) -> str:
    entries = "".join(f"<url><loc>{loc}</loc></url>\n" for loc in locs)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">\n'
        f"{entries}</urlset>"
    )


class ScriptedFetcher:
    """
    Fake content fetcher driven by per-URL scripts.

    Script steps: str/bytes chunks are yielded, asyncio.Event steps are
    awaited, numbers are slept, exceptions are raised. Unknown URLs fail
    like an HTTP 404.
    """

    def __init__(self, sources: dict[str, list]):
        self.sources = sources
        self.requested: list[str] = []
        self.completed: list[str] = []

    async def stream(self, url: str):
        self.requested.append(url)
        if url not in self.sources:
            raise SourceFetchError(url, "HTTP 404", status=404)

        for step in self.sources[url]:
            if isinstance(step, asyncio.Event):
                await step.wait()
            elif isinstance(step, (int, float)):
                await asyncio.sleep(step)
            elif isinstance(step, BaseException):
                raise step
            else:
                yield step.encode() if isinstance(step, str) else step
        self.completed.append(url)


@pytest.fixture
def scripted_fetcher():
    """Factory for ScriptedFetcher instances"""
    return ScriptedFetcher


async def wait_until(predicate, timeout: float = 5.0, interval: float = 0.01):
    """Poll an async or sync predicate until it is truthy."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while True:
        result = predicate()
        if asyncio.iscoroutine(result):
            result = await result
        if result:
            return
        if loop.time() > deadline:
            raise AssertionError("Condition not met before timeout")
        await asyncio.sleep(interval)
