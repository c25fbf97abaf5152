#!/usr/bin/env python3
"""
Drain one or more sitemaps and print every page URL.

Loads the sitemaps through SitemapRequestList, marks each request handled
as it is printed and optionally persists progress so an interrupted run can
be resumed with the same --state-key.

Usage:
    python scripts/drain_sitemaps.py https://example.com/sitemap.xml [--state-key my-site]
"""

import argparse
import asyncio
import logging

from sitemap_request_list import SitemapRequestList
from sitemap_request_list.core.config import settings

PERSIST_EVERY = 100


async def drain(
    sitemap_urls: list[str], state_key: str | None, include: list[str]
) -> int:
    async with await SitemapRequestList.open(
        sitemap_urls, persist_state_key=state_key, include=include or None
    ) as request_list:
        handled_since_persist = 0

        try:
            while not await request_list.is_finished():
                request = await request_list.fetch_next_request()
                if request is None:
                    await asyncio.sleep(settings.POLL_INTERVAL_SEC)
                    continue

                print(request.url, flush=True)
                await request_list.mark_request_handled(request)

                handled_since_persist += 1
                if state_key and handled_since_persist >= PERSIST_EVERY:
                    await request_list.persist_state()
                    handled_since_persist = 0
        finally:
            if state_key:
                await request_list.persist_state()

        for failure in request_list.failures:
            logging.warning(f"Failed sitemap: {failure.url} ({failure.error})")
        return request_list.handled_count()


def main():
    parser = argparse.ArgumentParser(description="Print all URLs listed in sitemaps")
    parser.add_argument("sitemap_urls", nargs="+", help="Sitemap or sitemap index URLs")
    parser.add_argument(
        "--state-key", default=None, help="Persist progress under this key"
    )
    parser.add_argument(
        "--include",
        action="append",
        default=[],
        help="Only print URLs matching this regex (repeatable)",
    )
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    total = asyncio.run(drain(args.sitemap_urls, args.state_key, args.include))
    logging.info(f"Done: {total} URLs handled")


if __name__ == "__main__":
    main()
