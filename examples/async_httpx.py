#!/usr/bin/env uv run
# /// script
# requires-python = ">=3.10"
# dependencies = [
#     "swrcache[httpx, sqlite]",
# ]
#
# [tool.uv.sources]
# swrcache = { path = "../", editable = true }
# ///

import asyncio
from typing import cast

from swrcache import AsyncSqliteStorage, CacheOptions, ResponseMetadata
from swrcache.httpx import AsyncCacheClient


async def fetch_and_print(client, url: str):
    print(f"\n➡ Sending request to {url}...")
    response = await client.get(url, headers={"Accept": "text/html"})
    meta = cast(ResponseMetadata, response.extensions)

    print(f"🚀 Was Stored: {meta['swr_stored']}")
    print(f"⏰ Fetched At: {meta.get('swr_fetched_at')}")
    print(f"🔄 From Cache: {meta['swr_from_cache']}")
    print(f"🕰 Stale: {meta.get('swr_stale', False)}")


async def main():
    url = "https://example.com/"
    storage = AsyncSqliteStorage(database_path="swr_example.db")
    async with AsyncCacheClient(storage=storage, options=CacheOptions(freshness_window=30)) as client:
        await fetch_and_print(client, url)
        await fetch_and_print(client, url)


if __name__ == "__main__":
    asyncio.run(main())
