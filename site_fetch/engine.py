# File: site_fetch/engine.py
"""
Wrapper coroutine for running one fetch outside a crawl loop.
"""
from typing import List, Optional

from site_fetch.config import FetcherConfig
from site_fetch.crawler.fetcher import Fetcher
from site_fetch.crawler.page import Page


async def start_fetch(
    cfg: FetcherConfig,
    url: str,
    referer: Optional[str] = None,
    depth: Optional[int] = None,
) -> List[Page]:
    """
    Fetch *url* with a throw-away Fetcher seeded with *url* itself.

    Parameters
    ----------
    cfg : FetcherConfig
        Fetcher options.
    url : str
        Page to fetch.

    Returns
    -------
    List[Page]
        One page per redirect hop; the last one is terminal.
    """
    async with Fetcher(cfg, urls=[url]) as fetcher:
        return await fetcher.fetch_pages(url, referer, depth)


__all__ = ["start_fetch"]
