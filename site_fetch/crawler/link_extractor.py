# site_fetch/crawler/link_extractor.py
"""
Document parsing, link discovery and URL resolution utilities for site_fetch.
"""
from __future__ import annotations

from typing import Iterator, List, Optional, Union
from urllib.parse import urldefrag, urljoin, urlsplit, urlunsplit

from bs4 import BeautifulSoup
from bs4.builder import ParserRejectedMarkup
from bs4.element import Tag

from site_fetch.logger import logger

__all__ = (
    "parse_document",
    "base_href",
    "has_noindex_hint",
    "iter_references",
    "to_absolute",
    "host_of",
    "normalize_url",
    "unique",
)


def parse_document(body: Union[str, bytes, None]) -> Optional[BeautifulSoup]:
    """Parse *body* as HTML; ``None`` when there is nothing to parse or the parser gives up."""
    if not body:
        return None
    try:
        return BeautifulSoup(body, "html.parser")
    except (ParserRejectedMarkup, AssertionError, ValueError) as exc:
        logger.debug("Unparsable document: %s", exc)
        return None


def base_href(soup: BeautifulSoup) -> Optional[str]:
    """Return ``<head><base href>`` when present and non-empty."""
    tag = soup.select_one("head base[href]")
    if not isinstance(tag, Tag):
        return None
    href = tag.get("href")
    if not isinstance(href, str) or not href.strip():
        return None
    return href.strip()


def has_noindex_hint(soup: BeautifulSoup) -> bool:
    """True for ``<meta name="robots">`` whose content mentions both noindex and follow."""
    for tag in soup.find_all("meta", attrs={"name": True, "content": True}):
        if not isinstance(tag, Tag):
            continue
        if str(tag.get("name", "")).lower() != "robots":
            continue
        content = str(tag.get("content", "")).lower()
        if "noindex" in content and "follow" in content:
            return True
    return False


def _rel_nofollow(tag: Tag) -> bool:
    rel = tag.get("rel")
    if isinstance(rel, list):
        rel = " ".join(rel)
    return "nofollow" in (rel or "")


def iter_references(soup: BeautifulSoup, skip_no_follow: bool = False) -> Iterator[str]:
    """
    Yield raw ``<a href>`` values, then raw ``<img src>`` values, in document order.

    Anchors marked ``rel=nofollow`` are left out when *skip_no_follow* is set.
    Empty attributes are skipped.
    """
    for tag in soup.find_all("a", href=True):
        if not isinstance(tag, Tag):
            continue
        if skip_no_follow and _rel_nofollow(tag):
            continue
        href = tag.get("href")
        if isinstance(href, str) and href.strip():
            yield href
    for tag in soup.find_all("img", src=True):
        if not isinstance(tag, Tag):
            continue
        src = tag.get("src")
        if isinstance(src, str) and src.strip():
            yield src


def to_absolute(link: str, base: str) -> str:
    """
    Resolve *link* against *base*: drop the fragment, join, use ``/`` for an empty path.

    Raises ValueError when *link* is not a valid URI reference.
    """
    link, _ = urldefrag(link.strip())
    parts = urlsplit(urljoin(base, link))
    parts.port  # raises ValueError for a malformed port
    if not parts.path and parts.netloc:
        parts = parts._replace(path="/")
    return urlunsplit(parts)


def host_of(url: Optional[str]) -> Optional[str]:
    """Lower-cased host of *url*, or ``None`` for relative/invalid references."""
    if not url:
        return None
    try:
        return urlsplit(url).hostname
    except ValueError:
        return None


def normalize_url(url: str) -> str:
    """
    Turn *url* into an absolute http(s) URL with a non-empty path.

    Raises ValueError for anything else.
    """
    raw = str(url).strip()
    parts = urlsplit(raw)
    if parts.scheme.lower() not in ("http", "https") or not parts.hostname:
        raise ValueError(f"Not an absolute http(s) URL: {url!r}")
    parts.port  # raises ValueError for a malformed port
    path = parts.path or "/"
    return urlunsplit((parts.scheme.lower(), parts.netloc, path, parts.query, ""))


def unique(links: List[str]) -> List[str]:
    """Drop duplicates, keep first-seen order."""
    return list(dict.fromkeys(links))
