# site_fetch/crawler/page.py
"""
Page: the record of one fetched (or failed) resource.

A page is created by the fetcher for every redirect hop, or rebuilt from a
snapshot. Parsing is lazy: the document, the ``<base href>`` and the link list
are each computed on first access and cached until :meth:`Page.discard_document`
releases the document and body (the links stay cached).
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from http.cookies import Morsel
from typing import Any, Dict, Iterable, List, Mapping, Optional, Pattern, Union
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup

from site_fetch.cookies import parse_set_cookies
from site_fetch.crawler import link_extractor
from site_fetch.crawler.models import LinkPolicy, UserValue
from site_fetch.logger import logger

__all__ = ("Page",)

_UNSET: Any = object()


def _prefix_pattern(types: Iterable[str]) -> Pattern[str]:
    alternatives = "|".join(re.escape(t) for t in types)
    return re.compile(rf"^(?:{alternatives})\b")


_HTML_RE = _prefix_pattern(("text/html", "application/xhtml+xml"))
_IMAGE_RE = _prefix_pattern(
    (
        "image/gif",
        "image/jpeg",
        "image/pjpeg",
        "image/png",
        "image/svg+xml",
        "image/tiff",
        "image/vnd.djvu",
        "image/example",
    )
)
_VIDEO_RE = _prefix_pattern(
    (
        "video/avi",
        "video/example",
        "video/mpeg",
        "video/mp4",
        "video/ogg",
        "video/quicktime",
        "video/webm",
        "video/x-matroska",
        "video/x-ms-wmv",
        "video/x-flv",
    )
)
_PDF_RE = _prefix_pattern(("application/pdf",))

_USER_VALUE_TYPES = (str, int, float, bool, type(None))


def _normalize_headers(headers: Optional[Mapping[str, Any]]) -> Dict[str, List[str]]:
    normalized: Dict[str, List[str]] = {}
    for name, value in (headers or {}).items():
        values = list(value) if isinstance(value, (list, tuple)) else [value]
        normalized.setdefault(str(name).lower(), []).extend(str(v) for v in values)
    normalized.setdefault("content-type", [""])
    return normalized


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


@dataclass(eq=False)
class Page:
    """One HTTP attempt: either fetched (status code set) or failed (error set)."""

    url: str
    status_code: Optional[int] = None
    headers: Dict[str, List[str]] = field(default_factory=dict)
    body: Union[bytes, str, None] = field(default=None, repr=False)
    referer: Optional[str] = None
    depth: int = 0
    redirect_to: Optional[str] = None
    response_time: Optional[int] = None
    error: Optional[BaseException] = None
    policy: LinkPolicy = field(default_factory=LinkPolicy, repr=False)
    user_data: Dict[str, UserValue] = field(default_factory=dict, repr=False)
    # caller-owned bookkeeping, never touched by the fetch path
    visited: Optional[bool] = field(default=None, repr=False)
    fetched: bool = field(default=False, init=False)

    _document: Any = field(default=_UNSET, init=False, repr=False)
    _base: Any = field(default=_UNSET, init=False, repr=False)
    _links: Optional[List[str]] = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.depth is None:
            self.depth = 0
        if self.depth < 0:
            raise ValueError(f"depth must be >= 0, got {self.depth}")
        if self.status_code is not None and self.error is not None:
            raise ValueError("a page is either fetched (status code) or failed (error), not both")
        self.headers = _normalize_headers(self.headers)
        if self.redirect_to is not None:
            self.redirect_to = link_extractor.to_absolute(str(self.redirect_to), self.url)
        self.fetched = self.status_code is not None

    # ------------------------------------------------------------------ #
    # Lazy parsing                                                       #
    # ------------------------------------------------------------------ #

    @property
    def document(self) -> Optional[BeautifulSoup]:
        """Parsed HTML body, or None when there is no HTML body."""
        if self._document is _UNSET:
            self._document = link_extractor.parse_document(self.body) if self.is_html else None
        return self._document

    @property
    def base_uri(self) -> Optional[str]:
        """``<head><base href>`` resolved against the page URL, if any."""
        if self._base is _UNSET:
            soup = self.document
            href = link_extractor.base_href(soup) if soup is not None else None
            try:
                self._base = urljoin(self.url, href) if href else None
            except ValueError:
                self._base = None
        return self._base

    @property
    def links(self) -> List[str]:
        """Distinct absolute links this page allows the crawl to follow."""
        if self._links is None:
            self._links = self._extract_links()
        return self._links

    def _extract_links(self) -> List[str]:
        soup = self.document
        if soup is None:
            return []
        if self.policy.skip_no_follow and link_extractor.has_noindex_hint(soup):
            return []
        # pages outside the crawled sites contribute nothing
        if not self.page_in_domain:
            return []

        found: List[str] = []
        for ref in link_extractor.iter_references(soup, self.policy.skip_no_follow):
            try:
                absolute = self.to_absolute(ref)
            except ValueError:
                logger.debug("Skipping malformed link %r on %s", ref, self.url)
                continue
            if urlsplit(absolute).scheme not in ("http", "https"):
                continue
            if self.in_domain(absolute) or self.is_subdomain(absolute) or self.policy.external_links:
                found.append(absolute)
        return link_extractor.unique(found)

    def discard_document(self) -> None:
        """Release the parsed document and the body; links stay available."""
        # fill the caches while the document still exists
        self.links
        self.base_uri
        self._document = None
        self.body = None

    # ------------------------------------------------------------------ #
    # URL helpers                                                        #
    # ------------------------------------------------------------------ #

    def to_absolute(self, link: Optional[str]) -> Optional[str]:
        """Resolve *link* against the base URI (or the page URL). Raises ValueError if malformed."""
        if link is None:
            return None
        return link_extractor.to_absolute(str(link), self.base_uri or self.url)

    def in_domain(self, uri: str) -> bool:
        return link_extractor.host_of(uri) == link_extractor.host_of(self.url)

    def is_subdomain(self, uri: str) -> bool:
        host = link_extractor.host_of(uri)
        return host is not None and host in self.policy.follow_subdomain

    @property
    def page_in_domain(self) -> bool:
        """True when the page sits on one of the seed hosts."""
        return link_extractor.host_of(self.url) in self.policy.seed_hosts

    # ------------------------------------------------------------------ #
    # Classification                                                     #
    # ------------------------------------------------------------------ #

    @property
    def content_type(self) -> str:
        values = self.headers.get("content-type") or [""]
        return values[0]

    @property
    def is_html(self) -> bool:
        return bool(_HTML_RE.match(self.content_type))

    @property
    def is_image(self) -> bool:
        return bool(_IMAGE_RE.match(self.content_type))

    @property
    def is_video(self) -> bool:
        return bool(_VIDEO_RE.match(self.content_type))

    @property
    def is_pdf(self) -> bool:
        return bool(_PDF_RE.match(self.content_type))

    @property
    def is_redirect(self) -> bool:
        return self.status_code is not None and 300 <= self.status_code <= 307

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404

    @property
    def cookies(self) -> List[Morsel]:
        """Cookies set by this response."""
        return parse_set_cookies(self.headers.get("set-cookie", []))

    # ------------------------------------------------------------------ #
    # Snapshots                                                          #
    # ------------------------------------------------------------------ #

    def to_snapshot(self) -> Dict[str, Any]:
        """Plain-dict form of the page for a KeyedStore. Computes the links."""
        for key, value in self.user_data.items():
            if not isinstance(value, _USER_VALUE_TYPES):
                raise TypeError(f"user_data[{key!r}] has unsupported type {type(value).__name__}")
        return {
            "url": self.url,
            "headers": json.dumps(self.headers),
            "data": json.dumps(self.user_data, sort_keys=True),
            "body": self.body,
            "links": list(self.links),
            "code": self.status_code,
            "visited": self.visited,
            "depth": self.depth,
            "referer": self.referer or "",
            "redirect_to": self.redirect_to or "",
            "response_time": self.response_time,
            "fetched": self.fetched,
        }

    @classmethod
    def from_snapshot(cls, snapshot: Mapping[str, Any], policy: Optional[LinkPolicy] = None) -> Page:
        """Rebuild a page from :meth:`to_snapshot` output."""
        headers = snapshot.get("headers")
        data = snapshot.get("data")
        page = cls(
            url=str(snapshot["url"]),
            status_code=_optional_int(snapshot.get("code")),
            headers=json.loads(headers) if headers else {},
            body=snapshot.get("body"),
            referer=snapshot.get("referer") or None,
            depth=int(snapshot.get("depth") or 0),
            redirect_to=snapshot.get("redirect_to") or None,
            response_time=_optional_int(snapshot.get("response_time")),
            policy=policy or LinkPolicy(),
            user_data=json.loads(data) if data else {},
            visited=snapshot.get("visited"),
        )
        page.fetched = bool(snapshot.get("fetched", page.fetched))
        links = [str(link) for link in snapshot.get("links") or ()]
        for link in links:
            urlsplit(link).port  # raises ValueError for a malformed port
        page._links = links
        return page
