# site_fetch/crawler/fetcher.py
"""
Fetcher module: one logical fetch of a URL.

Walks same-host redirect chains, retries transient network faults with
exponential backoff and keeps the shared cookie jar up to date. Failures
never escape :meth:`Fetcher.fetch_pages`; they end up on a trailing page.
"""
from __future__ import annotations

import asyncio
import random
import time
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import urljoin

from aiohttp import (
    BasicAuth,
    ClientConnectorDNSError,
    ClientOSError,
    ClientPayloadError,
    ClientResponse,
    ClientSession,
    ClientSSLError,
    ClientTimeout,
    DummyCookieJar,
    ServerDisconnectedError,
)

from site_fetch.config import FetcherConfig
from site_fetch.cookies import CookieJar, CookieStore
from site_fetch.crawler import link_extractor
from site_fetch.crawler.models import (
    FetchOutcome,
    HttpError,
    HttpResponse,
    LinkPolicy,
    Redirect,
    Success,
    TransientFault,
)
from site_fetch.crawler.page import Page
from site_fetch.exceptions import RetryLimitExceeded
from site_fetch.logger import logger

__all__ = ("Fetcher", "FATAL_ERRORS", "TRANSIENT_ERRORS")

# Timeouts, premature EOF, connection refused/reset/timed out.
TRANSIENT_ERRORS = (
    asyncio.TimeoutError,
    ServerDisconnectedError,
    ClientOSError,
    ClientPayloadError,
    ConnectionError,
    EOFError,
)

# Connector failures that a retry cannot fix.
FATAL_ERRORS = (ClientConnectorDNSError, ClientSSLError)

_MAX_BACKOFF = 60.0


def _collect_headers(resp: ClientResponse) -> Dict[str, List[str]]:
    headers: Dict[str, List[str]] = {}
    for name, value in resp.headers.items():
        headers.setdefault(name.lower(), []).append(value)
    return headers


class Fetcher:
    """Fetches pages, following redirects on the original host and retrying transient faults."""

    def __init__(
        self,
        config: Optional[FetcherConfig] = None,
        urls: Iterable[str] = (),
        cookie_jar: Optional[CookieJar] = None,
        session: Optional[ClientSession] = None,
    ) -> None:
        self.config = config or FetcherConfig()
        self.urls: List[str] = [str(u) for u in urls]
        self.policy = LinkPolicy.from_config(self.config, self.urls)
        self.cookie_jar: CookieJar = cookie_jar if cookie_jar is not None else CookieStore(self.config.cookies)
        self.session = session
        self._owns_session = session is None

    async def __aenter__(self) -> Fetcher:
        self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()

    def _ensure_session(self) -> ClientSession:
        if self.session is None or self.session.closed:
            # the project jar is the only cookie source
            self.session = ClientSession(cookie_jar=DummyCookieJar(), raise_for_status=False)
            self._owns_session = True
        return self.session

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #

    async def fetch_page(self, url: str, referer: Optional[str] = None, depth: Optional[int] = None) -> Page:
        """Fetch *url* and return only the final page of the redirect chain."""
        pages = await self.fetch_pages(url, referer, depth)
        return pages[-1]

    async def fetch_pages(
        self, url: str, referer: Optional[str] = None, depth: Optional[int] = None
    ) -> List[Page]:
        """
        Fetch *url* and return one page per redirect hop, the last one terminal.

        Never raises: a failure is appended as a page with ``error`` set and
        ``fetched`` false, so the result always holds at least one page.
        """
        pages: List[Page] = []
        # the trailing error page always carries the requested URL
        origin = location = str(url)
        try:
            origin = location = link_extractor.normalize_url(url)
            redirects = 0
            while True:
                # relative targets are merged with the original request URL
                location = urljoin(origin, location)
                outcome = await self.get_response(location, referer)
                if isinstance(outcome, TransientFault):
                    error = RetryLimitExceeded(location, outcome.attempts, outcome.error)
                    self._log("Problem getting %s: %s", location, error)
                    pages.append(self._error_page(origin, error, referer, depth))
                    return pages

                redirect_to = outcome.location if isinstance(outcome, Redirect) else None
                pages.append(self._page(location, outcome.response, referer, depth, redirect_to))
                if redirect_to is None or not self.allowed(redirect_to, origin):
                    return pages
                if redirects >= self.config.redirect_limit:
                    logger.debug("Redirect limit reached at %s", location)
                    return pages
                redirects += 1
                location = redirect_to
        except Exception as exc:
            self._log("Problem getting %s: %r", location, exc, exc_info=self.config.verbose)
            pages.append(self._error_page(origin, exc, referer, depth))
            return pages

    async def get_response(self, url: str, referer: Optional[str] = None) -> FetchOutcome:
        """Issue one GET, retrying transient faults up to ``retry_limit`` attempts."""
        limit = self.config.retry_limit
        for attempt in range(1, limit + 1):
            outcome = await self._get_once(url, referer)
            if not isinstance(outcome, TransientFault):
                return outcome
            if attempt >= limit:
                return TransientFault(outcome.error, attempts=attempt)
            delay = self.backoff(attempt)
            self._log(
                "Retrying #%d on %s in %.2f s because of: %r", attempt, url, delay, outcome.error
            )
            await asyncio.sleep(delay)
        raise AssertionError("unreachable")  # pragma: no cover

    def backoff(self, attempt: int) -> float:
        """Exponential delay with jitter before retry number *attempt* (1-based)."""
        base = self.config.retry_backoff
        if base <= 0:
            return 0.0
        return min(_MAX_BACKOFF, base * 2 ** (attempt - 1) + random.uniform(0, base))

    def request_options(self, referer: Optional[str] = None) -> Dict[str, Any]:
        """Keyword arguments for ``session.get`` of a single request."""
        cfg = self.config
        headers: Dict[str, str] = {}
        if cfg.user_agent:
            headers["User-Agent"] = cfg.user_agent
        if referer:
            headers["Referer"] = str(referer)
        if not self.cookie_jar.is_empty() and (cfg.accept_cookies or cfg.cookies is not None):
            headers["Cookie"] = self.cookie_jar.render()

        options: Dict[str, Any] = {
            "headers": headers,
            "allow_redirects": False,
            "timeout": ClientTimeout(total=cfg.read_timeout),
        }
        if cfg.http_basic_auth:
            options["auth"] = BasicAuth(*cfg.http_basic_auth)
        if cfg.proxy_url:
            options["proxy"] = cfg.proxy_url
        if cfg.proxy_basic_auth:
            options["proxy_auth"] = BasicAuth(*cfg.proxy_basic_auth)
        return options

    @staticmethod
    def allowed(to_url: str, from_url: str) -> bool:
        """A redirect is followed only to a relative target or the original host."""
        to_host = link_extractor.host_of(to_url)
        return to_host is None or to_host == link_extractor.host_of(from_url)

    # ------------------------------------------------------------------ #
    # Internals                                                          #
    # ------------------------------------------------------------------ #

    async def _get_once(self, url: str, referer: Optional[str]) -> FetchOutcome:
        session = self._ensure_session()
        start = time.monotonic()
        try:
            async with session.get(url, **self.request_options(referer)) as resp:
                body = await resp.read()
                response = HttpResponse(
                    status=resp.status,
                    headers=_collect_headers(resp),
                    body=body,
                    response_time=round((time.monotonic() - start) * 1000),
                )
                location = resp.headers.get("Location")
        except FATAL_ERRORS:
            raise
        except TRANSIENT_ERRORS as exc:
            return TransientFault(exc)

        if self.config.accept_cookies:
            self.cookie_jar.merge(response.headers.get("set-cookie", []))

        if 300 <= response.status < 400 and location:
            return Redirect(response, urljoin(url, location))
        if response.status >= 400:
            return HttpError(response)
        return Success(response)

    def _page(
        self,
        url: str,
        response: HttpResponse,
        referer: Optional[str],
        depth: Optional[int],
        redirect_to: Optional[str],
    ) -> Page:
        return Page(
            url=url,
            status_code=response.status,
            headers=response.headers,
            body=response.body,
            referer=referer,
            depth=depth or 0,
            redirect_to=redirect_to,
            response_time=response.response_time,
            policy=self.policy,
        )

    def _error_page(
        self, url: str, error: BaseException, referer: Optional[str], depth: Optional[int]
    ) -> Page:
        return Page(url=url, error=error, referer=referer, depth=max(depth or 0, 0), policy=self.policy)

    def _log(self, msg: str, *args: Any, **kwargs: Any) -> None:
        if self.config.verbose:
            logger.warning(msg, *args, **kwargs)
        else:
            logger.debug(msg, *args, **kwargs)
