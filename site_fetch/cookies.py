"""
Session cookie jar shared by all fetches of one crawl.
"""
from __future__ import annotations

from http.cookies import CookieError, Morsel, SimpleCookie
from typing import Iterable, List, Mapping, Optional, Protocol, Union, runtime_checkable

from site_fetch.logger import logger

__all__ = ("CookieJar", "CookieStore", "parse_set_cookies")


@runtime_checkable
class CookieJar(Protocol):
    """What the fetcher needs from a cookie jar."""

    def render(self) -> str: ...

    def is_empty(self) -> bool: ...

    def merge(self, set_cookie_headers: Iterable[str]) -> None: ...


def parse_set_cookies(headers: Iterable[str]) -> List[Morsel]:
    """Parse ``Set-Cookie`` header values into morsels, skipping malformed ones."""
    morsels: List[Morsel] = []
    for header in headers:
        cookie = SimpleCookie()
        try:
            cookie.load(header)
        except CookieError:
            logger.debug("Skipping malformed Set-Cookie: %r", header)
            continue
        morsels.extend(cookie.values())
    return morsels


class CookieStore:
    """
    Name -> value cookie jar.
    Expired cookies (``Max-Age=0``) and cookies with an empty value are dropped on merge.
    """

    def __init__(self, cookies: Union[str, Mapping[str, str], None] = None) -> None:
        self._cookies: dict[str, str] = {}
        if isinstance(cookies, str):
            for morsel in parse_set_cookies([cookies]):
                self._cookies[morsel.key] = morsel.value
        elif cookies:
            self._cookies.update({str(k): str(v) for k, v in cookies.items()})

    def merge(self, set_cookie_headers: Optional[Iterable[str]]) -> None:
        for morsel in parse_set_cookies(set_cookie_headers or ()):
            if morsel.value == "" or morsel["max-age"] == "0":
                self._cookies.pop(morsel.key, None)
            else:
                self._cookies[morsel.key] = morsel.value

    def render(self) -> str:
        return "; ".join(f"{name}={value}" for name, value in self._cookies.items())

    def is_empty(self) -> bool:
        return not self._cookies

    def __getitem__(self, name: str) -> str:
        return self._cookies[name]

    def __contains__(self, name: object) -> bool:
        return name in self._cookies

    def __len__(self) -> int:
        return len(self._cookies)

    def __repr__(self) -> str:
        return f"<CookieStore {self.render()!r}>"
