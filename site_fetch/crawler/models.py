"""
Data models for the fetch path: link policy, raw responses and
the outcomes of a single GET.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Union
from urllib.parse import urlsplit

# Values a caller may attach to Page.user_data.
UserValue = Union[str, int, float, bool, None]


@dataclass(frozen=True, slots=True)
class LinkPolicy:
    """Which links a page is allowed to report."""

    seed_hosts: FrozenSet[str] = frozenset()
    skip_no_follow: bool = False
    follow_subdomain: FrozenSet[str] = frozenset()
    external_links: bool = False

    @classmethod
    def from_config(cls, config, urls: Iterable[str] = ()) -> LinkPolicy:
        hosts = frozenset(h for h in (urlsplit(str(u)).hostname for u in urls) if h)
        return cls(
            seed_hosts=hosts,
            skip_no_follow=config.skip_no_follow,
            follow_subdomain=frozenset(config.follow_subdomain),
            external_links=config.external_links,
        )


@dataclass(slots=True)
class HttpResponse:
    """Everything kept from one received HTTP response."""

    status: int
    headers: Dict[str, List[str]] = field(default_factory=dict)
    body: bytes = b""
    response_time: Optional[int] = None


@dataclass(slots=True)
class Success:
    response: HttpResponse


@dataclass(slots=True)
class HttpError:
    """A 4xx/5xx answer; still a normal page."""

    response: HttpResponse


@dataclass(slots=True)
class Redirect:
    response: HttpResponse
    location: str


@dataclass(slots=True)
class TransientFault:
    """Network failure worth retrying (timeout, refused, reset, premature EOF)."""

    error: BaseException
    attempts: int = 1


FetchOutcome = Union[Success, HttpError, Redirect, TransientFault]

__all__ = (
    "UserValue",
    "LinkPolicy",
    "HttpResponse",
    "Success",
    "HttpError",
    "Redirect",
    "TransientFault",
    "FetchOutcome",
)
