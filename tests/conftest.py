# File: tests/conftest.py
import pytest

from site_fetch.config import FetcherConfig
from site_fetch.crawler.models import LinkPolicy
from site_fetch.crawler.page import Page


@pytest.fixture()
def fast_config() -> FetcherConfig:
    """
    Config for fetcher tests: short timeout and no sleeping between retries.
    """
    return FetcherConfig(read_timeout=2.0, retry_backoff=0, user_agent="TestAgent/1.0")


@pytest.fixture()
def make_page():
    """
    Build an HTML page on http://example.com with a given body and link policy.
    """

    def _make(
        body: str,
        url: str = "http://example.com/a/",
        content_type: str = "text/html; charset=utf-8",
        **policy,
    ) -> Page:
        policy.setdefault("seed_hosts", frozenset({"example.com"}))
        return Page(
            url=url,
            status_code=200,
            headers={"Content-Type": content_type},
            body=body,
            policy=LinkPolicy(**policy),
        )

    return _make
