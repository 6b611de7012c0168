"""Tests for Page: link extraction policy, caching, classification and snapshots."""
import pytest

from site_fetch.crawler.models import LinkPolicy
from site_fetch.crawler.page import Page


# --------------------------------------------------------------------------- #
#                                to_absolute                                  #
# --------------------------------------------------------------------------- #


def test_to_absolute_strips_fragment_and_resolves():
    page = Page(url="http://example.com/a/")
    assert page.to_absolute("page.html#section") == "http://example.com/a/page.html"


def test_to_absolute_empty_path_becomes_slash():
    page = Page(url="http://example.com")
    assert page.to_absolute("") == "http://example.com/"


def test_to_absolute_uses_base_href(make_page):
    page = make_page('<html><head><base href="http://example.com/docs/"></head><body></body></html>')
    assert page.base_uri == "http://example.com/docs/"
    assert page.to_absolute("intro.html") == "http://example.com/docs/intro.html"


def test_empty_base_href_is_ignored(make_page):
    page = make_page('<html><head><base href=""></head><body></body></html>')
    assert page.base_uri is None
    assert page.to_absolute("x") == "http://example.com/a/x"


def test_to_absolute_rejects_malformed_reference():
    page = Page(url="http://example.com/")
    with pytest.raises(ValueError):
        page.to_absolute("http://[broken")
    assert page.to_absolute(None) is None


# --------------------------------------------------------------------------- #
#                                   links                                     #
# --------------------------------------------------------------------------- #


def test_links_skip_nofollow_only_when_enabled(make_page):
    html = '<a href="/x" rel="nofollow">X</a><a href="/y">Y</a>'

    assert make_page(html, skip_no_follow=True).links == ["http://example.com/y"]
    assert make_page(html, skip_no_follow=False).links == [
        "http://example.com/x",
        "http://example.com/y",
    ]


def test_links_empty_when_page_not_on_seed_host(make_page):
    html = '<a href="/x">X</a><img src="/i.png">'
    page = make_page(html, url="http://elsewhere.org/", seed_hosts=frozenset({"example.com"}))
    assert page.links == []


def test_links_empty_without_seed_hosts(make_page):
    assert make_page('<a href="/x">X</a>', seed_hosts=frozenset()).links == []
    plain = Page(
        url="http://example.com/",
        status_code=200,
        headers={"Content-Type": "text/html"},
        body='<a href="/x">X</a>',
    )
    assert not plain.page_in_domain
    assert plain.links == []


def test_links_are_computed_once(make_page):
    page = make_page('<a href="/x">X</a>')
    first = page.links
    page.body = '<a href="/changed">C</a>'
    assert page.links is first
    assert first == ["http://example.com/x"]


def test_links_dedup_keeps_order_and_images(make_page):
    html = (
        '<a href="/b">B</a><a href="/a#top">A</a><a href="/b">B again</a>'
        '<img src="/a"><img src="/pic.png"><a href="">empty</a>'
    )
    assert make_page(html, url="http://example.com/").links == [
        "http://example.com/b",
        "http://example.com/a",
        "http://example.com/pic.png",
    ]


def test_links_domain_policy(make_page):
    html = (
        '<a href="http://cdn.example.com/s.js">cdn</a>'
        '<a href="http://other.org/">other</a>'
        '<a href="mailto:me@example.com">mail</a>'
        '<a href="/local">local</a>'
    )
    same_host = make_page(html)
    assert same_host.links == ["http://example.com/local"]

    subdomain = make_page(html, follow_subdomain=frozenset({"cdn.example.com"}))
    assert subdomain.links == ["http://cdn.example.com/s.js", "http://example.com/local"]

    external = make_page(html, external_links=True)
    assert external.links == [
        "http://cdn.example.com/s.js",
        "http://other.org/",
        "http://example.com/local",
    ]


def test_malformed_links_are_skipped(make_page):
    page = make_page('<a href="http://[broken/">bad</a><a href="/ok">ok</a>')
    assert page.links == ["http://example.com/ok"]


def test_noindex_hint_honoured_only_with_skip_no_follow(make_page):
    html = (
        '<html><head><meta name="robots" content="noindex, follow"></head>'
        '<body><a href="/x">X</a></body></html>'
    )
    assert make_page(html, skip_no_follow=True).links == []
    assert make_page(html, skip_no_follow=False).links == ["http://example.com/x"]


def test_non_html_page_has_no_links(make_page):
    page = make_page('<a href="/x">X</a>', content_type="text/plain")
    assert page.document is None
    assert page.links == []


def test_page_without_body_has_no_links():
    page = Page(url="http://example.com/", status_code=204, headers={"content-type": "text/html"})
    assert page.links == []


def test_discard_document_keeps_links(make_page):
    page = make_page('<head><base href="/base/"></head><a href="x">X</a>')
    page.discard_document()

    assert page.body is None
    assert page.document is None
    assert page.links == ["http://example.com/base/x"]
    assert page.base_uri == "http://example.com/base/"
    page.discard_document()
    assert page.links == ["http://example.com/base/x"]


# --------------------------------------------------------------------------- #
#                       Classification and state                              #
# --------------------------------------------------------------------------- #


@pytest.mark.parametrize(
    "content_type,html,image,video,pdf",
    [
        ("application/pdf; charset=binary", False, False, False, True),
        ("text/html; charset=utf-8", True, False, False, False),
        ("application/xhtml+xml", True, False, False, False),
        ("image/png", False, True, False, False),
        ("image/svg+xml", False, True, False, False),
        ("video/mp4", False, False, True, False),
        ("text/htmlx", False, False, False, False),
        ("", False, False, False, False),
    ],
)
def test_content_classification(content_type, html, image, video, pdf):
    page = Page(url="http://example.com/", status_code=200, headers={"Content-Type": content_type})
    assert page.content_type == content_type
    assert (page.is_html, page.is_image, page.is_video, page.is_pdf) == (html, image, video, pdf)


@pytest.mark.parametrize("code,redirect", [(300, True), (301, True), (307, True), (308, False), (200, False)])
def test_is_redirect_range(code, redirect):
    assert Page(url="http://example.com/", status_code=code).is_redirect is redirect


def test_not_found_and_defaults():
    page = Page(url="http://example.com/", status_code=404, headers={"X-Thing": "1"})
    assert page.is_not_found
    assert page.fetched
    assert page.headers == {"x-thing": ["1"], "content-type": [""]}
    assert page.content_type == ""


def test_failed_page_shape():
    page = Page(url="http://example.com/", error=RuntimeError("down"))
    assert not page.fetched
    assert page.status_code is None
    assert page.links == []


def test_invalid_construction():
    with pytest.raises(ValueError):
        Page(url="http://example.com/", depth=-1)
    with pytest.raises(ValueError):
        Page(url="http://example.com/", status_code=200, error=RuntimeError("x"))


def test_redirect_target_made_absolute():
    page = Page(url="http://example.com/a/b", status_code=302, redirect_to="../c#frag")
    assert page.redirect_to == "http://example.com/c"


def test_cookies_from_set_cookie_headers():
    page = Page(
        url="http://example.com/",
        status_code=200,
        headers={"Set-Cookie": ["a=1; Path=/", "b=2; HttpOnly"]},
    )
    assert {c.key: c.value for c in page.cookies} == {"a": "1", "b": "2"}


# --------------------------------------------------------------------------- #
#                                 Snapshots                                   #
# --------------------------------------------------------------------------- #


def test_snapshot_round_trip(make_page):
    page = make_page('<a href="/x">X</a>')
    page.referer = "http://example.com/"
    page.depth = 3
    page.response_time = 12
    page.user_data["title"] = "Hello"
    page.visited = True

    snapshot = page.to_snapshot()
    assert snapshot["redirect_to"] == ""
    assert snapshot["links"] == ["http://example.com/x"]

    restored = Page.from_snapshot(snapshot)
    assert restored.url == page.url
    assert restored.status_code == 200
    assert restored.headers == page.headers
    assert restored.body == page.body
    assert restored.links == ["http://example.com/x"]
    assert restored.referer == "http://example.com/"
    assert restored.redirect_to is None
    assert restored.depth == 3
    assert restored.response_time == 12
    assert restored.user_data == {"title": "Hello"}
    assert restored.visited is True
    assert restored.fetched


def test_from_snapshot_parses_string_integers():
    restored = Page.from_snapshot(
        {
            "url": "http://example.com/",
            "headers": "",
            "data": "",
            "body": None,
            "links": [],
            "code": "301",
            "visited": None,
            "depth": "2",
            "referer": "",
            "redirect_to": "http://example.com/next",
            "response_time": "40",
            "fetched": True,
        }
    )
    assert restored.status_code == 301
    assert restored.depth == 2
    assert restored.response_time == 40
    assert restored.redirect_to == "http://example.com/next"
    assert restored.referer is None


def test_from_snapshot_rejects_malformed_link():
    snapshot = Page(url="http://example.com/", status_code=200).to_snapshot()
    snapshot["links"] = ["http://example.com:99999/"]
    with pytest.raises(ValueError):
        Page.from_snapshot(snapshot)


def test_snapshot_of_failed_page():
    page = Page(url="http://example.com/", error=TimeoutError())
    restored = Page.from_snapshot(page.to_snapshot())
    assert not restored.fetched
    assert restored.status_code is None


def test_snapshot_rejects_unsupported_user_data():
    page = Page(url="http://example.com/", status_code=200)
    page.user_data["bad"] = object()
    with pytest.raises(TypeError):
        page.to_snapshot()


def test_policy_defaults():
    policy = LinkPolicy()
    assert policy.seed_hosts == frozenset()
    assert not policy.external_links
