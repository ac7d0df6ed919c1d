"""Fetcher tests.

``respx`` patches ``httpx`` at the transport layer, so no real network calls
are made. Async code is driven with ``asyncio.run``.
"""
from __future__ import annotations

import asyncio

import httpx
import pytest
import respx

from site_linkgraph.cache import CacheConfig, FileCache
from site_linkgraph.fetcher import Fetcher, classify_status_code, is_html_content_type
from site_linkgraph.models import FetchResult

URL = "https://site.test/page"


def _fetch(url: str = URL, **kwargs) -> FetchResult:
    kwargs.setdefault("user_agent", "site_linkgraph-test/1.0")
    kwargs.setdefault("timeout", 2.0)

    async def run() -> FetchResult:
        async with Fetcher(**kwargs) as fetcher:
            return await fetcher.fetch(url)

    return asyncio.run(run())


@pytest.mark.parametrize(
    "code, status",
    [
        (200, "success"),
        (204, "success"),
        (304, "redirect"),
        (404, "client-error"),
        (410, "client-error"),
        (500, "server-error"),
        (503, "server-error"),
    ],
)
def test_classify_status_code(code, status):
    assert classify_status_code(code) == status


@pytest.mark.parametrize(
    "ctype, html",
    [
        ("text/html; charset=utf-8", True),
        ("application/xhtml+xml", True),
        ("", True),
        ("application/json", False),
        ("image/png", False),
    ],
)
def test_is_html_content_type(ctype, html):
    assert is_html_content_type(ctype) is html


def test_success_returns_body_and_sends_user_agent():
    with respx.mock(assert_all_called=False) as router:
        route = router.get(URL).mock(return_value=httpx.Response(200, html="<p>hi</p>"))
        result = _fetch(user_agent="linkgraph-bot/9")

    assert result.status == "success"
    assert result.ok
    assert result.status_code == 200
    assert result.body == "<p>hi</p>"
    assert not result.redirected
    assert route.calls.last.request.headers["user-agent"] == "linkgraph-bot/9"


@pytest.mark.parametrize(
    "code, status",
    [(404, "client-error"), (403, "client-error"), (500, "server-error"), (502, "server-error")],
)
def test_http_errors_are_classified_without_body(code, status):
    with respx.mock(assert_all_called=False) as router:
        router.get(URL).mock(return_value=httpx.Response(code, html="<p>error page</p>"))
        result = _fetch()

    assert result.status == status
    assert result.status_code == code
    assert result.body is None
    assert result.error == f"HTTP {code}"


def test_connection_failure_is_network_error():
    with respx.mock(assert_all_called=False) as router:
        router.get(URL).mock(side_effect=httpx.ConnectError("connection refused"))
        result = _fetch()

    assert result.status == "network-error"
    assert result.status_code is None
    assert result.body is None
    assert "ConnectError" in result.error


def test_timeout_is_reported_not_raised():
    with respx.mock(assert_all_called=False) as router:
        router.get(URL).mock(side_effect=httpx.ReadTimeout("too slow"))
        result = _fetch(timeout=0.5)

    assert result.status == "timeout"
    assert result.body is None
    assert "0.5" in result.error


def test_redirect_is_followed_and_final_url_recorded():
    with respx.mock(assert_all_called=False) as router:
        router.get("https://site.test/old").mock(
            return_value=httpx.Response(301, headers={"Location": "https://site.test/new"})
        )
        router.get("https://site.test/new").mock(
            return_value=httpx.Response(200, html="<p>moved</p>")
        )
        result = _fetch("https://site.test/old")

    assert result.status == "success"
    assert result.final_url == "https://site.test/new"
    assert result.redirected
    assert result.body == "<p>moved</p>"


def test_redirect_loop_is_a_redirect_failure():
    with respx.mock(assert_all_called=False) as router:
        router.get("https://site.test/loop").mock(
            return_value=httpx.Response(302, headers={"Location": "https://site.test/loop"})
        )
        result = _fetch("https://site.test/loop", max_redirects=3)

    assert result.status == "redirect"
    assert result.body is None
    assert not result.ok


def test_non_html_success_has_no_body():
    with respx.mock(assert_all_called=False) as router:
        router.get(URL).mock(return_value=httpx.Response(200, json={"a": 1}))
        result = _fetch()

    assert result.status == "success"
    assert result.body is None
    assert "application/json" in result.content_type


def test_oversized_page_is_not_parsed():
    with respx.mock(assert_all_called=False) as router:
        router.get(URL).mock(return_value=httpx.Response(200, html="<p>" + "x" * 200 + "</p>"))
        result = _fetch(max_content_bytes=100)

    assert result.status == "success"
    assert result.body is None
    assert "too large" in result.error


def test_cache_serves_second_fetch(tmp_path):
    cache = FileCache(CacheConfig(enabled=True, directory=str(tmp_path / "cache")))

    async def run() -> list[FetchResult]:
        async with Fetcher(user_agent="t", cache=cache) as fetcher:
            return [await fetcher.fetch(URL), await fetcher.fetch(URL)]

    with respx.mock(assert_all_called=False) as router:
        route = router.get(URL).mock(return_value=httpx.Response(200, html="<p>cached</p>"))
        first, second = asyncio.run(run())

    assert route.call_count == 1
    assert not first.from_cache
    assert second.from_cache
    assert second.body == "<p>cached</p>"


def test_failures_are_never_cached(tmp_path):
    cache = FileCache(CacheConfig(enabled=True, directory=str(tmp_path / "cache")))

    async def run() -> list[FetchResult]:
        async with Fetcher(user_agent="t", cache=cache) as fetcher:
            return [await fetcher.fetch(URL), await fetcher.fetch(URL)]

    with respx.mock(assert_all_called=False) as router:
        route = router.get(URL).mock(return_value=httpx.Response(500))
        first, second = asyncio.run(run())

    assert route.call_count == 2
    assert first.status == second.status == "server-error"


def test_fetch_outside_context_manager_is_an_error():
    fetcher = Fetcher(user_agent="t")
    with pytest.raises(RuntimeError):
        asyncio.run(fetcher.fetch(URL))
