# site_linkgraph/fetcher.py
"""
HTTPX-based page fetcher.

Responsibilities:
- GET one URL with a hard per-request timeout and an identifying User-Agent.
- Follow redirects (bounded) and record the final URL.
- Classify the outcome: success, redirect, client-error, server-error,
  network-error, timeout.
- Never raise for network or HTTP conditions; every failure is a FetchResult.

Link parsing and crawl policy live elsewhere (link_logic.py, crawler.py).
"""
from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

import httpx

from site_linkgraph.cache import CacheConfig, FileCache
from site_linkgraph.models import FetchResult, FetchStatus

log = logging.getLogger(__name__)

HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml")


def classify_status_code(status_code: int) -> FetchStatus:
    """Map a final HTTP status code to a fetch outcome."""
    if status_code >= 500:
        return "server-error"
    if status_code >= 400:
        return "client-error"
    if status_code >= 300:
        return "redirect"
    return "success"


def is_html_content_type(content_type: str) -> bool:
    # A missing header is given the benefit of the doubt.
    if not content_type:
        return True
    return any(t in content_type for t in HTML_CONTENT_TYPES)


class Fetcher:
    """
    Fetch pages over HTTP(S). Use as an async context manager so the
    underlying connection pool is closed.
    """

    def __init__(
        self,
        *,
        user_agent: str,
        timeout: float = 10.0,
        max_redirects: int = 5,
        max_content_bytes: int = 5 * 1_048_576,
        cache: Optional[FileCache] = None,
    ) -> None:
        self.user_agent = user_agent
        self.timeout = timeout
        self.max_redirects = max_redirects
        self.max_content_bytes = max_content_bytes
        self._cache = cache
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "Fetcher":
        cache_cfg = CacheConfig.from_config(config.get("cache", {}))
        cache = FileCache(cache_cfg) if cache_cfg.enabled else None
        return cls(
            user_agent=config["user_agent"],
            timeout=float(config["timeout"]),
            max_redirects=int(config.get("max_redirects", 5)),
            max_content_bytes=int(config.get("max_content_bytes", 5 * 1_048_576)),
            cache=cache,
        )

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("Fetcher used outside of 'async with'.")
        return self._client

    async def __aenter__(self) -> "Fetcher":
        self._client = httpx.AsyncClient(
            follow_redirects=True,
            max_redirects=self.max_redirects,
            timeout=self.timeout,
            headers={"User-Agent": self.user_agent},
        )
        log.debug("httpx client opened (timeout=%ss)", self.timeout)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        if self._cache is not None:
            self._cache.close()
        log.debug("httpx client closed.")

    def _from_cache(self, url: str) -> Optional[FetchResult]:
        if self._cache is None:
            return None
        hit = self._cache.get(url)
        if not hit or hit.get("status") != 200 or not hit.get("text"):
            return None
        log.info("Cache hit for %s", url)
        return FetchResult(
            url=url,
            status="success",
            status_code=200,
            body=hit["text"],
            final_url=hit.get("final_url", url),
            content_type=hit.get("content_type", ""),
            from_cache=True,
        )

    async def fetch(self, url: str) -> FetchResult:
        """Fetch url and classify the outcome. Does not raise on HTTP failures."""
        cached = self._from_cache(url)
        if cached is not None:
            return cached

        started = time.monotonic()
        try:
            resp = await self.client.get(url)
        except httpx.TimeoutException as e:
            log.warning("Timeout fetching %s: %s", url, e)
            return FetchResult(
                url=url,
                status="timeout",
                error=f"Timed out after {self.timeout}s",
                elapsed=time.monotonic() - started,
            )
        except httpx.TooManyRedirects as e:
            log.warning("Too many redirects for %s: %s", url, e)
            return FetchResult(
                url=url,
                status="redirect",
                error=f"More than {self.max_redirects} redirects",
                elapsed=time.monotonic() - started,
            )
        except httpx.RequestError as e:
            log.warning("Network error fetching %s: %s", url, e)
            return FetchResult(
                url=url,
                status="network-error",
                error=f"{type(e).__name__}: {e}",
                elapsed=time.monotonic() - started,
            )
        except httpx.InvalidURL as e:
            log.warning("Invalid URL %s: %s", url, e)
            return FetchResult(
                url=url,
                status="network-error",
                error=f"Invalid URL: {e}",
                elapsed=time.monotonic() - started,
            )

        elapsed = time.monotonic() - started
        status_code = resp.status_code
        final_url = str(resp.url)
        ctype = resp.headers.get("content-type", "").lower()
        outcome = classify_status_code(status_code)

        if outcome != "success":
            log.warning("Non-success response for %s: %d (%s)", url, status_code, outcome)
            return FetchResult(
                url=url,
                status=outcome,
                status_code=status_code,
                final_url=final_url,
                content_type=ctype,
                error=f"HTTP {status_code}",
                elapsed=elapsed,
            )

        result = FetchResult(
            url=url,
            status="success",
            status_code=status_code,
            final_url=final_url,
            content_type=ctype,
            elapsed=elapsed,
        )

        if not is_html_content_type(ctype):
            log.info("Not parsing non-HTML content at %s (%s)", url, ctype)
            return result

        if len(resp.content) > self.max_content_bytes:
            msg = f"Content too large at {url} ({len(resp.content)} > {self.max_content_bytes})"
            log.warning(msg)
            result.error = msg
            return result

        result.body = resp.text
        if self._cache is not None:
            self._cache.set_page(
                url,
                final_url=final_url,
                status=status_code,
                text=result.body,
                content_type=ctype,
            )
        return result
