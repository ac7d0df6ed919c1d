# site_linkgraph/crawler.py
"""
Breadth-first crawl scheduler.

Responsibilities:
- Own the FIFO frontier and the visited set of one crawl session.
- Drive the Fetcher and the link extractor, one page at a time or in
  bounded concurrent batches.
- Enforce max_pages, max_depth, the optional crawl deadline and the
  external stop signal.
- Build the LinkGraph incrementally and record every fetch outcome on it.

Per page: discovered -> fetching -> expanded | failed, or skipped when the
politeness checker disallows the URL.

Page limits bound the visited set (pages ever enqueued). A link to a page
that a limit keeps out of the frontier is still recorded, and that page stays
"discovered".
"""
from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Optional, Set

from site_linkgraph.config import ConfigError, validate_config, validate_root_url
from site_linkgraph.fetcher import Fetcher
from site_linkgraph.graph import LinkGraph
from site_linkgraph.link_logic import (
    ExtractConfig,
    extract_links,
    is_same_site,
    normalize_url,
)
from site_linkgraph.models import CrawlResult, FetchResult, Page, StopReason
from site_linkgraph.robots import AllowAll, PolitenessChecker, RobotsRules

log = logging.getLogger(__name__)


def utc_now_iso() -> str:
    """Return current UTC time in ISO format."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


@dataclass
class Crawler:
    """
    Crawl one site starting from root_url using httpx (no JS execution).

    Config keys consumed:
      - max_pages: int
      - max_depth: int | None
      - timeout: float (seconds)
      - delay: float (seconds between requests)
      - concurrency: int
      - max_duration: float | None (seconds)
      - max_redirects: int
      - max_content_bytes: int
      - user_agent: str
      - respect_robots: bool
      - exclude_selectors: list[str]
      - exclude: list[str]
      - strip_query_params: list[str]
      - skip_asset_urls: bool
      - same_site_policy: "host" | "registrable-domain"
      - cache: dict
    """

    root_url: str
    config: Dict[str, Any]
    seed_urls: Optional[List[str]] = None
    stop_event: Optional[asyncio.Event] = None
    politeness: Optional[PolitenessChecker] = None

    # Internal state
    graph: LinkGraph = field(default_factory=LinkGraph)
    frontier: Deque[str] = field(default_factory=deque)
    visited: Set[str] = field(default_factory=set)
    errors: List[str] = field(default_factory=list)
    pages_fetched: int = 0

    normalized_root: str = field(init=False)
    site_url: str = field(init=False)
    max_pages: int = field(init=False)
    max_depth: Optional[int] = field(init=False)
    concurrency: int = field(init=False)
    max_duration: Optional[float] = field(init=False)
    _fetcher: Fetcher = field(init=False, repr=False)
    _extract_cfg: ExtractConfig = field(init=False, repr=False)
    _delay: float = field(init=False, repr=False)
    _last_request_at: Optional[float] = field(default=None, init=False, repr=False)
    # robots.txt rules were loaded here, not injected by the caller
    _owns_robots: bool = field(default=False, init=False, repr=False)
    _site_moved: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        # Invalid configuration is the only fatal condition: fail before any I/O.
        validate_root_url(self.root_url)
        validate_config(self.config)

        root = normalize_url(
            self.root_url,
            strip_query_params=self.config.get("strip_query_params", ()),
        )
        if root is None:
            raise ConfigError(f"Root URL cannot be normalized: {self.root_url!r}")
        self.normalized_root = root
        self.site_url = root

        self.max_pages = int(self.config["max_pages"])
        max_depth = self.config.get("max_depth")
        self.max_depth = int(max_depth) if max_depth is not None else None
        self.concurrency = int(self.config.get("concurrency", 1))
        max_duration = self.config.get("max_duration")
        self.max_duration = float(max_duration) if max_duration is not None else None
        self._delay = float(self.config.get("delay", 0.0))
        self._extract_cfg = ExtractConfig.from_config(self.config)
        self._fetcher = Fetcher.from_config(self.config)

        # Seed the session with the root page, then any extra entry points.
        self.graph.add_page(self.normalized_root, depth=0)
        self.visited.add(self.normalized_root)
        self.frontier.append(self.normalized_root)
        for seed in self.seed_urls or []:
            self._add_seed(seed)

    async def __aenter__(self) -> "Crawler":
        await self._fetcher.__aenter__()

        if self.politeness is None:
            if self.config.get("respect_robots", True):
                self._owns_robots = True
                await self._load_robots(self.normalized_root)
            else:
                self.politeness = AllowAll()

        log.info("Crawl session initialized. Root: %s", self.normalized_root)
        return self

    async def _load_robots(self, site_url: str) -> None:
        rules = await RobotsRules.load(
            self._fetcher.client, site_url, self.config["user_agent"]
        )
        crawl_delay = rules.crawl_delay()
        if crawl_delay is not None and crawl_delay > self._delay:
            log.info("Using robots.txt Crawl-delay of %ss", crawl_delay)
            self._delay = crawl_delay
        self.politeness = rules

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self._fetcher.__aexit__(exc_type, exc_val, exc_tb)
        log.info("Crawl session closed.")

    # ---- Limits -------------------------------------------------------------

    def _can_enqueue(self, depth: int) -> bool:
        if self.max_depth is not None and depth > self.max_depth:
            return False
        return len(self.visited) < self.max_pages

    def _add_seed(self, raw_url: str) -> None:
        """Enqueue an extra entry point (e.g. from a sitemap export) at depth 0."""
        url = normalize_url(raw_url, strip_query_params=self._extract_cfg.strip_query_params)
        if url is None:
            log.warning("Ignoring unusable seed URL: %r", raw_url)
            return
        if not is_same_site(url, self.normalized_root, self._extract_cfg.same_site_policy):
            log.warning("Ignoring off-site seed URL: %s", url)
            return
        if url in self.visited:
            return
        if len(self.visited) >= self.max_pages:
            log.warning("max_pages reached while seeding; ignoring %s", url)
            return
        self.graph.add_page(url, depth=0)
        self.visited.add(url)
        self.frontier.append(url)

    def _stop_reason(self, started: float) -> Optional[StopReason]:
        if self.stop_event is not None and self.stop_event.is_set():
            return "cancelled"
        if self.max_duration is not None and time.monotonic() - started >= self.max_duration:
            return "deadline"
        return None

    async def _pause(self) -> None:
        """Inter-request delay, measured from the previous request."""
        if self._delay > 0 and self._last_request_at is not None:
            wait = self._delay - (time.monotonic() - self._last_request_at)
            if wait > 0:
                await asyncio.sleep(wait)
        self._last_request_at = time.monotonic()

    # ---- Per-page processing ------------------------------------------------

    def _record_link(self, source: Page, target: str) -> None:
        depth = (source.depth or 0) + 1
        if target not in self.visited and self._can_enqueue(depth):
            self.graph.add_page(target, depth=depth)
            self.visited.add(target)
            self.frontier.append(target)
        elif target not in self.graph:
            # Linked, but a limit keeps it out of the frontier.
            self.graph.add_page(target, depth=depth)
        self.graph.add_edge(source.url, target)

    def _commit(self, url: str, result: FetchResult) -> None:
        """Apply one fetch result to the graph. Runs without suspension points."""
        page = self.graph.page(url)
        page.fetch_status = result.status
        page.status_code = result.status_code
        if result.redirected:
            page.final_url = result.final_url
        self.pages_fetched += 1

        if not result.ok:
            page.state = "failed"
            page.error = result.error
            self.errors.append(f"{result.status} for {url}: {result.error}")
            return

        page.state = "expanded"
        if result.body is None:
            return

        base = result.final_url or url
        if not is_same_site(base, self.site_url, self._extract_cfg.same_site_policy):
            if url == self.normalized_root:
                log.info("Root redirected to %s; following that site instead.", base)
                self.site_url = base
                self._site_moved = True
            else:
                log.info("%s redirected off-site to %s; not expanding.", url, base)
                return

        targets = extract_links(result.body, base, self._extract_cfg, site_url=self.site_url)
        log.info("Fetched %s (depth %s): %d link(s)", url, page.depth, len(targets))
        for target in targets:
            self._record_link(page, target)

    def _take_batch(self) -> List[str]:
        size = min(self.concurrency, len(self.frontier))
        return [self.frontier.popleft() for _ in range(size)]

    async def crawl(self) -> CrawlResult:
        """
        Run the breadth-first traversal until the frontier is empty, the stop
        signal is set, or the deadline passes. Partial results are kept.
        """
        if self.politeness is None:
            raise RuntimeError("Crawler.crawl() must run inside 'async with'.")

        started_at = utc_now_iso()
        started = time.monotonic()
        stop_reason: StopReason = "completed"

        while self.frontier:
            reason = self._stop_reason(started)
            if reason is not None:
                stop_reason = reason
                log.warning(
                    "Crawl stopped (%s) with %d URL(s) left in the frontier.",
                    reason,
                    len(self.frontier),
                )
                break

            to_fetch: List[str] = []
            for url in self._take_batch():
                page = self.graph.page(url)
                if not self.politeness.can_fetch(url):
                    log.info("Disallowed by robots.txt, skipping: %s", url)
                    page.state = "skipped"
                    continue
                page.state = "fetching"
                to_fetch.append(url)
            if not to_fetch:
                continue

            await self._pause()
            results = await asyncio.gather(*(self._fetcher.fetch(u) for u in to_fetch))
            # Commit in dequeue order so dedup and BFS order do not depend on
            # which request finished first.
            for url, result in zip(to_fetch, results):
                self._commit(url, result)

            if self._site_moved:
                self._site_moved = False
                if self._owns_robots:
                    # Pages of the new site answer to its own robots.txt.
                    await self._load_robots(self.site_url)

        log.info(
            "Crawl %s: %d page(s) fetched, %d known, %d link(s), %d error(s).",
            stop_reason,
            self.pages_fetched,
            len(self.graph),
            self.graph.edge_count(),
            len(self.errors),
        )
        return CrawlResult(
            root_url=self.normalized_root,
            graph=self.graph,
            stop_reason=stop_reason,
            pages_fetched=self.pages_fetched,
            errors=list(self.errors),
            started_at=started_at,
            finished_at=utc_now_iso(),
        )
