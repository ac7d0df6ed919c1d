# site_linkgraph/api.py
# The primary, programmer-facing API for the library.

from __future__ import annotations

import asyncio
import copy
import logging
from typing import Any, Dict, List

from site_linkgraph.analyzer import find_broken, find_orphans, summarize
from site_linkgraph.config import apply_overrides, load_config, validate_config, validate_root_url
from site_linkgraph.crawler import Crawler
from site_linkgraph.models import SiteReport

log = logging.getLogger(__name__)


async def crawl_site(
    root_url: str,
    *,
    seed_urls: List[str] | None = None,
    config: Dict[str, Any] | None = None,
    max_pages: int | None = None,
    max_depth: int | None = None,
    timeout: float | None = None,
    delay: float | None = None,
    concurrency: int | None = None,
    max_duration: float | None = None,
    respect_robots: bool | None = None,
    exclude_selectors: List[str] | None = None,
    exclude: List[str] | None = None,
    use_cache: bool | None = None,
    stop_event: asyncio.Event | None = None,
) -> SiteReport:
    """
    The main API function. Crawls a site and analyzes its link graph.

    Args:
        root_url: The page to start crawling from; its host defines the site.
        seed_urls: Extra same-site entry points (e.g. every URL of a sitemap).
        config: A full configuration dict. Defaults to load_config(). It is
            copied, never modified.
        max_pages: Override the maximum number of pages to enqueue.
        max_depth: Override the maximum BFS depth (unlimited when unset).
        timeout: Override the per-request timeout in seconds.
        delay: Override the delay between requests in seconds.
        concurrency: Override the number of concurrent fetches.
        max_duration: Stop the crawl after this many seconds.
        respect_robots: Override robots.txt compliance.
        exclude_selectors: Replace the CSS selectors of boilerplate regions.
        exclude: Additional fnmatch URL patterns never to follow.
        use_cache: Override whether successful pages are read from the page cache.
        stop_event: Set it to stop the crawl cleanly with partial results.

    Returns:
        A SiteReport with the graph, its summary, orphans and broken links.

    Raises:
        ConfigError: The root URL or the configuration is invalid.
    """
    log.info("Starting new crawl for: %s", root_url)
    validate_root_url(root_url)

    if config is None:
        config = load_config()
        log.debug("Loaded base configuration.")
    else:
        # Overrides below apply to this crawl only.
        config = copy.deepcopy(config)

    apply_overrides(
        config,
        max_pages=max_pages,
        max_depth=max_depth,
        timeout=timeout,
        delay=delay,
        concurrency=concurrency,
        max_duration=max_duration,
        respect_robots=respect_robots,
        exclude_selectors=exclude_selectors,
    )
    if exclude:
        config["exclude"] = list(config.get("exclude", [])) + list(exclude)
        log.info("Applied override - added exclude patterns: %s", exclude)
    if use_cache is not None:
        config["cache"] = dict(config.get("cache", {}), enabled=use_cache)
        log.info("Applied override - page cache enabled: %s", use_cache)
    validate_config(config)

    log.info("Step 1: Crawling %s.", root_url)
    async with Crawler(root_url, config, seed_urls=seed_urls, stop_event=stop_event) as crawler:
        result = await crawler.crawl()

    log.info("Step 2: Analyzing link graph.")
    graph = result.graph
    orphans = find_orphans(graph, result.root_url)
    broken = find_broken(graph)
    summary = summarize(graph, result.root_url)
    log.info(
        "Analysis complete. %d page(s), %d orphan(s), %d broken link(s).",
        summary.pages,
        len(orphans),
        len(broken),
    )

    return SiteReport(
        root_url=result.root_url,
        graph=graph,
        summary=summary,
        orphans=orphans,
        broken=broken,
        stop_reason=result.stop_reason,
        errors=result.errors,
    )
