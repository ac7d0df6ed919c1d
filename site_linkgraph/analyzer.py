# Structural checks over a finished link graph.

from __future__ import annotations

from collections import Counter
from typing import Dict, List

from site_linkgraph.graph import LinkGraph
from site_linkgraph.models import CrawlSummary, Link, Page


def find_orphans(graph: LinkGraph, root: str) -> List[Page]:
    """
    Pages no other crawled page links to. The root is exempt: it is the
    entry point, not something the site has to link to.
    """
    return [
        page
        for page in graph.nodes()
        if page.url != root and graph.in_degree(page.url) == 0
    ]


def find_broken(graph: LinkGraph) -> List[Link]:
    """
    Links whose target failed to fetch.

    Targets that were never fetched because a limit kept them out of the
    frontier, or that robots.txt disallowed, are unexplored, not broken.
    """
    return [link for link in graph.edges() if graph.page(link.target).state == "failed"]


def find_unexplored(graph: LinkGraph) -> List[Page]:
    """Pages that are linked to but were never fetched."""
    return [page for page in graph.nodes() if page.state == "discovered"]


def depth_histogram(graph: LinkGraph) -> Dict[int, int]:
    counts = Counter(page.depth for page in graph.nodes() if page.depth is not None)
    return dict(sorted(counts.items()))


def summarize(graph: LinkGraph, root: str) -> CrawlSummary:
    states = Counter(page.state for page in graph.nodes())
    depths = [page.depth for page in graph.nodes() if page.depth is not None]
    return CrawlSummary(
        pages=len(graph),
        links=graph.edge_count(),
        expanded=states["expanded"],
        failed=states["failed"],
        unexplored=states["discovered"],
        skipped=states["skipped"],
        orphans=len(find_orphans(graph, root)),
        broken_links=len(find_broken(graph)),
        max_depth=max(depths) if depths else 0,
    )
