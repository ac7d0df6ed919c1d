# site_linkgraph/graph.py
"""
In-memory directed link graph for one crawl session.

Pages are keyed by normalized URL. Edges use set semantics per
(source, target) pair. Dicts double as insertion-ordered sets so that
iteration over nodes and edges is deterministic (first-seen order).
"""
from __future__ import annotations

from collections import deque
from typing import Dict, Iterator, List, Optional, Set

from site_linkgraph.models import Link, Page


class LinkGraph:
    """Directed graph of pages (nodes) and links (edges)."""

    def __init__(self) -> None:
        self._pages: Dict[str, Page] = {}
        self._out: Dict[str, Dict[str, None]] = {}
        self._in: Dict[str, Dict[str, None]] = {}
        self._edge_order: List[Link] = []

    def __len__(self) -> int:
        return len(self._pages)

    def __contains__(self, url: object) -> bool:
        return url in self._pages

    def __iter__(self) -> Iterator[Page]:
        return iter(self._pages.values())

    # ---- Nodes --------------------------------------------------------------

    def add_page(self, url: str, depth: Optional[int] = None) -> Page:
        """Return the page for url, creating it on first discovery."""
        page = self._pages.get(url)
        if page is not None:
            return page
        if depth is not None and depth < 0:
            raise ValueError(f"depth must be non-negative, got {depth}")
        page = Page(url=url, depth=depth, order=len(self._pages))
        self._pages[url] = page
        self._out[url] = {}
        self._in[url] = {}
        return page

    def get(self, url: str) -> Optional[Page]:
        return self._pages.get(url)

    def page(self, url: str) -> Page:
        """Like get(), but a missing url is a KeyError."""
        return self._pages[url]

    def nodes(self) -> List[Page]:
        return list(self._pages.values())

    # ---- Edges --------------------------------------------------------------

    def add_edge(self, source: str, target: str) -> bool:
        """
        Record a link from source to target.

        Both endpoints must already be pages of the graph. Returns True if the
        edge is new, False if it was already present.
        """
        if source not in self._pages:
            raise KeyError(f"unknown source page: {source}")
        if target not in self._pages:
            raise KeyError(f"unknown target page: {target}")
        if target in self._out[source]:
            return False
        self._out[source][target] = None
        self._in[target][source] = None
        self._edge_order.append(Link(source=source, target=target))
        return True

    def has_edge(self, source: str, target: str) -> bool:
        return target in self._out.get(source, {})

    def edges(self) -> List[Link]:
        return list(self._edge_order)

    def edge_count(self) -> int:
        return len(self._edge_order)

    # ---- Queries ------------------------------------------------------------

    def in_degree(self, url: str) -> int:
        return len(self._in[url])

    def out_degree(self, url: str) -> int:
        return len(self._out[url])

    def successors(self, url: str) -> List[str]:
        return list(self._out[url])

    def predecessors(self, url: str) -> List[str]:
        return list(self._in[url])

    def reachable_from(self, url: str) -> Set[str]:
        """All pages reachable from url by following edges, url included."""
        if url not in self._pages:
            raise KeyError(url)
        seen = {url}
        todo = deque([url])
        while todo:
            current = todo.popleft()
            for nxt in self._out[current]:
                if nxt not in seen:
                    seen.add(nxt)
                    todo.append(nxt)
        return seen
