# Entrypoint for the site_linkgraph package.
# This file makes the public API available to programmers.

from __future__ import annotations

from site_linkgraph.__about__ import __version__
from site_linkgraph.analyzer import find_broken, find_orphans
from site_linkgraph.api import crawl_site
from site_linkgraph.config import ConfigError
from site_linkgraph.crawler import Crawler
from site_linkgraph.export import from_edge_records, to_edge_records, to_force_graph
from site_linkgraph.graph import LinkGraph
from site_linkgraph.link_logic import extract_links, normalize_url
from site_linkgraph.models import CrawlResult, FetchResult, Link, Page, SiteReport

# The __all__ variable defines the public API of the package.
# When a user writes `from site_linkgraph import *`, only these names will be imported.
__all__ = [
    "crawl_site",
    "Crawler",
    "ConfigError",
    "CrawlResult",
    "FetchResult",
    "LinkGraph",
    "Link",
    "Page",
    "SiteReport",
    "extract_links",
    "find_broken",
    "find_orphans",
    "from_edge_records",
    "normalize_url",
    "to_edge_records",
    "to_force_graph",
    "__version__",
]
