# Defines the data structures shared by the fetcher, crawler, graph and analyzer.

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Literal, Optional

if TYPE_CHECKING:
    from site_linkgraph.graph import LinkGraph

# Lifecycle of a page inside one crawl session.
#   discovered -> fetching -> expanded | failed
# "skipped" is terminal for URLs the politeness checker disallows.
PageState = Literal["discovered", "fetching", "expanded", "failed", "skipped"]

# Outcome classes of a single fetch.
FetchStatus = Literal[
    "success",
    "redirect",
    "client-error",
    "server-error",
    "network-error",
    "timeout",
]

StopReason = Literal["completed", "cancelled", "deadline"]

FAILED_FETCH_STATUSES = frozenset(
    {"redirect", "client-error", "server-error", "network-error", "timeout"}
)


@dataclass
class FetchResult:
    """The classified outcome of fetching one URL. Failures carry no body."""

    url: str
    status: FetchStatus
    status_code: Optional[int] = None
    body: Optional[str] = None
    final_url: Optional[str] = None
    content_type: str = ""
    error: str = ""
    elapsed: float = 0.0
    from_cache: bool = False

    @property
    def ok(self) -> bool:
        return self.status == "success"

    @property
    def redirected(self) -> bool:
        return self.final_url is not None and self.final_url != self.url


@dataclass
class Page:
    """A node of the link graph, identified by its normalized URL."""

    url: str
    depth: Optional[int]
    order: int
    state: PageState = "discovered"
    fetch_status: Optional[FetchStatus] = None
    status_code: Optional[int] = None
    final_url: Optional[str] = None
    error: str = ""

    @property
    def fetched(self) -> bool:
        return self.state in ("expanded", "failed")


@dataclass(frozen=True)
class Link:
    """A directed edge between two pages."""

    source: str
    target: str


@dataclass
class CrawlResult:
    """Everything one crawl session produced."""

    root_url: str
    graph: "LinkGraph"
    stop_reason: StopReason = "completed"
    pages_fetched: int = 0
    errors: List[str] = field(default_factory=list)
    started_at: Optional[str] = None  # ISO 8601 format
    finished_at: Optional[str] = None  # ISO 8601 format


@dataclass
class CrawlSummary:
    """Counts derived from a finished graph."""

    pages: int
    links: int
    expanded: int
    failed: int
    unexplored: int
    skipped: int
    orphans: int
    broken_links: int
    max_depth: int


@dataclass
class SiteReport:
    """The final result of a crawl_site operation."""

    root_url: str
    graph: "LinkGraph"
    summary: CrawlSummary
    orphans: List[Page] = field(default_factory=list)
    broken: List[Link] = field(default_factory=list)
    stop_reason: StopReason = "completed"
    errors: List[str] = field(default_factory=list)
