# site_linkgraph/ui.py
# Presentation-only utilities for CLI output.
from __future__ import annotations

from typing import IO, Iterable

from site_linkgraph.models import Link, Page, SiteReport


def _writeln(text: str = "", *, file: IO[str]) -> None:
    file.write(text + "\n")


def render_audit_header(url: str, *, file: IO[str]) -> None:
    _writeln(f"Crawling internal links of: {url}...", file=file)


def render_summary(report: SiteReport, *, file: IO[str]) -> None:
    s = report.summary
    _writeln("\n--- Summary ---", file=file)
    _writeln(f"Pages known:      {s.pages}", file=file)
    _writeln(f"Links:            {s.links}", file=file)
    _writeln(f"Fetched OK:       {s.expanded}", file=file)
    _writeln(f"Failed:           {s.failed}", file=file)
    _writeln(f"Not crawled:      {s.unexplored}", file=file)
    if s.skipped:
        _writeln(f"Robots-skipped:   {s.skipped}", file=file)
    _writeln(f"Deepest page:     {s.max_depth}", file=file)
    if report.stop_reason != "completed":
        _writeln(f"Stopped early:    {report.stop_reason}", file=file)


def render_orphans_section(orphans: Iterable[Page], *, file: IO[str]) -> None:
    pages = list(orphans)
    if not pages:
        return
    _writeln("\n--- Orphan Pages ---", file=file)
    for page in pages:
        _writeln(f"- {page.url}", file=file)


def render_broken_section(broken: Iterable[Link], report: SiteReport, *, file: IO[str]) -> None:
    links = list(broken)
    if not links:
        return
    _writeln("\n--- Broken Links ---", file=file)
    by_target: dict[str, list[str]] = {}
    for link in links:
        by_target.setdefault(link.target, []).append(link.source)
    for target, sources in by_target.items():
        page = report.graph.page(target)
        code = page.status_code if page.status_code is not None else page.fetch_status
        _writeln(f"- {target}  [{code}]", file=file)
        for source in sources:
            _writeln(f"  └─ linked from {source}", file=file)


def render_errors_section(errors: Iterable[str], *, file: IO[str]) -> None:
    errs = list(errors)
    if not errs:
        return
    _writeln("\n--- Errors Encountered ---", file=file)
    for e in errs:
        _writeln(f"- {e}", file=file)
