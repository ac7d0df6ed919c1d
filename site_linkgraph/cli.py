# site_linkgraph/cli.py
# Defines the command-line interface using argparse.

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys
from pathlib import Path
from typing import IO, Any, Dict, Sequence

from site_linkgraph import __version__
from site_linkgraph.api import crawl_site
from site_linkgraph.cache import CacheConfig, FileCache
from site_linkgraph.config import ConfigError
from site_linkgraph.export import to_edge_records, to_force_graph, write_json
from site_linkgraph.models import SiteReport
from site_linkgraph.ui import (
    render_audit_header,
    render_broken_section,
    render_errors_section,
    render_orphans_section,
    render_summary,
)

log = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    level = logging.INFO if verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _load_seed_urls(path: str | None) -> list[str]:
    if not path:
        return []
    p = Path(path)
    if not p.exists():
        log.error("The file specified could not be found: %s", path)
        raise FileNotFoundError(path)
    with p.open("r", encoding="utf-8") as f:
        lines = [line.strip() for line in f if line.strip() and not line.lstrip().startswith("#")]
    log.info("Loaded %d seed URLs from %s", len(lines), path)
    return lines


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    """Add arguments common to both 'audit' and 'crawl' commands."""
    parser.add_argument("url", help="The root URL to start crawling from.")
    parser.add_argument(
        "--seeds-file",
        metavar="FILEPATH",
        help="A file of extra same-site entry URLs, one per line (e.g. from a sitemap).",
    )

    limits = parser.add_argument_group("limit arguments")
    limits.add_argument("--max-pages", type=int, help="Maximum number of pages to crawl.")
    limits.add_argument("--max-depth", type=int, help="Maximum link depth from the root.")
    limits.add_argument("--timeout", type=float, help="Per-request timeout in seconds.")
    limits.add_argument("--delay", type=float, help="Delay between requests in seconds.")
    limits.add_argument("--concurrency", type=int, help="Number of concurrent fetches.")
    limits.add_argument(
        "--max-duration", type=float, help="Stop the crawl after this many seconds."
    )

    policy = parser.add_argument_group("policy arguments")
    policy.add_argument(
        "--ignore-robots",
        action="store_true",
        help="Do not consult robots.txt before fetching.",
    )
    policy.add_argument(
        "--exclude-selector",
        dest="exclude_selectors",
        action="append",
        metavar="CSS",
        help="CSS selector of a boilerplate region to ignore (repeatable; replaces the defaults).",
    )
    policy.add_argument(
        "--exclude",
        action="append",
        metavar="PATTERN",
        help="fnmatch pattern of URLs never to follow, e.g. 'example.com/tag/*' (repeatable).",
    )
    policy.add_argument(
        "--use-cache",
        action="store_true",
        help="Reuse successful pages from the on-disk page cache (see the cache command).",
    )


def _human_bytes(n: int) -> str:
    # Compact human-readable bytes
    units = ["B", "KB", "MB", "GB", "TB"]
    i = 0
    v = float(n)
    while v >= 1024 and i < len(units) - 1:
        v /= 1024.0
        i += 1
    s = f"{v:.2f}".rstrip("0").rstrip(".")
    return f"{s} {units[i]}"


def _init_file_cache(cache_dir: str | None, os_default: bool) -> FileCache:
    cfg = CacheConfig(enabled=True)
    if os_default:
        cfg.directory = "os-default"
    if cache_dir:
        cfg.directory = cache_dir
    return FileCache(cfg)


def _crawl_kwargs(args: argparse.Namespace, stop_event: asyncio.Event) -> Dict[str, Any]:
    return {
        "root_url": args.url,
        "seed_urls": _load_seed_urls(args.seeds_file),
        "max_pages": args.max_pages,
        "max_depth": args.max_depth,
        "timeout": args.timeout,
        "delay": args.delay,
        "concurrency": args.concurrency,
        "max_duration": args.max_duration,
        "respect_robots": False if args.ignore_robots else None,
        "exclude_selectors": args.exclude_selectors,
        "exclude": args.exclude,
        "use_cache": True if args.use_cache else None,
        "stop_event": stop_event,
    }


async def _run_crawl(kwargs: Dict[str, Any]) -> SiteReport:
    """Run crawl_site with Ctrl+C mapped to a clean stop where the platform allows."""
    stop_event: asyncio.Event = kwargs["stop_event"]
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, stop_event.set)
        installed = True
    except (NotImplementedError, RuntimeError, ValueError):
        installed = False
    try:
        return await crawl_site(**kwargs)
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


def _cache_command(args: argparse.Namespace, stdout: IO[str]) -> int:
    fc = _init_file_cache(args.cache_dir, args.cache_os_default)
    try:
        if args.cache_cmd == "clear":
            fc.clear_all()
            d = fc.directory or "(disabled)"
            print(f"Cache cleared at: {d}", file=stdout)
            return 0

        if args.cache_cmd == "stats":
            st = fc.stats()
            bytes_on_disk = int(st.get("bytes", 0))
            out = {
                "directory": st.get("directory", ""),
                "items": int(st.get("items", 0)),
                "bytes": bytes_on_disk,
                "human_bytes": _human_bytes(bytes_on_disk),
            }
            print(json.dumps(out, indent=2), file=stdout)
            return 0

        # inspect
        data = fc.get(args.url)
        if data is None:
            print("Cache miss", file=stdout)
            return 2
        summary = dict(data)
        summary["text"] = f"<{len(data.get('text', ''))} characters>"
        print(json.dumps(summary, indent=2), file=stdout)
        return 0
    finally:
        fc.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Map a website's internal links, find orphan pages and broken links.",
        prog="site_linkgraph",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging output to stderr.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- audit ---
    audit_parser = subparsers.add_parser(
        "audit", help="Crawl a site and print orphan pages and broken links."
    )
    _add_common_args(audit_parser)

    # --- crawl ---
    crawl_parser = subparsers.add_parser(
        "crawl", help="Crawl a site and write the link graph as JSON."
    )
    _add_common_args(crawl_parser)
    crawl_parser.add_argument(
        "--json",
        dest="json_output",
        metavar="FILEPATH",
        help="Path to write the JSON output file.",
        required=True,
    )
    crawl_parser.add_argument(
        "--format",
        choices=["edges", "force-graph"],
        default="edges",
        help="edges: [{source, target}]; force-graph: {nodes, links}. (Default: edges)",
    )
    crawl_parser.add_argument(
        "--with-metadata",
        action="store_true",
        help="Add depth and state fields to each edge record.",
    )

    # --- cache ---
    cache_parser = subparsers.add_parser(
        "cache", help="Manage the on-disk page cache."
    )
    cache_parser.add_argument(
        "--dir",
        dest="cache_dir",
        metavar="PATH",
        default=None,
        help="Cache directory to operate on (defaults to library default).",
    )
    cache_parser.add_argument(
        "--os-default",
        dest="cache_os_default",
        action="store_true",
        help="Use the OS-specific default cache directory.",
    )
    cache_sub = cache_parser.add_subparsers(dest="cache_cmd", required=True)
    cache_sub.add_parser("clear", help="Wipe the entire cache directory.")
    cache_sub.add_parser("stats", help="Show total items and size on disk.")
    cache_inspect = cache_sub.add_parser(
        "inspect", help="Show the cached record for a specific URL."
    )
    cache_inspect.add_argument("url", help="The exact URL key to inspect in cache.")

    return parser


async def async_main(
    argv: Sequence[str] | None = None, stdout: IO[str] | None = None
) -> int:
    """Async entry point for the command-line interface."""
    stdout = stdout or sys.stdout

    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)

    if args.command == "cache":
        return _cache_command(args, stdout)

    try:
        kwargs = _crawl_kwargs(args, asyncio.Event())
    except FileNotFoundError:
        return 1

    try:
        if args.command == "audit":
            render_audit_header(args.url, file=stdout)
        report = await _run_crawl(kwargs)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    if args.command == "audit":
        render_summary(report, file=stdout)
        render_orphans_section(report.orphans, file=stdout)
        render_broken_section(report.broken, report, file=stdout)
        render_errors_section(report.errors, file=stdout)
        # Non-zero when broken links were found, for CI usage.
        return 1 if report.broken else 0

    # args.command == "crawl"
    if args.format == "force-graph":
        data: Any = to_force_graph(report.graph)
    else:
        data = to_edge_records(report.graph, include_metadata=args.with_metadata)
    write_json(data, args.json_output)
    print(
        f"Link graph with {report.summary.pages} pages and {report.summary.links} links "
        f"written to {args.json_output}",
        file=stdout,
    )
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Synchronous wrapper for the CLI entry point."""
    return asyncio.run(async_main(argv))


if __name__ == "__main__":
    sys.exit(main())
