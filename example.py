# example.py
# A small example demonstrating how to use the site_linkgraph
# library to map a site's internal links and print them as a tree.

import asyncio
import logging

from site_linkgraph import crawl_site

# --- Configuration ---
# Enable logging to see the crawler's progress and decisions.
logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

# The site you want to audit. Keep the limits small for a first look.
TARGET_URL = "https://example.com/"


async def main():
    """
    Crawl the site, then print the link graph as a breadth-first tree.
    """
    print(f"[*] Starting link graph crawl for: {TARGET_URL}\n")

    report = await crawl_site(TARGET_URL, max_pages=50, max_depth=3, delay=0.5)

    print("\n--- CRAWL COMPLETE ---")
    s = report.summary
    print(f"{s.pages} pages, {s.links} links, {s.failed} failed, stop reason: {report.stop_reason}")

    if report.errors:
        print("\n--- Errors Encountered ---")
        for error in report.errors:
            print(f"- {error}")

    # Each page is printed under the first page that reached it.
    graph = report.graph
    print("\n--- Link Tree ---")
    print(report.root_url)
    seen = {report.root_url}

    def walk(url: str, prefix: str) -> None:
        children = [t for t in graph.successors(url) if t not in seen]
        seen.update(children)
        for i, child in enumerate(children):
            last = i == len(children) - 1
            page = graph.page(child)
            marker = "" if page.state == "expanded" else f"  ({page.state})"
            print(f"{prefix}{'└──' if last else '├──'} {child}{marker}")
            walk(child, prefix + ("    " if last else "│   "))

    walk(report.root_url, "")

    if report.broken:
        print("\n--- Broken Links ---")
        for link in report.broken:
            print(f"- {link.source} -> {link.target}")


if __name__ == "__main__":
    # The library is async, so we use asyncio.run() to start it.
    asyncio.run(main())
