from __future__ import annotations

import asyncio
import copy

import httpx
import respx

from site_linkgraph.api import crawl_site
from site_linkgraph.config import default_config

SITE = "https://site.test"


def _site(router: respx.MockRouter) -> None:
    router.get(f"{SITE}/").mock(
        return_value=httpx.Response(200, html='<main><a href="/a">a</a><a href="/gone">x</a></main>')
    )
    router.get(f"{SITE}/a").mock(return_value=httpx.Response(200, html="<main></main>"))
    router.route().mock(return_value=httpx.Response(404))


def test_crawl_site_reports_broken_links():
    config = default_config()
    config["respect_robots"] = False
    with respx.mock(assert_all_called=False) as router:
        _site(router)
        report = asyncio.run(crawl_site(SITE, config=config))

    assert report.root_url == f"{SITE}/"
    assert report.stop_reason == "completed"
    assert [(link.source, link.target) for link in report.broken] == [(f"{SITE}/", f"{SITE}/gone")]
    assert report.orphans == []
    assert report.summary.pages == 3


def test_crawl_site_leaves_the_given_config_untouched():
    config = default_config()
    config["respect_robots"] = False
    before = copy.deepcopy(config)

    with respx.mock(assert_all_called=False) as router:
        _site(router)
        for _ in range(2):
            asyncio.run(
                crawl_site(
                    SITE,
                    config=config,
                    max_pages=1,
                    max_depth=0,
                    exclude=["site.test/private/*"],
                    use_cache=False,
                )
            )

    assert config == before
    assert config["max_pages"] == 500
    assert config["max_depth"] is None
    assert config["exclude"] == []


def test_overrides_apply_to_the_crawl_itself():
    config = default_config()
    config["respect_robots"] = False
    with respx.mock(assert_all_called=False) as router:
        _site(router)
        report = asyncio.run(crawl_site(SITE, config=config, max_pages=1))

    # The root is fetched, its links are recorded but not followed.
    assert report.summary.expanded == 1
    assert report.summary.unexplored == 2
    assert report.broken == []
