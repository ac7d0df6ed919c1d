# site_linkgraph/robots.py
"""
Politeness collaborators consulted by the crawler before each fetch.

The crawler only depends on the PolitenessChecker protocol. RobotsRules is
the robots.txt-backed implementation: it reads the site's /robots.txt once
(same-site crawls touch a single host) and answers can_fetch() from memory.
A missing or unreadable robots.txt allows everything.
"""
from __future__ import annotations

import logging
from typing import Protocol
from urllib.parse import urlsplit, urlunsplit
from urllib.robotparser import RobotFileParser

import httpx

log = logging.getLogger(__name__)


class PolitenessChecker(Protocol):
    def can_fetch(self, url: str) -> bool:
        ...


class AllowAll:
    """Checker used when robots.txt compliance is turned off."""

    def can_fetch(self, url: str) -> bool:
        return True


def robots_url_for(url: str) -> str:
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, "/robots.txt", "", ""))


class RobotsRules:
    """robots.txt rules for one site and one user agent."""

    def __init__(self, user_agent: str, text: str | None = None) -> None:
        self.user_agent = user_agent
        self._parser: RobotFileParser | None = None
        if text is not None:
            self._parser = RobotFileParser()
            self._parser.parse(text.splitlines())

    @classmethod
    async def load(
        cls, client: httpx.AsyncClient, site_url: str, user_agent: str
    ) -> "RobotsRules":
        """Fetch and parse the robots.txt of site_url's origin."""
        url = robots_url_for(site_url)
        try:
            resp = await client.get(url)
        except httpx.HTTPError as e:
            log.warning("Could not read %s (%s); allowing all URLs.", url, e)
            return cls(user_agent)

        if resp.status_code in (401, 403):
            # Same convention as urllib.robotparser: an access-controlled
            # robots.txt disallows the whole site.
            log.warning("%s returned %d; disallowing all URLs.", url, resp.status_code)
            return cls(user_agent, "User-agent: *\nDisallow: /")
        if resp.status_code >= 400:
            log.info("No robots.txt at %s (HTTP %d).", url, resp.status_code)
            return cls(user_agent)

        log.info("Loaded robots.txt from %s", url)
        return cls(user_agent, resp.text)

    def can_fetch(self, url: str) -> bool:
        if self._parser is None:
            return True
        return self._parser.can_fetch(self.user_agent, url)

    def crawl_delay(self) -> float | None:
        """The Crawl-delay declared for our user agent, if any."""
        if self._parser is None:
            return None
        delay = self._parser.crawl_delay(self.user_agent)
        return float(delay) if delay is not None else None
