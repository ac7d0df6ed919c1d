# site_linkgraph/link_logic.py
from __future__ import annotations

import fnmatch
import logging
import os
from dataclasses import dataclass, field
from typing import Iterable, List, Literal, Optional, Sequence
from urllib.parse import unquote_plus, urljoin, urlsplit, urlunsplit

import tldextract
from bs4 import BeautifulSoup, Tag

from site_linkgraph.config import (
    DEFAULT_EXCLUDE_SELECTORS,
    DEFAULT_STRIP_QUERY_PARAMS,
)

log = logging.getLogger(__name__)

SameSitePolicy = Literal["host", "registrable-domain"]

ALLOWED_SCHEMES = {"http", "https"}

DEFAULT_PORTS = {"http": 80, "https": 443}

# Elements whose href is a navigable hyperlink.
HYPERLINK_TAGS = ["a", "area"]

EXTENSION_DENYLIST = {
    # images
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".webp",
    ".bmp",
    ".ico",
    ".svg",
    ".avif",
    # video/audio
    ".mp4",
    ".m4v",
    ".mov",
    ".webm",
    ".ogg",
    ".ogv",
    ".mp3",
    ".wav",
    ".flac",
    ".aac",
    # docs/binaries/archives
    ".pdf",
    ".zip",
    ".tar",
    ".gz",
    ".tgz",
    ".bz2",
    ".xz",
    ".7z",
    ".rar",
    ".exe",
    ".msi",
    ".dmg",
    ".iso",
    ".woff",
    ".woff2",
    ".ttf",
    ".otf",
    ".doc",
    ".docx",
    ".xls",
    ".xlsx",
    ".ppt",
    ".pptx",
    # styles/scripts
    ".css",
    ".js",
    ".mjs",
    ".map",
}


# ---------- URL helpers ----------


def _path_ext(u: str) -> str:
    try:
        p = urlsplit(u)
    except ValueError:
        return ""
    _, ext = os.path.splitext(p.path.lower())
    return ext


def _scheme(u: str) -> str:
    try:
        return urlsplit(u).scheme.lower()
    except ValueError:
        return ""


def is_fetchable_url(u: str) -> bool:
    """Return True iff URL uses a scheme we can actually fetch (http/https)."""
    return _scheme(u) in ALLOWED_SCHEMES


def is_probably_html_url(u: str) -> bool:
    """
    Heuristic: http/https AND path extension NOT in a denylist.
    Allows extensionless paths and 'clean URLs'. Blocks obvious assets (png, ico, etc.).
    """
    if not is_fetchable_url(u):
        return False
    ext = _path_ext(u)
    if ext and ext in EXTENSION_DENYLIST:
        return False
    return True


def _filter_query(query: str, strip_params: Sequence[str]) -> str:
    """Drop tracking parameters; the remaining pairs stay exactly as written."""
    if not query or not strip_params:
        return query
    patterns = [pat.lower() for pat in strip_params]
    segments = query.split("&")
    kept = [
        seg
        for seg in segments
        if not any(
            fnmatch.fnmatchcase(unquote_plus(seg.split("=", 1)[0]).lower(), pat)
            for pat in patterns
        )
    ]
    if len(kept) == len(segments):
        return query
    return "&".join(kept)


def _remove_dot_segments(path: str) -> str:
    # "." and ".." segments of an absolute path, as in RFC 3986 section 5.2.4
    if "." not in path:
        return path
    out: List[str] = []
    for seg in path.split("/"):
        if seg == "..":
            if len(out) > 1:
                out.pop()
        elif seg != ".":
            out.append(seg)
    if path.endswith(("/.", "/..")):
        out.append("")
    return "/".join(out) or "/"


def normalize_url(
    raw_url: str,
    base_url: Optional[str] = None,
    *,
    strip_query_params: Sequence[str] = tuple(DEFAULT_STRIP_QUERY_PARAMS),
) -> Optional[str]:
    """
    Canonicalize a URL so that equivalent spellings collapse to one page.

    - Resolve raw_url against base_url (standard relative resolution) and
      remove dot segments, also from an already absolute raw_url.
    - Lowercase scheme and host, drop default ports and userinfo.
    - Drop the fragment.
    - Trim trailing "/" from the path, keeping the bare root "/".
    - Remove tracking query parameters matching strip_query_params.

    Returns None when the result is not a followable http(s) URL.
    """
    if raw_url is None:
        return None
    raw_url = raw_url.strip()
    if not raw_url:
        return None

    try:
        joined = urljoin(base_url, raw_url) if base_url else raw_url
        parts = urlsplit(joined)
        port = parts.port
    except ValueError:
        log.debug("Malformed URL dropped: %r (base %r)", raw_url, base_url)
        return None

    scheme = parts.scheme.lower()
    if scheme not in ALLOWED_SCHEMES:
        return None
    host = (parts.hostname or "").lower()
    if not host:
        return None
    if ":" in host:
        host = f"[{host}]"  # IPv6 literal
    netloc = host if port is None or port == DEFAULT_PORTS[scheme] else f"{host}:{port}"

    path = _remove_dot_segments(parts.path).rstrip("/") or "/"
    query = _filter_query(parts.query, strip_query_params)

    return urlunsplit((scheme, netloc, path, query, ""))


def _hostname(u: str) -> str:
    try:
        return (urlsplit(u).hostname or "").lower()
    except ValueError:
        return ""


def _registrable_domain_or(host: str) -> str:
    """
    Returns eTLD+1 when tldextract recognizes the suffix, otherwise the host
    minus a leading 'www.'.
    """
    ext = tldextract.extract(host)
    if ext.domain and ext.suffix:
        return f"{ext.domain}.{ext.suffix}".lower()
    return host[4:] if host.startswith("www.") else host


def is_same_site(url: str, root_url: str, policy: SameSitePolicy = "host") -> bool:
    """
    "host": hostnames equal (case-insensitive).
    "registrable-domain": same eTLD+1, so sub.example.com matches example.com.
    """
    host = _hostname(url)
    root_host = _hostname(root_url)
    if not host or not root_host:
        return False
    if host == root_host:
        return True
    if policy == "registrable-domain":
        return _registrable_domain_or(host) == _registrable_domain_or(root_host)
    return False


def _host_and_hostpath(u: str) -> tuple[str, str]:
    """
    Returns (host, host+path) both lowercased:
      "https://example.com/tag/x?page=2" -> ("example.com", "example.com/tag/x")
    Query/fragment are ignored for matching.
    """
    try:
        p = urlsplit(u)
    except ValueError:
        return "", ""
    host = (p.hostname or "").lower()
    path = (p.path or "").strip("/").lower()
    hostpath = f"{host}/{path}" if path else host
    return host, hostpath


def is_excluded(u: str, patterns: Iterable[str]) -> bool:
    """
    Match a URL against fnmatch patterns (supports '*' and '?').

    Patterns are compared against the host and host+path, each also with
    '/' and '/*' appended, so 'example.com/tag/*' matches both
    'https://example.com/tag' and 'https://example.com/tag/python'.
    """
    patterns = list(patterns or [])
    if not patterns:
        return False

    host, hostpath = _host_and_hostpath(u)
    if not host:
        return False

    candidates = {
        host,
        f"{host}/",
        f"{host}/*",
        hostpath,
        f"{hostpath}/",
        f"{hostpath}/*",
    }

    for pat in patterns:
        p = pat.lower().strip()
        if any(fnmatch.fnmatchcase(c, p) for c in candidates):
            return True
    return False


# ---------- Link extraction ----------


@dataclass(frozen=True)
class ExtractConfig:
    """Filtering policy for extract_links."""

    exclude_selectors: Sequence[str] = tuple(DEFAULT_EXCLUDE_SELECTORS)
    exclude_patterns: Sequence[str] = field(default_factory=tuple)
    strip_query_params: Sequence[str] = tuple(DEFAULT_STRIP_QUERY_PARAMS)
    skip_asset_urls: bool = True
    same_site_policy: SameSitePolicy = "host"

    @classmethod
    def from_config(cls, config: dict) -> "ExtractConfig":
        return cls(
            exclude_selectors=tuple(config.get("exclude_selectors", DEFAULT_EXCLUDE_SELECTORS)),
            exclude_patterns=tuple(config.get("exclude", ())),
            strip_query_params=tuple(
                config.get("strip_query_params", DEFAULT_STRIP_QUERY_PARAMS)
            ),
            skip_asset_urls=bool(config.get("skip_asset_urls", True)),
            same_site_policy=config.get("same_site_policy", "host"),
        )


def strip_excluded_regions(soup: BeautifulSoup, selectors: Iterable[str]) -> int:
    """Remove boilerplate regions in place. Returns how many were removed."""
    removed = 0
    for selector in selectors:
        for el in soup.select(selector):
            # a parent matched by an earlier selector may already be gone
            if el.decomposed:
                continue
            el.decompose()
            removed += 1
    return removed


def extract_href_elements(soup: BeautifulSoup) -> List[Tag]:
    """Return hyperlink elements (<a>, <area>) carrying an href, in document order."""
    return list(soup.find_all(HYPERLINK_TAGS, href=True))


def _document_base(soup: BeautifulSoup, page_url: str) -> str:
    base = soup.find("base", href=True)
    if base is None:
        return page_url
    return urljoin(page_url, base["href"])  # type: ignore[arg-type]


def extract_links(
    body: str,
    base_url: str,
    cfg: ExtractConfig | None = None,
    site_url: Optional[str] = None,
) -> List[str]:
    """
    Return the deduplicated, same-site, normalized link targets of a page.

    Relative links resolve against base_url; "same site" is judged against
    site_url, which defaults to base_url.

    Order is document order of first occurrence, so crawls are reproducible.
    """
    cfg = cfg or ExtractConfig()
    site_url = site_url or base_url
    soup = BeautifulSoup(body, "html.parser")
    removed = strip_excluded_regions(soup, cfg.exclude_selectors)
    if removed:
        log.debug("Removed %d boilerplate region(s) from %s", removed, base_url)

    resolve_against = _document_base(soup, base_url)
    out: List[str] = []
    seen: set[str] = set()

    for el in extract_href_elements(soup):
        href = el.get("href")
        if not href:
            continue
        norm = normalize_url(
            href,  # type: ignore[arg-type]
            resolve_against,
            strip_query_params=cfg.strip_query_params,
        )
        if norm is None:
            continue
        if not is_same_site(norm, site_url, cfg.same_site_policy):
            log.debug("Skipping cross-site link: %s", norm)
            continue
        if cfg.skip_asset_urls and not is_probably_html_url(norm):
            continue
        if is_excluded(norm, cfg.exclude_patterns):
            log.debug("Skipping excluded URL: %s", norm)
            continue
        if norm in seen:
            continue
        seen.add(norm)
        out.append(norm)

    return out
