# site_linkgraph/cache.py
"""
On-disk cache of fetched pages, keyed by normalized URL.

Only successful HTML responses are stored, so a failed page is always
fetched again and a broken link is reported as it is now. The cache is off
unless the configuration (or --use-cache) turns it on.
"""
from __future__ import annotations

import dataclasses
import logging
import os
from typing import Any, Dict, Optional

import diskcache
from platformdirs import user_cache_dir as _user_cache_dir

log = logging.getLogger(__name__)

OS_DEFAULT_DIRECTORY = "os-default"


@dataclasses.dataclass
class CacheConfig:
    enabled: bool = False
    # A path, or OS_DEFAULT_DIRECTORY for the per-user cache location.
    directory: str = ".site_linkgraph_cache"
    expire_seconds: int = 3600

    @classmethod
    def from_config(cls, raw: Dict[str, Any]) -> "CacheConfig":
        defaults = cls()
        return cls(
            enabled=bool(raw.get("enabled", defaults.enabled)),
            directory=str(raw.get("directory", defaults.directory)),
            expire_seconds=int(raw.get("expire_seconds", defaults.expire_seconds)),
        )


class FileCache:
    """
    Page records stored as dicts with final_url, status, content_type and text.
    A disabled FileCache answers every lookup with a miss.
    """

    def __init__(self, cfg: CacheConfig, app_name: str = "site_linkgraph"):
        self.cfg = cfg
        self.app_name = app_name
        self._cache: Optional[diskcache.Cache] = None
        if cfg.enabled:
            self.create_cache_object()

    def create_cache_object(self) -> None:
        if self._cache is not None:
            return
        directory = self.cfg.directory
        if directory == OS_DEFAULT_DIRECTORY:
            directory = _user_cache_dir(self.app_name, appauthor=False)
        log.info("Page cache at %s", directory)
        self._cache = diskcache.Cache(directory)

    @property
    def enabled(self) -> bool:
        return self._cache is not None

    @property
    def directory(self) -> Optional[str]:
        return None if self._cache is None else str(self._cache.directory)

    def close(self) -> None:
        if self._cache is not None:
            self._cache.close()

    def stats(self) -> Dict[str, Any]:
        """Item count, estimated bytes on disk, and absolute directory."""
        if self._cache is None:
            return {"items": 0, "bytes": 0, "directory": ""}
        return {
            "items": len(self._cache),
            "bytes": self._cache.volume(),
            "directory": os.path.abspath(self._cache.directory),
        }

    def clear_all(self) -> None:
        if self._cache is None:
            log.warning("Cache disabled")
            return
        removed = self._cache.clear()
        log.info("Removed %d cached page(s)", removed)

    def get(self, url: str) -> Optional[Dict[str, Any]]:
        if self._cache is None:
            return None
        return self._cache.get(url)

    def set_page(
        self,
        url: str,
        *,
        final_url: str,
        status: int,
        text: str,
        content_type: str,
    ) -> bool:
        """Store a fetched page. Returns False when it is not cacheable."""
        if self._cache is None:
            return False
        content_type = (content_type or "").lower()
        if status != 200 or "text/html" not in content_type:
            log.debug("Not caching %s (status %s, %s)", url, status, content_type)
            return False
        record = {
            "final_url": final_url,
            "status": status,
            "content_type": content_type,
            "text": text,
        }
        self._cache.set(url, record, expire=self.cfg.expire_seconds)
        return True
