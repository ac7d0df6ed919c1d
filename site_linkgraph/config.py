# site_linkgraph/config.py
"""
Centralized configuration management.

Handles loading defaults, merging in settings from pyproject.toml,
applying runtime overrides, and validating the result before a crawl.
"""
from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any, MutableMapping
from urllib.parse import urlsplit

from site_linkgraph.__about__ import __version__

try:
    import tomli
except ImportError:
    tomli = None  # type: ignore

log = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Invalid crawl configuration. Raised before any page is fetched."""


# Boilerplate regions removed before link extraction. Links in repeated site
# chrome would otherwise give every page the same huge in-degree.
DEFAULT_EXCLUDE_SELECTORS = [
    "nav",
    "header",
    "footer",
    "[role=navigation]",
    "[role=banner]",
    "[role=contentinfo]",
]

# Query parameters that never identify a different page.
DEFAULT_STRIP_QUERY_PARAMS = [
    "utm_*",
    "fbclid",
    "gclid",
    "mc_cid",
    "mc_eid",
]

SAME_SITE_POLICIES = ("host", "registrable-domain")

# This is the baseline configuration dictionary.
DEFAULT_CONFIG: dict[str, Any] = {
    "max_pages": 500,
    "max_depth": None,  # unlimited
    "timeout": 10.0,  # seconds, per request
    "delay": 0.0,  # seconds between requests
    "concurrency": 1,
    "max_duration": None,  # seconds, whole crawl; unlimited
    "max_redirects": 5,
    "max_content_bytes": 5 * 1_048_576,  # 5 MiB
    "user_agent": f"site_linkgraph/{__version__} (link graph crawler)",
    "respect_robots": True,
    "exclude_selectors": DEFAULT_EXCLUDE_SELECTORS,
    # fnmatch patterns on host and host+path, e.g. "example.com/tag/*"
    "exclude": [],
    "strip_query_params": DEFAULT_STRIP_QUERY_PARAMS,
    "skip_asset_urls": True,
    "same_site_policy": "host",
    "cache": {
        # Off by default: an audit must see broken links as they are now.
        "enabled": False,
        "directory": ".site_linkgraph_cache",
        "expire_seconds": 3600,
    },
}


def _deep_merge_dict(
    base: MutableMapping[str, Any], overrides: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Recursively merge dicts."""
    for key, value in overrides.items():
        if isinstance(value, MutableMapping) and isinstance(
            base.get(key), MutableMapping
        ):
            base[key] = _deep_merge_dict(base[key], value)
        else:
            base[key] = value
    return base


def default_config() -> dict[str, Any]:
    """A fresh copy of DEFAULT_CONFIG that callers may mutate."""
    return copy.deepcopy(DEFAULT_CONFIG)


def load_config(pyproject_path: Path | None = None) -> dict[str, Any]:
    """
    Loads configuration from defaults and merges settings from pyproject.toml.

    1. Starts with DEFAULT_CONFIG.
    2. If `tomli` is installed, it looks for `pyproject.toml`.
    3. If `pyproject.toml` is found, it merges settings from
       `[tool.site_linkgraph]` over the defaults.
    """
    config = default_config()

    if tomli is None:
        log.debug("tomli not installed. Skipping pyproject.toml configuration.")
        return config

    if pyproject_path is None:
        pyproject_path = Path.cwd() / "pyproject.toml"

    if not pyproject_path.exists():
        log.debug(
            "No pyproject.toml found at %s. Using default config.", pyproject_path
        )
        return config

    try:
        with pyproject_path.open("rb") as f:
            toml_data = tomli.load(f)
    except (OSError, tomli.TOMLDecodeError) as e:
        log.warning(
            "Failed to load or parse %s: %s. Using default config.",
            pyproject_path,
            e,
        )
        return config

    project_config = toml_data.get("tool", {}).get("site_linkgraph", {})
    if project_config:
        log.info("Loading config from %s", pyproject_path)
        config = _deep_merge_dict(config, project_config)  # type: ignore
    else:
        log.debug("No [tool.site_linkgraph] section in %s.", pyproject_path)

    return config


def apply_overrides(config: dict[str, Any], **overrides: Any) -> dict[str, Any]:
    """Apply keyword overrides in place; None means "keep the configured value"."""
    for key, value in overrides.items():
        if value is None:
            continue
        if key not in DEFAULT_CONFIG:
            raise ConfigError(f"Unknown configuration key: {key}")
        config[key] = value
        log.info("Applied override - %s set to: %s", key, value)
    return config


def validate_root_url(url: str | None) -> str:
    """Fail fast on a root URL that cannot start a crawl."""
    if not url or not url.strip():
        raise ConfigError("A root URL is required.")
    try:
        parts = urlsplit(url.strip())
        parts.port  # a bad port only surfaces here
    except ValueError as e:
        raise ConfigError(f"Unparseable root URL {url!r}: {e}") from e
    if parts.scheme.lower() not in ("http", "https"):
        raise ConfigError(f"Root URL must be http or https, got {url!r}")
    if not parts.hostname:
        raise ConfigError(f"Root URL has no host: {url!r}")
    return url.strip()


def _require_number(config: dict[str, Any], key: str, *, minimum: float, strict: bool) -> None:
    value = config.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{key} must be a number, got {value!r}")
    if (strict and value <= minimum) or (not strict and value < minimum):
        bound = ">" if strict else ">="
        raise ConfigError(f"{key} must be {bound} {minimum}, got {value!r}")


def validate_config(config: dict[str, Any]) -> dict[str, Any]:
    """Check limits and policies. Raises ConfigError on the first problem."""
    _require_number(config, "max_pages", minimum=0, strict=True)
    _require_number(config, "timeout", minimum=0, strict=True)
    _require_number(config, "delay", minimum=0, strict=False)
    _require_number(config, "concurrency", minimum=0, strict=True)
    _require_number(config, "max_redirects", minimum=0, strict=False)
    _require_number(config, "max_content_bytes", minimum=0, strict=True)
    if config.get("max_depth") is not None:
        _require_number(config, "max_depth", minimum=0, strict=False)
    if config.get("max_duration") is not None:
        _require_number(config, "max_duration", minimum=0, strict=True)
    if config.get("same_site_policy") not in SAME_SITE_POLICIES:
        raise ConfigError(
            f"same_site_policy must be one of {SAME_SITE_POLICIES}, "
            f"got {config.get('same_site_policy')!r}"
        )
    for key in ("exclude_selectors", "exclude", "strip_query_params"):
        value = config.get(key)
        if not isinstance(value, (list, tuple)):
            raise ConfigError(f"{key} must be a list, got {value!r}")
    return config
