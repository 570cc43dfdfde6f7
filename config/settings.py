"""Centralised configuration settings for the listing scraper.

All environment variable reads are consolidated here into typed, frozen
dataclass instances. Every other module should import the module-level
singletons (``browser_config``, ``retry_config``, ``politeness_config``,
``run_config``) from this module instead of calling ``os.getenv()``
directly.

Per-site run defaults (page range, record cap) live in ``config/sites.yaml``
and are merged into a :class:`SiteRunConfig` by :func:`build_site_run_config`.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
from dotenv import load_dotenv

__all__ = [
    "browser_config",
    "retry_config",
    "politeness_config",
    "run_config",
    "get_settings",
    "load_site_defaults",
    "build_site_run_config",
    "BrowserConfig",
    "RetryConfig",
    "PolitenessConfig",
    "RunConfig",
    "SiteRunConfig",
    "SITES_PATH",
    "LOG_FORMAT",
    "LOG_DATEFMT",
]

# .env in the working directory; values already in the environment win.
load_dotenv(override=False)

BASE_DIR = Path(__file__).resolve().parent.parent
SITES_PATH = BASE_DIR / "config" / "sites.yaml"

# Shared with main.py, which configures logging before importing this module.
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


def _env_range(name: str, default: str) -> Tuple[float, float]:
    """Parse a ``"low,high"`` seconds range; a single value means a fixed delay."""
    raw = os.getenv(name, default)
    parts = [p.strip() for p in raw.split(",") if p.strip()]
    low = float(parts[0])
    high = float(parts[1]) if len(parts) > 1 else low
    if high < low:
        low, high = high, low
    return low, high


@dataclass(frozen=True)
class BrowserConfig:
    """Persistent browser session configuration.

    Attributes:
        profile_dir: On-disk user-data directory reused across runs so that
            cookies and login state survive restarts.
        channel: Browser distribution to launch (``"chrome"`` uses the
            locally installed Chrome rather than bundled Chromium).
        headless: Run without a visible window. Defaults to ``False`` so an
            operator can log in once and reuse the session.
        viewport_width: Fixed viewport width in pixels.
        viewport_height: Fixed viewport height in pixels.
        navigation_timeout_ms: Per-attempt ``page.goto`` timeout.
        launch_args: Extra Chromium flags; suppress automation signals.
    """

    profile_dir: str = field(
        default_factory=lambda: os.getenv(
            "SCRAPER_PROFILE_DIR", ".playwright-chrome-data"
        )
    )
    channel: Optional[str] = field(
        default_factory=lambda: os.getenv("SCRAPER_BROWSER_CHANNEL", "chrome") or None
    )
    headless: bool = field(
        default_factory=lambda: _env_bool("SCRAPER_HEADLESS", "false")
    )
    viewport_width: int = field(
        default_factory=lambda: int(os.getenv("SCRAPER_VIEWPORT_WIDTH", "1920"))
    )
    viewport_height: int = field(
        default_factory=lambda: int(os.getenv("SCRAPER_VIEWPORT_HEIGHT", "1080"))
    )
    navigation_timeout_ms: int = field(
        default_factory=lambda: int(os.getenv("SCRAPER_NAV_TIMEOUT_MS", "30000"))
    )
    launch_args: Tuple[str, ...] = (
        "--disable-blink-features=AutomationControlled",
        "--disable-dev-shm-usage",
    )


@dataclass(frozen=True)
class RetryConfig:
    """Retry budgets and backoff delays for session and navigation recovery.

    Attributes:
        navigation_max_retries: Extra ``goto`` attempts after the first one.
        page_acquire_max_retries: Attempts to obtain a usable tab before the
            supervisor gives up on the current call.
        recreate_delay: Seconds to wait after closing a dead session before
            launching a new one.
        acquire_retry_delay: Seconds between page-acquisition attempts.
        navigation_retry_delay: Seconds between navigation attempts.
    """

    navigation_max_retries: int = field(
        default_factory=lambda: int(os.getenv("SCRAPER_NAV_MAX_RETRIES", "2"))
    )
    page_acquire_max_retries: int = field(
        default_factory=lambda: int(os.getenv("SCRAPER_PAGE_MAX_RETRIES", "3"))
    )
    recreate_delay: float = field(
        default_factory=lambda: float(os.getenv("SCRAPER_RECREATE_DELAY", "1.0"))
    )
    acquire_retry_delay: float = field(
        default_factory=lambda: float(os.getenv("SCRAPER_ACQUIRE_RETRY_DELAY", "1.0"))
    )
    navigation_retry_delay: float = field(
        default_factory=lambda: float(os.getenv("SCRAPER_NAV_RETRY_DELAY", "1.5"))
    )


@dataclass(frozen=True)
class PolitenessConfig:
    """Randomised delays between requests and reveal-field budgets.

    Attributes:
        profile_delay: Seconds range slept between two profile visits.
        page_delay: Seconds range slept between two listing pages.
        reveal_settle: Seconds range waited after clicking a reveal control.
        reveal_timeout: Overall budget in seconds for one reveal sequence.
    """

    profile_delay: Tuple[float, float] = field(
        default_factory=lambda: _env_range("SCRAPER_PROFILE_DELAY", "0.8,1.5")
    )
    page_delay: Tuple[float, float] = field(
        default_factory=lambda: _env_range("SCRAPER_PAGE_DELAY", "1.5,3.5")
    )
    reveal_settle: Tuple[float, float] = field(
        default_factory=lambda: _env_range("SCRAPER_REVEAL_SETTLE", "1.0,1.5")
    )
    reveal_timeout: float = field(
        default_factory=lambda: float(os.getenv("SCRAPER_REVEAL_TIMEOUT", "4.0"))
    )


@dataclass(frozen=True)
class RunConfig:
    """Runtime behaviour configuration for each scrape run.

    Attributes:
        output_dir: Directory receiving per-page JSON and text exports.
        log_level: Python ``logging`` level string (e.g. ``"INFO"``).
        write_aggregate: Also write one aggregate JSON file at run end.
    """

    output_dir: str = field(
        default_factory=lambda: os.getenv("SCRAPER_OUTPUT_DIR", "output")
    )
    log_level: str = field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO")
    )
    write_aggregate: bool = field(
        default_factory=lambda: _env_bool("SCRAPER_WRITE_AGGREGATE", "false")
    )


@dataclass(frozen=True)
class SiteRunConfig:
    """Explicit inputs of one run against one site.

    Attributes:
        site: Registered adapter name (``"multi-komputer"``, ``"oferia"``,
            ``"useme"``).
        base_url: Origin the adapter builds listing URLs from; ``None``
            keeps the adapter's built-in default.
        start_page: First listing page number (>= 1).
        total_pages: Number of consecutive listing pages to process.
        max_records_per_page: Optional cap on profiles visited per page.
        output_dir: Where page files are written.
        profile_dir: Browser user-data directory.
    """

    site: str
    start_page: int = 1
    total_pages: int = 1
    base_url: Optional[str] = None
    max_records_per_page: Optional[int] = None
    output_dir: str = "output"
    profile_dir: str = ".playwright-chrome-data"

    def __post_init__(self) -> None:
        if self.start_page < 1:
            raise ValueError(f"start_page must be >= 1, got {self.start_page}")
        if self.total_pages < 0:
            raise ValueError(f"total_pages must be >= 0, got {self.total_pages}")
        if self.max_records_per_page is not None and self.max_records_per_page < 0:
            raise ValueError(
                f"max_records_per_page must be >= 0, got {self.max_records_per_page}"
            )

    @property
    def end_page(self) -> int:
        """Last page number processed (inclusive)."""
        return self.start_page + self.total_pages - 1


def load_site_defaults(site: str, path: Path = SITES_PATH) -> Dict[str, Any]:
    """Return the ``sites.yaml`` entry for ``site`` (empty dict if absent).

    Args:
        site: Adapter name as registered in ``scrapers.sites``.
        path: YAML file to read; overridable for tests.

    Returns:
        A shallow copy of the site's mapping. Missing file or unknown site
        yields ``{}`` and a warning, never an exception.
    """
    log = logging.getLogger(__name__)
    if not path.exists():
        log.warning("Site defaults file missing: %s", path)
        return {}
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        log.error("Failed to parse %s: %s. Using built-in defaults.", path, e)
        return {}
    sites = data.get("sites") or {}
    entry = sites.get(site)
    if entry is None:
        log.warning("No defaults for site %r in %s", site, path)
        return {}
    return dict(entry)


def build_site_run_config(
    site: str,
    overrides: Optional[Dict[str, Any]] = None,
    path: Path = SITES_PATH,
) -> SiteRunConfig:
    """Merge YAML defaults, env-level run config and explicit overrides.

    Precedence (highest first): ``overrides`` values that are not ``None``,
    then ``sites.yaml``, then :data:`run_config` / :data:`browser_config`.
    """
    merged: Dict[str, Any] = {
        "output_dir": run_config.output_dir,
        "profile_dir": browser_config.profile_dir,
    }
    merged.update(
        {
            k: v
            for k, v in load_site_defaults(site, path).items()
            if k in ("base_url", "start_page", "total_pages", "max_records_per_page")
        }
    )
    merged.update({k: v for k, v in (overrides or {}).items() if v is not None})
    return SiteRunConfig(site=site, **merged)


def get_settings() -> Tuple[BrowserConfig, RetryConfig, PolitenessConfig, RunConfig]:
    """Initialise logging and build all configuration singletons.

    Reads environment variables (optionally sourced from ``.env``) and
    returns a tuple of frozen dataclass instances representing every
    subsystem's configuration. This function is called once at module
    import time; the results are stored as module-level singletons.
    """
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO"),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
    )
    return BrowserConfig(), RetryConfig(), PolitenessConfig(), RunConfig()


browser_config, retry_config, politeness_config, run_config = get_settings()
