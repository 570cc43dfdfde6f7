"""
scrapers/__init__.py

LISTING SCRAPER: SCRAPERS PACKAGE
=================================

Purpose:
    Walk paginated listing pages of a target site with one persistent,
    self-healing browser session, visit every linked profile page, extract
    a site-specific record per profile and persist one JSON file per
    listing page.

Public API:

    from scrapers import ScraperEngine, get_site_adapter
    from config.settings import build_site_run_config

    site_config = build_site_run_config("oferia", {"total_pages": 2})
    engine = ScraperEngine(get_site_adapter("oferia"), site_config)

    # Synchronous usage
    results = engine.run_sync()

    # Async usage
    results = await engine.run()

Advanced (direct access to the session / page layer):

    from scrapers import SessionSupervisor, PageLease, navigate
    from scrapers import PageHarvester, PageResult
"""

from scrapers.browser_session import PageLease, SessionSupervisor, is_session_valid
from scrapers.errors import ErrorKind, ScrapeError, classify_error
from scrapers.harvester import PageHarvester, PageResult
from scrapers.navigation import navigate
from scrapers.scraper_engine import RunManifest, ScraperEngine
from scrapers.sites import SITE_ADAPTERS, SiteAdapter, get_site_adapter

__all__ = [
    # Run controller (main entry point)
    "ScraperEngine",
    "RunManifest",
    # Session lifecycle
    "SessionSupervisor",
    "PageLease",
    "is_session_valid",
    # Navigation and harvesting
    "navigate",
    "PageHarvester",
    "PageResult",
    # Error taxonomy
    "ErrorKind",
    "ScrapeError",
    "classify_error",
    # Site adapters
    "SiteAdapter",
    "SITE_ADAPTERS",
    "get_site_adapter",
]
