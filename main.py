"""Listing scraper: single CLI entry point.

Boots logging, resolves the site adapter and run configuration
(``config/sites.yaml`` defaults overridden by CLI flags), runs the
:class:`~scrapers.scraper_engine.ScraperEngine` over the requested page
range, prints a short summary and exits with the correct POSIX code.

No extraction logic lives here. This module is intentionally thin.
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import os
import sys
from typing import List, Optional

from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# MODULE-LEVEL SETUP  (runs at import time)
# ---------------------------------------------------------------------------

# override=False so values already in the process environment win.
load_dotenv(override=False)

# Ensure logs/ directory exists before any FileHandler is created.
os.makedirs("logs", exist_ok=True)

# Same format as config.settings.LOG_FORMAT; that module is imported below.
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    handlers=[
        logging.StreamHandler(sys.stdout),
        logging.FileHandler("logs/scraper.log", mode="a", encoding="utf-8"),
    ],
)

logger: logging.Logger = logging.getLogger("main")

# Deferred imports: env and logging must be configured first.
from config.settings import browser_config, build_site_run_config, run_config  # noqa: E402
from scrapers import SITE_ADAPTERS, ScraperEngine, get_site_adapter  # noqa: E402

__all__ = ["main", "parse_args", "cli"]


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse and return CLI arguments for the scraper entry point."""
    parser = argparse.ArgumentParser(
        description="Resilient multi-page listing scraper"
    )
    parser.add_argument(
        "--site",
        choices=sorted(SITE_ADAPTERS),
        help="Site adapter to run",
    )
    parser.add_argument("--start-page", type=int, default=None, help="First listing page (>= 1)")
    parser.add_argument("--total-pages", type=int, default=None, help="Number of listing pages")
    parser.add_argument(
        "--max-records",
        type=int,
        default=None,
        help="Cap on profiles visited per listing page (default: unbounded)",
    )
    parser.add_argument("--base-url", default=None, help="Override the adapter's origin")
    parser.add_argument("--output-dir", default=None, help="Directory for page files")
    parser.add_argument("--profile-dir", default=None, help="Browser user-data directory")
    parser.add_argument(
        "--headless",
        action="store_true",
        help="Run the browser without a window",
    )
    parser.add_argument(
        "--aggregate",
        action="store_true",
        help="Also write one aggregate JSON file at the end of the run",
    )
    parser.add_argument(
        "--list-sites",
        action="store_true",
        help="Print registered site adapters and exit",
    )
    return parser.parse_args(argv)


# ---------------------------------------------------------------------------
# MAIN
# ---------------------------------------------------------------------------


def main(argv: Optional[List[str]] = None) -> int:
    """Run one scrape over the configured page range.

    Returns:
        ``0`` when the page range completes, ``1`` on invalid configuration
        or an unhandled crash, ``130`` on :exc:`KeyboardInterrupt`.
    """
    args: argparse.Namespace = parse_args(argv)

    if args.list_sites:
        for name, adapter_cls in sorted(SITE_ADAPTERS.items()):
            print(f"{name:16s} {adapter_cls.base_url}{adapter_cls.listing_path}")
        return 0

    if not args.site:
        logger.error("--site is required (one of %s)", sorted(SITE_ADAPTERS))
        return 1

    try:
        site_config = build_site_run_config(
            args.site,
            {
                "base_url": args.base_url,
                "start_page": args.start_page,
                "total_pages": args.total_pages,
                "max_records_per_page": args.max_records,
                "output_dir": args.output_dir,
                "profile_dir": args.profile_dir,
            },
        )
    except (TypeError, ValueError) as exc:
        logger.error("Invalid run configuration: %s", exc)
        return 1

    browser = browser_config
    if args.headless:
        browser = dataclasses.replace(browser_config, headless=True)
    settings = run_config
    if args.aggregate:
        settings = dataclasses.replace(run_config, write_aggregate=True)

    adapter = get_site_adapter(site_config.site, base_url=site_config.base_url)
    engine = ScraperEngine(adapter, site_config, browser=browser, settings=settings)

    logger.info("=" * 70)
    logger.info("LISTING SCRAPER | %s", adapter.name.upper())
    logger.info(
        "Pages: %d..%d | Cap: %s | Output: %s",
        site_config.start_page,
        site_config.end_page,
        site_config.max_records_per_page,
        site_config.output_dir,
    )
    logger.info("=" * 70)

    try:
        engine.run_sync()
    except KeyboardInterrupt:
        logger.warning("Run interrupted by user (KeyboardInterrupt)")
        print("\n⚠️  Run interrupted. Pages written so far are complete.")
        return 130
    except Exception as exc:
        logger.critical("Unhandled exception in main(): %s", exc, exc_info=True)
        return 1

    print(json.dumps(engine.metrics.to_dict(), indent=2))
    return 0


# ---------------------------------------------------------------------------
# ENTRY POINT
# ---------------------------------------------------------------------------

def cli() -> None:
    """Console-script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    cli()
