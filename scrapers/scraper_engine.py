"""
scrapers/scraper_engine.py

LISTING SCRAPER RUN CONTROLLER
==============================

Purpose:
    Drive one site adapter over a range of listing pages, strictly in
    order, and persist every page's records to its own JSON file as soon
    as the page is done. A crash or interruption loses at most the page in
    flight.

Output files (in ``output_dir``):
    {site}-{records_key}-{YYYY-MM-DDTHH-MM-SS}-page-{N}.json
        {
          "scrapedAt": str,       # ISO-8601 UTC
          "baseUrl": str,
          "startPage": int,
          "totalPages": int,
          "pageNumber": int,
          "listingUrl": str,
          "status": "ok" | "empty" | "error",
          "<records_key>": [...]
        }
    page-{P}-job-{I}.txt          # adapters with a text export (useme)
    {prefix}.json                 # optional aggregate of all pages
    {prefix}-metrics.json         # run metrics

Key Features:
- One shared, self-healing browser session (SessionSupervisor)
- Page-level fault isolation: a failed page is logged and saved with status "error"
- Atomic per-page writes (temp file + os.replace)
- Randomised politeness delays between pages
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from config.settings import (
    BrowserConfig,
    PolitenessConfig,
    RunConfig,
    SiteRunConfig,
    politeness_config,
    run_config,
)
from Utils.ratelimit import politeness_wait
from .browser_session import SessionSupervisor
from .errors import is_session_fatal
from .harvester import STATUS_EMPTY, STATUS_ERROR, STATUS_OK, PageHarvester, PageResult
from .sites.base_site import SiteAdapter

LOG = logging.getLogger("scraper_engine")

__all__ = ["ScraperEngine", "RunManifest", "RunMetrics", "write_atomic"]


# ================================================================================
# RUN METADATA
# ================================================================================


@dataclass(frozen=True)
class RunManifest:
    """Provenance stamped onto every persisted page file."""

    base_url: str
    start_page: int
    total_pages: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scrapedAt": datetime.now(timezone.utc).isoformat(),
            "baseUrl": self.base_url,
            "startPage": self.start_page,
            "totalPages": self.total_pages,
        }


@dataclass
class RunMetrics:
    pages_ok: int = 0
    pages_empty: int = 0
    pages_error: int = 0
    records_total: int = 0
    records_failed: int = 0
    files_written: List[str] = field(default_factory=list)
    execution_time_ms: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def write_atomic(path: Path, content: str) -> None:
    """Write ``content`` to ``path`` so readers never see a partial file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".tmp")
    with tmp_path.open("w", encoding="utf-8") as f:
        f.write(content)
    os.replace(tmp_path, path)


def _run_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace(":", "-").replace(".", "-")[:19]


# ================================================================================
# RUN CONTROLLER
# ================================================================================


class ScraperEngine:
    """Sequential page-range scraper for one site adapter.

    Args:
        adapter: Site-specific extraction logic.
        site_config: Page range, record cap and directories for this run.
        supervisor: Session owner; built from ``site_config`` if omitted.
            An injected supervisor is not shut down by :meth:`run`.
        politeness: Delay ranges; defaults to the env-driven singleton.
        settings: Run behaviour (aggregate file); defaults to env.
        browser: Launch options for an engine-built supervisor.
    """

    def __init__(
        self,
        adapter: SiteAdapter,
        site_config: SiteRunConfig,
        supervisor: Optional[SessionSupervisor] = None,
        politeness: Optional[PolitenessConfig] = None,
        settings: Optional[RunConfig] = None,
        browser: Optional[BrowserConfig] = None,
    ) -> None:
        self.adapter = adapter
        self.site_config = site_config
        self.politeness = politeness or politeness_config
        self.settings = settings or run_config
        self.output_dir = Path(site_config.output_dir)

        self._owns_supervisor = supervisor is None
        self.supervisor = supervisor or SessionSupervisor(
            profile_dir=site_config.profile_dir,
            output_dir=site_config.output_dir,
            browser=browser,
        )
        self.harvester = PageHarvester(
            adapter,
            max_records_per_page=site_config.max_records_per_page,
            politeness=self.politeness,
        )
        self.manifest = RunManifest(
            base_url=adapter.base_url,
            start_page=site_config.start_page,
            total_pages=site_config.total_pages,
        )
        self.metrics = RunMetrics()
        self.results: List[PageResult] = []
        self.run_prefix = self.output_dir / (
            f"{adapter.name}-{adapter.records_key}-{_run_timestamp()}"
        )

        LOG.info(
            "ScraperEngine initialized | site=%s | pages=%d..%d | cap=%s | prefix=%s",
            adapter.name,
            site_config.start_page,
            site_config.end_page,
            site_config.max_records_per_page,
            self.run_prefix,
        )

    # ------------------------------------------------------------------ #
    # MAIN EXECUTION
    # ------------------------------------------------------------------ #

    async def scrape_page(self, page_number: int) -> PageResult:
        """Harvest one listing page; never raises ``Exception``."""
        try:
            async with self.supervisor.lease() as lease:
                return await self.harvester.harvest(lease, page_number)
        except Exception as e:
            LOG.error("Error processing page %d: %s", page_number, e, exc_info=True)
            if is_session_fatal(e):
                LOG.info("Detected browser issue, forcing context recreation...")
                try:
                    await self.supervisor.force_recreate()
                    LOG.info("Browser context recreated successfully")
                except Exception as recreate_err:
                    LOG.error("Failed to recreate browser: %s", recreate_err)
            return PageResult(
                page_number=page_number,
                listing_url=self.adapter.build_listing_url(page_number),
                status=STATUS_ERROR,
            )

    async def run(self) -> List[PageResult]:
        """Process every configured page, persisting each one immediately."""
        start_time = time.time()
        start, end = self.site_config.start_page, self.site_config.end_page
        LOG.info("Starting %s run: pages %d..%d", self.adapter.name, start, end)
        self.output_dir.mkdir(parents=True, exist_ok=True)

        try:
            for page_number in range(start, end + 1):
                LOG.info("=== Page %d/%d ===", page_number, end)
                result = await self.scrape_page(page_number)
                self.results.append(result)
                self._record_metrics(result)
                self._save_page(result)

                if page_number < end:
                    await politeness_wait("page", self.politeness.page_delay)

            if self.settings.write_aggregate:
                self._save_aggregate()
        finally:
            self.metrics.execution_time_ms = (time.time() - start_time) * 1000.0
            self._save_metrics()
            if self._owns_supervisor:
                await self.supervisor.shutdown()

        LOG.info(
            "Run completed: %d pages (%d ok, %d empty, %d error), %d records in %.0f ms",
            len(self.results),
            self.metrics.pages_ok,
            self.metrics.pages_empty,
            self.metrics.pages_error,
            self.metrics.records_total,
            self.metrics.execution_time_ms,
        )
        return self.results

    def run_sync(self) -> List[PageResult]:
        """Synchronous wrapper for run()."""
        return asyncio.run(self.run())

    # ------------------------------------------------------------------ #
    # PERSISTENCE
    # ------------------------------------------------------------------ #

    def page_path(self, page_number: int) -> Path:
        return Path(f"{self.run_prefix}-page-{page_number}.json")

    def page_payload(self, result: PageResult) -> Dict[str, Any]:
        payload = self.manifest.to_dict()
        payload.update(result.to_dict(self.adapter.records_key))
        return payload

    def _save_page(self, result: PageResult) -> None:
        """Write the page file, then any per-record text exports."""
        path = self.page_path(result.page_number)
        write_atomic(path, json.dumps(self.page_payload(result), indent=2, ensure_ascii=False))
        self.metrics.files_written.append(str(path))
        LOG.info("Saved page %d to %s", result.page_number, path)

        for index, record in enumerate(result.records, start=1):
            text = self.adapter.export_text(record)
            if text is None:
                continue
            text_path = self.output_dir / f"page-{result.page_number}-job-{index}.txt"
            write_atomic(text_path, text)
            LOG.info("  Saved text content to: %s", text_path)

    def _save_aggregate(self) -> None:
        path = Path(f"{self.run_prefix}.json")
        payload = self.manifest.to_dict()
        payload["pages"] = [r.to_dict(self.adapter.records_key) for r in self.results]
        write_atomic(path, json.dumps(payload, indent=2, ensure_ascii=False))
        LOG.info("Saved aggregate result to: %s", path)

    def _save_metrics(self) -> None:
        path = Path(f"{self.run_prefix}-metrics.json")
        try:
            write_atomic(path, json.dumps(self.metrics.to_dict(), indent=2))
        except OSError as e:
            LOG.error("Failed to save metrics: %s", e)

    def _record_metrics(self, result: PageResult) -> None:
        if result.status == STATUS_OK:
            self.metrics.pages_ok += 1
        elif result.status == STATUS_EMPTY:
            self.metrics.pages_empty += 1
        else:
            self.metrics.pages_error += 1
        self.metrics.records_total += len(result.records)
        self.metrics.records_failed += sum(
            1
            for record in result.records
            if all(record.get(name) is None for name in self.adapter.record_fields)
        )
