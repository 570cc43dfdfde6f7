"""Page-level harvester: one listing page in, one PageResult out.

Failures are contained at the smallest unit: a card that cannot be read is
skipped, a profile that cannot be visited is kept as an all-``None``
record, and a listing page that cannot be loaded yields a record-less
``"error"`` result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from config.settings import PolitenessConfig, politeness_config
from Utils.normalise_dedupe import normalise_profile_links
from Utils.ratelimit import politeness_wait
from .browser_session import PageLease
from .errors import ErrorKind, classify_error, is_session_fatal
from .navigation import navigate
from .sites.base_site import ExtractedRecord, SiteAdapter

LOG = logging.getLogger("harvester")

__all__ = [
    "PageResult",
    "PageHarvester",
    "STATUS_OK",
    "STATUS_EMPTY",
    "STATUS_ERROR",
]

STATUS_OK = "ok"
STATUS_EMPTY = "empty"
STATUS_ERROR = "error"


@dataclass
class PageResult:
    """All records extracted from one listing page.

    Attributes:
        page_number: Listing page number (>= 1).
        listing_url: URL the page was loaded from.
        records: Records in the order profiles were discovered.
        status: ``"ok"``, ``"empty"`` (page loaded, no cards) or
            ``"error"`` (page could not be loaded or processed).
    """

    page_number: int
    listing_url: str
    records: List[ExtractedRecord] = field(default_factory=list)
    status: str = STATUS_OK

    def to_dict(self, records_key: str = "records") -> Dict[str, Any]:
        return {
            "pageNumber": self.page_number,
            "listingUrl": self.listing_url,
            "status": self.status,
            records_key: list(self.records),
        }


class PageHarvester:
    """Runs listing → profile links → per-profile extraction for one adapter."""

    def __init__(
        self,
        adapter: SiteAdapter,
        max_records_per_page: Optional[int] = None,
        politeness: Optional[PolitenessConfig] = None,
    ) -> None:
        self.adapter = adapter
        self.max_records_per_page = max_records_per_page
        self.politeness = politeness or politeness_config

    async def collect_profile_urls(self, lease: PageLease, listing_url: str) -> Optional[List[str]]:
        """Profile URLs on the loaded listing page; ``None`` when it has no cards."""
        cards = await lease.page.locator(self.adapter.card_selector).all()  # type: ignore[union-attr]
        if not cards:
            return None

        hrefs: List[Optional[str]] = []
        for index, card in enumerate(cards, start=1):
            try:
                hrefs.append(await self.adapter.extract_profile_link(card))
            except Exception as e:
                if is_session_fatal(e):
                    raise
                LOG.warning("Skipping card %d on %s: %s", index, listing_url, e)

        return normalise_profile_links(
            hrefs,
            listing_url=listing_url,
            allowed_domain=self.adapter.allowed_domain,
        )

    async def harvest_profile(
        self, lease: PageLease, page_number: int, index: int, total: int, profile_url: str
    ) -> ExtractedRecord:
        """Visit one profile; any failure yields ``adapter.empty_record``."""
        try:
            await lease.ensure_live()
            LOG.info("  %s %d/%d: %s", self.adapter.name, index, total, profile_url)
            await navigate(lease, profile_url)
            return await self.adapter.extract(lease.page, profile_url)  # type: ignore[arg-type]
        except Exception as e:
            kind = classify_error(e)
            LOG.error(
                "  Error processing profile %d/%d on page %d (%s) | url=%s | %s",
                index,
                total,
                page_number,
                kind.value,
                profile_url,
                e,
            )
            if kind is ErrorKind.SESSION_FATAL:
                try:
                    await lease.recover()
                    LOG.info("  Browser context recreated successfully")
                except Exception as recreate_err:
                    LOG.error("  Failed to recreate browser: %s", recreate_err)
            return self.adapter.empty_record(profile_url)

    async def harvest(self, lease: PageLease, page_number: int) -> PageResult:
        """Process listing page ``page_number`` end to end."""
        listing_url = self.adapter.build_listing_url(page_number)
        result = PageResult(page_number=page_number, listing_url=listing_url)

        try:
            await navigate(lease, listing_url)
        except Exception as e:
            LOG.error("Navigation failed for page %d | url=%s | %s", page_number, listing_url, e)
            result.status = STATUS_ERROR
            return result

        profile_urls = await self.collect_profile_urls(lease, listing_url)
        if profile_urls is None:
            LOG.info("No %s found on page %d", self.adapter.card_selector, page_number)
            result.status = STATUS_EMPTY
            return result

        to_process = profile_urls
        if self.max_records_per_page is not None:
            to_process = profile_urls[: self.max_records_per_page]
        LOG.info(
            "Found %d profiles on page %d, processing %d",
            len(profile_urls),
            page_number,
            len(to_process),
        )

        for index, profile_url in enumerate(to_process, start=1):
            record = await self.harvest_profile(
                lease, page_number, index, len(to_process), profile_url
            )
            result.records.append(record)
            if index < len(to_process):
                await politeness_wait("profile", self.politeness.profile_delay)

        return result
