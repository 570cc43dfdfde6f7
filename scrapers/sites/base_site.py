"""Base class for all site adapters.

An adapter plugs site-specific knowledge into the generic engine: how to
build a listing URL, which elements are listing cards, how a card links to
a profile page and how a profile page becomes an ExtractedRecord. All
adapters (multi_komputer.py, oferia.py, useme.py) inherit from SiteAdapter.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

from playwright.async_api import Locator, Page

from config.settings import PolitenessConfig, politeness_config
from ..errors import ErrorKind, ScrapeError, is_session_fatal

logger = logging.getLogger(__name__)

__all__ = ["SiteAdapter", "ExtractedRecord"]

ExtractedRecord = Dict[str, Any]


class SiteAdapter(ABC):
    """Abstract base for site-specific extraction logic.

    Subclasses must set ``name``, ``base_url``, ``card_selector``,
    ``records_key`` and ``record_fields`` and implement
    :meth:`extract_profile_link` and :meth:`extract_record`.

    Constructor Args:
        base_url: Optional origin override (e.g. a staging mirror).
        politeness: Reveal settle range and time budget; defaults to env.
    """

    name: str = "base"
    base_url: str = ""
    listing_path: str = ""
    listing_query: str = ""
    card_selector: str = ""
    allowed_domain: Optional[str] = None
    records_key: str = "records"
    record_fields: Tuple[str, ...] = ()

    def __init__(
        self,
        base_url: Optional[str] = None,
        politeness: Optional[PolitenessConfig] = None,
    ) -> None:
        if base_url:
            self.base_url = base_url.rstrip("/")
        self.politeness = politeness or politeness_config
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    @property
    def listing_base(self) -> str:
        """Listing URL without pagination."""
        return f"{self.base_url}{self.listing_path}"

    def build_listing_url(self, page_number: int) -> str:
        """Listing URL for ``page_number``; page 1 carries no ``page`` param."""
        query = self.listing_query
        if page_number > 1:
            query = f"{query}&page={page_number}" if query else f"page={page_number}"
        return f"{self.listing_base}?{query}" if query else self.listing_base

    @abstractmethod
    async def extract_profile_link(self, card: Locator) -> Optional[str]:
        """Raw href of the profile/detail page a listing card points to."""

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    @abstractmethod
    async def extract_record(self, page: Page, profile_url: str) -> ExtractedRecord:
        """Read one record from a loaded profile page.

        Missing fields are ``None``. Browser errors may propagate; the
        harvester turns them into :meth:`empty_record`.
        """

    async def extract(self, page: Page, profile_url: str) -> ExtractedRecord:
        """Run :meth:`extract_record`, tagging failures for the harvester.

        Session-fatal errors pass through unchanged so the caller can
        recover the session; anything else becomes a
        :class:`ScrapeError` of kind ``EXTRACTION_SOFT``.
        """
        try:
            return await self.extract_record(page, profile_url)
        except ScrapeError:
            raise
        except Exception as e:
            if is_session_fatal(e):
                raise
            raise ScrapeError(
                ErrorKind.EXTRACTION_SOFT,
                f"{self.name}: extraction failed: {e}",
                url=profile_url,
            ) from e

    def empty_record(self, profile_url: str) -> ExtractedRecord:
        """Record stored when a profile visit fails: every field ``None``."""
        record: ExtractedRecord = {"profileUrl": profile_url}
        for field_name in self.record_fields:
            record[field_name] = None
        return record

    def export_text(self, record: ExtractedRecord) -> Optional[str]:
        """Plain-text rendering written beside the page JSON; ``None`` to skip."""
        return None
