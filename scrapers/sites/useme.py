"""useme.com job board adapter.

Each job page yields its title and description text; the engine also
exports the pair as ``page-{P}-job-{I}.txt`` for downstream text tooling.
"""

from __future__ import annotations

from typing import Optional

from playwright.async_api import Locator, Page

from Utils.normalise_dedupe import clean_text
from ..field_extractors import first_attr, first_text
from .base_site import ExtractedRecord, SiteAdapter

__all__ = ["UsemeAdapter"]

TITLE_XPATH = 'xpath=//*[@id="main-content"]/div/div[2]/div[2]/h1'
CONTENT_XPATH = 'xpath=//*[@id="main-content"]/div/div[2]/div[3]/div[1]'


class UsemeAdapter(SiteAdapter):
    """Public freelance job offers."""

    name = "useme"
    base_url = "https://useme.com"
    listing_path = "/pl/jobs/"
    card_selector = "article.job"
    allowed_domain = "useme.com"
    records_key = "jobs"
    record_fields = ("title", "content")

    async def extract_profile_link(self, card: Locator) -> Optional[str]:
        return await first_attr(card, "a", "href")

    async def extract_record(self, page: Page, profile_url: str) -> ExtractedRecord:
        return {
            "profileUrl": profile_url,
            "title": await first_text(page, TITLE_XPATH, "#main-content h1"),
            "content": await first_text(page, CONTENT_XPATH),
        }

    def export_text(self, record: ExtractedRecord) -> Optional[str]:
        title = clean_text(record.get("title"))
        content = clean_text(record.get("content"))
        if not title and not content:
            return None
        if title:
            return f"{title}\n\n{content or ''}"
        return content
