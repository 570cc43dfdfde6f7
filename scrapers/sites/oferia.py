"""oferia.com.pl contractor directory adapter.

Profile pages list contact details as ``.contact-card .contact-item``
entries (phone first, email second) and the contractor's categories under
``.profile-categories``.
"""

from __future__ import annotations

import re
from typing import List, Optional

from playwright.async_api import Locator, Page

from Utils.normalise_dedupe import absolute_url, clean_text, strip_contact_scheme
from ..field_extractors import first_attr
from .base_site import ExtractedRecord, SiteAdapter

__all__ = ["OferiaAdapter"]

PHONE_RE = re.compile(r"\d[\d\s\-+]{8,}")


class OferiaAdapter(SiteAdapter):
    """Contractors ("zleceniobiorcy") across all categories and cities."""

    name = "oferia"
    base_url = "https://oferia.com.pl"
    listing_path = "/pl/zleceniobiorcy"
    listing_query = "category=&city=&q="
    card_selector = ".contractor-card"
    allowed_domain = "oferia.com.pl"
    records_key = "contractors"
    record_fields = ("phone", "email", "categoryLinks")

    async def extract_profile_link(self, card: Locator) -> Optional[str]:
        return await first_attr(card, 'a[href*="/pl/"]', "href")

    async def _contacts(self, page: Page) -> tuple[Optional[str], Optional[str]]:
        phone: Optional[str] = None
        email: Optional[str] = None

        card = page.locator(".contact-card")
        if await card.count() == 0:
            return phone, email

        texts: List[str] = []
        for item in await card.locator(".contact-item").all():
            text = clean_text(await item.text_content()) or ""
            anchor = item.locator("a").first
            href = None
            if await anchor.count() > 0:
                href = clean_text(await anchor.get_attribute("href"))

            if href and href.lower().startswith("mailto:"):
                email = strip_contact_scheme(href) or text or None
            elif (href and href.lower().startswith("tel:")) or (text and PHONE_RE.search(text)):
                phone = strip_contact_scheme(href) or text or None
            texts.append(text)

        # Positional fallback: first item is the phone, second the email.
        if len(texts) >= 2:
            phone = phone or clean_text(texts[0])
            email = email or clean_text(texts[1])
        return phone, email

    async def _category_links(self, page: Page, profile_url: str) -> List[str]:
        # Relative hrefs resolve against the loaded profile page.
        page_url = page.url or profile_url
        links: List[str] = []
        categories = page.locator(".profile-categories")
        if await categories.count() == 0:
            return links
        for anchor in await categories.locator("a[href]").all():
            url = absolute_url(await anchor.get_attribute("href"), page_url)
            if url and url not in links:
                links.append(url)
        return links

    async def extract_record(self, page: Page, profile_url: str) -> ExtractedRecord:
        phone, email = await self._contacts(page)
        return {
            "profileUrl": profile_url,
            "phone": phone,
            "email": email,
            "categoryLinks": await self._category_links(page, profile_url),
        }
