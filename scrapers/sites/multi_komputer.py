"""multi-komputer.pl company directory adapter.

Listing cards (``.company``) link to company profiles; each profile's
``#box-company`` block carries name, address, website and phone/email
controls that only reveal the real value after a click.
"""

from __future__ import annotations

from typing import Optional

from playwright.async_api import Locator, Page

from Utils.normalise_dedupe import clean_text, collapse_whitespace, strip_contact_scheme
from ..field_extractors import first_attr, first_text, reveal_on_click
from .base_site import ExtractedRecord, SiteAdapter

__all__ = ["MultiKomputerAdapter"]

_BOX = '//*[@id="box-company"]/div[1]/div'
NAME_XPATH = f"xpath={_BOX}/div[1]/div/h1"
ADDRESS_XPATH = f"xpath={_BOX}/div[1]/div/p"
WEBSITE_ITEM_XPATH = f"xpath={_BOX}/div[2]/ul/li[1]"
PHONE_ITEM_XPATH = f"xpath={_BOX}/div[2]/ul/li[2]"


class MultiKomputerAdapter(SiteAdapter):
    """Companies listed under "komputery - oprogramowanie"."""

    name = "multi-komputer"
    base_url = "https://www.multi-komputer.pl"
    listing_path = "/firmy/polska/komputery%20-%20oprogramowanie"
    card_selector = ".company"
    allowed_domain = "multi-komputer.pl"
    records_key = "companies"
    record_fields = ("name", "address", "website", "phone", "email")

    # Card anchor that points off-site rather than to the profile.
    WEBSITE_LINK_TEXT = "Strona www"

    async def extract_profile_link(self, card: Locator) -> Optional[str]:
        href = await first_attr(card, "h2 a[href], h3 a[href]", "href")
        if href:
            return href

        for anchor in await card.locator("a[href]").all():
            if clean_text(await anchor.text_content()) == self.WEBSITE_LINK_TEXT:
                continue
            href = clean_text(await anchor.get_attribute("href"))
            if href:
                return href
        return None

    async def _website(self, page: Page) -> Optional[str]:
        item = page.locator(WEBSITE_ITEM_XPATH)
        if await item.count() == 0:
            return None
        link = item.locator("a").first
        if await link.count() > 0:
            href = clean_text(await link.get_attribute("href"))
            return href or clean_text(await link.text_content())
        return clean_text(await item.first.text_content())

    async def extract_record(self, page: Page, profile_url: str) -> ExtractedRecord:
        record = self.empty_record(profile_url)
        box = page.locator("#box-company")
        if await box.count() == 0:
            self.logger.info("No #box-company on %s", profile_url)
            return record

        record["name"] = await first_text(page, NAME_XPATH, "#box-company h1")
        record["address"] = collapse_whitespace(
            await first_text(page, ADDRESS_XPATH, "#box-company p")
        )
        record["website"] = await self._website(page)

        record["phone"] = strip_contact_scheme(
            await reveal_on_click(
                page,
                triggers=["#box-company .company-phone", f"{PHONE_ITEM_XPATH}//a"],
                value_selectors=["#box-company .company-phone", f"{PHONE_ITEM_XPATH}//a"],
                settle=self.politeness.reveal_settle,
                timeout=self.politeness.reveal_timeout,
            )
        )
        record["email"] = strip_contact_scheme(
            await reveal_on_click(
                page,
                triggers=["#box-company .company-email"],
                value_selectors=["#box-company .company-email"],
                settle=self.politeness.reveal_settle,
                timeout=self.politeness.reveal_timeout,
            )
        )
        return record
