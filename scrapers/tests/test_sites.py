# scrapers/tests/test_sites.py
# Site adapters: listing URLs, card links and profile extraction

import asyncio

import pytest
from playwright.async_api import Error as PlaywrightError

from scrapers.errors import ErrorKind, ScrapeError, classify_error
from scrapers.sites import SITE_ADAPTERS, get_site_adapter
from scrapers.sites.multi_komputer import (
    ADDRESS_XPATH,
    NAME_XPATH,
    WEBSITE_ITEM_XPATH,
    MultiKomputerAdapter,
)
from scrapers.sites.oferia import OferiaAdapter
from scrapers.sites.useme import TITLE_XPATH, UsemeAdapter
from scrapers.tests.fakes import (
    CLOSED_MESSAGE,
    FAST_POLITENESS,
    FakeContext,
    FakeElement,
    FakeLocator,
    FakePage,
    FakeWorld,
    link,
)


def make_page(dom):
    world = FakeWorld()
    page = FakePage(world, FakeContext(world))
    page.dom = dom
    return page


def card_locator(children):
    return FakeLocator([FakeElement(children=children)])


def revealing(text, href):
    def reveal(element):
        element.attrs["href"] = href

    return FakeElement(text, on_click=reveal)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


def test_registry_builds_adapters_by_name():
    assert sorted(SITE_ADAPTERS) == ["multi-komputer", "oferia", "useme"]
    adapter = get_site_adapter("useme", base_url="https://staging.useme.com/")
    assert isinstance(adapter, UsemeAdapter)
    assert adapter.base_url == "https://staging.useme.com"


def test_registry_rejects_unknown_site():
    with pytest.raises(KeyError, match="expected one of"):
        get_site_adapter("nope")


# ---------------------------------------------------------------------------
# multi-komputer
# ---------------------------------------------------------------------------


def test_multi_komputer_listing_urls():
    adapter = MultiKomputerAdapter()
    base = "https://www.multi-komputer.pl/firmy/polska/komputery%20-%20oprogramowanie"
    assert adapter.build_listing_url(1) == base
    assert adapter.build_listing_url(7) == base + "?page=7"


def test_multi_komputer_prefers_heading_link():
    card = card_locator(
        {
            "h2 a[href], h3 a[href]": [link("/firma/acme", "Acme")],
            "a[href]": [link("https://acme.pl", "Strona www"), link("/firma/other")],
        }
    )
    assert asyncio.run(MultiKomputerAdapter().extract_profile_link(card)) == "/firma/acme"


def test_multi_komputer_skips_website_anchor():
    card = card_locator({"a[href]": [link("https://acme.pl", "Strona www"), link("/firma/acme", "Acme")]})
    assert asyncio.run(MultiKomputerAdapter().extract_profile_link(card)) == "/firma/acme"


def _company_dom(phone_control):
    return {
        "#box-company": [FakeElement()],
        NAME_XPATH: [FakeElement(" Acme Sp. z o.o. ")],
        ADDRESS_XPATH: [FakeElement("ul. Prosta 1\n    00-001   Warszawa")],
        WEBSITE_ITEM_XPATH: [FakeElement(children={"a": [link("https://acme.pl", "acme.pl")]})],
        "#box-company .company-phone": [phone_control],
        "#box-company .company-email": [revealing("Pokaż e-mail", "mailto:biuro@acme.pl")],
    }


def test_multi_komputer_full_record():
    adapter = MultiKomputerAdapter(politeness=FAST_POLITENESS)
    page = make_page(_company_dom(revealing("Pokaż telefon", "tel:+48 600 100 200")))

    record = asyncio.run(adapter.extract_record(page, "https://www.multi-komputer.pl/firma/acme"))

    assert record == {
        "profileUrl": "https://www.multi-komputer.pl/firma/acme",
        "name": "Acme Sp. z o.o.",
        "address": "ul. Prosta 1 00-001 Warszawa",
        "website": "https://acme.pl",
        "phone": "+48 600 100 200",
        "email": "biuro@acme.pl",
    }


def test_multi_komputer_failed_reveal_leaves_other_fields():
    def explode(element):
        raise RuntimeError("element is not attached to the DOM")

    adapter = MultiKomputerAdapter(politeness=FAST_POLITENESS)
    page = make_page(_company_dom(FakeElement("Pokaż telefon", on_click=explode)))

    record = asyncio.run(adapter.extract_record(page, "https://www.multi-komputer.pl/firma/acme"))

    assert record["phone"] is None
    assert record["name"] == "Acme Sp. z o.o."
    assert record["website"] == "https://acme.pl"
    assert record["email"] == "biuro@acme.pl"


def test_multi_komputer_missing_box_gives_empty_record():
    adapter = MultiKomputerAdapter(politeness=FAST_POLITENESS)
    record = asyncio.run(adapter.extract_record(make_page({}), "https://www.multi-komputer.pl/x"))
    assert record == adapter.empty_record("https://www.multi-komputer.pl/x")
    assert set(record) == {"profileUrl", "name", "address", "website", "phone", "email"}


# ---------------------------------------------------------------------------
# oferia
# ---------------------------------------------------------------------------


def test_oferia_listing_urls_keep_filters():
    adapter = OferiaAdapter()
    base = "https://oferia.com.pl/pl/zleceniobiorcy?category=&city=&q="
    assert adapter.build_listing_url(1) == base
    assert adapter.build_listing_url(3) == base + "&page=3"


def test_oferia_contacts_from_links():
    page = make_page(
        {
            ".contact-card": [
                FakeElement(
                    children={
                        ".contact-item": [
                            FakeElement("Zadzwoń", children={"a": [link("tel:600100200")]}),
                            FakeElement("Napisz", children={"a": [link("mailto:jan@firma.pl")]}),
                        ]
                    }
                )
            ],
            ".profile-categories": [
                FakeElement(
                    children={
                        "a[href]": [
                            link("/pl/zleceniobiorcy/remonty"),
                            link("https://oferia.com.pl/pl/zleceniobiorcy/hydraulik"),
                            link("/pl/zleceniobiorcy/remonty"),
                        ]
                    }
                )
            ],
        }
    )

    record = asyncio.run(OferiaAdapter().extract_record(page, "https://oferia.com.pl/pl/jan"))

    assert record["phone"] == "600100200"
    assert record["email"] == "jan@firma.pl"
    assert record["categoryLinks"] == [
        "https://oferia.com.pl/pl/zleceniobiorcy/remonty",
        "https://oferia.com.pl/pl/zleceniobiorcy/hydraulik",
    ]


def test_oferia_contacts_positional_fallback():
    page = make_page(
        {
            ".contact-card": [
                FakeElement(
                    children={
                        ".contact-item": [
                            FakeElement(" +48 600 100 200 "),
                            FakeElement(" jan[at]firma.pl "),
                        ]
                    }
                )
            ],
        }
    )

    record = asyncio.run(OferiaAdapter().extract_record(page, "https://oferia.com.pl/pl/jan"))

    assert record["phone"] == "+48 600 100 200"
    assert record["email"] == "jan[at]firma.pl"
    assert record["categoryLinks"] == []


def test_oferia_relative_category_links_resolve_against_profile_page():
    page = make_page(
        {".profile-categories": [FakeElement(children={"a[href]": [link("grafika"), link("../pl/remonty")]})]}
    )
    page.url = "https://oferia.com.pl/pl/jan-kowalski"

    record = asyncio.run(OferiaAdapter().extract_record(page, "https://oferia.com.pl/pl/jan"))

    assert record["categoryLinks"] == [
        "https://oferia.com.pl/pl/grafika",
        "https://oferia.com.pl/pl/remonty",
    ]


def test_oferia_without_contact_card():
    record = asyncio.run(OferiaAdapter().extract_record(make_page({}), "https://oferia.com.pl/pl/x"))
    assert record == {
        "profileUrl": "https://oferia.com.pl/pl/x",
        "phone": None,
        "email": None,
        "categoryLinks": [],
    }


# ---------------------------------------------------------------------------
# useme
# ---------------------------------------------------------------------------


def test_useme_listing_urls():
    adapter = UsemeAdapter()
    assert adapter.build_listing_url(1) == "https://useme.com/pl/jobs/"
    assert adapter.build_listing_url(2) == "https://useme.com/pl/jobs/?page=2"


def test_useme_record_prefers_title_xpath():
    page = make_page(
        {
            TITLE_XPATH: [FakeElement("Sklep internetowy")],
            "#main-content h1": [FakeElement("ignored")],
        }
    )
    record = asyncio.run(UsemeAdapter().extract_record(page, "https://useme.com/pl/jobs/sklep,1/"))
    assert record == {
        "profileUrl": "https://useme.com/pl/jobs/sklep,1/",
        "title": "Sklep internetowy",
        "content": None,
    }


def test_useme_export_text():
    adapter = UsemeAdapter()
    assert adapter.export_text({"title": "T", "content": "Body"}) == "T\n\nBody"
    assert adapter.export_text({"title": None, "content": "Body"}) == "Body"
    assert adapter.export_text({"title": "T", "content": None}) == "T\n\n"
    assert adapter.export_text({"title": None, "content": None}) is None


# ---------------------------------------------------------------------------
# Extraction failures
# ---------------------------------------------------------------------------


class BrokenTitleAdapter(UsemeAdapter):
    async def extract_record(self, page, profile_url):
        raise PlaywrightError("locator.text_content: element is not attached to the DOM")


def test_extraction_failure_is_tagged_soft():
    adapter = BrokenTitleAdapter()
    url = "https://useme.com/pl/jobs/x,1/"

    with pytest.raises(ScrapeError) as excinfo:
        asyncio.run(adapter.extract(make_page({}), url))

    assert excinfo.value.kind is ErrorKind.EXTRACTION_SOFT
    assert classify_error(excinfo.value) is ErrorKind.EXTRACTION_SOFT
    assert excinfo.value.url == url
    assert isinstance(excinfo.value.__cause__, PlaywrightError)


def test_dead_page_during_extraction_stays_session_fatal():
    page = make_page({})
    page.closed = True

    with pytest.raises(PlaywrightError, match=CLOSED_MESSAGE):
        asyncio.run(UsemeAdapter().extract(page, "https://useme.com/pl/jobs/x,1/"))


def test_extract_passes_records_through():
    page = make_page({TITLE_XPATH: [FakeElement("Logo")]})
    record = asyncio.run(UsemeAdapter().extract(page, "https://useme.com/pl/jobs/logo,2/"))
    assert record["title"] == "Logo"
