"""Utility functions for profile-link normalisation and deduplication and for
cleaning extracted text. Called by the harvester and the site adapters."""

import re
import logging
from typing import Iterable, Optional
from urllib.parse import urljoin, urlparse

logger = logging.getLogger(__name__)

__all__ = [
    "clean_text",
    "collapse_whitespace",
    "strip_contact_scheme",
    "absolute_url",
    "on_domain",
    "normalise_profile_links",
]

_SCHEME_RE = re.compile(r"^(tel|mailto):", re.IGNORECASE)


def clean_text(text: Optional[str]) -> Optional[str]:
    """Trim text; empty or missing text becomes ``None``."""
    if text is None:
        return None
    text = str(text).strip()
    return text or None


def collapse_whitespace(text: Optional[str]) -> Optional[str]:
    """Collapse whitespace/newlines runs into single spaces, then trim."""
    if text is None:
        return None
    return clean_text(re.sub(r"\s+", " ", str(text)))


def strip_contact_scheme(value: Optional[str]) -> Optional[str]:
    """Drop a leading ``tel:`` / ``mailto:`` and trim; empty becomes ``None``."""
    if value is None:
        return None
    return clean_text(_SCHEME_RE.sub("", str(value).strip()))


def absolute_url(href: Optional[str], base_url: str) -> Optional[str]:
    """Resolve ``href`` the way a browser would on the page at ``base_url``.

    ``javascript:`` markers, in-page anchors and empty hrefs give ``None``.
    """
    href = clean_text(href)
    if not href or href.lower().startswith("javascript:") or href.startswith("#"):
        return None
    if href.startswith("http://") or href.startswith("https://"):
        return href
    return urljoin(base_url, href)


def on_domain(url: str, domain: str) -> bool:
    """True if ``url``'s host is ``domain`` or one of its subdomains."""
    host = (urlparse(url).hostname or "").lower()
    domain = domain.lower()
    return host == domain or host.endswith("." + domain)


def _is_listing_self_link(url: str, listing_url: str) -> bool:
    listing_base = listing_url.split("?", 1)[0]
    return (
        url == listing_url
        or url == listing_base
        or url.startswith(listing_base + "?")
    )


def normalise_profile_links(
    hrefs: Iterable[Optional[str]],
    listing_url: str,
    allowed_domain: Optional[str] = None,
) -> list[str]:
    """Turn raw card hrefs into the ordered list of profile URLs to visit.

    Relative hrefs are resolved against ``listing_url``, the page they were
    read from. Drops ``javascript:`` markers and hosts outside
    ``allowed_domain``, deduplicates first-seen-wins and removes the listing
    page itself together with its query-string variants (``list?page=2``).
    """
    seen: set[str] = set()
    result: list[str] = []
    total = 0

    for href in hrefs:
        total += 1
        url = absolute_url(href, listing_url)
        if url is None:
            continue
        if allowed_domain and not on_domain(url, allowed_domain):
            continue
        if _is_listing_self_link(url, listing_url):
            continue
        if url in seen:
            continue
        seen.add(url)
        result.append(url)

    logger.debug(f"normalise_profile_links: {total} hrefs → {len(result)} profile urls")
    return result
