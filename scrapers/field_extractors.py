"""Selector-based field extraction helpers shared by the site adapters.

Plain lookups (:func:`first_text`, :func:`first_attr`) return ``None`` when
nothing matches but let browser errors propagate, so a dead tab fails the
whole profile visit. Reveal-on-click lookups never raise: a slow or missing
control resolves the field to ``None``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Sequence, Tuple, TypeVar

from playwright.async_api import Locator, Page

from config.settings import politeness_config
from Utils.normalise_dedupe import clean_text, strip_contact_scheme
from Utils.ratelimit import politeness_wait

logger = logging.getLogger(__name__)

__all__ = [
    "first_text",
    "first_attr",
    "href_or_text",
    "with_short_timeout",
    "reveal_on_click",
]

T = TypeVar("T")


async def first_text(root: Any, *selectors: Optional[str]) -> Optional[str]:
    """Trimmed text of the first match of the first selector that yields any.

    Args:
        root: A ``Page`` or ``Locator`` to scope the lookup to.
        selectors: Primary selector first, looser fallbacks after. ``None``
            entries are skipped.

    Returns:
        The text, or ``None`` if no selector matches or all texts are empty.
    """
    for selector in selectors:
        if not selector:
            continue
        locator = root.locator(selector)
        if await locator.count() == 0:
            continue
        text = clean_text(await locator.first.text_content())
        if text:
            return text
    return None


async def first_attr(root: Any, selector: str, name: str) -> Optional[str]:
    """Trimmed attribute ``name`` of the first match of ``selector``, if any."""
    locator = root.locator(selector)
    if await locator.count() == 0:
        return None
    return clean_text(await locator.first.get_attribute(name))


async def href_or_text(locator: Locator) -> Optional[str]:
    """Prefer the element's ``href`` (contact scheme stripped) over its text."""
    href = strip_contact_scheme(await locator.get_attribute("href"))
    if href:
        return href
    return clean_text(await locator.text_content())


async def with_short_timeout(
    seconds: float, fn: Callable[[], Awaitable[T]]
) -> Optional[T]:
    """Run ``fn()`` under a time budget; timeout or any error yields ``None``."""
    try:
        return await asyncio.wait_for(fn(), timeout=seconds)
    except asyncio.TimeoutError:
        logger.debug("with_short_timeout: budget of %.1fs exceeded", seconds)
        return None
    except Exception as e:
        logger.debug("with_short_timeout: %s", e)
        return None


async def reveal_on_click(
    page: Page,
    triggers: Sequence[str],
    value_selectors: Sequence[str],
    settle: Optional[Tuple[float, float]] = None,
    timeout: Optional[float] = None,
) -> Optional[str]:
    """Click a reveal control, wait for the real value, then read it.

    Args:
        page: Loaded detail page.
        triggers: Candidate selectors for the reveal control; the first one
            present on the page is clicked.
        value_selectors: Selectors re-queried after the click; the first
            present one is read with :func:`href_or_text`.
        settle: Random wait range after the click; defaults to
            ``PolitenessConfig.reveal_settle``.
        timeout: Budget for the whole sequence; defaults to
            ``PolitenessConfig.reveal_timeout``.

    Returns:
        The revealed value, or ``None`` when no control exists, the budget
        runs out, or any step fails.
    """
    settle = settle if settle is not None else politeness_config.reveal_settle
    timeout = timeout if timeout is not None else politeness_config.reveal_timeout

    async def _reveal() -> Optional[str]:
        control = None
        for selector in triggers:
            candidate = page.locator(selector).first
            if await candidate.count() > 0:
                control = candidate
                break
        if control is None:
            return None

        await control.click()
        await politeness_wait("reveal_settle", settle)

        for selector in value_selectors:
            value_locator = page.locator(selector).first
            if await value_locator.count() > 0:
                return await href_or_text(value_locator)
        return None

    return await with_short_timeout(timeout, _reveal)
