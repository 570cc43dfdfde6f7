"""
scrapers/browser_session.py

PERSISTENT BROWSER SESSION SUPERVISOR
=====================================

Owns the single persistent Chrome context a scrape run uses and guarantees
that "give me a working tab" never fails permanently because the browser
crashed or was closed.

Responsibilities:
├── Launch a persistent context bound to a fixed user-data directory
│     (cookies / login state reused across runs)
├── Cheap liveness check for the current context
├── Best-effort, idempotent close + forced recreation
├── Single-tab page acquisition with bounded retries
└── PageLease: scoped hold on the tab used for one unit of work

Usage by ScraperEngine:
    supervisor = SessionSupervisor(profile_dir, output_dir)
    async with supervisor.lease() as lease:
        await navigate(lease, url)
        ...
    await supervisor.shutdown()
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional

from playwright.async_api import BrowserContext, Page, Playwright, async_playwright

from config.settings import (
    BrowserConfig,
    RetryConfig,
    browser_config as default_browser_config,
    retry_config as default_retry_config,
)
from Utils.ratelimit import backoff_wait
from .errors import is_session_fatal

LOG = logging.getLogger("browser_session")

__all__ = ["SessionSupervisor", "PageLease", "Launcher", "is_session_valid"]

# launcher(profile_dir, **launch_options) -> BrowserContext
Launcher = Callable[..., Awaitable[BrowserContext]]


def is_session_valid(context: Optional[BrowserContext]) -> bool:
    """Return True iff ``context`` has a browser and can enumerate its pages.

    Any exception raised by the check means "invalid"; this never raises.
    """
    if context is None:
        return False
    try:
        if context.browser is None:
            return False
        context.pages
        return True
    except Exception:
        return False


class SessionSupervisor:
    """Lazily launches, checks and recreates the run's browser context.

    Exactly one context is alive per supervisor. Nothing else keeps a
    long-lived reference to it; callers obtain tabs through
    :meth:`acquire_page` or :meth:`lease`.
    """

    def __init__(
        self,
        profile_dir: Optional[str] = None,
        output_dir: Optional[str] = None,
        launcher: Optional[Launcher] = None,
        browser: Optional[BrowserConfig] = None,
        retry: Optional[RetryConfig] = None,
    ) -> None:
        self.browser_config = browser or default_browser_config
        self.retry_config = retry or default_retry_config
        self.profile_dir = Path(profile_dir or self.browser_config.profile_dir)
        self.output_dir = Path(output_dir) if output_dir else None
        self._launcher = launcher
        self._playwright: Optional[Playwright] = None
        self._context: Optional[BrowserContext] = None
        self.launch_count = 0

    # ------------------------------------------------------------------ #
    # LAUNCH
    # ------------------------------------------------------------------ #

    def _launch_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {
            "headless": self.browser_config.headless,
            "viewport": {
                "width": self.browser_config.viewport_width,
                "height": self.browser_config.viewport_height,
            },
            "args": list(self.browser_config.launch_args),
        }
        if self.browser_config.channel:
            options["channel"] = self.browser_config.channel
        return options

    async def _launch(self) -> BrowserContext:
        options = self._launch_options()
        if self._launcher is not None:
            return await self._launcher(str(self.profile_dir), **options)

        if self._playwright is None:
            self._playwright = await async_playwright().start()
        return await self._playwright.chromium.launch_persistent_context(
            str(self.profile_dir), **options
        )

    def _on_context_close(self, context: BrowserContext) -> None:
        if context is self._context:
            LOG.info("Browser context was closed, will recreate on next use")
            self._context = None

    # ------------------------------------------------------------------ #
    # PUBLIC API
    # ------------------------------------------------------------------ #

    @property
    def context(self) -> Optional[BrowserContext]:
        """Current context, or ``None`` when absent."""
        return self._context

    def is_valid(self) -> bool:
        """Check the current context with :func:`is_session_valid`."""
        return is_session_valid(self._context)

    async def acquire_session(self) -> BrowserContext:
        """Return a live context, launching a fresh one if needed."""
        if is_session_valid(self._context):
            return self._context  # type: ignore[return-value]

        await self.close()

        LOG.info("Creating new browser context | profile_dir=%s", self.profile_dir)
        self.profile_dir.mkdir(parents=True, exist_ok=True)
        context = await self._launch()
        self.launch_count += 1
        self._context = context

        if self.output_dir is not None:
            self.output_dir.mkdir(parents=True, exist_ok=True)

        context.on("close", self._on_context_close)
        return context

    async def force_recreate(self) -> BrowserContext:
        """Close the current context unconditionally and launch a new one."""
        LOG.warning("Force closing and recreating browser context...")
        await self.close()
        await backoff_wait("force_recreate", self.retry_config.recreate_delay)
        return await self.acquire_session()

    async def close(self) -> None:
        """Best-effort close of the current context. Safe to call repeatedly."""
        context, self._context = self._context, None
        if context is None:
            return
        try:
            await context.close()
        except Exception as e:
            LOG.debug("Ignoring error while closing browser context: %s", e)

    async def shutdown(self) -> None:
        """Close the context and stop the Playwright driver."""
        await self.close()
        playwright, self._playwright = self._playwright, None
        if playwright is None:
            return
        try:
            await playwright.stop()
            LOG.info("Playwright driver stopped")
        except Exception as e:
            LOG.warning("Error during Playwright shutdown: %s", e)

    async def acquire_page(self, context: Optional[BrowserContext] = None) -> Page:
        """Return the run's single usable tab, opening one if necessary.

        Errors that signal a broken session, or running out of attempts,
        force a new context; other errors are retried on the same context
        after a short wait. Raises the last error once the budget is spent.
        """
        max_retries = self.retry_config.page_acquire_max_retries
        if context is None:
            context = await self.acquire_session()

        retry_count = 0
        while True:
            try:
                pages = context.pages
                if pages and not pages[0].is_closed():
                    return pages[0]
                return await context.new_page()
            except Exception as e:
                if is_session_fatal(e) or retry_count >= max_retries:
                    LOG.warning(
                        "Failed to get/create page (attempt %d), forcing context recreation: %s",
                        retry_count + 1,
                        e,
                    )
                    context = await self.force_recreate()
                    if retry_count >= max_retries:
                        raise
                else:
                    LOG.debug("Page acquisition attempt %d failed: %s", retry_count + 1, e)
                await backoff_wait("acquire_page", self.retry_config.acquire_retry_delay)
                retry_count += 1

    def lease(self) -> "PageLease":
        """Scoped hold on the run's tab: ``async with supervisor.lease() as lease``."""
        return PageLease(self)


class PageLease:
    """Scoped acquisition of the engine's single tab.

    ``page`` is only meaningful inside the ``async with`` block. Recovery
    helpers swap ``page`` in place so callers always read the live tab.
    """

    def __init__(self, supervisor: SessionSupervisor) -> None:
        self.supervisor = supervisor
        self.page: Optional[Page] = None

    async def __aenter__(self) -> "PageLease":
        context = await self.supervisor.acquire_session()
        self.page = await self.supervisor.acquire_page(context)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        page, self.page = self.page, None
        if exc is not None and is_session_fatal(exc):
            LOG.warning("Lease released after session failure: %s", exc)
            return
        try:
            if page is not None and page.is_closed():
                LOG.info("Leased tab was closed before release")
        except Exception as e:
            LOG.debug("Could not validate leased tab on release: %s", e)

    async def ensure_live(self) -> Page:
        """Re-acquire the tab if it or its context has died."""
        stale = self.page is None or not self.supervisor.is_valid()
        if not stale:
            try:
                stale = self.page.is_closed()  # type: ignore[union-attr]
            except Exception:
                stale = True
        if stale:
            LOG.info("Page/context was closed, recreating...")
            context = await self.supervisor.acquire_session()
            self.page = await self.supervisor.acquire_page(context)
        return self.page  # type: ignore[return-value]

    async def recover(self) -> Page:
        """Force a new session and take its tab."""
        context = await self.supervisor.force_recreate()
        self.page = await self.supervisor.acquire_page(context)
        return self.page
