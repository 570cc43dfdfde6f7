"""Navigation with session-aware retries.

``navigate`` loads one URL into the leased tab. A session-fatal failure
(tab, context or browser gone) triggers a forced session recreation and a
retry on the new tab; a transient failure (timeout, connection reset) is
retried on the same tab. Anything else is raised immediately so the caller
can log it and move on to the next item.
"""

from __future__ import annotations

import logging
from typing import Optional

from config.settings import BrowserConfig, RetryConfig
from Utils.ratelimit import backoff_wait
from .browser_session import PageLease
from .errors import ErrorKind, ScrapeError, classify_error

logger = logging.getLogger(__name__)

__all__ = ["navigate"]


async def navigate(
    lease: PageLease,
    url: str,
    max_retries: Optional[int] = None,
    browser: Optional[BrowserConfig] = None,
    retry: Optional[RetryConfig] = None,
) -> None:
    """Load ``url`` into ``lease.page`` and wait for network idle.

    Args:
        lease: Active page lease; ``lease.page`` may be replaced on recovery.
        url: Absolute URL to open.
        max_retries: Extra attempts after the first; defaults to
            ``RetryConfig.navigation_max_retries`` (2).
        browser: Overrides the supervisor's navigation timeout source.
        retry: Overrides the supervisor's retry budgets and delays.

    Raises:
        ScrapeError: carrying the failure's :class:`ErrorKind` and ``url``,
            once retries are exhausted, the session cannot be recreated, or
            on the first error that is neither session-fatal nor transient.
            The underlying browser error is chained as ``__cause__``.
    """
    browser = browser or lease.supervisor.browser_config
    retry = retry or lease.supervisor.retry_config
    if max_retries is None:
        max_retries = retry.navigation_max_retries

    retry_count = 0
    while True:
        try:
            page = await lease.ensure_live()
            await page.goto(
                url,
                wait_until="networkidle",
                timeout=browser.navigation_timeout_ms,
            )
            return
        except Exception as e:
            kind = classify_error(e)
            if kind not in (ErrorKind.SESSION_FATAL, ErrorKind.NAVIGATION_TRANSIENT):
                raise ScrapeError(kind, f"Navigation failed: {e}", url=url) from e
            if retry_count >= max_retries:
                raise ScrapeError(
                    kind,
                    f"Navigation failed after {retry_count + 1} attempts: {e}",
                    url=url,
                ) from e

            logger.warning(
                "Navigation failed (attempt %d/%d, %s) | url=%s | %s",
                retry_count + 1,
                max_retries + 1,
                kind.value,
                url,
                e,
            )
            if kind is ErrorKind.SESSION_FATAL:
                try:
                    await lease.recover()
                except Exception as recreate_err:
                    logger.error(
                        "Failed to recreate session during navigation | url=%s | %s",
                        url,
                        recreate_err,
                    )
                    raise ScrapeError(
                        ErrorKind.SESSION_FATAL,
                        f"Navigation failed, session could not be recreated: {e}",
                        url=url,
                    ) from recreate_err
            retry_count += 1
            await backoff_wait("navigate", retry.navigation_retry_delay)
