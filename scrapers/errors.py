"""Error taxonomy for the scraping engine.

Raw Playwright failures are classified exactly once, here, into a closed
set of :class:`ErrorKind` values. Retry and recovery code elsewhere
branches on the enum and never inspects error messages itself.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

logger = logging.getLogger(__name__)

__all__ = [
    "ErrorKind",
    "ScrapeError",
    "classify_error",
    "is_session_fatal",
    "SESSION_FATAL_MARKERS",
    "TRANSIENT_MARKERS",
]


class ErrorKind(str, Enum):
    """Recovery class of a failure."""

    SESSION_FATAL = "session_fatal"
    NAVIGATION_TRANSIENT = "navigation_transient"
    EXTRACTION_SOFT = "extraction_soft"
    UNKNOWN = "unknown"


# Case-sensitive substrings Playwright uses when the tab, context or
# browser process is gone.
SESSION_FATAL_MARKERS = (
    "closed",
    "Target page",
    "Failed to open",
    "Protocol error",
)

TRANSIENT_MARKERS = (
    "Timeout",
    "net::ERR_CONNECTION_RESET",
    "net::ERR_CONNECTION_ABORTED",
    "net::ERR_NETWORK_CHANGED",
    "net::ERR_TIMED_OUT",
)


class ScrapeError(Exception):
    """Engine-raised failure carrying an explicit :class:`ErrorKind`.

    Attributes:
        kind: Recovery class of the failure.
        url: URL being processed when the failure happened, if any.
    """

    def __init__(self, kind: ErrorKind, message: str, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.url = url


def classify_error(exc: BaseException) -> ErrorKind:
    """Map an exception raised by the browser capability onto an ErrorKind.

    Session-fatal markers win over everything else: a timeout reported
    against a closed target still needs a new session.
    """
    if isinstance(exc, ScrapeError):
        return exc.kind

    message = str(exc) or ""
    if any(marker in message for marker in SESSION_FATAL_MARKERS):
        return ErrorKind.SESSION_FATAL

    if isinstance(exc, (PlaywrightTimeoutError, asyncio.TimeoutError)):
        return ErrorKind.NAVIGATION_TRANSIENT
    if isinstance(exc, PlaywrightError) and any(
        marker in message for marker in TRANSIENT_MARKERS
    ):
        return ErrorKind.NAVIGATION_TRANSIENT

    return ErrorKind.UNKNOWN


def is_session_fatal(exc: BaseException) -> bool:
    """Shortcut for ``classify_error(exc) is ErrorKind.SESSION_FATAL``."""
    return classify_error(exc) is ErrorKind.SESSION_FATAL
