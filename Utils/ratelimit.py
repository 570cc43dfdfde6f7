"""Politeness and backoff waits. Called by the session supervisor,
navigation retrier, harvester and run controller between browser operations."""

import asyncio
import logging
import random
from typing import Tuple

logger = logging.getLogger(__name__)

__all__ = ["politeness_wait", "backoff_wait", "pick_delay"]


def pick_delay(delay_range: Tuple[float, float]) -> float:
    """Draw a uniformly random delay (seconds) from a ``(low, high)`` range."""
    low, high = delay_range
    if high <= low:
        return max(0.0, low)
    return random.uniform(low, high)


async def politeness_wait(label: str, delay_range: Tuple[float, float]) -> float:
    """Sleep a randomised delay to reduce load on / detection by the target site.

    Returns the number of seconds slept.
    """
    seconds = pick_delay(delay_range)
    logger.debug(f"politeness_wait: {seconds:.2f}s | {label}")
    if seconds > 0:
        await asyncio.sleep(seconds)
    if seconds > 10:
        logger.warning(f"Long politeness wait: {seconds:.1f}s for {label}")
    return seconds


async def backoff_wait(label: str, seconds: float) -> None:
    """Sleep a fixed retry backoff."""
    logger.debug(f"backoff_wait: {seconds:.2f}s | {label}")
    if seconds > 0:
        await asyncio.sleep(seconds)
