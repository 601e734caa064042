"""Condition polling and multi-candidate waits.

Every wallet flow is built from three primitives:

* :func:`poll_until` — re-evaluate an async predicate at a fixed interval
  until it holds or the timeout elapses.
* :func:`wait_for_any` — evaluate several predicates in declaration order
  on each tick and return the index of the first one that holds.  Two
  predicates that both hold within the same tick resolve to the one
  declared first, regardless of which became true earlier.
* :func:`wait_for_interactable` — wait for an element to be visible, then
  poll until it is enabled.

All three raise :class:`~walletpilot.exceptions.WaitTimeoutError` on
timeout; callers decide whether that is fatal or whether to carry on.
Timeouts are in seconds.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Awaitable, Callable, Sequence

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeout

from walletpilot.exceptions import WaitTimeoutError

if TYPE_CHECKING:
    from playwright.async_api import Locator, Page

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
SHORT_TIMEOUT = 5.0
POLL_INTERVAL = 0.1
ENABLED_POLL_INTERVAL = 0.05

Condition = Callable[[], Awaitable[bool]]


async def poll_until(
    condition: Condition,
    timeout: float = DEFAULT_TIMEOUT,
    interval: float = POLL_INTERVAL,
    *,
    description: str = "condition",
) -> None:
    """Poll *condition* until it returns true.

    Args:
        condition: Zero-argument coroutine function returning a bool.
        timeout: Seconds to keep polling.
        interval: Seconds to sleep between evaluations.
        description: Used in the timeout message.

    Raises:
        WaitTimeoutError: If the condition never held within *timeout*.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while True:
        if await condition():
            return
        if loop.time() >= deadline:
            raise WaitTimeoutError(timeout, description)
        await asyncio.sleep(interval)


async def wait_for_any(
    conditions: Sequence[Condition],
    timeout: float = DEFAULT_TIMEOUT,
    interval: float = POLL_INTERVAL,
    *,
    description: str = "any condition",
) -> int:
    """Return the index of the first condition that holds.

    Each tick evaluates every condition in order and stops at the first
    true one, so ties inside a tick go to the earliest declaration.

    Raises:
        WaitTimeoutError: If no condition held within *timeout*.
    """
    if not conditions:
        raise ValueError("wait_for_any needs at least one condition")

    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while True:
        for index, condition in enumerate(conditions):
            if await condition():
                return index
        if loop.time() >= deadline:
            raise WaitTimeoutError(timeout, description)
        await asyncio.sleep(interval)


def selector_present(page: Page, selector: str) -> Condition:
    """Build a condition that holds while *selector* matches at least one node."""

    async def _present() -> bool:
        return await page.locator(selector).count() > 0

    return _present


async def wait_for_any_selector(
    page: Page,
    selectors: Sequence[str],
    timeout: float = DEFAULT_TIMEOUT,
    interval: float = POLL_INTERVAL,
) -> int:
    """Return the index of the first selector present on *page*."""
    return await wait_for_any(
        [selector_present(page, s) for s in selectors],
        timeout,
        interval,
        description=f"any of selectors [{', '.join(selectors)}]",
    )


async def wait_for_interactable(locator: Locator, timeout: float = DEFAULT_TIMEOUT) -> None:
    """Wait for *locator* to be visible and then enabled.

    The visibility wait and the enabled poll share one *timeout* budget.

    Raises:
        WaitTimeoutError: If the element is not visible or not enabled in time.
    """
    loop = asyncio.get_running_loop()
    started = loop.time()
    try:
        await locator.wait_for(state="visible", timeout=timeout * 1000)
    except PlaywrightTimeout as exc:
        raise WaitTimeoutError(timeout, "element visible") from exc

    remaining = max(0.0, timeout - (loop.time() - started))
    await poll_until(
        locator.is_enabled,
        remaining,
        ENABLED_POLL_INTERVAL,
        description="element enabled",
    )


async def wait_for_detached(page: Page, selector: str, timeout: float = DEFAULT_TIMEOUT) -> bool:
    """Wait for *selector* to leave the DOM.

    Returns ``False`` instead of raising when the element is still attached
    after *timeout*; an element that never existed, or whose page has
    closed, counts as detached.
    """
    try:
        await page.wait_for_selector(selector, state="detached", timeout=timeout * 1000)
        return True
    except PlaywrightTimeout:
        logger.debug("Still attached after %.1fs: %s", timeout, selector)
        return False
    except PlaywrightError:
        # Notification popups close themselves once the action is done.
        if page.is_closed():
            return True
        raise
