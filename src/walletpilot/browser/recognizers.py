"""Ordered selector fallback chains.

The wallet UI changes between extension versions and locales, so most
steps have several ways to find "the confirm button".  A step is
described by an ordered tuple of :class:`Recognizer` objects; the first
one present on the page handles it.  The helpers here never raise for a
missing element; they return a :class:`~walletpilot.models.steps.StepOutcome`
and leave it to the flow to decide whether the step was required.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, Sequence

from playwright.async_api import Error as PlaywrightError

from walletpilot.browser.waits import POLL_INTERVAL, SHORT_TIMEOUT, wait_for_any_selector
from walletpilot.exceptions import WaitTimeoutError
from walletpilot.models.steps import StepOutcome

if TYPE_CHECKING:
    from playwright.async_api import Locator, Page

logger = logging.getLogger(__name__)

# Floor for click/fill timeouts once an element is known to be present.
MIN_ACTION_TIMEOUT = 1.0


@dataclass(frozen=True)
class Recognizer:
    """A named way of finding one UI element."""

    name: str
    selector: str

    def locate(self, page: Page) -> Locator:
        return page.locator(self.selector).first

    async def present(self, page: Page) -> bool:
        return await page.locator(self.selector).count() > 0


def text_button(label: str) -> Recognizer:
    """Recognizer for a ``<button>`` whose text contains *label*."""
    return Recognizer(f"button '{label}'", f"button:has-text({quote_text(label)})")


def quote_text(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _names(recognizers: Sequence[Recognizer]) -> tuple[str, ...]:
    return tuple(r.name for r in recognizers)


async def _first_present(
    page: Page, recognizers: Sequence[Recognizer], timeout: float, interval: float = POLL_INTERVAL
) -> int | None:
    """Index of the first recognizer present within *timeout*, else ``None``.

    A page that closed while waiting (a popup dismissing itself) has
    nothing present.
    """
    try:
        return await wait_for_any_selector(page, [r.selector for r in recognizers], timeout, interval)
    except WaitTimeoutError:
        return None
    except PlaywrightError:
        if page.is_closed():
            logger.debug("Page closed while waiting for %s", ", ".join(_names(recognizers)))
            return None
        raise


def _absent(step: str, tried: tuple[str, ...], optional: bool) -> StepOutcome:
    if optional:
        logger.debug("Optional step %s skipped: nothing matched", step)
        return StepOutcome.skipped(step, "no recognizer matched", tried)
    logger.warning("Step %s failed: none of %s present", step, ", ".join(tried))
    return StepOutcome.failed(step, "no recognizer matched", tried)


async def _act_first(
    page: Page,
    step: str,
    recognizers: Sequence[Recognizer],
    act: Callable[[Locator, float], Awaitable[None]],
    timeout: float,
    optional: bool,
    interval: float,
) -> StepOutcome:
    tried = _names(recognizers)
    start = await _first_present(page, recognizers, timeout, interval)
    if start is None:
        return _absent(step, tried, optional)

    action_timeout_ms = max(timeout, MIN_ACTION_TIMEOUT) * 1000
    errors: list[str] = []
    for recognizer in recognizers[start:]:
        if not await recognizer.present(page):
            continue
        try:
            await act(recognizer.locate(page), action_timeout_ms)
        except PlaywrightError as exc:
            logger.debug("Step %s via %s failed: %s", step, recognizer.name, exc)
            errors.append(f"{recognizer.name}: {exc}")
            continue
        logger.debug("Step %s handled by %s", step, recognizer.name)
        return StepOutcome.succeeded(step, recognizer.name, tried)

    reason = "; ".join(errors) or "matched element vanished"
    if optional:
        return StepOutcome.skipped(step, reason, tried)
    logger.warning("Step %s failed: %s", step, reason)
    return StepOutcome.failed(step, reason, tried)


async def click_first(
    page: Page,
    step: str,
    recognizers: Sequence[Recognizer],
    *,
    timeout: float = SHORT_TIMEOUT,
    optional: bool = False,
    interval: float = POLL_INTERVAL,
) -> StepOutcome:
    """Click the highest-priority recognizer that is present.

    Waits up to *timeout* for any candidate to appear, then clicks starting
    from the first present one, falling through to later recognizers if a
    click fails.

    Args:
        page: Page to act on.
        step: Step name recorded in the outcome.
        recognizers: Candidates in priority order.
        timeout: Seconds to wait for a candidate; ``0`` checks once.
        optional: Report absence as skipped rather than failed.
        interval: Seconds between presence checks.
    """

    async def _click(locator: Locator, timeout_ms: float) -> None:
        await locator.click(timeout=timeout_ms)

    return await _act_first(page, step, recognizers, _click, timeout, optional, interval)


async def fill_first(
    page: Page,
    step: str,
    recognizers: Sequence[Recognizer],
    value: str,
    *,
    timeout: float = SHORT_TIMEOUT,
    optional: bool = False,
    interval: float = POLL_INTERVAL,
) -> StepOutcome:
    """Fill *value* into the highest-priority recognizer that is present."""

    async def _fill(locator: Locator, timeout_ms: float) -> None:
        await locator.fill(value, timeout=timeout_ms)

    return await _act_first(page, step, recognizers, _fill, timeout, optional, interval)


async def click_if_present(page: Page, step: str, recognizer: Recognizer) -> StepOutcome:
    """Best-effort single click: skipped when absent, never failed."""
    return await click_first(page, step, [recognizer], timeout=0, optional=True)
