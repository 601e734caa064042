"""Wallet action controller — bounded UI flows against the extension.

Every action follows the same shape: locate the surface (the
notification popup if one is open, else the wallet home page), perform
one or two steps through recognizer chains, then verify completion.
Steps are recorded in a :class:`~walletpilot.models.steps.FlowReport`
returned to the caller.

Actions are serialized by a per-controller lock: two overlapping
requests would otherwise interleave their clicks over the same popup.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Sequence

from playwright.async_api import Error as PlaywrightError

from walletpilot.browser.popup import action_surface
from walletpilot.browser.recognizers import click_first, click_if_present, fill_first
from walletpilot.browser.waits import poll_until, wait_for_any_selector, wait_for_detached
from walletpilot.exceptions import WaitTimeoutError
from walletpilot.models.steps import FlowReport, StepOutcome
from walletpilot.wallet import selectors as sel
from walletpilot.wallet.models import NetworkConfig, WalletState

if TYPE_CHECKING:
    from playwright.async_api import BrowserContext, Locator, Page

    from walletpilot.browser.recognizers import Recognizer
    from walletpilot.settings.config import WaitSettings

logger = logging.getLogger(__name__)

# Short check for optional controls that are either already rendered or absent.
OPTIONAL_CHECK_TIMEOUT = 1.0
VALIDATION_POLL_INTERVAL = 0.2
# Per-read cap for the network indicator; the surrounding poll owns the timeout.
DISPLAY_READ_TIMEOUT_MS = 500


def extension_url(extension_id: str, path: str = "home.html") -> str:
    return f"chrome-extension://{extension_id}/{path}"


async def _is_enabled(locator: Locator) -> bool:
    try:
        return await locator.is_enabled()
    except PlaywrightError:
        return False


class WalletController:
    """Drives one wallet page.  Exactly one instance exists per session.

    Args:
        context: Browser context the extension runs in.
        page: Wallet home page (``chrome-extension://<id>/home.html``).
        extension_id: The extension's id.
        waits: Timeout settings (defaults from ``get_settings()``).
    """

    def __init__(
        self,
        context: BrowserContext,
        page: Page,
        extension_id: str,
        waits: WaitSettings | None = None,
    ) -> None:
        if waits is None:
            from walletpilot.settings import get_settings

            waits = get_settings().waits
        self._context = context
        self._page = page
        self.extension_id = extension_id
        self._waits = waits
        self._interval = waits.poll_interval_sec
        self._lock = asyncio.Lock()

    @classmethod
    async def open(
        cls,
        context: BrowserContext,
        extension_id: str,
        waits: WaitSettings | None = None,
    ) -> "WalletController":
        """Open the wallet home page in a new tab and wait for the UI to render."""
        page = await context.new_page()
        controller = cls(context, page, extension_id, waits)
        await page.goto(controller.home_url)
        await controller.wait_until_ready()
        return controller

    @property
    def page(self) -> Page:
        return self._page

    @property
    def home_url(self) -> str:
        return extension_url(self.extension_id)

    @property
    def busy(self) -> bool:
        """True while an action holds the controller."""
        return self._lock.locked()

    async def wait_until_ready(self) -> bool:
        """Wait for any known screen of the extension; ``False`` if none showed."""
        timeout = self._waits.ready_timeout_sec
        await self._page.wait_for_load_state("domcontentloaded", timeout=timeout * 1000)
        try:
            await wait_for_any_selector(self._page, sel.READY_MARKERS, timeout, self._interval)
            return True
        except WaitTimeoutError:
            logger.warning("Wallet UI did not show a known screen within %.0fs", timeout)
            return False

    def _surface(self) -> Page:
        return action_surface(self._context.pages, self._page)

    async def _click(
        self, page: Page, step: str, recognizers: Sequence[Recognizer], timeout: float, *, optional: bool = False
    ) -> StepOutcome:
        return await click_first(page, step, recognizers, timeout=timeout, optional=optional, interval=self._interval)

    # ------------------------------------------------------------------
    # Lock state
    # ------------------------------------------------------------------

    async def is_locked(self) -> bool:
        """Whether the home page currently shows the lock screen."""
        return await self._page.locator(sel.UNLOCK_PAGE).count() > 0

    async def state(self) -> WalletState:
        return WalletState.LOCKED if await self.is_locked() else WalletState.UNLOCKED

    async def unlock(self, password: str) -> FlowReport:
        """Unlock the wallet.  A no-op when the lock screen is not showing.

        Raises:
            NoRecognizerMatchedError: If the password field or submit is missing.
            WaitTimeoutError: If the main screen does not appear afterwards.
        """
        async with self._lock:
            report = FlowReport("unlock")
            if not await self.is_locked():
                report.add(StepOutcome.skipped("unlock", "already unlocked"))
                return report

            page = self._page
            short = self._waits.short_timeout_sec
            report.require(
                await fill_first(
                    page, "password", sel.UNLOCK_PASSWORD, password, timeout=short, interval=self._interval
                )
            )
            report.require(await self._click(page, "submit", sel.UNLOCK_SUBMIT, short))
            await wait_for_any_selector(page, [sel.ACCOUNT_MENU], self._waits.default_timeout_sec, self._interval)
            report.add(StepOutcome.succeeded("main screen"))
            logger.info("Wallet unlocked")
            return report

    # ------------------------------------------------------------------
    # Popup actions
    # ------------------------------------------------------------------

    async def connect_to_dapp(self) -> FlowReport:
        """Approve a site connection request.

        Handles both one-step ("Connect") and two-step ("Next" then
        "Connect") consent screens; either click may be absent.
        """
        async with self._lock:
            report = FlowReport("connect")
            page = self._surface()
            short = self._waits.short_timeout_sec
            report.add(await self._click(page, "next", sel.CONNECT_FIRST_STEP, short, optional=True))
            report.add(await self._click(page, "connect", sel.CONNECT_SECOND_STEP, short, optional=True))
            if await wait_for_detached(page, sel.FOOTER_NEXT.selector, short):
                report.add(StepOutcome.succeeded("dialog closed"))
            else:
                report.add(StepOutcome.skipped("dialog closed", "footer still attached"))
            logger.info("Connect flow finished (skipped: %s)", report.skipped or "none")
            return report

    async def confirm_signature(self) -> FlowReport:
        """Confirm a signature request, scrolling first when the UI asks for it."""
        async with self._lock:
            report = FlowReport("sign")
            page = self._surface()
            report.add(await self._click(page, "scroll", [sel.SIGNATURE_SCROLL], OPTIONAL_CHECK_TIMEOUT, optional=True))
            report.require(await self._click(page, "confirm", sel.SIGN_CONFIRM, self._waits.default_timeout_sec))
            logger.info("Signature confirmed via %s", report.outcomes[-1].matched)
            return report

    async def reject_signature(self) -> FlowReport:
        async with self._lock:
            report = FlowReport("reject-sign")
            page = self._surface()
            report.require(await self._click(page, "reject", sel.SIGN_REJECT, self._waits.default_timeout_sec))
            logger.info("Signature rejected")
            return report

    async def confirm_transaction(self) -> FlowReport:
        async with self._lock:
            report = FlowReport("confirm-tx")
            page = self._surface()
            report.require(await self._click(page, "confirm", sel.TX_CONFIRM, self._waits.default_timeout_sec))
            logger.info("Transaction confirmed")
            return report

    async def reject_transaction(self) -> FlowReport:
        async with self._lock:
            report = FlowReport("reject-tx")
            page = self._surface()
            report.require(await self._click(page, "reject", sel.TX_REJECT, self._waits.default_timeout_sec))
            logger.info("Transaction rejected")
            return report

    # ------------------------------------------------------------------
    # Networks
    # ------------------------------------------------------------------

    async def add_network(self, network: NetworkConfig) -> FlowReport:
        """Add a custom network through the settings form.

        The extension validates the chain id with an RPC round-trip after
        it is typed; the form is polled until that validation settles (or
        a timeout passes) before the remaining fields are filled.

        Raises:
            WaitTimeoutError: If the add-network form never renders.
        """
        async with self._lock:
            report = FlowReport("add-network")
            page = self._page
            default = self._waits.default_timeout_sec
            short = self._waits.short_timeout_sec
            logger.info("Adding network: %s (chain %d)", network.name, network.chain_id)

            await page.goto(extension_url(self.extension_id, sel.ADD_NETWORK_ROUTE))
            await page.wait_for_load_state("domcontentloaded")
            await wait_for_any_selector(page, sel.NETWORK_FORM_ENTRY_MARKERS, default, self._interval)
            report.add(await click_if_present(page, "add manually", sel.ADD_MANUALLY))
            await wait_for_any_selector(page, [sel.NETWORK_NAME_INPUT], default, self._interval)

            save = page.locator(sel.NETWORK_SAVE).first
            await page.locator(sel.NETWORK_NAME_INPUT).first.fill(network.name)
            await page.locator(sel.NETWORK_RPC_INPUT).first.fill(network.rpc_url)
            await page.locator(sel.NETWORK_CHAIN_ID_INPUT).first.fill(str(network.chain_id))
            report.add(StepOutcome.succeeded("network fields"))

            async def validation_settled() -> bool:
                if await _is_enabled(save):
                    return True
                if await page.locator(sel.NETWORK_LOADING).count() > 0:
                    return False
                # Not loading: settled only if the chain id was rejected.
                return await page.locator(sel.NETWORK_CHAIN_ID_ERROR).count() > 0

            try:
                await poll_until(validation_settled, default, VALIDATION_POLL_INTERVAL, description="chain id validation")
                report.add(StepOutcome.succeeded("chain id validation"))
            except WaitTimeoutError:
                report.add(StepOutcome.skipped("chain id validation", "validation still pending; continuing"))

            await page.locator(sel.NETWORK_SYMBOL_INPUT).first.fill(network.symbol)
            if network.block_explorer_url:
                await page.locator(sel.NETWORK_EXPLORER_INPUT).first.fill(network.block_explorer_url)
                report.add(StepOutcome.succeeded("explorer url"))
            else:
                report.add(StepOutcome.skipped("explorer url", "not provided"))

            try:
                await poll_until(lambda: _is_enabled(save), short, self._interval, description="save enabled")
            except WaitTimeoutError:
                logger.debug("Save button still disabled; trying anyway")

            report.add(await self._click_save(save, short))

            try:
                await wait_for_any_selector(page, sel.POST_SAVE_MARKERS, default, self._interval)
                report.add(StepOutcome.succeeded("saved"))
            except WaitTimeoutError:
                report.add(StepOutcome.skipped("saved", "no confirmation marker observed"))

            report.add(await click_first(page, "dismiss", sel.POST_SAVE_DISMISS, timeout=0, optional=True))
            report.add(await click_if_present(page, "close popover", sel.POPOVER_CLOSE))
            logger.info('Network "%s" added', network.name)
            return report

    async def _click_save(self, save: Locator, timeout: float) -> StepOutcome:
        """Click save; fall back to a forced click, then to the Enter key."""
        try:
            await save.click(timeout=timeout * 1000)
            return StepOutcome.succeeded("save", "click")
        except PlaywrightError as e:
            logger.debug("Save click failed, forcing: %s", e)
        try:
            await save.click(force=True, timeout=timeout * 1000)
            return StepOutcome.succeeded("save", "forced click")
        except PlaywrightError as e:
            logger.debug("Forced save click failed, pressing Enter: %s", e)
        await self._page.keyboard.press("Enter")
        return StepOutcome.succeeded("save", "enter key")

    async def switch_network(self, network_name: str) -> FlowReport:
        """Select *network_name* in the network picker.

        Raises:
            NoRecognizerMatchedError: If the picker or the entry is missing.
        """
        async with self._lock:
            report = FlowReport("switch-network")
            page = self._page
            short = self._waits.short_timeout_sec

            report.require(await self._click(page, "open picker", [sel.NETWORK_DISPLAY], short))
            report.require(await self._click(page, "select network", sel.network_entry_chain(network_name), short))

            display = page.locator(sel.NETWORK_DISPLAY.selector).first

            async def shows_network() -> bool:
                try:
                    text = await display.text_content(timeout=DISPLAY_READ_TIMEOUT_MS)
                except PlaywrightError:
                    # Indicator missing or re-rendering while the picker closes.
                    return False
                return network_name in (text or "")

            try:
                await poll_until(shows_network, short, self._interval, description="network display update")
                report.add(StepOutcome.succeeded("network display"))
            except WaitTimeoutError:
                report.add(StepOutcome.skipped("network display", "indicator not updated"))
            logger.info('Switched to network "%s"', network_name)
            return report
