"""Onboarding state machine — first-run wallet import from a recovery phrase.

The extension's onboarding is a variable-length sequence of screens that
differs between releases: some builds show a metrics opt-out, some ask to
re-accept the terms, some go straight to the recovery-phrase form.  Each
screen is a state in :class:`~walletpilot.models.states.OnboardingState`;
each handler waits for its screen, acts, and returns the next state.
The branch after "import existing wallet" is decided by a first-match
wait over all candidate screens.

Required steps (reaching the recovery-phrase form, submitting the
password) fail the flow; optional clicks are attempted once and recorded
as skipped when their screen is absent.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Awaitable, Callable, Sequence

from playwright.async_api import Error as PlaywrightError

from walletpilot.browser.recognizers import Recognizer, click_first, click_if_present
from walletpilot.browser.waits import wait_for_any_selector, wait_for_interactable
from walletpilot.exceptions import NoRecognizerMatchedError, OnboardingError, WaitTimeoutError
from walletpilot.models.states import BRANCH_TARGETS, OnboardingState, TERMINAL_STATES, is_allowed
from walletpilot.models.steps import FlowReport, StepOutcome
from walletpilot.wallet import selectors as sel

if TYPE_CHECKING:
    from playwright.async_api import Page

    from walletpilot.settings.config import WaitSettings

logger = logging.getLogger(__name__)


def split_seed_phrase(seed_phrase: str) -> list[str]:
    """Split a recovery phrase on any whitespace."""
    return seed_phrase.split()


class OnboardingFlow:
    """Drive one onboarding run on an extension page.

    Args:
        page: The extension home page showing the onboarding screens.
        seed_phrase: Whitespace-separated recovery phrase.
        password: Password for the imported wallet.
        waits: Timeout settings (defaults from ``get_settings()``).
    """

    def __init__(
        self,
        page: Page,
        seed_phrase: str,
        password: str,
        waits: WaitSettings | None = None,
    ) -> None:
        if waits is None:
            from walletpilot.settings import get_settings

            waits = get_settings().waits
        self._page = page
        self._words = split_seed_phrase(seed_phrase)
        self._password = password
        self._waits = waits
        self._interval = waits.poll_interval_sec

        self.state = OnboardingState.INIT
        self.history: list[OnboardingState] = [OnboardingState.INIT]
        self.report = FlowReport("onboarding")

        self._handlers: dict[OnboardingState, Callable[[], Awaitable[OnboardingState]]] = {
            OnboardingState.INIT: self._await_welcome,
            OnboardingState.ACCEPT_TERMS: self._accept_terms,
            OnboardingState.SELECT_IMPORT: self._select_import,
            OnboardingState.BRANCH: self._branch,
            OnboardingState.REAFFIRM_TERMS: self._reaffirm_terms,
            OnboardingState.DECLINE_METRICS: self._decline_metrics,
            OnboardingState.ENTER_SEED: self._enter_seed,
            OnboardingState.CREATE_PASSWORD: self._create_password,
            OnboardingState.COMPLETE: self._complete,
        }

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    async def run(self) -> FlowReport:
        """Run until ``DONE``.

        Raises:
            OnboardingError: When a required screen never appears or a
                required control cannot be operated.
        """
        if not self._words:
            raise OnboardingError(self.state.value, "recovery phrase is empty")
        logger.info("Starting wallet import (%d-word recovery phrase)", len(self._words))
        await self._page.wait_for_load_state("domcontentloaded")

        while self.state not in TERMINAL_STATES:
            handler = self._handlers[self.state]
            try:
                next_state = await handler()
            except (WaitTimeoutError, NoRecognizerMatchedError, PlaywrightError) as e:
                failed_in = self.state.value
                logger.error("Onboarding failed in %s: %s", failed_in, e)
                self._transition(OnboardingState.FAILED)
                raise OnboardingError(failed_in, str(e)) from e
            self._transition(next_state)

        logger.info("Wallet import complete")
        return self.report

    def _transition(self, new_state: OnboardingState) -> None:
        if not is_allowed(self.state, new_state):
            logger.warning("Non-standard onboarding transition: %s → %s", self.state.value, new_state.value)
        logger.info("Onboarding: %s → %s", self.state.value, new_state.value)
        self.state = new_state
        self.history.append(new_state)

    async def _wait_for(self, selectors: Sequence[str], timeout: float) -> int:
        return await wait_for_any_selector(self._page, selectors, timeout, self._interval)

    # ------------------------------------------------------------------
    # State handlers
    # ------------------------------------------------------------------

    async def _await_welcome(self) -> OnboardingState:
        await self._wait_for(sel.ONBOARDING_ENTRY_MARKERS, self._waits.default_timeout_sec)
        return OnboardingState.ACCEPT_TERMS

    async def _accept_terms(self) -> OnboardingState:
        # The import button stays disabled until the terms box is ticked.
        checkbox = self._page.locator(sel.ONBOARDING_TERMS_CHECKBOX)
        if await checkbox.count() == 0:
            self.report.add(StepOutcome.skipped("accept terms", "checkbox absent"))
            return OnboardingState.SELECT_IMPORT
        try:
            checked = await checkbox.first.is_checked()
        except PlaywrightError:
            checked = False
        if checked:
            self.report.add(StepOutcome.skipped("accept terms", "already checked"))
            return OnboardingState.SELECT_IMPORT
        try:
            await checkbox.first.click()
            self.report.add(StepOutcome.succeeded("accept terms", "terms checkbox"))
        except PlaywrightError as e:
            logger.debug("Terms checkbox click failed: %s", e)
            self.report.add(StepOutcome.failed("accept terms", str(e)))
        return OnboardingState.SELECT_IMPORT

    async def _select_import(self) -> OnboardingState:
        import_button = self._page.locator(sel.ONBOARDING_IMPORT_WALLET).first
        short = self._waits.short_timeout_sec
        try:
            await wait_for_interactable(import_button, short)
        except WaitTimeoutError:
            logger.info("Import button still disabled, retrying terms checkbox")
            self.report.add(
                await click_if_present(self._page, "retry terms", Recognizer("checkbox", 'input[type="checkbox"]'))
            )
            await wait_for_interactable(import_button, short)
        await import_button.click()
        self.report.add(StepOutcome.succeeded("import existing wallet", "import button"))
        return OnboardingState.BRANCH

    async def _branch(self) -> OnboardingState:
        index = await self._wait_for(sel.BRANCH_MARKERS, self._waits.default_timeout_sec)
        target = BRANCH_TARGETS[index]
        self.report.add(StepOutcome.succeeded("branch", sel.BRANCH_MARKERS[index]))
        return target

    async def _reaffirm_terms(self) -> OnboardingState:
        self.report.add(await click_if_present(self._page, "agree terms", sel.TERMS_AGREE))
        self.report.add(await click_if_present(self._page, "agree terms text", sel.TERMS_AGREE_TEXT))
        index = await self._wait_for([sel.SRP_FIRST_WORD, sel.METRICS_NO_THANKS], self._waits.default_timeout_sec)
        if index == 1 or await self._page.locator(sel.METRICS_NO_THANKS).count() > 0:
            return OnboardingState.DECLINE_METRICS
        return OnboardingState.ENTER_SEED

    async def _decline_metrics(self) -> OnboardingState:
        self.report.add(
            await click_if_present(self._page, "decline metrics", Recognizer("metrics no thanks", sel.METRICS_NO_THANKS))
        )
        return OnboardingState.ENTER_SEED

    async def _enter_seed(self) -> OnboardingState:
        await self._wait_for([sel.SRP_FIRST_WORD], self._waits.default_timeout_sec)
        logger.info("Entering %d-word recovery phrase", len(self._words))
        for index, word in enumerate(self._words):
            await self._page.locator(sel.srp_word(index)).fill(word)
        self.report.add(StepOutcome.succeeded("recovery phrase"))
        self.report.require(
            await click_first(
                self._page,
                "confirm recovery phrase",
                [sel.SRP_CONFIRM],
                timeout=self._waits.short_timeout_sec,
                interval=self._interval,
            )
        )
        return OnboardingState.CREATE_PASSWORD

    async def _create_password(self) -> OnboardingState:
        await self._wait_for([sel.CREATE_PASSWORD_NEW], self._waits.default_timeout_sec)
        await self._page.locator(sel.CREATE_PASSWORD_NEW).fill(self._password)
        await self._page.locator(sel.CREATE_PASSWORD_CONFIRM).fill(self._password)
        self.report.add(StepOutcome.succeeded("password"))
        self.report.add(await click_if_present(self._page, "password terms", sel.CREATE_PASSWORD_TERMS))
        self.report.require(
            await click_first(
                self._page,
                "submit password",
                [sel.CREATE_PASSWORD_SUBMIT],
                timeout=self._waits.short_timeout_sec,
                interval=self._interval,
            )
        )
        return OnboardingState.COMPLETE

    async def _complete(self) -> OnboardingState:
        await self._wait_for(sel.COMPLETION_MARKERS, self._waits.completion_timeout_sec)

        self.report.add(await click_if_present(self._page, "onboarding done", sel.COMPLETE_DONE))

        if await sel.PIN_NEXT.present(self._page):
            self.report.add(await click_if_present(self._page, "pin extension next", sel.PIN_NEXT))
            self.report.add(
                await click_first(
                    self._page,
                    "pin extension done",
                    [sel.PIN_DONE],
                    timeout=self._waits.short_timeout_sec,
                    optional=True,
                    interval=self._interval,
                )
            )

        self.report.add(await click_if_present(self._page, "dismiss got it", sel.GOT_IT))
        self.report.add(await click_if_present(self._page, "dismiss popover", sel.POPOVER_CLOSE))

        try:
            await self._wait_for(sel.MAIN_SCREEN_MARKERS, self._waits.short_timeout_sec)
            self.report.add(StepOutcome.succeeded("main screen"))
        except WaitTimeoutError:
            self.report.add(StepOutcome.skipped("main screen", "main screen marker not observed"))
        return OnboardingState.DONE


async def import_wallet(
    page: Page,
    seed_phrase: str,
    password: str,
    waits: WaitSettings | None = None,
) -> FlowReport:
    """Import a wallet from *seed_phrase* on a fresh extension install."""
    return await OnboardingFlow(page, seed_phrase, password, waits).run()
