"""Unit tests for the onboarding state machine against scripted screens."""

from __future__ import annotations

import pytest

from fakes import FakePage
from walletpilot.exceptions import OnboardingError
from walletpilot.models.states import OnboardingState
from walletpilot.models.steps import StepStatus
from walletpilot.wallet import selectors as sel
from walletpilot.wallet.onboarding import OnboardingFlow, import_wallet, split_seed_phrase

SEED = "abandon ability able about above absent absorb abstract absurd abuse access accident"
PASSWORD = "correct horse battery"

TERMS_CHECKBOX = '[data-testid="onboarding-terms-checkbox"]'


def show_seed_form(page: FakePage) -> None:
    page.clear()
    for index in range(12):
        page.add(sel.srp_word(index))
    page.add(sel.SRP_CONFIRM.selector, on_click=show_password_form)


def show_password_form(page: FakePage) -> None:
    page.clear()
    page.add(sel.CREATE_PASSWORD_NEW)
    page.add(sel.CREATE_PASSWORD_CONFIRM)
    page.add(sel.CREATE_PASSWORD_TERMS.selector, checkable=True)
    page.add(sel.CREATE_PASSWORD_SUBMIT.selector, on_click=show_completion)


def show_completion(page: FakePage) -> None:
    page.clear()
    page.add(sel.COMPLETE_DONE.selector, on_click=show_pin_step)


def show_pin_step(page: FakePage) -> None:
    page.clear()
    page.add(sel.PIN_NEXT.selector, on_click=lambda p: p.add(sel.PIN_DONE.selector, on_click=show_main_screen))


def show_main_screen(page: FakePage) -> None:
    page.clear()
    page.add(sel.ACCOUNT_MENU)


def show_metrics(page: FakePage) -> None:
    page.clear()
    page.add(sel.METRICS_NO_THANKS, on_click=show_seed_form)


def show_terms_reaffirm(page: FakePage) -> None:
    page.clear()
    page.add(sel.TERMS_AGREE.selector, on_click=show_metrics)


def welcome_page(after_import) -> FakePage:
    """Welcome screen whose import button stays disabled until the terms box is ticked."""
    page = FakePage("chrome-extension://abc/home.html")
    import_button = page.add(sel.ONBOARDING_IMPORT_WALLET, enabled=False, on_click=after_import)

    def tick(p: FakePage) -> None:
        import_button.enabled = True

    page.add(TERMS_CHECKBOX, checkable=True, on_click=tick)
    return page


class TestSplitSeedPhrase:
    def test_splits_on_any_whitespace(self) -> None:
        assert split_seed_phrase("  one two\tthree\nfour ") == ["one", "two", "three", "four"]

    def test_empty(self) -> None:
        assert split_seed_phrase("   ") == []


class TestOnboardingBranches:
    @pytest.mark.anyio
    @pytest.mark.parametrize(
        ("after_import", "expected_path"),
        [
            (show_seed_form, [OnboardingState.BRANCH, OnboardingState.ENTER_SEED]),
            (show_metrics, [OnboardingState.BRANCH, OnboardingState.DECLINE_METRICS, OnboardingState.ENTER_SEED]),
            (
                show_terms_reaffirm,
                [
                    OnboardingState.BRANCH,
                    OnboardingState.REAFFIRM_TERMS,
                    OnboardingState.DECLINE_METRICS,
                    OnboardingState.ENTER_SEED,
                ],
            ),
        ],
        ids=["direct", "metrics-opt-out", "terms-reaffirm"],
    )
    async def test_every_branch_reaches_seed_entry(self, after_import, expected_path, fast_waits) -> None:
        page = welcome_page(after_import)
        flow = OnboardingFlow(page, SEED, PASSWORD, fast_waits)

        report = await flow.run()

        assert flow.state is OnboardingState.DONE
        start = flow.history.index(OnboardingState.BRANCH)
        assert flow.history[start : start + len(expected_path)] == expected_path
        assert flow.history[-3:] == [OnboardingState.CREATE_PASSWORD, OnboardingState.COMPLETE, OnboardingState.DONE]
        assert report.ok
        assert report.status_of("main screen") is StepStatus.SUCCEEDED

    @pytest.mark.anyio
    async def test_fills_one_field_per_word_and_password_twice(self, fast_waits) -> None:
        page = welcome_page(show_seed_form)
        await import_wallet(page, SEED, PASSWORD, fast_waits)

        words = SEED.split()
        for index, word in enumerate(words):
            assert page.fills[sel.srp_word(index)] == word
        assert page.fills[sel.CREATE_PASSWORD_NEW] == PASSWORD
        assert page.fills[sel.CREATE_PASSWORD_CONFIRM] == PASSWORD

    @pytest.mark.anyio
    async def test_terms_checked_before_import(self, fast_waits) -> None:
        page = welcome_page(show_seed_form)
        await import_wallet(page, SEED, PASSWORD, fast_waits)
        assert page.clicks.index(TERMS_CHECKBOX) < page.clicks.index(sel.ONBOARDING_IMPORT_WALLET)

    @pytest.mark.anyio
    async def test_pin_steps_are_walked(self, fast_waits) -> None:
        page = welcome_page(show_seed_form)
        report = await import_wallet(page, SEED, PASSWORD, fast_waits)
        assert sel.PIN_NEXT.selector in page.clicks
        assert sel.PIN_DONE.selector in page.clicks
        assert report.status_of("pin extension done") is StepStatus.SUCCEEDED

    @pytest.mark.anyio
    async def test_optional_popups_recorded_as_skipped(self, fast_waits) -> None:
        page = welcome_page(show_seed_form)
        report = await import_wallet(page, SEED, PASSWORD, fast_waits)
        assert report.status_of("dismiss got it") is StepStatus.SKIPPED
        assert report.status_of("dismiss popover") is StepStatus.SKIPPED

    @pytest.mark.anyio
    async def test_already_checked_terms_not_clicked(self, fast_waits) -> None:
        page = welcome_page(show_seed_form)
        page.dom[TERMS_CHECKBOX].checked = True
        page.dom[sel.ONBOARDING_IMPORT_WALLET].enabled = True
        await import_wallet(page, SEED, PASSWORD, fast_waits)
        assert TERMS_CHECKBOX not in page.clicks


class TestOnboardingFailures:
    @pytest.mark.anyio
    async def test_empty_phrase_rejected(self, fast_waits) -> None:
        with pytest.raises(OnboardingError):
            await import_wallet(welcome_page(show_seed_form), "   ", PASSWORD, fast_waits)

    @pytest.mark.anyio
    async def test_missing_branch_screen_fails(self, fast_waits) -> None:
        page = welcome_page(lambda p: p.clear())
        flow = OnboardingFlow(page, SEED, PASSWORD, fast_waits)

        with pytest.raises(OnboardingError) as exc_info:
            await flow.run()

        assert exc_info.value.state == OnboardingState.BRANCH.value
        assert flow.state is OnboardingState.FAILED

    @pytest.mark.anyio
    async def test_missing_welcome_fails(self, fast_waits) -> None:
        flow = OnboardingFlow(FakePage(), SEED, PASSWORD, fast_waits)
        with pytest.raises(OnboardingError) as exc_info:
            await flow.run()
        assert exc_info.value.state == OnboardingState.INIT.value


class TestOnboardingPollInterval:
    @pytest.mark.anyio
    async def test_configured_interval_used_for_every_wait(self, fast_waits, monkeypatch: pytest.MonkeyPatch) -> None:
        from walletpilot.wallet import onboarding as onboarding_mod

        seen: list[float] = []
        real_wait = onboarding_mod.wait_for_any_selector
        real_click = onboarding_mod.click_first

        async def recording_wait(page, selectors, timeout, interval):
            seen.append(interval)
            return await real_wait(page, selectors, timeout, interval)

        async def recording_click(*args, **kwargs):
            seen.append(kwargs["interval"])
            return await real_click(*args, **kwargs)

        monkeypatch.setattr(onboarding_mod, "wait_for_any_selector", recording_wait)
        monkeypatch.setattr(onboarding_mod, "click_first", recording_click)

        waits = fast_waits.model_copy(update={"poll_interval_sec": 0.03})
        await import_wallet(welcome_page(show_seed_form), SEED, PASSWORD, waits)

        assert len(seen) > 5
        assert set(seen) == {0.03}
