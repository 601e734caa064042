"""Unit tests for the extension bootstrapper."""

from __future__ import annotations

import asyncio

import pytest
from playwright.async_api import Error as PlaywrightError

from fakes import FakeContext, FakePage
from walletpilot.exceptions import ExtensionNotFoundError
from walletpilot.wallet import selectors as sel
from walletpilot.wallet.bootstrap import (
    bootstrap_wallet,
    detect_wallet_state,
    get_extension_id,
    mark_wallet_initialized,
    startup_network,
)
from walletpilot.wallet.models import WalletState

EXT_ID = "nkbihfbeogaeaoehlefnkodbefgpgknn"
EXTENSIONS = [{"id": "other", "name": "uBlock Origin"}, {"id": EXT_ID, "name": "MetaMask"}]
UNLOCK_TESTID = '[data-testid="unlock-page"]'


def lock_screen(page: FakePage) -> None:
    page.clear()
    page.add(UNLOCK_TESTID)
    page.add(sel.UNLOCK_PASSWORD[0].selector)

    def unlocked(p: FakePage) -> None:
        p.clear()
        p.add(sel.ACCOUNT_MENU)

    page.add(sel.UNLOCK_SUBMIT[0].selector, on_click=unlocked)


class TestGetExtensionId:
    @pytest.mark.anyio
    async def test_matches_name_case_insensitively(self, fake_context: FakeContext) -> None:
        fake_context.evaluate_result = EXTENSIONS
        assert await get_extension_id(fake_context, "metamask", timeout=0.1) == EXT_ID
        assert fake_context.pages == []  # helper page closed

    @pytest.mark.anyio
    async def test_unknown_name(self, fake_context: FakeContext) -> None:
        fake_context.evaluate_result = EXTENSIONS
        with pytest.raises(ExtensionNotFoundError):
            await get_extension_id(fake_context, "Rabby", timeout=0.1)
        assert fake_context.pages == []

    @pytest.mark.anyio
    async def test_no_extensions_loaded(self, fake_context: FakeContext) -> None:
        fake_context.evaluate_result = []
        with pytest.raises(ExtensionNotFoundError):
            await get_extension_id(fake_context, "MetaMask", timeout=0.05)
        assert fake_context.pages == []

    @pytest.mark.anyio
    async def test_unreadable_extension_list_is_not_found(self, fake_context: FakeContext) -> None:
        fake_context.evaluate_result = PlaywrightError("chrome.management is not available")
        with pytest.raises(ExtensionNotFoundError):
            await get_extension_id(fake_context, "MetaMask", timeout=0.1)
        assert fake_context.pages == []

    @pytest.mark.anyio
    async def test_list_read_retried_until_readable(self, fake_context: FakeContext) -> None:
        fake_context.evaluate_result = PlaywrightError("Execution context was destroyed")

        async def page_settles() -> None:
            await asyncio.sleep(0.05)
            fake_context.pages[0].evaluate_result = EXTENSIONS

        settle = asyncio.create_task(page_settles())
        assert await get_extension_id(fake_context, "MetaMask", timeout=1.0) == EXT_ID
        await settle


class TestDetectWalletState:
    @pytest.mark.anyio
    async def test_lock_screen_is_locked(self, fake_page: FakePage) -> None:
        fake_page.add(".unlock-page")
        assert await detect_wallet_state(fake_page, 0.1) is WalletState.LOCKED

    @pytest.mark.anyio
    async def test_main_screen_is_unlocked(self, fake_page: FakePage) -> None:
        fake_page.add(sel.ACCOUNT_MENU)
        assert await detect_wallet_state(fake_page, 0.1) is WalletState.UNLOCKED

    @pytest.mark.anyio
    async def test_onboarding_is_uninitialized(self, fake_page: FakePage) -> None:
        fake_page.add(sel.ONBOARDING_IMPORT_WALLET)
        assert await detect_wallet_state(fake_page, 0.1) is WalletState.UNINITIALIZED

    @pytest.mark.anyio
    async def test_nothing_rendered_is_uninitialized(self, fake_page: FakePage) -> None:
        assert await detect_wallet_state(fake_page, 0.05) is WalletState.UNINITIALIZED


class TestHelpers:
    def test_sentinel_contains_timestamp(self, tmp_path) -> None:
        sentinel = tmp_path / "browser-data" / ".wallet-initialized"
        mark_wallet_initialized(sentinel)
        assert "T" in sentinel.read_text()

    def test_startup_network_unset(self, settings_factory) -> None:
        assert startup_network(settings_factory().network) is None

    def test_startup_network_built(self, settings_factory) -> None:
        s = settings_factory(network={"name": "Ink", "rpc_url": "https://rpc.ink", "chain_id": 763373})
        network = startup_network(s.network)
        assert network is not None
        assert network.chain_id == 763373
        assert network.block_explorer_url is None

    def test_startup_network_invalid_is_ignored(self, settings_factory) -> None:
        s = settings_factory(network={"name": "Broken", "rpc_url": "", "chain_id": 1})
        assert startup_network(s.network) is None


class TestBootstrapWallet:
    @pytest.mark.anyio
    async def test_no_extension_path_skips_everything(self, fake_context: FakeContext, settings_factory) -> None:
        result = await bootstrap_wallet(fake_context, settings_factory())
        assert result.extension_id is None
        assert not result.wallet_ready
        assert fake_context.pages == []

    @pytest.mark.anyio
    async def test_extension_missing_is_degraded_mode(self, fake_context: FakeContext, settings_factory) -> None:
        fake_context.evaluate_result = [{"id": "other", "name": "uBlock Origin"}]
        result = await bootstrap_wallet(fake_context, settings_factory(extension={"path": "/ext"}))
        assert result.extension_id is None
        assert result.controller is None
        assert "not installed" in result.error

    @pytest.mark.anyio
    async def test_unreadable_extension_list_is_degraded_mode(
        self, fake_context: FakeContext, settings_factory
    ) -> None:
        fake_context.evaluate_result = PlaywrightError("chrome.management is not available")
        result = await bootstrap_wallet(fake_context, settings_factory(extension={"path": "/ext"}))
        assert result.extension_id is None
        assert result.controller is None
        assert result.error

    @pytest.mark.anyio
    async def test_existing_wallet_is_unlocked(self, fake_context: FakeContext, settings_factory) -> None:
        fake_context.evaluate_result = EXTENSIONS
        fake_context.routes["home.html"] = lock_screen
        s = settings_factory(extension={"path": "/ext", "password": "hunter2"})

        result = await bootstrap_wallet(fake_context, s)

        assert result.extension_id == EXT_ID
        assert result.controller is not None
        assert result.state is WalletState.UNLOCKED
        assert s.wallet_sentinel.exists()
        assert fake_context.pages == [result.controller.page]  # setup page closed
        assert not await result.controller.is_locked()

    @pytest.mark.anyio
    async def test_existing_wallet_without_password(self, fake_context: FakeContext, settings_factory) -> None:
        fake_context.evaluate_result = EXTENSIONS
        fake_context.routes["home.html"] = lock_screen
        s = settings_factory(extension={"path": "/ext"})

        result = await bootstrap_wallet(fake_context, s)

        assert result.extension_id == EXT_ID
        assert result.state is WalletState.LOCKED
        assert result.controller is None
        assert s.wallet_sentinel.exists()

    @pytest.mark.anyio
    async def test_fresh_install_without_seed_skips_setup(self, fake_context: FakeContext, settings_factory) -> None:
        fake_context.evaluate_result = EXTENSIONS
        fake_context.routes["home.html"] = lambda p: p.add(sel.ONBOARDING_IMPORT_WALLET)
        s = settings_factory(extension={"path": "/ext", "password": "hunter2"})

        result = await bootstrap_wallet(fake_context, s)

        assert result.state is WalletState.UNINITIALIZED
        assert result.controller is None
        assert not s.wallet_sentinel.exists()
        assert fake_context.pages == []

    @pytest.mark.anyio
    async def test_failed_onboarding_does_not_raise(self, fake_context: FakeContext, settings_factory) -> None:
        fake_context.evaluate_result = EXTENSIONS
        # Welcome screen whose import button never leads anywhere.
        fake_context.routes["home.html"] = lambda p: p.add(sel.ONBOARDING_IMPORT_WALLET)
        s = settings_factory(extension={"path": "/ext", "password": "hunter2", "seed_phrase": "one two three"})

        result = await bootstrap_wallet(fake_context, s)

        assert result.controller is None
        assert "onboarding failed" in result.error
        assert not s.wallet_sentinel.exists()
        assert fake_context.pages == []
