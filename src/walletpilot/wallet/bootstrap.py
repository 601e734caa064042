"""Extension bootstrapper — detect the wallet and bring it to a usable state.

Runs once at server start when an extension path is configured:

1. Find the extension's id by name among installed extensions.
2. Open its home page and detect whether a wallet already exists (lock or
   main screen) or the extension shows first-run onboarding.
3. Existing wallet with a password: open the controller and unlock.
   Fresh install with recovery phrase and password: import, open the
   controller, add the startup network if one is configured.
   Anything else: leave the wallet alone (degraded mode).

Nothing here raises into the server.  Failures are logged and reflected
in the returned :class:`BootstrapResult`; the page registry works
either way.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

from playwright.async_api import Error as PlaywrightError
from pydantic import ValidationError

from walletpilot.browser.waits import POLL_INTERVAL, SHORT_TIMEOUT, poll_until, wait_for_any_selector
from walletpilot.exceptions import ExtensionNotFoundError, WaitTimeoutError, WalletPilotError
from walletpilot.wallet import selectors as sel
from walletpilot.wallet.controller import WalletController, extension_url
from walletpilot.wallet.models import NetworkConfig, WalletState
from walletpilot.wallet.onboarding import import_wallet

if TYPE_CHECKING:
    from playwright.async_api import BrowserContext, Page

    from walletpilot.models.steps import FlowReport
    from walletpilot.settings.config import Settings, StartupNetworkSettings

logger = logging.getLogger(__name__)

EXTENSIONS_PAGE = "chrome://extensions"
EXTENSION_POLL_INTERVAL = 0.2
# Extension UI needs a moment after navigation before either screen renders.
STATE_DETECT_TIMEOUT = 2.0


@dataclass
class BootstrapResult:
    """What the bootstrapper found and built."""

    extension_id: str | None = None
    state: WalletState | None = None
    controller: WalletController | None = None
    reports: list[FlowReport] = field(default_factory=list)
    error: str = ""

    @property
    def wallet_ready(self) -> bool:
        return self.controller is not None


async def get_extension_id(context: BrowserContext, name: str, timeout: float = SHORT_TIMEOUT) -> str:
    """Return the id of the installed extension called *name* (case-insensitive).

    Raises:
        ExtensionNotFoundError: If no installed extension has that name.
    """
    page = await context.new_page()
    try:
        await page.goto(EXTENSIONS_PAGE)
        extensions: list[dict[str, Any]] = []

        async def _loaded() -> bool:
            nonlocal extensions
            try:
                extensions = await page.evaluate("chrome.management.getAll()") or []
            except PlaywrightError as e:
                # Extensions page still loading or navigated away; retry.
                logger.debug("Extension list not readable yet: %s", e)
                return False
            return len(extensions) > 0

        try:
            await poll_until(_loaded, timeout, EXTENSION_POLL_INTERVAL, description="extension list")
        except WaitTimeoutError:
            logger.warning(
                "No extensions found; check that --load-extension is passed and --disable-extensions is not"
            )
            raise ExtensionNotFoundError(name) from None

        logger.info("Found %d extension(s): %s", len(extensions), ", ".join(e.get("name", "?") for e in extensions))
        wanted = name.lower()
        for ext in extensions:
            if str(ext.get("name", "")).lower() == wanted:
                return ext["id"]
        raise ExtensionNotFoundError(name)
    finally:
        await page.close()


async def detect_wallet_state(
    page: Page, timeout: float = STATE_DETECT_TIMEOUT, interval: float = POLL_INTERVAL
) -> WalletState:
    """Tell an existing wallet from a fresh install by the screen it shows.

    Existing-wallet markers are listed first, so a page showing both counts
    as existing.  When neither appears in time the install is treated as
    fresh.
    """
    markers = sel.EXISTING_WALLET_MARKERS + sel.FRESH_INSTALL_MARKERS
    try:
        index = await wait_for_any_selector(page, markers, timeout, interval)
    except WaitTimeoutError:
        logger.info("No wallet screen recognized within %.0fs; assuming fresh install", timeout)
        return WalletState.UNINITIALIZED
    if index >= len(sel.EXISTING_WALLET_MARKERS):
        return WalletState.UNINITIALIZED
    if await page.locator(sel.UNLOCK_PAGE).count() > 0:
        return WalletState.LOCKED
    return WalletState.UNLOCKED


def mark_wallet_initialized(sentinel: Path) -> None:
    """Write the onboarding sentinel (ISO timestamp contents)."""
    sentinel.parent.mkdir(parents=True, exist_ok=True)
    sentinel.write_text(datetime.now(timezone.utc).isoformat())
    logger.debug("Wrote wallet sentinel %s", sentinel)


def startup_network(cfg: StartupNetworkSettings) -> NetworkConfig | None:
    """The configured startup network, or ``None`` if unset or invalid."""
    if not cfg.name:
        return None
    try:
        return NetworkConfig(
            name=cfg.name,
            rpc_url=cfg.rpc_url,
            chain_id=cfg.chain_id,
            symbol=cfg.symbol,
            block_explorer_url=cfg.block_explorer_url or None,
        )
    except ValidationError as e:
        logger.error("Ignoring invalid startup network %r: %s", cfg.name, e)
        return None


async def _close_quietly(page: Page) -> None:
    try:
        if not page.is_closed():
            await page.close()
    except PlaywrightError as e:
        logger.debug("Setup page close failed (ignored): %s", e)


async def bootstrap_wallet(context: BrowserContext, settings: Settings) -> BootstrapResult:
    """Detect the extension and prepare the wallet according to *settings*."""
    result = BootstrapResult()
    ext = settings.extension
    waits = settings.waits
    if not ext.path:
        logger.info("No extension configured; wallet endpoints disabled")
        return result

    logger.info("Detecting %s extension...", ext.name)
    try:
        result.extension_id = await get_extension_id(context, ext.name, waits.short_timeout_sec)
    except ExtensionNotFoundError as e:
        logger.warning("%s; continuing without wallet", e)
        result.error = str(e)
        return result
    logger.info("%s extension id: %s", ext.name, result.extension_id)

    password = ext.password.get_secret_value() if ext.password else ""
    seed_phrase = ext.seed_phrase.get_secret_value() if ext.seed_phrase else ""

    setup_page = await context.new_page()
    try:
        await setup_page.goto(extension_url(result.extension_id))
        result.state = await detect_wallet_state(setup_page, waits.ready_timeout_sec, waits.poll_interval_sec)
        logger.info("Wallet state at startup: %s", result.state.value)

        if result.state is not WalletState.UNINITIALIZED:
            mark_wallet_initialized(settings.wallet_sentinel)
            await _close_quietly(setup_page)
            if password:
                await _open_and_unlock(context, result, password, settings)
            else:
                logger.info("Wallet exists but no password configured; skipping unlock")
        elif seed_phrase and password:
            await _import_and_open(context, setup_page, result, seed_phrase, password, settings)
        else:
            logger.info("No wallet credentials provided, skipping wallet setup")
    except (WalletPilotError, PlaywrightError) as e:
        logger.error("Wallet bootstrap failed: %s", e)
        result.error = str(e)
    finally:
        await _close_quietly(setup_page)
    return result


async def _open_and_unlock(
    context: BrowserContext, result: BootstrapResult, password: str, settings: Settings
) -> None:
    assert result.extension_id is not None
    result.controller = await WalletController.open(context, result.extension_id, settings.waits)
    try:
        result.reports.append(await result.controller.unlock(password))
        result.state = WalletState.UNLOCKED
        logger.info("Wallet unlocked")
    except (WalletPilotError, PlaywrightError) as e:
        # Controller stays usable; the client can retry via the unlock endpoint.
        logger.error("Unlock at startup failed: %s", e)
        result.error = str(e)


async def _import_and_open(
    context: BrowserContext,
    setup_page: Page,
    result: BootstrapResult,
    seed_phrase: str,
    password: str,
    settings: Settings,
) -> None:
    assert result.extension_id is not None
    logger.info("New wallet detected, importing from recovery phrase...")
    try:
        result.reports.append(await import_wallet(setup_page, seed_phrase, password, settings.waits))
    except (WalletPilotError, PlaywrightError) as e:
        logger.error("Failed to import wallet: %s", e)
        result.error = str(e)
        return

    mark_wallet_initialized(settings.wallet_sentinel)
    result.state = WalletState.UNLOCKED
    logger.info("Wallet imported successfully")
    await _close_quietly(setup_page)

    result.controller = await WalletController.open(context, result.extension_id, settings.waits)

    network = startup_network(settings.network)
    if network is None:
        return
    try:
        result.reports.append(await result.controller.add_network(network))
        logger.info("Added startup network: %s", network.name)
    except (WalletPilotError, PlaywrightError) as e:
        logger.error("Adding startup network %r failed: %s", network.name, e)
