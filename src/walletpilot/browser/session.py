"""Persistent Chromium session — one per server process.

Launches Chromium through Playwright with a persistent user-data
directory (cookies, local storage and extension state survive restarts),
loads the wallet extension when one is configured, and exposes the CDP
WebSocket endpoint so external automation clients can attach to the same
browser.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path
from typing import TYPE_CHECKING

import httpx
from playwright.async_api import async_playwright

from walletpilot.browser.targets import resolve_target_id
from walletpilot.exceptions import PageCreationTimeoutError, WalletPilotError

if TYPE_CHECKING:
    from playwright.async_api import BrowserContext, Page, Playwright

    from walletpilot.settings.config import Settings

logger = logging.getLogger(__name__)

CDP_VERSION_RETRIES = 5
CDP_VERSION_DELAY_SEC = 0.5


def seed_profile(cached_profile: Path, user_data_dir: Path) -> bool:
    """Copy a pre-initialized profile into place if none exists yet.

    Returns:
        ``True`` if the profile was copied.
    """
    if user_data_dir.exists():
        return False
    if not cached_profile.is_dir():
        logger.info("Cached profile not found at %s; starting with a fresh profile", cached_profile)
        return False
    logger.info("Seeding browser profile from %s", cached_profile)
    shutil.copytree(cached_profile, user_data_dir)
    return True


def build_launch_args(cdp_port: int, extension_path: str = "", extra: list[str] | None = None) -> list[str]:
    """Chromium command-line arguments for the persistent context."""
    args = [f"--remote-debugging-port={cdp_port}"]
    if extension_path:
        args.append(f"--disable-extensions-except={extension_path}")
        args.append(f"--load-extension={extension_path}")
    args.extend(extra or [])
    return args


async def fetch_ws_endpoint(
    cdp_port: int,
    retries: int = CDP_VERSION_RETRIES,
    delay: float = CDP_VERSION_DELAY_SEC,
) -> str:
    """Read the browser's WebSocket debugger URL from ``/json/version``.

    Chromium may take a moment to open the debugging port, so failures are
    retried with a linearly growing delay.

    Raises:
        WalletPilotError: If every attempt fails.
    """
    url = f"http://127.0.0.1:{cdp_port}/json/version"
    last_error: Exception | None = None
    async with httpx.AsyncClient(timeout=5.0) as client:
        for attempt in range(1, retries + 1):
            try:
                resp = await client.get(url)
                resp.raise_for_status()
                return resp.json()["webSocketDebuggerUrl"]
            except (httpx.HTTPError, KeyError, ValueError) as e:
                last_error = e
                logger.debug("CDP endpoint attempt %d/%d failed: %s", attempt, retries, e)
                if attempt < retries:
                    await asyncio.sleep(delay * attempt)
    raise WalletPilotError(f"Failed to read CDP endpoint after {retries} retries: {last_error}")


class BrowserSession:
    """The single persistent browser context owned by the server.

    Args:
        settings: Resolved settings; browser and extension sections are used.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._playwright: Playwright | None = None
        self._context: BrowserContext | None = None
        self.ws_endpoint: str = ""

    @property
    def context(self) -> BrowserContext:
        if self._context is None:
            raise RuntimeError("Browser session not started. Call start() first.")
        return self._context

    @property
    def started(self) -> bool:
        return self._context is not None

    @property
    def pages(self) -> list[Page]:
        return self.context.pages

    @property
    def user_data_dir(self) -> Path:
        return self._settings.user_data_dir

    async def start(self) -> None:
        """Launch Chromium with the persistent profile."""
        browser_cfg = self._settings.browser
        extension_path = self._settings.extension.path

        if browser_cfg.cached_profile:
            seed_profile(Path(browser_cfg.cached_profile), self.user_data_dir)
        self.user_data_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Using persistent browser profile: %s", self.user_data_dir)

        # Extensions only load in headed mode.
        headless = False if extension_path else browser_cfg.headless

        self._playwright = await async_playwright().start()
        self._context = await self._playwright.chromium.launch_persistent_context(
            str(self.user_data_dir),
            headless=headless,
            args=build_launch_args(browser_cfg.cdp_port, extension_path, browser_cfg.launch_args),
            # Playwright passes --disable-extensions by default.
            ignore_default_args=["--disable-extensions"] if extension_path else None,
        )
        logger.info("Browser launched (headless=%s, extension=%s)", headless, extension_path or "none")

        self.ws_endpoint = await fetch_ws_endpoint(browser_cfg.cdp_port)
        logger.info("CDP WebSocket endpoint: %s", self.ws_endpoint)

    async def new_page(self, timeout: float | None = None) -> Page:
        """Open a page in the shared context.

        Raises:
            PageCreationTimeoutError: If *timeout* elapses first.
        """
        if timeout is None:
            return await self.context.new_page()
        try:
            return await asyncio.wait_for(self.context.new_page(), timeout)
        except asyncio.TimeoutError as exc:
            raise PageCreationTimeoutError(timeout) from exc

    async def target_id(self, page: Page) -> str:
        return await resolve_target_id(self.context, page)

    async def stop(self) -> None:
        """Close the context (and with it the browser) and stop Playwright.

        Each step gets ``browser.close_timeout_sec``.  A context that does
        not close in time is abandoned and Playwright is stopped anyway,
        which kills the driver and the browser it launched.
        """
        timeout = self._settings.browser.close_timeout_sec
        if self._context is not None:
            try:
                await asyncio.wait_for(self._context.close(), timeout)
            except asyncio.TimeoutError:
                logger.warning("Browser context did not close within %.1fs; forcing shutdown", timeout)
            except Exception as e:
                logger.warning("Browser context close error (non-fatal): %s", e)
            finally:
                self._context = None
        if self._playwright is not None:
            try:
                await asyncio.wait_for(self._playwright.stop(), timeout)
            except asyncio.TimeoutError:
                logger.error("Playwright did not stop within %.1fs; browser process may linger", timeout)
            except Exception as e:
                logger.warning("Playwright stop error (non-fatal): %s", e)
            finally:
                self._playwright = None
        logger.info("Browser stopped")
