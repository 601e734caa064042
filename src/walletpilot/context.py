"""Process-scoped server context.

One :class:`ServerContext` exists per server process.  It owns the
browser session, the page registry and the (optional) wallet controller,
and is handed to the API layer through ``app.state`` rather than living
in module globals.

Lifecycle::

    ctx = ServerContext(settings)
    await ctx.start()   # launch browser, bootstrap wallet, build registry
    ...
    await ctx.stop()    # single-flight; safe to call from several places
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import TYPE_CHECKING, Any

from playwright.async_api import Error as PlaywrightError

from walletpilot.browser.registry import PageRegistry
from walletpilot.browser.session import BrowserSession
from walletpilot.exceptions import WalletNotInitializedError
from walletpilot.wallet.bootstrap import bootstrap_wallet
from walletpilot.wallet.controller import WalletController
from walletpilot.wallet.models import WalletState

if TYPE_CHECKING:
    from walletpilot.settings.config import Settings

logger = logging.getLogger(__name__)


class ServerContext:
    """Shared state of one walletpilot server."""

    def __init__(self, settings: Settings | None = None) -> None:
        if settings is None:
            from walletpilot.settings import get_settings

            settings = get_settings()
        self.settings = settings
        self.session = BrowserSession(settings)
        self._registry: PageRegistry | None = None
        self.controller: WalletController | None = None
        self.extension_id: str | None = None

        self._controller_lock = asyncio.Lock()
        self._stop_lock = asyncio.Lock()
        self._stopped = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Launch the browser, bootstrap the wallet and open the registry."""
        await self.session.start()
        self._registry = PageRegistry(
            self.session.new_page,
            self.session.target_id,
            self.settings.browser.page_create_timeout_sec,
        )
        result = await bootstrap_wallet(self.session.context, self.settings)
        self.extension_id = result.extension_id
        self.controller = result.controller
        logger.info(
            "Server context ready (extension=%s, wallet=%s)",
            self.extension_id or "none",
            "ready" if self.controller else "not initialized",
        )

    async def stop(self) -> None:
        """Close all pages and the browser.  Re-entrant calls are no-ops."""
        async with self._stop_lock:
            if self._stopped:
                return
            self._stopped = True
            logger.info("Shutting down...")
            if self._registry is not None:
                timeout = self.settings.browser.close_timeout_sec
                try:
                    await asyncio.wait_for(self._registry.close_all(), timeout)
                except asyncio.TimeoutError:
                    logger.warning("Pages did not close within %.1fs; closing the browser anyway", timeout)
                except Exception as e:
                    logger.warning("Closing pages failed (continuing shutdown): %s", e)
            self.controller = None
            await self.session.stop()
            logger.info("Server stopped")

    def install_crash_handler(self, loop: asyncio.AbstractEventLoop) -> None:
        """Tear everything down and exit 1 on an unhandled task exception."""

        def _handler(loop: asyncio.AbstractEventLoop, ctx: dict[str, Any]) -> None:
            exc = ctx.get("exception")
            if exc is None:
                loop.default_exception_handler(ctx)
                return
            logger.critical("Unhandled error: %s", ctx.get("message", exc), exc_info=exc)
            loop.create_task(self._crash())

        loop.set_exception_handler(_handler)

    async def _crash(self) -> None:
        try:
            await self.stop()
        finally:
            os._exit(1)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def registry(self) -> PageRegistry:
        if self._registry is None:
            raise RuntimeError("Server context not started. Call start() first.")
        return self._registry

    @property
    def ws_endpoint(self) -> str:
        return self.session.ws_endpoint

    @property
    def wallet_initialized(self) -> bool:
        """Whether onboarding has completed for this profile (sentinel present)."""
        return self.settings.wallet_sentinel.exists()

    def require_controller(self) -> WalletController:
        """Return the controller.

        Raises:
            WalletNotInitializedError: If the wallet has not been set up
                or its page has been closed.
        """
        controller = self._current_controller()
        if controller is None:
            raise WalletNotInitializedError()
        return controller

    async def ensure_controller(self) -> WalletController:
        """Return the controller, opening it if the extension is known.

        A controller whose page was closed is replaced by a fresh one.

        Raises:
            WalletNotInitializedError: If no extension was detected.
        """
        controller = self._current_controller()
        if controller is not None:
            return controller
        if not self.extension_id:
            raise WalletNotInitializedError("wallet not available")
        async with self._controller_lock:
            if self._current_controller() is None:
                logger.info("Opening wallet controller on demand")
                self.controller = await WalletController.open(
                    self.session.context, self.extension_id, self.settings.waits
                )
        return self.controller

    async def is_locked(self) -> bool:
        """Live lock-screen check; ``True`` when no usable controller exists."""
        controller = self._current_controller()
        if controller is None:
            return True
        try:
            return await controller.is_locked()
        except PlaywrightError as e:
            logger.warning("Lock check failed, reporting locked: %s", e)
            return True

    async def wallet_state(self) -> WalletState:
        controller = self._current_controller()
        if controller is not None:
            try:
                return await controller.state()
            except PlaywrightError as e:
                logger.warning("Wallet state read failed, falling back to sentinel: %s", e)
        if self.wallet_initialized:
            return WalletState.LOCKED
        return WalletState.UNINITIALIZED

    def _current_controller(self) -> WalletController | None:
        """The controller, or ``None`` after dropping one whose page is gone."""
        if self.controller is not None and self.controller.page.is_closed():
            logger.warning("Wallet page was closed; dropping controller")
            self.controller = None
        return self.controller
