"""FastAPI app for walletpilot — the control API."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from walletpilot import __version__
from walletpilot.api.errors import register_exception_handlers
from walletpilot.api.routes import router
from walletpilot.api.wallet_routes import wallet_router
from walletpilot.context import ServerContext
from walletpilot.settings import get_settings

logger = logging.getLogger(__name__)


def create_app(context: ServerContext | None = None) -> FastAPI:
    """Build and return the FastAPI application.

    Args:
        context: An already-started context to serve.  When omitted, the
            app's lifespan creates one, starts it on startup and stops it
            on shutdown.
    """
    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if context is not None:
            yield
            return
        ctx = ServerContext(settings)
        ctx.install_crash_handler(asyncio.get_running_loop())
        try:
            await ctx.start()
        except Exception:
            logger.exception("Startup failed")
            await ctx.stop()
            raise
        app.state.context = ctx
        try:
            yield
        finally:
            await ctx.stop()

    application = FastAPI(
        title="walletpilot",
        description="Browser-extension wallet automation behind a small control API.",
        version=__version__,
        lifespan=lifespan,
    )
    if context is not None:
        application.state.context = context

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(application)
    application.include_router(router)
    application.include_router(wallet_router)
    return application
