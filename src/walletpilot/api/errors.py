"""Map walletpilot exceptions to HTTP responses.

Every error body has the shape ``{"success": false, "error": "<message>"}``.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from playwright.async_api import Error as PlaywrightError

from walletpilot.exceptions import (
    InvalidRequestError,
    PageNotFoundError,
    WalletNotInitializedError,
    WalletPilotError,
)

logger = logging.getLogger(__name__)


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts) or "invalid request"


async def _invalid_request(request: Request, exc: InvalidRequestError) -> JSONResponse:
    return error_response(400, str(exc))


async def _request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(400, _validation_message(exc))


async def _not_initialized(request: Request, exc: WalletNotInitializedError) -> JSONResponse:
    return error_response(400, str(exc))


async def _not_found(request: Request, exc: PageNotFoundError) -> JSONResponse:
    return error_response(404, str(exc))


async def _action_failed(request: Request, exc: WalletPilotError) -> JSONResponse:
    logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return error_response(500, str(exc))


async def _browser_error(request: Request, exc: PlaywrightError) -> JSONResponse:
    logger.error("%s %s failed in the browser: %s", request.method, request.url.path, exc)
    return error_response(500, exc.message or str(exc))


def register_exception_handlers(app: FastAPI) -> None:
    """Install the handlers on *app*.  Most specific classes first."""
    app.add_exception_handler(RequestValidationError, _request_validation)
    app.add_exception_handler(InvalidRequestError, _invalid_request)
    app.add_exception_handler(WalletNotInitializedError, _not_initialized)
    app.add_exception_handler(PageNotFoundError, _not_found)
    app.add_exception_handler(WalletPilotError, _action_failed)
    app.add_exception_handler(PlaywrightError, _browser_error)
