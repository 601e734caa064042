"""Server info and named-page routes."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, Field

from walletpilot.context import ServerContext

router = APIRouter()


def get_context(request: Request) -> ServerContext:
    """FastAPI dependency returning the server context stored on the app."""
    return request.app.state.context


# ---------------------------------------------------------------------------
# Request / response models
# ---------------------------------------------------------------------------


class PageRequest(BaseModel):
    """Body of ``POST /pages``.  ``name`` is checked by the registry."""

    name: Any = Field(None, description="Logical page name, 1-256 characters.")


class PageResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ws_endpoint: str = Field(..., alias="wsEndpoint")
    name: str
    target_id: str = Field(..., alias="targetId")


class PageListResponse(BaseModel):
    names: list[str]


class ServerInfoResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ws_endpoint: str = Field(..., alias="wsEndpoint")
    extension_id: str | None = Field(None, alias="extensionId")
    wallet_initialized: bool = Field(..., alias="walletInitialized")


class SuccessResponse(BaseModel):
    success: bool = True


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("/", response_model=ServerInfoResponse)
def server_info(ctx: ServerContext = Depends(get_context)) -> ServerInfoResponse:
    """CDP endpoint and wallet summary for automation clients."""
    return ServerInfoResponse(
        ws_endpoint=ctx.ws_endpoint,
        extension_id=ctx.extension_id,
        wallet_initialized=ctx.wallet_initialized,
    )


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.post("/pages", response_model=PageResponse)
async def get_or_create_page(req: PageRequest, ctx: ServerContext = Depends(get_context)) -> PageResponse:
    """Return the page registered as ``name``, creating it on first use."""
    handle = await ctx.registry.get_or_create(req.name)
    return PageResponse(ws_endpoint=ctx.ws_endpoint, name=handle.name, target_id=handle.target_id)


@router.get("/pages", response_model=PageListResponse)
def list_pages(ctx: ServerContext = Depends(get_context)) -> PageListResponse:
    return PageListResponse(names=ctx.registry.names())


@router.delete("/pages/{name:path}", response_model=SuccessResponse)
async def close_page(name: str, ctx: ServerContext = Depends(get_context)) -> SuccessResponse:
    """Close a named page.  404 when the name is unknown."""
    await ctx.registry.close(name)
    return SuccessResponse()
