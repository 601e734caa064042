"""Wallet action routes.

Each action runs one :class:`~walletpilot.wallet.controller.WalletController`
flow and returns its step report.  A missing controller is a client
error (400); a flow that fails on a required step is a server error
(500).  Both are produced by the handlers in :mod:`walletpilot.api.errors`.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from walletpilot.api.routes import get_context
from walletpilot.context import ServerContext
from walletpilot.exceptions import InvalidRequestError
from walletpilot.models.steps import FlowReport
from walletpilot.wallet.models import NetworkConfig, WalletState

logger = logging.getLogger(__name__)

wallet_router = APIRouter(prefix="/wallet", tags=["wallet"])


# ---------------------------------------------------------------------------
# Request / response models
# ---------------------------------------------------------------------------


class UnlockRequest(BaseModel):
    password: str | None = None


class SwitchNetworkRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    network_name: str = Field(..., alias="networkName", min_length=1)


class ActionResponse(BaseModel):
    success: bool = True
    steps: list[dict[str, Any]] = Field(default_factory=list)

    @classmethod
    def from_report(cls, report: FlowReport) -> "ActionResponse":
        return cls(success=report.ok, steps=report.to_list())


class WalletStatusResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    extension_id: str | None = Field(None, alias="extensionId")
    is_locked: bool = Field(..., alias="isLocked")
    wallet_initialized: bool = Field(..., alias="walletInitialized")
    state: WalletState


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@wallet_router.get("/status", response_model=WalletStatusResponse)
async def wallet_status(ctx: ServerContext = Depends(get_context)) -> WalletStatusResponse:
    return WalletStatusResponse(
        extension_id=ctx.extension_id,
        is_locked=await ctx.is_locked(),
        wallet_initialized=ctx.wallet_initialized,
        state=await ctx.wallet_state(),
    )


@wallet_router.post("/unlock", response_model=ActionResponse)
async def unlock(req: UnlockRequest, ctx: ServerContext = Depends(get_context)) -> ActionResponse:
    """Unlock the wallet, opening the controller first if needed."""
    if not req.password:
        raise InvalidRequestError("password is required")
    controller = await ctx.ensure_controller()
    return ActionResponse.from_report(await controller.unlock(req.password))


@wallet_router.post("/connect", response_model=ActionResponse)
async def connect(ctx: ServerContext = Depends(get_context)) -> ActionResponse:
    return ActionResponse.from_report(await ctx.require_controller().connect_to_dapp())


@wallet_router.post("/sign", response_model=ActionResponse)
async def confirm_signature(ctx: ServerContext = Depends(get_context)) -> ActionResponse:
    return ActionResponse.from_report(await ctx.require_controller().confirm_signature())


@wallet_router.post("/reject-sign", response_model=ActionResponse)
async def reject_signature(ctx: ServerContext = Depends(get_context)) -> ActionResponse:
    return ActionResponse.from_report(await ctx.require_controller().reject_signature())


@wallet_router.post("/confirm-tx", response_model=ActionResponse)
async def confirm_transaction(ctx: ServerContext = Depends(get_context)) -> ActionResponse:
    return ActionResponse.from_report(await ctx.require_controller().confirm_transaction())


@wallet_router.post("/reject-tx", response_model=ActionResponse)
async def reject_transaction(ctx: ServerContext = Depends(get_context)) -> ActionResponse:
    return ActionResponse.from_report(await ctx.require_controller().reject_transaction())


@wallet_router.post("/add-network", response_model=ActionResponse)
async def add_network(network: NetworkConfig, ctx: ServerContext = Depends(get_context)) -> ActionResponse:
    """Add a custom network.  Accepts ``rpcUrl``/``chainId``/``blockExplorerUrl``."""
    controller = ctx.require_controller()
    return ActionResponse.from_report(await controller.add_network(network))


@wallet_router.post("/switch-network", response_model=ActionResponse)
async def switch_network(req: SwitchNetworkRequest, ctx: ServerContext = Depends(get_context)) -> ActionResponse:
    controller = ctx.require_controller()
    return ActionResponse.from_report(await controller.switch_network(req.network_name))
