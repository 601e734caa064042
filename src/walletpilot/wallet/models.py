"""Pydantic models for the wallet extension.

``NetworkConfig`` — a custom network handed to the add-network flow.
``WalletState`` — coarse lifecycle of the wallet as observed in the UI.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class WalletState(str, Enum):
    """Observed wallet lifecycle.

    ``uninitialized → unlocked`` via onboarding import, ``locked → unlocked``
    via unlock.  Nothing re-locks the wallet during a session.
    """

    UNINITIALIZED = "uninitialized"
    LOCKED = "locked"
    UNLOCKED = "unlocked"


# ---------------------------------------------------------------------------
# NetworkConfig: custom network value object
# ---------------------------------------------------------------------------


class NetworkConfig(BaseModel):
    """A custom EVM network to add through the extension's settings screen.

    Accepts both snake_case and the camelCase names used on the wire
    (``rpcUrl``, ``chainId``, ``blockExplorerUrl``).  Not persisted here;
    the extension stores it once saved.

    Attributes:
        name: Display name, e.g. ``"Ink Sepolia"``.
        rpc_url: JSON-RPC endpoint.
        chain_id: Numeric chain id.
        symbol: Native currency ticker, e.g. ``"ETH"``.
        block_explorer_url: Optional explorer base URL.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(..., min_length=1)
    rpc_url: str = Field(..., alias="rpcUrl", min_length=1)
    chain_id: int = Field(..., alias="chainId", gt=0)
    symbol: str = Field(..., min_length=1)
    block_explorer_url: str | None = Field(None, alias="blockExplorerUrl")

    @field_validator("name", "rpc_url", "symbol")
    @classmethod
    def _strip(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("block_explorer_url")
    @classmethod
    def _blank_to_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None
