"""Configuration loader for walletpilot using Pydantic settings.

Config precedence (highest wins):
  1. CLI flags (where applicable)
  2. Environment variables (WALLETPILOT_* with __ for nesting)
  3. settings.local.toml
  4. settings.<env>.toml
  5. settings.default.toml
"""

from __future__ import annotations

import os
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

_THIS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = Path(os.getenv("WALLETPILOT_PROJECT_ROOT", _THIS_DIR.parents[2]))
CONFIG_DIR = PROJECT_ROOT / "config"

ENV_VAR_NAME = "WALLETPILOT_ENV"
DEFAULT_ENV = "local"

BROWSER_DATA_DIRNAME = "browser-data"
WALLET_SENTINEL_NAME = ".wallet-initialized"


def _resolve_env() -> str:
    return (os.getenv(ENV_VAR_NAME) or DEFAULT_ENV).strip()


def _load_toml(path: Path) -> dict[str, Any]:
    if path.is_file():
        with open(path, "rb") as f:
            return tomllib.load(f)
    return {}


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class BrowserSettings(BaseSettings):
    """Persistent Chromium session settings."""

    model_config = SettingsConfigDict(env_prefix="WALLETPILOT_BROWSER__")

    headless: bool = False
    cdp_port: int = 9223
    profile_dir: str = "profiles"
    cached_profile: str = ""
    page_create_timeout_sec: float = 30.0
    close_timeout_sec: float = 10.0
    launch_args: list[str] = Field(default_factory=list)


class ExtensionSettings(BaseSettings):
    """Wallet extension location and credentials."""

    model_config = SettingsConfigDict(env_prefix="WALLETPILOT_EXTENSION__")

    path: str = ""
    name: str = "MetaMask"
    password: SecretStr | None = None
    seed_phrase: SecretStr | None = None


class StartupNetworkSettings(BaseSettings):
    """Custom network added right after a fresh wallet import.

    Ignored unless ``name`` is set.
    """

    model_config = SettingsConfigDict(env_prefix="WALLETPILOT_NETWORK__")

    name: str = ""
    rpc_url: str = ""
    chain_id: int = 1
    symbol: str = "ETH"
    block_explorer_url: str = ""


class WaitSettings(BaseSettings):
    """Timeouts shared by the wait/poll primitives (seconds)."""

    model_config = SettingsConfigDict(env_prefix="WALLETPILOT_WAITS__")

    default_timeout_sec: float = 10.0
    short_timeout_sec: float = 5.0
    poll_interval_sec: float = 0.1
    ready_timeout_sec: float = 30.0
    completion_timeout_sec: float = 15.0


class APISettings(BaseSettings):
    """Control API server configuration."""

    model_config = SettingsConfigDict(env_prefix="WALLETPILOT_API__")

    host: str = "127.0.0.1"
    port: int = 9222
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    """Root walletpilot settings with nested sections."""

    model_config = SettingsConfigDict(
        env_prefix="WALLETPILOT_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    env: str = Field(default_factory=_resolve_env)
    project_root: Path = Field(default=PROJECT_ROOT)
    debug: bool = False
    log_level: str = "INFO"
    log_format: str = "text"  # text | json

    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    extension: ExtensionSettings = Field(default_factory=ExtensionSettings)
    network: StartupNetworkSettings = Field(default_factory=StartupNetworkSettings)
    waits: WaitSettings = Field(default_factory=WaitSettings)
    api: APISettings = Field(default_factory=APISettings)

    @model_validator(mode="before")
    @classmethod
    def _merge_toml_files(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Layer TOML config files before env var overrides."""
        defaults = _load_toml(CONFIG_DIR / "settings.default.toml")
        env_name = (values.get("env") or os.getenv(ENV_VAR_NAME) or DEFAULT_ENV).strip()
        env_overrides = _load_toml(CONFIG_DIR / f"settings.{env_name}.toml")
        local_overrides = _load_toml(CONFIG_DIR / "settings.local.toml")

        # Merge: defaults < env-specific < local < explicit values
        merged: dict[str, Any] = {}
        for layer in (defaults, env_overrides, local_overrides, values):
            for key, val in layer.items():
                if isinstance(val, dict) and isinstance(merged.get(key), dict):
                    merged[key] = {**merged[key], **val}
                else:
                    merged[key] = val
        return merged

    @model_validator(mode="after")
    def _check_ports(self) -> "Settings":
        """Reject out-of-range or clashing ports before anything is launched."""
        for label, port in (("api.port", self.api.port), ("browser.cdp_port", self.browser.cdp_port)):
            if port < 1 or port > 65535:
                raise ValueError(f"Invalid {label}: {port}. Must be between 1 and 65535")
        if self.api.port == self.browser.cdp_port:
            raise ValueError("api.port and browser.cdp_port must be different")
        return self

    @model_validator(mode="after")
    def _resolve_paths(self) -> "Settings":
        """Normalize relative paths against project_root."""
        root = self.project_root
        if not Path(self.browser.profile_dir).is_absolute():
            self.browser.profile_dir = str(root / self.browser.profile_dir)
        if self.browser.cached_profile and not Path(self.browser.cached_profile).is_absolute():
            self.browser.cached_profile = str(root / self.browser.cached_profile)
        return self

    @property
    def user_data_dir(self) -> Path:
        """Directory holding the persistent browser profile."""
        return Path(self.browser.profile_dir) / BROWSER_DATA_DIRNAME

    @property
    def wallet_sentinel(self) -> Path:
        """File marking that wallet onboarding has completed."""
        return self.user_data_dir / WALLET_SENTINEL_NAME


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the singleton settings instance (cached)."""
    return Settings()
