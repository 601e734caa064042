"""walletpilot — drive a browser wallet extension through its UI from an HTTP control API."""

from __future__ import annotations

try:
    from importlib.metadata import version

    __version__ = version("walletpilot")
except Exception:
    __version__ = "0.0.0"
