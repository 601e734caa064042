"""walletpilot test configuration — shared fixtures for unit and integration tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from fakes import FakeContext, FakePage


# ---------------------------------------------------------------------------
# Async backend
# ---------------------------------------------------------------------------


@pytest.fixture()
def anyio_backend() -> str:
    """Run ``pytest.mark.anyio`` tests on asyncio only."""
    return "asyncio"


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    """Clear the settings LRU cache between tests."""
    from walletpilot.settings.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def fast_waits():
    """Short timeouts so failing waits fail quickly."""
    from walletpilot.settings.config import WaitSettings

    return WaitSettings(
        default_timeout_sec=1.0,
        short_timeout_sec=0.3,
        poll_interval_sec=0.02,
        ready_timeout_sec=0.5,
        completion_timeout_sec=1.0,
    )


@pytest.fixture()
def settings_factory(tmp_path: Path, fast_waits):
    """Build ``Settings`` rooted in a temporary profile directory."""
    from walletpilot.settings.config import Settings

    def _make(**overrides):
        browser = {"profile_dir": str(tmp_path / "profiles"), **overrides.pop("browser", {})}
        return Settings(browser=browser, waits=fast_waits.model_dump(), **overrides)

    return _make


# ---------------------------------------------------------------------------
# Fake browser
# ---------------------------------------------------------------------------


@pytest.fixture()
def fake_context() -> FakeContext:
    return FakeContext()


@pytest.fixture()
def fake_page() -> FakePage:
    return FakePage()


@pytest.fixture()
def server_context(settings_factory, fake_context: FakeContext):
    """A started-looking ``ServerContext`` whose browser is the fake context."""
    from walletpilot.browser.registry import PageRegistry
    from walletpilot.context import ServerContext

    ctx = ServerContext(settings_factory())
    ctx.session._context = fake_context
    ctx.session.ws_endpoint = "ws://127.0.0.1:9223/devtools/browser/abc"
    ctx._registry = PageRegistry(ctx.session.new_page, ctx.session.target_id, 1.0)
    return ctx


# ---------------------------------------------------------------------------
# Pytest markers
# ---------------------------------------------------------------------------


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests that exercise several layers together")
    config.addinivalue_line("markers", "slow: marks tests that take more than a few seconds")
