"""Unit tests for the popup locator and the CDP target resolver."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from fakes import FakeContext, FakePage
from walletpilot.browser.popup import action_surface, find_notification_page
from walletpilot.browser.targets import resolve_target_id

EXT = "chrome-extension://abcdef"


class TestFindNotificationPage:
    def test_returns_notification_page(self) -> None:
        home = FakePage(f"{EXT}/home.html")
        popup = FakePage(f"{EXT}/notification.html#connect")
        assert find_notification_page([home, popup]) is popup

    def test_first_match_wins(self) -> None:
        first = FakePage(f"{EXT}/notification.html")
        second = FakePage(f"{EXT}/notification.html#confirm")
        assert find_notification_page([first, second]) is first

    def test_none_when_no_popup(self) -> None:
        assert find_notification_page([FakePage("https://dapp.example"), FakePage(f"{EXT}/home.html")]) is None

    def test_action_surface_falls_back_to_home(self) -> None:
        home = FakePage(f"{EXT}/home.html")
        assert action_surface([FakePage("https://dapp.example")], home) is home


class TestResolveTargetId:
    @pytest.mark.anyio
    async def test_reads_target_id_and_detaches(self, fake_context: FakeContext) -> None:
        page = await fake_context.new_page()
        assert await resolve_target_id(fake_context, page) == page.target_id
        assert fake_context.sessions[0].detached

    @pytest.mark.anyio
    async def test_detaches_on_error(self) -> None:
        session = MagicMock()
        session.send = AsyncMock(side_effect=RuntimeError("protocol error"))
        session.detach = AsyncMock()
        context = MagicMock()
        context.new_cdp_session = AsyncMock(return_value=session)

        with pytest.raises(RuntimeError):
            await resolve_target_id(context, MagicMock())
        session.detach.assert_awaited_once()
