"""API integration tests — HTTP contract over a fake browser.

Drives the real app, registry and wallet controller through the FastAPI
``TestClient``; only the Playwright context underneath is faked.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from fakes import FakeContext, FakePage
from walletpilot.api.app import create_app
from walletpilot.context import ServerContext
from walletpilot.wallet import selectors as sel
from walletpilot.wallet.controller import WalletController

pytestmark = pytest.mark.integration

EXT_ID = "abcdefghijklmnop"


@pytest.fixture()
def client(server_context: ServerContext):
    app = create_app(context=server_context)
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def wallet_page(server_context: ServerContext, fake_context: FakeContext, fast_waits) -> FakePage:
    """Attach an unlocked wallet controller to the server context."""
    page = FakePage(f"chrome-extension://{EXT_ID}/home.html", context=fake_context)
    page.add(sel.ACCOUNT_MENU)
    fake_context.pages.append(page)
    server_context.extension_id = EXT_ID
    server_context.controller = WalletController(fake_context, page, EXT_ID, fast_waits)
    return page


# ---------------------------------------------------------------------------
# Server info
# ---------------------------------------------------------------------------


class TestServerInfo:
    def test_health(self, client: TestClient) -> None:
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    def test_info_without_wallet(self, client: TestClient) -> None:
        resp = client.get("/")
        assert resp.status_code == 200
        data = resp.json()
        assert data["wsEndpoint"].startswith("ws://")
        assert data["extensionId"] is None
        assert data["walletInitialized"] is False


# ---------------------------------------------------------------------------
# Named pages
# ---------------------------------------------------------------------------


class TestPages:
    def test_same_name_returns_same_target(self, client: TestClient, fake_context: FakeContext) -> None:
        first = client.post("/pages", json={"name": "checkout"})
        second = client.post("/pages", json={"name": "checkout"})

        assert first.status_code == 200
        assert first.json()["targetId"] == second.json()["targetId"]
        assert first.json()["name"] == "checkout"
        assert len(fake_context.pages) == 1

    @pytest.mark.parametrize(
        "body",
        [{}, {"name": ""}, {"name": "x" * 257}, {"name": 42}],
        ids=["missing", "empty", "too-long", "not-a-string"],
    )
    def test_bad_names_rejected(self, client: TestClient, fake_context: FakeContext, body) -> None:
        resp = client.post("/pages", json=body)

        assert resp.status_code == 400
        assert resp.json()["success"] is False
        assert "name" in resp.json()["error"]
        assert fake_context.pages == []

    def test_name_at_length_limit_accepted(self, client: TestClient) -> None:
        assert client.post("/pages", json={"name": "x" * 256}).status_code == 200

    def test_list_and_close(self, client: TestClient) -> None:
        client.post("/pages", json={"name": "a"})
        client.post("/pages", json={"name": "b"})
        assert sorted(client.get("/pages").json()["names"]) == ["a", "b"]

        resp = client.delete("/pages/a")

        assert resp.status_code == 200
        assert resp.json() == {"success": True}
        assert client.get("/pages").json()["names"] == ["b"]

    def test_close_unknown_is_404(self, client: TestClient) -> None:
        client.post("/pages", json={"name": "keep"})

        resp = client.delete("/pages/missing")

        assert resp.status_code == 404
        assert resp.json() == {"success": False, "error": "page not found: missing"}
        assert client.get("/pages").json()["names"] == ["keep"]

    @pytest.mark.parametrize("path", ["shop%2Fcheckout", "shop/checkout"], ids=["encoded", "raw"])
    def test_close_name_with_slash(self, client: TestClient, fake_context: FakeContext, path: str) -> None:
        client.post("/pages", json={"name": "shop/checkout"})

        resp = client.delete(f"/pages/{path}")

        assert resp.status_code == 200
        assert resp.json() == {"success": True}
        assert client.get("/pages").json()["names"] == []
        assert fake_context.pages == []

    def test_page_closed_in_browser_is_recreated(self, client: TestClient, fake_context: FakeContext) -> None:
        target = client.post("/pages", json={"name": "tab"}).json()["targetId"]
        page = next(p for p in fake_context.pages if p.target_id == target)
        page._closed = True  # user closed the tab, close event still pending

        assert client.get("/pages").json()["names"] == []
        recreated = client.post("/pages", json={"name": "tab"}).json()["targetId"]

        assert recreated != target
        assert client.get("/pages").json()["names"] == ["tab"]


# ---------------------------------------------------------------------------
# Wallet
# ---------------------------------------------------------------------------


class TestWalletWithoutController:
    def test_status(self, client: TestClient) -> None:
        resp = client.get("/wallet/status")
        assert resp.status_code == 200
        data = resp.json()
        assert data["isLocked"] is True
        assert data["walletInitialized"] is False
        assert data["state"] == "uninitialized"

    @pytest.mark.parametrize("action", ["connect", "sign", "reject-sign", "confirm-tx", "reject-tx"])
    def test_actions_need_wallet(self, client: TestClient, action: str) -> None:
        resp = client.post(f"/wallet/{action}")
        assert resp.status_code == 400
        assert resp.json() == {"success": False, "error": "wallet not initialized"}

    def test_unlock_requires_password(self, client: TestClient) -> None:
        resp = client.post("/wallet/unlock", json={})
        assert resp.status_code == 400
        assert "password" in resp.json()["error"]

    def test_unlock_without_extension(self, client: TestClient) -> None:
        resp = client.post("/wallet/unlock", json={"password": "pw"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "wallet not available"


class TestWalletActions:
    def test_status_unlocked(self, client: TestClient, wallet_page: FakePage) -> None:
        data = client.get("/wallet/status").json()
        assert data["extensionId"] == EXT_ID
        assert data["isLocked"] is False
        assert data["state"] == "unlocked"

    def test_status_after_wallet_page_closed(self, client: TestClient, wallet_page: FakePage) -> None:
        wallet_page._closed = True  # user closed the wallet tab

        resp = client.get("/wallet/status")

        assert resp.status_code == 200
        assert resp.json()["isLocked"] is True
        assert resp.json()["state"] == "uninitialized"

    def test_unlock_reopens_closed_wallet_page(
        self, client: TestClient, wallet_page: FakePage, fake_context: FakeContext
    ) -> None:
        fake_context.routes["home.html"] = lambda p: p.add(sel.ACCOUNT_MENU)
        wallet_page._closed = True

        resp = client.post("/wallet/unlock", json={"password": "pw"})

        assert resp.status_code == 200
        assert client.get("/wallet/status").json()["isLocked"] is False

    def test_unlock_when_already_unlocked(self, client: TestClient, wallet_page: FakePage) -> None:
        resp = client.post("/wallet/unlock", json={"password": "pw"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["steps"][0]["status"] == "skipped"

    def test_confirm_transaction_in_popup(
        self, client: TestClient, wallet_page: FakePage, fake_context: FakeContext
    ) -> None:
        popup = fake_context.open_popup(f"chrome-extension://{EXT_ID}/notification.html")
        popup.add(sel.CONFIRM_FOOTER.selector)

        resp = client.post("/wallet/confirm-tx")

        assert resp.status_code == 200
        assert resp.json()["success"] is True
        assert popup.clicks == [sel.CONFIRM_FOOTER.selector]
        assert wallet_page.clicks == []

    def test_missing_confirm_button_is_500(
        self, client: TestClient, wallet_page: FakePage, fake_context: FakeContext
    ) -> None:
        fake_context.open_popup(f"chrome-extension://{EXT_ID}/notification.html")

        resp = client.post("/wallet/sign")

        assert resp.status_code == 500
        assert resp.json()["success"] is False
        assert "confirm" in resp.json()["error"]

    def test_connect_with_nothing_to_approve(self, client: TestClient, wallet_page: FakePage) -> None:
        resp = client.post("/wallet/connect")
        assert resp.status_code == 200
        assert resp.json()["success"] is True

    def test_add_network_missing_fields(self, client: TestClient, wallet_page: FakePage) -> None:
        resp = client.post("/wallet/add-network", json={"name": "Ink"})
        assert resp.status_code == 400
        error = resp.json()["error"]
        assert "rpcUrl" in error
        assert "chainId" in error

    def test_switch_network_requires_name(self, client: TestClient, wallet_page: FakePage) -> None:
        resp = client.post("/wallet/switch-network", json={})
        assert resp.status_code == 400
        assert "networkName" in resp.json()["error"]

    def test_switch_network(self, client: TestClient, wallet_page: FakePage) -> None:
        display = wallet_page.add(sel.NETWORK_DISPLAY.selector, text="Ethereum Mainnet")
        entry = sel.network_entry_chain("Ink Sepolia")[0].selector

        def open_picker(page: FakePage) -> None:
            def choose(p: FakePage) -> None:
                display.text = "Ink Sepolia"

            page.add(entry, on_click=choose)

        display.on_click = open_picker

        resp = client.post("/wallet/switch-network", json={"networkName": "Ink Sepolia"})

        assert resp.status_code == 200
        steps = {s["step"]: s["status"] for s in resp.json()["steps"]}
        assert steps["select network"] == "succeeded"
        assert steps["network display"] == "succeeded"
