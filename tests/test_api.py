from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from curvefund.ledger.constants import MAX_SUPPLY, TOKEN_UNIT
from curvefund.testing.harness import GOAL, make_harness


def _u(n: int) -> int:
    return n * TOKEN_UNIT


def _client(monkeypatch: pytest.MonkeyPatch, *, mode: str = "dev", campaign=None) -> TestClient:
    from curvefund.api.app import create_app

    monkeypatch.setenv("CURVEFUND_MODE", mode)
    monkeypatch.setenv("CURVEFUND_LOG_REQUESTS", "0")
    app = create_app(boot_runtime=False)
    app.state.campaign = campaign if campaign is not None else make_harness().campaign
    return TestClient(app)


def _fund(client: TestClient, account: str, amount: int) -> None:
    r = client.post("/v1/dev/faucet", json={"account": account, "amount": str(amount)})
    assert r.status_code == 200, r.text


def test_create_app_boot_runtime_false_does_not_attach_campaign(monkeypatch: pytest.MonkeyPatch) -> None:
    from curvefund.api.app import create_app

    monkeypatch.setenv("CURVEFUND_MODE", "dev")
    app = create_app(boot_runtime=False)
    assert getattr(app.state, "campaign", None) is None

    with TestClient(app) as client:
        body = client.get("/v1/health").json()
    assert body["ok"] is False
    assert body["campaign"] is None


def test_create_app_boot_runtime_true_attaches_campaign(monkeypatch: pytest.MonkeyPatch) -> None:
    from curvefund.api import app as api_app

    h = make_harness()
    monkeypatch.setattr(api_app, "build_campaign", lambda: h.campaign)
    monkeypatch.delenv("CURVEFUND_CONFIG_PATH", raising=False)
    # create_app exports these; register them so they are restored afterwards
    for k, v in (
        ("CURVEFUND_MODE", "prod"),
        ("CURVEFUND_LOG_LEVEL", "INFO"),
        ("CURVEFUND_API_HOST", "127.0.0.1"),
        ("CURVEFUND_API_PORT", "8080"),
    ):
        monkeypatch.setenv(k, v)

    app = api_app.create_app(boot_runtime=True)
    assert app.state.campaign is h.campaign


def test_health_and_campaign_view(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _client(monkeypatch)

    health = client.get("/v1/healthz").json()
    assert health["ok"] is True
    assert health["mode"] == "dev"
    assert health["campaign"]["progress_bps"] == 0

    view = client.get("/v1/campaign").json()["campaign"]
    assert view["goal"] == str(GOAL)
    assert view["max_supply"] == str(MAX_SUPPLY)
    assert view["raised"] == "0"
    assert view["finalized"] is False


def test_purchase_flow_over_http(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _client(monkeypatch)
    _fund(client, "alice", _u(25_000))

    quote = client.get("/v1/campaign/quote", params={"amount": str(_u(25_000))}).json()["quote"]
    assert quote["tokens"] == str(MAX_SUPPLY // 2)

    r = client.post("/v1/campaign/purchase", json={"buyer": "alice", "amount": str(_u(25_000))})
    assert r.status_code == 200, r.text
    receipt = r.json()["receipt"]
    assert receipt["minted"] == str(MAX_SUPPLY // 2)
    assert receipt["finalized"] is False

    acct = client.get("/v1/campaign/accounts/alice").json()
    assert acct["token_balance"] == str(MAX_SUPPLY // 2)
    assert acct["settlement_balance"] == "0"

    view = client.get("/v1/campaign").json()["campaign"]
    assert view["progress_bps"] == 2_500


def test_closing_purchase_and_finalize_over_http(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _client(monkeypatch)

    r = client.post("/v1/campaign/finalize")
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "not_complete"

    _fund(client, "alice", GOAL)
    r = client.post("/v1/campaign/purchase", json={"buyer": "alice", "amount": str(GOAL)})
    assert r.json()["receipt"]["finalized"] is True

    r = client.post("/v1/campaign/finalize")
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "already_finalized"

    _fund(client, "bob", _u(1))
    r = client.post("/v1/campaign/purchase", json={"buyer": "bob", "amount": str(_u(1))})
    assert r.status_code == 409
    assert r.json() == {
        "ok": False,
        "error": {"code": "already_finalized", "message": "campaign_closed", "details": {"campaign_id": "campaign:test"}},
    }


def test_events_endpoint_pages(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _client(monkeypatch)
    for name in ("a", "b", "c"):
        _fund(client, name, _u(10))
        client.post("/v1/campaign/purchase", json={"buyer": name, "amount": str(_u(10))})

    body = client.get("/v1/campaign/events", params={"after": 1, "limit": 1}).json()
    assert [e["buyer"] for e in body["events"]] == ["b"]
    assert body["next_after"] == 2


def test_error_status_mapping(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _client(monkeypatch)

    r = client.get("/v1/campaign/quote", params={"amount": "12abc"})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "invalid_amount"

    r = client.get("/v1/campaign/quote", params={"amount": "0"})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "invalid_amount"

    # no allowance: settlement pull fails
    r = client.post("/v1/campaign/purchase", json={"buyer": "nobody", "amount": str(_u(1))})
    assert r.status_code == 402
    assert r.json()["error"]["code"] == "settlement_transfer_failed"


def test_dust_purchase_maps_to_422(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _client(monkeypatch, campaign=make_harness(goal=10**40).campaign)
    _fund(client, "dusty", 1)
    r = client.post("/v1/campaign/purchase", json={"buyer": "dusty", "amount": "1"})
    assert r.status_code == 422
    assert r.json()["error"]["code"] == "no_tokens_to_mint"


@pytest.mark.parametrize(
    "body",
    [
        {"buyer": "alice", "amount": "1", "extra": True},
        {"buyer": "alice", "amount": "-5"},
        {"buyer": "alice", "amount": 1.5},
        {"buyer": "", "amount": "1"},
    ],
)
def test_malformed_purchase_bodies_are_rejected(monkeypatch: pytest.MonkeyPatch, body) -> None:
    client = _client(monkeypatch)
    r = client.post("/v1/campaign/purchase", json=body)
    assert r.status_code == 422


def test_prod_mode_hides_dev_routes_and_docs(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _client(monkeypatch, mode="prod")
    r = client.post("/v1/dev/faucet", json={"account": "alice", "amount": "1"})
    assert r.status_code == 404
    assert client.get("/docs").status_code == 404


def test_metrics_disabled_by_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CURVEFUND_METRICS_ENABLED", raising=False)
    client = _client(monkeypatch)
    assert client.get("/v1/metrics").status_code == 404


def test_metrics_count_purchases_and_rejections(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CURVEFUND_METRICS_ENABLED", "1")
    client = _client(monkeypatch)
    _fund(client, "alice", GOAL)
    client.post("/v1/campaign/purchase", json={"buyer": "alice", "amount": str(GOAL)})
    client.post("/v1/campaign/purchase", json={"buyer": "alice", "amount": "1"})

    text = client.get("/v1/metrics").text
    assert "curvefund_campaign_purchases_total 1\n" in text
    assert "curvefund_campaign_rejections_total 1\n" in text
    assert "curvefund_campaign_finalized 1\n" in text


def test_metrics_exposition_declares_families(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CURVEFUND_METRICS_ENABLED", "1")
    client = _client(monkeypatch)

    r = client.get("/v1/metrics")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/plain")
    lines = r.text.splitlines()
    assert "# TYPE curvefund_campaign_purchases_total counter" in lines
    assert "# HELP curvefund_campaign_purchases_total Purchases committed." in lines
    assert "# TYPE curvefund_campaign_finalized gauge" in lines
    assert "curvefund_campaign_purchases_total 0" in lines
    assert any(line.startswith("curvefund_uptime_seconds ") for line in lines)
