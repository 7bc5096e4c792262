import pytest
from fastapi.testclient import TestClient

from ilayer.main import app
from ilayer.node import RfqNode, set_node
from ilayer.providers.static_prices import StaticPriceProvider

PRICES = {"0xAAA": 1.0, "0xBBB": 2.0, "0xCCC": 5.0}

QUOTE_BODY = {
    "from": {"network": "mainnet", "tokens": [{"address": "0xAAA", "weight": 1000}]},
    "to": {
        "network": "base",
        "tokens": [
            {"address": "0xBBB", "weight": 30},
            {"address": "0xCCC", "weight": 70},
        ],
    },
    "timeout_seconds": 2,
}


def client_for(role: str) -> TestClient:
    set_node(RfqNode(role=role, transport="memory", price_feed=StaticPriceProvider(PRICES)))
    return TestClient(app)


@pytest.fixture(autouse=True)
def reset_node():
    yield
    set_node(None)


def test_root_reports_role_and_transport():
    with client_for("both") as client:
        data = client.get("/").json()

    assert data["role"] == "both"
    assert data["transport"] == "memory"


def test_quote_round_trip():
    with client_for("both") as client:
        resp = client.post("/rfq/quote", json=QUOTE_BODY)

    assert resp.status_code == 200, resp.json()
    data = resp.json()
    assert data["solver"].startswith("0x")
    assert data["from"] == {"network": "mainnet", "tokens": [{"address": "0xAAA", "amount": 1000}]}
    amounts = {t["address"]: t["amount"] for t in data["to"]["tokens"]}
    # fee between 0.1% and 1%, truncated on the wire
    assert amounts["0xBBB"] in (148, 149)
    assert amounts["0xCCC"] in (138, 139)


def test_quote_times_out_without_solver():
    with client_for("requester") as client:
        resp = client.post("/rfq/quote", json={**QUOTE_BODY, "timeout_seconds": 0.2})

    assert resp.status_code == 504
    assert "No quote response within 0.2s" in resp.json()["detail"]


def test_quote_rejected_on_solver_only_node():
    with client_for("solver") as client:
        resp = client.post("/rfq/quote", json=QUOTE_BODY)

    assert resp.status_code == 409


def test_quote_body_validation():
    with client_for("both") as client:
        resp = client.post("/rfq/quote", json={"to": QUOTE_BODY["to"]})

    assert resp.status_code == 422


def test_send_sample_request():
    with client_for("both") as client:
        resp = client.get("/user/waku/send-request")
        status = client.get("/node/status").json()

    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "sent"
    assert data["request"]["bucket"] == data["bucket"]
    assert data["request"]["from"]["network"] == "mainnet"
    assert status["requester"]["sent"] == 1


def test_healthz_reports_subscriptions():
    with client_for("both") as client:
        client.post("/rfq/quote", json=QUOTE_BODY)
        data = client.get("/healthz").json()

    assert data["status"] == "healthy"
    assert data["price_feed"]["status"] == "healthy"
    assert data["subscriptions"] == {"requester": "subscribed", "solver": "subscribed"}
    assert len(data["substrate"]) == 2


def test_node_status():
    with client_for("solver") as client:
        data = client.get("/node/status").json()

    assert data["running"] is True
    assert data["role"] == "solver"
    assert data["price_feed"] == "static"
    assert data["requester"] is None
    assert data["solver"]["request_topic"] == "/iLayer/1/rfq/proto"
