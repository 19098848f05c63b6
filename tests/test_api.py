"""
Tests for the FastAPI endpoints, with the P2P API replaced by the in-memory fake.
"""

import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import BASE_URL, FakeP2PApi
from p2p_order_service.auth import TokenStore
from p2p_order_service.cache import OrderDetailCache
from p2p_order_service.clients import P2PApiClient
from p2p_order_service.main import app, get_detail_cache, get_p2p_client, get_token_store


@pytest.fixture
def api():
    fake = FakeP2PApi()
    store = TokenStore("test-token")
    cache = OrderDetailCache()
    p2p_client = P2PApiClient(store, base_url=BASE_URL, transport=httpx.MockTransport(fake.handler))

    app.dependency_overrides[get_token_store] = lambda: store
    app.dependency_overrides[get_detail_cache] = lambda: cache
    app.dependency_overrides[get_p2p_client] = lambda: p2p_client
    yield TestClient(app), fake, store, cache
    app.dependency_overrides.clear()


def test_health_check(api):
    http, *_ = api

    assert http.get("/health").json() == {"status": "ok"}


def test_token_can_be_stored_and_removed(api):
    http, _, store, _ = api

    assert http.put("/v1/auth/token", json={"token": "new-token"}).status_code == 204
    assert store.get() == "new-token"

    assert http.delete("/v1/auth/token").status_code == 204
    assert store.get() is None


def test_list_orders_returns_details_and_drops_failures(api):
    http, fake, _, cache = api
    fake.list_items = [{"id": "A"}, {"id": "B"}, {"id": "C"}]
    fake.failures["B"] = 500

    response = http.get("/v1/orders", params={"page": 0, "size": 3, "status": 6, "side": 0})

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 3
    assert sorted(item["id"] for item in body["items"]) == ["A", "C"]
    assert body["items"][0]["statusText"] == "Completed"
    assert len(cache) == 2


def test_list_orders_without_token_is_401(api):
    http, fake, store, _ = api
    store.clear()

    response = http.get("/v1/orders")

    assert response.status_code == 401
    assert fake.requests == []


def test_list_orders_invalid_size_is_422(api):
    http, *_ = api

    assert http.get("/v1/orders", params={"size": 0}).status_code == 422


def test_get_order_uses_cache(api):
    http, fake, *_ = api

    assert http.get("/v1/orders/A").json()["id"] == "A"
    assert http.get("/v1/orders/A").status_code == 200
    assert fake.detail_requests() == ["A"]


@pytest.mark.parametrize("failure, status_code", [
    (404, 502),
    (httpx.ConnectError("refused"), 503),
])
def test_get_order_maps_remote_errors(api, failure, status_code):
    http, fake, *_ = api
    fake.failures["A"] = failure

    assert http.get("/v1/orders/A").status_code == status_code


def test_upstream_status_is_reported(api):
    http, fake, *_ = api
    fake.failures["A"] = 404

    assert http.get("/v1/orders/A").json()["detail"]["upstreamStatus"] == 404


def test_pending_orders(api):
    http, fake, *_ = api
    fake.pending = [{"id": "A"}, {"id": "B"}]

    assert [item["id"] for item in http.get("/v1/orders/pending").json()["items"]] == ["A", "B"]


def test_mark_order_paid(api):
    http, fake, *_ = api

    response = http.post("/v1/orders/A/pay", json={"paymentType": "BANK", "paymentId": "pm_A"})

    assert response.status_code == 200
    assert response.json()["status"] == "paid"
    assert fake.paid == [{"orderId": "A", "paymentType": "BANK", "paymentId": "pm_A"}]


def test_pay_all_orders(api):
    http, fake, *_ = api
    fake.pending = [{"id": "A"}, {"id": "B"}]

    results = http.post("/v1/orders/pay-all").json()["results"]

    assert [r["status"] for r in results] == ["paid", "paid"]
    assert [p["orderId"] for p in fake.paid] == ["A", "B"]


def test_export_csv(api):
    http, fake, *_ = api
    fake.list_items = [{"id": "A"}]

    response = http.get("/v1/orders/export.csv")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    lines = response.text.splitlines()
    assert lines[0] == "Account_Number,Amount,Bank_Codes,Narration"
    assert lines[1].startswith("0123456789,1500,044,")


def test_counterparty_stats(api):
    http, fake, *_ = api
    fake.stats[("uid_7", "A")] = {"completedOrders": 42}

    response = http.get("/v1/orders/A/stats/uid_7")

    assert response.status_code == 200
    assert response.json() == {"orderId": "A", "originalUid": "uid_7", "stats": {"completedOrders": 42}}
    assert ("GET", "/api/p2p/orders/stats/uid_7/A") in fake.requests


def test_counterparty_stats_maps_remote_errors(api):
    http, fake, *_ = api
    fake.failures[("stats", "A")] = 404

    response = http.get("/v1/orders/A/stats/uid_7")

    assert response.status_code == 502
    assert response.json()["detail"]["upstreamStatus"] == 404


def test_counterparty_stats_without_token_is_401(api):
    http, _, store, _ = api
    store.clear()

    assert http.get("/v1/orders/A/stats/uid_7").status_code == 401
