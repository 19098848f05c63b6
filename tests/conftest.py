"""
Shared fixtures: an in-memory fake of the P2P API served through httpx.MockTransport.
"""

import asyncio
import json

import httpx
import pytest
import pytest_asyncio

from p2p_order_service.auth import TokenStore
from p2p_order_service.cache import OrderDetailCache
from p2p_order_service.clients import P2PApiClient

BASE_URL = "http://p2p.test/api/p2p"


def make_detail(order_id, amount=1500, bank="Access Bank", account="0123456789"):
    return {
        "id": order_id,
        "amount": amount,
        "status": 6,
        "paymentTermList": [{
            "bankName": bank,
            "accountNo": account,
            "paymentType": "BANK",
            "paymentId": f"pm_{order_id}",
        }],
    }


class FakeP2PApi:
    """
    Records every request and answers like the P2P API.

    `failures` maps an order id to an HTTP status code or to an exception to raise.
    `raw_details` maps an order id to a body that is sent unchanged with status 200.
    """

    def __init__(self, delay=0.0):
        self.delay = delay
        self.details = {}
        self.raw_details = {}
        self.stats = {}
        self.failures = {}
        self.list_items = []
        self.pending = []
        self.paid = []
        self.requests = []
        self.on_detail = None
        self.in_flight = 0
        self.max_in_flight = 0

    def detail_requests(self):
        return [path.rsplit("/", 1)[-1] for method, path in self.requests
                if method == "GET" and path.startswith("/api/p2p/orders/") and not path.endswith("/pending")
                and not path.startswith("/api/p2p/orders/stats/")]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append((request.method, request.url.path))
        assert request.headers["Authorization"].startswith("Bearer ")
        path = request.url.path

        if request.method == "POST" and path == "/api/p2p/orders":
            return httpx.Response(200, json={"result": {"items": self.list_items, "total": len(self.list_items)}})
        if request.method == "GET" and path == "/api/p2p/orders/pending":
            return httpx.Response(200, json={"data": {"result": self.pending}})
        if request.method == "POST" and path == "/api/p2p/orders/pay":
            payload = json.loads(request.content)
            failure = self.failures.get(("pay", payload["orderId"]))
            if failure:
                return httpx.Response(failure, json={"message": "rejected"})
            self.paid.append(payload)
            return httpx.Response(200, json={"data": {"result": {"orderId": payload["orderId"], "paid": True}}})
        if request.method == "GET" and path.startswith("/api/p2p/orders/stats/"):
            uid, order_id = path.split("/")[-2:]
            failure = self.failures.get(("stats", order_id))
            if failure:
                return httpx.Response(failure, json={"message": "error"})
            return httpx.Response(200, json={"data": {"result": self.stats.get((uid, order_id), {})}})

        order_id = path.rsplit("/", 1)[-1]
        if self.on_detail is not None:
            self.on_detail(order_id)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            failure = self.failures.get(order_id)
            if isinstance(failure, Exception):
                raise failure
            if isinstance(failure, int):
                return httpx.Response(failure, json={"message": "error"})
            if order_id in self.raw_details:
                return httpx.Response(200, json=self.raw_details[order_id])
            detail = self.details.get(order_id, make_detail(order_id))
            return httpx.Response(200, json={"data": {"result": detail}})
        finally:
            self.in_flight -= 1


@pytest.fixture
def fake_api():
    return FakeP2PApi()


@pytest.fixture
def token_store():
    return TokenStore("test-token")


@pytest.fixture
def cache():
    return OrderDetailCache(max_entries=100)


@pytest_asyncio.fixture
async def client(fake_api, token_store):
    p2p_client = P2PApiClient(token_store, base_url=BASE_URL, transport=httpx.MockTransport(fake_api.handler))
    yield p2p_client
    await p2p_client.aclose()
