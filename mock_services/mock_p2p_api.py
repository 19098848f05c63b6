"""
mock_p2p_api.py — Mock Implementation of the remote P2P Trading API (REST)

This module provides a simulated P2P trading API for running the order service locally.
It exposes a FastAPI application that mimics the endpoints the service consumes.

Simulation Scenarios (by order id):
    • "fail_..."    → detail request answers with HTTP 500
    • "missing_..." → detail request answers with HTTP 404
    • "slow_..."    → detail request takes 10 seconds (client read timeout)
    • "error_..."   → detail request answers with an error body and HTTP 200
    • "noterms_..." → detail without paymentTermList
    • any other id  → regular order detail

Endpoints:
    POST /api/p2p/orders           — Order list (page, size, status, side)
    GET  /api/p2p/orders/pending   — Orders waiting for payment
    GET  /api/p2p/orders/{id}      — Order detail
    GET  /api/p2p/orders/stats/{uid}/{id} — Counterparty statistics
    POST /api/p2p/orders/pay       — Mark an order as paid

Port:
    Default: 8002 (HTTP)
"""

import asyncio
import logging

from fastapi import FastAPI, Header, HTTPException
from pydantic import BaseModel

app = FastAPI(title="Mock P2P Trading API")
logging.basicConfig(level=logging.INFO)

BANKS = ["Access Bank", "Guaranty Trust Bank", "Zenith Bank PLC", "First Bank of Nigeria", "Kuda Microfinance Bank"]
ORDER_IDS = [f"ord_{n:04d}" for n in range(1, 43)] + ["fail_0001", "noterms_0001"]
PAID_ORDERS = set()


class OrderListRequest(BaseModel):
    page: int = 0
    size: int = 30
    status: int = 6
    side: int = 0


class PayRequest(BaseModel):
    orderId: str
    paymentType: str
    paymentId: str


def _check_token(authorization: str):
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail={"message": "Missing bearer token"})


def _envelope(result):
    return {"code": 0, "data": {"result": result}}


def _order_detail(order_id: str) -> dict:
    number = sum(ord(c) for c in order_id)
    detail = {
        "id": order_id,
        "amount": 5000 + (number % 50) * 1000,
        "status": 6,
        "paymentTermList": [{
            "bankName": BANKS[number % len(BANKS)],
            "accountNo": f"{number:010d}",
            "accountName": "Test Counterparty",
            "paymentType": "BANK",
            "paymentId": f"pm_{order_id}",
        }],
    }
    if order_id.startswith("noterms_"):
        del detail["paymentTermList"]
    return detail


@app.post("/api/p2p/orders")
def list_orders(request: OrderListRequest, authorization: str = Header(None)):
    """Returns one page of order stubs (`result.items`)."""
    _check_token(authorization)
    start = request.page * request.size
    items = [{"id": order_id, "status": request.status, "side": request.side}
             for order_id in ORDER_IDS[start:start + request.size]]
    logging.info(f"[P2P] Order-Liste Seite {request.page} ({len(items)} Einträge)")
    return {"result": {"items": items, "total": len(ORDER_IDS)}}


@app.get("/api/p2p/orders/pending")
def pending_orders(authorization: str = Header(None)):
    """Returns the orders not yet marked as paid (first ten of the list)."""
    _check_token(authorization)
    return _envelope([{"id": order_id} for order_id in ORDER_IDS[:10] if order_id not in PAID_ORDERS])


@app.get("/api/p2p/orders/stats/{original_uid}/{order_id}")
def user_stats(original_uid: str, order_id: str, authorization: str = Header(None)):
    """Returns trading statistics of the counterparty of an order."""
    _check_token(authorization)
    if order_id.startswith("missing_"):
        raise HTTPException(status_code=404, detail={"message": "Order not found"})
    number = sum(ord(c) for c in original_uid)
    return _envelope({
        "originalUid": original_uid,
        "completedOrders": 20 + number % 300,
        "completionRate": round(0.9 + (number % 10) / 100, 2),
        "avgReleaseMinutes": 3 + number % 12,
    })


@app.get("/api/p2p/orders/{order_id}")
async def order_detail(order_id: str, authorization: str = Header(None)):
    """
    Returns the details of one order, or simulates a failure depending on the id prefix.

    Raises:
        HTTPException(500): For ids starting with "fail_".
        HTTPException(404): For ids starting with "missing_".

    Ids starting with "error_" get an error body with status 200.
    """
    _check_token(authorization)
    if order_id.startswith("fail_"):
        logging.warning(f"[P2P] Simulierter Serverfehler für {order_id}.")
        raise HTTPException(status_code=500, detail={"message": "Internal error"})
    if order_id.startswith("missing_"):
        raise HTTPException(status_code=404, detail={"message": "Order not found"})
    if order_id.startswith("error_"):
        return {"code": 10001, "msg": "order not found", "data": {}}
    if order_id.startswith("slow_"):
        logging.info(f"[P2P] Simuliere Timeout für {order_id}...")
        await asyncio.sleep(10)

    return _envelope(_order_detail(order_id))


@app.post("/api/p2p/orders/pay")
def mark_paid(request: PayRequest, authorization: str = Header(None)):
    """Marks an order as paid."""
    _check_token(authorization)
    if request.orderId.startswith("fail_"):
        raise HTTPException(status_code=409, detail={"message": "Order cannot be paid"})
    PAID_ORDERS.add(request.orderId)
    logging.info(f"[P2P] Order {request.orderId} als bezahlt markiert ({request.paymentType}).")
    return _envelope({"orderId": request.orderId, "paid": True})


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8002)
