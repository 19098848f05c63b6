"""
main.py — FastAPI Entry Point for the P2P Order Service

This module provides the REST API used by the P2P order dashboard. It sits between
the dashboard and the remote P2P trading API.

Responsibilities:
    • Store the bearer token for the P2P API
    • List orders with full details (batched, cached detail retrieval)
    • Mark single orders or all pending orders as paid
    • Export orders as payout CSV
    • Provide system health information
"""

from fastapi import Depends, FastAPI, HTTPException, Query, Response

from .auth import TokenStore
from .cache import OrderDetailCache
from .clients import P2PApiClient
from .errors import (InvalidConfiguration, P2POrderServiceError, RemoteRequestFailed, RemoteUnavailable,
                     Unauthenticated)
from .export import render_csv
from .logging_config import get_logger, setup_logging
from .models import (MarkPaidRequest, OrderListQuery, OrderSide, OrderStatus, PaymentConfirmation, TokenRequest,
                     status_text)
from .workflow import fetch_all_details, get_order_detail, pay_pending_orders

# Initialization
# Configure logging and initialize FastAPI app
setup_logging()
log = get_logger(__name__)
app = FastAPI(title="P2P Order Dashboard Service")

# Prozessweite Zustände: Token und Detail-Cache leben so lange wie der Prozess
token_store = TokenStore.from_env()
detail_cache = OrderDetailCache()


@app.on_event("startup")
async def on_startup():
    """Creates the shared P2P API client."""
    log.info("P2P-Order-Service startet...")
    app.state.p2p_client = P2PApiClient(token_store)


@app.on_event("shutdown")
async def on_shutdown():
    """Closes the shared P2P API client."""
    client = getattr(app.state, "p2p_client", None)
    if client is not None:
        await client.aclose()
    log.info("P2P-Order-Service beendet.")


# Dependencies (in Tests per dependency_overrides ersetzbar)
def get_token_store() -> TokenStore:
    return token_store


def get_detail_cache() -> OrderDetailCache:
    return detail_cache


def get_p2p_client() -> P2PApiClient:
    return app.state.p2p_client


def to_http_exception(e: P2POrderServiceError) -> HTTPException:
    """Maps service errors onto HTTP status codes."""
    if isinstance(e, Unauthenticated):
        return HTTPException(status_code=401, detail=str(e))
    if isinstance(e, InvalidConfiguration):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, RemoteRequestFailed):
        return HTTPException(status_code=502, detail={"message": "P2P API request failed",
                                                      "upstreamStatus": e.status_code})
    if isinstance(e, RemoteUnavailable):
        return HTTPException(status_code=503, detail="P2P API unavailable")
    return HTTPException(status_code=500, detail="Internal server error")


def _serialize(detail) -> dict:
    data = detail.model_dump()
    if "status" in data:
        data["statusText"] = status_text(data["status"])
    return data


async def _load_orders(query: OrderListQuery, client: P2PApiClient, cache: OrderDetailCache):
    page = await client.list_orders(query)
    details = await fetch_all_details(page.ids, client=client, cache=cache)
    return page, details


# Token Management
@app.put("/v1/auth/token", status_code=204)
def store_token(request: TokenRequest, store: TokenStore = Depends(get_token_store)):
    """Stores the bearer token used for all P2P API requests."""
    store.set(request.token)
    return Response(status_code=204)


@app.delete("/v1/auth/token", status_code=204)
def delete_token(store: TokenStore = Depends(get_token_store)):
    """Forgets the stored bearer token."""
    store.clear()
    return Response(status_code=204)


# Orders
@app.get("/v1/orders")
async def list_orders(
        page: int = Query(0, ge=0),
        size: int = Query(30, ge=1, le=100),
        status: OrderStatus = OrderStatus.FINISH_ORDER,
        side: OrderSide = OrderSide.BUY,
        client: P2PApiClient = Depends(get_p2p_client),
        cache: OrderDetailCache = Depends(get_detail_cache),
):
    """
    Lists one page of orders together with their full details.

    Orders whose details could not be loaded are left out (see `fetch_all_details`),
    so `items` may be shorter than the page.

    Returns:
        dict: page, size, total (as reported by the P2P API) and items (order details).

    Raises:
        HTTPException(401): If no token is stored.
        HTTPException(502/503): If the order list itself cannot be loaded.
    """
    query = OrderListQuery(page=page, size=size, status=status, side=side)
    try:
        order_page, details = await _load_orders(query, client, cache)
    except P2POrderServiceError as e:
        log.error(f"Order-Liste konnte nicht geladen werden: {e}")
        raise to_http_exception(e)

    return {
        "page": page,
        "size": size,
        "total": order_page.total,
        "items": [_serialize(detail) for detail in details],
    }


@app.get("/v1/orders/pending")
async def list_pending_orders(client: P2PApiClient = Depends(get_p2p_client)):
    """Returns the orders waiting for payment (pass-through)."""
    try:
        pending = await client.list_pending_orders()
    except P2POrderServiceError as e:
        log.error(f"Offene Orders konnten nicht geladen werden: {e}")
        raise to_http_exception(e)
    return {"items": [stub.model_dump() for stub in pending]}


@app.get("/v1/orders/export.csv")
async def export_orders(
        page: int = Query(0, ge=0),
        size: int = Query(30, ge=1, le=100),
        status: OrderStatus = OrderStatus.FINISH_ORDER,
        side: OrderSide = OrderSide.BUY,
        client: P2PApiClient = Depends(get_p2p_client),
        cache: OrderDetailCache = Depends(get_detail_cache),
):
    """
    Exports one page of orders as payout CSV.

    Columns: Account_Number, Amount, Bank_Codes, Narration.
    """
    query = OrderListQuery(page=page, size=size, status=status, side=side)
    try:
        _, details = await _load_orders(query, client, cache)
    except P2POrderServiceError as e:
        log.error(f"CSV-Export fehlgeschlagen: {e}")
        raise to_http_exception(e)

    log.info(f"CSV-Export mit {len(details)} Orders erstellt.")
    return Response(
        content=render_csv(details),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="orders.csv"'},
    )


@app.post("/v1/orders/pay-all")
async def pay_all_orders(
        client: P2PApiClient = Depends(get_p2p_client),
        cache: OrderDetailCache = Depends(get_detail_cache),
):
    """
    Marks all pending orders as paid, using each order's first payment term.

    Returns:
        dict: `results` with one outcome per order ("paid", "skipped" or "failed").
    """
    try:
        outcomes = await pay_pending_orders(client, cache)
    except P2POrderServiceError as e:
        log.error(f"Sammelzahlung fehlgeschlagen: {e}")
        raise to_http_exception(e)
    return {"results": outcomes}


@app.get("/v1/orders/{order_id}")
async def get_order(
        order_id: str,
        client: P2PApiClient = Depends(get_p2p_client),
        cache: OrderDetailCache = Depends(get_detail_cache),
):
    """Returns the details of a single order (served from the cache when possible)."""
    try:
        detail = await get_order_detail(order_id, client, cache)
    except P2POrderServiceError as e:
        raise to_http_exception(e)
    return _serialize(detail)


@app.post("/v1/orders/{order_id}/pay")
async def mark_order_paid(
        order_id: str,
        payment: PaymentConfirmation,
        client: P2PApiClient = Depends(get_p2p_client),
):
    """Marks a single order as paid with the given payment term."""
    request = MarkPaidRequest(orderId=order_id, paymentType=payment.paymentType, paymentId=payment.paymentId)
    try:
        result = await client.mark_paid(request)
    except P2POrderServiceError as e:
        raise to_http_exception(e)
    return {"orderId": order_id, "status": "paid", "result": result}


@app.get("/v1/orders/{order_id}/stats/{original_uid}")
async def get_counterparty_stats(
        order_id: str,
        original_uid: str,
        client: P2PApiClient = Depends(get_p2p_client),
):
    """Returns the trading statistics of an order's counterparty (pass-through)."""
    try:
        stats = await client.get_user_stats(order_id, original_uid)
    except P2POrderServiceError as e:
        raise to_http_exception(e)
    return {"orderId": order_id, "originalUid": original_uid, "stats": stats}


# Health Check Endpoint
@app.get("/health")
def health_check():
    """
    Simple health check endpoint.

    Returns:
        dict: A basic JSON object indicating service availability.
    """
    return {"status": "ok"}
