"""
This module provides the communication client for the remote P2P trading API (REST).

The client encapsulates the protocol logic (bearer authentication, response envelope,
timeouts) and translates httpx errors into the service's own exception types:
- RemoteRequestFailed: the API answered with a 4xx/5xx status
- RemoteUnavailable: transport failure, timeout or malformed payload
No retries are performed here.
"""

import logging
import os
from typing import List, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from .auth import TokenStore
from .errors import RemoteRequestFailed, RemoteUnavailable
from .models import MarkPaidRequest, OrderDetail, OrderListQuery, OrderPage, OrderStub

# Service-Adresse und Timeouts (aus Env Vars)
P2P_API_BASE_URL = os.environ.get("P2P_API_BASE_URL", "http://localhost:8002/api/p2p")
P2P_API_TIMEOUT = float(os.environ.get("P2P_API_TIMEOUT", "5.0"))
P2P_API_READ_TIMEOUT = float(os.environ.get("P2P_API_READ_TIMEOUT", "8.0"))

log = logging.getLogger(__name__)


def unwrap_result(body, strict=False):
    """
    Extracts the payload from the P2P API response envelope.

    Depending on the endpoint the payload sits under `data.result`, under `result`,
    or the body is the payload itself. With `strict=True` a body without envelope
    (e.g. an error body sent with status 200) yields None instead.
    """
    if isinstance(body, dict):
        data = body.get("data")
        if isinstance(data, dict) and "result" in data:
            return data["result"]
        if "result" in body:
            return body["result"]
    return None if strict else body


def _segment(value) -> str:
    """Encodes a value as exactly one URL path segment (ids are opaque strings)."""
    return quote(str(value), safe="")


class P2PApiClient:
    """
    Async client for the remote P2P trading API.

    Every request carries the bearer token from the TokenStore. The client owns an
    httpx.AsyncClient and must be closed with `aclose()` (or used as an async
    context manager).
    """

    def __init__(
            self,
            token_store: TokenStore,
            base_url: str = P2P_API_BASE_URL,
            transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initializes the HTTP client with proper timeout configuration.

        Args:
            token_store (TokenStore): Source of the bearer token.
            base_url (str): Base URL of the P2P API, e.g. "https://host/api/p2p".
            transport (httpx.AsyncBaseTransport, optional): Custom transport (used by tests).
        """
        self.token_store = token_store
        timeout_config = httpx.Timeout(P2P_API_TIMEOUT, read=P2P_API_READ_TIMEOUT)
        self.client = httpx.AsyncClient(base_url=base_url, timeout=timeout_config, transport=transport)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        """Closes the HTTP client session."""
        await self.client.aclose()

    def ensure_authenticated(self) -> str:
        """
        Returns the current bearer token.

        Raises:
            Unauthenticated: If the token store is empty.
        """
        return self.token_store.require()

    async def _request(self, method: str, path: str, order_id: str = None, **kwargs):
        headers = {"Authorization": f"Bearer {self.ensure_authenticated()}"}
        log_prefix = f"[Order: {order_id}]" if order_id else "[P2P-API]"

        try:
            response = await self.client.request(method, path, headers=headers, **kwargs)
            response.raise_for_status()  # Löst HTTPStatusError bei 4xx/5xx aus
            return response.json()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            log.error(f"{log_prefix} HTTP-Fehler von der P2P-API: {method} {path} -> {status_code}")
            raise RemoteRequestFailed(status_code, order_id=order_id) from e
        except httpx.TransportError as e:
            # Umfasst Timeouts und Verbindungsfehler
            log.error(f"{log_prefix} P2P-API nicht erreichbar ({type(e).__name__}): {e}")
            raise RemoteUnavailable(f"P2P API unreachable: {e}", order_id=order_id) from e
        except ValueError as e:
            log.error(f"{log_prefix} Ungültiges JSON von der P2P-API: {e}")
            raise RemoteUnavailable(f"Malformed payload: {e}", order_id=order_id) from e

    async def fetch_order_detail(self, order_id: str) -> OrderDetail:
        """
        Fetches and normalizes the details of one order.

        Args:
            order_id (str): Identifier of the order.

        Returns:
            OrderDetail: The normalized record (paymentTermList is always a list).

        Raises:
            Unauthenticated: If no token is stored.
            RemoteRequestFailed: If the API returns an error status.
            RemoteUnavailable: On transport errors or an unusable payload.
        """
        body = await self._request("GET", f"/orders/{_segment(order_id)}", order_id=order_id)
        result = unwrap_result(body, strict=True)
        if not isinstance(result, dict):
            log.error(f"[Order: {order_id}] Keine Daten von der P2P-API erhalten.")
            raise RemoteUnavailable("No data returned from API", order_id=order_id)

        # Der Datensatz trägt immer die ID, mit der er abgefragt wurde
        try:
            return OrderDetail.model_validate({**result, "id": order_id})
        except ValidationError as e:
            log.error(f"[Order: {order_id}] Order-Details konnten nicht validiert werden: {e}")
            raise RemoteUnavailable(f"Malformed order detail: {e}", order_id=order_id) from e

    async def list_orders(self, query: OrderListQuery) -> OrderPage:
        """
        Queries one page of orders.

        An unexpected response structure is logged and treated as an empty page.
        Entries without an id are skipped.

        Args:
            query (OrderListQuery): Page, size, status and side filter.

        Returns:
            OrderPage: The order stubs of the requested page.
        """
        body = await self._request("POST", "/orders", json=query.model_dump(mode="json"))
        result = unwrap_result(body)

        items = result.get("items") if isinstance(result, dict) else None
        if not isinstance(items, list):
            log.warning("[P2P-API] Unerwartete Datenstruktur in der Order-Liste, leere Seite angenommen.")
            return OrderPage()

        stubs = [OrderStub.model_validate(item) for item in items if isinstance(item, dict) and item.get("id")]
        total = result.get("total")
        return OrderPage(items=stubs, total=total if isinstance(total, int) else len(stubs))

    async def list_pending_orders(self) -> List[OrderStub]:
        """
        Queries the orders that are waiting for payment.

        Returns:
            List[OrderStub]: Pending orders (id plus whatever the API returns).
        """
        result = unwrap_result(await self._request("GET", "/orders/pending"))
        if isinstance(result, dict):
            result = result.get("items")
        if not isinstance(result, list):
            log.warning("[P2P-API] Unerwartete Datenstruktur bei offenen Orders.")
            return []
        return [OrderStub.model_validate(item) for item in result if isinstance(item, dict) and item.get("id")]

    async def mark_paid(self, request: MarkPaidRequest) -> dict:
        """
        Marks an order as paid on the P2P platform.

        Args:
            request (MarkPaidRequest): Order id and the payment term used.

        Returns:
            dict: The (unwrapped) response of the API.

        Raises:
            RemoteRequestFailed: If the API rejects the request.
            RemoteUnavailable: On transport errors.
        """
        log.info(f"[Order: {request.orderId}] Markiere Order als bezahlt ({request.paymentType}).")
        body = await self._request("POST", "/orders/pay", order_id=request.orderId, json=request.model_dump())
        result = unwrap_result(body)
        return result if isinstance(result, dict) else {"result": result}

    async def get_user_stats(self, order_id: str, original_uid: str) -> dict:
        """
        Fetches the trading statistics of the counterparty of an order.

        Args:
            order_id (str): The order the counterparty belongs to.
            original_uid (str): User id of the counterparty as shown in the order.

        Returns:
            dict: The (unwrapped) statistics as returned by the P2P API.

        Raises:
            RemoteRequestFailed: If the API returns an error status.
            RemoteUnavailable: On transport errors or a body without result.
        """
        path = f"/orders/stats/{_segment(original_uid)}/{_segment(order_id)}"
        result = unwrap_result(await self._request("GET", path, order_id=order_id), strict=True)
        if not isinstance(result, dict):
            log.error(f"[Order: {order_id}] Keine Nutzerstatistik von der P2P-API erhalten.")
            raise RemoteUnavailable("No data returned from API", order_id=order_id)
        return result
