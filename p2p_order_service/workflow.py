"""
workflow.py — Core Orchestration Logic for Order Detail Retrieval

This module contains the batched order-detail retrieval and the "pay all" flow
built on top of it.

Workflow Overview (fetch_all_details):
1. Validate the chunk size and the presence of an access token
2. Split the order ids into chunks of `chunk_size`
3. Per chunk: resolve every id concurrently (cache first, then the P2P API)
4. Drop failed ids (they are logged and reported to an optional hook)
5. Pause briefly between chunks to keep the load on the P2P API low
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, TypeVar

from .cache import OrderDetailCache
from .clients import P2PApiClient
from .errors import (InvalidConfiguration, P2POrderServiceError, RemoteRequestFailed, RemoteUnavailable,
                     Unauthenticated)
from .models import MarkPaidRequest, OrderDetail

DEFAULT_CHUNK_SIZE = int(os.environ.get("DETAIL_CHUNK_SIZE", "5"))
DEFAULT_PAUSE_SECONDS = float(os.environ.get("DETAIL_BATCH_PAUSE_MS", "50")) / 1000

T = TypeVar("T")

log = logging.getLogger(__name__)


def chunk_ids(items: Sequence[T], size: int) -> List[List[T]]:
    """
    Splits a sequence into consecutive chunks of at most `size` elements.

    Joining the chunks in order gives back the input; only the last chunk may be
    shorter than `size`. An empty input gives no chunks.

    Raises:
        InvalidConfiguration: If `size` is not a positive integer.
    """
    if isinstance(size, bool) or not isinstance(size, int) or size < 1:
        raise InvalidConfiguration(f"Chunk-Größe muss eine positive Ganzzahl sein, erhalten: {size!r}")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


@dataclass(frozen=True)
class FetchResult:
    """Outcome of resolving one order id: either a record or the error that occurred."""
    order_id: str
    record: Optional[OrderDetail] = None
    error: Optional[Exception] = None
    from_cache: bool = False

    @property
    def ok(self) -> bool:
        return self.record is not None


FailureHook = Callable[[str, Exception], None]


async def _fetch_and_store(order_id: str, client: P2PApiClient, cache: Optional[OrderDetailCache]) -> OrderDetail:
    record = await client.fetch_order_detail(order_id)
    if cache is not None:
        cache.put(order_id, record)
        cache.maybe_evict_all()
    return record


async def get_order_detail(order_id: str, client: P2PApiClient, cache: Optional[OrderDetailCache] = None) -> OrderDetail:
    """
    Read-through lookup of a single order: cache hit → no request; miss → fetch and store.

    Raises:
        Unauthenticated, RemoteRequestFailed, RemoteUnavailable: As raised by the client.
    """
    cached = cache.get(order_id) if cache is not None else None
    if cached is not None:
        return cached
    return await _fetch_and_store(order_id, client, cache)


async def _resolve_detail(order_id: str, client: P2PApiClient, cache: Optional[OrderDetailCache]) -> FetchResult:
    """Resolves one id into a tagged result. Never raises (except on cancellation)."""
    cached = cache.get(order_id) if cache is not None else None
    if cached is not None:
        return FetchResult(order_id, record=cached, from_cache=True)

    try:
        record = await _fetch_and_store(order_id, client, cache)
    except (RemoteRequestFailed, RemoteUnavailable) as e:
        return FetchResult(order_id, error=e)
    except Unauthenticated as e:
        # Token wurde während des Batches entfernt
        log.error(f"[Order: {order_id}] Kein Access-Token mehr vorhanden, Abruf übersprungen.")
        return FetchResult(order_id, error=e)
    except Exception as e:
        log.critical(f"[Order: {order_id}] Unbekannter Fehler beim Laden der Details: {e}", exc_info=True)
        return FetchResult(order_id, error=e)
    return FetchResult(order_id, record=record)


async def fetch_all_details(
        ids: Sequence[str],
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        *,
        client: P2PApiClient,
        cache: Optional[OrderDetailCache] = None,
        pause_seconds: float = DEFAULT_PAUSE_SECONDS,
        on_failure: Optional[FailureHook] = None,
        cancel_event: Optional[asyncio.Event] = None,
) -> List[OrderDetail]:
    """
    Fetches the details of many orders without overwhelming the P2P API.

    Chunks are processed one after the other; the ids of one chunk are fetched
    concurrently, so at most `chunk_size` requests are in flight. A failing id never
    affects its siblings or later chunks: it is logged, passed to `on_failure` and
    left out of the result. Ids already in `cache` cause no request, and an id that
    appears several times in `ids` is fetched only once per call.

    Within a chunk the records keep the order of `ids`; callers must not rely on
    the result order beyond that.

    Args:
        ids (Sequence[str]): Order ids, typically taken from one page of the order list.
        chunk_size (int): Maximum number of concurrent requests. Default: 5.
        client (P2PApiClient): Client used for the per-order requests.
        cache (OrderDetailCache, optional): Read-through cache consulted before every fetch.
        pause_seconds (float): Pause between two chunks. Default: 50 ms.
        on_failure (callable, optional): Called as on_failure(order_id, error) for each failed id.
        cancel_event (asyncio.Event, optional): When set, no further chunk is started.

    Returns:
        List[OrderDetail]: The successfully resolved records (possibly empty).

    Raises:
        InvalidConfiguration: If `chunk_size` is not a positive integer.
        Unauthenticated: If no access token is stored. Raised before any request.
    """
    chunks = chunk_ids(ids, chunk_size)
    client.ensure_authenticated()

    if not chunks:
        return []

    log.info(f"Lade Details für {len(ids)} Orders in {len(chunks)} Chunk(s) à {chunk_size}.")

    inflight: Dict[str, asyncio.Future] = {}
    reported = set()
    details: List[OrderDetail] = []
    failed = 0
    cache_hits = 0

    for index, chunk in enumerate(chunks):
        if index > 0:
            if cancel_event is not None and cancel_event.is_set():
                log.warning(f"Detail-Abruf abgebrochen nach {index} von {len(chunks)} Chunks.")
                break
            # Kurze Pause zwischen den Chunks, um die P2P-API nicht zu überlasten
            await asyncio.sleep(pause_seconds)

        for order_id in chunk:
            if order_id not in inflight:
                inflight[order_id] = asyncio.ensure_future(_resolve_detail(order_id, client, cache))

        # Wartet, bis alle Abrufe des Chunks abgeschlossen sind (Erfolg oder Fehler)
        results = await asyncio.gather(*(inflight[order_id] for order_id in chunk))

        for result in results:
            if result.ok:
                details.append(result.record)
                cache_hits += result.from_cache
                continue
            if result.order_id in reported:
                continue
            reported.add(result.order_id)
            failed += 1
            log.error(f"[Order: {result.order_id}] Details konnten nicht geladen werden: {result.error}")
            if on_failure is not None:
                try:
                    on_failure(result.order_id, result.error)
                except Exception as hook_e:
                    log.error(f"[Order: {result.order_id}] Fehler im Failure-Hook: {hook_e}")

    log.info(f"Detail-Abruf beendet: {len(details)} geladen ({cache_hits} aus Cache), {failed} fehlgeschlagen.")
    return details


async def pay_pending_orders(
        client: P2PApiClient,
        cache: Optional[OrderDetailCache] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> List[dict]:
    """
    Marks every pending order as paid, using the first payment term of each order.

    Steps:
        1. Query the pending orders from the P2P API.
        2. Load their details via `fetch_all_details`.
        3. Send a "mark paid" request per order, one after the other.

    A failure for one order does not stop the others; each order gets an outcome entry.

    Returns:
        List[dict]: One entry per pending order with keys `orderId`, `status`
        ("paid", "skipped" or "failed") and `detail`.

    Raises:
        Unauthenticated: If no access token is stored.
        RemoteRequestFailed / RemoteUnavailable: If the pending order list cannot be loaded.
    """
    pending = await client.list_pending_orders()
    pending_ids = [stub.id for stub in pending]
    log.info(f"Bezahle {len(pending_ids)} offene Orders.")

    errors: Dict[str, Exception] = {}
    details = await fetch_all_details(
        pending_ids,
        chunk_size,
        client=client,
        cache=cache,
        on_failure=lambda order_id, error: errors.__setitem__(order_id, error),
    )
    by_id = {detail.id: detail for detail in details}

    outcomes = []
    for order_id in dict.fromkeys(pending_ids):
        log_prefix = f"[Order: {order_id}]"
        detail = by_id.get(order_id)
        if detail is None:
            outcomes.append({"orderId": order_id, "status": "failed",
                             "detail": f"Order details unavailable: {errors.get(order_id)}"})
            continue

        term = detail.primary_payment_term
        if term is None or not term.paymentType or not term.paymentId:
            log.warning(f"{log_prefix} Keine verwendbare Zahlungsmethode, übersprungen.")
            outcomes.append({"orderId": order_id, "status": "skipped", "detail": "No usable payment term"})
            continue

        try:
            await client.mark_paid(MarkPaidRequest(orderId=order_id, paymentType=term.paymentType,
                                                   paymentId=term.paymentId))
        except P2POrderServiceError as e:
            log.error(f"{log_prefix} Markieren als bezahlt fehlgeschlagen: {e}")
            outcomes.append({"orderId": order_id, "status": "failed", "detail": str(e)})
            continue

        log.info(f"{log_prefix} Als bezahlt markiert.")
        outcomes.append({"orderId": order_id, "status": "paid", "detail": None})

    return outcomes
