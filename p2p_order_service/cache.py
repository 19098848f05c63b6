"""
cache.py — Read-Through Cache for Order Details

Order details do not change once an order is finished, so repeated list views and
CSV exports would otherwise refetch the same records again and again. The cache is
a plain dict keyed by order id. It is not an LRU: once it holds more entries than
allowed, it is flushed completely.

One instance is created per process by the API layer and handed to the workflow;
tests create their own.
"""

import logging
import os
import threading
from typing import Dict, Optional

from .errors import InvalidConfiguration
from .models import OrderDetail

DEFAULT_MAX_ENTRIES = int(os.environ.get("DETAIL_CACHE_MAX_ENTRIES", "100"))

log = logging.getLogger(__name__)


class OrderDetailCache:
    """
    In-memory order id → OrderDetail store with a size-based flush.

    All operations take a single lock, so the cache stays consistent when FastAPI
    runs sync endpoints in its thread pool next to the event loop.
    """

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES):
        if max_entries < 0:
            raise InvalidConfiguration(f"Cache-Obergrenze muss >= 0 sein, erhalten: {max_entries}")
        self.max_entries = max_entries
        self._entries: Dict[str, OrderDetail] = {}
        self._lock = threading.Lock()

    def __len__(self):
        with self._lock:
            return len(self._entries)

    def __contains__(self, order_id):
        with self._lock:
            return order_id in self._entries

    def get(self, order_id: str) -> Optional[OrderDetail]:
        with self._lock:
            return self._entries.get(order_id)

    def put(self, order_id: str, record: OrderDetail):
        with self._lock:
            self._entries[order_id] = record

    def maybe_evict_all(self) -> bool:
        """
        Flushes the whole cache if it holds more than `max_entries` records.

        Returns:
            bool: True if the cache was flushed.
        """
        with self._lock:
            size = len(self._entries)
            if size <= self.max_entries:
                return False
            self._entries.clear()
        log.info(f"Order-Detail-Cache geleert ({size} Einträge > Limit {self.max_entries}).")
        return True

    def clear(self):
        with self._lock:
            self._entries.clear()
