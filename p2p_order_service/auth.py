"""
auth.py — Process-local Bearer Token Store

The dashboard hands the P2P API access token to this service once; every request to
the remote API reads it from here. Nothing is persisted, a restart forgets the token
(unless P2P_ACCESS_TOKEN is set in the environment).
"""

import logging
import os
import threading
from typing import Optional

from .errors import Unauthenticated

log = logging.getLogger(__name__)


class TokenStore:
    """Holds the bearer token for the remote P2P API."""

    def __init__(self, token: Optional[str] = None):
        self._token = token or None
        self._lock = threading.Lock()

    @classmethod
    def from_env(cls) -> "TokenStore":
        return cls(os.environ.get("P2P_ACCESS_TOKEN"))

    def get(self) -> Optional[str]:
        with self._lock:
            return self._token

    def set(self, token: str):
        with self._lock:
            self._token = token
        log.info("Access-Token gespeichert.")

    def clear(self):
        with self._lock:
            self._token = None
        log.info("Access-Token entfernt.")

    def require(self) -> str:
        """
        Returns the stored token.

        Raises:
            Unauthenticated: If no token has been stored.
        """
        token = self.get()
        if not token:
            raise Unauthenticated()
        return token
