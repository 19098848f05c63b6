"""
errors.py — Exception Types for the P2P Order Service

Configuration and authentication errors are fatal to a call and reach the caller.
Remote errors are raised per order by the API client; the batch workflow contains
them, while the pass-through endpoints map them to HTTP status codes.
"""


class P2POrderServiceError(Exception):
    """Base class for all errors raised by this service."""


class InvalidConfiguration(P2POrderServiceError):
    """A caller-supplied parameter (e.g. chunk size) is invalid."""


class Unauthenticated(P2POrderServiceError):
    """No bearer token is available in the token store."""

    def __init__(self, message: str = "No access token found"):
        super().__init__(message)


class RemoteRequestFailed(P2POrderServiceError):
    """
    The P2P API answered with a non-success status code.

    Attributes:
        status_code (int): HTTP status returned by the remote API.
        order_id (str | None): The order the request was made for, if any.
    """

    def __init__(self, status_code: int, order_id: str = None, message: str = None):
        self.status_code = status_code
        self.order_id = order_id
        super().__init__(message or f"HTTP error! status: {status_code}")


class RemoteUnavailable(P2POrderServiceError):
    """Transport failure or malformed payload from the P2P API."""

    def __init__(self, message: str, order_id: str = None):
        self.order_id = order_id
        super().__init__(message)
