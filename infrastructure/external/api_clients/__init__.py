"""
API client module

Transport to the payment api: the httpx adapter and the HTTP service on top of it.
"""
from .http_service import HttpService
from .httpx_adapter import HttpxAdapter

__all__ = [
    "HttpService",
    "HttpxAdapter",
]
