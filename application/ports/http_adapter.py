"""
HTTP adapter port (application/ports) exposing a replaceable transport.

The application depends on this Protocol; infrastructure provides the httpx
implementation and tests inject a scripted fake.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional, Protocol, runtime_checkable


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


@runtime_checkable
class HttpAdapter(Protocol):
    """One synchronous round trip per call.

    Returns the raw response body and the status code; transport level failures
    (timeouts, refused connections) raise TransportException.
    """

    def send(
        self,
        url: str,
        payload: Optional[str],
        method: HttpMethod,
        headers: dict[str, str],
    ) -> tuple[str, int]: ...

    def close(self) -> None: ...
