"""
Synchronous httpx implementation of the HttpAdapter port.
"""
from __future__ import annotations

from typing import Optional

import httpx

from application.ports.http_adapter import HttpMethod
from core.config import HttpTimeouts
from core.logging_config import get_logger
from domain.common.exceptions import TransportException


logger = get_logger(__name__)


class HttpxAdapter:
    """Sends one request per call over a pooled `httpx.Client`."""

    def __init__(
        self,
        timeouts: Optional[HttpTimeouts] = None,
        verify_ssl: bool = True,
        client: Optional[httpx.Client] = None,
    ) -> None:
        timeouts = timeouts or HttpTimeouts()
        self._client = client or httpx.Client(
            timeout=httpx.Timeout(
                timeouts.total,
                connect=timeouts.connect,
                read=timeouts.read,
                write=timeouts.write,
            ),
            verify=verify_ssl,
        )

    def send(
        self,
        url: str,
        payload: Optional[str],
        method: HttpMethod,
        headers: dict[str, str],
    ) -> tuple[str, int]:
        try:
            response = self._client.request(
                HttpMethod(method).value,
                url,
                content=payload.encode("utf-8") if payload is not None else None,
                headers=headers,
            )
        except httpx.TimeoutException as exc:
            logger.warning("http_timeout", method=HttpMethod(method).value, url=url)
            raise TransportException(f"Request timeout: {exc}", details={"url": url}) from exc
        except httpx.HTTPError as exc:
            logger.warning("http_transport_error", method=HttpMethod(method).value, url=url, error=str(exc))
            raise TransportException(f"Network error: {exc}", details={"url": url}) from exc
        return response.text, response.status_code

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> HttpxAdapter:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
