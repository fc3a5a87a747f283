"""
Payment api HTTP service.

Builds urls and headers, serializes payloads, runs the exchange through an
HttpAdapter and turns the raw response into either a dict or an exception:

- empty or malformed body -> TransportException
- status >= 400 or an `errors` field -> ApiException
"""
from __future__ import annotations

import base64
import json
from typing import Any, Optional

from pydantic import ValidationError

from application.dtos.payments import ApiErrorEnvelope, ApiErrorItem
from application.ports.http_adapter import HttpAdapter, HttpMethod
from core.config import Settings
from core.logging_config import get_logger
from domain.common.exceptions import ApiException, TransportException


logger = get_logger(__name__)

NULL_RESPONSE_MESSAGE = "The Request returned a null response!"
MALFORMED_RESPONSE_MESSAGE = "The Request returned a malformed response!"


class HttpService:
    def __init__(
        self,
        private_key: str,
        adapter: HttpAdapter,
        settings: Settings,
        locale: Optional[str] = None,
    ) -> None:
        self.private_key = private_key
        self.adapter = adapter
        self.settings = settings
        self.locale = locale or settings.LOCALE

    def build_url(self, uri: str) -> str:
        """`payments/s-pay-1/` -> `https://api.../v1/payments/s-pay-1/`"""
        base = self.settings.API_URL.rstrip("/")
        version = self.settings.API_VERSION.strip("/")
        return f"{base}/{version}/{uri.lstrip('/')}"

    def build_headers(self) -> dict[str, str]:
        token = base64.b64encode(f"{self.private_key}:".encode("utf-8")).decode("ascii")
        headers = {
            "Authorization": f"Basic {token}",
            "Content-Type": "application/json",
            "SDK-VERSION": self.settings.SDK_VERSION,
            "User-Agent": self.settings.USER_AGENT,
        }
        if self.locale:
            headers["Accept-Language"] = self.locale
        return headers

    def send(self, uri: str, payload: Optional[dict[str, Any]] = None, method: HttpMethod = HttpMethod.GET) -> dict[str, Any]:
        method = HttpMethod(method)
        url = self.build_url(uri)
        body = json.dumps(payload, ensure_ascii=False) if payload is not None else None

        if self.settings.DEBUG:
            # structured values only, so the redaction processor can mask card and key fields;
            # headers are never logged, they carry the private key
            logger.debug("http_request", method=method.value, url=url, payload=payload)

        raw, status = self.adapter.send(url, body, method, self.build_headers())

        if self.settings.DEBUG:
            logger.debug("http_response", method=method.value, url=url, status=status, **_loggable_body(raw))

        return self.handle_response(raw, status)

    def handle_response(self, raw: Optional[str], status: int) -> dict[str, Any]:
        if raw is None or not str(raw).strip():
            raise TransportException(NULL_RESPONSE_MESSAGE, details={"status_code": status})
        try:
            data = json.loads(raw)
        except ValueError as exc:
            raise TransportException(MALFORMED_RESPONSE_MESSAGE, details={"status_code": status}) from exc
        if not isinstance(data, dict):
            raise TransportException(MALFORMED_RESPONSE_MESSAGE, details={"status_code": status})

        if int(status) >= 400 or "errors" in data:
            raise self._to_api_exception(data, int(status))
        return data

    def _to_api_exception(self, data: dict[str, Any], status: int) -> ApiException:
        try:
            error = ApiErrorEnvelope.model_validate(data).first
        except ValidationError:
            error = ApiErrorItem()
        symbolic = self.settings.error_codes.symbolic(error.code)
        logger.info(
            "api_error_response",
            status=status,
            error_code=error.code,
            symbolic_code=symbolic.value if symbolic else None,
        )
        return ApiException(
            error.merchant_message,
            error.customer_message,
            error.code,
            status_code=status,
            symbolic_code=symbolic,
        )


def _loggable_body(raw: Optional[str]) -> dict[str, Any]:
    """Parsed body for debug logs; unparseable bodies are logged by size only."""
    try:
        return {"body": json.loads(raw)} if raw else {"body_length": 0}
    except ValueError:
        return {"body_length": len(raw)}
