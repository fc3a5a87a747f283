"""Pytest bootstrap configuration.

Ensure the client's environment is set before modules that load settings are
imported, and provide a scripted transport in place of the httpx adapter.
"""
import json
import os
from collections import deque
from dataclasses import dataclass
from typing import Any, Optional

import pytest

os.environ.setdefault("PAYGATE_PRIVATE_KEY", "s-priv-2a10BF2Cq2YvAo6ALSGHc3X7F42oWAIp")

from application.ports.http_adapter import HttpMethod  # noqa: E402
from core.config import Settings  # noqa: E402
from domain.payment.entity import Payment  # noqa: E402
from domain.payment.transactions import Authorization, Charge  # noqa: E402
from paygate import PaymentGatewayClient  # noqa: E402

TEST_KEY = "s-priv-2a10BF2Cq2YvAo6ALSGHc3X7F42oWAIp"
API_BASE = "https://api.heidelpay.com/v1/"


@dataclass
class SentRequest:
    url: str
    payload: Optional[dict]
    method: HttpMethod
    headers: dict


class FakeAdapter:
    """Records every request and replays queued `(body, status)` responses in order."""

    def __init__(self) -> None:
        self.calls: list[SentRequest] = []
        self.responses: deque = deque()
        self.closed = False

    def queue(self, body: Any, status: int = 200) -> "FakeAdapter":
        if isinstance(body, (dict, list)):
            body = json.dumps(body)
        self.responses.append((body, status))
        return self

    def queue_error(self, code: str, status: int = 409, merchant_message: str = "merchant says no") -> "FakeAdapter":
        return self.queue(
            {"errors": [{"code": code, "merchantMessage": merchant_message, "customerMessage": "customer says no"}]},
            status,
        )

    def send(self, url, payload, method, headers):
        self.calls.append(SentRequest(url, json.loads(payload) if payload else None, HttpMethod(method), headers))
        if not self.responses:
            raise AssertionError(f"unexpected request: {HttpMethod(method).value} {url}")
        return self.responses.popleft()

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def settings() -> Settings:
    return Settings(PRIVATE_KEY=TEST_KEY, _env_file=None)


@pytest.fixture
def adapter() -> FakeAdapter:
    return FakeAdapter()


@pytest.fixture
def client(settings, adapter) -> PaymentGatewayClient:
    return PaymentGatewayClient(TEST_KEY, settings=settings, adapter=adapter)


def make_payment(auth_total=None, charges=(), payment_id="s-pay-1") -> Payment:
    """Payment already known remotely: optional authorization plus charges booked against it."""
    payment = Payment(id=payment_id)
    authorization = None
    if auth_total is not None:
        authorization = Authorization(auth_total, "EUR", id="s-aut-1")
        payment.set_authorization(authorization)
    for index, total in enumerate(charges, start=1):
        charge = Charge(total, "EUR", id=f"s-chg-{index}")
        payment.add_charge(charge)
        if authorization is not None:
            authorization.record_charge(charge)
    return payment


def cancel_response(cancel_id: str, amount, payment_id: str = "s-pay-1") -> dict:
    return {
        "id": cancel_id,
        "isSuccess": True,
        "isPending": False,
        "isError": False,
        "amount": str(amount),
        "resources": {"paymentId": payment_id},
    }


@pytest.fixture
def payment_factory():
    return make_payment


@pytest.fixture
def cancel_body():
    return cancel_response
