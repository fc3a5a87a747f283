"""Public key and enabled payment types of the configured private key."""
from __future__ import annotations

from typing import Any, Optional

from domain.payment.resource import BaseResource


class Keypair(BaseResource):
    resource_path = "keypair"
    id_required = False

    def __init__(self) -> None:
        super().__init__()
        self.public_key: Optional[str] = None
        self.available_payment_types: list[str] = []

    def handle_response(self, data: dict[str, Any]) -> None:
        super().handle_response(data)
        self.public_key = data.get("publicKey", self.public_key)
        if data.get("availablePaymentTypes") is not None:
            self.available_payment_types = list(data["availablePaymentTypes"])
