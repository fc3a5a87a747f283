"""
Transaction resources hanging off a Payment: authorization, charges, their
cancellations, shipments, payout and the recurring activation of a payment type.
"""
from __future__ import annotations

import weakref
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from domain.payment.amount import Amount, AmountKind, ZERO, to_decimal
from domain.payment.resource import BaseResource, find_by_id, format_amount

if TYPE_CHECKING:
    from domain.payment.entity import Payment


class TransactionType(str, Enum):
    """Transaction types as listed in a payment's `transactions` array"""
    AUTHORIZATION = "authorize"
    CHARGE = "charge"
    REVERSAL = "cancel-authorize"
    REFUND = "cancel-charge"
    SHIPMENT = "shipment"
    PAYOUT = "payout"


class AbstractTransaction(BaseResource):
    """A transaction of a payment.

    The payment is a lookup reference only: a weak handle plus its id.
    """

    def __init__(self, id: Optional[str] = None) -> None:
        super().__init__(id)
        self._payment_ref: Optional[weakref.ReferenceType] = None
        self._payment_id: Optional[str] = None
        self._retained_payment: Optional[Payment] = None
        self.date: Optional[str] = None
        self.unique_id: Optional[str] = None
        self.short_id: Optional[str] = None
        self.trace_id: Optional[str] = None
        self.is_success = False
        self.is_pending = False
        self.is_error = False

    @property
    def payment(self) -> Optional[Payment]:
        return self._payment_ref() if self._payment_ref is not None else None

    @payment.setter
    def payment(self, payment: Optional[Payment]) -> None:
        self._payment_ref = weakref.ref(payment) if payment is not None else None
        self.set_parent(payment)
        if payment is not None and payment.id:
            self._payment_id = payment.id

    @property
    def payment_id(self) -> Optional[str]:
        payment = self.payment
        if payment is not None and payment.id:
            return payment.id
        return self._payment_id

    def retain(self, payment: Optional[Payment]) -> None:
        """Hold `payment` strongly for as long as this transaction is referenced.

        Helpers that resolve or create the payment themselves hand out only the
        transaction; without this the payment would be collected on return.
        The resulting cycle is reclaimed by the garbage collector.
        """
        self._retained_payment = payment

    def requires_parent(self) -> bool:
        return True

    def expose_resources(self) -> dict[str, str]:
        resources: dict[str, str] = {}
        payment = self.payment
        if payment is None:
            return resources
        if payment.payment_type is not None and payment.payment_type.id:
            resources["typeId"] = payment.payment_type.id
        if payment.customer is not None and payment.customer.id:
            resources["customerId"] = payment.customer.id
        return resources

    def handle_response(self, data: dict[str, Any]) -> None:
        super().handle_response(data)
        self.date = data.get("date", self.date)
        for attr, key in (("is_success", "isSuccess"), ("is_pending", "isPending"), ("is_error", "isError")):
            if key in data:
                setattr(self, attr, bool(data[key]))

        processing = data.get("processing") or {}
        self.unique_id = processing.get("uniqueId", self.unique_id)
        self.short_id = processing.get("shortId", self.short_id)
        self.trace_id = processing.get("traceId", self.trace_id)

        payment_id = (data.get("resources") or {}).get("paymentId")
        if payment_id:
            self._payment_id = payment_id
            payment = self.payment
            if payment is not None and not payment.id:
                payment.id = payment_id


class MonetaryTransaction(AbstractTransaction):
    """Transaction carrying an Amount and owning its cancellations."""

    json_fields = {
        "return_url": "returnUrl",
        "order_id": "orderId",
        "invoice_id": "invoiceId",
        "payment_reference": "paymentReference",
        "card3ds": "card3ds",
    }

    def __init__(
        self,
        amount: Any = None,
        currency: Optional[str] = None,
        return_url: Optional[str] = None,
        id: Optional[str] = None,
    ) -> None:
        super().__init__(id)
        # None lets the remote side pick the amount (e.g. charge the whole authorization)
        self.requested_amount: Optional[Decimal] = to_decimal(amount)
        self.amount = Amount(total=self.requested_amount or ZERO, currency=currency)
        self.return_url = return_url
        self.redirect_url: Optional[str] = None
        self.order_id: Optional[str] = None
        self.invoice_id: Optional[str] = None
        self.payment_reference: Optional[str] = None
        self.card3ds: Optional[bool] = None
        self._cancellations: list[Cancellation] = []

    @property
    def currency(self) -> Optional[str]:
        return self.amount.currency

    @property
    def cancellations(self) -> list[Cancellation]:
        return list(self._cancellations)

    def get_cancellation(self, cancellation_id: str) -> Optional[Cancellation]:
        return find_by_id(self._cancellations, cancellation_id, "cancellation")

    def add_cancellation(self, cancellation: Cancellation) -> None:
        cancellation.target = self
        if not any(c is cancellation for c in self._cancellations):
            self._cancellations.append(cancellation)

    def record_cancellation(self, cancellation: Cancellation) -> None:
        """Book a cancellation the remote side just accepted.

        A cancellation sent without amount is resolved to what was remaining.
        """
        if cancellation.amount is None:
            cancellation.amount = self.amount.remaining
        self.amount.apply(AmountKind.CANCELLED, min(cancellation.amount, self.amount.remaining))
        self.add_cancellation(cancellation)

    def expose(self) -> dict[str, Any]:
        payload = super().expose()
        if self.requested_amount is not None:
            payload["amount"] = format_amount(self.requested_amount)
        if self.amount.currency:
            payload["currency"] = self.amount.currency
        resources = self.expose_resources()
        if resources:
            payload["resources"] = resources
        return payload

    def handle_response(self, data: dict[str, Any]) -> None:
        super().handle_response(data)
        if data.get("amount") is not None:
            self.amount.set_total(data["amount"])
        if data.get("currency"):
            self.amount.currency = data["currency"]
        if "redirectUrl" in data:
            self.redirect_url = data["redirectUrl"] or None


class Authorization(MonetaryTransaction):
    resource_path = "authorize"

    def record_charge(self, charge: Charge) -> None:
        """Book a charge against the authorized amount."""
        self.amount.apply(AmountKind.CHARGED, min(charge.amount.total, self.amount.remaining))


class Charge(MonetaryTransaction):
    resource_path = "charges"


class Payout(MonetaryTransaction):
    resource_path = "payouts"


class Cancellation(AbstractTransaction):
    """Reversal of an authorization or refund of a charge.

    Belongs to exactly one Authorization or one Charge (its `target`).
    """

    resource_path = "cancels"
    json_fields = {
        "reason_code": "reasonCode",
        "payment_reference": "paymentReference",
    }

    def __init__(
        self,
        amount: Any = None,
        id: Optional[str] = None,
        *,
        reason_code: Optional[str] = None,
        payment_reference: Optional[str] = None,
        amount_net: Any = None,
        amount_vat: Any = None,
    ) -> None:
        super().__init__(id)
        self.amount: Optional[Decimal] = to_decimal(amount)
        self.reason_code = reason_code
        self.payment_reference = payment_reference
        self.amount_net: Optional[Decimal] = to_decimal(amount_net)
        self.amount_vat: Optional[Decimal] = to_decimal(amount_vat)

    @property
    def target(self) -> Optional[MonetaryTransaction]:
        return self.parent  # type: ignore[return-value]

    @target.setter
    def target(self, target: Optional[MonetaryTransaction]) -> None:
        self.set_parent(target)

    @property
    def payment(self) -> Optional[Payment]:
        target = self.target
        return target.payment if target is not None else None

    @property
    def is_reversal(self) -> bool:
        return isinstance(self.target, Authorization)

    @property
    def is_refund(self) -> bool:
        return isinstance(self.target, Charge)

    def expose(self) -> dict[str, Any]:
        payload = super().expose()
        for key, value in (("amount", self.amount), ("amountNet", self.amount_net), ("amountVat", self.amount_vat)):
            if value is not None:
                payload[key] = format_amount(value)
        return payload

    def handle_response(self, data: dict[str, Any]) -> None:
        super().handle_response(data)
        if data.get("amount") is not None:
            self.amount = to_decimal(data["amount"])


class Shipment(AbstractTransaction):
    resource_path = "shipments"
    json_fields = {
        "invoice_id": "invoiceId",
        "order_id": "orderId",
    }

    def __init__(self, invoice_id: Optional[str] = None, order_id: Optional[str] = None, id: Optional[str] = None):
        super().__init__(id)
        self.invoice_id = invoice_id
        self.order_id = order_id


class Recurring(AbstractTransaction):
    """Activates recurring use of a stored payment type (`types/{typeId}/recurring`)."""

    json_fields = {"return_url": "returnUrl"}

    def __init__(self, payment_type_id: str, return_url: Optional[str] = None) -> None:
        super().__init__()
        self.payment_type_id = payment_type_id
        self.return_url = return_url
        self.redirect_url: Optional[str] = None

    def requires_parent(self) -> bool:
        return False

    def get_resource_path(self) -> str:
        return f"types/{self.payment_type_id}/recurring"

    def handle_response(self, data: dict[str, Any]) -> None:
        super().handle_response(data)
        if "redirectUrl" in data:
            self.redirect_url = data["redirectUrl"] or None
