"""
Payment aggregate root: authorization, charges, their cancellations, payout and shipments.
"""
from __future__ import annotations

from decimal import Decimal
from enum import IntEnum
from typing import Any, Iterable, Optional

from domain.common.exceptions import UsageException
from domain.payment.amount import Amount, ZERO, to_decimal
from domain.payment.customer import Customer
from domain.payment.payment_types import BasePaymentType, find_payment_type_class
from domain.payment.resource import BaseResource, find_by_id, resource_id_from_url
from domain.payment.transactions import (
    Authorization,
    Cancellation,
    Charge,
    MonetaryTransaction,
    Payout,
    Shipment,
    TransactionType,
)


class PaymentState(IntEnum):
    """State as reported by the remote side"""
    PENDING = 0
    COMPLETED = 1
    CANCELED = 2
    PARTLY = 3
    PAYMENT_REVIEW = 4
    CHARGEBACK = 5


class Payment(BaseResource):
    """
    Payment aggregate root.

    Rules:
    1. At most one authorization.
    2. Charges keep creation order, which is also the order cancellations visit them.
    3. With an authorization present, the charge totals never exceed its total.
    4. Aggregate amounts and the is_* predicates are derived from the children.
    """

    resource_path = "payments"

    def __init__(
        self,
        id: Optional[str] = None,
        payment_type: Optional[BasePaymentType] = None,
        customer: Optional[Customer] = None,
    ) -> None:
        super().__init__(id)
        self.payment_type = payment_type
        self.customer = customer
        self.order_id: Optional[str] = None
        self.currency: Optional[str] = None
        self.redirect_url: Optional[str] = None
        self.state: Optional[PaymentState] = None
        self._authorization: Optional[Authorization] = None
        self._charges: list[Charge] = []
        self._shipments: list[Shipment] = []
        self._payout: Optional[Payout] = None

    # children
    @property
    def authorization(self) -> Optional[Authorization]:
        return self._authorization

    def set_authorization(self, authorization: Authorization) -> None:
        current = self._authorization
        if current is authorization:
            return
        if current is not None and current.id != authorization.id:
            raise UsageException(
                "The payment already has an authorization!",
                details={"payment_id": self.id, "authorization_id": current.id},
            )
        authorization.payment = self
        self._authorization = authorization

    @property
    def charges(self) -> list[Charge]:
        return list(self._charges)

    def add_charge(self, charge: Charge) -> None:
        charge.payment = self
        if not any(c is charge for c in self._charges):
            self._charges.append(charge)

    def ensure_chargeable(self, amount: Any) -> None:
        """Reject a charge that would push the charge totals above the authorized total."""
        value = to_decimal(amount)
        if value is not None and value < ZERO:
            raise UsageException(f"Charge amount must not be negative: {amount}", field="amount")
        auth = self._authorization
        if auth is None or value is None or auth.amount.total <= ZERO:
            return
        charged = sum((c.amount.total for c in self._charges), ZERO)
        if charged + value > auth.amount.total:
            raise UsageException(
                f"Charge amount {value} exceeds the authorized amount left ({auth.amount.total - charged})",
                field="amount",
            )

    @property
    def payout(self) -> Optional[Payout]:
        return self._payout

    def set_payout(self, payout: Payout) -> None:
        payout.payment = self
        self._payout = payout

    @property
    def shipments(self) -> list[Shipment]:
        return list(self._shipments)

    def add_shipment(self, shipment: Shipment) -> None:
        shipment.payment = self
        if not any(s is shipment for s in self._shipments):
            self._shipments.append(shipment)

    # queries
    @property
    def cancellations(self) -> list[Cancellation]:
        """Reversals of the authorization first, then refunds per charge in order."""
        result: list[Cancellation] = []
        if self._authorization is not None:
            result.extend(self._authorization.cancellations)
        for charge in self._charges:
            result.extend(charge.cancellations)
        return result

    def get_cancellation(self, cancellation_id: str) -> Optional[Cancellation]:
        return find_by_id(self.cancellations, cancellation_id, "cancellation")

    def get_charge_by_id(self, charge_id: str) -> Optional[Charge]:
        return find_by_id(self._charges, charge_id, "charge")

    def get_charge_by_index(self, index: int) -> Optional[Charge]:
        if 0 <= index < len(self._charges):
            return self._charges[index]
        return None

    def get_shipment(self, shipment_id: str) -> Optional[Shipment]:
        return find_by_id(self._shipments, shipment_id, "shipment")

    @property
    def amount(self) -> Amount:
        charged = sum((c.amount.total for c in self._charges), ZERO)
        cancelled = sum((c.amount.cancelled for c in self._charges), ZERO)
        if self._authorization is not None:
            total = self._authorization.amount.total
            cancelled += self._authorization.amount.cancelled
        else:
            total = charged
        return Amount(total=total, charged=charged, cancelled=cancelled, currency=self.currency)

    @property
    def is_cancelled(self) -> bool:
        amount = self.amount
        return amount.total > ZERO and amount.cancelled >= amount.total

    @property
    def is_completed(self) -> bool:
        amount = self.amount
        return not self.is_cancelled and amount.remaining == ZERO and amount.charged > ZERO

    @property
    def is_partly(self) -> bool:
        amount = self.amount
        return amount.charged > ZERO and amount.remaining > ZERO

    @property
    def is_pending(self) -> bool:
        amount = self.amount
        return amount.charged == ZERO and amount.remaining > ZERO

    # response handling
    def handle_response(self, data: dict[str, Any]) -> None:
        self._check_authorization_id(data.get("transactions") or ())
        super().handle_response(data)
        state = data.get("state")
        if isinstance(state, dict) and state.get("id") is not None:
            self.state = PaymentState(int(state["id"]))
        self.order_id = data.get("orderId", self.order_id)
        self.currency = (data.get("amount") or {}).get("currency") or data.get("currency") or self.currency
        if "redirectUrl" in data:
            self.redirect_url = data["redirectUrl"] or None

        resources = data.get("resources") or {}
        customer_id = resources.get("customerId")
        if customer_id and (self.customer is None or self.customer.id != customer_id):
            self.customer = Customer(id=customer_id)
        type_id = resources.get("typeId")
        if type_id and (self.payment_type is None or self.payment_type.id != type_id):
            type_cls = find_payment_type_class(type_id)
            if type_cls is not None:
                self.payment_type = type_cls(id=type_id)

        if data.get("transactions") is not None:
            self._rebuild_transactions(data["transactions"])

    def _check_authorization_id(self, transactions: Iterable[dict[str, Any]]) -> None:
        """Reject a response naming a different authorization than the local one, before anything is applied."""
        current = self._authorization
        if current is None or not current.id:
            return
        for entry in transactions:
            if entry.get("type") != TransactionType.AUTHORIZATION.value:
                continue
            if (entry.get("status") or "").lower() == "error":
                continue
            remote_id = resource_id_from_url(entry.get("url") or "", "aut")
            if remote_id != current.id:
                raise UsageException(
                    "The payment response reports a different authorization!",
                    details={"payment_id": self.id, "local_id": current.id, "remote_id": remote_id},
                )

    def _rebuild_transactions(self, transactions: Iterable[dict[str, Any]]) -> None:
        """Sync children with the transaction list, reusing local objects by id."""
        for entry in transactions:
            if (entry.get("status") or "").lower() == "error":
                continue
            url = entry.get("url") or ""
            amount = entry.get("amount")
            kind = entry.get("type")

            if kind == TransactionType.AUTHORIZATION.value:
                self._sync_authorization(resource_id_from_url(url, "aut"), amount)
            elif kind == TransactionType.CHARGE.value:
                self._sync_charge(resource_id_from_url(url, "chg"), amount)
            elif kind == TransactionType.REVERSAL.value:
                auth = self._authorization
                if auth is None:
                    auth = self._sync_authorization(resource_id_from_url(url, "aut"), None)
                self._sync_cancellation(auth, resource_id_from_url(url, "cnl"), amount)
            elif kind == TransactionType.REFUND.value:
                charge = self._sync_charge(resource_id_from_url(url, "chg"), None)
                self._sync_cancellation(charge, resource_id_from_url(url, "cnl"), amount)
            elif kind == TransactionType.SHIPMENT.value:
                shipment_id = resource_id_from_url(url, "shp")
                if self.get_shipment(shipment_id) is None:
                    self.add_shipment(Shipment(id=shipment_id))
            elif kind == TransactionType.PAYOUT.value:
                payout_id = resource_id_from_url(url, "out")
                if self._payout is None or self._payout.id != payout_id:
                    self.set_payout(Payout(id=payout_id))
                if amount is not None:
                    self._payout.amount.set_total(amount)

        self._recompute_amounts()

    def _sync_authorization(self, auth_id: str, amount: Any) -> Authorization:
        auth = self._authorization
        if auth is None:
            auth = Authorization(id=auth_id)
            self.set_authorization(auth)
        elif not auth.id:
            auth.id = auth_id
        if amount is not None:
            auth.amount.set_total(amount)
        return auth

    def _sync_charge(self, charge_id: str, amount: Any) -> Charge:
        charge = self.get_charge_by_id(charge_id)
        if charge is None:
            charge = Charge(id=charge_id)
            self.add_charge(charge)
        if amount is not None:
            charge.amount.set_total(amount)
        return charge

    @staticmethod
    def _sync_cancellation(target: MonetaryTransaction, cancel_id: str, amount: Any) -> None:
        cancellation = target.get_cancellation(cancel_id)
        if cancellation is None:
            target.add_cancellation(Cancellation(amount, id=cancel_id))
        elif amount is not None:
            cancellation.amount = to_decimal(amount)

    def _recompute_amounts(self) -> None:
        for charge in self._charges:
            charge.amount.set_cancelled(_sum_cancelled(charge))
        auth = self._authorization
        if auth is not None:
            charged = sum((c.amount.total for c in self._charges), ZERO)
            auth.amount.set_charged(min(charged, auth.amount.total))
            auth.amount.set_cancelled(_sum_cancelled(auth))


def _sum_cancelled(target: MonetaryTransaction) -> Decimal:
    return sum((c.amount or ZERO for c in target.cancellations), ZERO)
