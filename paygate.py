"""
Payment gateway client entry point.

Wires settings, the httpx transport and the services together and exposes
every operation on a single object.
"""
from __future__ import annotations

from typing import Any, Optional, Union

from application.ports.http_adapter import HttpAdapter
from application.services.cancel_allocator import CancelAllocator
from application.services.cancel_service import CancelService
from application.services.payment_service import CustomerRef, PaymentService, PaymentTypeRef
from application.services.resource_service import PaymentRef, ResourceService
from core.config import Settings, get_settings, is_valid_private_key
from core.logging_config import configure_logging, get_logger
from domain.common.exceptions import UsageException
from domain.payment.customer import Customer
from domain.payment.entity import Payment
from domain.payment.keypair import Keypair
from domain.payment.payment_types import BasePaymentType
from domain.payment.resource import BaseResource
from domain.payment.transactions import (
    Authorization,
    Cancellation,
    Charge,
    Payout,
    Recurring,
    Shipment,
)
from infrastructure.external.api_clients import HttpService, HttpxAdapter
from shared.codes.api_codes import CancelReasonCode


configure_logging()
logger = get_logger(__name__)


class PaymentGatewayClient:
    """
    Synchronous client of the payment api.

    Usage::

        with PaymentGatewayClient("s-priv-...") as client:
            authorization = client.authorize(100, "EUR", card, "https://shop/return")
            client.charge_authorization(authorization.payment, 60)
            client.cancel_payment(authorization.payment, 80)
    """

    def __init__(
        self,
        private_key: Optional[str] = None,
        locale: Optional[str] = None,
        *,
        settings: Optional[Settings] = None,
        adapter: Optional[HttpAdapter] = None,
    ) -> None:
        self.settings = settings or get_settings()
        key = private_key or self.settings.PRIVATE_KEY
        if not is_valid_private_key(key):
            raise UsageException("Illegal key: a private key (s-priv-… / p-priv-…) is expected", field="private_key")
        self.private_key = key
        self.adapter = adapter or HttpxAdapter(self.settings.timeouts)
        self.http = HttpService(key, self.adapter, self.settings, locale)
        self.resources = ResourceService(self.http)
        self.payments = PaymentService(self.resources)
        self.cancels = CancelService(self.resources)
        self.allocator = CancelAllocator(self.cancels)
        logger.debug("client_initialized", sandbox=self.is_sandbox, api_url=self.settings.API_URL)

    @property
    def is_sandbox(self) -> bool:
        return self.private_key.startswith("s-")

    @property
    def locale(self) -> Optional[str]:
        return self.http.locale

    @locale.setter
    def locale(self, value: Optional[str]) -> None:
        self.http.locale = value

    def close(self) -> None:
        self.adapter.close()

    def __enter__(self) -> PaymentGatewayClient:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # resources
    def get_resource(self, resource: BaseResource) -> BaseResource:
        return self.resources.get_resource(resource)

    def fetch_resource(self, resource: BaseResource) -> BaseResource:
        return self.resources.fetch(resource)

    def get_resource_id_from_url(self, url: str, id_string: str) -> str:
        return self.resources.get_resource_id_from_url(url, id_string)

    def fetch_keypair(self) -> Keypair:
        return self.resources.fetch_keypair()

    def fetch_payment(self, payment: PaymentRef) -> Payment:
        return self.resources.fetch_payment(payment)

    def fetch_authorization(self, payment: PaymentRef) -> Authorization:
        return self.resources.fetch_authorization(payment)

    def fetch_charge_by_id(self, payment: PaymentRef, charge_id: str) -> Charge:
        return self.resources.fetch_charge_by_id(payment, charge_id)

    def fetch_charge(self, charge: Charge) -> Charge:
        return self.resources.fetch_charge(charge)

    def fetch_refund_by_id(self, payment: PaymentRef, charge_id: str, cancellation_id: str) -> Cancellation:
        return self.resources.fetch_refund_by_id(payment, charge_id, cancellation_id)

    def fetch_reversal_by_authorization(self, payment: PaymentRef, cancellation_id: str) -> Cancellation:
        return self.resources.fetch_reversal_by_authorization(payment, cancellation_id)

    def fetch_shipment(self, payment: PaymentRef, shipment_id: str) -> Shipment:
        return self.resources.fetch_shipment(payment, shipment_id)

    def fetch_payout(self, payment: PaymentRef) -> Payout:
        return self.resources.fetch_payout(payment)

    def create_payment_type(self, payment_type: BasePaymentType) -> BasePaymentType:
        return self.resources.create_payment_type(payment_type)

    def fetch_payment_type(self, type_id: str) -> BasePaymentType:
        return self.resources.fetch_payment_type(type_id)

    def create_customer(self, customer: Customer) -> Customer:
        return self.resources.create_customer(customer)

    def create_or_update_customer(self, customer: Customer) -> Customer:
        return self.resources.create_or_update_customer(customer)

    def fetch_customer(self, customer: Union[Customer, str]) -> Customer:
        return self.resources.fetch_customer(customer)

    def update_customer(self, customer: Customer) -> Customer:
        return self.resources.update_customer(customer)

    def delete_customer(self, customer: Union[Customer, str]) -> None:
        self.resources.delete_customer(customer)

    # transactions
    def authorize(
        self,
        amount: Any,
        currency: str,
        payment_type: PaymentTypeRef,
        return_url: Optional[str] = None,
        customer: CustomerRef = None,
        order_id: Optional[str] = None,
        card3ds: Optional[bool] = None,
        invoice_id: Optional[str] = None,
        payment_reference: Optional[str] = None,
    ) -> Authorization:
        return self.payments.authorize(
            amount, currency, payment_type, return_url, customer, order_id, card3ds, invoice_id, payment_reference
        )

    def authorize_with_payment(
        self,
        amount: Any,
        currency: str,
        payment: Payment,
        return_url: Optional[str] = None,
        customer: CustomerRef = None,
        order_id: Optional[str] = None,
        card3ds: Optional[bool] = None,
        invoice_id: Optional[str] = None,
        payment_reference: Optional[str] = None,
    ) -> Authorization:
        return self.payments.authorize_with_payment(
            amount, currency, payment, return_url, customer, order_id, card3ds, invoice_id, payment_reference
        )

    def charge(
        self,
        amount: Any,
        currency: str,
        payment_type: PaymentTypeRef,
        return_url: Optional[str] = None,
        customer: CustomerRef = None,
        order_id: Optional[str] = None,
        card3ds: Optional[bool] = None,
        invoice_id: Optional[str] = None,
        payment_reference: Optional[str] = None,
    ) -> Charge:
        return self.payments.charge(
            amount, currency, payment_type, return_url, customer, order_id, card3ds, invoice_id, payment_reference
        )

    def charge_authorization(self, payment: PaymentRef, amount: Any = None) -> Charge:
        return self.payments.charge_authorization(payment, amount)

    def charge_payment(self, payment: Payment, amount: Any = None, currency: Optional[str] = None) -> Charge:
        return self.payments.charge_payment(payment, amount, currency)

    def payout(
        self,
        amount: Any,
        currency: str,
        payment_type: PaymentTypeRef,
        return_url: Optional[str] = None,
        customer: CustomerRef = None,
        order_id: Optional[str] = None,
        invoice_id: Optional[str] = None,
        payment_reference: Optional[str] = None,
    ) -> Payout:
        return self.payments.payout(
            amount, currency, payment_type, return_url, customer, order_id, invoice_id, payment_reference
        )

    def payout_with_payment(
        self,
        amount: Any,
        currency: str,
        payment: Payment,
        return_url: Optional[str] = None,
        customer: CustomerRef = None,
        order_id: Optional[str] = None,
        invoice_id: Optional[str] = None,
        payment_reference: Optional[str] = None,
    ) -> Payout:
        return self.payments.payout_with_payment(
            amount, currency, payment, return_url, customer, order_id, invoice_id, payment_reference
        )

    def ship(self, payment: PaymentRef, invoice_id: Optional[str] = None, order_id: Optional[str] = None) -> Shipment:
        return self.payments.ship(payment, invoice_id, order_id)

    def activate_recurring(self, payment_type: PaymentTypeRef, return_url: Optional[str] = None) -> Recurring:
        return self.payments.activate_recurring(payment_type, return_url)

    # cancellations
    def cancel_authorization(self, authorization: Authorization, amount: Any = None) -> Cancellation:
        return self.cancels.cancel_authorization(authorization, amount)

    def cancel_authorization_by_payment(self, payment: PaymentRef, amount: Any = None) -> Cancellation:
        return self.cancels.cancel_authorization_by_payment(payment, amount)

    def cancel_charge(
        self,
        charge: Charge,
        amount: Any = None,
        reason_code: Optional[str] = None,
        payment_reference: Optional[str] = None,
        amount_net: Any = None,
        amount_vat: Any = None,
    ) -> Cancellation:
        return self.cancels.cancel_charge(charge, amount, reason_code, payment_reference, amount_net, amount_vat)

    def cancel_charge_by_id(
        self,
        payment: PaymentRef,
        charge_id: str,
        amount: Any = None,
        reason_code: Optional[str] = None,
        payment_reference: Optional[str] = None,
        amount_net: Any = None,
        amount_vat: Any = None,
    ) -> Cancellation:
        return self.cancels.cancel_charge_by_id(
            payment, charge_id, amount, reason_code, payment_reference, amount_net, amount_vat
        )

    def cancel_payment(
        self,
        payment: PaymentRef,
        amount: Any = None,
        reason_code: Optional[str] = CancelReasonCode.CANCEL.value,
        payment_reference: Optional[str] = None,
        amount_net: Any = None,
        amount_vat: Any = None,
    ) -> list[Cancellation]:
        if isinstance(payment, str):
            payment = self.resources.fetch_payment(payment)
        return self.allocator.cancel_payment(payment, amount, reason_code, payment_reference, amount_net, amount_vat)

    def cancel_authorization_amount(self, payment: PaymentRef, amount: Any = None) -> Optional[Cancellation]:
        if isinstance(payment, str):
            payment = self.resources.fetch_payment(payment)
        return self.allocator.cancel_payment_authorization(payment, amount)
