"""
Generic resource lifecycle (create / fetch / update / delete) plus the typed
fetch helpers built on it.

Every remote call of the client funnels through `ResourceService.send`.
"""
from __future__ import annotations

import weakref
from typing import Any, Optional, Union

from application.ports.http_adapter import HttpMethod
from core.logging_config import get_logger
from domain.common.exceptions import ApiException, IdRequiredException, ResourceNotFoundException
from domain.payment.customer import Customer
from domain.payment.entity import Payment
from domain.payment.keypair import Keypair
from domain.payment.payment_types import BasePaymentType, payment_type_class_for_id
from domain.payment.resource import BaseResource, resource_id_from_url
from domain.payment.transactions import (
    Authorization,
    Cancellation,
    Charge,
    Payout,
    Shipment,
)
from shared.codes.api_codes import ApiResponseCode


logger = get_logger(__name__)

PaymentRef = Union[Payment, str]


class ResourceService:
    """
    Resource state machine: UNPERSISTED -> PERSISTED -> FETCHED.

    Error responses raise before anything is applied, so local state only ever
    reflects accepted requests. Payments seen by this service are kept in a weak
    identity map: an entry lives as long as the caller, or a transaction handed
    out by a typed helper (see `AbstractTransaction.retain`), still holds the payment.
    """

    def __init__(self, http) -> None:
        self.http = http
        self._payments: weakref.WeakValueDictionary[str, Payment] = weakref.WeakValueDictionary()

    # core
    def send(self, resource: BaseResource, method: HttpMethod = HttpMethod.GET) -> dict[str, Any]:
        method = HttpMethod(method)
        uri = resource.get_uri(append_id=method is not HttpMethod.POST)
        payload = resource.expose() if method in (HttpMethod.POST, HttpMethod.PUT) else None
        return self.http.send(uri, payload, method)

    def get_resource(self, resource: BaseResource) -> BaseResource:
        """Fetch lazily: only resources with an id that were never fetched."""
        if resource.needs_fetch:
            self.fetch(resource)
        return resource

    def create(self, resource: BaseResource) -> BaseResource:
        data = self.send(resource, HttpMethod.POST)
        if data.get("isError"):
            logger.warning("resource_create_flagged_error", resource=type(resource).__name__, id=data.get("id"))
            return resource
        resource.handle_response(data)
        self._remember(resource)
        logger.info("resource_created", resource=type(resource).__name__, id=resource.id)
        return resource

    def update(self, resource: BaseResource) -> BaseResource:
        self._require_id(resource, "update")
        data = self.send(resource, HttpMethod.PUT)
        if data.get("isError"):
            logger.warning("resource_update_flagged_error", resource=type(resource).__name__, id=resource.id)
            return resource
        resource.handle_response(data)
        return resource

    def delete(self, resource: BaseResource) -> None:
        self._require_id(resource, "delete")
        self.send(resource, HttpMethod.DELETE)
        logger.info("resource_deleted", resource=type(resource).__name__, id=resource.id)

    def fetch(self, resource: BaseResource) -> BaseResource:
        if resource.id_required:
            self._require_id(resource, "fetch")
        data = self.send(resource, HttpMethod.GET)
        resource.handle_response(data)
        resource.mark_fetched()
        self._remember(resource)
        return resource

    @staticmethod
    def _require_id(resource: BaseResource, action: str) -> None:
        if not resource.id:
            raise IdRequiredException(type(resource).__name__, action)

    def _remember(self, resource: BaseResource) -> None:
        payment = resource if isinstance(resource, Payment) else getattr(resource, "payment", None)
        if isinstance(payment, Payment) and payment.id:
            self._payments[payment.id] = payment

    def known_payment(self, payment_id: Optional[str]) -> Optional[Payment]:
        return self._payments.get(payment_id) if payment_id else None

    def get_resource_id_from_url(self, url: str, id_string: str) -> str:
        return resource_id_from_url(url, id_string)

    # payment and transactions
    def fetch_payment(self, payment: PaymentRef) -> Payment:
        if isinstance(payment, str):
            payment = self._payments.get(payment) or Payment(id=payment)
        self.fetch(payment)
        return payment

    def fetch_authorization(self, payment: PaymentRef) -> Authorization:
        payment = self.fetch_payment(payment)
        authorization = payment.authorization
        if authorization is None:
            raise ResourceNotFoundException("authorization")
        self.fetch(authorization)
        authorization.retain(payment)
        return authorization

    def fetch_charge_by_id(self, payment: PaymentRef, charge_id: str) -> Charge:
        payment = self.fetch_payment(payment)
        charge = payment.get_charge_by_id(charge_id)
        if charge is None:
            raise ResourceNotFoundException("charge", charge_id)
        self.fetch(charge)
        charge.retain(payment)
        return charge

    def fetch_charge(self, charge: Charge) -> Charge:
        self.fetch(charge)
        return charge

    def fetch_refund_by_id(self, payment: PaymentRef, charge_id: str, cancellation_id: str) -> Cancellation:
        charge = self.fetch_charge_by_id(payment, charge_id)
        refund = charge.get_cancellation(cancellation_id)
        if refund is None:
            raise ResourceNotFoundException("refund", cancellation_id)
        self.fetch(refund)
        refund.retain(charge.payment)
        return refund

    def fetch_reversal_by_authorization(self, payment: PaymentRef, cancellation_id: str) -> Cancellation:
        authorization = self.fetch_authorization(payment)
        reversal = authorization.get_cancellation(cancellation_id)
        if reversal is None:
            raise ResourceNotFoundException("reversal", cancellation_id)
        self.fetch(reversal)
        reversal.retain(authorization.payment)
        return reversal

    def fetch_shipment(self, payment: PaymentRef, shipment_id: str) -> Shipment:
        payment = self.fetch_payment(payment)
        shipment = payment.get_shipment(shipment_id)
        if shipment is None:
            raise ResourceNotFoundException("shipment", shipment_id)
        self.fetch(shipment)
        shipment.retain(payment)
        return shipment

    def fetch_payout(self, payment: PaymentRef) -> Payout:
        payment = self.fetch_payment(payment)
        if payment.payout is None:
            raise ResourceNotFoundException("payout")
        self.fetch(payment.payout)
        payment.payout.retain(payment)
        return payment.payout

    # payment types
    def create_payment_type(self, payment_type: BasePaymentType) -> BasePaymentType:
        self.create(payment_type)
        return payment_type

    def fetch_payment_type(self, type_id: str) -> BasePaymentType:
        payment_type = payment_type_class_for_id(type_id)(id=type_id)
        self.fetch(payment_type)
        return payment_type

    # customers
    def create_customer(self, customer: Customer) -> Customer:
        self.create(customer)
        return customer

    def create_or_update_customer(self, customer: Customer) -> Customer:
        """Create the customer; if its customer_id is taken, merge with the remote one and update."""
        try:
            return self.create_customer(customer)
        except ApiException as exc:
            if not exc.is_one_of({ApiResponseCode.CUSTOMER_ID_ALREADY_EXISTS}) or not customer.customer_id:
                raise
            logger.info("customer_exists_updating", customer_id=customer.customer_id)

        existing = self.fetch_customer(customer.customer_id)
        customer.merge_missing_from(existing)
        self.update(customer)
        return customer

    def fetch_customer(self, customer: Union[Customer, str]) -> Customer:
        if isinstance(customer, str):
            customer = Customer(id=customer)
        self.fetch(customer)
        return customer

    def update_customer(self, customer: Customer) -> Customer:
        self.update(customer)
        return customer

    def delete_customer(self, customer: Union[Customer, str]) -> None:
        if isinstance(customer, str):
            customer = self.fetch_customer(customer)
        self.delete(customer)

    def fetch_keypair(self) -> Keypair:
        keypair = Keypair()
        self.fetch(keypair)
        return keypair
