"""
Application service creating the transactions of a payment.

Each helper sends exactly one transaction create (plus, where needed, the
creation or fetch of the payment type / customer it references). Capabilities
of the payment type are checked before anything goes over the wire.
"""
from __future__ import annotations

from typing import Any, Optional, Union

from application.services.resource_service import ResourceService
from core.logging_config import get_logger
from domain.common.exceptions import IdRequiredException, UsageException
from domain.payment.customer import Customer
from domain.payment.entity import Payment
from domain.payment.payment_types import BasePaymentType, Capability, payment_type_class_for_id
from domain.payment.transactions import Authorization, Charge, MonetaryTransaction, Payout, Recurring, Shipment


logger = get_logger(__name__)

PaymentTypeRef = Union[BasePaymentType, str]
CustomerRef = Union[Customer, str, None]


def _require_capability(payment_type: Optional[PaymentTypeRef], capability: Capability) -> None:
    if payment_type is None:
        return
    if isinstance(payment_type, str):
        payment_type_class_for_id(payment_type)(id=payment_type).require(capability)
    else:
        payment_type.require(capability)


class PaymentService:
    def __init__(self, resources: ResourceService) -> None:
        self.resources = resources

    # references
    def _resolve_payment_type(self, payment_type: PaymentTypeRef) -> BasePaymentType:
        if isinstance(payment_type, str):
            return self.resources.fetch_payment_type(payment_type)
        if not payment_type.id:
            self.resources.create_payment_type(payment_type)
        return payment_type

    def _resolve_customer(self, customer: CustomerRef) -> Optional[Customer]:
        if customer is None:
            return None
        if isinstance(customer, str):
            return self.resources.fetch_customer(customer)
        if not customer.id:
            self.resources.create_customer(customer)
        return customer

    def _resolve_payment(self, payment: Union[Payment, str]) -> Payment:
        if isinstance(payment, str):
            return self.resources.fetch_payment(payment)
        return payment

    def _new_payment(self, payment_type: PaymentTypeRef, customer: CustomerRef) -> Payment:
        return Payment(payment_type=self._resolve_payment_type(payment_type), customer=self._resolve_customer(customer))

    @staticmethod
    def _apply_details(
        transaction: MonetaryTransaction,
        order_id: Optional[str] = None,
        invoice_id: Optional[str] = None,
        payment_reference: Optional[str] = None,
        card3ds: Optional[bool] = None,
    ) -> None:
        transaction.order_id = order_id
        transaction.invoice_id = invoice_id
        transaction.payment_reference = payment_reference
        transaction.card3ds = card3ds

    # authorize
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
        _require_capability(payment_type, Capability.AUTHORIZE)
        payment = self._new_payment(payment_type, customer)
        return self.authorize_with_payment(
            amount, currency, payment, return_url, None, order_id, card3ds, invoice_id, payment_reference
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
        _require_capability(payment.payment_type, Capability.AUTHORIZE)
        if payment.authorization is not None:
            raise UsageException("The payment already has an authorization!", details={"payment_id": payment.id})
        if customer is not None:
            payment.customer = self._resolve_customer(customer)
        if order_id:
            payment.order_id = order_id

        authorization = Authorization(amount, currency, return_url)
        self._apply_details(authorization, order_id, invoice_id, payment_reference, card3ds)
        authorization.payment = payment
        authorization.retain(payment)

        logger.info("payment_authorize_request", payment_id=payment.id, amount=str(amount), currency=currency)
        self.resources.create(authorization)
        if authorization.is_persisted:
            payment.set_authorization(authorization)
            logger.info(
                "payment_authorize_response",
                payment_id=payment.id,
                authorization_id=authorization.id,
                redirect_url=authorization.redirect_url,
            )
        return authorization

    # charge
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
        """Direct charge without a prior authorization."""
        _require_capability(payment_type, Capability.CHARGE)
        payment = self._new_payment(payment_type, customer)
        payment.order_id = order_id

        charge = Charge(amount, currency, return_url)
        self._apply_details(charge, order_id, invoice_id, payment_reference, card3ds)
        return self._create_charge(payment, charge)

    def charge_authorization(self, payment: Union[Payment, str], amount: Any = None) -> Charge:
        """Charge (part of) the authorized amount; None charges what the remote side has left."""
        return self.charge_payment(self._resolve_payment(payment), amount)

    def charge_payment(self, payment: Payment, amount: Any = None, currency: Optional[str] = None) -> Charge:
        return self._create_charge(payment, Charge(amount, currency))

    def _create_charge(self, payment: Payment, charge: Charge) -> Charge:
        payment.ensure_chargeable(charge.requested_amount)
        charge.payment = payment
        charge.retain(payment)

        logger.info("payment_charge_request", payment_id=payment.id, amount=str(charge.requested_amount))
        self.resources.create(charge)
        if charge.is_persisted:
            payment.add_charge(charge)
            if payment.authorization is not None:
                payment.authorization.record_charge(charge)
            logger.info("payment_charge_response", payment_id=payment.id, charge_id=charge.id)
        return charge

    # payout
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
        _require_capability(payment_type, Capability.PAYOUT)
        payment = self._new_payment(payment_type, customer)
        return self.payout_with_payment(
            amount, currency, payment, return_url, None, order_id, invoice_id, payment_reference
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
        _require_capability(payment.payment_type, Capability.PAYOUT)
        if payment.payout is not None:
            raise UsageException("The payment already has a payout!", details={"payment_id": payment.id})
        if customer is not None:
            payment.customer = self._resolve_customer(customer)

        payout = Payout(amount, currency, return_url)
        self._apply_details(payout, order_id, invoice_id, payment_reference)
        payout.payment = payment
        payout.retain(payment)

        logger.info("payment_payout_request", payment_id=payment.id, amount=str(amount), currency=currency)
        self.resources.create(payout)
        if payout.is_persisted:
            payment.set_payout(payout)
        return payout

    # shipment
    def ship(self, payment: Union[Payment, str], invoice_id: Optional[str] = None, order_id: Optional[str] = None) -> Shipment:
        payment = self._resolve_payment(payment)
        shipment = Shipment(invoice_id, order_id)
        shipment.payment = payment
        shipment.retain(payment)

        logger.info("payment_ship_request", payment_id=payment.id, invoice_id=invoice_id)
        self.resources.create(shipment)
        if shipment.is_persisted:
            payment.add_shipment(shipment)
        return shipment

    # recurring
    def activate_recurring(self, payment_type: PaymentTypeRef, return_url: Optional[str] = None) -> Recurring:
        _require_capability(payment_type, Capability.RECURRING)
        type_id = payment_type if isinstance(payment_type, str) else payment_type.id
        if not type_id:
            raise IdRequiredException("payment type", "activate recurring on")

        recurring = Recurring(type_id, return_url)
        logger.info("payment_recurring_request", type_id=type_id)
        self.resources.create(recurring)
        return recurring
