"""
Single-target cancellations: reversal of an authorization, refund of a charge.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional, Union

from application.services.resource_service import ResourceService
from core.logging_config import get_logger
from domain.payment.entity import Payment
from domain.payment.transactions import Authorization, Cancellation, Charge, MonetaryTransaction


logger = get_logger(__name__)


class CancelService:
    def __init__(self, resources: ResourceService) -> None:
        self.resources = resources

    def cancel_authorization(self, authorization: Authorization, amount: Any = None) -> Cancellation:
        """Reverse `amount` of the authorization, or all of what is left when None."""
        cancellation = Cancellation(amount)
        authorization.amount.ensure_cancellable(cancellation.amount)
        return self.create_cancellation(authorization, cancellation)

    def cancel_authorization_by_payment(self, payment: Union[Payment, str], amount: Any = None) -> Cancellation:
        authorization = self.resources.fetch_authorization(payment)
        return self.cancel_authorization(authorization, amount)

    def cancel_charge(
        self,
        charge: Charge,
        amount: Any = None,
        reason_code: Optional[str] = None,
        payment_reference: Optional[str] = None,
        amount_net: Any = None,
        amount_vat: Any = None,
    ) -> Cancellation:
        """Refund `amount` of the charge, or all of what is left when None."""
        cancellation = Cancellation(
            amount,
            reason_code=reason_code,
            payment_reference=payment_reference,
            amount_net=amount_net,
            amount_vat=amount_vat,
        )
        charge.amount.ensure_cancellable(cancellation.amount)
        return self.create_cancellation(charge, cancellation)

    def cancel_charge_by_id(
        self,
        payment: Union[Payment, str],
        charge_id: str,
        amount: Any = None,
        reason_code: Optional[str] = None,
        payment_reference: Optional[str] = None,
        amount_net: Any = None,
        amount_vat: Any = None,
    ) -> Cancellation:
        charge = self.resources.fetch_charge_by_id(payment, charge_id)
        return self.cancel_charge(charge, amount, reason_code, payment_reference, amount_net, amount_vat)

    def create_cancellation(self, target: MonetaryTransaction, cancellation: Cancellation) -> Cancellation:
        """Send the cancellation; book it on the target only once the remote side accepted it."""
        cancellation.target = target
        cancellation.retain(target.payment)
        logger.info(
            "cancel_request",
            target=type(target).__name__,
            target_id=target.id,
            amount=_fmt(cancellation.amount),
        )
        self.resources.create(cancellation)
        if cancellation.id:
            target.record_cancellation(cancellation)
            logger.info(
                "cancel_created",
                target_id=target.id,
                cancellation_id=cancellation.id,
                amount=_fmt(cancellation.amount),
            )
        return cancellation


def _fmt(value: Optional[Decimal]) -> Optional[str]:
    return None if value is None else str(value)
