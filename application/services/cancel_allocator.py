"""
Cancellation allocation across a payment.

An amount to cancel is absorbed by the authorization first, then by the charges
in creation order. Remote rejections meaning "already where you want it" are
skipped; every other failure aborts and carries what was cancelled so far.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

from application.services.cancel_service import CancelService
from core.logging_config import get_logger
from domain.common.exceptions import ApiException, TransportException, UsageException
from domain.payment.amount import ZERO, to_decimal
from domain.payment.entity import Payment
from domain.payment.transactions import Cancellation, MonetaryTransaction
from shared.codes.api_codes import (
    TOLERATED_ON_AUTHORIZATION_CANCEL,
    TOLERATED_ON_CHARGE_CANCEL,
    CancelReasonCode,
)


logger = get_logger(__name__)


class CancelAllocator:
    def __init__(self, cancel_service: CancelService) -> None:
        self.cancel_service = cancel_service

    def cancel_payment(
        self,
        payment: Payment,
        amount: Any = None,
        reason_code: Optional[str] = CancelReasonCode.CANCEL.value,
        payment_reference: Optional[str] = None,
        amount_net: Any = None,
        amount_vat: Any = None,
    ) -> list[Cancellation]:
        """Cancel `amount` of the payment, or everything when None.

        Returns the cancellations created, authorization reversal first.
        """
        remaining = _non_negative(amount)
        whole = remaining is None
        cancellations: list[Cancellation] = []

        logger.info("cancel_payment_start", payment_id=payment.id, amount=None if whole else str(remaining))

        if whole or remaining > ZERO:
            reversal = self.cancel_payment_authorization(payment, remaining)
            if reversal is not None:
                cancellations.append(reversal)
                if not whole:
                    remaining -= reversal.amount or ZERO

        if not whole and remaining <= ZERO:
            return cancellations

        try:
            refunds = self.cancel_payment_charges(
                payment,
                reason_code,
                payment_reference,
                amount_net,
                amount_vat,
                remaining,
            )
        except (ApiException, TransportException) as exc:
            exc.partial_cancellations = cancellations + exc.partial_cancellations
            raise
        return cancellations + refunds

    def cancel_payment_authorization(self, payment: Payment, amount: Any = None) -> Optional[Cancellation]:
        """Reverse up to `amount` of the authorization (all of it when None).

        Returns None when there is no authorization, nothing is left to reverse,
        or the remote side reports it as already settled.
        """
        authorization = payment.authorization
        if authorization is None:
            return None

        cancel_amount = _non_negative(amount)
        if cancel_amount is not None:
            cancel_amount = min(cancel_amount, authorization.amount.remaining)
            if cancel_amount == ZERO:
                logger.info("cancel_skipped_nothing_remaining", target_id=authorization.id)
                return None

        try:
            reversal = self.cancel_service.cancel_authorization(authorization, cancel_amount)
        except ApiException as exc:
            if not exc.is_one_of(TOLERATED_ON_AUTHORIZATION_CANCEL):
                raise
            _log_tolerated("authorization", authorization, exc)
            return None
        return reversal if reversal.is_persisted else None

    def cancel_payment_charges(
        self,
        payment: Payment,
        reason_code: Optional[str] = CancelReasonCode.CANCEL.value,
        payment_reference: Optional[str] = None,
        amount_net: Any = None,
        amount_vat: Any = None,
        remaining_to_cancel: Any = None,
    ) -> list[Cancellation]:
        """Refund the charges in order until `remaining_to_cancel` is used up (all of them when None)."""
        remaining = _non_negative(remaining_to_cancel)
        whole = remaining is None
        cancellations: list[Cancellation] = []

        for charge in payment.charges:
            cancel_amount = None
            if not whole and remaining <= charge.amount.total:
                cancel_amount = remaining

            try:
                refund = self.cancel_service.cancel_charge(
                    charge, cancel_amount, reason_code, payment_reference, amount_net, amount_vat
                )
            except ApiException as exc:
                if not exc.is_one_of(TOLERATED_ON_CHARGE_CANCEL):
                    exc.partial_cancellations = list(cancellations)
                    raise
                _log_tolerated("charge", charge, exc)
                continue
            except TransportException as exc:
                exc.partial_cancellations = list(cancellations)
                raise

            if not refund.is_persisted:
                continue
            cancellations.append(refund)
            if not whole:
                remaining -= refund.amount or ZERO
                if remaining <= ZERO:
                    break

        return cancellations


def _non_negative(amount: Any) -> Optional[Decimal]:
    value = to_decimal(amount)
    if value is not None and value < ZERO:
        raise UsageException(f"Cancel amount must not be negative: {amount}", field="amount")
    return value


def _log_tolerated(phase: str, target: MonetaryTransaction, exc: ApiException) -> None:
    logger.info(
        "cancel_tolerated_error",
        phase=phase,
        target_id=target.id,
        error_code=exc.error_code,
        symbolic_code=exc.symbolic_code.value if exc.symbolic_code else None,
        detail="nothing to do",
    )
