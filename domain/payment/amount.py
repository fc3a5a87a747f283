"""
Amount value type: total / charged / cancelled of one transaction.
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional

from domain.common.exceptions import UsageException


ZERO = Decimal("0")


class AmountKind(str, Enum):
    CHARGED = "charged"
    CANCELLED = "cancelled"


def to_decimal(value: Any) -> Optional[Decimal]:
    """Normalize api/user input (str, int, float, Decimal) to Decimal; None stays None."""
    if value is None or value == "":
        return None
    if isinstance(value, Decimal):
        return value
    try:
        # str() keeps floats like 12.3 from turning into 12.300000000000000710...
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise UsageException(f"Invalid amount: {value!r}", field="amount") from exc


class Amount:
    """Monetary state of a single transaction.

    Fields change only through the explicit setters (response handling) and
    `apply` (bookkeeping of a charge or cancellation that just went through).
    """

    __slots__ = ("_total", "_charged", "_cancelled", "currency")

    def __init__(self, total: Any = ZERO, charged: Any = ZERO, cancelled: Any = ZERO, currency: Optional[str] = None):
        self._total = to_decimal(total) or ZERO
        self._charged = to_decimal(charged) or ZERO
        self._cancelled = to_decimal(cancelled) or ZERO
        self.currency = currency

    @property
    def total(self) -> Decimal:
        return self._total

    @property
    def charged(self) -> Decimal:
        return self._charged

    @property
    def cancelled(self) -> Decimal:
        return self._cancelled

    @property
    def remaining(self) -> Decimal:
        """total - charged - cancelled, never below zero"""
        return max(ZERO, self._total - self._charged - self._cancelled)

    def apply(self, kind: AmountKind, delta: Any) -> None:
        """Increase the charged or cancelled part by `delta`.

        Raises UsageException if `delta` is negative or exceeds `remaining`.
        """
        value = to_decimal(delta)
        if value is None or value < ZERO:
            raise UsageException(f"Amount to apply must not be negative: {delta}", field="amount")
        if value > self.remaining:
            raise UsageException(
                f"Amount {value} exceeds the remaining amount {self.remaining}",
                field="amount",
                details={"kind": AmountKind(kind).value, "remaining": str(self.remaining)},
            )
        if AmountKind(kind) is AmountKind.CHARGED:
            self._charged += value
        else:
            self._cancelled += value

    def ensure_cancellable(self, delta: Any) -> None:
        """Local pre-check of an explicit cancel amount.

        A zero total means the amount was never reported; the limit is then left to the remote side.
        """
        value = to_decimal(delta)
        if value is None:
            return
        if value < ZERO:
            raise UsageException(f"Cancel amount must not be negative: {delta}", field="amount")
        if self._total > ZERO and value > self._total:
            raise UsageException(
                f"Cancel amount {value} exceeds the transaction total {self._total}",
                field="amount",
            )

    # setters used by response handling
    def set_total(self, value: Any) -> None:
        self._total = to_decimal(value) or ZERO

    def set_charged(self, value: Any) -> None:
        self._charged = to_decimal(value) or ZERO

    def set_cancelled(self, value: Any) -> None:
        self._cancelled = to_decimal(value) or ZERO

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Amount):
            return NotImplemented
        return (self._total, self._charged, self._cancelled, self.currency) == (
            other._total, other._charged, other._cancelled, other.currency
        )

    def __repr__(self) -> str:
        return (
            f"Amount(total={self._total}, charged={self._charged}, "
            f"cancelled={self._cancelled}, remaining={self.remaining}, currency={self.currency!r})"
        )
