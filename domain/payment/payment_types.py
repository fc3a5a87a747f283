"""
Payment methods stored remotely under `types/{type_name}`.

Each method declares which transactions it can run as an explicit capability set;
services check the set before sending anything.
"""
from __future__ import annotations

import re
from enum import Enum
from typing import Any, ClassVar, Optional

from domain.common.exceptions import UnsupportedCapabilityException, UsageException
from domain.payment.resource import BaseResource


class Capability(str, Enum):
    AUTHORIZE = "authorize"
    CHARGE = "charge"
    PAYOUT = "payout"
    RECURRING = "recurring"


class BasePaymentType(BaseResource):
    type_name: ClassVar[str] = ""
    short_code: ClassVar[str] = ""
    capabilities: ClassVar[frozenset[Capability]] = frozenset()

    def get_resource_path(self) -> str:
        return f"types/{self.type_name}"

    @classmethod
    def supports(cls, capability: Capability) -> bool:
        return capability in cls.capabilities

    def require(self, capability: Capability) -> None:
        if not self.supports(capability):
            raise UnsupportedCapabilityException(type(self).__name__, capability.value)


_EXPIRY_PATTERN = re.compile(r"^(\d{1,2})/(\d{1,4})$")


def normalize_expiry_date(value: Optional[str]) -> Optional[str]:
    """`3/2030` -> `03/2030`; two-digit years follow the 1970-2069 window."""
    if value is None:
        return None
    match = _EXPIRY_PATTERN.match(str(value).strip())
    if match is None:
        raise UsageException("Invalid expiry date!", field="expiry_date")
    month, year = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise UsageException("Invalid expiry date!", field="expiry_date")
    if len(match.group(2)) <= 2:
        year += 2000 if year < 70 else 1900
    return f"{month:02d}/{year:04d}"


class Card(BasePaymentType):
    type_name = "card"
    short_code = "crd"
    capabilities = frozenset({Capability.AUTHORIZE, Capability.CHARGE, Capability.PAYOUT, Capability.RECURRING})
    json_fields = {
        "number": "number",
        "expiry_date": "expiryDate",
        "cvc": "cvc",
        "holder": "holder",
    }

    def __init__(self, number: Optional[str] = None, expiry_date: Optional[str] = None, id: Optional[str] = None):
        super().__init__(id)
        self.number = number
        self._expiry_date = normalize_expiry_date(expiry_date)
        self.cvc: Optional[str] = None
        self.holder: Optional[str] = None
        self.brand: Optional[str] = None

    @property
    def expiry_date(self) -> Optional[str]:
        return self._expiry_date

    @expiry_date.setter
    def expiry_date(self, value: Optional[str]) -> None:
        # None keeps the current value so an id-only card can be fetched
        if value is not None:
            self._expiry_date = normalize_expiry_date(value)

    def handle_response(self, data: dict[str, Any]) -> None:
        super().handle_response(data)
        self.brand = data.get("brand", self.brand)


class SepaDirectDebit(BasePaymentType):
    type_name = "sepa-direct-debit"
    short_code = "sdd"
    capabilities = frozenset({Capability.CHARGE, Capability.PAYOUT, Capability.RECURRING})
    json_fields = {"iban": "iban", "bic": "bic", "holder": "holder"}

    def __init__(self, iban: Optional[str] = None, id: Optional[str] = None):
        super().__init__(id)
        self.iban = iban
        self.bic: Optional[str] = None
        self.holder: Optional[str] = None


class SepaDirectDebitGuaranteed(SepaDirectDebit):
    type_name = "sepa-direct-debit-guaranteed"
    short_code = "ddg"
    capabilities = frozenset({Capability.CHARGE, Capability.PAYOUT})


class Invoice(BasePaymentType):
    type_name = "invoice"
    short_code = "ivc"
    capabilities = frozenset({Capability.CHARGE})


class InvoiceGuaranteed(Invoice):
    type_name = "invoice-guaranteed"
    short_code = "ivg"


class InvoiceFactoring(Invoice):
    type_name = "invoice-factoring"
    short_code = "ivf"


class Paypal(BasePaymentType):
    type_name = "paypal"
    short_code = "ppl"
    capabilities = frozenset({Capability.AUTHORIZE, Capability.CHARGE, Capability.RECURRING})
    json_fields = {"email": "email"}

    def __init__(self, email: Optional[str] = None, id: Optional[str] = None):
        super().__init__(id)
        self.email = email


class Sofort(BasePaymentType):
    type_name = "sofort"
    short_code = "sft"
    capabilities = frozenset({Capability.CHARGE})


class Giropay(BasePaymentType):
    type_name = "giropay"
    short_code = "gro"
    capabilities = frozenset({Capability.CHARGE})


class Ideal(BasePaymentType):
    type_name = "ideal"
    short_code = "idl"
    capabilities = frozenset({Capability.CHARGE})
    json_fields = {"bic": "bic"}

    def __init__(self, bic: Optional[str] = None, id: Optional[str] = None):
        super().__init__(id)
        self.bic = bic


class Prepayment(BasePaymentType):
    type_name = "prepayment"
    short_code = "ppy"
    capabilities = frozenset({Capability.CHARGE})


class Przelewy24(BasePaymentType):
    type_name = "przelewy24"
    short_code = "p24"
    capabilities = frozenset({Capability.CHARGE})


class PIS(BasePaymentType):
    type_name = "pis"
    short_code = "pis"
    capabilities = frozenset({Capability.CHARGE})


class Bancontact(BasePaymentType):
    type_name = "bancontact"
    short_code = "bct"
    capabilities = frozenset({Capability.CHARGE})
    json_fields = {"holder": "holder"}

    def __init__(self, holder: Optional[str] = None, id: Optional[str] = None):
        super().__init__(id)
        self.holder = holder


class Alipay(BasePaymentType):
    type_name = "alipay"
    short_code = "ali"
    capabilities = frozenset({Capability.CHARGE})


class Wechatpay(BasePaymentType):
    type_name = "wechatpay"
    short_code = "wcp"
    capabilities = frozenset({Capability.CHARGE})


PAYMENT_TYPES: dict[str, type[BasePaymentType]] = {
    cls.short_code: cls
    for cls in (
        Card, SepaDirectDebit, SepaDirectDebitGuaranteed, Invoice, InvoiceGuaranteed,
        InvoiceFactoring, Paypal, Sofort, Giropay, Ideal, Prepayment, Przelewy24, PIS,
        Bancontact, Alipay, Wechatpay,
    )
}

_TYPE_ID_PATTERN = re.compile(r"^[sp]-([a-z0-9]{3})-[A-Za-z0-9]+$")


def find_payment_type_class(type_id: Optional[str]) -> Optional[type[BasePaymentType]]:
    match = _TYPE_ID_PATTERN.match(type_id or "")
    return PAYMENT_TYPES.get(match.group(1)) if match else None


def payment_type_class_for_id(type_id: Optional[str]) -> type[BasePaymentType]:
    """Resolve the class from the short code in an id like `s-crd-abc123`."""
    cls = find_payment_type_class(type_id)
    if cls is None:
        raise UsageException("Invalid payment type!", field="type_id", details={"type_id": type_id})
    return cls
