"""
Customer resource and its billing address.
"""
from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Optional

from domain.payment.resource import BaseResource


@dataclass
class Address:
    name: Optional[str] = None
    street: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None

    def expose(self) -> dict[str, str]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}

    def is_empty(self) -> bool:
        return not self.expose()

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "Address":
        data = data or {}
        return cls(**{f.name: data.get(f.name) for f in fields(cls)})


class Customer(BaseResource):
    """A customer; `customer_id` is the merchant's own key, `id` the remote one."""

    resource_path = "customers"
    json_fields = {
        "customer_id": "customerId",
        "firstname": "firstname",
        "lastname": "lastname",
        "salutation": "salutation",
        "birth_date": "birthDate",
        "company": "company",
        "email": "email",
        "phone": "phone",
        "mobile": "mobile",
    }

    def __init__(
        self,
        firstname: Optional[str] = None,
        lastname: Optional[str] = None,
        customer_id: Optional[str] = None,
        id: Optional[str] = None,
    ) -> None:
        super().__init__(id)
        self.firstname = firstname
        self.lastname = lastname
        self.customer_id = customer_id
        self.salutation: Optional[str] = None
        self.birth_date: Optional[str] = None
        self.company: Optional[str] = None
        self.email: Optional[str] = None
        self.phone: Optional[str] = None
        self.mobile: Optional[str] = None
        self.billing_address = Address()

    def expose(self) -> dict[str, Any]:
        payload = super().expose()
        if not self.billing_address.is_empty():
            payload["billingAddress"] = self.billing_address.expose()
        return payload

    def handle_response(self, data: dict[str, Any]) -> None:
        super().handle_response(data)
        if "billingAddress" in data:
            self.billing_address = Address.from_dict(data["billingAddress"])

    def merge_missing_from(self, other: Customer) -> None:
        """Fill every unset field from `other` and adopt its remote id.

        Values already set on this customer win.
        """
        for attr in self.json_fields:
            if getattr(self, attr) is None:
                setattr(self, attr, getattr(other, attr))
        for f in fields(Address):
            if getattr(self.billing_address, f.name) is None:
                setattr(self.billing_address, f.name, getattr(other.billing_address, f.name))
        if other.id:
            self.id = other.id
