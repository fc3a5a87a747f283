"""
Wire DTOs (Pydantic v2) used at the transport boundary.
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ApiErrorItem(BaseModel):
    code: Optional[str] = None
    merchant_message: Optional[str] = Field(default=None, alias="merchantMessage")
    customer_message: Optional[str] = Field(default=None, alias="customerMessage")

    # numeric codes are kept as their string form
    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)


class ApiErrorEnvelope(BaseModel):
    """`{"errors": [...]}` body the api sends back with a rejection."""

    id: Optional[str] = None
    url: Optional[str] = None
    timestamp: Optional[str] = None
    errors: list[ApiErrorItem] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    @property
    def first(self) -> ApiErrorItem:
        return self.errors[0] if self.errors else ApiErrorItem()
