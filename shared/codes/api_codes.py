"""
Remote api response codes and cancel reason codes.

The payment api owns its wire values, so code outside this module works with the
symbolic names only. Wire values are resolved through `core.config.ErrorCodeSettings`.
"""
from __future__ import annotations

from enum import Enum


class ApiResponseCode(str, Enum):
    ALREADY_CANCELLED = "ALREADY_CANCELLED"
    ALREADY_CHARGED = "ALREADY_CHARGED"
    ALREADY_CHARGED_BACK = "ALREADY_CHARGED_BACK"
    TRANSACTION_CANCEL_NOT_ALLOWED = "TRANSACTION_CANCEL_NOT_ALLOWED"
    CUSTOMER_ID_ALREADY_EXISTS = "CUSTOMER_ID_ALREADY_EXISTS"


class CancelReasonCode(str, Enum):
    CANCEL = "CANCEL"
    RETURN = "RETURN"
    CREDIT = "CREDIT"


# Default symbolic -> wire mapping, overridable per environment
DEFAULT_WIRE_CODES: dict[ApiResponseCode, str] = {
    ApiResponseCode.ALREADY_CANCELLED: "API.340.100.014",
    ApiResponseCode.ALREADY_CHARGED: "API.340.100.015",
    ApiResponseCode.ALREADY_CHARGED_BACK: "API.340.100.018",
    ApiResponseCode.TRANSACTION_CANCEL_NOT_ALLOWED: "API.340.100.016",
    ApiResponseCode.CUSTOMER_ID_ALREADY_EXISTS: "API.410.200.010",
}

# Remote rejections meaning "the target already is where the cancel wanted it"
TOLERATED_ON_AUTHORIZATION_CANCEL = frozenset({
    ApiResponseCode.ALREADY_CANCELLED,
    ApiResponseCode.ALREADY_CHARGED,
    ApiResponseCode.TRANSACTION_CANCEL_NOT_ALLOWED,
})

TOLERATED_ON_CHARGE_CANCEL = frozenset({
    ApiResponseCode.ALREADY_CANCELLED,
    ApiResponseCode.ALREADY_CHARGED,
    ApiResponseCode.ALREADY_CHARGED_BACK,
})
