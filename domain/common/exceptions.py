"""Business exceptions shared by the domain, application and infrastructure layers.

Three families are raised to callers:

- UsageException: a local precondition was violated; nothing was sent.
- ApiException: the payment api rejected the request.
- TransportException: the exchange itself failed (network, empty or malformed body).
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from shared.codes import BusinessCode
from shared.codes.api_codes import ApiResponseCode

if TYPE_CHECKING:
    from domain.payment.transactions import Cancellation


class BusinessException(Exception):
    """Base class of every exception raised by the client"""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        super().__init__(self.message)


class UsageException(BusinessException):
    def __init__(
        self,
        message: str,
        *,
        code: int = BusinessCode.PARAM_VALIDATION_ERROR,
        field: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(
            code=code,
            message=message,
            error_type="UsageError",
            details=details,
            field=field,
        )


class IdRequiredException(UsageException):
    def __init__(self, resource: str, action: str = "fetch"):
        super().__init__(
            f"The {resource} id is required to {action} the resource!",
            code=BusinessCode.PARAM_MISSING,
            field="id",
            details={"resource": resource, "action": action},
        )


class ParentResourceMissingException(UsageException):
    def __init__(self, resource: str):
        super().__init__(
            f"Parent resource reference of {resource} is not set!",
            code=BusinessCode.PARAM_MISSING,
            details={"resource": resource},
        )


class UnsupportedCapabilityException(UsageException):
    def __init__(self, payment_type: str, capability: str):
        super().__init__(
            f"Payment type {payment_type} does not support {capability}!",
            code=BusinessCode.UNSUPPORTED_OPERATION,
            details={"payment_type": payment_type, "capability": capability},
        )


class ResourceNotFoundException(UsageException):
    def __init__(self, resource: str, resource_id: Optional[str] = None):
        details = {"resource": resource}
        if resource_id is not None:
            details["id"] = resource_id
        super().__init__(
            f"The {resource} could not be found!",
            code=BusinessCode.NOT_FOUND,
            details=details,
        )


class ApiException(BusinessException):
    """The payment api rejected a request.

    `error_code` is the raw wire code, `symbolic_code` its mapped name (None for codes
    the client does not react to). During cancel allocation `partial_cancellations`
    holds the cancellations created before the failure.
    """

    DEFAULT_MESSAGE = "The payment api returned an error!"

    def __init__(
        self,
        merchant_message: Optional[str] = None,
        customer_message: Optional[str] = None,
        error_code: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
        symbolic_code: Optional[ApiResponseCode] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.merchant_message = merchant_message or self.DEFAULT_MESSAGE
        self.customer_message = customer_message or self.DEFAULT_MESSAGE
        self.error_code = error_code
        self.status_code = status_code
        self.symbolic_code = symbolic_code
        self.partial_cancellations: list[Cancellation] = []
        full_details = {"error_code": error_code, "status_code": status_code}
        if details:
            full_details.update(details)
        super().__init__(
            code=BusinessCode.REMOTE_API_ERROR,
            message=self.merchant_message,
            error_type="ApiError",
            details=full_details,
        )

    def is_one_of(self, codes) -> bool:
        return self.symbolic_code is not None and self.symbolic_code in codes


class TransportException(BusinessException):
    def __init__(self, message: str, *, details: Optional[dict] = None):
        self.partial_cancellations: list[Cancellation] = []
        super().__init__(
            code=BusinessCode.NETWORK_ERROR,
            message=message,
            error_type="TransportError",
            details=details,
        )
