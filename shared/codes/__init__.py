"""
Numeric codes carried by every client exception (`BusinessException.code`).

Remote api response codes live in `shared.codes.api_codes`.
"""
from enum import IntEnum


class BusinessCode(IntEnum):
    # local usage errors, nothing was sent (1xxxx)
    PARAM_MISSING = 10001
    PARAM_VALIDATION_ERROR = 10003
    UNSUPPORTED_OPERATION = 10004
    NOT_FOUND = 10006

    # transport failures (4xxxx)
    NETWORK_ERROR = 40002

    # rejected by the payment api (6xxxx)
    REMOTE_API_ERROR = 60000


__all__ = ["BusinessCode"]
