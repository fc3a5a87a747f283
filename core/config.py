"""
Client configuration (pydantic-settings v2, nested env keys).

Every value can be supplied through the environment, e.g.
`PAYGATE_PRIVATE_KEY=s-priv-...` or `PAYGATE_ERROR_CODES__ALREADY_CANCELLED=API.340.100.014`.
"""
from __future__ import annotations

import re
from typing import Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.codes.api_codes import ApiResponseCode, DEFAULT_WIRE_CODES


PRIVATE_KEY_PATTERN = re.compile(r"^[sp]-priv-[A-Za-z0-9]+$")


def is_valid_private_key(key: Optional[str]) -> bool:
    return bool(key) and PRIVATE_KEY_PATTERN.match(key) is not None


class HttpTimeouts(BaseModel):
    connect: float = 5.0
    read: float = 30.0
    write: float = 30.0
    total: float = 60.0


class ErrorCodeSettings(BaseModel):
    """Wire values of the remote codes the client reacts to."""

    already_cancelled: str = DEFAULT_WIRE_CODES[ApiResponseCode.ALREADY_CANCELLED]
    already_charged: str = DEFAULT_WIRE_CODES[ApiResponseCode.ALREADY_CHARGED]
    already_charged_back: str = DEFAULT_WIRE_CODES[ApiResponseCode.ALREADY_CHARGED_BACK]
    transaction_cancel_not_allowed: str = DEFAULT_WIRE_CODES[ApiResponseCode.TRANSACTION_CANCEL_NOT_ALLOWED]
    customer_id_already_exists: str = DEFAULT_WIRE_CODES[ApiResponseCode.CUSTOMER_ID_ALREADY_EXISTS]

    def wire_code(self, code: ApiResponseCode) -> str:
        return getattr(self, code.value.lower())

    def symbolic(self, wire_code: Optional[str]) -> Optional[ApiResponseCode]:
        """Map a wire code back to its symbolic name; unknown codes map to None."""
        if not wire_code:
            return None
        for code in ApiResponseCode:
            if self.wire_code(code) == wire_code:
                return code
        return None


class Settings(BaseSettings):
    """Payment api client configuration"""

    PRIVATE_KEY: Optional[str] = Field(default=None, description="s-priv-… (sandbox) or p-priv-… (production)")
    API_URL: str = "https://api.heidelpay.com"
    API_VERSION: str = "v1"
    LOCALE: Optional[str] = None
    DEBUG: bool = False
    SDK_VERSION: str = "1.0.0"
    USER_AGENT: str = "PaygatePython"

    timeouts: HttpTimeouts = Field(default_factory=HttpTimeouts)
    error_codes: ErrorCodeSettings = Field(default_factory=ErrorCodeSettings)

    model_config = SettingsConfigDict(
        env_prefix="PAYGATE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )

    @field_validator("PRIVATE_KEY")
    @classmethod
    def _validate_private_key(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not is_valid_private_key(v):
            raise ValueError("Illegal key: a private key (s-priv-… / p-priv-…) is expected")
        return v

    @property
    def is_sandbox(self) -> bool:
        return not (self.PRIVATE_KEY or "").startswith("p-")


settings = Settings()


def get_settings() -> Settings:
    """Process-wide settings loaded once at import."""
    return settings
