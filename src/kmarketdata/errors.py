"""Market data error types."""

from __future__ import annotations

from enum import Enum


class MarketDataErrorCode(Enum):
    """Error classification codes."""

    MISSING_CREDENTIAL = "missing_credential"
    RATE_LIMITED = "rate_limited"
    NOT_FOUND = "not_found"
    TIMEOUT = "timeout"
    PROVIDER_ERROR = "provider_error"
    MALFORMED_RESPONSE = "malformed_response"
    NO_DATA = "no_data"


class MarketDataError(Exception):
    """Market data exception with error code and retryable flag.

    Attributes:
        message: Human-readable error description.
        code: Structured error code for programmatic handling.
        retryable: Whether the caller should move on to the next candidate
            source instead of giving up.
    """

    def __init__(
        self,
        message: str,
        code: MarketDataErrorCode = MarketDataErrorCode.PROVIDER_ERROR,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.retryable = retryable


class ConfigurationError(MarketDataError):
    """A required upstream credential is not configured.

    There is no fallback for a missing credential, so this is the one error
    allowed to short-circuit a whole request.
    """

    def __init__(self, message: str, env_var: str | None = None) -> None:
        super().__init__(
            message,
            code=MarketDataErrorCode.MISSING_CREDENTIAL,
            retryable=False,
        )
        self.env_var = env_var
