"""
Exception taxonomy for the Meta Graph API access layer.

Everything raised by the services derives from MetaAPIError so the API layer
can catch one type. GraphAPIError is the vendor-shaped error produced by the
HTTP client; aggregators re-classify it with classify_graph_error() before it
reaches a router.
"""
from typing import Any, Dict, Optional

# Graph API error codes that mean "slow down"
RATE_LIMIT_ERROR_CODES = frozenset({4, 17, 32, 613, *range(80000, 80015)})

RATE_LIMIT_MESSAGE_MARKERS = ("rate limit", "too many calls", "request limit")

# Invalid / expired / revoked access token
CREDENTIAL_ERROR_CODES = frozenset({102, 190})


class MetaAPIError(Exception):
    """Base exception for the Meta integration."""

    error_code = "meta_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class RateLimitExceeded(MetaAPIError):
    """Meta signalled throttling. Recoverable by waiting."""

    error_code = "rate_limited"


class MaxRetriesExceeded(RateLimitExceeded):
    """Retry controller gave up after the configured number of attempts."""

    def __init__(self, attempts: int, last_error: Optional[BaseException] = None):
        super().__init__(
            f"Rate limit still in effect after {attempts} attempts",
            details={"attempts": attempts, "last_error": type(last_error).__name__ if last_error else None},
        )
        self.attempts = attempts
        self.last_error = last_error


class AuthExchangeFailed(MetaAPIError):
    """The OAuth authorization code was rejected (bad, reused or expired)."""

    error_code = "auth_failed"


class CredentialExpired(MetaAPIError):
    """The stored access token is no longer valid; the user must reconnect."""

    error_code = "credential_expired"


class NoDataFound(MetaAPIError):
    """Structurally valid but empty result."""

    error_code = "no_data"


class NoAccountsFound(NoDataFound):
    """The user has no business managers or ad accounts we can read."""

    error_code = "no_accounts"


class MalformedResponse(MetaAPIError):
    """Meta payload is missing expected fields or is not JSON."""

    error_code = "malformed_response"


class TransportFailure(MetaAPIError):
    """Network or HTTP level failure."""

    error_code = "transport_failure"


class BatchRequestFailed(TransportFailure):
    """The outer batch call failed; no per-item results are available."""

    error_code = "batch_failed"

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        vendor_error: Optional["GraphAPIError"] = None,
    ):
        super().__init__(message, details)
        self.vendor_error = vendor_error


class GraphAPIError(MetaAPIError):
    """
    Error object returned by the Graph API.

    Shape: {"error": {"message", "type", "code", "error_subcode", "fbtrace_id"}}
    """

    error_code = "graph_api_error"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[int] = None,
        subcode: Optional[int] = None,
        error_type: Optional[str] = None,
        fbtrace_id: Optional[str] = None,
    ):
        super().__init__(
            message,
            details={k: v for k, v in {
                "status_code": status_code,
                "code": code,
                "subcode": subcode,
                "type": error_type,
                "fbtrace_id": fbtrace_id,
            }.items() if v is not None},
        )
        self.status_code = status_code
        self.code = code
        self.subcode = subcode
        self.error_type = error_type
        self.fbtrace_id = fbtrace_id

    @classmethod
    def from_payload(cls, error: Any, status_code: Optional[int] = None) -> "GraphAPIError":
        if not isinstance(error, dict):
            return cls(str(error or "Unknown Graph API error"), status_code=status_code)
        code = error.get("code")
        subcode = error.get("error_subcode")
        return cls(
            error.get("message") or "Unknown Graph API error",
            status_code=status_code,
            code=int(code) if isinstance(code, (int, str)) and str(code).isdigit() else None,
            subcode=int(subcode) if isinstance(subcode, (int, str)) and str(subcode).isdigit() else None,
            error_type=error.get("type"),
            fbtrace_id=error.get("fbtrace_id"),
        )

    @property
    def is_rate_limit(self) -> bool:
        if self.code in RATE_LIMIT_ERROR_CODES or self.status_code == 429:
            return True
        return _mentions_rate_limit(self.message)

    @property
    def is_credential_error(self) -> bool:
        return self.code in CREDENTIAL_ERROR_CODES


def _mentions_rate_limit(message: Optional[str]) -> bool:
    text = (message or "").lower()
    return any(marker in text for marker in RATE_LIMIT_MESSAGE_MARKERS)


def is_rate_limit_error(exc: BaseException) -> bool:
    """True when the failure is a throttling signal worth retrying."""
    if isinstance(exc, RateLimitExceeded):
        return True
    if isinstance(exc, GraphAPIError):
        return exc.is_rate_limit
    if isinstance(exc, BatchRequestFailed) and exc.vendor_error is not None:
        return exc.vendor_error.is_rate_limit
    if isinstance(exc, MetaAPIError):
        return False
    return _mentions_rate_limit(str(exc))


def is_rate_limit_payload(error: Any) -> bool:
    """Same check for a raw {"code", "message"} dict (batch items)."""
    if not isinstance(error, dict):
        return False
    return GraphAPIError.from_payload(error).is_rate_limit


def classify_graph_error(exc: GraphAPIError) -> MetaAPIError:
    """
    Map a vendor error onto the taxonomy the UI understands.

    The result carries no vendor codes or messages; callers chain it to the
    GraphAPIError so they stay available as __cause__.
    """
    if exc.is_rate_limit:
        return RateLimitExceeded("Meta is rate limiting requests for this account")
    if exc.is_credential_error:
        return CredentialExpired("Meta access token is invalid or expired")
    details = {"status_code": exc.status_code} if exc.status_code else None
    return TransportFailure("Meta Graph API rejected the request", details=details)


def classify_error(exc: BaseException) -> BaseException:
    """
    Re-classify anything escaping an aggregator.

    Vendor errors (bare, or wrapped in a failed batch) become taxonomy errors.
    Everything else is returned unchanged.
    """
    if isinstance(exc, GraphAPIError):
        return classify_graph_error(exc)
    if isinstance(exc, BatchRequestFailed) and exc.vendor_error is not None:
        vendor = exc.vendor_error
        if vendor.is_rate_limit or vendor.is_credential_error:
            return classify_graph_error(vendor)
    return exc
