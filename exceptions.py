"""
exceptions.py

Responsibility: Defines the single error shape that crosses the provider
adapter boundary, plus its few specialisations.
Does NOT: contain business logic, logging, or HTTP handling.
"""

from __future__ import annotations

from typing import Any

# ---------------------------------------------------------------------------
# Error codes shared by every vendor adapter
# ---------------------------------------------------------------------------

MISSING_CREDENTIALS = "MISSING_CREDENTIALS"
INVALID_TYPE = "INVALID_TYPE"
INVALID_ZONE_ID = "INVALID_ZONE_ID"
INVALID_RECORD_ID = "INVALID_RECORD_ID"
INVALID_VALUE = "INVALID_VALUE"
NETWORK_ERROR = "NETWORK_ERROR"
INVALID_RESPONSE = "INVALID_RESPONSE"
NOT_FOUND = "NOT_FOUND"
ZONE_NOT_FOUND = "ZONE_NOT_FOUND"
PARTIAL_FAILURE = "PARTIAL_FAILURE"
UNSUPPORTED_OPERATION = "UNSUPPORTED_OPERATION"
UNSUPPORTED_PROVIDER = "UNSUPPORTED_PROVIDER"
CREDENTIAL_NOT_FOUND = "CREDENTIAL_NOT_FOUND"


class DnsProviderError(Exception):
    """
    Raised by any DNSProvider implementation when a DNS API call fails.

    Carries the vendor (or core) error code, a human-readable message, the
    HTTP status when one applies, and opaque vendor metadata such as the
    request id. Callers branch on ``code``; ``message`` is for humans.
    """

    def __init__(
        self,
        code: str,
        message: str,
        *,
        http_status: int | None = None,
        meta: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(f"[{code}] {message}")
        self.code = code
        self.message = message
        self.http_status = http_status
        self.meta = meta or {}
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def to_dict(self) -> dict[str, Any]:
        """
        Returns a JSON-safe view of the error for API responses.

        Returns:
            A dict with code, message and httpStatus keys.
        """
        return {
            "code": self.code,
            "message": self.message,
            "httpStatus": self.http_status,
        }


class PartialMutationError(DnsProviderError):
    """
    Raised when the primary call of a split mutation succeeded but a
    follow-up call (e.g. setting the remark) failed.

    The primary side effect is NOT rolled back. ``record_id`` names the
    record that now exists on the vendor side; the follow-up failure is
    available as ``cause``.
    """

    def __init__(
        self,
        message: str,
        *,
        record_id: str,
        step: str,
        cause: BaseException | None = None,
    ) -> None:
        http_status = getattr(cause, "http_status", None)
        super().__init__(
            PARTIAL_FAILURE,
            message,
            http_status=http_status,
            meta={"recordId": record_id, "failedStep": step},
            cause=cause,
        )
        self.record_id = record_id
        self.step = step


class UnsupportedProviderError(DnsProviderError):
    """Raised by the registry for a vendor id it does not know."""

    def __init__(self, provider: str) -> None:
        super().__init__(
            UNSUPPORTED_PROVIDER,
            f"Unsupported DNS provider: {provider}",
            http_status=400,
        )
        self.provider = provider


class CredentialNotFoundError(DnsProviderError):
    """Raised when a credential reference does not resolve to a stored credential."""

    def __init__(self, credential_id: int) -> None:
        super().__init__(
            CREDENTIAL_NOT_FOUND,
            f"Credential not found: {credential_id}",
            http_status=404,
        )
        self.credential_id = credential_id
