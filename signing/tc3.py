"""
signing/tc3.py

Responsibility: Tencent Cloud "TC3-HMAC-SHA256" request signing, used by the
DNSPod adapter.
Does NOT: send requests or read the clock; the timestamp comes in on the
SigningRequest.
"""

from __future__ import annotations

from datetime import datetime, timezone

from providers.models import ProviderCredentials, SigningRequest
from signing.canonical import (
    canonical_headers,
    canonical_query,
    canonical_request,
    hmac_sha256,
    require_secrets,
    sha256_hex,
)

ALGORITHM = "TC3-HMAC-SHA256"
_TERMINATOR = "tc3_request"
_DEFAULT_CONTENT_TYPE = "application/json; charset=utf-8"


def _derive_key(secret_key: str, date: str, service: str) -> bytes:
    k_date = hmac_sha256(f"TC3{secret_key}".encode("utf-8"), date)
    k_service = hmac_sha256(k_date, service)
    return hmac_sha256(k_service, _TERMINATOR)


def sign(credentials: ProviderCredentials, request: SigningRequest) -> dict[str, str]:
    """
    Produces the full header set for a signed Tencent Cloud API call.

    The canonical request covers method, path, the sorted query string, and
    the content-type, host, action and body-hash headers. The signing key is
    derived from the secret by cascading HMAC-SHA256 over the UTC date, the
    service name and the fixed "tc3_request" suffix.

    Args:
        credentials: Must carry secretId and secretKey; token is optional.
        request: The request shape; action, version and service are required.

    Returns:
        Headers to send: Authorization, Content-Type, Host, X-TC-Action,
        X-TC-Timestamp, X-TC-Version, X-TC-Content-SHA256, and X-TC-Region /
        X-TC-Token when applicable.

    Raises:
        DnsProviderError: MISSING_CREDENTIALS if secretId/secretKey is absent.
    """
    secret_id, secret_key = require_secrets(credentials, "secretId", "secretKey")
    token = credentials.get("token")

    service = request.service or request.host.split(".")[0]
    action = request.action or ""
    date = datetime.fromtimestamp(request.timestamp, tz=timezone.utc).strftime("%Y-%m-%d")
    content_type = request.headers.get("Content-Type", _DEFAULT_CONTENT_TYPE)
    payload_hash = sha256_hex(request.body)

    header_block, signed_headers = canonical_headers(
        {
            "content-type": content_type,
            "host": request.host,
            "x-tc-action": action.lower(),
            "x-tc-content-sha256": payload_hash,
        }
    )
    canonical = canonical_request(
        request.method,
        request.path,
        canonical_query(request.query),
        header_block,
        signed_headers,
        payload_hash,
    )

    scope = f"{date}/{service}/{_TERMINATOR}"
    string_to_sign = "\n".join(
        [ALGORITHM, str(request.timestamp), scope, sha256_hex(canonical)]
    )
    signature = hmac_sha256(_derive_key(secret_key, date, service), string_to_sign).hex()

    headers = {
        "Authorization": (
            f"{ALGORITHM} Credential={secret_id}/{scope}, "
            f"SignedHeaders={signed_headers}, Signature={signature}"
        ),
        "Content-Type": content_type,
        "Host": request.host,
        "X-TC-Action": action,
        "X-TC-Timestamp": str(request.timestamp),
        "X-TC-Version": request.version or "",
        "X-TC-Content-SHA256": payload_hash,
    }
    if request.region:
        headers["X-TC-Region"] = request.region
    if token:
        headers["X-TC-Token"] = token
    return headers
