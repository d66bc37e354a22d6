"""
signing/acs3.py

Responsibility: Aliyun "ACS3-HMAC-SHA256" (V3) request signing used by the
Alidns adapter.
Does NOT: send requests, read the clock, or generate nonces.
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

ALGORITHM = "ACS3-HMAC-SHA256"


def sign(credentials: ProviderCredentials, request: SigningRequest) -> dict[str, str]:
    """
    Produces the headers for a signed Aliyun RPC-style API call.

    The string to sign is the algorithm tag plus the hex SHA-256 of the
    canonical request; the signature is keyed directly by the secret.

    Args:
        credentials: Must carry accessKeyId and accessKeySecret.
        request: The request shape; action, version and nonce are required.

    Returns:
        Headers to send: Authorization, Host, x-acs-action, x-acs-version,
        x-acs-date, x-acs-signature-nonce, x-acs-content-sha256.

    Raises:
        DnsProviderError: MISSING_CREDENTIALS if a key is absent.
        ValueError: If the request carries no nonce.
    """
    access_key, secret = require_secrets(credentials, "accessKeyId", "accessKeySecret")
    if not request.nonce:
        raise ValueError("ACS3 signing requires a signature nonce")

    acs_date = datetime.fromtimestamp(request.timestamp, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    payload_hash = sha256_hex(request.body)

    to_sign = {
        "host": request.host,
        "x-acs-action": request.action or "",
        "x-acs-version": request.version or "",
        "x-acs-date": acs_date,
        "x-acs-signature-nonce": request.nonce,
        "x-acs-content-sha256": payload_hash,
    }
    header_block, signed_headers = canonical_headers(to_sign)
    canonical = canonical_request(
        request.method,
        request.path,
        canonical_query(request.query),
        header_block,
        signed_headers,
        payload_hash,
    )
    string_to_sign = f"{ALGORITHM}\n{sha256_hex(canonical)}"
    signature = hmac_sha256(secret.encode("utf-8"), string_to_sign).hex()

    headers = {
        "Authorization": (
            f"{ALGORITHM} Credential={access_key},"
            f"SignedHeaders={signed_headers},Signature={signature}"
        ),
        "Host": request.host,
    }
    for name, value in to_sign.items():
        if name != "host":
            headers[name] = value
    return headers
