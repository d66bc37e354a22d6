"""
signing/volcengine.py

Responsibility: Volcengine (Huoshan) HMAC-SHA256 signing. Unlike TC3 the
credential scope is region-scoped and every query parameter is signed.
Does NOT: send requests or read the clock.
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

ALGORITHM = "HMAC-SHA256"
_TERMINATOR = "request"


def sign(credentials: ProviderCredentials, request: SigningRequest) -> dict[str, str]:
    """
    Produces the headers for a signed Volcengine OpenAPI call.

    Signed headers are host, x-date, x-content-sha256 and, when the request
    has a body, content-type. The scope is "<yyyymmdd>/<region>/<service>/request".

    Args:
        credentials: Must carry accessKeyId and secretAccessKey.
        request: The request shape; region and service are required. The
            query (including Action and Version) is signed as given.

    Returns:
        Headers to send: Authorization, Host, X-Date, X-Content-Sha256 and
        Content-Type when present on the request.

    Raises:
        DnsProviderError: MISSING_CREDENTIALS if a key is absent.
    """
    access_key, secret_key = require_secrets(credentials, "accessKeyId", "secretAccessKey")

    x_date = datetime.fromtimestamp(request.timestamp, tz=timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    short_date = x_date[:8]
    region = request.region or ""
    service = request.service or ""
    payload_hash = sha256_hex(request.body)

    to_sign = {
        "host": request.host,
        "x-date": x_date,
        "x-content-sha256": payload_hash,
    }
    content_type = request.headers.get("Content-Type")
    if content_type:
        to_sign["content-type"] = content_type
    header_block, signed_headers = canonical_headers(to_sign)

    canonical = canonical_request(
        request.method,
        request.path,
        canonical_query(request.query),
        header_block,
        signed_headers,
        payload_hash,
    )
    scope = f"{short_date}/{region}/{service}/{_TERMINATOR}"
    string_to_sign = "\n".join([ALGORITHM, x_date, scope, sha256_hex(canonical)])

    k_date = hmac_sha256(secret_key.encode("utf-8"), short_date)
    k_region = hmac_sha256(k_date, region)
    k_service = hmac_sha256(k_region, service)
    k_signing = hmac_sha256(k_service, _TERMINATOR)
    signature = hmac_sha256(k_signing, string_to_sign).hex()

    headers = {
        "Authorization": (
            f"{ALGORITHM} Credential={access_key}/{scope}, "
            f"SignedHeaders={signed_headers}, Signature={signature}"
        ),
        "Host": request.host,
        "X-Date": x_date,
        "X-Content-Sha256": payload_hash,
    }
    if content_type:
        headers["Content-Type"] = content_type
    return headers
