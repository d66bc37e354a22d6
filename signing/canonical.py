"""
signing/canonical.py

Responsibility: Hashing and canonical-request building blocks shared by the
HMAC signing schemes (TC3, Volcengine, ACS3).
Does NOT: know about any vendor's header names or credential keys.
"""

from __future__ import annotations

import hashlib
import hmac
from collections.abc import Mapping
from urllib.parse import quote

from exceptions import MISSING_CREDENTIALS, DnsProviderError
from providers.models import ProviderCredentials


def sha256_hex(data: str | bytes) -> str:
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def hmac_sha256(key: bytes, msg: str) -> bytes:
    return hmac.new(key, msg.encode("utf-8"), hashlib.sha256).digest()


def percent_encode(value: str) -> str:
    """RFC 3986 encoding: only unreserved characters stay literal."""
    return quote(str(value), safe="-_.~")


def canonical_query(query: Mapping[str, str]) -> str:
    """
    Serialises query parameters in sorted key order, each side URL-encoded.

    Args:
        query: Query parameters (values already stringified).

    Returns:
        "a=1&b=x%20y", or "" for no parameters.
    """
    pairs = sorted((percent_encode(k), percent_encode(v)) for k, v in query.items())
    return "&".join(f"{k}={v}" for k, v in pairs)


def canonical_headers(headers: Mapping[str, str]) -> tuple[str, str]:
    """
    Builds the canonical header block and the signed-headers list.

    Header names are lower-cased and sorted; values are trimmed. Every
    header line ends with a newline, including the last one.

    Args:
        headers: The headers to sign.

    Returns:
        (canonical header block, "a;b;c" signed-header list)
    """
    items = sorted((k.strip().lower(), str(v).strip()) for k, v in headers.items())
    block = "".join(f"{k}:{v}\n" for k, v in items)
    signed = ";".join(k for k, _ in items)
    return block, signed


def canonical_request(
    method: str,
    path: str,
    query: str,
    header_block: str,
    signed_headers: str,
    payload_hash: str,
) -> str:
    return "\n".join(
        [method.upper(), path or "/", query, header_block, signed_headers, payload_hash]
    )


def require_secrets(credentials: ProviderCredentials, *keys: str) -> list[str]:
    """
    Returns the requested secret values, failing fast if any is missing.

    Args:
        credentials: The credential bundle.
        keys: Secret field names that must be present and non-empty.

    Returns:
        The values, in the order the keys were given.

    Raises:
        DnsProviderError: MISSING_CREDENTIALS naming the absent fields.
    """
    values = [credentials.get(k) for k in keys]
    missing = [k for k, v in zip(keys, values) if not v]
    if missing:
        raise DnsProviderError(
            MISSING_CREDENTIALS,
            f"Missing {credentials.provider} credential fields: {', '.join(missing)}",
            http_status=400,
            meta={"missing": missing},
        )
    return values  # type: ignore[return-value]
