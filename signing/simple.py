"""
signing/simple.py

Responsibility: Non-canonicalising auth schemes (HTTP Basic for DNSLA,
Bearer token for Cloudflare), exposed through the same sign() seam as the
HMAC schemes.
Does NOT: inspect the request beyond its signature.
"""

from __future__ import annotations

import base64

from providers.models import ProviderCredentials, SigningRequest
from signing.canonical import require_secrets


def sign_basic(credentials: ProviderCredentials, request: SigningRequest) -> dict[str, str]:
    """Authorization: Basic base64(apiId:apiSecret)."""
    api_id, api_secret = require_secrets(credentials, "apiId", "apiSecret")
    token = base64.b64encode(f"{api_id}:{api_secret}".encode("utf-8")).decode("ascii")
    return {"Authorization": f"Basic {token}"}


def sign_bearer(credentials: ProviderCredentials, request: SigningRequest) -> dict[str, str]:
    """Authorization: Bearer <apiToken>."""
    (api_token,) = require_secrets(credentials, "apiToken")
    return {"Authorization": f"Bearer {api_token}"}
