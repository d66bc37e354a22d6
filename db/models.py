"""
db/models.py

Responsibility: Defines the SQLModel table models used by the application.
Does NOT: contain business logic, repositories, or session management.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# DnsCredential: one vendor account the application may act on
# ---------------------------------------------------------------------------


class DnsCredential(SQLModel, table=True):
    """
    Stores one DNS vendor account's credentials.

    Secrets are kept as a JSON object whose values may be encrypted; the
    CredentialRepository decrypts them before handing them to the core.

    Collaborators:
        - CredentialRepository: reads and writes these rows
    """

    id: Optional[int] = Field(default=None, primary_key=True)

    # Display name shown when fanning out across accounts, e.g. "Personal"
    name: str = Field(default="")

    # Vendor id: cloudflare, dnspod, huoshan, dnsla, aliyun
    provider: str = Field(index=True)

    # JSON-encoded dict of secret fields, e.g. {"secretId": "...", "secretKey": "..."}
    secrets_json: str = Field(default="{}")

    # Vendor account id where the vendor needs one (Cloudflare zone creation)
    account_id: Optional[str] = Field(default=None)

    # Whether this is the account used when the caller names none
    is_default: bool = Field(default=False)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
