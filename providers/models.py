"""
providers/models.py

Responsibility: Defines the value objects shared by every DNS provider
adapter: zones, records, lines, capability descriptors, credentials,
query/mutation parameters, result envelopes and the signing request shape.
Does NOT: make HTTP calls, sign requests, or implement any provider logic.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# ---------------------------------------------------------------------------
# Vendor identifiers
# ---------------------------------------------------------------------------

CLOUDFLARE = "cloudflare"
DNSPOD = "dnspod"
HUOSHAN = "huoshan"
DNSLA = "dnsla"
ALIYUN = "aliyun"

# ---------------------------------------------------------------------------
# Canonical vocabulary
# ---------------------------------------------------------------------------

RECORD_TYPES = (
    "A",
    "AAAA",
    "CNAME",
    "MX",
    "TXT",
    "SRV",
    "CAA",
    "NS",
    "PTR",
    "REDIRECT_URL",
    "FORWARD_URL",
)

STATUS_ENABLED = "enabled"
STATUS_DISABLED = "disabled"

# Universal fallback line code, present even for vendors without line support
DEFAULT_LINE = "default"

REMARK_UNSUPPORTED = "unsupported"
REMARK_INLINE = "inline"
REMARK_SEPARATE = "separate"

PAGING_SERVER = "server"
PAGING_CLIENT = "client"


# ---------------------------------------------------------------------------
# Read model
# ---------------------------------------------------------------------------


@dataclass
class Zone:
    """
    A DNS domain managed under one vendor account.

    ``id`` is only unique within one vendor + credential.
    """

    id: str
    name: str
    status: str
    record_count: int | None = None
    updated_at: str | None = None
    meta: dict[str, Any] = field(default_factory=dict)


@dataclass
class DnsRecord:
    """
    One DNS resource record within a zone, in canonical form.

    ``name`` is always fully-qualified (no trailing dot); ``type`` is always
    one of RECORD_TYPES for supported types; MX/SRV priority lives in
    ``priority``, never inside ``value``.
    """

    id: str
    zone_id: str
    zone_name: str
    name: str
    type: str
    value: str
    ttl: int
    line: str | None = None
    weight: int | None = None
    priority: int | None = None
    status: str = STATUS_ENABLED
    remark: str | None = None
    updated_at: str | None = None
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def enabled(self) -> bool:
        return self.status == STATUS_ENABLED


@dataclass(frozen=True)
class DnsLine:
    """A routing (split-horizon / ISP) policy recognised by a vendor."""

    code: str
    name: str


# ---------------------------------------------------------------------------
# Capability descriptor
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AuthField:
    """One credential input a vendor requires, used to build vendor-aware forms."""

    name: str
    label: str
    type: str = "text"
    required: bool = True
    placeholder: str = ""


@dataclass(frozen=True)
class ProviderCapabilities:
    """
    Immutable description of what one vendor's API supports.

    One instance per vendor, registered once and never mutated. UIs and the
    orchestration layer consult it instead of probing an adapter.
    """

    provider: str
    name: str
    supports_weight: bool
    supports_line: bool
    supports_status: bool
    supports_remark: bool
    supports_url_forward: bool
    supports_logs: bool
    remark_mode: str
    paging: str
    requires_domain_id: bool
    record_types: tuple[str, ...]
    auth_fields: tuple[AuthField, ...]
    domain_cache_ttl: int
    record_cache_ttl: int
    retryable_errors: tuple[str, ...]
    max_retries: int

    def supports_type(self, record_type: str) -> bool:
        return record_type.upper() in self.record_types

    def required_secrets(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.auth_fields if f.required)

    def to_dict(self) -> dict[str, Any]:
        """
        Returns the descriptor in the camelCase shape exposed to API callers.

        Returns:
            A JSON-safe dict mirroring every field of the descriptor.
        """
        return {
            "provider": self.provider,
            "name": self.name,
            "supportsWeight": self.supports_weight,
            "supportsLine": self.supports_line,
            "supportsStatus": self.supports_status,
            "supportsRemark": self.supports_remark,
            "supportsUrlForward": self.supports_url_forward,
            "supportsLogs": self.supports_logs,
            "remarkMode": self.remark_mode,
            "paging": self.paging,
            "requiresDomainId": self.requires_domain_id,
            "recordTypes": list(self.record_types),
            "authFields": [
                {
                    "name": f.name,
                    "label": f.label,
                    "type": f.type,
                    "required": f.required,
                    "placeholder": f.placeholder,
                }
                for f in self.auth_fields
            ],
            "domainCacheTtl": self.domain_cache_ttl,
            "recordCacheTtl": self.record_cache_ttl,
            "retryableErrors": list(self.retryable_errors),
            "maxRetries": self.max_retries,
        }


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------


@dataclass(repr=False)
class ProviderCredentials:
    """
    Already-decrypted credentials for one vendor account.

    Opaque to the core except for the keys each signing module reads.
    The repr never includes secret values.
    """

    provider: str
    secrets: dict[str, str]
    account_id: str | None = None
    encrypted: bool = False

    def get(self, key: str) -> str | None:
        value = self.secrets.get(key)
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    def __repr__(self) -> str:
        keys = ", ".join(sorted(self.secrets))
        return (
            f"ProviderCredentials(provider={self.provider!r}, "
            f"secrets=<{keys}>, account_id={self.account_id!r})"
        )


# ---------------------------------------------------------------------------
# Query / mutation parameters
# ---------------------------------------------------------------------------


@dataclass
class RecordQueryParams:
    """
    Optional filters for listing records.

    Adapters silently ignore filters their vendor cannot apply.
    """

    page: int | None = None
    page_size: int | None = None
    keyword: str | None = None
    sub_domain: str | None = None
    type: str | None = None
    value: str | None = None
    line: str | None = None
    status: str | None = None

    def has_filter(self) -> bool:
        return any(
            (self.keyword, self.sub_domain, self.type, self.value, self.line, self.status)
        )


@dataclass
class CreateRecordParams:
    """Fields for creating a record. ``name`` may be relative, '@' or fully-qualified."""

    name: str
    type: str
    value: str
    ttl: int | None = None
    line: str | None = None
    weight: int | None = None
    priority: int | None = None
    remark: str | None = None


@dataclass
class UpdateRecordParams(CreateRecordParams):
    """Fields for replacing a record; same shape as CreateRecordParams."""


# ---------------------------------------------------------------------------
# Result envelopes
# ---------------------------------------------------------------------------


@dataclass
class ZoneListResult:
    # Vendor-reported total for server-paged vendors; may exceed len(zones)
    total: int
    zones: list[Zone]


@dataclass
class RecordListResult:
    total: int
    records: list[DnsRecord]


@dataclass
class LineListResult:
    lines: list[DnsLine]


# ---------------------------------------------------------------------------
# Signing
# ---------------------------------------------------------------------------


@dataclass
class SigningRequest:
    """
    Everything a signing module needs to know about one outgoing request.

    ``timestamp`` (unix seconds) and ``nonce`` are supplied by the caller so
    signing stays free of clock and randomness access.
    """

    method: str
    host: str
    timestamp: int
    path: str = "/"
    query: dict[str, str] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    body: str = ""
    action: str | None = None
    version: str | None = None
    service: str | None = None
    region: str | None = None
    nonce: str | None = None
