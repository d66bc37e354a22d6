"""
providers/aliyun_client.py

Responsibility: Implements the DNSProvider protocol on the Aliyun Alidns
RPC API (action parameters in the query string, ACS3-HMAC-SHA256 signed).
The zone id is the domain name itself.
Does NOT: cache zones or choose credentials.
"""

from __future__ import annotations

import logging
from typing import Any

from exceptions import (
    INVALID_RECORD_ID,
    INVALID_RESPONSE,
    INVALID_ZONE_ID,
    NOT_FOUND,
    ZONE_NOT_FOUND,
    DnsProviderError,
    PartialMutationError,
)
from providers.base import BaseProvider
from providers.models import (
    ALIYUN,
    DEFAULT_LINE,
    PAGING_SERVER,
    REMARK_SEPARATE,
    STATUS_DISABLED,
    STATUS_ENABLED,
    AuthField,
    CreateRecordParams,
    DnsLine,
    DnsRecord,
    LineListResult,
    ProviderCapabilities,
    RecordListResult,
    RecordQueryParams,
    SigningRequest,
    UpdateRecordParams,
    Zone,
    ZoneListResult,
)
from providers.naming import to_fqdn, to_rr
from signing import acs3
from signing.canonical import canonical_query

logger = logging.getLogger(__name__)

ALIYUN_HOST = "alidns.aliyuncs.com"
_VERSION = "2015-01-09"
_DEFAULT_TTL = 600

# Vendor error codes meaning "no such domain" / "no such record"
_MISSING_DOMAIN_PREFIX = "InvalidDomainName"
_MISSING_RECORD_CODES = ("DomainRecordNotBelongToUser", "InvalidRR.NoExist", "InvalidRecordId.NotFound")

ALIYUN_CAPABILITIES = ProviderCapabilities(
    provider=ALIYUN,
    name="阿里云 DNS",
    supports_weight=True,
    supports_line=True,
    supports_status=True,
    supports_remark=True,
    supports_url_forward=True,
    supports_logs=False,
    remark_mode=REMARK_SEPARATE,
    paging=PAGING_SERVER,
    requires_domain_id=False,
    record_types=(
        "A", "AAAA", "CNAME", "MX", "TXT", "SRV", "CAA", "NS", "PTR",
        "REDIRECT_URL", "FORWARD_URL",
    ),
    auth_fields=(
        AuthField("accessKeyId", "AccessKey ID", placeholder="阿里云 AccessKey ID"),
        AuthField(
            "accessKeySecret", "AccessKey Secret", type="password",
            placeholder="阿里云 AccessKey Secret",
        ),
    ),
    domain_cache_ttl=300,
    record_cache_ttl=120,
    retryable_errors=("Throttling", "Throttling.User", "ServiceUnavailable", "InternalError"),
    max_retries=3,
)

_DEFAULT_LINES = (
    DnsLine(DEFAULT_LINE, "默认"),
    DnsLine("telecom", "电信"),
    DnsLine("unicom", "联通"),
    DnsLine("mobile", "移动"),
    DnsLine("edu", "教育网"),
    DnsLine("oversea", "境外"),
    DnsLine("search", "搜索引擎"),
)


class AliyunClient(BaseProvider):
    """
    Alidns adapter.

    Remark and weight live behind their own actions
    (UpdateDomainRecordRemark, UpdateDNSSLBWeight), so a create or update
    that sets them is a split mutation.
    """

    capabilities = ALIYUN_CAPABILITIES
    signer = staticmethod(acs3.sign)

    # ---------------------------------------------------------------------------
    # Zones
    # ---------------------------------------------------------------------------

    async def get_zones(
        self, page: int = 1, page_size: int = 20, keyword: str | None = None
    ) -> ZoneListResult:
        page, page_size = self.page_window(page, page_size)
        body = await self._request(
            "DescribeDomains", {"PageNumber": page, "PageSize": page_size, "KeyWord": keyword or None}
        )
        zones = self.parse_items(self.dig(body, "Domains", "Domain"), self._parse_zone, "zone")
        return ZoneListResult(total=int(body.get("TotalCount") or len(zones)), zones=zones)

    async def get_zone(self, zone_id: str) -> Zone:
        domain = self._require_domain(zone_id)
        try:
            body = await self._request("DescribeDomainInfo", {"DomainName": domain})
        except DnsProviderError as exc:
            if exc.code.startswith(_MISSING_DOMAIN_PREFIX):
                raise self.create_error(
                    ZONE_NOT_FOUND, f"Zone not found: {zone_id}", http_status=404, cause=exc
                ) from exc
            raise
        body.setdefault("DomainName", domain)
        return self.parse_item(body, self._parse_zone, "zone")

    async def add_zone(self, domain: str) -> Zone:
        body = await self._request("AddDomain", {"DomainName": domain})
        return self.normalize_zone(
            id=body.get("DomainName") or domain,
            name=body.get("DomainName") or domain,
            status="ENABLE",
            meta={"domainId": body.get("DomainId")},
        )

    # ---------------------------------------------------------------------------
    # Records
    # ---------------------------------------------------------------------------

    async def get_records(
        self, zone_id: str, params: RecordQueryParams | None = None
    ) -> RecordListResult:
        params = params or RecordQueryParams()
        type_filter = self.require_type(params.type) if params.type else None
        zone = await self.get_zone(zone_id)
        page, page_size = self.page_window(params.page, params.page_size)

        status = None
        if params.status in (STATUS_ENABLED, STATUS_DISABLED):
            status = "Enable" if params.status == STATUS_ENABLED else "Disable"
        body = await self._request(
            "DescribeDomainRecords",
            {
                "DomainName": zone.name,
                "PageNumber": page,
                "PageSize": page_size,
                "KeyWord": params.keyword or None,
                "RRKeyWord": to_rr(params.sub_domain, zone.name) if params.sub_domain else None,
                "Type": type_filter,
                "ValueKeyWord": params.value or None,
                "Line": params.line or None,
                "Status": status,
            },
        )
        records = self.parse_items(
            self.dig(body, "DomainRecords", "Record"),
            lambda raw: self._parse_record(raw, zone),
            "record",
        )
        return RecordListResult(total=int(body.get("TotalCount") or len(records)), records=records)

    async def get_record(self, zone_id: str, record_id: str) -> DnsRecord:
        zone = await self.get_zone(zone_id)
        return await self._describe_record(zone, record_id)

    async def create_record(self, zone_id: str, params: CreateRecordParams) -> DnsRecord:
        record_type = self.require_type(params.type)
        zone = await self.get_zone(zone_id)

        fields = self._record_fields(zone, record_type, params)
        fields["DomainName"] = zone.name
        body = await self._request("AddDomainRecord", fields)
        record_id = body.get("RecordId")
        if not record_id:
            raise self.create_error(INVALID_RESPONSE, "AddDomainRecord returned no RecordId")

        await self._follow_up(str(record_id), params)
        return await self._describe_record(zone, str(record_id))

    async def update_record(
        self, zone_id: str, record_id: str, params: UpdateRecordParams
    ) -> DnsRecord:
        record_type = self.require_type(params.type)
        record_id = self._require_record_id(record_id)
        zone = await self.get_zone(zone_id)

        fields = self._record_fields(zone, record_type, params)
        fields["RecordId"] = record_id
        await self._request("UpdateDomainRecord", fields)

        await self._follow_up(record_id, params)
        return await self._describe_record(zone, record_id)

    async def delete_record(self, zone_id: str, record_id: str) -> bool:
        self._require_domain(zone_id)
        await self._request("DeleteDomainRecord", {"RecordId": self._require_record_id(record_id)})
        return True

    async def set_record_status(self, zone_id: str, record_id: str, enabled: bool) -> bool:
        self._require_domain(zone_id)
        await self._request(
            "SetDomainRecordStatus",
            {
                "RecordId": self._require_record_id(record_id),
                "Status": "Enable" if enabled else "Disable",
            },
        )
        return True

    # ---------------------------------------------------------------------------
    # Lines and TTL
    # ---------------------------------------------------------------------------

    async def get_lines(self, zone_id: str | None = None) -> LineListResult:
        if not zone_id:
            return LineListResult(lines=list(_DEFAULT_LINES))
        body = await self._request(
            "DescribeSupportLines", {"DomainName": self._require_domain(zone_id)}
        )
        entries = self.parse_items(
            self.dig(body, "RecordLines", "RecordLine"),
            lambda l: (l.get("LineCode"), l.get("LineDisplayName") or l.get("LineName")),
            "line",
        )
        lines = [DnsLine(str(code), str(name or code)) for code, name in entries if code]
        return LineListResult(lines=lines or list(_DEFAULT_LINES))

    async def get_min_ttl(self, zone_id: str | None = None) -> int:
        if not zone_id:
            return _DEFAULT_TTL
        zone = await self.get_zone(zone_id)
        min_ttl = zone.meta.get("minTtl")
        try:
            return int(min_ttl) if min_ttl else _DEFAULT_TTL
        except (TypeError, ValueError):
            return _DEFAULT_TTL

    # ---------------------------------------------------------------------------
    # Internal helpers
    # ---------------------------------------------------------------------------

    async def _request(self, action: str, params: dict[str, Any]) -> dict[str, Any]:
        """
        Sends one signed Alidns action.

        Args:
            action: RPC action name, e.g. "DescribeDomainRecords".
            params: Action parameters; None values are dropped.

        Returns:
            The decoded reply body.

        Raises:
            DnsProviderError: With Aliyun's ``Code`` as the code.
        """
        query = self.stringify(self.compact(params).items())
        # The URL is built from the exact signed query string
        url = f"https://{ALIYUN_HOST}/?{canonical_query(query)}"

        async def attempt() -> dict[str, Any]:
            headers = self.sign(
                SigningRequest(
                    method="POST",
                    host=ALIYUN_HOST,
                    timestamp=self.timestamp(),
                    query=query,
                    action=action,
                    version=_VERSION,
                    nonce=self._nonce(),
                )
            )
            logger.debug("POST %s action=%s", ALIYUN_HOST, action)
            status, body = await self.send("POST", url, headers=headers)
            if not isinstance(body, dict):
                raise self.create_error(INVALID_RESPONSE, f"Aliyun {action} reply is not an object")
            if status >= 400 or (body.get("Code") and body.get("Message")):
                raise self.create_error(
                    str(body.get("Code") or "HTTP_ERROR"),
                    str(body.get("Message") or f"Aliyun HTTP {status}"),
                    http_status=status,
                    meta={"requestId": body.get("RequestId"), "action": action},
                )
            return body

        return await self.with_retry(attempt, action)

    async def _describe_record(self, zone: Zone, record_id: str) -> DnsRecord:
        record_id = self._require_record_id(record_id)
        try:
            body = await self._request("DescribeDomainRecordInfo", {"RecordId": record_id})
        except DnsProviderError as exc:
            if exc.code in _MISSING_RECORD_CODES:
                raise self.create_error(
                    NOT_FOUND, f"Record not found: {record_id}", http_status=404, cause=exc
                ) from exc
            raise
        if not body.get("RecordId"):
            raise self.create_error(NOT_FOUND, f"Record not found: {record_id}", http_status=404)
        return self.parse_item(body, lambda raw: self._parse_record(raw, zone), "record")

    async def _follow_up(self, record_id: str, params: CreateRecordParams) -> None:
        """Applies the remark and weight calls of a split mutation."""
        steps: list[tuple[str, dict[str, Any]]] = []
        if params.remark is not None:
            steps.append(("UpdateDomainRecordRemark", {"RecordId": record_id, "Remark": params.remark}))
        if params.weight is not None:
            steps.append(("UpdateDNSSLBWeight", {"RecordId": record_id, "Weight": params.weight}))

        for action, fields in steps:
            try:
                await self._request(action, fields)
            except DnsProviderError as exc:
                raise PartialMutationError(
                    f"Record {record_id} was saved but {action} failed: {exc.message}",
                    record_id=record_id,
                    step=action,
                    cause=exc,
                ) from exc

    def _require_domain(self, zone_id: str) -> str:
        domain = str(zone_id or "").strip().rstrip(".").lower()
        if not domain or "." not in domain or "/" in domain:
            raise self.create_error(
                INVALID_ZONE_ID, f"Zone id must be a domain name: {zone_id!r}", http_status=400
            )
        return domain

    def _require_record_id(self, record_id: str) -> str:
        return str(self.require_numeric_id(record_id, INVALID_RECORD_ID, "RecordId"))

    def _record_fields(
        self, zone: Zone, record_type: str, params: CreateRecordParams
    ) -> dict[str, Any]:
        return {
            "RR": to_rr(params.name, zone.name),
            "Type": record_type,
            "Value": params.value,
            "TTL": params.ttl or _DEFAULT_TTL,
            "Line": params.line or None,
            "Priority": params.priority if record_type == "MX" else None,
        }

    def _parse_zone(self, raw: dict[str, Any]) -> Zone:
        name = raw.get("DomainName")
        return self.normalize_zone(
            id=name,
            name=name,
            status="ENABLE",
            record_count=raw.get("RecordCount"),
            updated_at=raw.get("CreateTime"),
            meta={
                "domainId": raw.get("DomainId"),
                "versionCode": raw.get("VersionCode"),
                "minTtl": raw.get("MinTtl"),
            },
        )

    def _parse_record(self, raw: dict[str, Any], zone: Zone) -> DnsRecord:
        record_type = str(raw.get("Type") or "").upper()
        return self.normalize_record(
            id=raw.get("RecordId"),
            zone=zone,
            name=to_fqdn(raw.get("RR"), zone.name),
            type=record_type,
            value=raw.get("Value"),
            ttl=raw.get("TTL"),
            line=raw.get("Line"),
            weight=raw.get("Weight"),
            priority=raw.get("Priority") if record_type == "MX" else None,
            enabled=str(raw.get("Status") or "ENABLE").upper() != "DISABLE",
            remark=raw.get("Remark"),
            updated_at=raw.get("UpdateTimestamp"),
        )
