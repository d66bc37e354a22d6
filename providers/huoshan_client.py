"""
providers/huoshan_client.py

Responsibility: Implements the DNSProvider protocol on the Volcengine
(Huoshan) DNS OpenAPI: Action/Version in the query string, JSON bodies for
mutations, HMAC-SHA256 signed with a region-scoped credential.
Does NOT: cache zones or choose credentials.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from exceptions import (
    INVALID_RESPONSE,
    INVALID_ZONE_ID,
    NOT_FOUND,
    ZONE_NOT_FOUND,
    DnsProviderError,
)
from providers.base import BaseProvider
from providers.models import (
    DEFAULT_LINE,
    HUOSHAN,
    PAGING_SERVER,
    REMARK_INLINE,
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
from signing import volcengine
from signing.canonical import canonical_query

logger = logging.getLogger(__name__)

HUOSHAN_HOST = "open.volcengineapi.com"
_SERVICE = "DNS"
_REGION = "cn-north-1"
_VERSION = "2018-08-01"
_DEFAULT_TTL = 600
_JSON = "application/json; charset=utf-8"

# Record types whose priority travels as the first token of Value
_PRIORITY_IN_VALUE = ("MX", "SRV")

HUOSHAN_DEFAULT_LINES = (
    DnsLine(DEFAULT_LINE, "默认"),
    DnsLine("telecom", "电信"),
    DnsLine("unicom", "联通"),
    DnsLine("mobile", "移动"),
    DnsLine("edu", "教育网"),
    DnsLine("oversea", "海外"),
)

HUOSHAN_CAPABILITIES = ProviderCapabilities(
    provider=HUOSHAN,
    name="火山引擎 DNS",
    supports_weight=True,
    supports_line=True,
    supports_status=True,
    supports_remark=True,
    supports_url_forward=False,
    supports_logs=False,
    remark_mode=REMARK_INLINE,
    paging=PAGING_SERVER,
    requires_domain_id=True,
    record_types=("A", "AAAA", "CNAME", "MX", "TXT", "SRV", "CAA", "NS"),
    auth_fields=(
        AuthField("accessKeyId", "AccessKey ID", placeholder="火山引擎 AccessKey ID"),
        AuthField(
            "secretAccessKey", "SecretAccessKey", type="password",
            placeholder="火山引擎 SecretAccessKey",
        ),
    ),
    domain_cache_ttl=300,
    record_cache_ttl=120,
    retryable_errors=("SYSTEM_BUSY", "InternalError", "TIMEOUT"),
    max_retries=3,
)


def split_priority(record_type: str, value: str) -> tuple[int | None, str]:
    """
    Splits a leading priority off an MX/SRV value.

    Args:
        record_type: Canonical record type.
        value: Vendor value, e.g. "10 mx.example.com".

    Returns:
        (priority, remaining value); (None, value) when there is none.
    """
    if record_type in _PRIORITY_IN_VALUE:
        parts = value.split(None, 1)
        if len(parts) == 2 and parts[0].isdigit():
            return int(parts[0]), parts[1]
    return None, value


def join_priority(record_type: str, value: str, priority: int | None) -> str:
    if record_type in _PRIORITY_IN_VALUE and priority is not None:
        return f"{priority} {value}"
    return value


class HuoshanClient(BaseProvider):
    """
    Volcengine DNS adapter.

    Zones are addressed by their numeric ZID; records by RecordID alone.
    Remarks are written inline with the record.
    """

    capabilities = HUOSHAN_CAPABILITIES
    signer = staticmethod(volcengine.sign)

    # ---------------------------------------------------------------------------
    # Zones
    # ---------------------------------------------------------------------------

    async def get_zones(
        self, page: int = 1, page_size: int = 20, keyword: str | None = None
    ) -> ZoneListResult:
        page, page_size = self.page_window(page, page_size)
        result = await self._request(
            "GET", "ListZones", {"PageNumber": page, "PageSize": page_size, "Key": keyword or None}
        )
        zones = self.parse_items(result.get("Zones"), self._parse_zone, "zone")
        return ZoneListResult(total=int(result.get("Total") or len(zones)), zones=zones)

    async def get_zone(self, zone_id: str) -> Zone:
        zid = self.require_numeric_id(zone_id, INVALID_ZONE_ID, "ZID")
        result = await self._request("GET", "QueryZone", {"ZID": zid})
        if not result.get("ZoneName"):
            raise self.create_error(ZONE_NOT_FOUND, f"Zone not found: {zone_id}", http_status=404)
        return self.parse_item(result, lambda raw: self._parse_zone({"ZID": zid, **raw}), "zone")

    async def add_zone(self, domain: str) -> Zone:
        result = await self._request("POST", "CreateZone", body={"ZoneName": domain})
        if result.get("ZID") is None:
            raise self.create_error(INVALID_RESPONSE, "CreateZone returned no ZID")
        return self.normalize_zone(id=result["ZID"], name=domain, status="active")

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

        host = to_rr(params.sub_domain, zone.name) if params.sub_domain else params.keyword
        result = await self._request(
            "GET",
            "ListRecords",
            {
                "ZID": zone.id,
                "PageNumber": page,
                "PageSize": page_size,
                "Host": host or None,
                "Type": type_filter,
                "Value": params.value or None,
                "Line": params.line or None,
            },
        )
        records = self.parse_items(
            result.get("Records"), lambda raw: self._parse_record(raw, zone), "record"
        )
        return RecordListResult(total=int(result.get("Total") or len(records)), records=records)

    async def get_record(self, zone_id: str, record_id: str) -> DnsRecord:
        zone = await self.get_zone(zone_id)
        return await self._query_record(zone, record_id)

    async def create_record(self, zone_id: str, params: CreateRecordParams) -> DnsRecord:
        record_type = self.require_type(params.type)
        zone = await self.get_zone(zone_id)

        body = self._record_body(zone, record_type, params)
        body["ZID"] = int(zone.id)
        result = await self._request("POST", "CreateRecord", body=body)
        record_id = result.get("RecordID")
        if not record_id:
            raise self.create_error(INVALID_RESPONSE, "CreateRecord returned no RecordID")
        return await self._query_record(zone, str(record_id))

    async def update_record(
        self, zone_id: str, record_id: str, params: UpdateRecordParams
    ) -> DnsRecord:
        record_type = self.require_type(params.type)
        zone = await self.get_zone(zone_id)

        body = self._record_body(zone, record_type, params)
        body["RecordID"] = record_id
        await self._request("POST", "UpdateRecord", body=body)
        return await self._query_record(zone, record_id)

    async def delete_record(self, zone_id: str, record_id: str) -> bool:
        await self._request("POST", "DeleteRecord", body={"RecordID": record_id})
        return True

    async def set_record_status(self, zone_id: str, record_id: str, enabled: bool) -> bool:
        await self._request(
            "POST", "UpdateRecordStatus", body={"RecordID": record_id, "Enable": enabled}
        )
        return True

    # ---------------------------------------------------------------------------
    # Lines and TTL
    # ---------------------------------------------------------------------------

    async def get_lines(self, zone_id: str | None = None) -> LineListResult:
        if not zone_id:
            return LineListResult(lines=list(HUOSHAN_DEFAULT_LINES))
        try:
            result = await self._request("GET", "ListLines", {"ZID": zone_id})
        except DnsProviderError as exc:
            logger.warning("Huoshan line query failed (%s); using default lines.", exc.code)
            return LineListResult(lines=list(HUOSHAN_DEFAULT_LINES))
        entries = self.parse_items(
            result.get("Lines"), lambda l: (l.get("Line"), l.get("Name")), "line"
        )
        lines = [DnsLine(str(code), str(name or code)) for code, name in entries if code]
        return LineListResult(lines=lines or list(HUOSHAN_DEFAULT_LINES))

    async def get_min_ttl(self, zone_id: str | None = None) -> int:
        """
        Maps the zone's plan (TradeCode) to its TTL floor.

        enterprise/flagship/premium allow 1s, professional 300s, anything
        else (including an unknown plan) 600s.
        """
        if not zone_id:
            return _DEFAULT_TTL
        zone = await self.get_zone(zone_id)
        trade_code = str(zone.meta.get("tradeCode") or "").lower()
        if any(tier in trade_code for tier in ("enterprise", "flagship", "premium")):
            return 1
        if "professional" in trade_code:
            return 300
        return _DEFAULT_TTL

    # ---------------------------------------------------------------------------
    # Internal helpers
    # ---------------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        action: str,
        query: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Sends one signed Volcengine action and returns its ``Result`` object.

        Args:
            method: "GET" for reads, "POST" for mutations.
            action: OpenAPI action name.
            query: Extra query parameters; None values are dropped.
            body: JSON body for POST actions.

        Returns:
            The ``Result`` dict (empty if the action returns none).

        Raises:
            DnsProviderError: With ``ResponseMetadata.Error.Code`` as the code.
        """
        params = {"Action": action, "Version": _VERSION}
        params.update(self.stringify((query or {}).items()))
        content = json.dumps(self.compact(body), ensure_ascii=False) if body is not None else ""
        # The URL is built from the exact signed query string
        url = f"https://{HUOSHAN_HOST}/?{canonical_query(params)}"

        async def attempt() -> dict[str, Any]:
            headers = self.sign(
                SigningRequest(
                    method=method,
                    host=HUOSHAN_HOST,
                    timestamp=self.timestamp(),
                    query=params,
                    headers={"Content-Type": _JSON} if content else {},
                    body=content,
                    action=action,
                    version=_VERSION,
                    service=_SERVICE,
                    region=_REGION,
                )
            )
            logger.debug("%s %s action=%s", method, HUOSHAN_HOST, action)
            status, data = await self.send(method, url, headers=headers, content=content or None)
            if not isinstance(data, dict):
                raise self.create_error(INVALID_RESPONSE, f"Huoshan {action} reply is not an object")

            metadata = data.get("ResponseMetadata") or {}
            error = metadata.get("Error") or {}
            if error:
                raise self.create_error(
                    str(error.get("Code") or "ERROR"),
                    str(error.get("Message") or "Huoshan API error"),
                    http_status=status,
                    meta={"requestId": metadata.get("RequestId"), "action": action},
                )
            if status >= 400:
                raise self.create_error("HTTP_ERROR", f"Huoshan HTTP {status}", http_status=status)
            result = data.get("Result")
            return result if isinstance(result, dict) else {}

        return await self.with_retry(attempt, action)

    async def _query_record(self, zone: Zone, record_id: str) -> DnsRecord:
        result = await self._request("GET", "QueryRecord", {"RecordID": record_id})
        if not result.get("RecordID"):
            raise self.create_error(NOT_FOUND, f"Record not found: {record_id}", http_status=404)
        return self.parse_item(result, lambda raw: self._parse_record(raw, zone), "record")

    def _record_body(
        self, zone: Zone, record_type: str, params: CreateRecordParams
    ) -> dict[str, Any]:
        return {
            "Host": to_rr(params.name, zone.name),
            "Type": record_type,
            "Value": join_priority(record_type, params.value, params.priority),
            "TTL": params.ttl or _DEFAULT_TTL,
            "Line": params.line or DEFAULT_LINE,
            "Weight": params.weight,
            "Remark": params.remark,
        }

    def _parse_zone(self, raw: dict[str, Any]) -> Zone:
        return self.normalize_zone(
            id=raw.get("ZID"),
            name=raw.get("ZoneName"),
            status="active",
            record_count=raw.get("RecordCount"),
            updated_at=raw.get("UpdatedAt"),
            meta={"tradeCode": raw.get("TradeCode")},
        )

    def _parse_record(self, raw: dict[str, Any], zone: Zone) -> DnsRecord:
        record_type = str(raw.get("Type") or "").upper()
        priority, value = split_priority(record_type, str(raw.get("Value") or ""))
        return self.normalize_record(
            id=raw.get("RecordID"),
            zone=zone,
            name=to_fqdn(raw.get("Host"), zone.name),
            type=record_type,
            value=value,
            ttl=raw.get("TTL"),
            line=raw.get("Line"),
            weight=raw.get("Weight"),
            priority=priority,
            enabled=raw.get("Enable") is not False,
            remark=raw.get("Remark"),
            updated_at=raw.get("UpdatedAt"),
        )
