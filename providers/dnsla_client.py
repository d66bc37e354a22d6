"""
providers/dnsla_client.py

Responsibility: Implements the DNSProvider protocol on the DNSLA REST API
(HTTP Basic auth, numeric record-type codes, {code, msg, data} envelopes).
Does NOT: cache zones or choose credentials.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from exceptions import INVALID_RESPONSE, INVALID_ZONE_ID, NOT_FOUND, ZONE_NOT_FOUND, DnsProviderError
from providers.base import SCAN_PAGE_SIZE, BaseProvider
from providers.models import (
    DEFAULT_LINE,
    DNSLA,
    PAGING_SERVER,
    REMARK_UNSUPPORTED,
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
from providers.naming import to_fqdn, to_host_label
from signing.simple import sign_basic

logger = logging.getLogger(__name__)

DNSLA_HOST = "api.dns.la"
DNSLA_BASE = f"https://{DNSLA_HOST}"
_DEFAULT_TTL = 600
_OK = 200

# Canonical type -> DNSLA numeric code
_TYPE_TO_CODE = {
    "A": 1,
    "NS": 2,
    "CNAME": 5,
    "MX": 15,
    "TXT": 16,
    "AAAA": 28,
    "SRV": 33,
    "CAA": 257,
}
_CODE_TO_TYPE = {code: name for name, code in _TYPE_TO_CODE.items()}

# Both URL forwarding kinds share code 256; "dominant" tells them apart
_URL_CODE = 256
_URL_TYPES = {"REDIRECT_URL": True, "FORWARD_URL": False}

DNSLA_CAPABILITIES = ProviderCapabilities(
    provider=DNSLA,
    name="DNSLA",
    supports_weight=True,
    supports_line=True,
    supports_status=True,
    supports_remark=False,
    supports_url_forward=True,
    supports_logs=False,
    remark_mode=REMARK_UNSUPPORTED,
    paging=PAGING_SERVER,
    requires_domain_id=True,
    record_types=(
        "A", "AAAA", "CNAME", "MX", "TXT", "SRV", "CAA", "NS", "REDIRECT_URL", "FORWARD_URL",
    ),
    auth_fields=(
        AuthField("apiId", "API ID", placeholder="DNSLA API ID"),
        AuthField("apiSecret", "API Secret", type="password", placeholder="DNSLA API Secret"),
    ),
    domain_cache_ttl=300,
    record_cache_ttl=120,
    retryable_errors=("RATE_LIMIT", "TIMEOUT", "InternalError"),
    max_retries=3,
)


def encode_type(record_type: str) -> tuple[int, bool | None]:
    """
    Translates a canonical type into DNSLA's (type code, dominant) pair.

    Args:
        record_type: A canonical type already validated against the
            capability descriptor.

    Returns:
        (numeric code, dominant flag or None for non-URL types).

    Raises:
        KeyError: For a type outside the table.
    """
    if record_type in _URL_TYPES:
        return _URL_CODE, _URL_TYPES[record_type]
    return _TYPE_TO_CODE[record_type], None


def decode_type(code: Any, dominant: Any = None) -> str:
    """Translates a DNSLA type code back; unknown codes pass through as strings."""
    try:
        number = int(code)
    except (TypeError, ValueError):
        return str(code)
    if number == _URL_CODE:
        return "REDIRECT_URL" if dominant else "FORWARD_URL"
    return _CODE_TO_TYPE.get(number, str(number))


class DnslaClient(BaseProvider):
    """
    DNSLA adapter.

    DNSLA has no single-record endpoint, so get_record scans the record list.
    The apex is stored as an empty host.
    """

    capabilities = DNSLA_CAPABILITIES
    signer = staticmethod(sign_basic)

    # ---------------------------------------------------------------------------
    # Zones
    # ---------------------------------------------------------------------------

    async def get_zones(
        self, page: int = 1, page_size: int = 20, keyword: str | None = None
    ) -> ZoneListResult:
        page, page_size = self.page_window(page, page_size)
        data = await self._request(
            "GET", "/api/domainList", {"pageIndex": page, "pageSize": page_size}
        )
        zones = self.parse_items(self.dig(data, "list"), self._parse_zone, "zone")
        return ZoneListResult(total=int(self.dig(data, "total") or len(zones)), zones=zones)

    async def get_zone(self, zone_id: str) -> Zone:
        zone_id = self._require_zone_id(zone_id)
        data = await self._request("GET", "/api/domain", {"id": zone_id})
        if not self.dig(data, "domain"):
            raise self.create_error(ZONE_NOT_FOUND, f"Zone not found: {zone_id}", http_status=404)
        return self.parse_item(data, lambda raw: self._parse_zone({"id": zone_id, **raw}), "zone")

    async def add_zone(self, domain: str) -> Zone:
        data = await self._request("POST", "/api/domain", body={"domain": domain})
        zone_id = self.dig(data, "id")
        if not zone_id:
            raise self.create_error(INVALID_RESPONSE, "Domain creation returned no id")
        return self.normalize_zone(id=zone_id, name=domain, status="active")

    # ---------------------------------------------------------------------------
    # Records
    # ---------------------------------------------------------------------------

    async def get_records(
        self, zone_id: str, params: RecordQueryParams | None = None
    ) -> RecordListResult:
        params = params or RecordQueryParams()
        type_code = encode_type(self.require_type(params.type))[0] if params.type else None
        zone = await self.get_zone(zone_id)
        host = to_host_label(params.sub_domain, zone.name) if params.sub_domain else params.keyword
        return await self._list_records(
            zone,
            params.page,
            params.page_size,
            host=host or None,
            type=type_code,
            data=params.value or None,
            lineId=params.line if params.line and params.line != DEFAULT_LINE else None,
        )

    async def get_record(self, zone_id: str, record_id: str) -> DnsRecord:
        zone = await self.get_zone(zone_id)
        return await self._find_record(zone, record_id)

    async def create_record(self, zone_id: str, params: CreateRecordParams) -> DnsRecord:
        record_type = self.require_type(params.type)
        zone = await self.get_zone(zone_id)

        body = self._record_body(zone, record_type, params)
        body["domainId"] = zone.id
        data = await self._request("POST", "/api/record", body=body)
        record_id = self.dig(data, "id")
        if not record_id:
            raise self.create_error(INVALID_RESPONSE, "Record creation returned no id")
        return await self._find_record(zone, str(record_id))

    async def update_record(
        self, zone_id: str, record_id: str, params: UpdateRecordParams
    ) -> DnsRecord:
        record_type = self.require_type(params.type)
        zone = await self.get_zone(zone_id)

        body = self._record_body(zone, record_type, params)
        body["id"] = record_id
        await self._request("PUT", "/api/record", body=body)
        return await self._find_record(zone, record_id)

    async def delete_record(self, zone_id: str, record_id: str) -> bool:
        await self._request("DELETE", "/api/record", {"id": record_id})
        return True

    async def set_record_status(self, zone_id: str, record_id: str, enabled: bool) -> bool:
        await self._request(
            "PUT", "/api/recordDisable", body={"id": record_id, "disable": not enabled}
        )
        return True

    # ---------------------------------------------------------------------------
    # Lines and TTL
    # ---------------------------------------------------------------------------

    async def get_lines(self, zone_id: str | None = None) -> LineListResult:
        if not zone_id:
            return LineListResult(lines=self.default_lines())
        try:
            data = await self._request("GET", "/api/availableLine", {"domainId": zone_id})
        except DnsProviderError as exc:
            logger.warning("DNSLA line query failed (%s); using the default line.", exc.code)
            return LineListResult(lines=self.default_lines())

        entries = self.parse_items(
            data,
            lambda raw: (raw.get("id") or raw.get("lineId"), raw.get("name") or raw.get("lineName")),
            "line",
        )
        lines = [DnsLine(str(code), str(name or code)) for code, name in entries if code]
        return LineListResult(lines=lines or self.default_lines())

    async def get_min_ttl(self, zone_id: str | None = None) -> int:
        if not zone_id:
            return _DEFAULT_TTL
        data = await self._request("GET", "/api/dnsMeasures", {"domainId": zone_id})
        min_ttl = self.dig(data, "minTtl")
        try:
            return int(min_ttl) if min_ttl else _DEFAULT_TTL
        except (TypeError, ValueError):
            return _DEFAULT_TTL

    # ---------------------------------------------------------------------------
    # Internal helpers
    # ---------------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        query: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Any:
        """
        Sends one DNSLA call and returns the envelope's ``data`` member.

        Args:
            method: HTTP verb.
            path: API path, e.g. "/api/recordList".
            query: Query parameters; None values are dropped.
            body: JSON body for POST/PUT.

        Returns:
            The ``data`` member of the reply (dict, list or None).

        Raises:
            DnsProviderError: With DNSLA's numeric ``code`` (as a string)
                whenever it is not 200.
        """
        params = self.stringify((query or {}).items())
        content = json.dumps(self.compact(body), ensure_ascii=False) if body is not None else None
        url = f"{DNSLA_BASE}{path}"

        async def attempt() -> Any:
            headers = self.sign(
                SigningRequest(
                    method=method,
                    host=DNSLA_HOST,
                    timestamp=self.timestamp(),
                    path=path,
                    query=params,
                    body=content or "",
                )
            )
            headers["Content-Type"] = "application/json; charset=utf-8"
            logger.debug("%s %s", method, url)
            status, envelope = await self.send(
                method, url, headers=headers, params=params or None, content=content
            )
            if not isinstance(envelope, dict):
                raise self.create_error(INVALID_RESPONSE, f"DNSLA {path} reply is not an object")

            code = envelope.get("code")
            if code is not None and str(code) != str(_OK):
                raise self.create_error(
                    str(code),
                    str(envelope.get("msg") or f"DNSLA error {code}"),
                    http_status=status,
                    meta={"path": path},
                )
            if status >= 400:
                raise self.create_error("HTTP_ERROR", f"DNSLA HTTP {status}", http_status=status)
            return envelope.get("data")

        return await self.with_retry(attempt, path)

    async def _list_records(
        self, zone: Zone, page: int | None, page_size: int | None, **filters: Any
    ) -> RecordListResult:
        page, page_size = self.page_window(page, page_size)
        query = {"domainId": zone.id, "pageIndex": page, "pageSize": page_size}
        query.update(filters)
        data = await self._request("GET", "/api/recordList", query)
        records = self.parse_items(
            self.dig(data, "list"), lambda raw: self._parse_record(raw, zone), "record"
        )
        return RecordListResult(total=int(self.dig(data, "total") or len(records)), records=records)

    async def _find_record(self, zone: Zone, record_id: str) -> DnsRecord:
        async def fetch_page(page: int) -> tuple[int, list[DnsRecord]]:
            result = await self._list_records(zone, page, SCAN_PAGE_SIZE)
            return result.total, result.records

        record = await self.scan_pages(fetch_page, lambda r: r.id == str(record_id))
        if record is None:
            raise self.create_error(NOT_FOUND, f"Record not found: {record_id}", http_status=404)
        return record

    def _require_zone_id(self, zone_id: str) -> str:
        text = str(zone_id or "").strip()
        if not text:
            raise self.create_error(INVALID_ZONE_ID, "Zone id must not be empty", http_status=400)
        return text

    def _record_body(
        self, zone: Zone, record_type: str, params: CreateRecordParams
    ) -> dict[str, Any]:
        type_code, dominant = encode_type(record_type)
        return {
            "host": to_host_label(params.name, zone.name),
            "type": type_code,
            "data": params.value,
            "ttl": params.ttl or _DEFAULT_TTL,
            "lineId": params.line if params.line and params.line != DEFAULT_LINE else None,
            "weight": params.weight,
            "preference": params.priority if record_type in ("MX", "SRV") else None,
            "dominant": dominant,
        }

    def _parse_zone(self, raw: dict[str, Any]) -> Zone:
        return self.normalize_zone(
            id=raw.get("id"),
            name=raw.get("domain"),
            status="active",
            record_count=raw.get("recordCount"),
            updated_at=raw.get("updatedAt"),
        )

    def _parse_record(self, raw: dict[str, Any], zone: Zone) -> DnsRecord:
        if "state" in raw:
            # state 1 means active
            enabled = str(raw.get("state")) == "1"
        else:
            enabled = not raw.get("disable", False)
        return self.normalize_record(
            id=raw.get("id"),
            zone=zone,
            name=to_fqdn(raw.get("host"), zone.name),
            type=decode_type(raw.get("type"), raw.get("dominant")),
            value=raw.get("data"),
            ttl=raw.get("ttl"),
            line=raw.get("lineId"),
            weight=raw.get("weight"),
            priority=raw.get("preference"),
            enabled=enabled,
        )
