"""
providers/cloudflare_client.py

Responsibility: Implements the DNSProvider protocol using the Cloudflare REST API.
All Cloudflare HTTP calls are concentrated here; no other file may call the
Cloudflare API directly.
Does NOT: read configuration, cache zones, or choose credentials.
"""

from __future__ import annotations

import json
import logging
import re
import shlex
from typing import Any

from exceptions import (
    INVALID_RECORD_ID,
    INVALID_RESPONSE,
    INVALID_VALUE,
    INVALID_ZONE_ID,
    NOT_FOUND,
    ZONE_NOT_FOUND,
)
from providers.base import BaseProvider
from providers.models import (
    CLOUDFLARE,
    PAGING_SERVER,
    REMARK_INLINE,
    AuthField,
    CreateRecordParams,
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
from providers.naming import normalized_fqdn
from signing.simple import sign_bearer

logger = logging.getLogger(__name__)

CLOUDFLARE_HOST = "api.cloudflare.com"
_CLOUDFLARE_BASE = f"https://{CLOUDFLARE_HOST}/client/v4"

# 1 = "automatic" TTL on Cloudflare
_AUTO_TTL = 1
_MIN_TTL = 60

_ID_PATTERN = re.compile(r"[A-Za-z0-9]+")

CLOUDFLARE_CAPABILITIES = ProviderCapabilities(
    provider=CLOUDFLARE,
    name="Cloudflare",
    supports_weight=False,
    supports_line=False,
    supports_status=False,
    supports_remark=True,
    supports_url_forward=False,
    supports_logs=False,
    remark_mode=REMARK_INLINE,
    paging=PAGING_SERVER,
    requires_domain_id=True,
    record_types=("A", "AAAA", "CNAME", "MX", "TXT", "SRV", "CAA", "NS", "PTR"),
    auth_fields=(
        AuthField("apiToken", "API Token", type="password", placeholder="Cloudflare API Token"),
    ),
    domain_cache_ttl=300,
    record_cache_ttl=120,
    retryable_errors=("RATE_LIMITED", "SERVER_ERROR"),
    max_retries=3,
)


def srv_data(value: str, priority: int | None) -> dict[str, Any]:
    """
    Parses an SRV value into Cloudflare's data object.

    Accepts "weight port target" (priority passed separately) or
    "priority weight port target".

    Raises:
        ValueError: If the value does not have that shape.
    """
    parts = value.split()
    if len(parts) == 4:
        priority_text, weight, port, target = parts
        priority = int(priority_text)
    elif len(parts) == 3:
        weight, port, target = parts
    else:
        raise ValueError(f"SRV value must be 'weight port target', got {value!r}")
    return {
        "priority": priority or 0,
        "weight": int(weight),
        "port": int(port),
        "target": target.rstrip("."),
    }


def caa_data(value: str) -> dict[str, Any]:
    """
    Parses a CAA value ('0 issue "letsencrypt.org"') into Cloudflare's data object.

    Raises:
        ValueError: If the value does not have that shape.
    """
    parts = shlex.split(value)
    if len(parts) != 3:
        raise ValueError(f"CAA value must be 'flags tag value', got {value!r}")
    flags, tag, content = parts
    return {"flags": int(flags), "tag": tag, "value": content}


class CloudflareClient(BaseProvider):
    """
    Implements DNSProvider for the Cloudflare DNS REST API (v4).

    All outbound Cloudflare requests go through the injected httpx.AsyncClient,
    making this class fully testable without real network calls (use respx.mock).
    The record ``comment`` field carries the remark; Cloudflare has no
    per-record enable/disable switch.
    """

    capabilities = CLOUDFLARE_CAPABILITIES
    signer = staticmethod(sign_bearer)

    # ---------------------------------------------------------------------------
    # Zones
    # ---------------------------------------------------------------------------

    async def get_zones(
        self, page: int = 1, page_size: int = 20, keyword: str | None = None
    ) -> ZoneListResult:
        page, page_size = self.page_window(page, page_size)
        params = {"page": page, "per_page": page_size}
        if keyword:
            params["name"] = f"contains:{keyword}"

        body = await self._request("GET", "/zones", params=params)
        zones = self.parse_items(body.get("result"), self._parse_zone, "zone")
        total = self.dig(body, "result_info", "total_count") or len(zones)
        return ZoneListResult(total=int(total), zones=zones)

    async def get_zone(self, zone_id: str) -> Zone:
        zone_id = self._require_id(zone_id, INVALID_ZONE_ID, "Zone id")
        body = await self._request("GET", f"/zones/{zone_id}", not_found=ZONE_NOT_FOUND)
        return self.parse_item(body.get("result") or {}, self._parse_zone, "zone")

    async def add_zone(self, domain: str) -> Zone:
        payload: dict[str, Any] = {"name": domain, "type": "full"}
        if self.account_id:
            payload["account"] = {"id": self.account_id}
        body = await self._request("POST", "/zones", json_body=payload)
        return self.parse_item(body.get("result") or {}, self._parse_zone, "zone")

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

        query: dict[str, Any] = {"page": page, "per_page": page_size}
        if params.sub_domain:
            query["name"] = normalized_fqdn(params.sub_domain, zone.name)
        if type_filter:
            query["type"] = type_filter
        if params.value:
            query["content"] = params.value
        if params.keyword:
            query["search"] = params.keyword

        body = await self._request("GET", f"/zones/{zone.id}/dns_records", params=query)
        records = self.parse_items(
            body.get("result"), lambda raw: self._parse_record(raw, zone), "record"
        )
        total = self.dig(body, "result_info", "total_count") or len(records)
        return RecordListResult(total=int(total), records=records)

    async def get_record(self, zone_id: str, record_id: str) -> DnsRecord:
        zone = await self.get_zone(zone_id)
        return await self._fetch_record(zone, record_id)

    async def create_record(self, zone_id: str, params: CreateRecordParams) -> DnsRecord:
        record_type = self.require_type(params.type)
        payload = self._record_payload(record_type, params)
        zone = await self.get_zone(zone_id)
        payload["name"] = normalized_fqdn(params.name, zone.name)

        body = await self._request("POST", f"/zones/{zone.id}/dns_records", json_body=payload)
        record_id = self.dig(body, "result", "id")
        if not record_id:
            raise self.create_error(INVALID_RESPONSE, "Cloudflare returned no record id")
        return await self._fetch_record(zone, record_id)

    async def update_record(
        self, zone_id: str, record_id: str, params: UpdateRecordParams
    ) -> DnsRecord:
        record_type = self.require_type(params.type)
        record_id = self._require_id(record_id, INVALID_RECORD_ID, "Record id")
        payload = self._record_payload(record_type, params)
        zone = await self.get_zone(zone_id)
        payload["name"] = normalized_fqdn(params.name, zone.name)

        await self._request(
            "PUT", f"/zones/{zone.id}/dns_records/{record_id}", json_body=payload, not_found=NOT_FOUND
        )
        return await self._fetch_record(zone, record_id)

    async def delete_record(self, zone_id: str, record_id: str) -> bool:
        zone_id = self._require_id(zone_id, INVALID_ZONE_ID, "Zone id")
        record_id = self._require_id(record_id, INVALID_RECORD_ID, "Record id")
        await self._request(
            "DELETE", f"/zones/{zone_id}/dns_records/{record_id}", not_found=NOT_FOUND
        )
        return True

    async def set_record_status(self, zone_id: str, record_id: str, enabled: bool) -> bool:
        raise self.unsupported("enabling or disabling records")

    # ---------------------------------------------------------------------------
    # Lines and TTL
    # ---------------------------------------------------------------------------

    async def get_lines(self, zone_id: str | None = None) -> LineListResult:
        return LineListResult(lines=self.default_lines())

    async def get_min_ttl(self, zone_id: str | None = None) -> int:
        return _MIN_TTL

    # ---------------------------------------------------------------------------
    # Internal helpers
    # ---------------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
        not_found: str = NOT_FOUND,
    ) -> dict[str, Any]:
        """
        Sends an authenticated HTTP request to the Cloudflare API.

        Args:
            method: HTTP verb ("GET", "PUT", "POST", "DELETE").
            path: Path below /client/v4.
            params: Optional query-string parameters.
            json_body: Optional JSON request body.
            not_found: Error code used for an HTTP 404.

        Returns:
            The parsed JSON response body as a dict.

        Raises:
            DnsProviderError: RATE_LIMITED on 429, SERVER_ERROR on 5xx,
                ``not_found`` on 404, HTTP_ERROR on any other 4xx without a
                JSON body, or Cloudflare's own error code when the body
                says success=false.
        """
        url = f"{_CLOUDFLARE_BASE}{path}"
        query = self.stringify((params or {}).items())
        content = json.dumps(json_body) if json_body is not None else None

        async def attempt() -> dict[str, Any]:
            headers = self.sign(
                SigningRequest(
                    method=method,
                    host=CLOUDFLARE_HOST,
                    timestamp=self.timestamp(),
                    path=path,
                    query=query,
                    body=content or "",
                )
            )
            headers["Content-Type"] = "application/json"
            logger.debug("%s %s params=%s", method, url, query)
            status, body = await self.send(
                method, url, headers=headers, params=query or None, content=content
            )

            if status == 429:
                raise self.create_error("RATE_LIMITED", "Cloudflare rate limit hit", http_status=status)
            if status >= 500:
                raise self.create_error(
                    "SERVER_ERROR", f"Cloudflare server error {status}", http_status=status
                )
            if status == 404:
                raise self.create_error(
                    not_found, f"Cloudflare resource not found: {path}", http_status=404,
                )
            if status >= 400 and body is None:
                raise self.create_error(
                    "HTTP_ERROR", f"Cloudflare HTTP {status}", http_status=status
                )
            if not isinstance(body, dict):
                raise self.create_error(
                    INVALID_RESPONSE, "Cloudflare reply is not an object", http_status=status
                )

            # NOTE: Cloudflare wraps all responses in {"success": bool, "result": ...}
            if status >= 400 or not body.get("success", False):
                errors = body.get("errors") or []
                first = errors[0] if errors and isinstance(errors[0], dict) else {}
                raise self.create_error(
                    str(first.get("code") or "CLOUDFLARE_ERROR"),
                    str(first.get("message") or f"Cloudflare API returned success=false for {method} {path}"),
                    http_status=status,
                    meta={"errors": errors},
                )
            return body

        return await self.with_retry(attempt, f"{method} {path}")

    async def _fetch_record(self, zone: Zone, record_id: str) -> DnsRecord:
        record_id = self._require_id(record_id, INVALID_RECORD_ID, "Record id")
        body = await self._request("GET", f"/zones/{zone.id}/dns_records/{record_id}")
        return self.parse_item(
            body.get("result") or {}, lambda raw: self._parse_record(raw, zone), "record"
        )

    def _require_id(self, value: str, code: str, label: str) -> str:
        text = str(value or "").strip()
        if not _ID_PATTERN.fullmatch(text):
            raise self.create_error(code, f"{label} is malformed: {value!r}", http_status=400)
        return text

    def _record_payload(self, record_type: str, params: CreateRecordParams) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "type": record_type,
            "ttl": params.ttl or _AUTO_TTL,
        }
        try:
            if record_type == "SRV":
                payload["data"] = srv_data(params.value, params.priority)
            elif record_type == "CAA":
                payload["data"] = caa_data(params.value)
            else:
                payload["content"] = params.value
        except ValueError as exc:
            raise self.create_error(INVALID_VALUE, str(exc), http_status=400, cause=exc) from exc
        if record_type == "MX":
            payload["priority"] = params.priority if params.priority is not None else 10
        if params.remark is not None:
            payload["comment"] = params.remark
        return payload

    def _parse_zone(self, raw: dict[str, Any]) -> Zone:
        return self.normalize_zone(
            id=raw.get("id"),
            name=raw.get("name"),
            status=raw.get("status"),
            updated_at=raw.get("modified_on"),
            meta={
                "plan": (raw.get("plan") or {}).get("name"),
                "accountId": (raw.get("account") or {}).get("id"),
            },
        )

    def _parse_record(self, raw: dict[str, Any], zone: Zone) -> DnsRecord:
        """
        Converts a raw Cloudflare API record dict into a DnsRecord.

        Args:
            raw: A single record object from the Cloudflare API response.
            zone: The owning zone.

        Returns:
            A DnsRecord populated from the raw dict.
        """
        record_type = str(raw.get("type") or "").upper()
        return self.normalize_record(
            id=raw.get("id"),
            zone=zone,
            name=raw.get("name"),
            type=record_type,
            value=raw.get("content"),
            ttl=raw.get("ttl", _AUTO_TTL),
            priority=raw.get("priority") if record_type in ("MX", "SRV") else None,
            remark=raw.get("comment"),
            updated_at=raw.get("modified_on"),
            meta={"proxied": bool(raw.get("proxied", False))},
        )
