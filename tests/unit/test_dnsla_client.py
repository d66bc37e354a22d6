"""
tests/unit/test_dnsla_client.py

Unit tests for providers/dnsla_client.py.
All DNSLA API calls are intercepted by respx; no real network traffic.
"""

from __future__ import annotations

import base64
import json

import httpx
import pytest

from exceptions import INVALID_RESPONSE, INVALID_TYPE, NOT_FOUND, ZONE_NOT_FOUND, DnsProviderError
from providers.dnsla_client import DnslaClient, decode_type, encode_type
from providers.models import CreateRecordParams, ProviderCredentials, RecordQueryParams

_BASE = "https://api.dns.la"
_CREDS = ProviderCredentials("dnsla", {"apiId": "la-id", "apiSecret": "la-secret"})


def _ok(data) -> httpx.Response:
    return httpx.Response(200, json={"code": 200, "msg": "", "data": data})


def _domain() -> httpx.Response:
    return _ok({"id": "d1", "domain": "example.net", "recordCount": 4})


def _client(http_client, adapter_options) -> DnslaClient:
    return DnslaClient(_CREDS, http_client, **adapter_options)


# ---------------------------------------------------------------------------
# type codes
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "record_type, encoded",
    [
        ("A", (1, None)),
        ("NS", (2, None)),
        ("CNAME", (5, None)),
        ("MX", (15, None)),
        ("TXT", (16, None)),
        ("AAAA", (28, None)),
        ("SRV", (33, None)),
        ("CAA", (257, None)),
        ("REDIRECT_URL", (256, True)),
        ("FORWARD_URL", (256, False)),
    ],
)
def test_type_table_is_a_bijection(record_type, encoded):
    assert encode_type(record_type) == encoded
    assert decode_type(*encoded) == record_type


def test_unknown_incoming_code_passes_through():
    assert decode_type(99) == "99"
    assert decode_type("weird") == "weird"


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_a_record_round_trip_uses_numeric_type(mock_http, http_client, adapter_options):
    """Create sends type 1; the re-read maps type 1 back to "A"."""
    mock_http.get(f"{_BASE}/api/domain").mock(return_value=_domain())
    create_route = mock_http.post(f"{_BASE}/api/record").mock(return_value=_ok({"id": "rec-1"}))
    mock_http.get(f"{_BASE}/api/recordList").mock(
        return_value=_ok(
            {
                "total": 1,
                "list": [
                    {"id": "rec-1", "host": "www", "type": 1, "data": "1.2.3.4", "ttl": 600,
                     "lineId": "", "weight": 1, "state": 1}
                ],
            }
        )
    )

    record = await _client(http_client, adapter_options).create_record(
        "d1", CreateRecordParams(name="www.example.net", type="A", value="1.2.3.4")
    )

    sent = json.loads(create_route.calls.last.request.content)
    assert sent == {"host": "www", "type": 1, "data": "1.2.3.4", "ttl": 600, "domainId": "d1"}
    expected_auth = base64.b64encode(b"la-id:la-secret").decode()
    assert create_route.calls.last.request.headers["Authorization"] == f"Basic {expected_auth}"
    assert record.type == "A"
    assert record.name == "www.example.net"
    assert record.value == "1.2.3.4"
    assert record.line == "default"
    assert record.remark is None
    assert record.status == "enabled"


@pytest.mark.asyncio
async def test_apex_is_written_as_empty_host(mock_http, http_client, adapter_options):
    mock_http.get(f"{_BASE}/api/domain").mock(return_value=_domain())
    route = mock_http.post(f"{_BASE}/api/record").mock(return_value=_ok({"id": "rec-2"}))
    mock_http.get(f"{_BASE}/api/recordList").mock(
        return_value=_ok({"total": 1, "list": [
            {"id": "rec-2", "host": "", "type": 256, "dominant": True, "data": "https://x.example", "ttl": 600}
        ]})
    )

    record = await _client(http_client, adapter_options).create_record(
        "d1", CreateRecordParams(name="@", type="REDIRECT_URL", value="https://x.example")
    )

    sent = json.loads(route.calls.last.request.content)
    assert sent["host"] == ""
    assert sent["type"] == 256
    assert sent["dominant"] is True
    assert record.type == "REDIRECT_URL"
    assert record.name == "example.net"


@pytest.mark.asyncio
async def test_get_record_not_in_list_is_not_found(mock_http, http_client, adapter_options):
    mock_http.get(f"{_BASE}/api/domain").mock(return_value=_domain())
    list_route = mock_http.get(f"{_BASE}/api/recordList").mock(
        return_value=_ok({"total": 1, "list": [{"id": "other", "host": "a", "type": 1, "data": "1.1.1.1"}]})
    )

    with pytest.raises(DnsProviderError) as exc_info:
        await _client(http_client, adapter_options).get_record("d1", "missing")

    assert exc_info.value.code == NOT_FOUND
    assert list_route.call_count == 1


@pytest.mark.asyncio
async def test_get_records_filters(mock_http, http_client, adapter_options):
    mock_http.get(f"{_BASE}/api/domain").mock(return_value=_domain())
    route = mock_http.get(f"{_BASE}/api/recordList").mock(return_value=_ok({"total": 0, "list": []}))

    await _client(http_client, adapter_options).get_records(
        "d1", RecordQueryParams(sub_domain="www", type="MX", page=2, page_size=50)
    )

    params = route.calls.last.request.url.params
    assert params["domainId"] == "d1"
    assert params["host"] == "www"
    assert params["type"] == "15"
    assert params["pageIndex"] == "2"
    assert params["pageSize"] == "50"


@pytest.mark.asyncio
@pytest.mark.parametrize("line, expected", [("default", None), ("line-42", "line-42")])
async def test_line_filter_omits_generic_default(mock_http, http_client, adapter_options, line, expected):
    mock_http.get(f"{_BASE}/api/domain").mock(return_value=_domain())
    route = mock_http.get(f"{_BASE}/api/recordList").mock(return_value=_ok({"total": 0, "list": []}))

    await _client(http_client, adapter_options).get_records("d1", RecordQueryParams(line=line))

    assert route.calls.last.request.url.params.get("lineId") == expected


@pytest.mark.asyncio
async def test_ptr_is_rejected_before_any_call(mock_http, http_client, adapter_options):
    route = mock_http.route(host="api.dns.la")
    with pytest.raises(DnsProviderError) as exc_info:
        await _client(http_client, adapter_options).get_records("d1", RecordQueryParams(type="PTR"))
    assert exc_info.value.code == INVALID_TYPE
    assert not route.called


@pytest.mark.asyncio
async def test_disabled_record_status(mock_http, http_client, adapter_options):
    mock_http.get(f"{_BASE}/api/domain").mock(return_value=_domain())
    mock_http.get(f"{_BASE}/api/recordList").mock(
        return_value=_ok({"total": 1, "list": [
            {"id": "r", "host": "a", "type": 16, "data": "txt", "ttl": 600, "disable": True}
        ]})
    )
    record = (await _client(http_client, adapter_options).get_records("d1")).records[0]
    assert record.type == "TXT"
    assert record.status == "disabled"


@pytest.mark.asyncio
async def test_set_record_status(mock_http, http_client, adapter_options):
    route = mock_http.put(f"{_BASE}/api/recordDisable").mock(return_value=_ok(None))
    assert await _client(http_client, adapter_options).set_record_status("d1", "r", False) is True
    assert json.loads(route.calls.last.request.content) == {"id": "r", "disable": True}


@pytest.mark.asyncio
async def test_delete_record(mock_http, http_client, adapter_options):
    route = mock_http.delete(f"{_BASE}/api/record").mock(return_value=_ok(None))
    assert await _client(http_client, adapter_options).delete_record("d1", "r") is True
    assert route.calls.last.request.url.params["id"] == "r"


# ---------------------------------------------------------------------------
# Zones, lines and TTL
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_get_zone_error_code_propagates(mock_http, http_client, adapter_options):
    mock_http.get(f"{_BASE}/api/domain").mock(
        return_value=httpx.Response(200, json={"code": 404, "msg": "domain not exist", "data": None})
    )
    with pytest.raises(DnsProviderError) as exc_info:
        await _client(http_client, adapter_options).get_zone("nope")
    assert exc_info.value.code == "404"


@pytest.mark.asyncio
async def test_get_zone_empty_data_is_zone_not_found(mock_http, http_client, adapter_options):
    mock_http.get(f"{_BASE}/api/domain").mock(return_value=_ok(None))
    with pytest.raises(DnsProviderError) as exc_info:
        await _client(http_client, adapter_options).get_zone("nope")
    assert exc_info.value.code == ZONE_NOT_FOUND


@pytest.mark.asyncio
async def test_get_lines_falls_back_to_default(mock_http, http_client, adapter_options):
    mock_http.get(f"{_BASE}/api/availableLine").mock(
        return_value=httpx.Response(200, json={"code": 500, "msg": "internal", "data": None})
    )
    lines = (await _client(http_client, adapter_options).get_lines("d1")).lines
    assert [l.code for l in lines] == ["default"]


@pytest.mark.asyncio
async def test_min_ttl_from_measures_or_default(mock_http, http_client, adapter_options):
    route = mock_http.get(f"{_BASE}/api/dnsMeasures")
    route.side_effect = [_ok({"minTtl": 60}), _ok({})]
    client = _client(http_client, adapter_options)

    assert await client.get_min_ttl("d1") == 60
    assert await client.get_min_ttl("d1") == 600


# ---------------------------------------------------------------------------
# Malformed payloads
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_domain_list_data_that_is_not_an_object_is_invalid_response(
    mock_http, http_client, adapter_options
):
    mock_http.get(f"{_BASE}/api/domainList").mock(return_value=_ok(["unexpected"]))

    with pytest.raises(DnsProviderError) as exc_info:
        await _client(http_client, adapter_options).get_zones()

    assert exc_info.value.code == INVALID_RESPONSE


@pytest.mark.asyncio
async def test_null_record_entry_is_invalid_response(mock_http, http_client, adapter_options):
    mock_http.get(f"{_BASE}/api/domain").mock(return_value=_domain())
    mock_http.get(f"{_BASE}/api/recordList").mock(return_value=_ok({"total": 1, "list": [None]}))

    with pytest.raises(DnsProviderError) as exc_info:
        await _client(http_client, adapter_options).get_records("d1")

    assert exc_info.value.code == INVALID_RESPONSE
