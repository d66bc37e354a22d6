"""
tests/unit/test_aliyun_client.py

Unit tests for providers/aliyun_client.py.
Every Alidns call is a POST to one host; the dispatcher routes by the
x-acs-action header and records the query parameters that were sent.
"""

from __future__ import annotations

import httpx
import pytest

from exceptions import (
    INVALID_RESPONSE,
    INVALID_ZONE_ID,
    NOT_FOUND,
    ZONE_NOT_FOUND,
    DnsProviderError,
    PartialMutationError,
)
from providers.aliyun_client import AliyunClient
from providers.models import CreateRecordParams, ProviderCredentials, RecordQueryParams, UpdateRecordParams
from signing.canonical import canonical_query

_URL = "https://alidns.aliyuncs.com/"
_CREDS = ProviderCredentials("aliyun", {"accessKeyId": "LTAItest", "accessKeySecret": "secret"})

_DOMAIN_INFO = {"RequestId": "r", "DomainName": "example.org", "DomainId": "dom-1", "MinTtl": 600,
                "VersionCode": "mianfei", "RecordCount": 5}


def _record(record_id="1001", rr="www", type_="A", value="1.2.3.4", **extra):
    body = {"RequestId": "r", "RecordId": record_id, "RR": rr, "Type": type_, "Value": value,
            "TTL": 600, "Line": "default", "Status": "ENABLE", "DomainName": "example.org"}
    body.update(extra)
    return body


def _err(code: str, status: int = 400) -> httpx.Response:
    return httpx.Response(status, json={"RequestId": "r", "Code": code, "Message": "failed"})


class _Alidns:
    def __init__(self, handlers: dict):
        self.handlers = {"DescribeDomainInfo": httpx.Response(200, json=_DOMAIN_INFO)}
        self.handlers.update(handlers)
        self.calls: list[tuple[str, dict]] = []

    def actions(self) -> list[str]:
        return [a for a, _ in self.calls]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        action = request.headers["x-acs-action"]
        self.calls.append((action, dict(request.url.params)))
        handler = self.handlers.get(action)
        if handler is None:
            return httpx.Response(200, json={"RequestId": "r"})
        return handler(request) if callable(handler) else handler


def _client(http_client, adapter_options) -> AliyunClient:
    return AliyunClient(_CREDS, http_client, **adapter_options)


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_query_string_is_exactly_the_signed_one(mock_http, http_client, adapter_options):
    fake = _Alidns(
        {"DescribeDomains": httpx.Response(200, json={"TotalCount": 1, "Domains": {"Domain": [_DOMAIN_INFO]}})}
    )
    route = mock_http.post(_URL).mock(side_effect=fake)

    result = await _client(http_client, adapter_options).get_zones(1, 20, "exam ple")

    request = route.calls.last.request
    assert request.url.query.decode() == canonical_query(
        {"PageNumber": "1", "PageSize": "20", "KeyWord": "exam ple"}
    )
    assert request.headers["x-acs-signature-nonce"] == "nonce-0001"
    assert request.headers["Authorization"].startswith("ACS3-HMAC-SHA256 Credential=LTAItest,")
    assert result.zones[0].id == "example.org"
    assert result.total == 1


# ---------------------------------------------------------------------------
# Zones
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_zone_id_must_be_a_domain(mock_http, http_client, adapter_options):
    route = mock_http.post(_URL)
    with pytest.raises(DnsProviderError) as exc_info:
        await _client(http_client, adapter_options).get_zone("12345")
    assert exc_info.value.code == INVALID_ZONE_ID
    assert not route.called


@pytest.mark.asyncio
async def test_unknown_domain_is_zone_not_found(mock_http, http_client, adapter_options):
    mock_http.post(_URL).mock(side_effect=_Alidns({"DescribeDomainInfo": _err("InvalidDomainName.NoExist")}))
    with pytest.raises(DnsProviderError) as exc_info:
        await _client(http_client, adapter_options).get_zone("nope.org")
    assert exc_info.value.code == ZONE_NOT_FOUND
    assert exc_info.value.cause.code == "InvalidDomainName.NoExist"


@pytest.mark.asyncio
async def test_min_ttl_from_domain_info(mock_http, http_client, adapter_options):
    info = dict(_DOMAIN_INFO, MinTtl=1)
    mock_http.post(_URL).mock(
        side_effect=_Alidns({"DescribeDomainInfo": httpx.Response(200, json=info)})
    )
    assert await _client(http_client, adapter_options).get_min_ttl("example.org") == 1


@pytest.mark.asyncio
async def test_min_ttl_defaults_to_600(mock_http, http_client, adapter_options):
    info = {k: v for k, v in _DOMAIN_INFO.items() if k != "MinTtl"}
    mock_http.post(_URL).mock(
        side_effect=_Alidns({"DescribeDomainInfo": httpx.Response(200, json=info)})
    )
    assert await _client(http_client, adapter_options).get_min_ttl("example.org") == 600


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_get_records_maps_status_and_filters(mock_http, http_client, adapter_options):
    fake = _Alidns(
        {
            "DescribeDomainRecords": httpx.Response(
                200,
                json={
                    "TotalCount": 1,
                    "DomainRecords": {"Record": [_record(Status="DISABLE", Remark="old", Weight=3)]},
                },
            )
        }
    )
    mock_http.post(_URL).mock(side_effect=fake)

    result = await _client(http_client, adapter_options).get_records(
        "example.org", RecordQueryParams(sub_domain="www.example.org", status="disabled", type="a")
    )

    _, params = fake.calls[-1]
    assert params["RRKeyWord"] == "www"
    assert params["Status"] == "Disable"
    assert params["Type"] == "A"
    record = result.records[0]
    assert record.status == "disabled"
    assert record.remark == "old"
    assert record.weight == 3
    assert record.name == "www.example.org"


@pytest.mark.asyncio
async def test_create_with_remark_and_weight_runs_follow_ups(mock_http, http_client, adapter_options):
    fake = _Alidns(
        {
            "AddDomainRecord": httpx.Response(200, json={"RecordId": "1001"}),
            "DescribeDomainRecordInfo": httpx.Response(200, json=_record(Remark="web", Weight=5)),
        }
    )
    mock_http.post(_URL).mock(side_effect=fake)

    record = await _client(http_client, adapter_options).create_record(
        "example.org",
        CreateRecordParams(name="www", type="A", value="1.2.3.4", remark="web", weight=5),
    )

    assert fake.actions() == [
        "DescribeDomainInfo",
        "AddDomainRecord",
        "UpdateDomainRecordRemark",
        "UpdateDNSSLBWeight",
        "DescribeDomainRecordInfo",
    ]
    add_params = fake.calls[1][1]
    assert add_params == {
        "DomainName": "example.org", "RR": "www", "Type": "A", "Value": "1.2.3.4", "TTL": "600",
    }
    assert record.remark == "web"
    assert record.weight == 5


@pytest.mark.asyncio
async def test_remark_failure_after_update_is_partial(mock_http, http_client, adapter_options):
    fake = _Alidns({"UpdateDomainRecordRemark": _err("Forbidden.RAM", 403)})
    mock_http.post(_URL).mock(side_effect=fake)

    with pytest.raises(PartialMutationError) as exc_info:
        await _client(http_client, adapter_options).update_record(
            "example.org", "1001",
            UpdateRecordParams(name="www", type="A", value="5.6.7.8", remark="x"),
        )

    assert exc_info.value.record_id == "1001"
    assert exc_info.value.step == "UpdateDomainRecordRemark"
    assert "DescribeDomainRecordInfo" not in fake.actions()


@pytest.mark.asyncio
async def test_missing_record_is_not_found(mock_http, http_client, adapter_options):
    mock_http.post(_URL).mock(
        side_effect=_Alidns({"DescribeDomainRecordInfo": _err("DomainRecordNotBelongToUser")})
    )
    with pytest.raises(DnsProviderError) as exc_info:
        await _client(http_client, adapter_options).get_record("example.org", "999")
    assert exc_info.value.code == NOT_FOUND


@pytest.mark.asyncio
async def test_set_record_status(mock_http, http_client, adapter_options):
    fake = _Alidns({})
    mock_http.post(_URL).mock(side_effect=fake)

    assert await _client(http_client, adapter_options).set_record_status("example.org", "1001", True)
    assert fake.calls[-1] == ("SetDomainRecordStatus", {"RecordId": "1001", "Status": "Enable"})


@pytest.mark.asyncio
async def test_throttling_is_retried(mock_http, http_client, adapter_options, no_sleep):
    replies = iter([_err("Throttling.User", 400), httpx.Response(200, json=_record())])
    fake = _Alidns({"DescribeDomainRecordInfo": lambda request: next(replies)})
    mock_http.post(_URL).mock(side_effect=fake)

    record = await _client(http_client, adapter_options).get_record("example.org", "1001")

    assert record.id == "1001"
    assert fake.actions().count("DescribeDomainRecordInfo") == 2
    assert no_sleep.await_count == 1


@pytest.mark.asyncio
async def test_get_lines(mock_http, http_client, adapter_options):
    mock_http.post(_URL).mock(
        side_effect=_Alidns(
            {
                "DescribeSupportLines": httpx.Response(
                    200,
                    json={"RecordLines": {"RecordLine": [
                        {"LineCode": "default", "LineDisplayName": "默认"},
                        {"LineCode": "telecom", "LineDisplayName": "电信"},
                    ]}},
                )
            }
        )
    )
    lines = (await _client(http_client, adapter_options).get_lines("example.org")).lines
    assert [l.code for l in lines] == ["default", "telecom"]


# ---------------------------------------------------------------------------
# Malformed payloads
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_domains_container_that_is_not_an_object_is_invalid_response(
    mock_http, http_client, adapter_options
):
    fake = _Alidns({"DescribeDomains": httpx.Response(200, json={"TotalCount": 1, "Domains": ["x"]})})
    mock_http.post(_URL).mock(side_effect=fake)

    with pytest.raises(DnsProviderError) as exc_info:
        await _client(http_client, adapter_options).get_zones()

    assert exc_info.value.code == INVALID_RESPONSE
    assert fake.actions() == ["DescribeDomains"]
