"""
tests/unit/test_signing.py

Unit tests for the signing/ modules. Signing is pure: the timestamp and
nonce come in on the SigningRequest, so every assertion is deterministic.
"""

from __future__ import annotations

import base64

import pytest

from exceptions import MISSING_CREDENTIALS, DnsProviderError
from providers.models import ProviderCredentials, SigningRequest
from signing import acs3, tc3, volcengine
from signing.canonical import canonical_headers, canonical_query, percent_encode, sha256_hex
from signing.simple import sign_basic, sign_bearer

_TS = 1_700_000_000  # 2023-11-14T22:13:20Z


def _tc3_request(**overrides) -> SigningRequest:
    fields = dict(
        method="POST",
        host="dnspod.tencentcloudapi.com",
        timestamp=_TS,
        body='{"Offset":0,"Limit":20}',
        action="DescribeDomainList",
        version="2021-03-23",
        service="dnspod",
    )
    fields.update(overrides)
    return SigningRequest(**fields)


# ---------------------------------------------------------------------------
# canonical helpers
# ---------------------------------------------------------------------------


def test_canonical_query_sorts_and_encodes():
    """Keys are sorted and both sides are RFC 3986 encoded."""
    assert canonical_query({"b": "x y", "a": "1", "c": "~.-_"}) == "a=1&b=x%20y&c=~.-_"


def test_canonical_query_empty():
    assert canonical_query({}) == ""


def test_percent_encode_escapes_reserved_characters():
    assert percent_encode("a/b:c*") == "a%2Fb%3Ac%2A"


def test_canonical_headers_lowercases_and_terminates_every_line():
    block, signed = canonical_headers({"X-Date": " 20231114T221320Z ", "Host": "h"})
    assert block == "host:h\nx-date:20231114T221320Z\n"
    assert signed == "host;x-date"


def test_sha256_hex_of_empty_payload():
    assert sha256_hex("") == "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


# ---------------------------------------------------------------------------
# TC3 (DNSPod)
# ---------------------------------------------------------------------------


def test_tc3_sign_is_deterministic_and_scoped():
    """Same inputs give the same Authorization; scope carries date and service."""
    creds = ProviderCredentials("dnspod", {"secretId": "AKIDexample", "secretKey": "s3cr3t"})
    first = tc3.sign(creds, _tc3_request())
    second = tc3.sign(creds, _tc3_request())

    assert first == second
    auth = first["Authorization"]
    assert auth.startswith("TC3-HMAC-SHA256 Credential=AKIDexample/2023-11-14/dnspod/tc3_request, ")
    assert "SignedHeaders=content-type;host;x-tc-action;x-tc-content-sha256" in auth
    assert first["X-TC-Action"] == "DescribeDomainList"
    assert first["X-TC-Timestamp"] == str(_TS)
    assert first["X-TC-Version"] == "2021-03-23"
    assert first["X-TC-Content-SHA256"] == sha256_hex('{"Offset":0,"Limit":20}')
    assert "X-TC-Token" not in first


def test_tc3_signature_changes_with_body_and_secret():
    creds = ProviderCredentials("dnspod", {"secretId": "id", "secretKey": "k1"})
    other = ProviderCredentials("dnspod", {"secretId": "id", "secretKey": "k2"})
    base = tc3.sign(creds, _tc3_request())["Authorization"]

    assert tc3.sign(other, _tc3_request())["Authorization"] != base
    assert tc3.sign(creds, _tc3_request(body="{}"))["Authorization"] != base


def test_tc3_adds_token_header_for_temporary_credentials():
    creds = ProviderCredentials(
        "dnspod", {"secretId": "id", "secretKey": "k", "token": "sts-token"}
    )
    headers = tc3.sign(creds, _tc3_request(region="ap-guangzhou"))
    assert headers["X-TC-Token"] == "sts-token"
    assert headers["X-TC-Region"] == "ap-guangzhou"


def test_tc3_missing_secret_key_raises():
    creds = ProviderCredentials("dnspod", {"secretId": "id"})
    with pytest.raises(DnsProviderError) as exc_info:
        tc3.sign(creds, _tc3_request())
    assert exc_info.value.code == MISSING_CREDENTIALS
    assert exc_info.value.meta["missing"] == ["secretKey"]


# ---------------------------------------------------------------------------
# Volcengine (Huoshan)
# ---------------------------------------------------------------------------


def test_volcengine_sign_header_shape():
    creds = ProviderCredentials("huoshan", {"accessKeyId": "AKLT1", "secretAccessKey": "sk"})
    request = SigningRequest(
        method="GET",
        host="open.volcengineapi.com",
        timestamp=_TS,
        query={"Action": "ListZones", "Version": "2018-08-01"},
        action="ListZones",
        version="2018-08-01",
        service="DNS",
        region="cn-north-1",
    )
    headers = volcengine.sign(creds, request)

    assert headers["X-Date"] == "20231114T221320Z"
    assert headers["X-Content-Sha256"] == sha256_hex("")
    assert headers["Authorization"].startswith(
        "HMAC-SHA256 Credential=AKLT1/20231114/cn-north-1/DNS/request, "
    )
    assert "SignedHeaders=host;x-content-sha256;x-date" in headers["Authorization"]
    assert volcengine.sign(creds, request) == headers


def test_volcengine_signature_covers_query():
    creds = ProviderCredentials("huoshan", {"accessKeyId": "AKLT1", "secretAccessKey": "sk"})

    def auth(query):
        return volcengine.sign(
            creds,
            SigningRequest(
                method="GET", host="open.volcengineapi.com", timestamp=_TS, query=query,
                service="DNS", region="cn-north-1",
            ),
        )["Authorization"]

    assert auth({"Action": "ListZones"}) != auth({"Action": "ListRecords"})


# ---------------------------------------------------------------------------
# ACS3 (Aliyun)
# ---------------------------------------------------------------------------


def _acs3_request(nonce: str | None = "n-1") -> SigningRequest:
    return SigningRequest(
        method="POST",
        host="alidns.aliyuncs.com",
        timestamp=_TS,
        query={"PageNumber": "1", "PageSize": "20"},
        action="DescribeDomains",
        version="2015-01-09",
        nonce=nonce,
    )


def test_acs3_sign_header_shape():
    creds = ProviderCredentials("aliyun", {"accessKeyId": "LTAI1", "accessKeySecret": "sec"})
    headers = acs3.sign(creds, _acs3_request())

    assert headers["x-acs-action"] == "DescribeDomains"
    assert headers["x-acs-version"] == "2015-01-09"
    assert headers["x-acs-date"] == "2023-11-14T22:13:20Z"
    assert headers["x-acs-signature-nonce"] == "n-1"
    assert headers["Authorization"].startswith("ACS3-HMAC-SHA256 Credential=LTAI1,SignedHeaders=")
    assert acs3.sign(creds, _acs3_request()) == headers


def test_acs3_signature_depends_on_nonce():
    creds = ProviderCredentials("aliyun", {"accessKeyId": "LTAI1", "accessKeySecret": "sec"})
    assert (
        acs3.sign(creds, _acs3_request("n-1"))["Authorization"]
        != acs3.sign(creds, _acs3_request("n-2"))["Authorization"]
    )


def test_acs3_requires_nonce():
    creds = ProviderCredentials("aliyun", {"accessKeyId": "LTAI1", "accessKeySecret": "sec"})
    with pytest.raises(ValueError):
        acs3.sign(creds, _acs3_request(nonce=None))


# ---------------------------------------------------------------------------
# Basic / Bearer
# ---------------------------------------------------------------------------


def test_sign_basic_encodes_id_and_secret():
    creds = ProviderCredentials("dnsla", {"apiId": "id1", "apiSecret": "sec1"})
    headers = sign_basic(creds, SigningRequest(method="GET", host="api.dns.la", timestamp=_TS))
    expected = base64.b64encode(b"id1:sec1").decode("ascii")
    assert headers == {"Authorization": f"Basic {expected}"}


def test_sign_bearer_uses_api_token():
    creds = ProviderCredentials("cloudflare", {"apiToken": " tok "})
    headers = sign_bearer(creds, SigningRequest(method="GET", host="api.cloudflare.com", timestamp=_TS))
    assert headers == {"Authorization": "Bearer tok"}


def test_sign_bearer_missing_token_raises():
    with pytest.raises(DnsProviderError) as exc_info:
        sign_bearer(
            ProviderCredentials("cloudflare", {}),
            SigningRequest(method="GET", host="api.cloudflare.com", timestamp=_TS),
        )
    assert exc_info.value.code == MISSING_CREDENTIALS
