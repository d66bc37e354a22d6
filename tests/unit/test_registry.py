"""
tests/unit/test_registry.py

Unit tests for providers/registry.py and the capability descriptors.
"""

from __future__ import annotations

import httpx
import pytest

from exceptions import UNSUPPORTED_PROVIDER, UnsupportedProviderError
from providers.aliyun_client import AliyunClient
from providers.base import DNSProvider
from providers.cloudflare_client import CloudflareClient
from providers.dnsla_client import DnslaClient
from providers.dnspod_client import DnspodClient
from providers.huoshan_client import HuoshanClient
from providers.models import ProviderCredentials
from providers.registry import (
    create_provider,
    get_all_capabilities,
    get_capabilities,
    is_supported,
    supported_providers,
)


def test_all_five_vendors_registered():
    assert set(supported_providers()) == {"cloudflare", "dnspod", "huoshan", "dnsla", "aliyun"}
    assert is_supported("dnspod")
    assert not is_supported("route53")


def test_unknown_vendor_raises_unsupported_provider():
    with pytest.raises(UnsupportedProviderError) as exc_info:
        get_capabilities("route53")
    assert exc_info.value.code == UNSUPPORTED_PROVIDER
    assert exc_info.value.http_status == 400


@pytest.mark.parametrize(
    "credentials, adapter_cls",
    [
        (ProviderCredentials("cloudflare", {"apiToken": "t"}), CloudflareClient),
        (ProviderCredentials("dnspod", {"secretId": "i", "secretKey": "k"}), DnspodClient),
        (ProviderCredentials("huoshan", {"accessKeyId": "i", "secretAccessKey": "k"}), HuoshanClient),
        (ProviderCredentials("dnsla", {"apiId": "i", "apiSecret": "k"}), DnslaClient),
        (ProviderCredentials("aliyun", {"accessKeyId": "i", "accessKeySecret": "k"}), AliyunClient),
    ],
)
def test_create_provider_builds_matching_adapter(credentials, adapter_cls):
    adapter = create_provider(credentials, httpx.AsyncClient())
    assert isinstance(adapter, adapter_cls)
    assert isinstance(adapter, DNSProvider)
    assert adapter.capabilities.provider == credentials.provider


def test_create_provider_unknown_vendor():
    with pytest.raises(UnsupportedProviderError):
        create_provider(ProviderCredentials("route53", {}), httpx.AsyncClient())


def test_capability_descriptors_match_vendor_facts():
    caps = {c.provider: c for c in get_all_capabilities()}

    assert caps["dnspod"].remark_mode == "separate"
    assert caps["aliyun"].remark_mode == "separate"
    assert caps["huoshan"].remark_mode == "inline"
    assert caps["cloudflare"].remark_mode == "inline"
    assert caps["dnsla"].remark_mode == "unsupported"
    assert not caps["cloudflare"].supports_status
    assert not caps["aliyun"].requires_domain_id
    assert caps["dnsla"].supports_type("redirect_url")
    assert not caps["huoshan"].supports_type("PTR")
    assert caps["dnspod"].required_secrets() == ("secretId", "secretKey")
    assert all(c.max_retries == 3 for c in caps.values())


def test_to_dict_is_camel_case():
    data = get_capabilities("cloudflare").to_dict()
    assert data["provider"] == "cloudflare"
    assert data["supportsStatus"] is False
    assert data["retryableErrors"] == ["RATE_LIMITED", "SERVER_ERROR"]
    assert data["authFields"][0] == {
        "name": "apiToken",
        "label": "API Token",
        "type": "password",
        "required": True,
        "placeholder": "Cloudflare API Token",
    }


def test_credentials_repr_hides_secrets():
    creds = ProviderCredentials("dnspod", {"secretId": "AKIDvisible", "secretKey": "topsecret"})
    text = repr(creds)
    assert "topsecret" not in text
    assert "AKIDvisible" not in text
    assert "secretKey" in text
