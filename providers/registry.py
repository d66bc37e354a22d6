"""
providers/registry.py

Responsibility: Maps a vendor id to its capability descriptor and adapter
class. The single place a new vendor is plugged in.
Does NOT: make network calls, cache adapters, or resolve stored credentials.
"""

from __future__ import annotations

from typing import Any

import httpx

from exceptions import UnsupportedProviderError
from providers.aliyun_client import AliyunClient
from providers.base import BaseProvider, DNSProvider
from providers.cloudflare_client import CloudflareClient
from providers.dnsla_client import DnslaClient
from providers.dnspod_client import DnspodClient
from providers.huoshan_client import HuoshanClient
from providers.models import ProviderCapabilities, ProviderCredentials

_ADAPTERS: dict[str, type[BaseProvider]] = {}


def register_provider(adapter_cls: type[BaseProvider]) -> type[BaseProvider]:
    """
    Adds an adapter class under its capabilities' vendor id.

    Usable as a class decorator. Re-registering a vendor id replaces the
    previous adapter.

    Args:
        adapter_cls: A BaseProvider subclass with ``capabilities`` set.

    Returns:
        The class unchanged.
    """
    _ADAPTERS[adapter_cls.capabilities.provider] = adapter_cls
    return adapter_cls


for _adapter in (CloudflareClient, DnspodClient, HuoshanClient, DnslaClient, AliyunClient):
    register_provider(_adapter)


def is_supported(provider: str) -> bool:
    return provider in _ADAPTERS


def supported_providers() -> list[str]:
    return list(_ADAPTERS)


def get_capabilities(provider: str) -> ProviderCapabilities:
    """
    Returns the capability descriptor for a vendor.

    Raises:
        UnsupportedProviderError: For an unknown vendor id.
    """
    try:
        return _ADAPTERS[provider].capabilities
    except KeyError:
        raise UnsupportedProviderError(provider) from None


def get_all_capabilities() -> list[ProviderCapabilities]:
    return [cls.capabilities for cls in _ADAPTERS.values()]


def create_provider(
    credentials: ProviderCredentials,
    http_client: httpx.AsyncClient,
    **options: Any,
) -> DNSProvider:
    """
    Builds an adapter for the vendor named in the credentials.

    Args:
        credentials: Decrypted credentials; ``provider`` selects the adapter.
        http_client: Shared httpx.AsyncClient passed to the adapter.
        **options: Forwarded to the adapter (clock, nonce, sleep, backoff).

    Returns:
        A ready adapter. No network call has been made.

    Raises:
        UnsupportedProviderError: For an unknown vendor id.
        DnsProviderError: MISSING_CREDENTIALS if a required secret is absent.
    """
    try:
        adapter_cls = _ADAPTERS[credentials.provider]
    except KeyError:
        raise UnsupportedProviderError(credentials.provider) from None
    return adapter_cls(credentials, http_client, **options)
