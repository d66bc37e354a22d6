"""
services/provider_service.py

Responsibility: Resolves stored credentials to live adapters (through the
AdapterCache) and exposes the adapter call surface keyed by credential id,
plus fan-out across every credential of one vendor.
Does NOT: sign requests, speak any vendor protocol, or persist credentials.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import httpx
import tldextract

from exceptions import INVALID_RESPONSE, ZONE_NOT_FOUND, CredentialNotFoundError, DnsProviderError
from providers.base import DNSProvider
from providers.models import (
    CreateRecordParams,
    DnsRecord,
    LineListResult,
    RecordListResult,
    RecordQueryParams,
    UpdateRecordParams,
    Zone,
    ZoneListResult,
)
from providers.registry import create_provider
from repositories.credential_repository import CredentialSource, StoredCredential
from services.adapter_cache import AdapterCache

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Offline extractor: uses the suffix list bundled with tldextract, never fetches one
_EXTRACT = tldextract.TLDExtract(suffix_list_urls=())


@dataclass
class FanOutOutcome(Generic[T]):
    """Result of one credential's call during a fan-out; exactly one of value/error is set."""

    credential_id: int
    credential_name: str
    value: T | None = None
    error: DnsProviderError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ProviderService:
    """
    Orchestrates DNS calls for stored credentials.

    Adapters are built on first use and kept in the AdapterCache until the
    TTL lapses or the credential changes.

    Collaborators:
        - CredentialSource: yields decrypted StoredCredential objects
        - httpx.AsyncClient: shared client handed to every adapter
        - AdapterCache: credential_id -> adapter
        - providers.registry.create_provider: builds adapters
    """

    def __init__(
        self,
        credentials: CredentialSource,
        http_client: httpx.AsyncClient,
        cache: AdapterCache,
        **adapter_options: Any,
    ) -> None:
        """
        Args:
            credentials: Source of stored credentials.
            http_client: Long-lived httpx.AsyncClient.
            cache: Adapter cache shared across requests.
            **adapter_options: Forwarded to every adapter (sleep, backoff, clock, nonce).
        """
        self._credentials = credentials
        self._http_client = http_client
        self._cache = cache
        self._adapter_options = adapter_options

    # ---------------------------------------------------------------------------
    # Adapter resolution
    # ---------------------------------------------------------------------------

    def resolve_adapter(self, credential_id: int) -> DNSProvider:
        """
        Returns the adapter for a stored credential, building it on a cache miss.

        Args:
            credential_id: Primary key of the stored credential.

        Returns:
            A ready DNSProvider.

        Raises:
            CredentialNotFoundError: If the id does not resolve.
            UnsupportedProviderError: If the stored vendor id is unknown.
            DnsProviderError: MISSING_CREDENTIALS if a required secret is absent.
        """
        adapter = self._cache.get(credential_id)
        if adapter is not None:
            return adapter

        stored = self._credentials.get(credential_id)
        if stored is None:
            raise CredentialNotFoundError(credential_id)
        return self._build(stored)

    def _build(self, stored: StoredCredential) -> DNSProvider:
        adapter = create_provider(
            stored.to_provider_credentials(), self._http_client, **self._adapter_options
        )
        self._cache.put(stored.id, adapter)
        logger.debug("Built %s adapter for credential %s.", stored.provider, stored.id)
        return adapter

    # ---------------------------------------------------------------------------
    # Cache invalidation hooks
    # ---------------------------------------------------------------------------

    def on_credential_updated(self, credential_id: int) -> None:
        self._cache.invalidate(credential_id)

    def on_credential_deleted(self, credential_id: int) -> None:
        self._cache.invalidate(credential_id)

    def clear(self) -> None:
        self._cache.clear()

    # ---------------------------------------------------------------------------
    # Per-credential call surface
    # ---------------------------------------------------------------------------

    async def check_auth(self, credential_id: int) -> bool:
        return await self.resolve_adapter(credential_id).check_auth()

    async def get_zones(
        self,
        credential_id: int,
        page: int = 1,
        page_size: int = 20,
        keyword: str | None = None,
    ) -> ZoneListResult:
        return await self.resolve_adapter(credential_id).get_zones(page, page_size, keyword)

    async def get_zone(self, credential_id: int, zone_id: str) -> Zone:
        return await self.resolve_adapter(credential_id).get_zone(zone_id)

    async def get_records(
        self,
        credential_id: int,
        zone_id: str,
        params: RecordQueryParams | None = None,
    ) -> RecordListResult:
        return await self.resolve_adapter(credential_id).get_records(zone_id, params)

    async def get_record(self, credential_id: int, zone_id: str, record_id: str) -> DnsRecord:
        return await self.resolve_adapter(credential_id).get_record(zone_id, record_id)

    async def create_record(
        self, credential_id: int, zone_id: str, params: CreateRecordParams
    ) -> DnsRecord:
        return await self.resolve_adapter(credential_id).create_record(zone_id, params)

    async def update_record(
        self,
        credential_id: int,
        zone_id: str,
        record_id: str,
        params: UpdateRecordParams,
    ) -> DnsRecord:
        return await self.resolve_adapter(credential_id).update_record(zone_id, record_id, params)

    async def delete_record(self, credential_id: int, zone_id: str, record_id: str) -> bool:
        return await self.resolve_adapter(credential_id).delete_record(zone_id, record_id)

    async def set_record_status(
        self, credential_id: int, zone_id: str, record_id: str, enabled: bool
    ) -> bool:
        return await self.resolve_adapter(credential_id).set_record_status(
            zone_id, record_id, enabled
        )

    async def get_lines(self, credential_id: int, zone_id: str | None = None) -> LineListResult:
        return await self.resolve_adapter(credential_id).get_lines(zone_id)

    async def get_min_ttl(self, credential_id: int, zone_id: str | None = None) -> int:
        return await self.resolve_adapter(credential_id).get_min_ttl(zone_id)

    async def add_zone(self, credential_id: int, domain: str) -> Zone:
        return await self.resolve_adapter(credential_id).add_zone(domain)

    async def find_zone_for_hostname(self, credential_id: int, hostname: str) -> Zone:
        """
        Finds the zone a hostname belongs to under one credential.

        The registrable domain is computed with tldextract's bundled suffix
        list, so "www.example.co.uk" looks for "example.co.uk".

        Args:
            credential_id: Primary key of the stored credential.
            hostname: Any host name, with or without a trailing dot.

        Returns:
            The matching Zone.

        Raises:
            DnsProviderError: ZONE_NOT_FOUND if the account has no such zone.
        """
        adapter = self.resolve_adapter(credential_id)
        fqdn = hostname.strip().rstrip(".").lower()
        registrable = _EXTRACT(fqdn).registered_domain or fqdn

        result = await adapter.get_zones(1, 100, registrable)
        for zone in result.zones:
            if zone.name == registrable:
                return zone
        raise DnsProviderError(
            ZONE_NOT_FOUND,
            f"No zone for {hostname} (looked for {registrable})",
            http_status=404,
            meta={"provider": adapter.capabilities.provider, "hostname": hostname},
        )

    # ---------------------------------------------------------------------------
    # Fan-out across every credential of one vendor
    # ---------------------------------------------------------------------------

    async def fan_out(
        self,
        provider: str,
        call: Callable[[DNSProvider], Awaitable[T]],
    ) -> list[FanOutOutcome[T]]:
        """
        Runs the same call against every stored credential of one vendor.

        Calls run concurrently and all of them settle; one failing credential
        never hides the others' results. Exceptions other than
        DnsProviderError are recorded as INVALID_RESPONSE with the original
        exception as cause.

        Args:
            provider: Vendor id.
            call: Receives an adapter and returns the awaitable to run.

        Returns:
            One FanOutOutcome per credential, in credential order.
        """
        stored = self._credentials.list_for_provider(provider)

        async def run(credential: StoredCredential) -> T:
            adapter = self._cache.get(credential.id) or self._build(credential)
            return await call(adapter)

        results = await asyncio.gather(
            *(run(credential) for credential in stored), return_exceptions=True
        )

        outcomes: list[FanOutOutcome[T]] = []
        for credential, result in zip(stored, results):
            if isinstance(result, Exception) and not isinstance(result, DnsProviderError):
                result = DnsProviderError(
                    INVALID_RESPONSE,
                    f"Unexpected failure: {result.__class__.__name__}: {result}",
                    meta={"provider": provider},
                    cause=result,
                )
            if isinstance(result, DnsProviderError):
                logger.warning(
                    "Fan-out call failed for %s credential %s (%s): %s",
                    provider, credential.id, credential.name, result.code,
                )
                outcomes.append(
                    FanOutOutcome(credential.id, credential.name, error=result)
                )
            elif isinstance(result, BaseException):
                # Cancellation and interpreter exits still propagate
                raise result
            else:
                outcomes.append(FanOutOutcome(credential.id, credential.name, value=result))
        return outcomes

    async def get_zones_for_all(
        self,
        provider: str,
        page: int = 1,
        page_size: int = 20,
        keyword: str | None = None,
    ) -> tuple[list[Zone], list[FanOutOutcome[ZoneListResult]]]:
        """
        Lists zones across every credential of one vendor.

        Returns:
            (merged zones, each tagged with meta credentialId/credentialName;
            the failed outcomes).
        """
        outcomes = await self.fan_out(
            provider, lambda adapter: adapter.get_zones(page, page_size, keyword)
        )
        zones: list[Zone] = []
        failures: list[FanOutOutcome[ZoneListResult]] = []
        for outcome in outcomes:
            if not outcome.ok or outcome.value is None:
                failures.append(outcome)
                continue
            for zone in outcome.value.zones:
                zone.meta["credentialId"] = outcome.credential_id
                zone.meta["credentialName"] = outcome.credential_name
                zones.append(zone)
        return zones, failures
