"""
providers/base.py

Responsibility: Defines the DNSProvider Protocol every vendor adapter
satisfies, and BaseProvider, the shared behaviour adapters inherit:
credential validation, error construction, retry, payload normalisation,
bounded page scans and the single HTTP send path.
Does NOT: know any vendor's endpoints, field names or signing scheme.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, ClassVar, Protocol, TypeVar, runtime_checkable

import httpx

from exceptions import (
    INVALID_RESPONSE,
    INVALID_TYPE,
    MISSING_CREDENTIALS,
    NETWORK_ERROR,
    UNSUPPORTED_OPERATION,
    DnsProviderError,
)
from providers.models import (
    DEFAULT_LINE,
    STATUS_DISABLED,
    STATUS_ENABLED,
    CreateRecordParams,
    DnsLine,
    DnsRecord,
    LineListResult,
    ProviderCapabilities,
    ProviderCredentials,
    RecordListResult,
    RecordQueryParams,
    SigningRequest,
    UpdateRecordParams,
    Zone,
    ZoneListResult,
)
from providers.naming import normalized_fqdn
from providers.retry import Sleep, exponential_backoff, with_retry

logger = logging.getLogger(__name__)

T = TypeVar("T")

Signer = Callable[[ProviderCredentials, SigningRequest], dict]

# Page size and page cap for exhaustive "find by id" scans
SCAN_PAGE_SIZE = 100
SCAN_MAX_PAGES = 50


# ---------------------------------------------------------------------------
# Abstract interface: all DNS vendor adapters must implement this contract
# ---------------------------------------------------------------------------


@runtime_checkable
class DNSProvider(Protocol):
    """
    Uniform call surface over one vendor account.

    ProviderService depends on this abstraction, never on a concrete
    adapter. Adding a vendor means implementing this protocol and
    registering it; nothing else changes.
    """

    capabilities: ProviderCapabilities

    async def check_auth(self) -> bool:
        """
        Checks the credentials with the cheapest authenticated call.

        Returns:
            True if the credentials work, False on any error.
        """
        ...

    async def get_zones(
        self, page: int = 1, page_size: int = 20, keyword: str | None = None
    ) -> ZoneListResult:
        """
        Lists one page of zones.

        Args:
            page: 1-based page number.
            page_size: Zones per page.
            keyword: Optional name filter, ignored where unsupported.

        Returns:
            A ZoneListResult; ``total`` is the vendor-reported total.

        Raises:
            DnsProviderError: If the API call fails.
        """
        ...

    async def get_zone(self, zone_id: str) -> Zone:
        """
        Fetches one zone by its vendor id.

        Raises:
            DnsProviderError: ZONE_NOT_FOUND, INVALID_ZONE_ID, or an API failure.
        """
        ...

    async def get_records(
        self, zone_id: str, params: RecordQueryParams | None = None
    ) -> RecordListResult:
        """
        Lists records in a zone, applying whichever filters the vendor supports.

        Raises:
            DnsProviderError: If the zone is unknown or the API call fails.
        """
        ...

    async def get_record(self, zone_id: str, record_id: str) -> DnsRecord:
        """
        Fetches one record.

        Raises:
            DnsProviderError: NOT_FOUND, INVALID_RECORD_ID, or an API failure.
        """
        ...

    async def create_record(self, zone_id: str, params: CreateRecordParams) -> DnsRecord:
        """
        Creates a record and returns it as stored by the vendor.

        Raises:
            DnsProviderError: INVALID_TYPE before any call for unsupported types.
            PartialMutationError: If a follow-up call of a split create failed.
        """
        ...

    async def update_record(
        self, zone_id: str, record_id: str, params: UpdateRecordParams
    ) -> DnsRecord:
        """
        Replaces a record's fields and returns it as stored by the vendor.

        Raises:
            DnsProviderError: INVALID_TYPE before any call for unsupported types.
            PartialMutationError: If a follow-up call of a split update failed.
        """
        ...

    async def delete_record(self, zone_id: str, record_id: str) -> bool:
        """Deletes a record. Returns True once the vendor confirmed it."""
        ...

    async def set_record_status(self, zone_id: str, record_id: str, enabled: bool) -> bool:
        """
        Enables or disables a record without deleting it.

        Raises:
            DnsProviderError: UNSUPPORTED_OPERATION where the vendor has no status.
        """
        ...

    async def get_lines(self, zone_id: str | None = None) -> LineListResult:
        """Lists routing lines; vendors without line support return [default]."""
        ...

    async def get_min_ttl(self, zone_id: str | None = None) -> int:
        """Returns the lowest TTL the zone's plan allows."""
        ...

    async def add_zone(self, domain: str) -> Zone:
        """Registers a new zone with the vendor."""
        ...


# ---------------------------------------------------------------------------
# Loose-payload coercion
# ---------------------------------------------------------------------------


def opt_int(value: Any) -> int | None:
    """Coerces vendor numbers (int, numeric string) to int; anything else to None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def opt_str(value: Any) -> str | None:
    """Vendor empty strings become None so callers see one 'absent' value."""
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None


# ---------------------------------------------------------------------------
# Shared adapter behaviour
# ---------------------------------------------------------------------------


class BaseProvider:
    """
    Shared behaviour for vendor adapters.

    Subclasses set ``capabilities`` and ``signer`` as class attributes and
    implement the DNSProvider operations. All outbound HTTP goes through the
    injected httpx.AsyncClient, so adapters are testable with respx.

    Collaborators:
        - httpx.AsyncClient: injected; its lifetime is owned by the caller
        - providers.retry.with_retry: the only retry loop
        - signer: one of the signing.* functions
    """

    capabilities: ClassVar[ProviderCapabilities]
    signer: ClassVar[Signer]

    def __init__(
        self,
        credentials: ProviderCredentials,
        http_client: httpx.AsyncClient,
        *,
        clock: Callable[[], float] = time.time,
        nonce: Callable[[], str] | None = None,
        sleep: Sleep = asyncio.sleep,
        backoff: Callable[[int], float] | None = None,
    ) -> None:
        """
        Validates credentials and stores collaborators. Makes no network call.

        Args:
            credentials: Decrypted credentials for this vendor account.
            http_client: A long-lived httpx.AsyncClient instance.
            clock: Returns unix seconds; used for signing timestamps.
            nonce: Returns a fresh unique string per call (Aliyun signing).
            sleep: Awaitable sleep used between retries.
            backoff: Retry delay schedule; defaults to exponential_backoff().

        Raises:
            DnsProviderError: MISSING_CREDENTIALS if a required secret is absent.
        """
        missing = [k for k in self.capabilities.required_secrets() if not credentials.get(k)]
        if missing:
            raise self.create_error(
                MISSING_CREDENTIALS,
                f"Missing {self.capabilities.name} credential fields: {', '.join(missing)}",
                http_status=400,
                meta={"missing": missing},
            )
        self._credentials = credentials
        self._client = http_client
        self._clock = clock
        self._nonce = nonce or (lambda: uuid.uuid4().hex)
        self._sleep = sleep
        self._backoff = backoff or exponential_backoff()

    @property
    def provider(self) -> str:
        return self.capabilities.provider

    @property
    def account_id(self) -> str | None:
        return self._credentials.account_id

    # ---------------------------------------------------------------------------
    # Errors and retry
    # ---------------------------------------------------------------------------

    def create_error(
        self,
        code: str,
        message: str,
        *,
        http_status: int | None = None,
        meta: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> DnsProviderError:
        """
        Builds the adapter error, tagged with this vendor's id.

        Returns:
            A DnsProviderError ready to raise.
        """
        merged = {"provider": self.capabilities.provider}
        merged.update(meta or {})
        return DnsProviderError(
            code, message, http_status=http_status, meta=merged, cause=cause
        )

    def is_retryable(self, exc: DnsProviderError) -> bool:
        # Transport failures are transient for every vendor
        return exc.code == NETWORK_ERROR or exc.code in self.capabilities.retryable_errors

    async def with_retry(self, operation: Callable[[], Awaitable[T]], label: str) -> T:
        """
        Runs one wire call under this vendor's retry policy.

        Args:
            operation: Zero-argument coroutine factory for one attempt.
            label: Action or path, used in retry log lines.

        Returns:
            The operation's result.

        Raises:
            DnsProviderError: The first non-retryable error or the last retryable one.
        """
        return await with_retry(
            operation,
            attempts=self.capabilities.max_retries,
            should_retry=self.is_retryable,
            backoff=self._backoff,
            sleep=self._sleep,
            label=f"{self.capabilities.provider} {label}",
        )

    def unsupported(self, operation: str) -> DnsProviderError:
        return self.create_error(
            UNSUPPORTED_OPERATION,
            f"{self.capabilities.name} does not support {operation}",
            http_status=400,
        )

    # ---------------------------------------------------------------------------
    # Input validation
    # ---------------------------------------------------------------------------

    def require_type(self, record_type: str | None) -> str:
        """
        Canonicalises a record type and rejects types this vendor cannot store.

        Args:
            record_type: Caller-supplied type, any case.

        Returns:
            The upper-cased canonical type.

        Raises:
            DnsProviderError: INVALID_TYPE (before any network call).
        """
        canonical = (record_type or "").strip().upper()
        if not canonical or not self.capabilities.supports_type(canonical):
            raise self.create_error(
                INVALID_TYPE,
                f"Record type {record_type!r} is not supported by {self.capabilities.name}",
                http_status=400,
            )
        return canonical

    def require_numeric_id(self, value: str, code: str, label: str) -> int:
        """
        Parses a vendor id that must be an integer.

        Raises:
            DnsProviderError: ``code`` (INVALID_ZONE_ID / INVALID_RECORD_ID) with 400.
        """
        text = str(value).strip()
        if not text.isdigit():
            raise self.create_error(code, f"{label} must be numeric: {value!r}", http_status=400)
        return int(text)

    # ---------------------------------------------------------------------------
    # Normalisation
    # ---------------------------------------------------------------------------

    def normalize_zone(
        self,
        *,
        id: Any,
        name: Any,
        status: Any = None,
        record_count: Any = None,
        updated_at: Any = None,
        meta: dict[str, Any] | None = None,
    ) -> Zone:
        """Maps loosely-typed vendor zone fields into a Zone."""
        return Zone(
            id=str(id),
            name=str(name or "").strip().rstrip(".").lower(),
            status=opt_str(status) or "active",
            record_count=opt_int(record_count),
            updated_at=opt_str(updated_at),
            meta=meta or {},
        )

    def normalize_record(
        self,
        *,
        id: Any,
        zone: Zone,
        name: Any,
        type: Any,
        value: Any,
        ttl: Any,
        line: Any = None,
        weight: Any = None,
        priority: Any = None,
        enabled: bool = True,
        remark: Any = None,
        updated_at: Any = None,
        meta: dict[str, Any] | None = None,
    ) -> DnsRecord:
        """
        Maps loosely-typed vendor record fields into a DnsRecord.

        Fields the vendor does not support are dropped according to the
        capability descriptor, so a vendor's placeholder values never leak
        out as if they were real settings.

        Args:
            id: Vendor record id.
            zone: The owning zone (supplies zone_id and the apex).
            name: Fully-qualified or relative name; normalised against the apex.
            type: Canonical type, or the raw vendor code if untranslatable.
            value: Record content.
            ttl: TTL in seconds (number or numeric string).
            enabled: Whether the record is active.

        Returns:
            A DnsRecord in canonical form.
        """
        caps = self.capabilities
        return DnsRecord(
            id=str(id),
            zone_id=zone.id,
            zone_name=zone.name,
            name=normalized_fqdn(str(name or ""), zone.name),
            type=str(type).upper(),
            value=str(value if value is not None else ""),
            ttl=opt_int(ttl) or 0,
            line=(opt_str(line) or DEFAULT_LINE) if caps.supports_line else None,
            weight=opt_int(weight) if caps.supports_weight else None,
            priority=opt_int(priority),
            status=STATUS_ENABLED if enabled else STATUS_DISABLED,
            remark=opt_str(remark) if caps.supports_remark else None,
            updated_at=opt_str(updated_at),
            meta=meta or {},
        )

    def parse_item(self, raw: Any, parser: Callable[[dict[str, Any]], T], what: str) -> T:
        """
        Runs ``parser`` over one vendor object.

        Args:
            raw: The decoded JSON value the vendor sent.
            parser: Maps a vendor dict into a model object.
            what: Noun used in the error message, e.g. "zone".

        Raises:
            DnsProviderError: INVALID_RESPONSE if ``raw`` is not an object or
                lacks a field the parser needs.
        """
        if not isinstance(raw, dict):
            raise self.create_error(
                INVALID_RESPONSE,
                f"{self.capabilities.name} {what} entry is not an object",
                meta={"raw": repr(raw)[:200]},
            )
        try:
            return parser(raw)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise self.create_error(
                INVALID_RESPONSE,
                f"{self.capabilities.name} {what} entry is malformed: {exc}",
                meta={"raw": repr(raw)[:200]},
                cause=exc,
            ) from exc

    def parse_items(self, items: Any, parser: Callable[[dict[str, Any]], T], what: str) -> list[T]:
        """
        Runs ``parser`` over every entry of a vendor list; a missing list is empty.

        Raises:
            DnsProviderError: INVALID_RESPONSE if ``items`` is not a list or an
                entry is not a well-formed object.
        """
        if not items:
            return []
        if not isinstance(items, list):
            raise self.create_error(
                INVALID_RESPONSE,
                f"{self.capabilities.name} {what} list is not an array",
                meta={"raw": repr(items)[:200]},
            )
        return [self.parse_item(item, parser, what) for item in items]

    def dig(self, body: Any, *path: str) -> Any:
        """
        Walks nested vendor objects, e.g. ``dig(body, "Domains", "Domain")``.

        Returns:
            The value at the end of the path, or None if a key is absent.

        Raises:
            DnsProviderError: INVALID_RESPONSE if an intermediate value is not an object.
        """
        node = body
        for key in path:
            if node is None:
                return None
            if not isinstance(node, dict):
                raise self.create_error(
                    INVALID_RESPONSE,
                    f"{self.capabilities.name} reply has no object at {key!r}",
                    meta={"raw": repr(node)[:200]},
                )
            node = node.get(key)
        return node

    # ---------------------------------------------------------------------------
    # Paging helpers
    # ---------------------------------------------------------------------------

    async def scan_pages(
        self,
        fetch_page: Callable[[int], Awaitable[tuple[int, list[T]]]],
        match: Callable[[T], bool],
        *,
        max_pages: int = SCAN_MAX_PAGES,
    ) -> T | None:
        """
        Walks server pages until an item matches, the vendor total is reached,
        or ``max_pages`` pages have been read.

        Args:
            fetch_page: Returns (vendor total, items) for a 1-based page.
            match: Predicate selecting the wanted item.
            max_pages: Upper bound on pages read, whatever the vendor reports.

        Returns:
            The first matching item, or None.
        """
        scanned = 0
        for page in range(1, max_pages + 1):
            total, items = await fetch_page(page)
            for item in items:
                if match(item):
                    return item
            scanned += len(items)
            if not items or scanned >= total:
                return None
        logger.warning(
            "%s scan stopped after %d pages without reaching the reported total.",
            self.capabilities.provider,
            max_pages,
        )
        return None

    # ---------------------------------------------------------------------------
    # Transport
    # ---------------------------------------------------------------------------

    def timestamp(self) -> int:
        return int(self._clock())

    def sign(self, request: SigningRequest) -> dict[str, str]:
        return type(self).signer(self._credentials, request)

    async def send(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str],
        params: dict[str, str] | None = None,
        content: str | None = None,
    ) -> tuple[int, Any]:
        """
        Performs one HTTP round-trip and decodes the JSON body.

        Args:
            method: HTTP verb.
            url: Absolute URL.
            headers: Signed headers.
            params: Query parameters, sent exactly as signed.
            content: Raw request body, sent exactly as signed.

        Returns:
            (HTTP status, decoded JSON body). The body is None for a
            non-JSON reply with an error status.

        Raises:
            DnsProviderError: NETWORK_ERROR on transport failure,
                INVALID_RESPONSE on a non-JSON success body.
        """
        logger.debug("%s %s %s", self.capabilities.provider, method, url)
        try:
            response = await self._client.request(
                method,
                url,
                headers=headers,
                params=params,
                content=content.encode("utf-8") if content else None,
            )
        except httpx.RequestError as exc:
            raise self.create_error(
                NETWORK_ERROR,
                f"Network error calling {self.capabilities.name} ({method} {url}): {exc}",
                cause=exc,
            ) from exc

        if not response.content:
            return response.status_code, {}
        try:
            body = response.json()
        except ValueError as exc:
            if response.status_code >= 400:
                # Gateway error pages are HTML; the adapter maps the status itself
                logger.debug(
                    "%s non-JSON error body (HTTP %s)", self.capabilities.provider, response.status_code
                )
                return response.status_code, None
            raise self.create_error(
                INVALID_RESPONSE,
                f"{self.capabilities.name} returned a non-JSON response (HTTP {response.status_code})",
                http_status=response.status_code,
                meta={"raw": response.text[:500]},
                cause=exc,
            ) from exc
        return response.status_code, body

    # ---------------------------------------------------------------------------
    # Defaults shared by every vendor
    # ---------------------------------------------------------------------------

    async def check_auth(self) -> bool:
        """
        Checks the credentials by listing a single zone.

        Returns:
            True if the call succeeded, False on any adapter error.
        """
        try:
            await self.get_zones(1, 1)
        except DnsProviderError as exc:
            logger.info(
                "%s credential check failed: %s", self.capabilities.provider, exc.code
            )
            return False
        return True

    async def get_zones(
        self, page: int = 1, page_size: int = 20, keyword: str | None = None
    ) -> ZoneListResult:
        raise NotImplementedError

    @staticmethod
    def default_lines() -> list[DnsLine]:
        return [DnsLine(DEFAULT_LINE, "默认")]

    @staticmethod
    def page_window(page: int | None, page_size: int | None, default_size: int = 20) -> tuple[int, int]:
        """Clamps caller paging input to (page >= 1, size >= 1)."""
        return max(1, page or 1), max(1, page_size or default_size)

    @staticmethod
    def compact(params: dict[str, Any]) -> dict[str, Any]:
        """Drops None values so absent optional fields are never sent."""
        return {k: v for k, v in params.items() if v is not None}

    @staticmethod
    def stringify(params: Iterable[tuple[str, Any]]) -> dict[str, str]:
        """Query parameters as strings, booleans as lower-case literals."""
        out: dict[str, str] = {}
        for key, value in params:
            if value is None:
                continue
            out[key] = str(value).lower() if isinstance(value, bool) else str(value)
        return out
