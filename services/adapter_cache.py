"""
services/adapter_cache.py

Responsibility: Holds short-lived credential_id -> adapter instances so
repeated calls with the same credential reuse one adapter.
Does NOT: build adapters, load credentials, or talk to any vendor.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from providers.base import DNSProvider

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    adapter: DNSProvider
    expires_at: float


class AdapterCache:
    """
    TTL cache of live adapters keyed by credential id.

    Concurrent misses for the same key may both build an adapter; the last
    put wins. Adapter construction has no side effects, so that is harmless.

    Collaborators:
        - clock: injectable monotonic time source, so tests control expiry
    """

    def __init__(self, ttl: float = 300.0, clock: Callable[[], float] = time.monotonic) -> None:
        """
        Args:
            ttl: Seconds an entry stays valid after it was stored.
            clock: Returns the current time in seconds.
        """
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[int, _Entry] = {}

    def get(self, credential_id: int) -> DNSProvider | None:
        """Returns the cached adapter, or None if absent or expired."""
        entry = self._entries.get(credential_id)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            del self._entries[credential_id]
            return None
        return entry.adapter

    def put(self, credential_id: int, adapter: DNSProvider) -> None:
        self._entries[credential_id] = _Entry(adapter, self._clock() + self._ttl)

    def invalidate(self, credential_id: int) -> None:
        if self._entries.pop(credential_id, None) is not None:
            logger.debug("Adapter cache entry %s invalidated.", credential_id)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, credential_id: object) -> bool:
        return isinstance(credential_id, int) and self.get(credential_id) is not None
