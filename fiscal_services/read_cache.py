"""
fiscal_services.read_cache -- In-memory cache for derived ledger views.

Responsibility:
    Memoizes ledger, trial-balance and journal-listing results keyed by
    ``(organization_id, view, parameters)`` with a TTL driven by the injected
    Clock.  Implements the kernel's ReadViewCache protocol.

Architecture position:
    Services layer.  One instance is shared by the JournalStore,
    AccountRegistry and LedgerQueryService of a request scope; there is no
    module-level store.

Invariants:
    - Every journal or account mutation of an organization invalidates all
      of that organization's entries.
    - Expired entries are never returned.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from fiscal_kernel.domain.clock import Clock, SystemClock
from fiscal_kernel.logging_config import get_logger

logger = get_logger("services.read_cache")

DEFAULT_TTL_SECONDS = 300


@dataclass(frozen=True)
class _CacheEntry:
    value: Any
    expires_at: datetime


class LedgerViewCache:
    """TTL cache of immutable read views, partitioned by organization."""

    def __init__(self, clock: Clock | None = None, ttl_seconds: int = DEFAULT_TTL_SECONDS):
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        self._clock = clock or SystemClock()
        self._ttl = timedelta(seconds=ttl_seconds)
        self._store: dict[UUID, dict[tuple[str, tuple], _CacheEntry]] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, organization_id: UUID, view: str, params: tuple) -> Any | None:
        key = (view, params)
        with self._lock:
            entry = self._store.get(organization_id, {}).get(key)
            if entry is None:
                self.misses += 1
                return None
            if self._clock.now() >= entry.expires_at:
                del self._store[organization_id][key]
                self.misses += 1
                return None
            self.hits += 1
            return entry.value

    def put(self, organization_id: UUID, view: str, params: tuple, value: Any) -> None:
        with self._lock:
            self._store.setdefault(organization_id, {})[(view, params)] = _CacheEntry(
                value=value,
                expires_at=self._clock.now() + self._ttl,
            )

    def invalidate_organization(self, organization_id: UUID) -> int:
        with self._lock:
            dropped = len(self._store.pop(organization_id, {}))
        if dropped:
            logger.debug(
                "read_cache_invalidated",
                extra={"organization_id": str(organization_id), "dropped": dropped},
            )
        return dropped

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        with self._lock:
            return sum(len(views) for views in self._store.values())
