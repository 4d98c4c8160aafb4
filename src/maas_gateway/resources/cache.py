"""In-memory TTL cache for formatted resource envelopes.

Key Responsibilities:
    - Store resource responses keyed by URI and query parameters
    - Expire entries after a per-entry TTL and evict at capacity
    - Sweep expired entries from a background thread until closed
    - Produce cache-control headers for rendered responses

Collaborators:
    - Upstream: :class:`~maas_gateway.resources.service.ResourceService`
    - Downstream: :mod:`maas_gateway.observability.metrics`

Side Effects:
    - Starts a daemon sweeper thread on construction; :meth:`ResourceCache.close`
      stops it

Thread Safety:
    - Lookups take a shared lock, writes and sweeps take the exclusive lock

Performance Characteristics:
    - O(1) lookups; eviction at capacity scans entries for the soonest expiry
"""

from __future__ import annotations

import hashlib
import threading
import time
from collections.abc import Callable, Mapping
from datetime import UTC, datetime, timedelta
from typing import Any
from urllib.parse import parse_qs

import structlog
from attrs import define, field

from maas_gateway.observability.metrics import (
    record_cache_eviction,
    record_cache_lookup,
    set_cache_size,
)
from maas_gateway.resources.locks import ReadWriteLock

logger = structlog.get_logger(__name__)

DEFAULT_CACHE_TTL = 300.0
DEFAULT_CACHE_MAX_ENTRIES = 1000
DEFAULT_SWEEP_INTERVAL = 60.0
DEFAULT_BYPASS_FLAG = "no-cache"


@define(slots=True, frozen=True)
class CacheEntry:
    key: str
    value: Any
    expires_at: float

    def expired(self, now: float) -> bool:
        return now >= self.expires_at

    def remaining(self, now: float) -> float:
        return max(self.expires_at - now, 0.0)


@define(slots=True, frozen=True)
class CacheOptions:
    """Per-request caching decision."""

    enabled: bool = True
    ttl: float = DEFAULT_CACHE_TTL
    bypass_flag: str = DEFAULT_BYPASS_FLAG


class ResourceCache:
    """TTL cache with soonest-expiry eviction and a background sweeper."""

    def __init__(
        self,
        default_ttl: float = DEFAULT_CACHE_TTL,
        max_entries: int = DEFAULT_CACHE_MAX_ENTRIES,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
        *,
        bypass_flag: str = DEFAULT_BYPASS_FLAG,
        clock: Callable[[], float] = time.monotonic,
        start_sweeper: bool = True,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.default_ttl = default_ttl
        self.max_entries = max_entries
        self.sweep_interval = sweep_interval
        self.bypass_flag = bypass_flag
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = ReadWriteLock()
        self._stop = threading.Event()
        self._sweeper: threading.Thread | None = None
        if start_sweeper:
            self._sweeper = threading.Thread(
                target=self._sweep_loop, name="resource-cache-sweeper", daemon=True
            )
            self._sweeper.start()

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------
    def generate_key(self, uri: str, query_params: Mapping[str, str] | None = None) -> str:
        """Return a stable key for ``uri`` and its query parameters.

        Parameters embedded in ``uri`` and those passed explicitly are merged;
        the bypass flag is ignored and parameter order does not matter.
        """
        path, _, query = uri.partition("?")
        params = {key: values[0] for key, values in parse_qs(query, keep_blank_values=True).items()}
        params.update(query_params or {})
        params.pop(self.bypass_flag, None)
        canonical = path + "|" + "".join(f"{key}={params[key]};" for key in sorted(params))
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

    # ------------------------------------------------------------------
    # Entry access
    # ------------------------------------------------------------------
    def get(self, key: str) -> tuple[Any, bool]:
        """Return ``(value, True)`` for a live entry, ``(None, False)`` otherwise."""
        entry = self.get_entry(key)
        if entry is None:
            return None, False
        return entry.value, True

    def get_entry(self, key: str) -> CacheEntry | None:
        """Return the live entry for ``key`` (``None`` on miss or expiry)."""
        with self._lock.read():
            entry = self._entries.get(key)
        hit = entry is not None and not entry.expired(self._clock())
        record_cache_lookup(hit)
        return entry if hit else None

    def remaining_ttl(self, entry: CacheEntry) -> float:
        """Seconds until ``entry`` expires on this cache's clock."""
        return entry.remaining(self._clock())

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store ``value``; a missing or non-positive ``ttl`` uses the default."""
        if ttl is None or ttl <= 0:
            ttl = self.default_ttl
        entry = CacheEntry(key=key, value=value, expires_at=self._clock() + ttl)
        with self._lock.write():
            if key not in self._entries and len(self._entries) >= self.max_entries:
                victim = min(self._entries.values(), key=lambda item: item.expires_at)
                del self._entries[victim.key]
                record_cache_eviction("capacity")
                logger.debug("resources.cache.evicted", key=victim.key)
            self._entries[key] = entry
            size = len(self._entries)
        set_cache_size(size)

    def delete(self, key: str) -> bool:
        with self._lock.write():
            removed = self._entries.pop(key, None) is not None
            size = len(self._entries)
        set_cache_size(size)
        return removed

    def clear(self) -> None:
        with self._lock.write():
            self._entries.clear()
        set_cache_size(0)

    def purge_expired(self) -> int:
        """Remove expired entries and return how many were dropped."""
        now = self._clock()
        with self._lock.write():
            expired = [key for key, entry in self._entries.items() if entry.expired(now)]
            for key in expired:
                del self._entries[key]
            size = len(self._entries)
        record_cache_eviction("expired", len(expired))
        set_cache_size(size)
        return len(expired)

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._entries)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def _sweep_loop(self) -> None:
        while not self._stop.wait(self.sweep_interval):
            removed = self.purge_expired()
            if removed:
                logger.debug("resources.cache.swept", removed=removed)

    @property
    def closed(self) -> bool:
        return self._stop.is_set()

    def close(self) -> None:
        """Stop the sweeper thread. Safe to call more than once."""
        self._stop.set()
        sweeper = self._sweeper
        if sweeper is not None and sweeper.is_alive() and sweeper is not threading.current_thread():
            sweeper.join()

    def __enter__(self) -> ResourceCache:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def parse_cache_params(
    query: Mapping[str, str],
    *,
    ttl: float = DEFAULT_CACHE_TTL,
    bypass_flag: str = DEFAULT_BYPASS_FLAG,
    enabled: bool = True,
) -> CacheOptions:
    """Derive the caching decision for a request.

    The presence of ``bypass_flag`` (any value) or ``cache=false`` disables
    caching for the call.
    """
    if bypass_flag in query or query.get("cache", "").lower() == "false":
        enabled = False
    return CacheOptions(enabled=enabled, ttl=ttl, bypass_flag=bypass_flag)


def _http_date(moment: datetime) -> str:
    return moment.strftime("%a, %d %b %Y %H:%M:%S GMT")


def cache_headers(options: CacheOptions, now: datetime | None = None) -> dict[str, str]:
    """Return HTTP caching headers describing ``options``."""
    if not options.enabled:
        return {
            "Cache-Control": "no-cache, no-store, must-revalidate",
            "Pragma": "no-cache",
            "Expires": "0",
        }
    moment = now or datetime.now(UTC)
    ttl = max(int(options.ttl), 0)
    return {
        "Cache-Control": f"public, max-age={ttl}",
        "Expires": _http_date(moment + timedelta(seconds=ttl)),
    }


__all__ = [
    "CacheEntry",
    "CacheOptions",
    "DEFAULT_BYPASS_FLAG",
    "DEFAULT_CACHE_MAX_ENTRIES",
    "DEFAULT_CACHE_TTL",
    "DEFAULT_SWEEP_INTERVAL",
    "ResourceCache",
    "cache_headers",
    "parse_cache_params",
]
