"""
Process-local key/value cache with TTL expiry.

Entries expire lazily (on get/has) and via a periodic sweep running on a
daemon thread, independent of the request path. There is no size bound and
no LRU: TTLs are short (hours) and the store is authoritative, so anything
here can be dropped at any time.

The internal lock only protects the dict itself. A get followed by a set is
NOT atomic; callers that need "compute once" use SingleFlight.
"""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable

import structlog

log = structlog.get_logger(__name__)

_MISSING = object()


@dataclass
class CacheEntry:
    value: Any
    expires_at: float


def cache_key(kind: str, subject_id: str, language: str) -> str:
    return f"{kind}:{subject_id}:{language}"


class KeyValueCache:
    def __init__(
        self,
        default_ttl: int = 3600,
        sweep_interval: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._default_ttl = default_ttl
        self._sweep_interval = sweep_interval
        self._clock = clock
        self._hits = 0
        self._misses = 0

        self._stop = threading.Event()
        self._sweeper: threading.Thread | None = None

    # -----------------------------
    # Reads
    # -----------------------------
    def get(self, key: str, default: Any = None) -> Any:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return default
            if now >= entry.expires_at:
                del self._entries[key]
                self._misses += 1
                return default
            self._hits += 1
            return entry.value

    def has(self, key: str) -> bool:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if now >= entry.expires_at:
                del self._entries[key]
                return False
            return True

    def lookup(self, key: str) -> tuple[bool, Any]:
        """(hit, value): distinguishes a cached None from a miss."""
        value = self.get(key, _MISSING)
        if value is _MISSING:
            return False, None
        return True, value

    # -----------------------------
    # Writes
    # -----------------------------
    def set(self, key: str, value: Any, ttl_seconds: int | float | None = None) -> None:
        ttl = ttl_seconds if ttl_seconds is not None else self._default_ttl
        if ttl <= 0:
            raise ValueError("ttl_seconds must be > 0")
        expires_at = self._clock() + ttl
        with self._lock:
            self._entries[key] = CacheEntry(value=value, expires_at=expires_at)

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def invalidate_prefix(self, prefix: str) -> int:
        with self._lock:
            doomed = [k for k in self._entries if k.startswith(prefix)]
            for k in doomed:
                del self._entries[k]
        return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    # -----------------------------
    # Expiry sweep
    # -----------------------------
    def sweep(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if now >= e.expires_at]
            for k in expired:
                del self._entries[k]
        if expired:
            log.info("cache_sweep", removed=len(expired))
        return len(expired)

    def _sweep_loop(self) -> None:
        while not self._stop.wait(self._sweep_interval):
            try:
                self.sweep()
            except Exception:
                log.exception("cache_sweep_failed")

    def start_sweeper(self) -> None:
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop.clear()
        self._sweeper = threading.Thread(target=self._sweep_loop, name="cache-sweeper", daemon=True)
        self._sweeper.start()

    def stop_sweeper(self) -> None:
        self._stop.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=5)
            self._sweeper = None

    # -----------------------------
    # Stats
    # -----------------------------
    def stats(self) -> dict[str, Any]:
        with self._lock:
            total = self._hits + self._misses
            hit_rate = (self._hits / total * 100) if total > 0 else 0.0
            return {
                "size": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": round(hit_rate, 2),
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
