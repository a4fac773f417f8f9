"""
In-memory TTL cache for computed analytics payloads.

Validity reports are expensive to compute and are typically requested in
bursts by the dashboard (every filter toggle refetches). Entries live for a
few seconds only, so stale data is bounded by the TTL.

The cache is per process. The application owns one instance on
``app.state`` and endpoints receive it through a dependency, which lets
tests substitute ``NullCache``.
"""

import hashlib
import json
import threading
import time
from typing import Any, Dict, Optional, Tuple

DEFAULT_TTL_SECONDS = 5.0
DEFAULT_MAX_ENTRIES = 256


class SimpleCache:
    """Thread-safe dictionary cache with per-entry expiry and a size bound."""

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ):
        self.default_ttl = default_ttl
        self.max_entries = max_entries
        # key -> (value, expiry epoch seconds)
        self._cache: Dict[str, Tuple[Any, float]] = {}
        self._lock = threading.RLock()

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None when missing or expired."""
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            value, expiry = entry
            if expiry > time.time():
                return value
            del self._cache[key]
            return None

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store ``value`` for ``ttl`` seconds (default TTL when omitted)."""
        ttl = self.default_ttl if ttl is None else ttl
        if ttl <= 0:
            return
        with self._lock:
            if key not in self._cache and len(self._cache) >= self.max_entries:
                self._make_room()
            self._cache[key] = (value, time.time() + ttl)

    put = set

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def cleanup_expired(self) -> int:
        """Drop every expired entry and return how many were removed."""
        with self._lock:
            now = time.time()
            expired = [k for k, (_, expiry) in self._cache.items() if expiry <= now]
            for k in expired:
                del self._cache[k]
            return len(expired)

    def __len__(self) -> int:
        return len(self._cache)

    def _make_room(self) -> None:
        # Caller holds the lock
        if self.cleanup_expired():
            return
        soonest = min(self._cache, key=lambda k: self._cache[k][1])
        del self._cache[soonest]


class NullCache:
    """Cache that never stores anything."""

    def get(self, key: str) -> Optional[Any]:
        return None

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        return None

    put = set

    def clear(self) -> None:
        return None


def cache_key(*args: Any, **kwargs: Any) -> str:
    """
    Build a stable key from arbitrary JSON-serialisable arguments.

    Keyword order does not matter. Values that JSON cannot encode natively
    (tuples become lists; anything else goes through ``str``) still produce a
    deterministic key.
    """
    payload = json.dumps(
        {"args": list(args), "kwargs": kwargs}, sort_keys=True, default=str
    )
    return hashlib.md5(payload.encode("utf-8")).hexdigest()
