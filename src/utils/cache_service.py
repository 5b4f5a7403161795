"""
In-memory caches.

``LRUCache`` is a small TTL-aware LRU. ``MembershipCache`` builds on it to
hold segment membership results keyed by (customer-set version, rule hash);
any customer write bumps the version so stale results are never served.
"""

import hashlib
import json
import time
from collections import OrderedDict
from threading import Lock
from typing import Any, FrozenSet, Iterable, Optional, Tuple


class LRUCache:
    """Bounded, lock-guarded LRU map; entries older than ``ttl_seconds`` read as misses."""

    def __init__(self, max_size: int = 100, ttl_seconds: Optional[int] = 300):
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._entries: "OrderedDict[Any, Tuple[Any, float]]" = OrderedDict()
        self._lock = Lock()

    def get(self, key: Any) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, stored_at = entry
            if self._expired(stored_at):
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return value

    def set(self, key: Any, value: Any) -> None:
        with self._lock:
            self._entries[key] = (value, time.monotonic())
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_size:
                self._entries.popitem(last=False)

    def delete(self, key: Any) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> dict:
        with self._lock:
            size = len(self._entries)
        return {"size": size, "max_size": self.max_size, "ttl_seconds": self.ttl_seconds}

    def _expired(self, stored_at: float) -> bool:
        return self.ttl_seconds is not None and time.monotonic() - stored_at > self.ttl_seconds


def rules_fingerprint(rules: Iterable[Any]) -> str:
    """Stable sha256 over an ordered rule sequence."""
    payload = [
        rule.model_dump(mode="json") if hasattr(rule, "model_dump") else dict(rule)
        for rule in rules
    ]
    encoded = json.dumps(payload, sort_keys=True, default=str).encode()
    return hashlib.sha256(encoded).hexdigest()


class MembershipCache:
    """Segment membership results keyed by (customer version, rules hash)."""

    def __init__(self, max_size: int = 128, ttl_seconds: Optional[int] = 300):
        self._entries = LRUCache(max_size=max_size, ttl_seconds=ttl_seconds)
        self._version = 0
        self._lock = Lock()

    @property
    def version(self) -> int:
        with self._lock:
            return self._version

    def invalidate(self) -> None:
        """Bump the customer-set version and drop every cached membership."""
        with self._lock:
            self._version += 1
        self._entries.clear()

    def key_for(self, rules: Iterable[Any]) -> Tuple[int, str]:
        return (self.version, rules_fingerprint(rules))

    def get(self, key: Tuple[int, str]) -> Optional[FrozenSet[str]]:
        if key[0] != self.version:
            return None
        return self._entries.get(key)

    def set(self, key: Tuple[int, str], member_ids: Iterable[str]) -> None:
        # A write may have landed while the scan ran; never store under a stale version.
        if key[0] != self.version:
            return
        self._entries.set(key, frozenset(member_ids))

    def stats(self) -> dict:
        return {"version": self.version, **self._entries.stats()}
