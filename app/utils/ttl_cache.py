# =============================================================================
# app/utils/ttl_cache.py
# =============================================================================
"""
Bounded TTL map. Expired entries are dropped lazily on access; the oldest
entry is evicted once ``maxsize`` is reached.
"""
import time
from collections import OrderedDict
from typing import Any

_MISSING = object()


class TTLCache:
    """Dict-like cache with per-entry TTL"""

    def __init__(self, ttl_seconds: float, maxsize: int = 128):
        self._ttl = ttl_seconds
        self._maxsize = maxsize
        # key -> (value, expiry_monotonic)
        self._data: "OrderedDict[Any, tuple]" = OrderedDict()

    def get(self, key: Any, default: Any = None) -> Any:
        entry = self._data.get(key)
        if entry is None:
            return default
        value, expiry = entry
        if time.monotonic() >= expiry:
            self._data.pop(key, None)
            return default
        return value

    def set(self, key: Any, value: Any) -> None:
        if key in self._data:
            del self._data[key]
        elif len(self._data) >= self._maxsize:
            self._data.popitem(last=False)
        self._data[key] = (value, time.monotonic() + self._ttl)

    def pop(self, key: Any, default: Any = None) -> Any:
        value = self.get(key, default)
        self._data.pop(key, None)
        return value

    def clear(self) -> None:
        self._data.clear()

    def __contains__(self, key: Any) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"TTLCache(ttl_seconds={self._ttl}, maxsize={self._maxsize}, size={len(self._data)})"
