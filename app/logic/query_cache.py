"""Small in-process TTL cache for list queries.

Entries are grouped by scope (an entity type) so writes can drop exactly the
lists they may have changed. Oldest entries are evicted first once
``max_entries`` is exceeded.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Hashable, Optional

logger = logging.getLogger(__name__)

_MISSING = object()


class QueryCache:
    def __init__(
        self,
        ttl_seconds: float = 300.0,
        max_entries: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = float(ttl_seconds)
        self.max_entries = int(max_entries)
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: "OrderedDict[tuple[str, Hashable], tuple[float, Any]]" = OrderedDict()

    def get(self, scope: str, key: Hashable, default: Any = None) -> Any:
        with self._lock:
            hit = self._entries.get((scope, key), _MISSING)
            if hit is _MISSING:
                return default
            stored_at, value = hit
            if self._clock() - stored_at >= self.ttl_seconds:
                del self._entries[(scope, key)]
                return default
            return value

    def set(self, scope: str, key: Hashable, value: Any) -> None:
        if self.max_entries <= 0:
            return
        with self._lock:
            self._entries.pop((scope, key), None)
            self._entries[(scope, key)] = (self._clock(), value)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def invalidate(self, scope: Optional[str] = None) -> int:
        """Drop every entry of ``scope``, or everything when scope is None."""
        with self._lock:
            if scope is None:
                dropped = len(self._entries)
                self._entries.clear()
            else:
                stale = [k for k in self._entries if k[0] == scope]
                for k in stale:
                    del self._entries[k]
                dropped = len(stale)
        if dropped:
            logger.debug("query cache invalidated scope=%s entries=%d", scope or "*", dropped)
        return dropped

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = ["QueryCache"]
