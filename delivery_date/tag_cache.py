from __future__ import annotations

import threading
import time
from typing import Any, Callable, Dict, Hashable, Optional, Tuple


class TTLCache:
    """Small in-process cache with per-entry expiry.

    Writes are last-write-wins per key; expired entries are dropped on read.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, max_entries: int = 2048) -> None:
        self._clock = clock
        self._max_entries = max_entries
        self._items: Dict[Hashable, Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Optional[Any]:
        with self._lock:
            hit = self._items.get(key)
            if hit is None:
                return None
            exp, value = hit
            if self._clock() > exp:
                del self._items[key]
                return None
            return value

    def set(self, key: Hashable, value: Any, ttl: float) -> None:
        with self._lock:
            now = self._clock()
            if len(self._items) >= self._max_entries and key not in self._items:
                self._purge(now)
            self._items[key] = (now + float(ttl), value)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def _purge(self, now: float) -> None:
        for k in [k for k, (exp, _) in self._items.items() if now > exp]:
            del self._items[k]
        # Still full: drop the entry closest to expiry
        if len(self._items) >= self._max_entries:
            oldest = min(self._items, key=lambda k: self._items[k][0])
            del self._items[oldest]
