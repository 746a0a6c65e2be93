from __future__ import annotations

import threading
import time
from typing import Callable, Dict

from ..domain.ports import DedupCachePort


class InMemoryDedupCache(DedupCachePort):
    """プロセス内の TTL キャッシュ。ウォームな Lambda インスタンス内でのみ有効。"""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._expires_at: Dict[str, float] = {}
        self._lock = threading.Lock()

    def add_if_absent(self, key: str, ttl_seconds: int) -> bool:
        now = self._clock()
        with self._lock:
            expires_at = self._expires_at.get(key)
            if expires_at is not None and expires_at > now:
                return False
            self._expires_at[key] = now + ttl_seconds
            self._evict_expired(now)
            return True

    def _evict_expired(self, now: float) -> None:
        expired = [key for key, expires_at in self._expires_at.items() if expires_at <= now]
        for key in expired:
            del self._expires_at[key]
