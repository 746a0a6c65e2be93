from __future__ import annotations

from ..ports import DedupCachePort

DEFAULT_TTL_SECONDS = 600
KEY_PREFIX = "event:"


class EventDeduplicator:
    """webhookEventId の短期キャッシュで二重処理を防ぐ。"""

    def __init__(self, cache: DedupCachePort, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> None:
        self._cache = cache
        self._ttl = ttl_seconds

    def check_and_mark(self, event_id: str) -> bool:
        """未処理なら印を付けて False、処理済みなら True を返す。

        判定と記録はキャッシュ側で 1 回の操作として行うため、同じイベントが同時に
        届いても False を受け取るのは 1 件だけ。既存の印の有効期限は延ばさない。
        """
        return not self._cache.add_if_absent(_key(event_id), self._ttl)


def _key(event_id: str) -> str:
    return f"{KEY_PREFIX}{event_id}"
