from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import List

from ..models import HistoryEntry, HistoryLog
from ..ports import KeyValueStorePort

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 2
KEY_PREFIX = "history:"


class HistoryService:
    """ユーザーごとの直近メッセージを保持する。

    履歴は翻訳の文脈として使うだけのベストエフォートな情報なので、
    読み書きの失敗はログに残して握りつぶす。
    """

    def __init__(self, store: KeyValueStorePort, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        self._store = store
        self._max_entries = max(1, max_entries)

    def get(self, user_key: str) -> HistoryLog:
        try:
            raw = self._store.get(_key(user_key))
        except Exception:  # pylint: disable=broad-except
            logger.warning("Failed to read history", extra={"user_key": user_key}, exc_info=True)
            return ()
        if not raw:
            return ()
        try:
            items = json.loads(raw)
            entries = tuple(_decode_entry(item) for item in items)
        except (ValueError, TypeError, KeyError, AttributeError):
            logger.warning("Discarding undecodable history", extra={"user_key": user_key}, exc_info=True)
            return ()
        return entries[-self._max_entries :]

    def append(self, user_key: str, entry: HistoryEntry) -> None:
        current = list(self.get(user_key))
        current.append(entry)
        trimmed = current[-self._max_entries :]
        try:
            self._store.set(_key(user_key), json.dumps(_encode_entries(trimmed), ensure_ascii=False))
        except Exception:  # pylint: disable=broad-except
            logger.warning("Failed to write history", extra={"user_key": user_key}, exc_info=True)


def _key(user_key: str) -> str:
    return f"{KEY_PREFIX}{user_key}"


def _encode_entries(entries: List[HistoryEntry]) -> List[dict]:
    return [
        {
            "message": entry.message,
            "language": entry.language,
            "captured_at": entry.captured_at.isoformat(),
        }
        for entry in entries
    ]


def _decode_entry(item: dict) -> HistoryEntry:
    return HistoryEntry(
        message=item["message"],
        language=item.get("language", ""),
        captured_at=datetime.fromisoformat(item["captured_at"]),
    )
