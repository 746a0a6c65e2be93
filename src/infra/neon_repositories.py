from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from psycopg import errors, sql

from ..domain.models import AnswerRecord, PostRecord, TranslationLogRecord
from ..domain.ports import DedupCachePort, KeyValueStorePort, RecordRepositoryPort
from .neon_client import NeonClient

logger = logging.getLogger(__name__)


class NeonRecordRepository(RecordRepositoryPort):
    """Neon(PostgreSQL) への投稿・回答・ユーザー・ルーム・翻訳ログの永続化。"""

    def __init__(self, client: NeonClient) -> None:
        self._client = client

    def insert_post(self, post: PostRecord) -> None:
        query = sql.SQL(
            """
            INSERT INTO posts (
                post_id, conversation_id, user_id, sender_name,
                original_text, translated_text, language, has_poll, created_at
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (post_id) DO NOTHING
            """
        )
        with self._client.cursor() as cur:
            cur.execute(
                query,
                (
                    post.post_id,
                    post.conversation_id,
                    post.user_id,
                    post.sender_name,
                    post.original_text,
                    post.translated_text,
                    post.language,
                    post.has_poll,
                    _aware(post.created_at),
                ),
            )

    def upsert_answer(self, answer: AnswerRecord) -> None:
        # (post_id, user_id) ごとに 1 行。後から押したボタンで上書きする
        query = sql.SQL(
            """
            INSERT INTO answers (post_id, user_id, value, answered_at)
            VALUES (%s, %s, %s, %s)
            ON CONFLICT (post_id, user_id)
            DO UPDATE SET value = EXCLUDED.value, answered_at = EXCLUDED.answered_at
            """
        )
        with self._client.cursor() as cur:
            cur.execute(query, (answer.post_id, answer.user_id, answer.value, _aware(answer.answered_at)))

    def upsert_user(self, user_id: str, display_name: str) -> None:
        query = sql.SQL(
            """
            INSERT INTO users (user_id, display_name, updated_at)
            VALUES (%s, %s, NOW())
            ON CONFLICT (user_id)
            DO UPDATE SET display_name = EXCLUDED.display_name, updated_at = NOW()
            """
        )
        with self._client.cursor() as cur:
            cur.execute(query, (user_id, display_name))

    def fetch_user_name(self, user_id: str) -> Optional[str]:
        with self._client.cursor() as cur:
            cur.execute("SELECT display_name FROM users WHERE user_id = %s", (user_id,))
            row = cur.fetchone()
        if not row or not row[0]:
            return None
        return row[0]

    def upsert_room(self, conversation_id: str) -> None:
        query = sql.SQL(
            """
            INSERT INTO rooms (conversation_id, first_seen_at, last_seen_at)
            VALUES (%s, NOW(), NOW())
            ON CONFLICT (conversation_id)
            DO UPDATE SET last_seen_at = NOW()
            """
        )
        with self._client.cursor() as cur:
            cur.execute(query, (conversation_id,))

    def insert_translation_log(self, record: TranslationLogRecord) -> None:
        query = sql.SQL(
            """
            INSERT INTO translation_logs (
                logged_at, user_id, language, original_message, translation, prompt, history_count
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            """
        )
        try:
            with self._client.cursor() as cur:
                cur.execute(
                    query,
                    (
                        _aware(record.timestamp),
                        record.user_id,
                        record.language,
                        record.original_message,
                        record.translation,
                        record.prompt,
                        record.history_count,
                    ),
                )
        except errors.UndefinedTable:
            # 監査ログは必須ではないのでテーブル未作成でも処理を止めない
            logger.warning("translation_logs table missing; skip audit log", extra={"user_id": record.user_id})


class NeonKeyValueStore(KeyValueStorePort):
    """履歴などの小さな JSON 値を保存するキーバリューストア。"""

    def __init__(self, client: NeonClient) -> None:
        self._client = client

    def get(self, key: str) -> Optional[str]:
        with self._client.cursor() as cur:
            cur.execute("SELECT value FROM kv_store WHERE key = %s", (key,))
            row = cur.fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        query = sql.SQL(
            """
            INSERT INTO kv_store (key, value, updated_at)
            VALUES (%s, %s, NOW())
            ON CONFLICT (key)
            DO UPDATE SET value = EXCLUDED.value, updated_at = NOW()
            """
        )
        with self._client.cursor() as cur:
            cur.execute(query, (key, value))


class NeonDedupCache(DedupCachePort):
    """有効期限付きの処理済みイベント表。Lambda の複数インスタンス間で共有される。"""

    def __init__(self, client: NeonClient) -> None:
        self._client = client

    def add_if_absent(self, key: str, ttl_seconds: int) -> bool:
        # 期限切れの行だけ上書きする。同じキーの同時 INSERT は行ロックで直列化される
        with self._client.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO processed_events (cache_key, expires_at)
                    VALUES (%s, NOW() + make_interval(secs => %s))
                    ON CONFLICT (cache_key)
                    DO UPDATE SET expires_at = EXCLUDED.expires_at
                    WHERE processed_events.expires_at <= NOW()
                    RETURNING 1
                    """,
                    (key, ttl_seconds),
                )
                added = cur.fetchone() is not None
                if added:
                    cur.execute("DELETE FROM processed_events WHERE expires_at <= NOW()")
                return added


def _aware(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts
