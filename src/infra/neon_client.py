from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Optional, Sequence

from psycopg_pool import ConnectionPool

logger = logging.getLogger(__name__)

SCHEMA_STATEMENTS: Sequence[str] = (
    """
    CREATE TABLE IF NOT EXISTS posts (
        post_id TEXT PRIMARY KEY,
        conversation_id TEXT NOT NULL DEFAULT '',
        user_id TEXT NOT NULL,
        sender_name TEXT NOT NULL DEFAULT '',
        original_text TEXT NOT NULL,
        translated_text TEXT NOT NULL DEFAULT '',
        language TEXT NOT NULL DEFAULT '',
        has_poll BOOLEAN NOT NULL DEFAULT FALSE,
        created_at TIMESTAMPTZ NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS answers (
        post_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        value TEXT NOT NULL,
        answered_at TIMESTAMPTZ NOT NULL,
        PRIMARY KEY (post_id, user_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS users (
        user_id TEXT PRIMARY KEY,
        display_name TEXT NOT NULL DEFAULT '',
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS rooms (
        conversation_id TEXT PRIMARY KEY,
        first_seen_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        last_seen_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS translation_logs (
        id BIGSERIAL PRIMARY KEY,
        logged_at TIMESTAMPTZ NOT NULL,
        user_id TEXT NOT NULL,
        language TEXT NOT NULL,
        original_message TEXT NOT NULL,
        translation TEXT NOT NULL,
        prompt TEXT NOT NULL,
        history_count INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS kv_store (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS processed_events (
        cache_key TEXT PRIMARY KEY,
        expires_at TIMESTAMPTZ NOT NULL
    )
    """,
)


class NeonClient:
    """Thin wrapper around psycopg ConnectionPool for Neon."""

    def __init__(self, dsn: str, min_size: int = 1, max_size: int = 4) -> None:
        self._pool = ConnectionPool(conninfo=dsn, min_size=min_size, max_size=max_size, open=True)
        self._schema_ready = False
        logger.debug("Initialized Neon connection pool")

    @contextmanager
    def connection(self):
        # with ブロックを抜けると commit（例外時は rollback）される
        with self._pool.connection() as conn:
            yield conn

    @contextmanager
    def cursor(self):
        with self.connection() as conn:
            with conn.cursor() as cur:
                yield cur

    def ensure_schema(self) -> None:
        """コールドスタート時に一度だけテーブルを作成する。"""
        if self._schema_ready:
            return
        with self.cursor() as cur:
            for statement in SCHEMA_STATEMENTS:
                cur.execute(statement)
        self._schema_ready = True
        logger.info("Neon schema ensured | tables=%s", len(SCHEMA_STATEMENTS))


_client: Optional[NeonClient] = None


def get_client(dsn: str) -> NeonClient:
    global _client
    if _client is None:
        _client = NeonClient(dsn)
    return _client
