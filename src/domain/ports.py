from __future__ import annotations

from typing import List, Optional

from .models import AnswerRecord, ModelOutcome, PostRecord, TranslationLogRecord


class LinePort:
    def reply_messages(self, reply_token: str, messages: List[dict]) -> None: ...

    def get_display_name(self, source_type: str, container_id: Optional[str], user_id: str) -> Optional[str]: ...


class ModelBackendPort:
    def generate(self, model: str, prompt: str) -> ModelOutcome: ...


class KeyValueStorePort:
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class DedupCachePort:
    def add_if_absent(self, key: str, ttl_seconds: int) -> bool:
        """キーが無いか期限切れなら登録して True、有効なキーがあれば False。"""
        ...


class RecordRepositoryPort:
    def insert_post(self, post: PostRecord) -> None: ...

    def upsert_answer(self, answer: AnswerRecord) -> None: ...

    def upsert_user(self, user_id: str, display_name: str) -> None: ...

    def fetch_user_name(self, user_id: str) -> Optional[str]: ...

    def upsert_room(self, conversation_id: str) -> None: ...

    def insert_translation_log(self, record: TranslationLogRecord) -> None: ...
