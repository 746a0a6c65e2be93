from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import List, Optional

from ...domain import models
from ...domain.errors import AllModelsFailedError, TranslationError
from ...domain.ports import LinePort, RecordRepositoryPort
from ...domain.services.history_service import HistoryService
from ...domain.services.translation_service import TranslationService
from ...presentation import ReplyBuilder

logger = logging.getLogger(__name__)

POLL_KEYWORD_PATTERN = re.compile(r"\[check\]", re.IGNORECASE)
NAME_DECLARATION_PATTERN = re.compile(
    r"(?:私の名前は|名前は|my name is|mam na imię)\s*[「\"“](?P<name>[^」\"”]+)[」\"”]",
    re.IGNORECASE,
)

GENERIC_ERROR_MESSAGE = "翻訳に失敗しました。もう一度送ってください。\nTranslation failed. Please try again."
RATE_LIMIT_MESSAGE = (
    "翻訳の利用上限に達しました。しばらくしてからもう一度お試しください。\n"
    "The translation quota has been reached. Please try again later."
)
NAME_CONFIRMATION_TEMPLATE = '名前を「{name}」に登録しました。 / Name set to "{name}".'


def extract_poll_text(text: str) -> Optional[str]:
    """``[check]`` を含むときだけ、キーワードを除いた本文を返す。"""
    if not POLL_KEYWORD_PATTERN.search(text or ""):
        return None
    return POLL_KEYWORD_PATTERN.sub("", text).strip()


def extract_declared_name(text: str) -> Optional[str]:
    match = NAME_DECLARATION_PATTERN.search(text or "")
    if not match:
        return None
    name = match.group("name").strip()
    return name or None


class MessageHandler:
    """message イベントのユースケースを担当。"""

    def __init__(
        self,
        line_client: LinePort,
        translation_service: TranslationService,
        history: HistoryService,
        repo: RecordRepositoryPort,
        results_base_url: str,
    ) -> None:
        self._line = line_client
        self._translation = translation_service
        self._history = history
        self._repo = repo
        self._results_base_url = results_base_url

    def handle(self, event: models.MessageEvent) -> None:
        if not event.user_id:
            logger.debug("Skipping message without user id", extra={"event_id": event.event_id})
            return

        timestamp = _event_time(event)
        sender_name = self._prepare_sender(event)

        poll_text = extract_poll_text(event.text)
        if poll_text is not None:
            self._handle_poll(event, poll_text, sender_name, timestamp)
            return

        declared_name = extract_declared_name(event.text)
        if declared_name:
            self._handle_name_declaration(event, declared_name, timestamp)
            return

        self._handle_translation(event, sender_name, timestamp)

    # --- branches ---
    def _handle_poll(self, event: models.MessageEvent, poll_text: str, sender_name: str, timestamp: datetime) -> None:
        translated = ""
        try:
            if poll_text:
                translated = self._translate_quietly(event.user_id, poll_text)
            messages: List[dict] = []
            if translated:
                messages.append(ReplyBuilder.build_text(translated))
            messages.append(
                ReplyBuilder.build_poll_selector(
                    translated or poll_text,
                    event.message_id,
                    self._results_base_url,
                )
            )
            self._reply(event, messages)
        finally:
            self._record_post(
                event,
                sender_name=sender_name,
                original_text=poll_text,
                translated_text=translated,
                has_poll=True,
                timestamp=timestamp,
            )

    def _handle_name_declaration(self, event: models.MessageEvent, name: str, timestamp: datetime) -> None:
        translated = ""
        try:
            self._repo.upsert_user(event.user_id, name)
            logger.info("Display name updated", extra={"user_id": event.user_id, "display_name": name})
            translated = self._translate_quietly(event.user_id, event.text)
            messages: List[dict] = []
            if translated:
                messages.append(ReplyBuilder.build_text(translated))
            messages.append(ReplyBuilder.build_text(NAME_CONFIRMATION_TEMPLATE.format(name=name)))
            self._reply(event, messages)
        finally:
            self._record_post(
                event,
                sender_name=name,
                original_text=event.text,
                translated_text=translated,
                has_poll=False,
                timestamp=timestamp,
            )

    def _handle_translation(self, event: models.MessageEvent, sender_name: str, timestamp: datetime) -> None:
        translated = ""
        try:
            try:
                result = self._translation.translate(event.user_id, event.text)
            except AllModelsFailedError:
                logger.warning("All Gemini models rate limited; notifying user", extra={"user_id": event.user_id})
                self._reply(event, [ReplyBuilder.build_text(RATE_LIMIT_MESSAGE)])
                return
            except TranslationError:
                logger.exception("Translation failed", extra={"user_id": event.user_id})
                self._reply(event, [ReplyBuilder.build_text(GENERIC_ERROR_MESSAGE)])
                return

            translated = result.translated_text
            # 記録系は返信の成否に左右されない
            self._history.append(
                event.user_id,
                models.HistoryEntry(message=event.text, language=result.source_language, captured_at=timestamp),
            )
            self._write_audit_log(event, result, timestamp)
            self._reply(event, [ReplyBuilder.build_text(translated)])
        finally:
            self._record_post(
                event,
                sender_name=sender_name,
                original_text=event.text,
                translated_text=translated,
                has_poll=False,
                timestamp=timestamp,
            )

    # --- internal helpers ---
    def _translate_quietly(self, user_id: str, text: str) -> str:
        """投票・名前登録では翻訳失敗を返信の妨げにしない。"""
        try:
            return self._translation.translate(user_id, text).translated_text
        except TranslationError:
            logger.warning("Translation skipped after failure", extra={"user_id": user_id}, exc_info=True)
            return ""

    def _reply(self, event: models.MessageEvent, messages: List[dict]) -> None:
        if not event.reply_token:
            logger.info("No reply token; reply skipped", extra={"event_id": event.event_id})
            return
        self._line.reply_messages(event.reply_token, messages)

    def _prepare_sender(self, event: models.MessageEvent) -> str:
        if event.conversation_id:
            try:
                self._repo.upsert_room(event.conversation_id)
            except Exception:  # pylint: disable=broad-except
                logger.warning("Failed to record room", extra={"conversation_id": event.conversation_id}, exc_info=True)
        try:
            stored = self._repo.fetch_user_name(event.user_id)
        except Exception:  # pylint: disable=broad-except
            logger.warning("Failed to read user", extra={"user_id": event.user_id}, exc_info=True)
            stored = None
        if stored:
            return stored

        profile_name = _fetch_display_name_safe(self._line, event)
        if profile_name:
            try:
                self._repo.upsert_user(event.user_id, profile_name)
            except Exception:  # pylint: disable=broad-except
                logger.warning("Failed to record user", extra={"user_id": event.user_id}, exc_info=True)
            return profile_name
        return event.user_id or "Unknown"

    def _record_post(
        self,
        event: models.MessageEvent,
        *,
        sender_name: str,
        original_text: str,
        translated_text: str,
        has_poll: bool,
        timestamp: datetime,
    ) -> None:
        post = models.PostRecord(
            post_id=event.message_id or event.event_id,
            conversation_id=event.conversation_id,
            user_id=event.user_id or "",
            sender_name=sender_name,
            original_text=original_text,
            translated_text=translated_text,
            language=self._translation.detect_language(original_text),
            has_poll=has_poll,
            created_at=timestamp,
        )
        try:
            self._repo.insert_post(post)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Failed to persist post", extra={"post_id": post.post_id})

    def _write_audit_log(self, event: models.MessageEvent, result: models.TranslationResult, timestamp: datetime) -> None:
        record = models.TranslationLogRecord(
            timestamp=timestamp,
            user_id=event.user_id or "",
            language=result.source_language,
            original_message=event.text,
            translation=result.translated_text,
            prompt=result.prompt_used,
            history_count=result.history_count,
        )
        try:
            self._repo.insert_translation_log(record)
        except Exception:  # pylint: disable=broad-except
            logger.warning("Failed to write translation log", extra={"user_id": record.user_id}, exc_info=True)


def _event_time(event: models.BaseEvent) -> datetime:
    if event.timestamp:
        return datetime.fromtimestamp(event.timestamp / 1000, tz=timezone.utc)
    return datetime.now(timezone.utc)


def _fetch_display_name_safe(line_client: LinePort, event: models.MessageEvent) -> Optional[str]:
    """プロフィール取得でエラーが出ても処理を継続するためのラッパー。"""
    try:
        return line_client.get_display_name(event.sender_type, event.conversation_id or None, event.user_id)
    except Exception:  # pylint: disable=broad-except
        logger.debug("Display name lookup failed", exc_info=True)
        return None
