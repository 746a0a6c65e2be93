from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, Optional
from urllib.parse import parse_qs

from ...domain import models
from ...domain.ports import RecordRepositoryPort
from ...presentation.reply_builder import POLL_VALUES

logger = logging.getLogger(__name__)


def decode_postback_data(data: str) -> Optional[Dict[str, str]]:
    """``action=answer&value=OK&postId=P1`` 形式の postback data を辞書にする。"""
    if not data:
        return None
    parsed = parse_qs(data, keep_blank_values=True)
    if not parsed:
        return None
    return {key: values[-1] for key, values in parsed.items()}


class PostbackHandler:
    def __init__(self, repo: RecordRepositoryPort) -> None:
        self._repo = repo

    def handle(self, event: models.PostbackEvent) -> None:
        payload = decode_postback_data(event.data)
        if not payload:
            logger.debug("Ignoring unknown postback", extra={"data": event.data})
            return

        action = payload.get("action")
        if action == "answer":
            self._handle_answer(event, payload)
            return

        logger.debug("Unhandled postback action", extra={"action": action})

    def _handle_answer(self, event: models.PostbackEvent, payload: Dict[str, str]) -> None:
        value = payload.get("value", "")
        post_id = payload.get("postId", "")
        if value not in POLL_VALUES or not post_id or not event.user_id:
            logger.info(
                "Invalid poll answer ignored",
                extra={"value": value, "post_id": post_id, "user_id": event.user_id},
            )
            return

        answered_at = (
            datetime.fromtimestamp(event.timestamp / 1000, tz=timezone.utc)
            if event.timestamp
            else datetime.now(timezone.utc)
        )
        self._repo.upsert_answer(
            models.AnswerRecord(post_id=post_id, user_id=event.user_id, value=value, answered_at=answered_at)
        )
        logger.info("Poll answer saved", extra={"post_id": post_id, "user_id": event.user_id, "value": value})
