from __future__ import annotations

import json
import logging
from typing import List, Optional

import requests

from ..domain.ports import LinePort

logger = logging.getLogger(__name__)

LINE_API_ROOT = "https://api.line.me/v2/bot"
REPLY_ENDPOINT = f"{LINE_API_ROOT}/message/reply"
# source.type ごとのメンバープロフィール取得先。1:1 トークは profile を使う
MEMBER_PROFILE_ENDPOINTS = {
    "group": LINE_API_ROOT + "/group/{container_id}/member/{user_id}",
    "room": LINE_API_ROOT + "/room/{container_id}/member/{user_id}",
}
FRIEND_PROFILE_ENDPOINT = LINE_API_ROOT + "/profile/{user_id}"

REPLY_TEXT_LIMIT = 5000
REPLY_MESSAGE_LIMIT = 5
LOG_EXCERPT_LENGTH = 500


class LineApiError(RuntimeError):
    pass


class LineApiAdapter(LinePort):
    """Messaging API の reply とプロフィール取得だけを扱う。"""

    def __init__(self, channel_access_token: str, timeout_seconds: int = 5) -> None:
        self._timeout = timeout_seconds
        self._session = requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {channel_access_token}",
                "Content-Type": "application/json",
            }
        )

    def reply_messages(self, reply_token: str, messages: List[dict]) -> None:
        if not messages:
            return
        if len(messages) > REPLY_MESSAGE_LIMIT:
            logger.warning(
                "Reply truncated to %s messages | requested=%s",
                REPLY_MESSAGE_LIMIT,
                len(messages),
            )
        outgoing = [_clip_text(message) for message in messages[:REPLY_MESSAGE_LIMIT]]
        payload = {"replyToken": reply_token, "messages": outgoing}
        response = self._session.post(REPLY_ENDPOINT, json=payload, timeout=self._timeout)
        if response.ok:
            return
        logger.error(
            "Relay reply rejected | status=%s response=%s request=%s",
            response.status_code,
            (response.text or "")[:LOG_EXCERPT_LENGTH],
            json.dumps(payload, ensure_ascii=False)[:LOG_EXCERPT_LENGTH],
        )
        raise LineApiError(f"reply rejected by LINE (status {response.status_code})")

    def get_display_name(
        self,
        source_type: str,
        container_id: Optional[str],
        user_id: str,
    ) -> Optional[str]:
        url = self._build_profile_url(source_type, container_id, user_id)
        response = self._session.get(url, timeout=self._timeout)
        if response.status_code == 404:
            return None
        if not response.ok:
            logger.warning(
                "Sender profile lookup failed | status=%s user_id=%s",
                response.status_code,
                user_id,
            )
            return None
        try:
            profile = response.json()
        except ValueError:
            logger.warning("Sender profile body is not JSON | user_id=%s", user_id)
            return None
        return profile.get("displayName")

    def _build_profile_url(self, source_type: str, container_id: Optional[str], user_id: str) -> str:
        template = MEMBER_PROFILE_ENDPOINTS.get(source_type)
        if template and container_id:
            return template.format(container_id=container_id, user_id=user_id)
        return FRIEND_PROFILE_ENDPOINT.format(user_id=user_id)


def _clip_text(message: dict) -> dict:
    text = message.get("text")
    if message.get("type") == "text" and text and len(text) > REPLY_TEXT_LIMIT:
        return {**message, "text": text[:REPLY_TEXT_LIMIT]}
    return message
