from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
from typing import Any, Dict, List, Optional

from ..domain import models

logger = logging.getLogger(__name__)


class SignatureVerificationError(RuntimeError):
    pass


def verify_signature(channel_secret: str, body: str, signature: Optional[str]) -> None:
    if not signature:
        raise SignatureVerificationError("Missing X-Line-Signature header")

    mac = hmac.new(channel_secret.encode("utf-8"), body.encode("utf-8"), hashlib.sha256)
    digest = base64.b64encode(mac.digest()).decode("utf-8")
    if not hmac.compare_digest(digest, signature):
        raise SignatureVerificationError("Invalid signature")


def parse_events(body: str) -> List[models.BaseEvent]:
    """webhook 本文をドメインイベントに変換する。テキスト以外のメッセージは捨てる。"""
    try:
        payload = json.loads(body)
    except json.JSONDecodeError as exc:
        raise ValueError("Invalid JSON body") from exc
    if not isinstance(payload, dict):
        raise ValueError("Webhook body must be a JSON object")

    raw_events = payload.get("events") or []
    if not isinstance(raw_events, list):
        raise ValueError("'events' must be a JSON array")

    events: List[models.BaseEvent] = []
    for event in raw_events:
        if not isinstance(event, dict):
            logger.warning("Skipping non-object webhook event: %r", event)
            continue
        parsed = _parse_event(event)
        if parsed is not None:
            events.append(parsed)
    return events


def _parse_event(event: Dict[str, Any]) -> Optional[models.BaseEvent]:
    event_type = event.get("type")
    source = _as_dict(event.get("source"))
    common = {
        "event_type": event_type,
        "event_id": str(event.get("webhookEventId") or ""),
        "reply_token": event.get("replyToken"),
        "conversation_id": _resolve_conversation_id(source),
        "user_id": source.get("userId"),
        "sender_type": source.get("type", "user"),
        "timestamp": event.get("timestamp", 0),
    }

    if event_type == "message":
        message = _as_dict(event.get("message"))
        text = message.get("text")
        if message.get("type") != "text" or not isinstance(text, str):
            logger.debug("Skipping non-text message", extra={"message_type": message.get("type")})
            return None
        return models.MessageEvent(
            **common,
            message_id=str(message.get("id") or ""),
            text=text,
        )

    if event_type == "postback":
        data = _as_dict(event.get("postback")).get("data")
        if not data or not isinstance(data, str):
            return None
        return models.PostbackEvent(**common, data=data)

    logger.debug("Ignoring unsupported event type %s", event_type)
    return None


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _resolve_conversation_id(source: Dict[str, Any]) -> str:
    # 1:1 トークでは空文字
    return source.get("groupId") or source.get("roomId") or ""
