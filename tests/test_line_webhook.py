import base64
import hashlib
import hmac
import json

import pytest

from src.domain import models
from src.presentation.line_webhook_parser import SignatureVerificationError, parse_events, verify_signature


def test_parse_events_builds_message_and_postback_events():
    body = json.dumps(
        {
            "events": [
                {
                    "type": "message",
                    "webhookEventId": "E1",
                    "replyToken": "abc",
                    "timestamp": 1732060800000,
                    "message": {"type": "text", "id": "M1", "text": "hello"},
                    "source": {"type": "group", "groupId": "G", "userId": "U"},
                },
                {
                    "type": "message",
                    "webhookEventId": "E2",
                    "replyToken": "abc",
                    "message": {"type": "image", "id": "M2"},
                    "source": {"type": "group", "groupId": "G", "userId": "U"},
                },
                {
                    "type": "postback",
                    "webhookEventId": "E3",
                    "replyToken": "def",
                    "postback": {"data": "action=answer&value=OK&postId=M1"},
                    "source": {"type": "user", "userId": "U"},
                },
                {
                    "type": "follow",
                    "webhookEventId": "E4",
                    "source": {"type": "user", "userId": "U"},
                },
            ]
        }
    )

    events = parse_events(body)

    assert len(events) == 2
    message, postback = events
    assert isinstance(message, models.MessageEvent)
    assert message.event_id == "E1"
    assert message.message_id == "M1"
    assert message.text == "hello"
    assert message.conversation_id == "G"
    assert message.user_id == "U"
    assert isinstance(postback, models.PostbackEvent)
    assert postback.data == "action=answer&value=OK&postId=M1"
    assert postback.conversation_id == ""


def test_parse_events_rejects_invalid_json():
    with pytest.raises(ValueError):
        parse_events("{not json")


def test_verify_signature_success_and_failure():
    secret = "topsecret"
    body = "{}"
    digest = hmac.new(secret.encode(), body.encode(), hashlib.sha256).digest()
    signature = base64.b64encode(digest).decode()

    verify_signature(secret, body, signature)

    with pytest.raises(SignatureVerificationError):
        verify_signature(secret, body, "invalid")
    with pytest.raises(SignatureVerificationError):
        verify_signature(secret, body, None)


def test_parse_events_skips_non_object_entries():
    body = json.dumps(
        {
            "events": [
                "x",
                42,
                {
                    "type": "message",
                    "webhookEventId": "E2",
                    "message": {"type": "text", "id": "M2", "text": "hi"},
                    "source": {"type": "user", "userId": "U1"},
                },
            ]
        }
    )

    events = parse_events(body)

    assert [evt.event_id for evt in events] == ["E2"]


def test_parse_events_tolerates_wrongly_shaped_fields():
    body = json.dumps(
        {
            "events": [
                {"type": "message", "webhookEventId": "E1", "source": "not-a-dict", "message": {"type": "text", "text": "hi"}},
                {"type": "message", "webhookEventId": "E2", "message": "not-a-dict"},
                {"type": "postback", "webhookEventId": "E3", "postback": ["data"]},
            ]
        }
    )

    events = parse_events(body)

    assert len(events) == 1
    assert events[0].event_id == "E1"
    assert events[0].conversation_id == ""
    assert events[0].user_id is None


def test_parse_events_rejects_non_array_events():
    with pytest.raises(ValueError):
        parse_events(json.dumps({"events": {"type": "message"}}))
