from unittest.mock import MagicMock

from src.app.handlers.postback_handler import PostbackHandler, decode_postback_data
from src.domain import models
from src.presentation.reply_builder import encode_answer_data


def _event(data, user_id="U1", timestamp=0):
    return models.PostbackEvent(
        event_type="postback",
        event_id="E1",
        reply_token="rpt",
        conversation_id="G1",
        user_id=user_id,
        sender_type="group",
        timestamp=timestamp,
        data=data,
    )


def test_decode_answer_payload():
    assert decode_postback_data(encode_answer_data("N/A", "P1")) == {
        "action": "answer",
        "value": "N/A",
        "postId": "P1",
    }


def test_decode_empty_payload():
    assert decode_postback_data("") is None


def test_answer_is_upserted():
    repo = MagicMock()

    PostbackHandler(repo).handle(_event("action=answer&value=OK&postId=P1", timestamp=1732060800000))

    repo.upsert_answer.assert_called_once()
    answer = repo.upsert_answer.call_args.args[0]
    assert (answer.post_id, answer.user_id, answer.value) == ("P1", "U1", "OK")
    assert answer.answered_at.year == 2024


def test_invalid_values_are_ignored():
    repo = MagicMock()
    handler = PostbackHandler(repo)

    handler.handle(_event("action=answer&value=MAYBE&postId=P1"))
    handler.handle(_event("action=answer&value=OK"))
    handler.handle(_event("action=other&value=OK&postId=P1"))
    handler.handle(_event("action=answer&value=OK&postId=P1", user_id=None))

    repo.upsert_answer.assert_not_called()
