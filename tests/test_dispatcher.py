from unittest.mock import MagicMock

from src.app.dispatcher import WebhookDispatcher
from src.app.handlers.message_handler import MessageHandler
from src.app.handlers.postback_handler import PostbackHandler
from src.domain import models
from src.domain.models import ModelOutcome
from src.domain.services.event_deduplicator import EventDeduplicator
from src.domain.services.history_service import HistoryService
from src.domain.services.translation_client import TranslationClient
from src.domain.services.translation_service import TranslationService
from src.infra.memory_cache import InMemoryDedupCache

from helpers.fakes import (
    InMemoryKeyValueStore,
    InMemoryRecordRepository,
    RecordingLineClient,
    ScriptedBackend,
    instant_backoff,
)


def _message(event_id, text, message_id="M1"):
    return models.MessageEvent(
        event_type="message",
        event_id=event_id,
        reply_token=f"rpt-{event_id}",
        conversation_id="G1",
        user_id="U1",
        sender_type="group",
        timestamp=1732060800000,
        message_id=message_id,
        text=text,
    )


def _postback(event_id, data, user_id="U1"):
    return models.PostbackEvent(
        event_type="postback",
        event_id=event_id,
        reply_token=f"rpt-{event_id}",
        conversation_id="G1",
        user_id=user_id,
        sender_type="group",
        timestamp=1732060800000,
        data=data,
    )


def _dispatcher():
    backend = ScriptedBackend({"model-a": [ModelOutcome.success("Polish: Cześć\nEnglish: Hello")]})
    history = HistoryService(InMemoryKeyValueStore())
    service = TranslationService(TranslationClient(backend, ["model-a"], backoff=instant_backoff()), history)
    line = RecordingLineClient()
    repo = InMemoryRecordRepository()
    handlers = {
        "message": MessageHandler(line, service, history, repo, results_base_url="https://example.com/results"),
        "postback": PostbackHandler(repo),
    }
    dispatcher = WebhookDispatcher(handlers, EventDeduplicator(InMemoryDedupCache()))
    return dispatcher, line, repo


def test_redelivered_event_is_processed_once():
    dispatcher, line, repo = _dispatcher()
    event = _message("E1", "こんにちは")

    dispatcher.handle([event])
    dispatcher.handle([event])

    assert len(line.replies) == 1
    assert len(repo.posts) == 1


def test_latest_answer_overwrites_previous_one():
    dispatcher, _, repo = _dispatcher()

    dispatcher.handle(
        [
            _postback("E1", "action=answer&value=OK&postId=P1"),
            _postback("E2", "action=answer&value=NG&postId=P1"),
        ]
    )

    assert list(repo.answers) == [("P1", "U1")]
    assert repo.answers[("P1", "U1")].value == "NG"


def test_failures_do_not_escape_and_later_events_run():
    failing = MagicMock()
    failing.handle.side_effect = RuntimeError("boom")
    ok = MagicMock()
    dispatcher = WebhookDispatcher({"message": failing, "postback": ok}, EventDeduplicator(InMemoryDedupCache()))

    dispatcher.handle([_message("E1", "Hello"), _postback("E2", "action=answer&value=OK&postId=P1")])

    failing.handle.assert_called_once()
    ok.handle.assert_called_once()


def test_event_is_marked_before_processing():
    failing = MagicMock()
    failing.handle.side_effect = RuntimeError("crash mid-processing")
    dispatcher = WebhookDispatcher({"message": failing}, EventDeduplicator(InMemoryDedupCache()))
    event = _message("E1", "Hello")

    dispatcher.handle([event])
    dispatcher.handle([event])

    failing.handle.assert_called_once()


def test_dedup_cache_failure_still_processes_event():
    cache = MagicMock()
    cache.add_if_absent.side_effect = RuntimeError("cache down")
    handler = MagicMock()
    dispatcher = WebhookDispatcher({"message": handler}, EventDeduplicator(cache))

    dispatcher.handle([_message("E1", "Hello")])

    handler.handle.assert_called_once()


def test_unknown_event_types_are_ignored():
    handler = MagicMock()
    dispatcher = WebhookDispatcher({"message": handler}, EventDeduplicator(InMemoryDedupCache()))

    dispatcher.handle([_postback("E1", "action=answer&value=OK&postId=P1")])

    handler.handle.assert_not_called()
