from __future__ import annotations

import logging
from typing import Dict, Iterable, Protocol

from ..domain import models
from ..domain.services.event_deduplicator import EventDeduplicator

logger = logging.getLogger(__name__)


class Handler(Protocol):
    def handle(self, event: models.BaseEvent) -> None: ...


class WebhookDispatcher:
    """webhook のイベント列を 1 件ずつ順番に処理する。

    同じ webhookEventId は TTL の間 1 回しか処理しない。処理前に印を付けるので、
    途中で落ちた場合は返信が失われる代わりに二重返信は起きない。
    例外は呼び出し元に投げず、ログに残して次のイベントへ進む。
    """

    def __init__(self, handlers: Dict[str, Handler], deduplicator: EventDeduplicator) -> None:
        self._handlers = handlers
        self._dedup = deduplicator

    def handle(self, events: Iterable[models.BaseEvent]) -> None:
        for event in events:
            try:
                self.dispatch(event)
            except Exception:  # pylint: disable=broad-except
                logger.exception(
                    "Failed to process event | type=%s event_id=%s",
                    getattr(event, "event_type", None),
                    getattr(event, "event_id", None),
                )

    def dispatch(self, event: models.BaseEvent) -> None:
        handler = self._handlers.get(event.event_type)
        if not handler:
            logger.debug("No handler for event type %s", event.event_type)
            return

        if self._already_processed(event):
            logger.info("Duplicate event skipped | event_id=%s", event.event_id)
            return

        handler.handle(event)

    def _already_processed(self, event: models.BaseEvent) -> bool:
        if not event.event_id:
            logger.warning("Event without webhookEventId; dedup skipped | type=%s", event.event_type)
            return False
        try:
            return self._dedup.check_and_mark(event.event_id)
        except Exception:  # pylint: disable=broad-except
            # キャッシュ障害時は処理を続行する
            logger.warning("Dedup cache unavailable | event_id=%s", event.event_id, exc_info=True)
            return False
