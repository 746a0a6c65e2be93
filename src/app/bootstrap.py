from __future__ import annotations

import logging

from ..config import Settings, get_settings
from ..domain.ports import DedupCachePort
from ..domain.services.event_deduplicator import EventDeduplicator
from ..domain.services.history_service import HistoryService
from ..domain.services.language_detection_service import LanguageDetectionService
from ..domain.services.prompt_builder import PromptBuilder
from ..domain.services.retry_policy import BackoffPolicy
from ..domain.services.translation_client import TranslationClient
from ..domain.services.translation_service import TranslationService
from ..infra.gemini_backend import GeminiModelBackend
from ..infra.line_api import LineApiAdapter
from ..infra.memory_cache import InMemoryDedupCache
from ..infra.neon_client import NeonClient, get_client
from ..infra.neon_repositories import NeonDedupCache, NeonKeyValueStore, NeonRecordRepository
from .dispatcher import WebhookDispatcher
from .handlers.message_handler import MessageHandler
from .handlers.postback_handler import PostbackHandler

logger = logging.getLogger(__name__)


def build_dispatcher(settings: Settings | None = None) -> WebhookDispatcher:
    settings = settings or get_settings()

    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, force=True)

    line_client = LineApiAdapter(settings.line_channel_access_token)
    db_client = get_client(settings.neon_database_url)
    db_client.ensure_schema()
    repo = NeonRecordRepository(db_client)

    history = HistoryService(NeonKeyValueStore(db_client), max_entries=settings.history_max_entries)
    translation_client = TranslationClient(
        GeminiModelBackend(
            api_key=settings.gemini_api_key,
            timeout_seconds=settings.gemini_timeout_seconds,
        ),
        settings.gemini_models,
        backoff=BackoffPolicy(
            max_attempts=settings.translation_max_attempts,
            min_seconds=settings.backoff_min_seconds,
            max_seconds=settings.backoff_max_seconds,
        ),
    )
    translation_service = TranslationService(
        translation_client,
        history,
        language_detector=LanguageDetectionService(),
        prompt_builder=PromptBuilder(),
    )

    message_handler = MessageHandler(
        line_client=line_client,
        translation_service=translation_service,
        history=history,
        repo=repo,
        results_base_url=settings.results_base_url,
    )
    postback_handler = PostbackHandler(repo)

    deduplicator = EventDeduplicator(
        _build_dedup_cache(settings, db_client),
        ttl_seconds=settings.dedup_ttl_seconds,
    )
    handlers = {
        "message": message_handler,
        "postback": postback_handler,
    }
    logger.info(
        "Dispatcher ready | models=%s dedup=%s",
        list(settings.gemini_models),
        settings.dedup_backend,
    )
    return WebhookDispatcher(handlers, deduplicator)


def _build_dedup_cache(settings: Settings, db_client: NeonClient) -> DedupCachePort:
    if settings.dedup_backend == "memory":
        return InMemoryDedupCache()
    return NeonDedupCache(db_client)
