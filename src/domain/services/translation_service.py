from __future__ import annotations

import logging

from ..models import TranslationRequest, TranslationResult
from .history_service import HistoryService
from .language_detection_service import LanguageDetectionService
from .prompt_builder import PromptBuilder, target_language_for
from .translation_client import TranslationClient

logger = logging.getLogger(__name__)


class TranslationService:
    """ドメイン層の翻訳ユースケース（言語判定→履歴取得→プロンプト生成→モデル呼び出し）。

    履歴は読み取るだけ。更新は呼び出し側が成功時に明示的に行う。
    """

    def __init__(
        self,
        client: TranslationClient,
        history: HistoryService,
        language_detector: LanguageDetectionService | None = None,
        prompt_builder: PromptBuilder | None = None,
    ) -> None:
        self._client = client
        self._history = history
        self._detector = language_detector or LanguageDetectionService()
        self._prompt_builder = prompt_builder or PromptBuilder()

    def detect_language(self, text: str) -> str:
        return self._detector.detect(text)

    def translate(self, user_key: str, message: str) -> TranslationResult:
        source_language = self._detector.detect(message)
        request = TranslationRequest(
            message=message,
            history=self._history.get(user_key),
            source_language=source_language,
            target_language=target_language_for(source_language),
        )
        prompt = self._prompt_builder.build(request.message, request.history, request.source_language)
        logger.info(
            "Translating message | user=%s source=%s target=%s history=%s",
            user_key,
            request.source_language,
            request.target_language,
            len(request.history),
        )
        translated = self._client.call(prompt)
        return TranslationResult(
            translated_text=translated,
            prompt_used=prompt,
            source_language=source_language,
            history_count=len(request.history),
        )
