from __future__ import annotations

import logging
from typing import Optional, Sequence

from ..errors import AllModelsFailedError, BackendFatalError, EmptyResponseError, QuotaExceededError
from ..models import ModelOutcome, OutcomeKind
from ..ports import ModelBackendPort
from .retry_policy import BackoffPolicy

logger = logging.getLogger(__name__)


class TranslationClient:
    """モデル候補を優先度順に試し、翻訳テキストを 1 つ返す。

    - 503 は同じモデルで最大 ``max_attempts`` 回まで再試行（ランダム待機あり）
    - 429 のときだけ次のモデルへフォールバック
    - それ以外の失敗と空レスポンスは呼び出し全体を即座に失敗させる
    """

    def __init__(
        self,
        backend: ModelBackendPort,
        models: Sequence[str],
        backoff: Optional[BackoffPolicy] = None,
    ) -> None:
        if not models:
            raise ValueError("At least one model candidate is required")
        self._backend = backend
        self._models = tuple(models)
        self._backoff = backoff or BackoffPolicy()

    @property
    def models(self) -> Sequence[str]:
        return self._models

    def call(self, prompt: str) -> str:
        last_quota_error: QuotaExceededError | None = None

        for model in self._models:
            outcome = self._generate_with_retry(model, prompt)

            if outcome.kind is OutcomeKind.QUOTA_EXCEEDED:
                last_quota_error = QuotaExceededError(model, outcome.detail)
                logger.warning("Gemini model rate limited; falling back | model=%s", model)
                continue

            if outcome.kind is not OutcomeKind.SUCCESS:
                raise BackendFatalError(model, outcome.status_code, outcome.detail)

            text = (outcome.text or "").strip()
            if not text:
                raise EmptyResponseError(model, outcome.status_code, "response contained no text")
            logger.info("Gemini translation succeeded | model=%s", model)
            return text

        raise AllModelsFailedError(last_quota_error)

    def _generate_with_retry(self, model: str, prompt: str) -> ModelOutcome:
        attempt = 1
        while True:
            outcome = self._backend.generate(model, prompt)
            if outcome.kind is not OutcomeKind.TRANSIENT:
                return outcome
            if not self._backoff.has_attempts_left(attempt):
                logger.warning(
                    "Gemini model still unavailable after retries | model=%s attempts=%s",
                    model,
                    attempt,
                )
                return outcome
            delay = self._backoff.wait()
            logger.info(
                "Gemini model unavailable; retrying | model=%s attempt=%s delay=%.1fs",
                model,
                attempt,
                delay,
            )
            attempt += 1
