from __future__ import annotations

from typing import Optional


class TranslationError(RuntimeError):
    """翻訳パイプラインで発生するエラーの基底クラス。"""


class QuotaExceededError(TranslationError):
    """Raised internally when a model answers HTTP 429."""

    def __init__(self, model: str, detail: str = "") -> None:
        super().__init__(f"Gemini model {model} is rate limited: {detail}".rstrip(": "))
        self.model = model
        self.detail = detail


class BackendFatalError(TranslationError):
    """フォールバック対象外のエラー。呼び出し全体を終了させる。"""

    def __init__(self, model: str, status_code: Optional[int], detail: str = "") -> None:
        super().__init__(f"Gemini model {model} failed with status {status_code}: {detail}".rstrip(": "))
        self.model = model
        self.status_code = status_code
        self.detail = detail


class EmptyResponseError(BackendFatalError):
    """Gemini returned 200 without a usable candidate."""


class AllModelsFailedError(TranslationError):
    """全モデル候補がレート制限で使えなかった。"""

    def __init__(self, last_error: Optional[QuotaExceededError]) -> None:
        super().__init__("All Gemini model candidates are rate limited")
        self.last_error = last_error
