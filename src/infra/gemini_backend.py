from __future__ import annotations

import logging

import requests

from ..domain.models import ModelOutcome
from ..domain.ports import ModelBackendPort

logger = logging.getLogger(__name__)

BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"
SERVICE_UNAVAILABLE = 503
TOO_MANY_REQUESTS = 429


class GeminiModelBackend(ModelBackendPort):
    """Gemini への I/O を担当するインフラ層のアダプタ。

    HTTP ステータスを ``ModelOutcome`` のタグに変換するだけで、再試行や
    フォールバックの判断は ``TranslationClient`` に任せる。
    """

    def __init__(self, api_key: str, timeout_seconds: int = 20, temperature: float = 0.2) -> None:
        self._api_key = api_key
        self._timeout = timeout_seconds
        self._temperature = temperature
        self._session = requests.Session()

    def generate(self, model: str, prompt: str) -> ModelOutcome:
        url = f"{BASE_URL}/{model}:generateContent"
        payload = self._build_payload(prompt)

        try:
            response = self._session.post(
                url,
                params={"key": self._api_key},
                json=payload,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            logger.warning("Gemini request failed | model=%s error=%s", model, exc)
            return ModelOutcome.fatal(None, str(exc))

        status = response.status_code
        if status == SERVICE_UNAVAILABLE:
            return ModelOutcome.transient(status, _excerpt(response))
        if status == TOO_MANY_REQUESTS:
            return ModelOutcome.quota_exceeded(status, _excerpt(response))
        if not 200 <= status < 300:
            logger.error("Gemini returned error | model=%s status=%s body=%s", model, status, _excerpt(response))
            return ModelOutcome.fatal(status, _excerpt(response))

        try:
            body = response.json()
        except ValueError:
            logger.error("Gemini response is not JSON | model=%s", model)
            return ModelOutcome.success("")
        return ModelOutcome.success(_extract_text(body))

    def _build_payload(self, prompt: str) -> dict:
        return {
            "contents": [
                {
                    "role": "user",
                    "parts": [{"text": prompt}],
                }
            ],
            "generationConfig": {
                "temperature": self._temperature,
            },
        }


def _extract_text(body: dict) -> str:
    try:
        parts = body["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        logger.warning("Unexpected Gemini response format: %s", str(body)[:500])
        return ""
    return "".join(part.get("text", "") for part in parts if isinstance(part, dict))


def _excerpt(response) -> str:
    return (response.text or "")[:500]
