from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Tuple

DEFAULT_GEMINI_MODELS = ("gemini-2.5-flash", "gemini-2.5-flash-lite", "gemini-2.0-flash")


@dataclass(frozen=True)
class Settings:
    line_channel_secret: str
    line_channel_access_token: str
    gemini_api_key: str
    neon_database_url: str
    results_base_url: str
    gemini_models: Tuple[str, ...] = DEFAULT_GEMINI_MODELS
    gemini_timeout_seconds: int = 20
    translation_max_attempts: int = 3
    backoff_min_seconds: float = 2.0
    backoff_max_seconds: float = 5.0
    history_max_entries: int = 2
    dedup_ttl_seconds: int = 600
    dedup_backend: str = "neon"
    log_level: str = "INFO"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """環境変数から設定を読み込む薄いラッパー。"""

    env = os.environ
    required = {
        "LINE_CHANNEL_SECRET": env.get("LINE_CHANNEL_SECRET"),
        "LINE_CHANNEL_ACCESS_TOKEN": env.get("LINE_CHANNEL_ACCESS_TOKEN"),
        "GEMINI_API_KEY": env.get("GEMINI_API_KEY"),
        "NEON_DATABASE_URL": env.get("NEON_DATABASE_URL"),
        "RESULTS_BASE_URL": env.get("RESULTS_BASE_URL"),
    }

    missing = [key for key, value in required.items() if not value]
    if missing:
        raise RuntimeError(f"Missing required environment variables: {', '.join(missing)}")

    return Settings(
        line_channel_secret=required["LINE_CHANNEL_SECRET"],
        line_channel_access_token=required["LINE_CHANNEL_ACCESS_TOKEN"],
        gemini_api_key=required["GEMINI_API_KEY"],
        neon_database_url=required["NEON_DATABASE_URL"],
        results_base_url=required["RESULTS_BASE_URL"],
        gemini_models=_parse_models(env.get("GEMINI_MODELS")),
        gemini_timeout_seconds=int(env.get("GEMINI_TIMEOUT_SECONDS", "20")),
        translation_max_attempts=int(env.get("TRANSLATION_MAX_ATTEMPTS", "3")),
        backoff_min_seconds=float(env.get("BACKOFF_MIN_SECONDS", "2.0")),
        backoff_max_seconds=float(env.get("BACKOFF_MAX_SECONDS", "5.0")),
        history_max_entries=int(env.get("HISTORY_MAX_ENTRIES", "2")),
        dedup_ttl_seconds=int(env.get("DEDUP_TTL_SECONDS", "600")),
        dedup_backend=env.get("DEDUP_BACKEND", "neon").lower(),
        log_level=env.get("LOG_LEVEL", "INFO"),
    )


def _parse_models(raw: str | None) -> Tuple[str, ...]:
    # 優先度順のカンマ区切り。空なら既定の候補を使う
    if not raw:
        return DEFAULT_GEMINI_MODELS
    models = tuple(item.strip() for item in raw.split(",") if item.strip())
    return models or DEFAULT_GEMINI_MODELS
