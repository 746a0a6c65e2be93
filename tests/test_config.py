import pytest

from src.config import DEFAULT_GEMINI_MODELS, get_settings

REQUIRED = {
    "LINE_CHANNEL_SECRET": "secret",
    "LINE_CHANNEL_ACCESS_TOKEN": "token",
    "GEMINI_API_KEY": "gemini",
    "NEON_DATABASE_URL": "postgresql://localhost/test",
    "RESULTS_BASE_URL": "https://example.com/results",
}


@pytest.fixture(autouse=True)
def _clear_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def _set_env(monkeypatch, **extra):
    for key in ("GEMINI_MODELS", "HISTORY_MAX_ENTRIES", "DEDUP_TTL_SECONDS", "DEDUP_BACKEND"):
        monkeypatch.delenv(key, raising=False)
    for key, value in {**REQUIRED, **extra}.items():
        monkeypatch.setenv(key, value)


def test_defaults(monkeypatch):
    _set_env(monkeypatch)

    settings = get_settings()

    assert settings.gemini_models == DEFAULT_GEMINI_MODELS
    assert settings.history_max_entries == 2
    assert settings.dedup_ttl_seconds == 600
    assert settings.translation_max_attempts == 3
    assert (settings.backoff_min_seconds, settings.backoff_max_seconds) == (2.0, 5.0)
    assert settings.dedup_backend == "neon"


def test_model_list_is_parsed_in_order(monkeypatch):
    _set_env(monkeypatch, GEMINI_MODELS=" model-b , model-a,, ", DEDUP_BACKEND="MEMORY")

    settings = get_settings()

    assert settings.gemini_models == ("model-b", "model-a")
    assert settings.dedup_backend == "memory"


def test_missing_required_variables(monkeypatch):
    _set_env(monkeypatch)
    monkeypatch.delenv("GEMINI_API_KEY")
    monkeypatch.delenv("NEON_DATABASE_URL")

    with pytest.raises(RuntimeError, match="GEMINI_API_KEY, NEON_DATABASE_URL"):
        get_settings()


def test_results_base_url_is_required(monkeypatch):
    _set_env(monkeypatch)
    monkeypatch.delenv("RESULTS_BASE_URL")

    with pytest.raises(RuntimeError, match="RESULTS_BASE_URL"):
        get_settings()
