import pytest

from src.domain.services.language_detection_service import LanguageDetectionService


@pytest.fixture
def detector():
    return LanguageDetectionService()


@pytest.mark.parametrize(
    "text",
    [
        "こんにちは",
        "カタカナ",
        "漢字",
        "ｶﾀｶﾅ",
        "Hello 世界",
        "Dzień dobry, こんにちは",
        "zażółć gęślą jaźń ですね",
    ],
)
def test_japanese_script_wins(detector, text):
    assert detector.detect(text) == "ja"


@pytest.mark.parametrize("text", ["Dzień dobry", "Łódź", "ZAŻÓŁĆ", "mam na imię Paweł"])
def test_polish_diacritics(detector, text):
    assert detector.detect(text) == "pl"


@pytest.mark.parametrize("text", ["Hello there", "Lunch today?", "12:30 ok", "", "café"])
def test_defaults_to_english(detector, text):
    assert detector.detect(text) == "en"
