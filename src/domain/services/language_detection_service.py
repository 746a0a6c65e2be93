from __future__ import annotations

import re

JAPANESE = "ja"
POLISH = "pl"
ENGLISH = "en"

# ひらがな・カタカナ（半角含む）・CJK 統合漢字
_JAPANESE_PATTERN = re.compile("[぀-ゟ゠-ヿㇰ-ㇿｦ-ﾟ㐀-䶿一-鿿]")
_POLISH_PATTERN = re.compile(r"[ąćęłńóśźżĄĆĘŁŃÓŚŹŻ]")


class LanguageDetectionService:
    """メッセージ言語を判定するための薄いユーティリティ。

    判定は文字種のみで行う。日本語の文字が 1 文字でもあれば ``ja`` を優先し、
    次にポーランド語固有のダイアクリティカルマーク、どちらも無ければ ``en``。
    """

    def detect(self, text: str) -> str:
        if not text:
            return ENGLISH
        if _JAPANESE_PATTERN.search(text):
            return JAPANESE
        if _POLISH_PATTERN.search(text):
            return POLISH
        return ENGLISH
