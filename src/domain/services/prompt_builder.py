from __future__ import annotations

from typing import List, Sequence

from ..models import HistoryEntry
from .language_detection_service import ENGLISH, JAPANESE

STYLE_GUIDANCE = """
Style guidelines:
* This is a casual workplace group chat between Japanese and Polish colleagues; use a natural, polite register that fits everyday work conversation.
* Preserve the speaker's tone (friendly, urgent, apologetic, joking) and any emoji.
* Prefer conveying the intended nuance over a literal word-for-word rendering.
* A slightly longer translation is acceptable when it makes the meaning clearer.
* Do not add explanations, notes, or the original text to the output.
""".strip()


def target_language_for(source_language: str) -> str:
    # 日本語 → 英語(+ポーランド語)、それ以外はすべて日本語へ
    return ENGLISH if source_language == JAPANESE else JAPANESE


class PromptBuilder:
    """翻訳プロンプトを組み立てる。入力が同じなら出力も常に同じ。"""

    def build(self, message: str, history: Sequence[HistoryEntry], source_language: str) -> str:
        sections: List[str] = []
        if source_language == JAPANESE:
            sections.append(
                "Translate the following Japanese message into both Polish and English.\n"
                "Respond with exactly two lines in this format and nothing else:\n"
                "Polish: <Polish translation>\n"
                "English: <English translation>"
            )
        else:
            sections.append(
                "Translate the following message into natural Japanese.\n"
                "Respond with the Japanese translation only."
            )

        if history:
            lines = [f"{index}. {entry.message}" for index, entry in enumerate(history, start=1)]
            sections.append(
                "Recent messages from the same person, oldest first (reference only, do not translate):\n"
                + "\n".join(lines)
                + "\nUse these messages to resolve pronouns and omitted subjects or objects in the message."
            )

        sections.append(STYLE_GUIDANCE)
        sections.append(f"Message:\n{message}")
        return "\n\n".join(sections)
