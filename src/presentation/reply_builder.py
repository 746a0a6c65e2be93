from __future__ import annotations

from typing import List, Optional
from urllib.parse import urlencode

POLL_VALUES = ("OK", "NG", "N/A")
MAX_BUTTONS_TEXT = 160
MAX_ALT_TEXT = 400


def encode_answer_data(value: str, post_id: str) -> str:
    return f"action=answer&value={value}&postId={post_id}"


def build_results_url(base_url: str, post_id: str) -> str:
    if not base_url:
        raise ValueError("results base URL is not configured")
    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}{urlencode({'postId': post_id})}"


class ReplyBuilder:
    """LINE 送信用メッセージ辞書を組み立てるユーティリティ。"""

    @staticmethod
    def build_text(text: str) -> dict:
        return {"type": "text", "text": text}

    @staticmethod
    def build_template(template: dict, alt_text: Optional[str] = None) -> dict:
        if not template:
            return {}
        return {
            "type": "template",
            "altText": (alt_text or template.get("altText") or "")[:MAX_ALT_TEXT],
            "template": template,
        }

    @classmethod
    def build_poll_selector(cls, text: str, post_id: str, results_base_url: str) -> dict:
        """OK / NG / N/A の 3 ボタンと結果ページへのリンクを持つ buttons テンプレート。"""
        actions: List[dict] = [
            {
                "type": "postback",
                "label": value,
                "data": encode_answer_data(value, post_id),
                "displayText": value,
            }
            for value in POLL_VALUES
        ]
        actions.append({"type": "uri", "label": "Results", "uri": build_results_url(results_base_url, post_id)})

        body = (text or "Poll").strip()
        template = {
            "type": "buttons",
            "text": body[:MAX_BUTTONS_TEXT],
            "actions": actions,
        }
        return cls.build_template(template, alt_text=f"[Poll] {body}")
