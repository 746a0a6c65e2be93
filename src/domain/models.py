from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple


# === Webhook domain events ===
@dataclass(frozen=True)
class BaseEvent:
    event_type: str
    event_id: str
    reply_token: Optional[str]
    conversation_id: str
    user_id: Optional[str]
    sender_type: str
    timestamp: int = 0


@dataclass(frozen=True)
class MessageEvent(BaseEvent):
    message_id: str = ""
    text: str = ""


@dataclass(frozen=True)
class PostbackEvent(BaseEvent):
    data: str = ""


# === Translation context ===
@dataclass(frozen=True)
class HistoryEntry:
    message: str
    language: str
    captured_at: datetime


HistoryLog = Tuple[HistoryEntry, ...]


@dataclass(frozen=True)
class TranslationRequest:
    message: str
    history: HistoryLog
    source_language: str
    target_language: str


@dataclass(frozen=True)
class TranslationResult:
    translated_text: str
    prompt_used: str
    source_language: str = ""
    history_count: int = 0


# === Model backend outcomes ===
class OutcomeKind(str, Enum):
    SUCCESS = "success"
    TRANSIENT = "transient"
    QUOTA_EXCEEDED = "quota_exceeded"
    FATAL = "fatal"


@dataclass(frozen=True)
class ModelOutcome:
    kind: OutcomeKind
    text: str = ""
    status_code: Optional[int] = None
    detail: str = ""

    @classmethod
    def success(cls, text: str) -> "ModelOutcome":
        return cls(kind=OutcomeKind.SUCCESS, text=text, status_code=200)

    @classmethod
    def transient(cls, status_code: int = 503, detail: str = "") -> "ModelOutcome":
        return cls(kind=OutcomeKind.TRANSIENT, status_code=status_code, detail=detail)

    @classmethod
    def quota_exceeded(cls, status_code: int = 429, detail: str = "") -> "ModelOutcome":
        return cls(kind=OutcomeKind.QUOTA_EXCEEDED, status_code=status_code, detail=detail)

    @classmethod
    def fatal(cls, status_code: Optional[int], detail: str = "") -> "ModelOutcome":
        return cls(kind=OutcomeKind.FATAL, status_code=status_code, detail=detail)


# === Persisted records ===
@dataclass(frozen=True)
class PostRecord:
    post_id: str
    conversation_id: str
    user_id: str
    sender_name: str
    original_text: str
    translated_text: str
    language: str
    has_poll: bool
    created_at: datetime


@dataclass(frozen=True)
class AnswerRecord:
    post_id: str
    user_id: str
    value: str
    answered_at: datetime


@dataclass(frozen=True)
class TranslationLogRecord:
    timestamp: datetime
    user_id: str
    language: str
    original_message: str
    translation: str
    prompt: str
    history_count: int
