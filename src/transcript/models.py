"""Data models for the live transcript pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FlushTrigger(str, Enum):
    """Why a speaker buffer was flushed into a consolidated utterance."""

    UTTERANCE_END = "utterance_end"
    SPEAKER_CHANGE = "speaker_change"
    STOP = "stop"


class MessageRole(str, Enum):
    """Kinds of entries in the meeting's chat/message log."""

    USER = "user"
    AI = "ai"
    SUMMARY = "summary"


@dataclass(frozen=True)
class RecognitionEvent:
    """One speech-recognition callback, normalized."""

    is_final: bool
    speaker_id: int
    text: str
    utterance_end_marker: bool = False
    end_offset_seconds: float | None = None


@dataclass
class TranscriptLine:
    """A finalized recognized segment.

    ``text`` and ``speaker_id`` never change after the line is appended;
    only the utterance-end marker may be set later.
    """

    speaker_id: int
    text: str
    sequence_index: int
    is_utterance_end: bool = False
    end_offset_seconds: float | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "type": "transcript",
            "speaker": self.speaker_id,
            "text": self.text,
            "sequence_index": self.sequence_index,
            "is_utterance_end": self.is_utterance_end,
            "last_word_end": self.end_offset_seconds,
        }


@dataclass(frozen=True)
class ConsolidatedUtterance:
    """One or more consecutive same-speaker lines merged together."""

    speaker_id: int
    text: str
    trigger: FlushTrigger

    def to_dict(self) -> dict[str, object]:
        return {
            "type": "consolidated",
            "speaker": self.speaker_id,
            "text": self.text,
            "trigger": self.trigger.value,
        }


@dataclass(frozen=True)
class SummaryRecord:
    """Output of one summarization call over a window of lines."""

    content: str
    window_start_index: int
    window_end_index: int
    created_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class ChatMessage:
    """A user question or an AI/summary response shown in the chat panel."""

    role: MessageRole
    content: str
    timestamp: datetime = field(default_factory=_utcnow)
    quoted_message: str | None = None
    title: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "type": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
            "quoted_message": self.quoted_message,
            "title": self.title,
        }
