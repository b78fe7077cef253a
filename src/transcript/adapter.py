"""Normalize inbound speech-recognition payloads into RecognitionEvents.

Two payload shapes are accepted:

Normalized (what the live WebSocket clients send)::

    {"isFinal": true, "words": [{"text": "hi", "speakerId": 1}],
     "utteranceEnd": {"lastWordEndOffset": 3.2}}

Vendor results (Deepgram-style live transcription callbacks)::

    {"type": "Results", "is_final": true,
     "channel": {"alternatives": [{"words": [{"word": "hi", "punctuated_word": "Hi,",
                                              "speaker": 1}]}]}}

Standalone utterance-end messages (``{"type": "UtteranceEnd", "last_word_end": 3.2}``)
are handled by :func:`parse_utterance_end`.
"""

from __future__ import annotations

from typing import Any

from src.transcript.models import RecognitionEvent

UTTERANCE_END_TYPE = "UtteranceEnd"


def _coerce_speaker(value: Any) -> int:
    """Diarization label as an int; anything unusable becomes speaker 0."""
    if isinstance(value, bool) or value is None:
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _coerce_offset(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _extract_words(payload: dict[str, Any]) -> list[dict[str, Any]]:
    words: Any = payload.get("words")
    if words is None:
        channel = payload.get("channel")
        if isinstance(channel, dict):
            alternatives = channel.get("alternatives") or []
            if alternatives and isinstance(alternatives[0], dict):
                words = alternatives[0].get("words")
    if not isinstance(words, list):
        return []
    return [w for w in words if isinstance(w, dict)]


def _word_text(word: dict[str, Any]) -> str:
    for key in ("text", "punctuated_word", "word"):
        text = word.get(key)
        if text is not None:
            return str(text).strip()
    return ""


def _word_speaker(word: dict[str, Any]) -> int:
    if "speakerId" in word:
        return _coerce_speaker(word["speakerId"])
    return _coerce_speaker(word.get("speaker"))


def parse_utterance_end(payload: dict[str, Any]) -> float | None:
    """Return the end offset if *payload* carries an utterance-end signal.

    Returns ``None`` when the payload is not an utterance-end signal, and
    ``0.0`` when it is one but carries no usable offset.
    """
    if payload.get("type") == UTTERANCE_END_TYPE:
        offset = _coerce_offset(payload.get("last_word_end"))
        return offset if offset is not None else 0.0

    marker = payload.get("utteranceEnd")
    if isinstance(marker, dict):
        offset = _coerce_offset(marker.get("lastWordEndOffset"))
        return offset if offset is not None else 0.0
    if marker is True:
        return 0.0
    return None


def to_recognition_event(payload: dict[str, Any]) -> RecognitionEvent | None:
    """Map one inbound recognition payload to a RecognitionEvent.

    Produces ``None`` (a no-op) when the payload has no words or no
    recognized text. Malformed fields are defaulted, never raised.
    """
    if not isinstance(payload, dict):
        return None

    words = _extract_words(payload)
    if not words:
        return None

    text = " ".join(t for t in (_word_text(w) for w in words) if t)
    if not text:
        return None

    is_final = payload.get("isFinal")
    if is_final is None:
        is_final = payload.get("is_final", False)

    end_offset = parse_utterance_end(payload)

    return RecognitionEvent(
        is_final=bool(is_final),
        speaker_id=_word_speaker(words[0]),
        text=text,
        utterance_end_marker=end_offset is not None,
        end_offset_seconds=end_offset,
    )
