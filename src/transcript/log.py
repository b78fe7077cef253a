"""Append-only, ordered transcript of raw lines and consolidated utterances."""

from __future__ import annotations

from collections.abc import Iterable

from src.transcript.models import ConsolidatedUtterance, TranscriptLine

TranscriptEntry = TranscriptLine | ConsolidatedUtterance


class TranscriptLog:
    """Source of truth for display and summarization input.

    Raw lines carry a strictly increasing ``sequence_index``. Consolidated
    utterances are interleaved in the order they were produced.
    """

    def __init__(self) -> None:
        self._entries: list[TranscriptEntry] = []
        self._lines: list[TranscriptLine] = []
        self._next_index = 0

    @property
    def entries(self) -> list[TranscriptEntry]:
        return list(self._entries)

    @property
    def lines(self) -> list[TranscriptLine]:
        """Finalized raw lines only, in sequence order."""
        return list(self._lines)

    @property
    def utterances(self) -> list[ConsolidatedUtterance]:
        return [e for e in self._entries if isinstance(e, ConsolidatedUtterance)]

    @property
    def line_count(self) -> int:
        return len(self._lines)

    def __len__(self) -> int:
        return len(self._entries)

    def append_line(self, speaker_id: int, text: str) -> TranscriptLine:
        line = TranscriptLine(speaker_id=speaker_id, text=text, sequence_index=self._next_index)
        self._next_index += 1
        self._entries.append(line)
        self._lines.append(line)
        return line

    def append_utterance(self, utterance: ConsolidatedUtterance) -> None:
        self._entries.append(utterance)

    def mark_last_line_utterance_end(self, offset_seconds: float | None) -> TranscriptLine | None:
        """Flag the most recent entry as an utterance end, if it is a raw line."""
        if not self._entries:
            return None
        last = self._entries[-1]
        if not isinstance(last, TranscriptLine):
            return None
        last.is_utterance_end = True
        last.end_offset_seconds = offset_seconds
        return last

    def window(self, start: int, end: int) -> list[TranscriptLine]:
        """Finalized lines in ``[start, end)`` by position in the log."""
        return self._lines[max(start, 0) : end]

    def as_text(self) -> str:
        return "\n".join(line.text for line in self._lines)

    def hydrate(self, lines: Iterable[tuple[int, str]]) -> None:
        """Re-seed the log from persisted ``(speaker_id, text)`` pairs.

        Lines must be supplied in stored order. Only valid on an empty log.
        """
        if self._entries:
            raise ValueError("Cannot hydrate a transcript log that already has entries")
        for speaker_id, text in lines:
            self.append_line(speaker_id, text)
