"""Utterance consolidation: merge consecutive same-speaker finals.

Final recognition events for the active speaker are buffered. The buffer is
flushed into one :class:`ConsolidatedUtterance` when the speaker changes
(before the new speaker's line is appended) or when the recognition source
signals an utterance end. All state lives on the instance and is read fresh
on every event, so a consolidator must be driven by exactly one ordered
event stream.
"""

from __future__ import annotations

import logging

from src.transcript.log import TranscriptLog
from src.transcript.models import (
    ConsolidatedUtterance,
    FlushTrigger,
    RecognitionEvent,
    TranscriptLine,
)

logger = logging.getLogger(__name__)


class UtteranceConsolidator:
    """Per-session state machine feeding a :class:`TranscriptLog`."""

    def __init__(self, log: TranscriptLog) -> None:
        self.log = log
        self.current_speaker_id = 0
        self.collected_texts: list[str] = []
        self.interim: RecognitionEvent | None = None

    def handle(self, event: RecognitionEvent) -> list[TranscriptLine | ConsolidatedUtterance]:
        """Route one event and return the log entries it produced."""
        before = len(self.log)
        if event.is_final:
            self.on_final_recognition(event)
        else:
            self.on_interim_recognition(event)
        if event.utterance_end_marker:
            self.on_utterance_end(event.end_offset_seconds)
        return self.log.entries[before:]

    def on_final_recognition(self, event: RecognitionEvent) -> TranscriptLine:
        if event.speaker_id != self.current_speaker_id:
            self.flush(FlushTrigger.SPEAKER_CHANGE, new_speaker_id=event.speaker_id)

        line = self.log.append_line(event.speaker_id, event.text)
        self.collected_texts.append(event.text)
        self.interim = None
        return line

    def on_interim_recognition(self, event: RecognitionEvent) -> None:
        self.interim = event

    def on_utterance_end(self, offset_seconds: float | None) -> ConsolidatedUtterance | None:
        self.log.mark_last_line_utterance_end(offset_seconds)
        return self.flush(FlushTrigger.UTTERANCE_END)

    def flush(
        self,
        trigger: FlushTrigger,
        new_speaker_id: int | None = None,
    ) -> ConsolidatedUtterance | None:
        """Emit the buffered text as one utterance and reset the buffer.

        The speaker switch is recorded even when there is nothing to flush.
        """
        utterance: ConsolidatedUtterance | None = None
        if self.collected_texts:
            utterance = ConsolidatedUtterance(
                speaker_id=self.current_speaker_id,
                text=" ".join(self.collected_texts),
                trigger=trigger,
            )
            self.log.append_utterance(utterance)
            self.collected_texts = []
            logger.debug(
                "Flushed %s utterance for speaker %d (%d chars)",
                trigger.value,
                utterance.speaker_id,
                len(utterance.text),
            )

        if new_speaker_id is not None:
            self.current_speaker_id = new_speaker_id
        return utterance

    def stop(self, force_flush: bool = True) -> ConsolidatedUtterance | None:
        """Discard the pending interim and optionally flush buffered text."""
        self.interim = None
        if force_flush:
            return self.flush(FlushTrigger.STOP)
        self.collected_texts = []
        return None
