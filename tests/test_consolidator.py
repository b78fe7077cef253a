"""Tests for the utterance consolidation state machine."""

from __future__ import annotations

from src.transcript.consolidator import UtteranceConsolidator
from src.transcript.log import TranscriptLog
from src.transcript.models import (
    ConsolidatedUtterance,
    FlushTrigger,
    RecognitionEvent,
    TranscriptLine,
)


def _final(speaker: int, text: str) -> RecognitionEvent:
    return RecognitionEvent(is_final=True, speaker_id=speaker, text=text)


def _interim(speaker: int, text: str) -> RecognitionEvent:
    return RecognitionEvent(is_final=False, speaker_id=speaker, text=text)


def _consolidator() -> UtteranceConsolidator:
    return UtteranceConsolidator(TranscriptLog())


class TestBuffering:
    def test_same_speaker_never_flushes_on_its_own(self) -> None:
        c = _consolidator()
        for text in ["one", "two", "three", "four"]:
            c.on_final_recognition(_final(0, text))

        assert c.log.utterances == []
        assert c.collected_texts == ["one", "two", "three", "four"]
        assert c.log.line_count == 4

    def test_utterance_end_flushes_buffer_in_arrival_order(self) -> None:
        c = _consolidator()
        for text in ["one", "two", "three"]:
            c.on_final_recognition(_final(0, text))

        utterance = c.on_utterance_end(3.0)

        assert utterance == ConsolidatedUtterance(0, "one two three", FlushTrigger.UTTERANCE_END)
        assert c.log.utterances == [utterance]
        assert c.collected_texts == []

    def test_speaker_change_flushes_exactly_once(self) -> None:
        c = _consolidator()
        c.on_final_recognition(_final(0, "a"))
        c.on_final_recognition(_final(0, "b"))
        c.on_final_recognition(_final(1, "c"))

        assert c.log.utterances == [ConsolidatedUtterance(0, "a b", FlushTrigger.SPEAKER_CHANGE)]
        assert c.collected_texts == ["c"]
        assert c.current_speaker_id == 1


class TestOrdering:
    def test_flush_precedes_new_speaker_line(self) -> None:
        c = _consolidator()
        c.on_final_recognition(_final(0, "hi"))
        c.on_final_recognition(_final(1, "there"))

        entries = c.log.entries
        assert len(entries) == 3
        assert isinstance(entries[0], TranscriptLine)
        assert (entries[0].speaker_id, entries[0].text) == (0, "hi")
        assert entries[1] == ConsolidatedUtterance(0, "hi", FlushTrigger.SPEAKER_CHANGE)
        assert isinstance(entries[2], TranscriptLine)
        assert (entries[2].speaker_id, entries[2].text) == (1, "there")

    def test_good_morning_scenario(self) -> None:
        c = _consolidator()
        c.on_final_recognition(_final(0, "good morning"))
        c.on_final_recognition(_final(0, "everyone"))
        c.on_utterance_end(1.75)
        c.on_final_recognition(_final(1, "hi there"))

        entries = c.log.entries
        assert len(entries) == 4

        first, second, consolidated, third = entries
        assert isinstance(first, TranscriptLine)
        assert (first.speaker_id, first.text, first.is_utterance_end) == (0, "good morning", False)
        assert isinstance(second, TranscriptLine)
        assert (second.speaker_id, second.text) == (0, "everyone")
        assert second.is_utterance_end is True
        assert second.end_offset_seconds == 1.75
        assert consolidated == ConsolidatedUtterance(
            0, "good morning everyone", FlushTrigger.UTTERANCE_END
        )
        assert isinstance(third, TranscriptLine)
        assert (third.speaker_id, third.text) == (1, "hi there")

    def test_utterance_end_then_speaker_change_does_not_double_flush(self) -> None:
        c = _consolidator()
        c.on_final_recognition(_final(0, "done"))
        c.on_utterance_end(None)
        c.on_final_recognition(_final(1, "next"))

        assert len(c.log.utterances) == 1


class TestEdgeCases:
    def test_consecutive_speaker_changes_with_empty_buffer(self) -> None:
        c = _consolidator()
        assert c.flush(FlushTrigger.SPEAKER_CHANGE, new_speaker_id=2) is None
        assert c.flush(FlushTrigger.SPEAKER_CHANGE, new_speaker_id=5) is None

        assert c.log.utterances == []
        assert c.current_speaker_id == 5

    def test_first_line_from_non_zero_speaker_records_switch(self) -> None:
        c = _consolidator()
        c.on_final_recognition(_final(3, "hello"))

        assert c.log.utterances == []
        assert c.current_speaker_id == 3

    def test_utterance_end_with_empty_buffer_still_flags_prior_line(self) -> None:
        log = TranscriptLog()
        log.hydrate([(0, "from an earlier session")])
        c = UtteranceConsolidator(log)

        assert c.on_utterance_end(9.5) is None
        assert log.utterances == []
        assert log.lines[-1].is_utterance_end is True
        assert log.lines[-1].end_offset_seconds == 9.5

    def test_repeated_utterance_end_is_a_noop(self) -> None:
        c = _consolidator()
        c.on_final_recognition(_final(0, "x"))
        c.on_utterance_end(1.0)
        assert c.on_utterance_end(2.0) is None
        assert len(c.log.utterances) == 1
        # The latest entry is the consolidated utterance, so no line is re-flagged.
        assert c.log.lines[-1].end_offset_seconds == 1.0


class TestInterim:
    def test_interim_is_replaced_and_never_buffered(self) -> None:
        c = _consolidator()
        c.on_interim_recognition(_interim(0, "hel"))
        c.on_interim_recognition(_interim(0, "hello wor"))

        assert c.interim == _interim(0, "hello wor")
        assert c.collected_texts == []
        assert c.log.line_count == 0

    def test_final_clears_interim(self) -> None:
        c = _consolidator()
        c.on_interim_recognition(_interim(0, "hello wor"))
        c.on_final_recognition(_final(0, "hello world"))
        assert c.interim is None


class TestHandle:
    def test_handle_returns_new_entries(self) -> None:
        c = _consolidator()
        c.handle(_final(0, "hi"))
        produced = c.handle(_final(1, "there"))

        assert [type(e) for e in produced] == [ConsolidatedUtterance, TranscriptLine]

    def test_handle_applies_utterance_end_marker(self) -> None:
        c = _consolidator()
        produced = c.handle(
            RecognitionEvent(
                is_final=True,
                speaker_id=0,
                text="bye",
                utterance_end_marker=True,
                end_offset_seconds=2.0,
            )
        )
        assert isinstance(produced[0], TranscriptLine)
        assert produced[0].is_utterance_end is True
        assert produced[1] == ConsolidatedUtterance(0, "bye", FlushTrigger.UTTERANCE_END)


class TestStop:
    def test_stop_force_flushes(self) -> None:
        c = _consolidator()
        c.on_final_recognition(_final(0, "unfinished"))
        c.on_interim_recognition(_interim(0, "thought"))

        utterance = c.stop(force_flush=True)

        assert utterance == ConsolidatedUtterance(0, "unfinished", FlushTrigger.STOP)
        assert c.interim is None
        assert c.collected_texts == []

    def test_stop_discard_drops_buffer_without_flushing(self) -> None:
        c = _consolidator()
        c.on_final_recognition(_final(0, "unfinished"))

        assert c.stop(force_flush=False) is None
        assert c.collected_texts == []
        assert c.log.utterances == []

    def test_resume_after_stop_does_not_reflush_stale_text(self) -> None:
        c = _consolidator()
        c.on_final_recognition(_final(0, "before"))
        c.stop(force_flush=True)
        c.on_final_recognition(_final(0, "after"))
        c.on_utterance_end(None)

        assert [u.text for u in c.log.utterances] == ["before", "after"]
