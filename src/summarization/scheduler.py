"""Windowed, idempotent summarization trigger for a growing transcript."""

from __future__ import annotations

import asyncio
import bisect
import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence

from src.pipeline_config import PipelineConfig, SummaryFailurePolicy
from src.summarization.summarizer import summarize_window
from src.transcript.log import TranscriptLog
from src.transcript.models import SummaryRecord, TranscriptLine

logger = logging.getLogger(__name__)

SummarizeFn = Callable[[Sequence[TranscriptLine], Sequence[str]], str]
SummaryCallback = Callable[[SummaryRecord], Awaitable[None]]


def _window_end(record: SummaryRecord) -> int:
    return record.window_end_index


class SummarizationScheduler:
    """Fire one summarization per multiple of the window size.

    ``last_summarized_count`` is the watermark: once a threshold has been
    attempted it is never attempted again, whether the call succeeded or not.
    The watermark is claimed before the remote call is awaited, so
    re-evaluating growth at the same count while a call is in flight is a
    no-op.
    """

    def __init__(
        self,
        log: TranscriptLog,
        summarize: SummarizeFn = summarize_window,
        config: PipelineConfig | None = None,
        on_summary: SummaryCallback | None = None,
    ) -> None:
        self.log = log
        self.config = config or PipelineConfig()
        self.last_summarized_count = 0
        self.summaries: list[SummaryRecord] = []
        self._summarize = summarize
        self._on_summary = on_summary

    @property
    def window_size(self) -> int:
        return self.config.window_size

    def should_trigger(self, count: int) -> bool:
        return count > 0 and count % self.window_size == 0 and count != self.last_summarized_count

    def past_summaries(self) -> list[str]:
        keep = self.config.context_summaries
        if keep <= 0:
            return []
        return [record.content for record in self.summaries[-keep:]]

    async def on_transcript_growth(self, count: int) -> SummaryRecord | None:
        """Summarize the latest window if *count* crosses a new threshold."""
        if not self.should_trigger(count):
            return None

        self.last_summarized_count = count
        start = count - self.window_size
        window = self.log.window(start, count)
        past = self.past_summaries()

        attempts = 2 if self.config.failure_policy is SummaryFailurePolicy.RETRY_ONCE else 1
        content: str | None = None
        for attempt in range(1, attempts + 1):
            try:
                content = await asyncio.to_thread(self._summarize, window, past)
                break
            except Exception:
                logger.exception(
                    "Summarization failed for lines [%d, %d) (attempt %d/%d)",
                    start,
                    count,
                    attempt,
                    attempts,
                )

        if content is None:
            logger.warning("Skipping summary window [%d, %d)", start, count)
            return None

        record = SummaryRecord(content=content, window_start_index=start, window_end_index=count)
        # Windows can finish out of order; history stays ordered by window.
        bisect.insort(self.summaries, record, key=_window_end)
        logger.info("Summarized lines [%d, %d)", start, count)

        if self._on_summary is not None:
            await self._on_summary(record)
        return record

    def hydrate(self, records: Iterable[SummaryRecord], line_count: int) -> None:
        """Restore prior summaries and the watermark after a reload."""
        self.summaries = sorted(records, key=_window_end)
        self.last_summarized_count = line_count - (line_count % self.window_size)
