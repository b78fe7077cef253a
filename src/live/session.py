"""One live meeting: recognition events in, transcript, summaries and answers out.

A session owns every piece of per-meeting state (transcript log,
consolidator, summary scheduler, message log, keep-alive, event queue), so
any number of meetings can run side by side in one process.

Lifecycle::

    IDLE -> CONNECTING -> STREAMING -> STOPPED
                 ^                        |
                 +------------------------+   (resume)

Recognition events are applied strictly in arrival order by a single worker
task. Summaries, answers and persistence writes run as background tasks so a
slow remote call never stalls consolidation.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable, Coroutine
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from src.chat.answering import answer_question
from src.chat.responder import AnswerFn, QueryResponder
from src.live.connection import RecognitionConnection
from src.live.keepalive import KeepAlive
from src.pipeline_config import PipelineConfig, StopPolicy
from src.storage.persistence import PersistenceAdapter
from src.summarization.scheduler import SummarizationScheduler, SummarizeFn
from src.summarization.summarizer import summarize_window
from src.transcript.adapter import parse_utterance_end, to_recognition_event
from src.transcript.consolidator import UtteranceConsolidator
from src.transcript.log import TranscriptLog
from src.transcript.models import (
    ChatMessage,
    ConsolidatedUtterance,
    FlushTrigger,
    MessageRole,
    SummaryRecord,
    TranscriptLine,
)

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[str, dict[str, Any]], Awaitable[None]]

SUMMARY_TITLE = "Lines {start}-{end}"
_SUMMARY_TITLE_RE = re.compile(r"^Lines (\d+)-(\d+)$")


class SessionState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    STOPPED = "stopped"


_TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.IDLE: frozenset({SessionState.CONNECTING}),
    SessionState.CONNECTING: frozenset({SessionState.STREAMING, SessionState.STOPPED}),
    SessionState.STREAMING: frozenset({SessionState.STOPPED}),
    SessionState.STOPPED: frozenset({SessionState.CONNECTING}),
}


class InvalidTransition(RuntimeError):
    """A session was asked to move to a state it cannot reach from its current one."""


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            pass
    return datetime.now(timezone.utc)


def _marked_line(
    produced: list[TranscriptLine | ConsolidatedUtterance],
    previous: TranscriptLine | ConsolidatedUtterance | None,
) -> TranscriptLine | None:
    """The raw line an utterance-end signal just flagged, if any."""
    lines = [entry for entry in produced if isinstance(entry, TranscriptLine)]
    candidate = lines[-1] if lines else previous
    if isinstance(candidate, TranscriptLine) and candidate.is_utterance_end:
        return candidate
    return None


def _summary_window(title: str | None, previous_end: int, window_size: int) -> tuple[int, int]:
    """Line window ``[start, end)`` of a stored summary.

    Read from its ``Lines a-b`` title; untitled summaries are assumed to cover
    the window following the previous one.
    """
    match = _SUMMARY_TITLE_RE.match(title or "")
    if match:
        return int(match.group(1)) - 1, int(match.group(2))
    return previous_end, previous_end + window_size


def message_from_row(row: dict[str, Any]) -> ChatMessage:
    """Build a ChatMessage from a stored ``meeting_messages`` row."""
    return ChatMessage(
        role=MessageRole(row["type"]),
        content=row.get("content") or "",
        timestamp=_parse_timestamp(row.get("timestamp")),
        quoted_message=row.get("quoted_message"),
        title=row.get("title"),
    )


class MeetingSession:
    """Session-scoped live pipeline for a single meeting."""

    def __init__(
        self,
        meeting_id: str,
        persistence: PersistenceAdapter | None = None,
        config: PipelineConfig | None = None,
        summarize: SummarizeFn = summarize_window,
        answer: AnswerFn = answer_question,
        on_update: UpdateCallback | None = None,
    ) -> None:
        self.meeting_id = meeting_id
        self.config = config or PipelineConfig.from_settings()
        self.state = SessionState.IDLE
        self.log = TranscriptLog()
        self.consolidator = UtteranceConsolidator(self.log)
        self.scheduler = SummarizationScheduler(
            self.log, summarize, self.config, on_summary=self._on_summary
        )
        self.responder = QueryResponder(answer)
        self.messages: list[ChatMessage] = []
        self._listeners: list[UpdateCallback] = [on_update] if on_update is not None else []

        self._persistence = persistence
        self._persist_lock = asyncio.Lock()
        self._connection: RecognitionConnection | None = None
        self._keepalive: KeepAlive | None = None
        self._queue: asyncio.Queue[dict[str, Any] | None] | None = None
        self._worker: asyncio.Task[None] | None = None
        self._background: set[asyncio.Task[Any]] = set()

    @property
    def connection(self) -> RecognitionConnection | None:
        return self._connection

    # ── State machine ────────────────────────────────────────────────────

    def _transition(self, target: SessionState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise InvalidTransition(
                f"Meeting {self.meeting_id}: cannot go from {self.state.value} to {target.value}"
            )
        logger.info("Meeting %s: %s -> %s", self.meeting_id, self.state.value, target.value)
        self.state = target

    async def connect(self, connection: RecognitionConnection) -> None:
        """Attach a recognition connection and start its keep-alive."""
        self._transition(SessionState.CONNECTING)
        self._connection = connection
        self._keepalive = KeepAlive(connection, self.config.keepalive_interval)
        self._keepalive.start()
        await self._emit("state", {"state": self.state.value})

    async def open(self) -> None:
        """The connection is live: start consuming recognition events."""
        self._transition(SessionState.STREAMING)
        self._queue = asyncio.Queue()
        self._worker = asyncio.create_task(self._drain(self._queue))
        await self._emit("state", {"state": self.state.value})

    async def stop(self) -> ConsolidatedUtterance | None:
        """Stop streaming: drain queued events, then tear down timers and the connection.

        The pending interim result is always discarded. Buffered same-speaker
        text is flushed or dropped according to the stop policy, so a later
        resume never re-flushes stale text.
        """
        if self.state in (SessionState.IDLE, SessionState.STOPPED):
            return None
        self._transition(SessionState.STOPPED)

        queue, worker = self._queue, self._worker
        self._queue = self._worker = None
        if queue is not None and worker is not None:
            queue.put_nowait(None)
            await worker

        if self._keepalive is not None:
            await self._keepalive.stop()
            self._keepalive = None

        utterance = self.consolidator.stop(force_flush=self.config.stop_policy is StopPolicy.FLUSH)
        if utterance is not None:
            await self._emit("utterance", utterance.to_dict())

        if self._connection is not None:
            try:
                await self._connection.close()
            except Exception:
                logger.warning("Meeting %s: error closing connection", self.meeting_id, exc_info=True)
            self._connection = None

        await self._emit("state", {"state": self.state.value})
        return utterance

    async def aclose(self) -> None:
        """Stop the session and wait for in-flight background work."""
        await self.stop()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    # ── Inbound traffic ──────────────────────────────────────────────────

    async def send_audio(self, chunk: bytes) -> bool:
        """Forward an audio chunk to the recognition connection.

        Zero-byte chunks are dropped. Returns whether the chunk was sent.
        """
        if not chunk:
            return False
        if self.state is not SessionState.STREAMING or self._connection is None:
            return False
        await self._connection.send_audio(chunk)
        if self._keepalive is not None:
            self._keepalive.note_audio_sent()
        return True

    def submit(self, payload: dict[str, Any]) -> bool:
        """Queue one recognition payload for in-order processing."""
        if self.state is not SessionState.STREAMING or self._queue is None:
            logger.debug("Meeting %s: dropping event while %s", self.meeting_id, self.state.value)
            return False
        self._queue.put_nowait(payload)
        return True

    async def _drain(self, queue: asyncio.Queue[dict[str, Any] | None]) -> None:
        while True:
            payload = await queue.get()
            try:
                if payload is None:
                    return
                await self.process(payload)
            except Exception:
                logger.exception("Meeting %s: failed to process recognition event", self.meeting_id)
            finally:
                queue.task_done()

    async def process(self, payload: dict[str, Any]) -> None:
        """Apply one recognition payload to the transcript."""
        entries = self.log.entries
        previous = entries[-1] if entries else None

        event = to_recognition_event(payload)
        if event is None:
            offset = parse_utterance_end(payload)
            if offset is None:
                return
            before = len(self.log)
            self.consolidator.on_utterance_end(offset)
            await self._publish(self.log.entries[before:], previous, offset)
            return

        produced = self.consolidator.handle(event)
        if not event.is_final:
            await self._emit("interim", {"speaker": event.speaker_id, "text": event.text})
        offset = event.end_offset_seconds if event.utterance_end_marker else None
        await self._publish(produced, previous if event.utterance_end_marker else None, offset)

        count = self.log.line_count
        if event.is_final and self.scheduler.should_trigger(count):
            self.spawn(self.scheduler.on_transcript_growth(count))

    async def _publish(
        self,
        produced: list[TranscriptLine | ConsolidatedUtterance],
        previous: TranscriptLine | ConsolidatedUtterance | None,
        offset: float | None,
    ) -> None:
        """Emit new log entries in order, announcing a marked utterance end.

        The ``utterance_end`` update goes out right before the utterance it
        flushed, or after the new entries when the buffer was empty.
        """
        marked = _marked_line(produced, previous)
        for entry in produced:
            if isinstance(entry, TranscriptLine):
                await self._emit("line", entry.to_dict())
                self.spawn(self._persist_line(entry))
                continue
            if marked is not None and entry.trigger is FlushTrigger.UTTERANCE_END:
                await self._emit_utterance_end(marked, offset)
                marked = None
            await self._emit("utterance", entry.to_dict())
        if marked is not None:
            await self._emit_utterance_end(marked, offset)

    async def _emit_utterance_end(self, line: TranscriptLine, offset: float | None) -> None:
        await self._emit(
            "utterance_end",
            {"sequence_index": line.sequence_index, "last_word_end": offset},
        )

    # ── Chat and summaries ───────────────────────────────────────────────

    async def ask(self, question: str) -> ChatMessage:
        """Answer a question against the transcript so far.

        Never raises for service failures; the reply carries an apology instead.
        """
        start = len(self.messages)
        reply = await self.responder.ask(question, self.log, self.messages)
        for message in self.messages[start:]:
            await self._emit("message", message.to_dict())
            self.spawn(self._persist_message(message))
        return reply

    async def _on_summary(self, record: SummaryRecord) -> None:
        message = ChatMessage(
            role=MessageRole.SUMMARY,
            content=record.content,
            timestamp=record.created_at,
            title=SUMMARY_TITLE.format(
                start=record.window_start_index + 1, end=record.window_end_index
            ),
        )
        self.messages.append(message)
        await self._emit("summary", message.to_dict())
        await self._persist_message(message)

    # ── Persistence ──────────────────────────────────────────────────────

    async def hydrate(self) -> None:
        """Rebuild in-memory state from stored lines and messages."""
        if self._persistence is None:
            return
        if self.state is not SessionState.IDLE or len(self.log):
            raise InvalidTransition(f"Meeting {self.meeting_id}: can only hydrate a fresh session")

        rows = await asyncio.to_thread(self._persistence.list_transcript_lines, self.meeting_id)
        message_rows = await asyncio.to_thread(self._persistence.list_messages, self.meeting_id)

        self.log.hydrate((int(r.get("speaker") or 0), str(r.get("text") or "")) for r in rows)
        self.messages = [message_from_row(r) for r in message_rows]

        n = self.config.window_size
        records: list[SummaryRecord] = []
        end = 0
        for message in self.messages:
            if message.role is not MessageRole.SUMMARY:
                continue
            start, end = _summary_window(message.title, end, n)
            records.append(
                SummaryRecord(
                    content=message.content,
                    window_start_index=start,
                    window_end_index=end,
                    created_at=message.timestamp,
                )
            )
        self.scheduler.hydrate(records, self.log.line_count)
        logger.info(
            "Meeting %s: hydrated %d lines, %d messages",
            self.meeting_id,
            self.log.line_count,
            len(self.messages),
        )

    async def _persist_line(self, line: TranscriptLine) -> None:
        if self._persistence is None:
            return
        async with self._persist_lock:
            try:
                await asyncio.to_thread(
                    self._persistence.append_transcript_line,
                    self.meeting_id,
                    line.speaker_id,
                    line.text,
                )
            except Exception:
                logger.exception(
                    "Meeting %s: failed to persist line %d", self.meeting_id, line.sequence_index
                )

    async def _persist_message(self, message: ChatMessage) -> None:
        if self._persistence is None:
            return
        async with self._persist_lock:
            try:
                await asyncio.to_thread(
                    self._persistence.append_message,
                    self.meeting_id,
                    message.role.value,
                    message.content,
                    message.title,
                    message.quoted_message,
                    message.timestamp.isoformat(),
                )
            except Exception:
                logger.exception(
                    "Meeting %s: failed to persist %s message", self.meeting_id, message.role.value
                )

    # ── Helpers ──────────────────────────────────────────────────────────

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        """Run *coro* in the background, keeping a reference until it finishes."""
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    def add_listener(self, callback: UpdateCallback) -> None:
        self._listeners.append(callback)

    def remove_listener(self, callback: UpdateCallback) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    async def _emit(self, kind: str, payload: dict[str, Any]) -> None:
        for listener in list(self._listeners):
            try:
                await listener(kind, payload)
            except Exception:
                logger.warning("Meeting %s: dropped %s update", self.meeting_id, kind, exc_info=True)
