"""On-demand question answering for the chat panel."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from src.chat.answering import answer_question
from src.transcript.log import TranscriptLog
from src.transcript.models import ChatMessage, MessageRole

logger = logging.getLogger(__name__)

AnswerFn = Callable[[str, str], str]

FALLBACK_ANSWER = "Sorry, I couldn't answer that right now. Please try again in a moment."


class QueryResponder:
    """Turn a user question into a user message and a quoted AI reply.

    Failures of the answering service never propagate: the reply becomes
    :data:`FALLBACK_ANSWER` so the chat never enters an error state.
    """

    def __init__(self, answer: AnswerFn = answer_question) -> None:
        self._answer = answer

    async def ask(
        self,
        question: str,
        transcript: TranscriptLog,
        messages: list[ChatMessage],
    ) -> ChatMessage:
        messages.append(ChatMessage(role=MessageRole.USER, content=question))

        context = transcript.as_text()
        try:
            answer = await asyncio.to_thread(self._answer, question, context)
        except Exception:
            logger.exception("Question answering failed (%d transcript lines)", transcript.line_count)
            answer = FALLBACK_ANSWER

        reply = ChatMessage(role=MessageRole.AI, content=answer, quoted_message=question)
        messages.append(reply)
        return reply
