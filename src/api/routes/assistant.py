"""Stateless LLM endpoints: window summarization and transcript Q&A."""

from __future__ import annotations

import asyncio
import logging

import anthropic
import openai
from fastapi import APIRouter, HTTPException

from src.api.models import AnswerRequest, AnswerResponse, SummarizeRequest, SummarizeResponse
from src.chat.answering import answer_question
from src.llm import LLMResponseError
from src.summarization.summarizer import summarize_lines

logger = logging.getLogger(__name__)

router = APIRouter()

# Upstream LLM failures map to 503.
LLM_ERRORS = (anthropic.APIError, openai.APIError, LLMResponseError)


@router.post("/api/summarize", response_model=SummarizeResponse)
async def summarize(request: SummarizeRequest) -> SummarizeResponse:
    """Summarize a window of transcript lines, using earlier summaries as context."""
    if not request.lines:
        raise HTTPException(status_code=400, detail="No transcript lines to summarize")

    lines = [(line.speaker, line.text) for line in request.lines]
    try:
        summary = await asyncio.to_thread(summarize_lines, lines, request.past_summaries)
    except LLM_ERRORS as exc:
        logger.warning("Summarization failed: %s", exc)
        raise HTTPException(status_code=503, detail="Failed to get summary") from exc

    return SummarizeResponse(summary=summary)


@router.post("/api/answer", response_model=AnswerResponse)
async def answer(request: AnswerRequest) -> AnswerResponse:
    """Answer a question about the supplied transcript."""
    question = request.question or ""
    logger.info(
        "Answer request: question=%d chars, transcript=%d chars",
        len(question),
        len(request.transcript),
    )
    try:
        text = await asyncio.to_thread(answer_question, question, request.transcript)
    except LLM_ERRORS as exc:
        logger.warning("Question answering failed: %s", exc)
        raise HTTPException(status_code=503, detail="Failed to get answer") from exc

    return AnswerResponse(answer=text)
