"""Pydantic request/response schemas for the Live Meeting Assistant API."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

MessageType = Literal["summary", "user", "ai"]


class MeetingCreated(BaseModel):
    """Response body for POST /api/meetings."""

    id: str
    start_time: str | None = None


class MeetingListItem(BaseModel):
    """Summary representation of a meeting for list views."""

    id: str
    start_time: str | None = None
    transcript_lines: int = 0


class TranscriptLineIn(BaseModel):
    """Request body for POST /api/meetings/{id}/transcript."""

    model_config = ConfigDict(strict=True)

    speaker: int
    text: str


class TranscriptLineOut(BaseModel):
    id: str | int | None = None
    speaker: int
    text: str
    created_at: str | None = None


class MessageIn(BaseModel):
    """Request body for POST /api/meetings/{id}/messages."""

    model_config = ConfigDict(populate_by_name=True)

    type: MessageType
    content: str = Field(min_length=1)
    title: str | None = None
    quoted_message: str | None = Field(default=None, alias="quotedMessage")
    timestamp: str | None = None


class MessageOut(BaseModel):
    id: str | int | None = None
    meeting_id: str | None = None
    type: MessageType
    content: str
    title: str | None = None
    quoted_message: str | None = None
    timestamp: str | None = None


class SummaryLine(BaseModel):
    speaker: int = 0
    text: str


class SummarizeRequest(BaseModel):
    """Request body for the /api/summarize endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    lines: list[SummaryLine]
    past_summaries: list[str] = Field(default_factory=list, alias="pastSummaries")


class SummarizeResponse(BaseModel):
    summary: str


class AnswerRequest(BaseModel):
    """Request body for the /api/answer endpoint.

    ``message`` is accepted as an alias of ``question`` for older clients.
    """

    question: str | None = None
    message: str | None = None
    transcript: str = ""

    @model_validator(mode="after")
    def _require_question(self) -> AnswerRequest:
        if self.question is None:
            if self.message is None:
                raise ValueError("question is required")
            self.question = self.message
        return self


class AnswerResponse(BaseModel):
    answer: str
