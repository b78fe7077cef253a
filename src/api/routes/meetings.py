"""Meeting endpoints: create, list, and per-meeting transcript and message logs."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException
from postgrest.exceptions import APIError

from src.api.models import (
    MeetingCreated,
    MeetingListItem,
    MessageIn,
    MessageOut,
    TranscriptLineIn,
    TranscriptLineOut,
)
from src.storage.persistence import get_persistence

router = APIRouter()


@router.post("/api/meetings", response_model=MeetingCreated)
async def create_meeting() -> MeetingCreated:
    """Start a new meeting."""
    try:
        row = get_persistence().create_meeting()
    except APIError as exc:
        raise HTTPException(status_code=500, detail="Failed to create meeting") from exc
    return MeetingCreated(id=row["id"], start_time=row.get("start_time"))


@router.get("/api/meetings", response_model=list[MeetingListItem])
async def list_meetings() -> list[MeetingListItem]:
    """List all meetings ordered by start time (newest first)."""
    return [MeetingListItem(**m) for m in get_persistence().list_meetings()]


@router.get("/api/meetings/{meeting_id}/transcript", response_model=list[TranscriptLineOut])
async def get_transcript(meeting_id: str) -> list[TranscriptLineOut]:
    """All transcript lines for a meeting, oldest first."""
    try:
        rows = get_persistence().list_transcript_lines(meeting_id)
    except APIError as exc:
        raise HTTPException(status_code=500, detail="Failed to fetch transcript lines") from exc
    return [
        TranscriptLineOut(
            id=r.get("id"),
            speaker=int(r.get("speaker") or 0),
            text=r.get("text") or "",
            created_at=r.get("created_at"),
        )
        for r in rows
    ]


@router.post("/api/meetings/{meeting_id}/transcript", response_model=TranscriptLineOut)
async def append_transcript_line(meeting_id: str, body: TranscriptLineIn) -> TranscriptLineOut:
    """Store one finalized transcript line."""
    persistence = get_persistence()
    if not persistence.meeting_exists(meeting_id):
        raise HTTPException(status_code=404, detail="Meeting not found")
    try:
        row = persistence.append_transcript_line(meeting_id, body.speaker, body.text)
    except APIError as exc:
        raise HTTPException(status_code=500, detail="Failed to create transcript line") from exc
    return TranscriptLineOut(
        id=row.get("id"),
        speaker=int(row.get("speaker", body.speaker)),
        text=row.get("text", body.text),
        created_at=row.get("created_at"),
    )


@router.get("/api/meetings/{meeting_id}/messages", response_model=list[MessageOut])
async def get_messages(meeting_id: str) -> list[MessageOut]:
    """All summary, user, and AI messages for a meeting, oldest first."""
    try:
        rows = get_persistence().list_messages(meeting_id)
    except APIError as exc:
        raise HTTPException(status_code=500, detail="Failed to fetch messages") from exc
    return [MessageOut(**r) for r in rows]


@router.post("/api/meetings/{meeting_id}/messages", response_model=MessageOut)
async def append_message(meeting_id: str, body: MessageIn) -> MessageOut:
    """Store one chat or summary message."""
    persistence = get_persistence()
    if not persistence.meeting_exists(meeting_id):
        raise HTTPException(status_code=404, detail="Meeting not found")
    try:
        row = persistence.append_message(
            meeting_id,
            body.type,
            body.content,
            title=body.title,
            quoted_message=body.quoted_message,
            timestamp=body.timestamp,
        )
    except APIError as exc:
        raise HTTPException(status_code=500, detail="Failed to create meeting message") from exc
    return MessageOut(**row)
