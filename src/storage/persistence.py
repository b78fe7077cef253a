"""Supabase storage for meetings, transcript lines, and chat messages."""

from __future__ import annotations

from typing import Any, Protocol, cast

from postgrest import CountMethod
from supabase import Client, create_client

from src.config import settings

MEETINGS_TABLE = "meetings"
TRANSCRIPTS_TABLE = "meeting_transcripts"
MESSAGES_TABLE = "meeting_messages"

MESSAGE_TYPES = ("summary", "user", "ai")


def get_supabase_client() -> Client:
    """Create and return a Supabase client from settings."""
    return create_client(settings.supabase_url, settings.supabase_key)


def get_persistence() -> SupabasePersistence:
    """Return a persistence adapter bound to a fresh Supabase client."""
    return SupabasePersistence(get_supabase_client())


class PersistenceAdapter(Protocol):
    """Long-term owner of transcript lines and messages across sessions."""

    def append_transcript_line(self, meeting_id: str, speaker_id: int, text: str) -> dict[str, Any]: ...

    def append_message(
        self,
        meeting_id: str,
        type: str,
        content: str,
        title: str | None = None,
        quoted_message: str | None = None,
        timestamp: str | None = None,
    ) -> dict[str, Any]: ...

    def list_transcript_lines(self, meeting_id: str) -> list[dict[str, Any]]: ...

    def list_messages(self, meeting_id: str) -> list[dict[str, Any]]: ...


class SupabasePersistence:
    """Persistence adapter backed by Supabase (PostgREST) tables."""

    def __init__(self, client: Client) -> None:
        self.client = client

    def create_meeting(self) -> dict[str, Any]:
        """Insert a meeting row and return ``{"id", "start_time"}``."""
        result = self.client.table(MEETINGS_TABLE).insert({}).execute()
        row = cast(dict[str, Any], result.data[0])
        return {"id": str(row["id"]), "start_time": row.get("start_time")}

    def list_meetings(self) -> list[dict[str, Any]]:
        """List meetings newest first with their transcript line counts."""
        result = (
            self.client.table(MEETINGS_TABLE).select("*").order("start_time", desc=True).execute()
        )
        meetings: list[dict[str, Any]] = []
        for m in cast(list[dict[str, Any]], result.data):
            lines = (
                self.client.table(TRANSCRIPTS_TABLE)
                .select("id", count=CountMethod.exact)
                .eq("meeting_id", m["id"])
                .execute()
            )
            meetings.append(
                {
                    "id": str(m["id"]),
                    "start_time": m.get("start_time"),
                    "transcript_lines": lines.count or 0,
                }
            )
        return meetings

    def meeting_exists(self, meeting_id: str) -> bool:
        result = self.client.table(MEETINGS_TABLE).select("id").eq("id", meeting_id).execute()
        return bool(result.data)

    def append_transcript_line(self, meeting_id: str, speaker_id: int, text: str) -> dict[str, Any]:
        result = (
            self.client.table(TRANSCRIPTS_TABLE)
            .insert({"meeting_id": meeting_id, "speaker": speaker_id, "text": text})
            .execute()
        )
        return cast(dict[str, Any], result.data[0])

    def append_message(
        self,
        meeting_id: str,
        type: str,
        content: str,
        title: str | None = None,
        quoted_message: str | None = None,
        timestamp: str | None = None,
    ) -> dict[str, Any]:
        if type not in MESSAGE_TYPES:
            msg = f"Unknown message type: {type!r}. Supported: {list(MESSAGE_TYPES)}"
            raise ValueError(msg)

        row: dict[str, Any] = {
            "meeting_id": meeting_id,
            "type": type,
            "content": content,
            "title": title,
            "quoted_message": quoted_message,
        }
        # Leave timestamp unset so the database default (now()) applies.
        if timestamp:
            row["timestamp"] = timestamp

        result = self.client.table(MESSAGES_TABLE).insert(row).execute()
        return cast(dict[str, Any], result.data[0])

    def list_transcript_lines(self, meeting_id: str) -> list[dict[str, Any]]:
        """All transcript lines for a meeting, oldest first."""
        result = (
            self.client.table(TRANSCRIPTS_TABLE)
            .select("*")
            .eq("meeting_id", meeting_id)
            .order("created_at")
            .order("id")
            .execute()
        )
        return cast(list[dict[str, Any]], result.data)

    def list_messages(self, meeting_id: str) -> list[dict[str, Any]]:
        """All chat/summary messages for a meeting, oldest first."""
        result = (
            self.client.table(MESSAGES_TABLE)
            .select("*")
            .eq("meeting_id", meeting_id)
            .order("timestamp")
            .execute()
        )
        return cast(list[dict[str, Any]], result.data)
