"""Shared fixtures: in-memory persistence and a recording recognition connection."""

from __future__ import annotations

import itertools
from collections.abc import Iterator
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from fastapi.testclient import TestClient

from src.api.main import app


class FakePersistence:
    """In-memory stand-in for the Supabase persistence adapter."""

    def __init__(self) -> None:
        self.lines: dict[str, list[dict[str, Any]]] = {}
        self.messages: dict[str, list[dict[str, Any]]] = {}
        self._ids = itertools.count(1)
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)
        self.fail_writes = False

    def _tick(self) -> str:
        self._clock += timedelta(milliseconds=1)
        return self._clock.isoformat()

    def append_transcript_line(self, meeting_id: str, speaker_id: int, text: str) -> dict[str, Any]:
        if self.fail_writes:
            raise ConnectionError("database unavailable")
        row = {
            "id": next(self._ids),
            "meeting_id": meeting_id,
            "speaker": speaker_id,
            "text": text,
            "created_at": self._tick(),
        }
        self.lines.setdefault(meeting_id, []).append(row)
        return row

    def append_message(
        self,
        meeting_id: str,
        type: str,
        content: str,
        title: str | None = None,
        quoted_message: str | None = None,
        timestamp: str | None = None,
    ) -> dict[str, Any]:
        if self.fail_writes:
            raise ConnectionError("database unavailable")
        row = {
            "id": next(self._ids),
            "meeting_id": meeting_id,
            "type": type,
            "content": content,
            "title": title,
            "quoted_message": quoted_message,
            "timestamp": timestamp or self._tick(),
        }
        self.messages.setdefault(meeting_id, []).append(row)
        return row

    def list_transcript_lines(self, meeting_id: str) -> list[dict[str, Any]]:
        return sorted(self.lines.get(meeting_id, []), key=lambda r: (r["created_at"], r["id"]))

    def list_messages(self, meeting_id: str) -> list[dict[str, Any]]:
        return sorted(self.messages.get(meeting_id, []), key=lambda r: r["timestamp"])


class FakeConnection:
    """Recognition connection that records what the session sends."""

    def __init__(self) -> None:
        self.audio: list[bytes] = []
        self.keepalives = 0
        self.closed = False

    async def send_audio(self, chunk: bytes) -> None:
        self.audio.append(chunk)

    async def keep_alive(self) -> None:
        self.keepalives += 1

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def persistence() -> FakePersistence:
    return FakePersistence()


@pytest.fixture
def connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def client() -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client
