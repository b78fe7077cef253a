"""Lookup of live meeting sessions by meeting ID."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from src.live.session import MeetingSession

logger = logging.getLogger(__name__)

SessionFactory = Callable[[str], MeetingSession]


class SessionRegistry:
    """Holds one :class:`MeetingSession` per active meeting.

    Every live client acquires the meeting's session and releases it when it
    leaves; the session is closed only when its last holder releases it. New
    sessions are hydrated from persistence on first use so a reload resumes
    where the meeting left off.
    """

    def __init__(self, factory: SessionFactory) -> None:
        self._factory = factory
        self._sessions: dict[str, MeetingSession] = {}
        self._holders: dict[str, int] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def holders(self, meeting_id: str) -> int:
        return self._holders.get(meeting_id, 0)

    async def acquire(self, meeting_id: str) -> MeetingSession:
        """Return the live session for *meeting_id*, creating and hydrating it if needed."""
        lock = self._locks.setdefault(meeting_id, asyncio.Lock())
        async with lock:
            session = self._sessions.get(meeting_id)
            if session is None:
                session = self._factory(meeting_id)
                try:
                    await session.hydrate()
                except Exception:
                    logger.exception(
                        "Meeting %s: hydrate failed; starting with an empty transcript", meeting_id
                    )
                self._sessions[meeting_id] = session
            self._holders[meeting_id] = self._holders.get(meeting_id, 0) + 1
        return session

    async def release(self, meeting_id: str) -> None:
        """Drop one holder; the last one out closes the session."""
        lock = self._locks.setdefault(meeting_id, asyncio.Lock())
        async with lock:
            remaining = self._holders.get(meeting_id, 0) - 1
            if remaining > 0:
                self._holders[meeting_id] = remaining
                logger.info("Meeting %s: %d live client(s) remain", meeting_id, remaining)
                return
            self._holders.pop(meeting_id, None)
            session = self._sessions.pop(meeting_id, None)
            if session is not None:
                await session.aclose()

    async def close_all(self) -> None:
        for meeting_id in list(self._sessions):
            self._holders[meeting_id] = 0
            await self.release(meeting_id)
