"""Live meeting WebSocket: recognition events in, transcript updates out.

Client -> server frames:

- JSON recognition payloads (see ``src.transcript.adapter``)
- ``{"type": "start"}`` / ``{"type": "stop"}`` to toggle recording
- ``{"type": "ask", "question": "..."}`` for the chat panel
- binary frames: audio chunks for the recognition connection

Server -> client frames are ``{"type": <kind>, "data": {...}}`` where kind is
one of ``snapshot``, ``state``, ``line``, ``utterance``, ``interim``,
``utterance_end``, ``summary``, ``message`` or ``error``, plus bare
``{"type": "KeepAlive"}`` frames for the browser to forward to the vendor.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from src.live.connection import ClientRelayConnection
from src.live.registry import SessionRegistry
from src.live.session import InvalidTransition, MeetingSession

logger = logging.getLogger(__name__)

router = APIRouter()


def _snapshot(session: MeetingSession) -> dict[str, Any]:
    return {
        "state": session.state.value,
        "entries": [entry.to_dict() for entry in session.log.entries],
        "messages": [message.to_dict() for message in session.messages],
    }


async def _handle_control(
    websocket: WebSocket, session: MeetingSession, frame: dict[str, Any]
) -> bool:
    """Apply a control frame. Returns False if *frame* is not a control frame."""
    kind = frame.get("type")
    if kind == "start":
        await session.connect(ClientRelayConnection(websocket))
        await session.open()
    elif kind == "stop":
        await session.stop()
    elif kind == "ask":
        question = str(frame.get("question") or "").strip()
        if not question:
            await websocket.send_json({"type": "error", "data": {"detail": "Empty question"}})
        else:
            session.spawn(session.ask(question))
    else:
        return False
    return True


@router.websocket("/ws/meetings/{meeting_id}/live")
async def live_meeting(websocket: WebSocket, meeting_id: str) -> None:
    await websocket.accept()
    registry: SessionRegistry = websocket.app.state.sessions
    session = await registry.acquire(meeting_id)

    async def send_update(kind: str, payload: dict[str, Any]) -> None:
        await websocket.send_json({"type": kind, "data": payload})

    session.add_listener(send_update)
    await send_update("snapshot", _snapshot(session))
    logger.info(
        "Meeting %s: live client connected (%d connected)",
        meeting_id,
        registry.holders(meeting_id),
    )

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break

            if message.get("bytes") is not None:
                await session.send_audio(message["bytes"])
                continue

            text = message.get("text")
            if not text:
                continue
            try:
                frame = json.loads(text)
            except json.JSONDecodeError:
                await send_update("error", {"detail": "Frames must be JSON objects"})
                continue
            if not isinstance(frame, dict):
                await send_update("error", {"detail": "Frames must be JSON objects"})
                continue

            try:
                if not await _handle_control(websocket, session, frame):
                    session.submit(frame)
            except InvalidTransition as exc:
                await send_update("error", {"detail": str(exc)})
    except WebSocketDisconnect:
        pass
    finally:
        logger.info("Meeting %s: live client disconnected", meeting_id)
        session.remove_listener(send_update)
        owned = session.connection
        if isinstance(owned, ClientRelayConnection) and owned.websocket is websocket:
            # The departing client was relaying recognition events for the meeting.
            await session.stop()
        await registry.release(meeting_id)
