"""The seam between a meeting session and its speech-recognition connection."""

from __future__ import annotations

from typing import Protocol

from fastapi import WebSocket
from starlette.websockets import WebSocketState

KEEPALIVE_FRAME = {"type": "KeepAlive"}


class RecognitionConnection(Protocol):
    """Outbound half of a live recognition connection.

    Implementations are never handed zero-byte audio chunks.
    """

    async def send_audio(self, chunk: bytes) -> None: ...

    async def keep_alive(self) -> None: ...

    async def close(self) -> None: ...


class ClientRelayConnection:
    """Recognition connection held by the browser, reached over the meeting WebSocket.

    The browser owns the vendor socket and relays its recognition events to
    the server. Vendor-bound traffic produced server-side (keep-alive frames,
    and audio when the client routes its microphone through the server) is
    sent back down this WebSocket for the browser to forward verbatim.
    """

    def __init__(self, websocket: WebSocket) -> None:
        self.websocket = websocket

    @property
    def is_open(self) -> bool:
        return self.websocket.application_state is WebSocketState.CONNECTED

    async def send_audio(self, chunk: bytes) -> None:
        if self.is_open:
            await self.websocket.send_bytes(chunk)

    async def keep_alive(self) -> None:
        if self.is_open:
            await self.websocket.send_json(KEEPALIVE_FRAME)

    async def close(self) -> None:
        # The browser closes its own vendor socket; nothing to release here.
        return None
