"""
Websocket connection for the paid event stream.

Outbound control messages are queued and written by a single writer task, so
``send()`` never blocks and messages leave in the order they were queued.
"""

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Optional, Union

import aiohttp

from ws402.errors import TransportError

logger = logging.getLogger(__name__)


class CloseInfo:
    __slots__ = ("code", "reason", "error")

    def __init__(self, code: Optional[int] = None, reason: str = "", error: Optional[str] = None):
        self.code = code
        self.reason = reason
        self.error = error

    @property
    def clean(self) -> bool:
        return self.error is None

    def __repr__(self) -> str:
        return f"CloseInfo(code={self.code!r}, reason={self.reason!r}, error={self.error!r})"


class WebSocketConnection:
    def __init__(
        self,
        url: str,
        heartbeat: Optional[float] = 30.0,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self._url = url
        self._heartbeat = heartbeat
        self._session = session
        self._owns_session = session is None
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._outbox: asyncio.Queue[str] = asyncio.Queue()
        self._writer: Optional[asyncio.Task[None]] = None
        self.close_info: Optional[CloseInfo] = None

    @property
    def connected(self) -> bool:
        return self._ws is not None and not self._ws.closed

    async def connect(self) -> None:
        if self.connected:
            return
        if self._session is None:
            self._session = aiohttp.ClientSession()
        try:
            self._ws = await self._session.ws_connect(self._url, heartbeat=self._heartbeat)
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            await self._release_session()
            raise TransportError(f"Websocket connect failed: {e}")
        self._writer = asyncio.get_running_loop().create_task(self._write_loop())

    def send(self, message: dict[str, Any]) -> None:
        """Queue a JSON message. Fire-and-forget."""
        if not self.connected:
            raise TransportError("Websocket not connected")
        self._outbox.put_nowait(json.dumps(message))

    async def _write_loop(self) -> None:
        while True:
            text = await self._outbox.get()
            if self._ws is None or self._ws.closed:
                return
            try:
                await self._ws.send_str(text)
            except (aiohttp.ClientError, ConnectionError, RuntimeError) as e:
                logger.error("Websocket send failed: %s", e)
                return

    async def messages(self) -> AsyncIterator[Union[str, bytes]]:
        """Yield raw frames until the connection closes or fails."""
        if self._ws is None:
            raise TransportError("Websocket not connected")
        ws = self._ws
        reason = ""
        error: Optional[str] = None
        while True:
            msg = await ws.receive()
            if msg.type in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
                yield msg.data
            elif msg.type == aiohttp.WSMsgType.CLOSE:
                reason = str(msg.extra or "")
                break
            elif msg.type == aiohttp.WSMsgType.ERROR:
                error = str(ws.exception() or msg.data or "websocket error")
                break
            elif msg.type in (aiohttp.WSMsgType.CLOSING, aiohttp.WSMsgType.CLOSED):
                break
        self.close_info = CloseInfo(code=ws.close_code, reason=reason, error=error)

    async def disconnect(self) -> None:
        if self._writer is not None:
            self._writer.cancel()
            self._writer = None
        if self._ws is not None:
            await self._ws.close()
            if self.close_info is None:
                self.close_info = CloseInfo(code=self._ws.close_code, reason="client closed")
            self._ws = None
        await self._release_session()

    async def _release_session(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None
