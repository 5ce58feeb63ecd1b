"""Websocket connection against a local aiohttp server."""

import json
from types import SimpleNamespace

import aiohttp
import pytest
from aiohttp import web
from aiohttp import test_utils

from ws402.errors import TransportError
from ws402.transport.websocket import WebSocketConnection


async def echo_three_then_expire(request):
    ws = web.WebSocketResponse()
    await ws.prepare(request)
    for _ in range(3):
        msg = await ws.receive()
        await ws.send_str(msg.data)
    await ws.close(code=4001, message=b"expired")
    return ws


async def idle(request):
    ws = web.WebSocketResponse()
    await ws.prepare(request)
    async for _ in ws:
        pass
    return ws


async def start_server(handler):
    app = web.Application()
    app.router.add_get("/ws", handler)
    server = test_utils.TestServer(app)
    await server.start_server()
    return server


class ErroringSocket:
    close_code = None
    closed = False

    def __init__(self, error):
        self._error = error

    async def receive(self):
        return SimpleNamespace(type=aiohttp.WSMsgType.ERROR, data=self._error, extra=None)

    def exception(self):
        return self._error


@pytest.mark.asyncio
async def test_frames_in_order_then_server_close():
    server = await start_server(echo_three_then_expire)
    conn = WebSocketConnection(str(server.make_url("/ws")), heartbeat=None)
    try:
        await conn.connect()
        assert conn.connected
        sent = [{"op": "subscribe", "n": n} for n in range(3)]
        for message in sent:
            conn.send(message)
        frames = [json.loads(frame) async for frame in conn.messages()]
    finally:
        await conn.disconnect()
        await server.close()

    assert frames == sent
    assert conn.close_info.code == 4001
    assert conn.close_info.reason == "expired"
    assert conn.close_info.clean


@pytest.mark.asyncio
async def test_client_disconnect():
    server = await start_server(idle)
    conn = WebSocketConnection(str(server.make_url("/ws")), heartbeat=None)
    try:
        await conn.connect()
        await conn.disconnect()
    finally:
        await server.close()

    assert not conn.connected
    assert conn.close_info.reason == "client closed"
    assert conn.close_info.clean
    with pytest.raises(TransportError, match="not connected"):
        conn.send({"op": "ping"})


@pytest.mark.asyncio
async def test_send_before_connect():
    conn = WebSocketConnection("ws://127.0.0.1:1/ws")
    with pytest.raises(TransportError, match="not connected"):
        conn.send({"op": "ping"})
    with pytest.raises(TransportError):
        async for _ in conn.messages():
            pass


@pytest.mark.asyncio
async def test_connect_refused():
    conn = WebSocketConnection("ws://127.0.0.1:1/ws", heartbeat=None)
    with pytest.raises(TransportError, match="connect failed"):
        await conn.connect()
    assert not conn.connected


@pytest.mark.asyncio
async def test_error_frame_is_unclean():
    conn = WebSocketConnection("ws://x402.test/ws")
    conn._ws = ErroringSocket(RuntimeError("boom"))
    frames = [frame async for frame in conn.messages()]

    assert frames == []
    assert conn.close_info.error == "boom"
    assert conn.close_info.code is None
    assert not conn.close_info.clean
