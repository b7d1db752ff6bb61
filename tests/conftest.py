"""
Shared pytest fixtures: an in-memory connection double and a running hub
"""
import asyncio
import json
from types import SimpleNamespace

import pytest
from aiohttp import WSMsgType

from syncrelay.hub import Hub

SONGS = ["a.mp3", "b.mp3"]


class FakeConnection:
    """Stands in for a WebSocketResponse.

    Frames queued with `feed()` come out of `async for`; `disconnect()` ends
    the stream as if the peer closed. Setting `fail_sends` makes every write
    fail without ending the stream (a peer that vanished silently).
    """

    def __init__(self, fail_sends=False, send_delay=None):
        self.inbox: asyncio.Queue = asyncio.Queue()
        self.sent = []
        self.closed = False
        self.fail_sends = fail_sends
        self.send_delay = send_delay

    async def send_str(self, data):
        if self.send_delay:
            await asyncio.sleep(self.send_delay)
        if self.closed or self.fail_sends:
            raise ConnectionResetError("Cannot write to closing transport")
        self.sent.append(data)

    async def close(self):
        self.closed = True
        self.inbox.put_nowait(None)
        return True

    def feed(self, data, type=WSMsgType.TEXT):
        if not isinstance(data, (str, bytes)):
            data = json.dumps(data)
        self.inbox.put_nowait(SimpleNamespace(type=type, data=data))

    def disconnect(self):
        self.inbox.put_nowait(None)

    def received(self):
        return [json.loads(s) for s in self.sent]

    def __aiter__(self):
        return self

    async def __anext__(self):
        msg = await self.inbox.get()
        if msg is None:
            raise StopAsyncIteration
        return msg


async def _eventually(predicate, timeout=2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


@pytest.fixture
def eventually():
    """Await until predicate() is truthy, failing after a timeout"""
    return _eventually


@pytest.fixture
def catalog():
    return lambda: list(SONGS)


@pytest.fixture
async def hub(catalog):
    hub = Hub(catalog=catalog, send_timeout=0.2)
    hub.start()
    yield hub
    await hub.stop()


@pytest.fixture
async def connect(hub):
    """Start a handler task for a new FakeConnection and wait for its handshake"""
    tasks = []

    async def _connect(label, wait_handshake=True, **kwargs):
        conn = FakeConnection(**kwargs)
        tasks.append(asyncio.create_task(hub.serve(conn, label)))
        if wait_handshake:
            await _eventually(lambda: conn.sent)
        else:
            await _eventually(lambda: conn in hub.registry)
        return conn

    yield _connect

    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
