"""
Broadcast hub: connection registry, broadcast channel and the fan-out worker

Every connected client is served by its own handler task (`Hub.serve`), which
registers the connection, sends the song-list handshake and then forwards each
decoded control message onto the broadcast channel. A single broadcaster task
drains the channel and writes every message to all registered connections,
the sender included. A connection whose write fails is closed and pruned in
that same pass; nothing else removes a silent peer.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional

from aiohttp import WSMsgType

from .protocol import ControlMessage, ProtocolError, SongListMessage, decode_control

logger = logging.getLogger("syncrelay")

DEFAULT_SEND_TIMEOUT = 5.0


class Registry:
    """Set of open connections, guarded by one lock"""

    def __init__(self):
        self._connections: Dict[object, str] = {}
        self._lock = asyncio.Lock()

    async def register(self, conn, label: Optional[str] = None):
        async with self._lock:
            self._connections.setdefault(conn, label or hex(id(conn)))

    async def deregister(self, conn):
        async with self._lock:
            self._connections.pop(conn, None)

    async def for_each(self, fn: Callable[[object, str], Awaitable[Optional[bool]]]):
        """
        Await fn(conn, label) for every registered connection while holding
        the lock. A callback returning False removes that connection within
        the same pass. Iteration order is unspecified.
        """
        async with self._lock:
            for conn, label in list(self._connections.items()):
                if await fn(conn, label) is False:
                    self._connections.pop(conn, None)

    def __len__(self):
        return len(self._connections)

    def __contains__(self, conn):
        return conn in self._connections


class BroadcastChannel:
    """Unbounded FIFO of control messages waiting to be fanned out"""

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()

    def put(self, message: ControlMessage):
        self._queue.put_nowait(message)

    async def get(self) -> ControlMessage:
        return await self._queue.get()

    def task_done(self):
        self._queue.task_done()

    async def join(self):
        """Wait until every message put so far has been fanned out"""
        await self._queue.join()

    def qsize(self) -> int:
        return self._queue.qsize()


class Hub:
    """Owns the registry, the channel and the broadcaster task"""

    def __init__(
        self,
        catalog: Callable[[], List[str]],
        send_timeout: float = DEFAULT_SEND_TIMEOUT,
    ):
        self.catalog = catalog
        self.send_timeout = send_timeout
        self.registry = Registry()
        self.channel = BroadcastChannel()
        self._broadcaster: Optional[asyncio.Task] = None

    @property
    def connection_count(self) -> int:
        return len(self.registry)

    # ============================================================
    # LIFECYCLE
    # ============================================================

    def start(self):
        if self._broadcaster is None or self._broadcaster.done():
            self._broadcaster = asyncio.create_task(self._run_broadcaster())

    async def close_connections(self):
        """Close and deregister every connection so their handlers return"""
        async def shutdown(conn, label):
            await self._close(conn, label)
            return False

        await self.registry.for_each(shutdown)

    async def stop(self):
        """Cancel the broadcaster and close every registered connection"""
        if self._broadcaster is not None:
            self._broadcaster.cancel()
            try:
                await self._broadcaster
            except asyncio.CancelledError:
                pass
            self._broadcaster = None

        await self.close_connections()

    # ============================================================
    # FAN-OUT
    # ============================================================

    def publish(self, message: ControlMessage):
        self.channel.put(message)

    async def _run_broadcaster(self):
        logger.info("📡 Broadcaster started")
        while True:
            message = await self.channel.get()
            try:
                await self.broadcast(message)
            except Exception as e:
                logger.error(f"Broadcast of {message.action.value} failed: {e}")
            finally:
                self.channel.task_done()

    async def broadcast(self, message: ControlMessage) -> int:
        """Write `message` to every registered connection, pruning the ones that fail"""
        data = message.to_json()
        delivered = 0

        async def deliver(conn, label):
            nonlocal delivered
            try:
                await asyncio.wait_for(conn.send_str(data), self.send_timeout)
            except Exception as e:
                logger.info("✂️ Pruning %s after failed send: %r", label, e)
                await self._close(conn, label)
                return False
            delivered += 1
            return True

        await self.registry.for_each(deliver)
        logger.debug("Relayed %s to %d connection(s)", message.action.value, delivered)
        return delivered

    async def _close(self, conn, label):
        try:
            await asyncio.wait_for(conn.close(), self.send_timeout)
        except Exception as e:
            logger.debug(f"Closing {label} failed: {e!r}")

    # ============================================================
    # CONNECTION HANDLER
    # ============================================================

    async def _send_handshake(self, conn, label):
        try:
            loop = asyncio.get_running_loop()
            songs = await loop.run_in_executor(None, self.catalog)
        except OSError as e:
            logger.warning(f"Track catalog unavailable, sending empty list: {e}")
            songs = []

        try:
            await asyncio.wait_for(
                conn.send_str(SongListMessage(songs).to_json()), self.send_timeout
            )
        except Exception as e:
            logger.warning(f"Failed to send song list to {label}: {e!r}")

    async def serve(self, conn, label: Optional[str] = None):
        """
        Run one connection from registration until it closes

        Returns when the peer disconnects or sends a frame that does not
        decode; the connection is always deregistered and closed on the way
        out.
        """
        label = label or hex(id(conn))
        await self.registry.register(conn, label)
        logger.info(f"🎧 {label} connected (total: {self.connection_count})")

        try:
            await self._send_handshake(conn, label)

            async for msg in conn:
                if msg.type != WSMsgType.TEXT:
                    logger.debug(f"{label} sent a {msg.type.name} frame, closing")
                    break
                try:
                    message = decode_control(msg.data)
                except ProtocolError as e:
                    logger.warning(f"Dropping {label}: {e}")
                    break
                logger.debug(f"{label} -> {message.action.value} {message.payload.title!r}")
                self.publish(message)
        except Exception as e:
            logger.debug(f"WebSocket error on {label}: {e!r}")
        finally:
            await self.registry.deregister(conn)
            await self._close(conn, label)
            logger.info(f"🎧 {label} disconnected (remaining: {self.connection_count})")
