"""Fan-out of attendance and new-event notifications to connected WebSockets.

Services call ``broadcaster.publish()`` after a commit. Publishing only puts
the message on a queue owned by the event loop; a single dispatcher task
drains that queue in order and writes to every live connection. Delivery is
best-effort: a socket whose send fails or does not finish within
``REALTIME_SEND_TIMEOUT_SECONDS`` is logged and dropped, and nothing is
reported back to the request that produced the message. Sends to different
sockets run concurrently, so one stalled client never delays the others.
"""
import asyncio
import logging
from typing import Optional, Set

from fastapi import WebSocket

from eventhub.config import settings

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks every connected realtime client."""

    def __init__(self, send_timeout: Optional[float] = None):
        self.active_connections: Set[WebSocket] = set()
        self.send_timeout = settings.REALTIME_SEND_TIMEOUT_SECONDS if send_timeout is None else send_timeout

    async def connect(self, websocket: WebSocket):
        """Accept the WebSocket and start delivering broadcasts to it."""
        await websocket.accept()
        self.active_connections.add(websocket)
        logger.info("Realtime client connected. Total connections: %d", len(self.active_connections))

    def disconnect(self, websocket: WebSocket):
        if websocket in self.active_connections:
            self.active_connections.discard(websocket)
            logger.info("Realtime client disconnected. Remaining connections: %d", len(self.active_connections))

    async def send_personal_message(self, message: dict, websocket: WebSocket):
        try:
            await websocket.send_json(message)
        except Exception as e:
            logger.warning("Error sending personal message: %s", e)

    async def broadcast(self, message: dict):
        """Send ``message`` to all connections, dropping any that fail."""
        # copy: connect/disconnect may run while we await sends
        connections = list(self.active_connections)

        results = await asyncio.gather(
            *(self._send(websocket, message) for websocket in connections),
            return_exceptions=True,
        )

        for websocket, result in zip(connections, results):
            if isinstance(result, asyncio.TimeoutError):
                logger.warning("Broadcast to websocket timed out after %ss, dropping it", self.send_timeout)
                self.disconnect(websocket)
            elif isinstance(result, Exception):
                logger.warning("Error broadcasting to websocket: %s", result)
                self.disconnect(websocket)

    async def _send(self, websocket: WebSocket, message: dict):
        await asyncio.wait_for(websocket.send_json(message), timeout=self.send_timeout)

    def get_connection_count(self) -> int:
        return len(self.active_connections)

    async def close_all(self):
        for websocket in list(self.active_connections):
            try:
                await asyncio.wait_for(websocket.close(), timeout=self.send_timeout)
            except Exception as e:
                logger.debug("Error closing websocket: %s", e)
            self.disconnect(websocket)


class Broadcaster:
    """Non-blocking publish side plus the single dispatcher that delivers messages."""

    def __init__(self, manager: ConnectionManager):
        self.manager = manager
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._queue: Optional[asyncio.Queue] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self):
        """Bind to the running loop and launch the dispatcher task."""
        if self.running:
            return
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._task = asyncio.create_task(self._dispatch(), name="eventhub-broadcaster")
        logger.info("Broadcaster started")

    async def stop(self):
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._loop = None
        self._queue = None
        await self.manager.close_all()
        logger.info("Broadcaster stopped")

    def publish(self, message: dict):
        """Enqueue ``message`` for delivery. Safe to call from any thread; never blocks."""
        loop, queue = self._loop, self._queue
        if loop is None or queue is None or not self.running:
            logger.debug("Broadcaster not running, dropping %s message", message.get("type"))
            return

        try:
            running_loop = asyncio.get_running_loop()
        except RuntimeError:
            running_loop = None

        try:
            if running_loop is loop:
                queue.put_nowait(message)
            else:
                loop.call_soon_threadsafe(queue.put_nowait, message)
        except RuntimeError as e:
            # loop closed between the check above and the call
            logger.warning("Could not enqueue %s message: %s", message.get("type"), e)

    async def join(self):
        """Wait until every message published so far has been delivered."""
        if self._queue is not None:
            await self._queue.join()

    async def _dispatch(self):
        queue = self._queue
        while True:
            message = await queue.get()
            try:
                await self.manager.broadcast(message)
            except Exception:
                logger.exception("Broadcast of %s message failed", message.get("type"))
            finally:
                queue.task_done()


# Global instances shared by services and the websocket router
connection_manager = ConnectionManager()
broadcaster = Broadcaster(connection_manager)
