"""Session-scoped client: REST calls plus the realtime feed, bound to one EventStore.

Create one per mounted view and let ``async with`` tear it down::

    async with EventSession("http://localhost:8000", token) as session:
        await session.fetch_events(category="music")
        await session.join_event(event_id)

Leaving the block, by return, error or cancellation, stops the listener and
closes both the realtime connection and the HTTP client.
"""
import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Optional

import httpx
import websockets
from httpx import URL

from eventhub.client.store import EventStore

logger = logging.getLogger(__name__)

FEED_PATH = "/ws/events"


class ClientError(Exception):
    """A failed API call; ``message`` is the server's ``error`` text when present."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def feed_url_for(base_url: str) -> str:
    url = URL(base_url)
    scheme = "wss" if url.scheme == "https" else "ws"
    return str(url.copy_with(scheme=scheme, path=FEED_PATH))


async def _default_connect(url: str):
    return await websockets.connect(url)


class EventSession:
    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        *,
        feed_url: Optional[str] = None,
        connect: Optional[Callable[[str], Awaitable[Any]]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.store = EventStore()
        self.feed_url = feed_url or feed_url_for(self.base_url)
        self.http: Optional[httpx.AsyncClient] = None
        self._connect = connect or _default_connect
        self._transport = transport
        self._timeout = timeout
        self._connection = None
        self._listener: Optional[asyncio.Task] = None

    async def __aenter__(self) -> "EventSession":
        self.http = httpx.AsyncClient(base_url=self.base_url, transport=self._transport, timeout=self._timeout)
        try:
            self._connection = await self._connect(self.feed_url)
            self._listener = asyncio.create_task(self._listen())
        except BaseException:
            await self.close()
            raise
        logger.info("Event session opened against %s", self.base_url)
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    @property
    def connected(self) -> bool:
        return self._connection is not None

    async def close(self):
        """Release the listener, realtime connection and HTTP client. Idempotent."""
        listener, self._listener = self._listener, None
        if listener is not None:
            listener.cancel()
            try:
                await listener
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.warning("Realtime listener had failed: %r", e)

        connection, self._connection = self._connection, None
        if connection is not None:
            try:
                await connection.close()
            except Exception as e:
                logger.warning("Error closing realtime connection: %s", e)

        if self.http is not None and not self.http.is_closed:
            await self.http.aclose()

    async def _listen(self):
        try:
            async for raw in self._connection:
                try:
                    message = json.loads(raw)
                except (TypeError, json.JSONDecodeError):
                    logger.warning("Invalid realtime payload: %r", raw)
                    continue
                try:
                    self.store.apply(message)
                except (KeyError, TypeError, AttributeError) as e:
                    logger.warning("Malformed realtime message %r: %r", message, e)
        except websockets.ConnectionClosed as e:
            logger.warning("Realtime connection closed: %s", e)
        except OSError as e:
            logger.warning("Realtime connection lost: %s", e)
        logger.info("Realtime feed ended; re-fetch events to catch up")

    def _auth_headers(self) -> dict[str, str]:
        if not self.token:
            raise ClientError("No authentication token found")
        return {"Authorization": f"Bearer {self.token}"}

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        if self.http is None:
            raise ClientError("Session is not open")
        try:
            response = await self.http.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise ClientError(str(exc)) from exc

        if response.is_error:
            try:
                message = response.json().get("error")
            except ValueError:
                message = None
            raise ClientError(message or f"Request failed with status {response.status_code}", response.status_code)
        return response.json()

    async def fetch_events(
        self,
        category: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> None:
        """Reload the full event list; failures land in ``store.error``."""
        params = {}
        if category:
            params["category"] = category
        if start_date:
            params["startDate"] = start_date
        if end_date:
            params["endDate"] = end_date

        self.store.loading = True
        self.store.error = None
        try:
            events = await self._request("GET", "/api/events", params=params)
        except ClientError as exc:
            self.store.error = exc.message
            return
        finally:
            self.store.loading = False
        self.store.replace_events(events)

    async def create_event(self, payload: dict[str, Any]) -> dict[str, Any]:
        event = await self._request("POST", "/api/events", json=payload, headers=self._auth_headers())
        self.store.upsert_event(event)
        return event

    async def join_event(self, event_id: str) -> dict[str, Any]:
        event = await self._request("POST", f"/api/events/{event_id}/join", headers=self._auth_headers())
        self.store.upsert_event(event)
        self.store.mark_joined(event_id)
        return event

    async def leave_event(self, event_id: str) -> dict[str, Any]:
        event = await self._request("POST", f"/api/events/{event_id}/leave", headers=self._auth_headers())
        self.store.upsert_event(event)
        self.store.mark_left()
        return event
