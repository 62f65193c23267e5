"""WebSocket endpoint through which clients receive event broadcasts."""
import json
import logging
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from eventhub.realtime.broadcaster import connection_manager

logger = logging.getLogger(__name__)
router = APIRouter()


@router.websocket("/events")
async def events_feed(websocket: WebSocket):
    """Receive every ``eventUpdated`` / ``newEvent`` broadcast until disconnect."""
    await connection_manager.connect(websocket)
    try:
        await connection_manager.send_personal_message(
            {"type": "connection", "connectionCount": connection_manager.get_connection_count()},
            websocket,
        )

        # Only heartbeats are expected from clients.
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(frame.get("code", 1000))
            data = frame.get("text")
            if data is None:
                logger.warning("Ignoring non-text frame on realtime channel")
                continue
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                logger.warning("Invalid JSON received on realtime channel: %s", data)
                continue

            if isinstance(message, dict) and message.get("type") == "ping":
                await connection_manager.send_personal_message(
                    {"type": "pong", "timestamp": message.get("timestamp")}, websocket
                )
    except WebSocketDisconnect:
        pass
    finally:
        connection_manager.disconnect(websocket)


@router.get("/stats")
async def realtime_stats():
    """Connection statistics (for debugging)."""
    return {"total_connections": connection_manager.get_connection_count()}
