"""Socket.IO rooms per inventory and the discussion broadcaster."""
from typing import Any, Dict

import socketio

from catalog_api import config
from catalog_api.logging_config import get_child_logger

logger = get_child_logger("realtime")

sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins=config.CORS_ORIGINS if config.CORS_ORIGINS != ["*"] else "*",
)

DISCUSSION_EVENT = "discussion:new"


def room_for(inventory_id: str) -> str:
    return f"inv:{inventory_id}"


@sio.event
async def connect(sid, environ):
    logger.debug(f"Client connected: {sid}")


@sio.event
async def disconnect(sid):
    logger.debug(f"Client disconnected: {sid}")


@sio.on("join")
async def join(sid, data):
    inventory_id = data.get("inventoryId") if isinstance(data, dict) else None
    if not inventory_id:
        return
    await sio.enter_room(sid, room_for(str(inventory_id)))


@sio.on("leave")
async def leave(sid, data):
    inventory_id = data.get("inventoryId") if isinstance(data, dict) else None
    if not inventory_id:
        return
    await sio.leave_room(sid, room_for(str(inventory_id)))


class Broadcaster:
    """Fire-and-forget publisher for inventory rooms."""

    def __init__(self, server: socketio.AsyncServer):
        self.server = server

    async def publish(self, inventory_id: str, event: str, payload: Dict[str, Any]) -> None:
        try:
            await self.server.emit(event, payload, room=room_for(inventory_id))
        except Exception as e:
            # a failed broadcast never fails the request that triggered it
            logger.warning(
                "Broadcast failed",
                extra={"inventory_id": inventory_id, "event": event, "error": str(e)},
            )


_broadcaster = Broadcaster(sio)


def get_broadcaster() -> Broadcaster:
    return _broadcaster
