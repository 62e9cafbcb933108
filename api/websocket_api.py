import logging
from uuid import UUID

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from core.connection_manager import manager, poll_channel, GLOBAL_CHANNEL

logger = logging.getLogger(__name__)

router = APIRouter()


async def _serve(websocket: WebSocket, channel: str) -> None:
    await manager.connect(websocket, channel)
    logger.info(f"WebSocket connected to {channel}")

    try:
        await websocket.send_json({"type": "connected", "data": {"channel": channel}})

        while True:
            data = await websocket.receive_text()
            await websocket.send_json({"type": "pong", "data": data})

    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected from {channel}")
    finally:
        manager.disconnect(websocket, channel)


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """Global feed: poll lifecycle events and every vote update."""
    await _serve(websocket, GLOBAL_CHANNEL)


@router.websocket("/ws/polls/{poll_uuid}")
async def poll_websocket_endpoint(websocket: WebSocket, poll_uuid: UUID):
    """Live results for a single poll."""
    await _serve(websocket, poll_channel(poll_uuid))
