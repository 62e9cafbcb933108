import logging
from collections import defaultdict
from typing import Any, Optional

from fastapi import WebSocket

logger = logging.getLogger(__name__)

GLOBAL_CHANNEL = "global"


def poll_channel(poll_uuid) -> str:
    return f"poll:{poll_uuid}"


class ConnectionManager:
    """Fan out realtime poll events to connected WebSocket clients.

    Every socket joins exactly one channel: the global feed or the feed of a
    single poll. Broadcasts to a poll channel also reach the global feed.
    """

    def __init__(self):
        self.active_connections: dict[str, list[WebSocket]] = defaultdict(list)

    async def connect(self, websocket: WebSocket, channel: str = GLOBAL_CHANNEL) -> None:
        await websocket.accept()
        self.active_connections[channel].append(websocket)

    def disconnect(self, websocket: WebSocket, channel: Optional[str] = None) -> None:
        channels = [channel] if channel is not None else list(self.active_connections)
        for name in channels:
            sockets = self.active_connections.get(name, [])
            if websocket in sockets:
                sockets.remove(websocket)
            if not sockets and name in self.active_connections:
                del self.active_connections[name]

    def connection_count(self, channel: Optional[str] = None) -> int:
        if channel is not None:
            return len(self.active_connections.get(channel, []))
        return sum(len(sockets) for sockets in self.active_connections.values())

    async def broadcast(self, message: dict[str, Any], channel: Optional[str] = None) -> None:
        targets = [GLOBAL_CHANNEL]
        if channel is not None and channel != GLOBAL_CHANNEL:
            targets.append(channel)

        stale: list[tuple[str, WebSocket]] = []
        for name in targets:
            for websocket in list(self.active_connections.get(name, [])):
                try:
                    await websocket.send_json(message)
                except Exception as e:
                    logger.warning(f"Dropping WebSocket on {name}: {e}")
                    stale.append((name, websocket))

        for name, websocket in stale:
            self.disconnect(websocket, name)


manager = ConnectionManager()
