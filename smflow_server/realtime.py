"""Websocket relay for node-state messages.

Every monitor connects to ``/ws``. A valid node-state frame sent by any
client, or posted to ``/node-states``, is broadcast to all of them.
Malformed frames are dropped without closing the sender's socket.
"""

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from smflow.models.node_state import NodeStateMessage, decode_frame

logger = logging.getLogger(__name__)


class NodeStateHub:
    """Set of connected monitors."""

    def __init__(self) -> None:
        self._clients: set[WebSocket] = set()

    def __len__(self) -> int:
        return len(self._clients)

    async def register(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self._clients.add(websocket)

    def unregister(self, websocket: WebSocket) -> None:
        self._clients.discard(websocket)

    async def broadcast(self, frame: str) -> int:
        """Send ``frame`` to every monitor; returns how many received it."""
        delivered = 0
        for websocket in list(self._clients):
            try:
                await websocket.send_text(frame)
                delivered += 1
            except (WebSocketDisconnect, RuntimeError) as e:
                logger.info("Dropping monitor after failed send: %s", e)
                self.unregister(websocket)
        return delivered


hub = NodeStateHub()

ws_router = APIRouter()
router = APIRouter()


@ws_router.websocket("/ws")
async def node_state_socket(websocket: WebSocket) -> None:
    await hub.register(websocket)
    try:
        while True:
            frame = await websocket.receive_text()
            message = decode_frame(frame)
            if message is None:
                logger.debug("Dropping malformed node-state frame: %r", frame)
                continue
            await hub.broadcast(message.to_frame())
    except WebSocketDisconnect:
        logger.debug("Monitor disconnected")
    finally:
        hub.unregister(websocket)


@router.post("/node-states")
async def publish_node_state(message: NodeStateMessage) -> dict:
    """relay a node-state change from the execution backend to every monitor."""
    delivered = await hub.broadcast(message.to_frame())
    return {"ok": True, "delivered": delivered}
