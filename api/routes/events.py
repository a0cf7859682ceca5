"""
WebSocket push channel for automation events.
"""
import logging
from typing import Any, Dict, Set

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)
router = APIRouter(tags=["events"])


class ConnectionManager:
    """Tracks dashboard sockets; registered on the Notifier as a listener."""

    def __init__(self):
        self.active: Set[WebSocket] = set()

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self.active.add(websocket)
        logger.info(f"Dashboard connected ({len(self.active)} active)")

    def disconnect(self, websocket: WebSocket) -> None:
        self.active.discard(websocket)
        logger.info(f"Dashboard disconnected ({len(self.active)} active)")

    async def broadcast(self, event: str, payload: Dict[str, Any]) -> None:
        for websocket in list(self.active):
            try:
                await websocket.send_json({"event": event, "data": payload})
            except Exception as e:
                logger.warning(f"Dropping dashboard socket: {e}")
                self.disconnect(websocket)


@router.websocket("/ws")
async def events_socket(websocket: WebSocket):
    manager: ConnectionManager = websocket.app.state.connections
    await manager.connect(websocket)
    try:
        await websocket.send_json({"event": "automation:status", "data": websocket.app.state.queue.status()})
        while True:
            # Clients only listen; incoming text is ignored
            await websocket.receive_text()
    except WebSocketDisconnect:
        manager.disconnect(websocket)
