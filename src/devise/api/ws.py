"""WebSocket hub pushing converter snapshots to display clients.

Pushes are driven by observable changes rather than polling: the broadcaster
subscribes to every converter observable and coalesces a burst of changes
(one edit touches several values) into a single JSON message.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from typing import TYPE_CHECKING

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

if TYPE_CHECKING:
    from devise.state.converter import ConversionCoordinator

log = structlog.get_logger(__name__)

router = APIRouter()


class ConverterHub:
    """Manages WebSocket connections and broadcasts JSON messages to all clients."""

    def __init__(self) -> None:
        self.connections: list[WebSocket] = []

    async def connect(self, ws: WebSocket) -> None:
        await ws.accept()
        self.connections.append(ws)
        log.info("converter_ws_connected", total=len(self.connections))

    def disconnect(self, ws: WebSocket) -> None:
        if ws in self.connections:
            self.connections.remove(ws)
        log.info("converter_ws_disconnected", total=len(self.connections))

    async def broadcast(self, message: str) -> None:
        """Send a message to all connected clients, removing broken connections."""
        for ws in self.connections.copy():
            try:
                await ws.send_text(message)
            except Exception:
                self.connections.remove(ws)
                log.warning("converter_ws_broadcast_error", remaining=len(self.connections))


class StateBroadcaster:
    """Subscribes to a coordinator and pushes its snapshot through a hub."""

    def __init__(self, coordinator: ConversionCoordinator, hub: ConverterHub) -> None:
        self._coordinator = coordinator
        self._hub = hub
        self._unsubscribers: list[Callable[[], None]] = []
        self._pending: asyncio.Task[None] | None = None

    def start(self) -> None:
        for observable in self._coordinator.observables():
            self._unsubscribers.append(observable.subscribe(self._on_change))

    async def stop(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
            await asyncio.wait({self._pending})

    def _on_change(self, _value: object) -> None:
        if not self._hub.connections:
            return
        if self._pending is not None and not self._pending.done():
            return
        self._pending = asyncio.get_running_loop().create_task(self._push())

    async def _push(self) -> None:
        await asyncio.sleep(0)  # let the rest of the edit's changes land
        await self._hub.broadcast(json.dumps(self._coordinator.snapshot()))


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """Sends the current snapshot on connect, then one message per change burst."""
    ws_hub: ConverterHub = websocket.app.state.hub
    await ws_hub.connect(websocket)
    try:
        await websocket.send_text(json.dumps(websocket.app.state.coordinator.snapshot()))
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        ws_hub.disconnect(websocket)
