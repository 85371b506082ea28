import asyncio
import logging
from typing import Any, Callable, Optional

import websockets
from fastapi import APIRouter, WebSocket
from starlette.websockets import WebSocketState

from ..core.config import SystemDefaults

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])

PROXY_PATH = "/api/wled-ws"

# Close codes that may not be sent in a close frame
_RESERVED_CODES = {1005, 1006, 1015}


def _sendable(code: Optional[int]) -> int:
    if code is None or code in _RESERVED_CODES:
        return 1000
    return code


class DeviceSocketProxy:
    """Relays frames between one client and the device's live-view socket"""

    def __init__(self, url: Optional[str], connect: Callable[..., Any] = websockets.connect):
        self.url = url
        self._connect = connect

    async def relay(self, websocket: WebSocket) -> None:
        client_id = id(websocket)
        await websocket.accept()

        if not self.url:
            logger.error("Device WebSocket address is not configured (WLED_LAN_IP)")
            await self._close_client(websocket, 1011)
            return

        try:
            async with self._connect(
                self.url,
                compression=None,
                open_timeout=SystemDefaults.WS_OPEN_TIMEOUT_S,
                ping_interval=SystemDefaults.WS_HEARTBEAT_S,
                max_size=None,
            ) as upstream:
                logger.info(f"Client {client_id} bridged to {self.url}")
                await self._pump(websocket, upstream)
        except (OSError, asyncio.TimeoutError, websockets.WebSocketException) as e:
            logger.error(f"Device socket error for client {client_id}: {e}")
            await self._close_client(websocket, 1011)
        finally:
            logger.info(f"Cleaned up proxy for client {client_id}")

    async def _pump(self, websocket: WebSocket, upstream: Any) -> None:
        to_device = asyncio.ensure_future(self._client_to_device(websocket, upstream))
        to_client = asyncio.ensure_future(self._device_to_client(websocket, upstream))
        try:
            done, pending = await asyncio.wait(
                {to_device, to_client}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for task in (to_device, to_client):
                task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

        finished = done.pop()
        failed = False
        try:
            code = finished.result()
        except Exception as e:
            logger.warning(f"Relay stopped on error: {e}")
            code = 1011
            failed = True

        # Mirror the close to whichever side is still open
        if finished is to_device:
            await upstream.close(code=_sendable(code))
            if failed:
                await self._close_client(websocket, code)
        else:
            await self._close_client(websocket, code)

    async def _client_to_device(self, websocket: WebSocket, upstream: Any) -> int:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                return message.get("code", 1000)
            if message.get("bytes") is not None:
                await upstream.send(message["bytes"])
            elif message.get("text") is not None:
                await upstream.send(message["text"])

    async def _device_to_client(self, websocket: WebSocket, upstream: Any) -> int:
        async for data in upstream:
            if isinstance(data, bytes):
                await websocket.send_bytes(data)
            else:
                await websocket.send_text(data)
        return getattr(upstream, "close_code", None) or 1000

    async def _close_client(self, websocket: WebSocket, code: int) -> None:
        if websocket.application_state != WebSocketState.CONNECTED:
            return
        try:
            await websocket.close(code=_sendable(code))
        except RuntimeError as e:
            logger.debug(f"Client already gone: {e}")


@router.websocket(PROXY_PATH)
async def device_socket(websocket: WebSocket):
    """Pass-through to the device's live pixel stream"""
    controller = getattr(websocket.app.state, "controller", None)
    url = controller.device_config.ws_url if controller is not None else None
    connect = getattr(websocket.app.state, "socket_connector", None) or websockets.connect
    await DeviceSocketProxy(url, connect).relay(websocket)
