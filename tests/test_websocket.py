"""Tests for the device WebSocket relay."""

import asyncio

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect, WebSocketState

from rackled.api.app import init_app
from rackled.api.websocket import DeviceSocketProxy
from rackled.core.config import DeviceConfig
from rackled.core.control import RackController


class EchoUpstream:
    """Device socket that sends every frame back"""

    def __init__(self, url, **kwargs):
        self.url = url
        self.kwargs = kwargs
        self.close_code = None
        self.closed_with = None

    async def __aenter__(self):
        self.queue = asyncio.Queue()
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def send(self, data):
        if data == "bye":
            # device hangs up normally
            self.close_code = 1000
            await self.queue.put(None)
            return
        await self.queue.put(data)

    async def close(self, code=1000):
        self.closed_with = code
        await self.queue.put(None)

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self.queue.get()
        if item is None:
            raise StopAsyncIteration
        return item


class GreetingUpstream(EchoUpstream):
    """Device socket that says hello and goes away"""

    async def __aenter__(self):
        await super().__aenter__()
        await self.queue.put('{"info":"hello"}')
        await self.queue.put(None)
        self.close_code = 1001
        return self


class BrokenPipeUpstream(EchoUpstream):
    """Device socket whose writes fail"""

    async def send(self, data):
        raise OSError("broken pipe")


class UnreachableUpstream(EchoUpstream):
    async def __aenter__(self):
        raise OSError("connection refused")


class Connector:
    def __init__(self, upstream_cls):
        self.upstream_cls = upstream_cls
        self.created = []

    def __call__(self, url, **kwargs):
        upstream = self.upstream_cls(url, **kwargs)
        self.created.append(upstream)
        return upstream


class FakeClientSocket:
    """Browser side of the relay, replaying scripted messages"""

    def __init__(self, messages):
        self.incoming = list(messages)
        self.sent = []
        self.accepted = False
        self.closed = None
        self.application_state = WebSocketState.CONNECTING

    async def accept(self):
        self.accepted = True
        self.application_state = WebSocketState.CONNECTED

    async def receive(self):
        await asyncio.sleep(0)
        return self.incoming.pop(0)

    async def send_text(self, data):
        self.sent.append(data)

    async def send_bytes(self, data):
        self.sent.append(data)

    async def close(self, code=1000):
        self.closed = code
        self.application_state = WebSocketState.DISCONNECTED


def make_client(controller, upstream_cls):
    connector = Connector(upstream_cls)
    return TestClient(init_app(controller, socket_connector=connector)), connector


class TestDeviceSocketRelay:
    """Test frame relay and close propagation"""

    def test_frames_pass_both_ways(self, controller):
        client, connector = make_client(controller, EchoUpstream)
        with client:
            with client.websocket_connect("/api/wled-ws") as ws:
                ws.send_text('{"lv":true}')
                assert ws.receive_text() == '{"lv":true}'
                ws.send_bytes(b"\x4c\x01\x02")
                assert ws.receive_bytes() == b"\x4c\x01\x02"
                # let the relay finish before the session is torn down
                ws.send_text("bye")
                with pytest.raises(WebSocketDisconnect) as exc_info:
                    ws.receive_text()
        assert exc_info.value.code == 1000

        upstream = connector.created[0]
        assert upstream.url == "ws://10.0.0.5:80/ws"
        assert upstream.kwargs["compression"] is None
        assert upstream.kwargs["open_timeout"] == 5.0
        assert upstream.kwargs["ping_interval"] == 30.0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "client_code, device_code", [(1000, 1000), (4000, 4000), (1006, 1000)]
    )
    async def test_client_close_reaches_device(self, client_code, device_code):
        websocket = FakeClientSocket(
            [
                {"type": "websocket.receive", "text": "ping"},
                {"type": "websocket.disconnect", "code": client_code},
            ]
        )
        connector = Connector(EchoUpstream)
        await DeviceSocketProxy("ws://10.0.0.5:80/ws", connector).relay(websocket)
        assert websocket.accepted
        assert websocket.closed is None
        assert connector.created[0].closed_with == device_code

    @pytest.mark.asyncio
    async def test_device_write_failure_closes_both_sides(self):
        websocket = FakeClientSocket([{"type": "websocket.receive", "text": "ping"}])
        connector = Connector(BrokenPipeUpstream)
        await DeviceSocketProxy("ws://10.0.0.5:80/ws", connector).relay(websocket)
        assert connector.created[0].closed_with == 1011
        assert websocket.closed == 1011

    def test_device_close_reaches_client(self, controller):
        client, _ = make_client(controller, GreetingUpstream)
        with client:
            with client.websocket_connect("/api/wled-ws") as ws:
                assert ws.receive_text() == '{"info":"hello"}'
                with pytest.raises(WebSocketDisconnect) as exc_info:
                    ws.receive_text()
        assert exc_info.value.code == 1001

    def test_unreachable_device(self, controller):
        client, _ = make_client(controller, UnreachableUpstream)
        with client:
            with client.websocket_connect("/api/wled-ws") as ws:
                with pytest.raises(WebSocketDisconnect) as exc_info:
                    ws.receive_text()
        assert exc_info.value.code == 1011

    def test_device_address_not_configured(self, rack_config):
        controller = RackController(rack_config, DeviceConfig(api_url="http://wled.test"))
        client, connector = make_client(controller, EchoUpstream)
        with client:
            with client.websocket_connect("/api/wled-ws") as ws:
                with pytest.raises(WebSocketDisconnect) as exc_info:
                    ws.receive_text()
        assert exc_info.value.code == 1011
        assert connector.created == []
