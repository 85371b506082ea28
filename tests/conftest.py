import asyncio
import copy
import json
import sys
from pathlib import Path

import httpx
import pytest

# Allow running the tests from a plain checkout
src_dir = Path(__file__).parent.parent.absolute() / "src"
if str(src_dir) not in sys.path:
    sys.path.insert(0, str(src_dir))

from rackled.core.config import DeviceConfig, RackConfig  # noqa: E402
from rackled.core.control import RackController  # noqa: E402
from rackled.core.device import DevicePatchSender  # noqa: E402

DEVICE_URL = "http://wled.test/json/state"

RACK_CONFIG = {
    "common": {
        "left": {"length": 57, "start": 1, "reverse": True},
        "top": {"length": 20, "start": 58},
        "right": {"length": 57, "start": 78, "calibration": {"offset": 1}},
        "bottom": {"length": 20, "start": 135, "reverse": True},
    },
    "rack_unit_size": 3,
    "rack_units_count": 42,
    "equipments": [
        {"id": "sw-core", "name": "Core switch", "rack_units": [42], "side": "both"},
        {"id": "srv-db01", "name": "Database server", "rack_units": [10, 11], "side": "left"},
        {"id": "spare", "name": "Empty slot", "rack_units": []},
    ],
    "rack_units": [
        {"id": "patch-panel", "vertical": {"start": 40, "length": 1}},
        {"id": "top-strip", "top": {"start": 0, "length": 20}},
    ],
}


class DeviceRecorder:
    """Stands in for the LED controller's HTTP endpoint"""

    def __init__(self):
        self.payloads = []
        self.status_code = 200

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.payloads.append(json.loads(request.content))
        return httpx.Response(self.status_code, json={"success": self.status_code == 200})

    @property
    def indices(self):
        """Global indices of the last payload"""
        return self.payloads[-1]["seg"]["i"][0::2]


async def no_sleep(_seconds):
    await asyncio.sleep(0)


@pytest.fixture
def rack_config_dict():
    """Rack topology as found in the JSON file"""
    return copy.deepcopy(RACK_CONFIG)


@pytest.fixture
def rack_config(rack_config_dict):
    return RackConfig.from_dict(rack_config_dict)


@pytest.fixture
def config_file(tmp_path, rack_config_dict):
    """Write the topology to a temporary JSON file"""
    path = tmp_path / "led_strip_config.json"
    path.write_text(json.dumps(rack_config_dict), encoding="utf-8")
    return path


@pytest.fixture
def device():
    return DeviceRecorder()


@pytest.fixture
def device_config():
    return DeviceConfig(api_url=DEVICE_URL, lan_ip="10.0.0.5")


@pytest.fixture
def controller(rack_config, device, device_config):
    """Controller talking to the recorder, with instant sleeps"""
    sender = DevicePatchSender(device_config, transport=httpx.MockTransport(device.handler))
    return RackController(rack_config, device_config, sender=sender, sleep=no_sleep)
