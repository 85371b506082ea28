"""Tests for configuration loading."""

import json

import pytest

from rackled.common.exceptions import ConfigurationError, ValidationError
from rackled.core.config import (
    DeviceConfig,
    RackConfig,
    ServerSettings,
    SystemDefaults,
    load_config,
    load_env_file,
)


class TestRackConfig:
    """Test topology parsing and validation"""

    def test_from_dict(self, rack_config):
        assert rack_config.sides["left"].reverse is True
        assert rack_config.sides["left"].start == 1
        assert rack_config.sides["right"].calibration_offset == 1
        assert rack_config.total_pixels == 154
        assert rack_config.canonical_height == 126
        assert rack_config.side_bases() == {
            "left": 1,
            "top": 58,
            "right": 78,
            "bottom": 135,
        }

    def test_missing_side_length(self, rack_config_dict):
        del rack_config_dict["common"]["top"]["length"]
        with pytest.raises(ConfigurationError, match="common.top.length"):
            RackConfig.from_dict(rack_config_dict)

    def test_missing_common(self):
        with pytest.raises(ConfigurationError):
            RackConfig.from_dict({"equipments": []})

    def test_overlapping_sides(self, rack_config_dict):
        rack_config_dict["common"]["top"]["start"] = 10
        with pytest.raises(ConfigurationError, match="overlap"):
            RackConfig.from_dict(rack_config_dict)

    def test_duplicate_equipment(self, rack_config_dict):
        rack_config_dict["equipments"].append({"id": "sw-core", "rack_units": [1]})
        with pytest.raises(ConfigurationError, match="Duplicate"):
            RackConfig.from_dict(rack_config_dict)

    def test_rack_settings_from_common(self, rack_config_dict):
        del rack_config_dict["rack_unit_size"]
        rack_config_dict["common"]["rack_unit_size"] = 2
        assert RackConfig.from_dict(rack_config_dict).rack_unit_size == 2

    def test_invalid_rack_setting_uses_default(self, rack_config_dict):
        rack_config_dict["rack_units_count"] = "many"
        config = RackConfig.from_dict(rack_config_dict)
        assert config.rack_units_count == SystemDefaults.DEFAULT_RACK_UNITS_COUNT

    def test_non_integer_calibration_ignored(self, rack_config_dict):
        rack_config_dict["common"]["left"]["calibration"] = {"offset": "2"}
        assert RackConfig.from_dict(rack_config_dict).sides["left"].calibration_offset == 0

    def test_side_lookup(self, rack_config):
        assert rack_config.side("top").length == 20
        with pytest.raises(ValidationError, match="Invalid side"):
            rack_config.side("front")


class TestLoadConfig:
    """Test reading the JSON file"""

    def test_load(self, config_file):
        config = load_config(str(config_file))
        assert config.source == str(config_file)
        assert len(config.equipments) == 3

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Cannot read"):
            load_config(str(tmp_path / "absent.json"))

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Malformed"):
            load_config(str(path))

    def test_shipped_sample(self):
        from pathlib import Path

        sample = Path(__file__).parent.parent / "config" / "led_strip_config.json"
        config = RackConfig.from_dict(json.loads(sample.read_text(encoding="utf-8")))
        assert config.total_pixels == 154


class TestEnvironment:
    """Test device and server settings"""

    def test_device_defaults(self):
        device = DeviceConfig.from_env({})
        assert device.api_url is None
        assert device.ws_url is None
        assert device.timeout is None

    def test_device_from_env(self):
        device = DeviceConfig.from_env(
            {
                "WLED_API_URL": "http://10.0.0.5/json/state",
                "WLED_LAN_IP": "10.0.0.5",
                "WLED_WS_PORT": "8080",
                "WLED_WS_PATH": "live",
                "WLED_TIMEOUT": "2.5",
            }
        )
        assert device.api_url == "http://10.0.0.5/json/state"
        assert device.ws_url == "ws://10.0.0.5:8080/live"
        assert device.timeout == 2.5

    def test_invalid_ws_port(self):
        with pytest.raises(ConfigurationError):
            DeviceConfig.from_env({"WLED_WS_PORT": "eighty"})

    def test_server_settings(self):
        settings = ServerSettings.from_env({"PORT": "8080", "LED_CONFIG_PATH": "/etc/rack.json"})
        assert settings.port == 8080
        assert settings.config_path == "/etc/rack.json"
        assert ServerSettings.from_env({}).port == 3000


class TestEnvFile:
    """Test merging a .env file into the environment"""

    @pytest.fixture
    def clean_env(self, monkeypatch):
        # Record the real values so anything the file sets is undone
        for name in ("WLED_API_URL", "WLED_LAN_IP", "LED_CONFIG_PATH"):
            monkeypatch.setenv(name, "")
            monkeypatch.delenv(name)
        return monkeypatch

    def test_env_file_fills_settings(self, tmp_path, clean_env):
        (tmp_path / ".env").write_text(
            "WLED_API_URL=http://10.0.0.9/json/state\n"
            "WLED_LAN_IP=10.0.0.9\n"
            "LED_CONFIG_PATH=/etc/rack.json\n",
            encoding="utf-8",
        )
        clean_env.chdir(tmp_path)
        assert load_env_file() is True
        device = DeviceConfig.from_env()
        assert device.api_url == "http://10.0.0.9/json/state"
        assert device.ws_url == "ws://10.0.0.9:80/ws"
        assert ServerSettings.from_env().config_path == "/etc/rack.json"

    def test_process_environment_wins(self, tmp_path, clean_env):
        env_file = tmp_path / "rack.env"
        env_file.write_text("WLED_API_URL=http://from-file/json/state\n", encoding="utf-8")
        clean_env.setenv("WLED_API_URL", "http://from-process/json/state")
        load_env_file(str(env_file))
        assert DeviceConfig.from_env().api_url == "http://from-process/json/state"

    def test_no_env_file(self, tmp_path, clean_env):
        clean_env.chdir(tmp_path)
        assert load_env_file() is False
        assert DeviceConfig.from_env().api_url is None
