"""Static topology of the rack strip and device/server settings."""

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Tuple

from dotenv import find_dotenv, load_dotenv

from ..common.exceptions import ConfigurationError, ValidationError

logger = logging.getLogger(__name__)

# Declared side order; also the order of the fallback global offsets
SIDES: Tuple[str, ...] = ("left", "top", "right", "bottom")

# Sides aligned on the canonical vertical ruler
VERTICAL_SIDES: Tuple[str, ...] = ("left", "right")


def is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass
class SystemDefaults:
    """Rack geometry, command and network defaults"""

    # Rack geometry
    DEFAULT_RACK_UNIT_SIZE: ClassVar[int] = 3  # ruler rows per U
    DEFAULT_RACK_UNITS_COUNT: ClassVar[int] = 42

    # Colors
    OFF_COLOR: ClassVar[str] = "#000000"
    RESET_COLOR: ClassVar[str] = "#FFFFFF"
    TEST_START_COLOR: ClassVar[str] = "#0000FF"
    TEST_MIDDLE_COLOR: ClassVar[str] = "#00FF00"
    TEST_END_COLOR: ClassVar[str] = "#FF0000"

    # Blink / scan (milliseconds on the wire)
    DEFAULT_BLINK_COLOR: ClassVar[str] = "#FF0000"
    DEFAULT_BLINK_TIMES: ClassVar[int] = 3
    DEFAULT_BLINK_INTERVAL_MS: ClassVar[int] = 500
    DEFAULT_SCAN_TIMES: ClassVar[int] = 3
    DEFAULT_SCAN_INTERVAL_MS: ClassVar[int] = 250
    DEFAULT_SCAN_PAUSE_MS: ClassVar[int] = 150
    MAX_TASK_HISTORY: ClassVar[int] = 100

    # Server
    DEFAULT_CONFIG_PATH: ClassVar[str] = "./led_strip_config.json"
    DEFAULT_HOST: ClassVar[str] = "0.0.0.0"
    DEFAULT_PORT: ClassVar[int] = 3000

    # Device live-view socket
    DEFAULT_WS_PORT: ClassVar[int] = 80
    DEFAULT_WS_PATH: ClassVar[str] = "/ws"
    WS_OPEN_TIMEOUT_S: ClassVar[float] = 5.0
    WS_HEARTBEAT_S: ClassVar[float] = 30.0


@dataclass
class SideConfig:
    """One LED strip of the rack perimeter"""

    name: str
    length: int
    start: Optional[int] = None  # absolute global offset, derived when absent
    reverse: bool = False
    calibration_offset: int = 0

    def validate(self) -> None:
        """Validate side settings"""
        if not is_int(self.length) or self.length <= 0:
            raise ConfigurationError(
                f'Side "{self.name}" must have a positive integer length, got {self.length!r}'
            )
        if self.start is not None and (not is_int(self.start) or self.start < 0):
            raise ConfigurationError(
                f'Side "{self.name}" start must be a non-negative integer, got {self.start!r}'
            )
        if not is_int(self.calibration_offset):
            raise ConfigurationError(
                f'Side "{self.name}" calibration offset must be an integer'
            )

    @classmethod
    def from_dict(cls, name: str, data: Any) -> "SideConfig":
        """Build a side from its ``common.<side>`` entry"""
        if not isinstance(data, dict) or not data.get("length"):
            raise ConfigurationError(f"Missing common.{name}.length")

        calibration = data.get("calibration")
        offset = calibration.get("offset", 0) if isinstance(calibration, dict) else 0
        if not is_int(offset):
            logger.warning(
                f"Ignoring non-integer calibration offset {offset!r} on side {name}"
            )
            offset = 0

        side = cls(
            name=name,
            length=data["length"],
            start=data.get("start"),
            reverse=bool(data.get("reverse", False)),
            calibration_offset=offset,
        )
        side.validate()
        return side


@dataclass
class RackUnitConfig:
    """Named rack unit declared under ``rack_units``"""

    id: str
    vertical: Optional[Dict[str, Any]] = None
    local: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> "RackUnitConfig":
        if not isinstance(data, dict) or data.get("id") is None:
            raise ConfigurationError(f"Rack unit entry without id: {data!r}")
        local = {
            side: data[side]
            for side in SIDES
            if isinstance(data.get(side), dict)
            and isinstance(data[side].get("start"), (int, float))
            and isinstance(data[side].get("length"), (int, float))
        }
        return cls(id=str(data["id"]), vertical=data.get("vertical"), local=local)


@dataclass
class EquipmentConfig:
    """Equipment entry as written under ``equipments``"""

    id: str
    name: str
    rack_units: List[Any] = field(default_factory=list)
    side: Any = None

    @classmethod
    def from_dict(cls, data: Any) -> "EquipmentConfig":
        if not isinstance(data, dict) or data.get("id") is None:
            raise ConfigurationError(f"Equipment entry without id: {data!r}")
        rack_units = data.get("rack_units") or []
        if not isinstance(rack_units, list):
            raise ConfigurationError(
                f'Equipment "{data["id"]}" rack_units must be a list'
            )
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", data["id"])),
            rack_units=rack_units,
            side=data.get("side"),
        )


@dataclass
class RackConfig:
    """Main topology configuration"""

    sides: Dict[str, SideConfig]
    rack_unit_size: int = SystemDefaults.DEFAULT_RACK_UNIT_SIZE
    rack_units_count: int = SystemDefaults.DEFAULT_RACK_UNITS_COUNT
    rack_units: List[RackUnitConfig] = field(default_factory=list)
    equipments: List[EquipmentConfig] = field(default_factory=list)
    source: Optional[str] = None

    def __post_init__(self):
        """Validate entire configuration"""
        try:
            self.validate()
        except ConfigurationError as e:
            logger.error(f"Configuration validation failed: {e}")
            raise

    @property
    def canonical_height(self) -> int:
        """Size of the vertical ruler in rows"""
        return self.rack_units_count * self.rack_unit_size

    @property
    def total_pixels(self) -> int:
        return sum(side.length for side in self.sides.values())

    def side(self, name: str) -> SideConfig:
        """Look up a side, rejecting unknown names"""
        if name not in SIDES or name not in self.sides:
            raise ValidationError(f'Invalid side "{name}".')
        return self.sides[name]

    def fallback_offsets(self) -> Dict[str, int]:
        """Cumulative offsets in declared side order"""
        offsets = {}
        running = 0
        for name in SIDES:
            offsets[name] = running
            running += self.sides[name].length
        return offsets

    def side_bases(self) -> Dict[str, int]:
        """Effective global offset of every side"""
        fallback = self.fallback_offsets()
        return {
            name: self.sides[name].start
            if self.sides[name].start is not None
            else fallback[name]
            for name in SIDES
        }

    def validate(self) -> None:
        """Validate configuration values"""
        missing = [name for name in SIDES if name not in self.sides]
        if missing:
            raise ConfigurationError(f"Missing sides: {', '.join(missing)}")
        for side in self.sides.values():
            side.validate()

        if not is_int(self.rack_unit_size) or self.rack_unit_size <= 0:
            raise ConfigurationError("rack_unit_size must be a positive integer")
        if not is_int(self.rack_units_count) or self.rack_units_count <= 0:
            raise ConfigurationError("rack_units_count must be a positive integer")

        # Global ranges must not overlap or two LEDs would share an index
        bases = self.side_bases()
        spans = sorted(
            (bases[name], bases[name] + self.sides[name].length, name) for name in SIDES
        )
        for (_, prev_end, prev_name), (start, _, name) in zip(spans, spans[1:]):
            if start < prev_end:
                raise ConfigurationError(
                    f'Sides "{prev_name}" and "{name}" overlap in the global index space'
                )

        seen = set()
        for equipment in self.equipments:
            if equipment.id in seen:
                raise ConfigurationError(f'Duplicate equipment id "{equipment.id}"')
            seen.add(equipment.id)

    @staticmethod
    def _rack_setting(data: Dict[str, Any], key: str, default: int) -> int:
        common = data.get("common") or {}
        value = data.get(key, common.get(key))
        if is_int(value) and value > 0:
            return value
        if value is not None:
            logger.warning(f"Invalid {key} {value!r}, using default {default}")
        return default

    @classmethod
    def from_dict(cls, data: Any, source: Optional[str] = None) -> "RackConfig":
        """Build configuration from the parsed JSON document"""
        if not isinstance(data, dict):
            raise ConfigurationError("Configuration root must be a JSON object")
        common = data.get("common")
        if not isinstance(common, dict):
            raise ConfigurationError("Missing common section")

        sides = {name: SideConfig.from_dict(name, common.get(name)) for name in SIDES}
        return cls(
            sides=sides,
            rack_unit_size=cls._rack_setting(
                data, "rack_unit_size", SystemDefaults.DEFAULT_RACK_UNIT_SIZE
            ),
            rack_units_count=cls._rack_setting(
                data, "rack_units_count", SystemDefaults.DEFAULT_RACK_UNITS_COUNT
            ),
            rack_units=[RackUnitConfig.from_dict(u) for u in data.get("rack_units") or []],
            equipments=[EquipmentConfig.from_dict(e) for e in data.get("equipments") or []],
            source=source,
        )


def load_config(path: str) -> RackConfig:
    """Load and validate the JSON topology file"""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read configuration {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Malformed JSON in {path}: {e}") from e

    config = RackConfig.from_dict(data, source=path)
    logger.info(
        f"Configuration loaded from {path}: {config.total_pixels} LEDs, "
        f"{config.rack_units_count}U x {config.rack_unit_size} rows"
    )
    return config


@dataclass
class DeviceConfig:
    """Where the LED controller lives"""

    api_url: Optional[str] = None  # patch endpoint, e.g. http://10.0.0.5/json/state
    lan_ip: Optional[str] = None
    ws_port: int = SystemDefaults.DEFAULT_WS_PORT
    ws_path: str = SystemDefaults.DEFAULT_WS_PATH
    timeout: Optional[float] = None  # seconds; None waits indefinitely

    @property
    def ws_url(self) -> Optional[str]:
        """Live-view socket of the device, None when no address is set"""
        if not self.lan_ip:
            return None
        path = self.ws_path if self.ws_path.startswith("/") else f"/{self.ws_path}"
        return f"ws://{self.lan_ip}:{self.ws_port}{path}"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "DeviceConfig":
        env = os.environ if environ is None else environ
        try:
            ws_port = int(env.get("WLED_WS_PORT", SystemDefaults.DEFAULT_WS_PORT))
            timeout = float(env["WLED_TIMEOUT"]) if env.get("WLED_TIMEOUT") else None
        except ValueError as e:
            raise ConfigurationError(f"Invalid device setting in environment: {e}") from e
        return cls(
            api_url=env.get("WLED_API_URL") or None,
            lan_ip=env.get("WLED_LAN_IP") or None,
            ws_port=ws_port,
            ws_path=env.get("WLED_WS_PATH", SystemDefaults.DEFAULT_WS_PATH),
            timeout=timeout,
        )


@dataclass
class ServerSettings:
    """Process-level settings"""

    config_path: str = SystemDefaults.DEFAULT_CONFIG_PATH
    host: str = SystemDefaults.DEFAULT_HOST
    port: int = SystemDefaults.DEFAULT_PORT

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServerSettings":
        env = os.environ if environ is None else environ
        try:
            port = int(env.get("PORT", SystemDefaults.DEFAULT_PORT))
        except ValueError as e:
            raise ConfigurationError(f"Invalid PORT: {e}") from e
        return cls(
            config_path=env.get("LED_CONFIG_PATH", SystemDefaults.DEFAULT_CONFIG_PATH),
            host=env.get("HOST", SystemDefaults.DEFAULT_HOST),
            port=port,
        )


def load_env_file(path: Optional[str] = None) -> bool:
    """Merge a ``.env`` file into the environment; variables already set win.

    Without ``path`` the file is searched from the working directory
    upwards. Returns whether any file was loaded.
    """
    path = path or find_dotenv(usecwd=True)
    if not path:
        return False
    loaded = load_dotenv(path, override=False)
    if loaded:
        logger.info(f"Loaded environment from {path}")
    return loaded
