"""Core components: topology, index mapping, LED state and device link"""

from .config import (
    SIDES,
    VERTICAL_SIDES,
    DeviceConfig,
    RackConfig,
    ServerSettings,
    SideConfig,
    SystemDefaults,
    load_config,
    load_env_file,
)
from .geometry import Geometry, PixelPair, VerticalRange
from .state import LedStateStore
from .patch import Patch, build_patch
from .device import DevicePatchSender
from .catalog import Catalog, Equipment, RackUnit
from .tasks import BackgroundTask, BlinkManager, TaskState
from .control import RackController, parse_unit_range

__all__ = [
    # Configuration
    "SIDES",
    "VERTICAL_SIDES",
    "DeviceConfig",
    "RackConfig",
    "ServerSettings",
    "SideConfig",
    "SystemDefaults",
    "load_config",
    "load_env_file",
    # Index mapping
    "Geometry",
    "PixelPair",
    "VerticalRange",
    # State and device
    "LedStateStore",
    "Patch",
    "build_patch",
    "DevicePatchSender",
    # Catalog
    "Catalog",
    "Equipment",
    "RackUnit",
    # Background tasks
    "BackgroundTask",
    "BlinkManager",
    "TaskState",
    # Control
    "RackController",
    "parse_unit_range",
]
