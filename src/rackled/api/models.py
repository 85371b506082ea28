from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..core.config import SystemDefaults


# Base Models
class BaseResponse(BaseModel):
    """Base response model"""

    message: str


class ErrorResponse(BaseModel):
    """Error response model"""

    error: str


# Requests
class LedCommand(BaseModel):
    """One LED on a side"""

    index: int
    color: str


class SideLedsRequest(BaseModel):
    """Request to set individual LEDs of a side"""

    leds: List[LedCommand]


class ColorRequest(BaseModel):
    """Request to light a target in one color"""

    color: str


class BlinkRequest(BaseModel):
    """Request to blink a target; interval in milliseconds"""

    color: str = SystemDefaults.DEFAULT_BLINK_COLOR
    times: int = Field(SystemDefaults.DEFAULT_BLINK_TIMES, ge=0)
    interval: float = Field(SystemDefaults.DEFAULT_BLINK_INTERVAL_MS, ge=0)


class ScanRequest(BaseModel):
    """Descending U scan, ``from`` defaults to the top unit"""

    model_config = ConfigDict(populate_by_name=True)

    from_unit: Optional[int] = Field(None, alias="from")
    to_unit: int = Field(1, alias="to")
    times: int = Field(SystemDefaults.DEFAULT_SCAN_TIMES, ge=0)
    interval: float = Field(SystemDefaults.DEFAULT_SCAN_INTERVAL_MS, ge=0)
    pause_between_units: float = Field(
        SystemDefaults.DEFAULT_SCAN_PAUSE_MS, ge=0, alias="pauseBetweenUnits"
    )


# Responses
class PixelDetail(BaseModel):
    """Resolved pixel, for tracing a command down to the device index"""

    side: Optional[str] = None
    u: Optional[int] = None
    v: Optional[int] = None
    localIndex: int
    globalIndex: int
    color: str


class SideUpdateResponse(BaseResponse):
    count: int


class UnitLightResponse(BaseResponse):
    rackUnitsCount: int
    vStart: Optional[int] = None
    vLength: Optional[int] = None
    details: List[PixelDetail]


class EquipmentLightResponse(BaseResponse):
    units: List[int]
    sides: List[str]
    leds: int
    details: List[PixelDetail]


class RackUnitLightResponse(BaseResponse):
    leds: int
    details: List[PixelDetail]


class SideTestResponse(BaseResponse):
    leds: int
    offset: int
    details: List[PixelDetail]


class BlinkResponse(BaseResponse):
    """Acknowledgement of a started background sequence"""

    taskId: str
    sides: List[str]
    units: Optional[List[int]] = None


class TaskInfo(BaseModel):
    id: str
    kind: str
    description: str
    state: str
    created: float
    finished: Optional[float] = None
    error: Optional[str] = None


class StatusResponse(BaseModel):
    """Topology, geometry and the full LED state"""

    config: Dict[str, int]
    reverse: Dict[str, bool]
    calibrationOffset: Dict[str, int]
    start: Dict[str, int]
    verticalHeight: int
    rackUnitSize: int
    rackUnitsCount: int
    equipments: List[Dict[str, Any]]
    rackUnits: List[Dict[str, Any]]
    activeTasks: int
    states: Dict[str, List[Dict[str, str]]]
