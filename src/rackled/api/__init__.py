"""REST API and WebSocket relay for the rack LED strip"""

from .app import app, build_controller, init_app
from .control import router as control_router
from .errors import register_exception_handlers
from .models import (
    BaseResponse,
    BlinkRequest,
    BlinkResponse,
    ColorRequest,
    ErrorResponse,
    ScanRequest,
    SideLedsRequest,
    StatusResponse,
)
from .websocket import DeviceSocketProxy
from .websocket import router as websocket_router

__all__ = [
    # Application
    "app",
    "init_app",
    "build_controller",
    "register_exception_handlers",
    # Routers
    "control_router",
    "websocket_router",
    "DeviceSocketProxy",
    # Models
    "BaseResponse",
    "ErrorResponse",
    "ColorRequest",
    "BlinkRequest",
    "ScanRequest",
    "SideLedsRequest",
    "BlinkResponse",
    "StatusResponse",
]
