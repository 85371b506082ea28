import logging
from contextlib import asynccontextmanager
from typing import Any, Callable, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..common.exceptions import ConfigurationError
from ..core.config import DeviceConfig, ServerSettings, load_config, load_env_file
from ..core.control import RackController
from . import control, websocket
from .errors import register_exception_handlers

logger = logging.getLogger(__name__)


def build_controller() -> RackController:
    """Create a controller from LED_CONFIG_PATH and the WLED_* environment"""
    load_env_file()
    settings = ServerSettings.from_env()
    config = load_config(settings.config_path)
    return RackController(config, DeviceConfig.from_env())


def init_app(
    controller: Optional[RackController] = None,
    socket_connector: Optional[Callable[..., Any]] = None,
) -> FastAPI:
    """Create and configure the FastAPI application"""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.controller is None:
            try:
                app.state.controller = build_controller()
            except ConfigurationError as e:
                logger.error(f"Failed to load configuration: {e}")
                raise SystemExit(1) from e

        logger.info("Starting rack LED control API")
        await app.state.controller.start()
        try:
            yield
        finally:
            logger.info("Shutting down rack LED control API")
            await app.state.controller.stop()

    app = FastAPI(
        title="Rack LED Control API",
        description="Addresses the LED strips around a server rack",
        version=__version__,
        lifespan=lifespan,
    )

    # Enable CORS for browser dashboards
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.controller = controller
    app.state.socket_connector = socket_connector

    register_exception_handlers(app)
    app.include_router(control.router)
    app.include_router(websocket.router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        ctrl = app.state.controller
        if ctrl is None:
            return {"status": "starting", "controller": False, "activeTasks": 0}
        return {
            "status": "healthy",
            "controller": True,
            "activeTasks": len(ctrl.tasks.running),
            "device": {
                "patchesSent": ctrl.sender.patches_sent,
                "lastError": ctrl.sender.last_error,
            },
        }

    return app


# Create the application instance
app = init_app()

__all__ = ["app", "init_app", "build_controller"]
