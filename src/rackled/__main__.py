"""Command line entry point: ``python -m rackled`` or ``rackled-server``"""

import argparse
import logging
import sys

import uvicorn

from .api.app import init_app
from .common.exceptions import ConfigurationError
from .core.config import DeviceConfig, ServerSettings, load_config, load_env_file
from .core.control import RackController

logger = logging.getLogger(__name__)


def main():
    """Main entry point with argument parsing"""
    load_env_file()
    settings = ServerSettings.from_env()

    parser = argparse.ArgumentParser(description="Rack LED control server")
    parser.add_argument("--host", default=settings.host, help="Bind address")
    parser.add_argument("--port", type=int, default=settings.port, help="HTTP port")
    parser.add_argument(
        "--config", default=settings.config_path, help="LED topology JSON file"
    )
    parser.add_argument(
        "--device-url", default=None, help="Device patch endpoint (overrides WLED_API_URL)"
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        config = load_config(args.config)
        device = DeviceConfig.from_env()
    except ConfigurationError as e:
        logger.error(f"Failed to load configuration: {e}")
        sys.exit(1)

    if args.device_url:
        device.api_url = args.device_url
    if not device.api_url:
        logger.warning("WLED_API_URL is not set; LED commands will fail until it is")

    app = init_app(RackController(config, device))
    logger.info(f"Listening on {args.host}:{args.port}")
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level.lower())


if __name__ == "__main__":
    main()
