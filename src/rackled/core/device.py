"""HTTP link to the LED controller's patch endpoint."""

import logging
from typing import Optional

import httpx

from ..common.exceptions import TransportError
from .config import DeviceConfig
from .patch import Patch

logger = logging.getLogger(__name__)


class DevicePatchSender:
    """Posts one patch per logical operation, without retries"""

    def __init__(
        self,
        config: DeviceConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self._client = httpx.AsyncClient(
            transport=transport, timeout=httpx.Timeout(config.timeout)
        )
        self.patches_sent = 0
        self.last_error: Optional[str] = None

    async def send(self, patch: Patch) -> None:
        """POST ``patch`` to the device, raising TransportError on failure"""
        url = self.config.api_url
        if not url:
            raise TransportError("WLED_API_URL is not set in environment.")

        payload = patch.to_payload()
        logger.debug(f"Patch payload: {payload}")
        try:
            response = await self._client.post(url, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            self.last_error = f"Device answered {e.response.status_code}"
            logger.error(f"Patch of {len(patch)} pixels rejected: {self.last_error}")
            raise TransportError(f"Failed to update WLED instance: {self.last_error}") from e
        except httpx.HTTPError as e:
            self.last_error = f"{type(e).__name__}: {e}"
            logger.error(f"Patch of {len(patch)} pixels failed: {self.last_error}")
            raise TransportError(f"Failed to update WLED instance: {self.last_error}") from e

        self.patches_sent += 1
        self.last_error = None
        logger.info(f"Sent patch of {len(patch)} pixels to {url}")

    async def close(self) -> None:
        await self._client.aclose()
