"""fal.ai queue client for optional image upscaling."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol

import httpx

logger = logging.getLogger(__name__)

_QUEUE_BASE = "https://queue.fal.run"
_SYNC_BASE = "https://fal.run"


class EnhancementClient(Protocol):
    """Interface for an image enhancement sub-call."""

    async def enhance(self, image_url: str) -> str:
        """Return the URL of an enhanced copy of the image."""

    async def check_health(self) -> bool:
        """Return true when the enhancement service accepts our credentials."""


@dataclass
class HttpxFalEnhancementClient(EnhancementClient):
    """Submits upscale jobs to the fal.ai queue and polls until completion."""

    api_key: str
    model: str
    http_client: httpx.AsyncClient
    poll_interval_seconds: float = 2.0
    max_polls: int = 30
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    @classmethod
    def create(cls, api_key: str, model: str) -> "HttpxFalEnhancementClient":
        """Create a fal.ai client with a managed httpx session."""
        return cls(api_key=api_key, model=model, http_client=httpx.AsyncClient())

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Key {self.api_key}"}

    async def enhance(self, image_url: str) -> str:
        """Upscale an image, raising on any failure."""
        response = await self.http_client.post(
            f"{_QUEUE_BASE}/{self.model}",
            json={"image_url": image_url, "upscale_factor": 2},
            headers=self._headers(),
            timeout=30,
        )
        response.raise_for_status()
        request_id = response.json()["request_id"]
        request_url = f"{_QUEUE_BASE}/{self.model}/requests/{request_id}"

        for _ in range(self.max_polls):
            status_response = await self.http_client.get(
                f"{request_url}/status", headers=self._headers(), timeout=10
            )
            status_response.raise_for_status()
            status = status_response.json().get("status")
            if status == "COMPLETED":
                result_response = await self.http_client.get(
                    request_url, headers=self._headers(), timeout=10
                )
                result_response.raise_for_status()
                return _extract_image_url(result_response.json())
            if status == "FAILED":
                raise RuntimeError("fal.ai enhancement failed")
            await self.sleep(self.poll_interval_seconds)
        raise TimeoutError("fal.ai enhancement did not complete in time")

    async def check_health(self) -> bool:
        """Check that fal.ai is reachable and accepts the API key."""
        try:
            response = await self.http_client.get(
                f"{_SYNC_BASE}/{self.model}", headers=self._headers(), timeout=5
            )
        except httpx.HTTPError:
            logger.warning("fal.ai health check failed", extra={"model": self.model})
            return False
        return response.status_code != 401  # noqa: PLR2004

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def _extract_image_url(payload: dict[str, object]) -> str:
    image = payload.get("image")
    if isinstance(image, dict) and image.get("url"):
        return str(image["url"])
    images = payload.get("images")
    if isinstance(images, list) and images and isinstance(images[0], dict):
        url = images[0].get("url")
        if url:
            return str(url)
    raise RuntimeError("fal.ai result has no image url")
