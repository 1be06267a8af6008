"""HTTP client for the external content processing workflow."""

import logging
from dataclasses import dataclass
from typing import Protocol

import httpx
from pydantic import ValidationError

from content_engine.domain.processing import ErrorKind, WorkflowResponse
from content_engine.errors import (
    PermanentUpstreamFailure,
    TransientUpstreamFailure,
    classify_status,
)

logger = logging.getLogger(__name__)

_USER_AGENT = "content-engine-bot/0.1"


class WorkflowClient(Protocol):
    """Interface for a single call to the processing workflow."""

    async def submit(self, payload: dict[str, object]) -> WorkflowResponse:
        """POST the payload once and return the validated response."""

    async def check_health(self) -> bool:
        """Return true when the workflow host reports healthy."""


@dataclass
class HttpxWorkflowClient(WorkflowClient):
    """Workflow client implemented with httpx.

    Every failure is raised as an ``UpstreamFailure`` subclass so the caller
    can decide whether to retry without inspecting httpx exceptions.
    """

    webhook_url: str
    base_url: str
    timeout_seconds: float
    http_client: httpx.AsyncClient

    @classmethod
    def create(
        cls, webhook_url: str, base_url: str, timeout_seconds: float
    ) -> "HttpxWorkflowClient":
        """Create a workflow client with a managed httpx session."""
        return cls(
            webhook_url=webhook_url,
            base_url=base_url,
            timeout_seconds=timeout_seconds,
            http_client=httpx.AsyncClient(headers={"User-Agent": _USER_AGENT}),
        )

    async def submit(self, payload: dict[str, object]) -> WorkflowResponse:
        """Send one processing request to the workflow webhook."""
        try:
            response = await self.http_client.post(
                self.webhook_url, json=payload, timeout=self.timeout_seconds
            )
        except httpx.TimeoutException as exc:
            raise TransientUpstreamFailure(
                ErrorKind.TIMEOUT, f"Workflow timed out: {exc}"
            ) from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise TransientUpstreamFailure(
                ErrorKind.NETWORK, f"Workflow request failed: {exc}"
            ) from exc

        if response.is_error:
            raise classify_status(
                response.status_code,
                f"Workflow returned HTTP {response.status_code}: {response.text[:200]}",
            )

        try:
            parsed = WorkflowResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise PermanentUpstreamFailure(
                ErrorKind.MALFORMED, f"Malformed workflow response: {exc}"
            ) from exc

        if not parsed.success:
            raise PermanentUpstreamFailure(
                ErrorKind.REJECTED,
                parsed.error or parsed.status or "Processing failed",
            )
        return parsed

    async def check_health(self) -> bool:
        """Probe the workflow host health endpoint."""
        url = f"{self.base_url.rstrip('/')}/healthz"
        try:
            response = await self.http_client.get(url, timeout=5)
        except httpx.HTTPError:
            logger.warning("Workflow health check failed", extra={"url": url})
            return False
        return response.status_code == 200  # noqa: PLR2004

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
