"""Processing requests against the external workflow with retries."""

import asyncio
import base64
import logging
import time
import zlib
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol

from content_engine.adapters.fal_client import EnhancementClient
from content_engine.adapters.workflow_client import WorkflowClient
from content_engine.domain.catalog import PRESETS, Angle, Preset, Style
from content_engine.domain.processing import (
    ContentResult,
    ErrorKind,
    ProcessingFailure,
    ProcessingResult,
    ProcessingSuccess,
    WorkflowData,
)
from content_engine.errors import UpstreamFailure

logger = logging.getLogger(__name__)

DEFAULT_HASHTAGS = ("#foodie", "#restaurant", "#bonappetit")
FALLBACK_CAPTIONS = (
    "Fresh out of the kitchen! 🍽️",
    "The chef prepared something special for you...",
    "Freshly made with love ❤️",
    "We're waiting for you, come and taste!",
)


class MediaLoader(Protocol):
    """Loads the bytes behind a media reference."""

    async def download_bytes(self, url: str) -> bytes:
        """Return the raw bytes for a media URL."""


@dataclass
class ProcessingService:
    """Submits processing requests with bounded retries and exponential backoff.

    Only transient failures (network, timeout, 5xx) are retried; anything
    else fails on the first attempt. The service never touches session
    state and always returns a result instead of raising.
    """

    client: WorkflowClient
    max_attempts: int = 3
    base_delay_seconds: float = 2.0
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    media_loader: MediaLoader | None = None
    enhancement_client: EnhancementClient | None = None

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    async def submit(  # noqa: PLR0913
        self,
        correlation_id: str,
        primary_media_ref: str,
        auxiliary_media_refs: tuple[str, ...] | list[str],
        style: Style,
        angle: Angle,
        variation: bool,
        attempt_number: int,
        *,
        user_id: int,
        chat_id: int,
        restaurant_name: str | None = None,
        preset: Preset | None = None,
    ) -> ProcessingResult:
        """Run the workflow for one session attempt."""
        started = time.monotonic()
        try:
            payload = await self._build_payload(
                correlation_id=correlation_id,
                primary_media_ref=primary_media_ref,
                auxiliary_media_refs=list(auxiliary_media_refs),
                style=style,
                angle=angle,
                variation=variation,
                attempt_number=attempt_number,
                user_id=user_id,
                chat_id=chat_id,
                restaurant_name=restaurant_name,
                preset=preset,
            )
        except Exception as exc:
            logger.exception(
                "Failed to load primary media",
                extra={"session_id": correlation_id},
            )
            return ProcessingFailure(
                kind=ErrorKind.NETWORK, message=str(exc), attempts=0
            )

        last_failure: UpstreamFailure | None = None
        attempts = 0
        for attempt in range(1, self.max_attempts + 1):
            attempts = attempt
            try:
                response = await self.client.submit(payload)
            except UpstreamFailure as failure:
                last_failure = failure
                logger.warning(
                    "Workflow attempt %s/%s failed: %s",
                    attempt,
                    self.max_attempts,
                    failure.message,
                    extra={
                        "session_id": correlation_id,
                        "kind": failure.kind.value,
                        "status_code": failure.status_code,
                    },
                )
                if not failure.kind.is_transient:
                    break
                if attempt < self.max_attempts:
                    delay = self.backoff_delay(attempt)
                    logger.info("Waiting %.1fs before retry", delay)
                    await self.sleep(delay)
                continue

            content = await self._build_content(
                correlation_id, primary_media_ref, response.to_data()
            )
            duration_ms = int((time.monotonic() - started) * 1000)
            logger.info(
                "Workflow succeeded",
                extra={
                    "session_id": correlation_id,
                    "attempts": attempt,
                    "duration_ms": duration_ms,
                },
            )
            return ProcessingSuccess(
                content=content, attempts=attempt, duration_ms=duration_ms
            )

        if last_failure is None:
            raise RuntimeError("Processing loop ended without an attempt")
        return ProcessingFailure(
            kind=last_failure.kind,
            message=last_failure.message,
            attempts=attempts,
            status_code=last_failure.status_code,
        )

    def backoff_delay(self, attempt: int) -> float:
        """Delay after the given failed attempt, doubling each time."""
        return self.base_delay_seconds * 2 ** (attempt - 1)

    async def _build_payload(  # noqa: PLR0913
        self,
        *,
        correlation_id: str,
        primary_media_ref: str,
        auxiliary_media_refs: list[str],
        style: Style,
        angle: Angle,
        variation: bool,
        attempt_number: int,
        user_id: int,
        chat_id: int,
        restaurant_name: str | None,
        preset: Preset | None,
    ) -> dict[str, object]:
        payload: dict[str, object] = {
            "sessionId": correlation_id,
            "userId": str(user_id),
            "chatId": str(chat_id),
            "theme": style.value,
            "angle": angle.value,
            "decorPhotos": auxiliary_media_refs,
            "hasDecorReference": bool(auxiliary_media_refs),
            "variation": variation,
            "attemptNumber": attempt_number,
        }
        if restaurant_name:
            payload["restaurantName"] = restaurant_name
        if preset is not None:
            payload["preset"] = preset.value
            payload["prompt"] = PRESETS[preset].prompt
        if self.media_loader is None:
            payload["imageUrl"] = primary_media_ref
        else:
            image_bytes = await self.media_loader.download_bytes(primary_media_ref)
            payload["image"] = base64.b64encode(image_bytes).decode("utf-8")
        return payload

    async def _build_content(
        self, correlation_id: str, primary_media_ref: str, data: WorkflowData
    ) -> ContentResult:
        enhanced_url = data.enhanced_url
        fallback_media = not enhanced_url
        if fallback_media:
            enhanced_url = primary_media_ref
        elif self.enhancement_client is not None:
            try:
                enhanced_url = await self.enhancement_client.enhance(enhanced_url)
            except Exception:
                logger.exception(
                    "Image enhancement failed, keeping workflow image",
                    extra={"session_id": correlation_id},
                )
                fallback_media = True

        caption = (data.caption or "").strip()
        fallback_caption = not caption
        if fallback_caption:
            caption = fallback_caption_for(correlation_id)

        return ContentResult(
            enhanced_media_ref=enhanced_url,
            caption=caption,
            original_caption=caption,
            hashtags=tuple(data.hashtags) or DEFAULT_HASHTAGS,
            analysis=dict(data.analysis),
            is_fallback_media=fallback_media,
            is_fallback_caption=fallback_caption,
        )


def fallback_caption_for(correlation_id: str) -> str:
    """Pick a stable fallback caption for a session."""
    index = zlib.crc32(correlation_id.encode("utf-8")) % len(FALLBACK_CAPTIONS)
    return FALLBACK_CAPTIONS[index]
