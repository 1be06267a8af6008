"""Application configuration."""

import os
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    telegram_bot_token: str
    admin_token: str
    telegram_allowed_user_ids: str | None = None
    workflow_base_url: str = "https://hanumet.app.n8n.cloud"
    workflow_webhook_path: str = "/webhook/content-engine"
    workflow_timeout_seconds: float = 90.0
    workflow_max_attempts: int = 3
    workflow_retry_base_delay_seconds: float = 2.0
    workflow_payload_mode: Literal["url", "base64"] = "url"
    session_ttl_seconds: int = 3600
    terminal_retention_seconds: int = 300
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    fal_api_key: str | None = None
    fal_model: str = "fal-ai/clarity-upscaler"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @property
    def workflow_url(self) -> str:
        """Full URL of the content processing webhook."""
        return f"{self.workflow_base_url.rstrip('/')}{self.workflow_webhook_path}"


def parse_allowed_user_ids(raw: str | None) -> set[int] | None:
    """Parse allowed Telegram user IDs from env."""
    if raw is None:
        return None
    cleaned = raw.strip()
    if cleaned in {"", "*"}:
        return None
    ids: set[int] = set()
    for chunk in cleaned.split(","):
        value = chunk.strip()
        if not value:
            continue
        if value.isdigit():
            ids.add(int(value))
    return ids or None
