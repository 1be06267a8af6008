"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from content_engine.adapters.fal_client import HttpxFalEnhancementClient
from content_engine.adapters.supabase_activity_repository import (
    SupabaseActivityRepository,
)
from content_engine.adapters.telegram_client import (
    HttpxTelegramClient,
    TelegramClient,
)
from content_engine.adapters.telegram_file_client import (
    HttpxTelegramFileClient,
    TelegramFileClient,
)
from content_engine.adapters.workflow_client import HttpxWorkflowClient, WorkflowClient
from content_engine.config import Settings
from content_engine.services.activity import ActivityLogService
from content_engine.services.commands import (
    HelpCommandHandler,
    StartCommandHandler,
    StatusCommandHandler,
)
from content_engine.services.orchestrator import SessionOrchestrator
from content_engine.services.processing import ProcessingService
from content_engine.services.store import InMemorySessionStore, SessionStore


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    telegram_client: TelegramClient
    telegram_file_client: TelegramFileClient
    workflow_client: WorkflowClient
    session_store: SessionStore
    activity_service: ActivityLogService
    processing_service: ProcessingService
    orchestrator: SessionOrchestrator
    start_command_handler: StartCommandHandler
    help_command_handler: HelpCommandHandler
    status_command_handler: StatusCommandHandler
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    telegram_client = HttpxTelegramClient.create(resolved_settings.telegram_bot_token)
    telegram_file_client = HttpxTelegramFileClient.create(
        resolved_settings.telegram_bot_token
    )
    workflow_client = HttpxWorkflowClient.create(
        webhook_url=resolved_settings.workflow_url,
        base_url=resolved_settings.workflow_base_url,
        timeout_seconds=resolved_settings.workflow_timeout_seconds,
    )
    enhancement_client = (
        HttpxFalEnhancementClient.create(
            api_key=resolved_settings.fal_api_key, model=resolved_settings.fal_model
        )
        if resolved_settings.fal_api_key
        else None
    )

    activity_repository = None
    if resolved_settings.supabase_url and resolved_settings.supabase_service_key:
        supabase_client = create_client(
            resolved_settings.supabase_url, resolved_settings.supabase_service_key
        )
        activity_repository = SupabaseActivityRepository(supabase_client)
    activity_service = ActivityLogService(activity_repository)

    processing_service = ProcessingService(
        client=workflow_client,
        max_attempts=resolved_settings.workflow_max_attempts,
        base_delay_seconds=resolved_settings.workflow_retry_base_delay_seconds,
        media_loader=(
            telegram_file_client
            if resolved_settings.workflow_payload_mode == "base64"
            else None
        ),
        enhancement_client=enhancement_client,
    )
    session_store = InMemorySessionStore(
        ttl_seconds=resolved_settings.session_ttl_seconds,
        terminal_retention_seconds=resolved_settings.terminal_retention_seconds,
    )
    orchestrator = SessionOrchestrator(
        store=session_store,
        processing_service=processing_service,
        activity_service=activity_service,
    )

    async def close_resources() -> None:
        await telegram_client.close()
        await telegram_file_client.close()
        await workflow_client.close()
        if enhancement_client is not None:
            await enhancement_client.close()

    return AppContainer(
        settings=resolved_settings,
        telegram_client=telegram_client,
        telegram_file_client=telegram_file_client,
        workflow_client=workflow_client,
        session_store=session_store,
        activity_service=activity_service,
        processing_service=processing_service,
        orchestrator=orchestrator,
        start_command_handler=StartCommandHandler(telegram_client),
        help_command_handler=HelpCommandHandler(telegram_client),
        status_command_handler=StatusCommandHandler(
            telegram_client, workflow_client, enhancement_client
        ),
        close_resources=close_resources,
    )
