"""Shared test fixtures."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import pytest

from content_engine.adapters.telegram_client import TelegramClient
from content_engine.adapters.telegram_file_client import TelegramFileClient
from content_engine.adapters.workflow_client import WorkflowClient
from content_engine.config import Settings
from content_engine.containers import AppContainer
from content_engine.domain.processing import WorkflowResponse
from content_engine.errors import CollaboratorLoggingFailure, UpstreamFailure
from content_engine.services.activity import (
    ActivityEntry,
    ActivityLogService,
    ActivityRepository,
)
from content_engine.services.commands import (
    HelpCommandHandler,
    StartCommandHandler,
    StatusCommandHandler,
)
from content_engine.services.orchestrator import SessionOrchestrator
from content_engine.services.processing import ProcessingService
from content_engine.services.store import InMemorySessionStore

ENHANCED_URL = "https://cdn.example.com/enhanced.jpg"


def workflow_success(
    caption: str = "Crispy pad thai, fresh from the wok.",
    enhanced_url: str | None = ENHANCED_URL,
    hashtags: list[str] | None = None,
) -> WorkflowResponse:
    """Build a successful workflow response."""
    return WorkflowResponse.model_validate(
        {
            "success": True,
            "data": {
                "enhancedUrl": enhanced_url,
                "caption": caption,
                "hashtags": hashtags if hashtags is not None else ["#padthai"],
            },
        }
    )


@dataclass
class FakeClock:
    """Manually advanced clock."""

    now: datetime = field(default_factory=lambda: datetime(2024, 5, 1, 12, tzinfo=UTC))

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@dataclass
class RecordingSleep:
    """Records requested delays instead of sleeping."""

    delays: list[float] = field(default_factory=list)

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@dataclass
class FakeTelegramClient(TelegramClient):
    """Fake Telegram client that records messages."""

    messages: list[tuple[int, str]] = field(default_factory=list)
    markups: list[dict | None] = field(default_factory=list)
    photos: list[tuple[int, str, str | None]] = field(default_factory=list)
    callbacks: list[tuple[str, str | None]] = field(default_factory=list)
    commands: list[dict[str, str]] | None = None
    menu_button: dict[str, object] | None = None
    fail_photos: bool = False

    async def send_message(
        self, chat_id: int, text: str, reply_markup: dict | None = None
    ) -> None:
        self.messages.append((chat_id, text))
        self.markups.append(reply_markup)

    async def send_photo(
        self,
        chat_id: int,
        photo_url: str,
        caption: str | None = None,
        reply_markup: dict | None = None,
    ) -> None:
        if self.fail_photos:
            raise RuntimeError("Telegram could not fetch the photo")
        self.photos.append((chat_id, photo_url, caption))
        self.markups.append(reply_markup)

    async def answer_callback_query(
        self, callback_query_id: str, text: str | None = None
    ) -> None:
        self.callbacks.append((callback_query_id, text))

    async def set_my_commands(self, commands: list[dict[str, str]]) -> None:
        self.commands = commands

    async def set_chat_menu_button(
        self, menu_button: dict[str, object] | None = None
    ) -> None:
        self.menu_button = menu_button

    def last_callback_data(self) -> list[str]:
        """Flatten callback_data values of the most recent keyboard."""
        for markup in reversed(self.markups):
            if markup is not None:
                return [
                    button["callback_data"]
                    for row in markup["inline_keyboard"]
                    for button in row
                ]
        return []


@dataclass
class FakeTelegramFileClient(TelegramFileClient):
    """Fake Telegram file client that returns static data."""

    content: bytes = b"fake-image-bytes"
    downloaded: list[str] = field(default_factory=list)

    async def get_file_url(self, file_id: str) -> str:
        return f"https://files.example.com/{file_id}.jpg"

    async def download_bytes(self, url: str) -> bytes:
        self.downloaded.append(url)
        return self.content


@dataclass
class FakeWorkflowClient(WorkflowClient):
    """Workflow client that replays scripted outcomes in order.

    Each outcome is either a response to return or an exception to raise;
    the last outcome repeats once the script runs out.
    """

    outcomes: list[WorkflowResponse | UpstreamFailure] = field(
        default_factory=lambda: [workflow_success()]
    )
    payloads: list[dict[str, object]] = field(default_factory=list)
    healthy: bool = True
    before_return: Callable[[], None] | None = None

    async def submit(self, payload: dict[str, object]) -> WorkflowResponse:
        self.payloads.append(payload)
        index = min(len(self.payloads), len(self.outcomes)) - 1
        outcome = self.outcomes[index]
        if self.before_return is not None:
            self.before_return()
        if isinstance(outcome, UpstreamFailure):
            raise outcome
        return outcome

    async def check_health(self) -> bool:
        return self.healthy


@dataclass
class InMemoryActivityRepository(ActivityRepository):
    """In-memory activity repository for tests."""

    entries: dict[str, ActivityEntry] = field(default_factory=dict)
    updates: list[tuple[str, str | None, str | None]] = field(default_factory=list)

    def create_entry(self, entry: ActivityEntry) -> str:
        entry_id = f"entry-{len(self.entries) + 1}"
        self.entries[entry_id] = entry
        return entry_id

    def update_entry(
        self, entry_id: str, status: str | None, feedback: str | None
    ) -> None:
        self.updates.append((entry_id, status, feedback))


@dataclass
class FailingActivityRepository(ActivityRepository):
    """Activity repository whose every call fails."""

    def create_entry(self, entry: ActivityEntry) -> str:
        raise CollaboratorLoggingFailure("activity store is down")

    def update_entry(
        self, entry_id: str, status: str | None, feedback: str | None
    ) -> None:
        raise CollaboratorLoggingFailure("activity store is down")


@pytest.fixture
def settings() -> Settings:
    return Settings(
        telegram_bot_token="test-token",
        admin_token="admin-token",
        environment="test",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def telegram_client() -> FakeTelegramClient:
    return FakeTelegramClient()


@pytest.fixture
def workflow_client() -> FakeWorkflowClient:
    return FakeWorkflowClient()


@pytest.fixture
def activity_repository() -> InMemoryActivityRepository:
    return InMemoryActivityRepository()


@pytest.fixture
def session_store(clock: FakeClock) -> InMemorySessionStore:
    return InMemorySessionStore(clock=clock)


@pytest.fixture
def processing_service(
    workflow_client: FakeWorkflowClient, sleep: RecordingSleep
) -> ProcessingService:
    return ProcessingService(client=workflow_client, sleep=sleep)


@pytest.fixture
def orchestrator(
    session_store: InMemorySessionStore,
    processing_service: ProcessingService,
    activity_repository: InMemoryActivityRepository,
) -> SessionOrchestrator:
    return SessionOrchestrator(
        store=session_store,
        processing_service=processing_service,
        activity_service=ActivityLogService(activity_repository),
    )


@pytest.fixture
def container(
    settings: Settings,
    telegram_client: FakeTelegramClient,
    workflow_client: FakeWorkflowClient,
    session_store: InMemorySessionStore,
    processing_service: ProcessingService,
    orchestrator: SessionOrchestrator,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        telegram_client=telegram_client,
        telegram_file_client=FakeTelegramFileClient(),
        workflow_client=workflow_client,
        session_store=session_store,
        activity_service=orchestrator.activity_service,
        processing_service=processing_service,
        orchestrator=orchestrator,
        start_command_handler=StartCommandHandler(telegram_client),
        help_command_handler=HelpCommandHandler(telegram_client),
        status_command_handler=StatusCommandHandler(telegram_client, workflow_client),
        close_resources=close_resources,
    )
