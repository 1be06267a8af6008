"""Tests for best-effort activity logging."""

from content_engine.services.activity import ActivityEntry, ActivityLogService
from tests.conftest import FailingActivityRepository, InMemoryActivityRepository

ENTRY = ActivityEntry(
    session_id="abc123",
    user_id=42,
    status="pending",
    caption="Crispy pad thai.",
    processing_time_ms=1200,
    attempt_number=1,
    style="dinner",
    angle="45deg",
)


def test_log_entry_returns_repository_id() -> None:
    repository = InMemoryActivityRepository()
    service = ActivityLogService(repository)

    entry_id = service.log_entry(ENTRY)

    assert entry_id == "entry-1"
    assert repository.entries["entry-1"] == ENTRY


def test_logging_disabled_without_repository() -> None:
    service = ActivityLogService()

    assert service.log_entry(ENTRY) is None
    service.update_entry("entry-1", status="approved")


def test_failures_are_swallowed() -> None:
    service = ActivityLogService(FailingActivityRepository())

    assert service.log_entry(ENTRY) is None
    service.update_entry("entry-1", status="approved")


def test_update_skips_missing_entry_id() -> None:
    repository = InMemoryActivityRepository()
    service = ActivityLogService(repository)

    service.update_entry(None, status="approved")
    service.update_entry("entry-9", status="rejected", feedback="other")

    assert repository.updates == [("entry-9", "rejected", "other")]
