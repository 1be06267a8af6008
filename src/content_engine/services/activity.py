"""Best-effort activity logging for generated content."""

import logging
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActivityEntry:
    """A generated post as recorded in the activity log."""

    session_id: str
    user_id: int
    status: str
    caption: str | None
    processing_time_ms: int
    attempt_number: int
    restaurant_name: str | None = None
    style: str | None = None
    preset: str | None = None
    angle: str | None = None


class ActivityRepository(Protocol):
    """Persistence interface for activity entries."""

    def create_entry(self, entry: ActivityEntry) -> str:
        """Create an entry and return its id."""

    def update_entry(
        self, entry_id: str, status: str | None, feedback: str | None
    ) -> None:
        """Update status and/or feedback of an entry."""


@dataclass
class ActivityLogService:
    """Records activity without ever failing the caller.

    A missing repository disables logging entirely.
    """

    repository: ActivityRepository | None = None

    def log_entry(self, entry: ActivityEntry) -> str | None:
        """Create an activity entry, returning its id or None on failure."""
        if self.repository is None:
            logger.debug("Activity logging skipped (not configured)")
            return None
        try:
            return self.repository.create_entry(entry)
        except Exception as exc:
            logger.warning(
                "Activity logging failed",
                extra={"session_id": entry.session_id, "error": str(exc)},
            )
            return None

    def update_entry(
        self,
        entry_id: str | None,
        status: str | None = None,
        feedback: str | None = None,
    ) -> None:
        """Update an activity entry if one was recorded."""
        if self.repository is None or entry_id is None:
            return
        try:
            self.repository.update_entry(entry_id, status=status, feedback=feedback)
        except Exception as exc:
            logger.warning(
                "Activity update failed",
                extra={"entry_id": entry_id, "error": str(exc)},
            )
