"""Supabase repository for content activity entries."""

from dataclasses import dataclass

from supabase import Client

from content_engine.errors import CollaboratorLoggingFailure
from content_engine.services.activity import ActivityEntry, ActivityRepository


@dataclass
class SupabaseActivityRepository(ActivityRepository):
    """Supabase-backed activity log."""

    client: Client

    def create_entry(self, entry: ActivityEntry) -> str:
        """Insert a content_logs row and return its id."""
        response = (
            self.client.table("content_logs")
            .insert(
                {
                    "session_id": entry.session_id,
                    "telegram_user_id": entry.user_id,
                    "restaurant_name": entry.restaurant_name,
                    "status": entry.status,
                    "caption": entry.caption[:2000] if entry.caption else None,
                    "style": entry.style,
                    "preset": entry.preset,
                    "angle": entry.angle,
                    "attempt_number": entry.attempt_number,
                    "processing_time_ms": entry.processing_time_ms,
                }
            )
            .execute()
        )
        if not response.data:
            raise CollaboratorLoggingFailure("Failed to create activity entry")
        return str(response.data[0]["id"])

    def update_entry(
        self, entry_id: str, status: str | None, feedback: str | None
    ) -> None:
        """Update status and feedback of an existing row."""
        payload: dict[str, object] = {}
        if status is not None:
            payload["status"] = status
        if feedback is not None:
            payload["feedback"] = feedback[:2000]
        if not payload:
            return
        self.client.table("content_logs").update(payload).eq("id", entry_id).execute()
