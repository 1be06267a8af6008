"""Error types raised across the content engine."""

from content_engine.domain.processing import ErrorKind


class ContentEngineError(Exception):
    """Base class for content engine errors."""


class SessionNotFound(ContentEngineError):
    """The session id is unknown, expired or already cleaned up."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session {session_id} not found")
        self.session_id = session_id


class InvalidTransition(ContentEngineError):
    """The event is not legal in the session's current state."""

    def __init__(
        self, session_id: str, state: str, event_type: str, *, is_stale: bool = False
    ) -> None:
        super().__init__(
            f"Event {event_type} is not valid for session {session_id} in {state}"
        )
        self.session_id = session_id
        self.state = state
        self.event_type = event_type
        self.is_stale = is_stale


class UpstreamFailure(ContentEngineError):
    """A call to the external workflow failed."""

    def __init__(
        self, kind: ErrorKind, message: str, status_code: int | None = None
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status_code = status_code


class TransientUpstreamFailure(UpstreamFailure):
    """Network, timeout or 5xx failure that may succeed on retry."""


class PermanentUpstreamFailure(UpstreamFailure):
    """4xx, rejected or malformed response; retrying will not help."""


class CollaboratorLoggingFailure(ContentEngineError):
    """Writing to the activity log failed."""


def classify_status(status_code: int, message: str) -> UpstreamFailure:
    """Map a non-2xx HTTP status to the matching upstream failure."""
    if status_code >= 500:  # noqa: PLR2004
        return TransientUpstreamFailure(ErrorKind.SERVER_ERROR, message, status_code)
    return PermanentUpstreamFailure(ErrorKind.CLIENT_ERROR, message, status_code)
