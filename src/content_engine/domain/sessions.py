"""Domain models for content-creation sessions."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from content_engine.domain.catalog import Angle, Preset, Style
from content_engine.domain.processing import ContentResult

MAX_REFERENCE_PHOTOS = 3


class SessionState(str, Enum):
    """States of the content-creation flow, in forward order."""

    AWAITING_REFERENCE_CHOICE = "AWAITING_REFERENCE_CHOICE"
    COLLECTING_REFERENCES = "COLLECTING_REFERENCES"
    AWAITING_STYLE = "AWAITING_STYLE"
    AWAITING_ANGLE = "AWAITING_ANGLE"
    PROCESSING = "PROCESSING"
    AWAITING_OUTCOME_FEEDBACK = "AWAITING_OUTCOME_FEEDBACK"
    PENDING_DECISION = "PENDING_DECISION"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    @property
    def is_terminal(self) -> bool:
        return self in {SessionState.APPROVED, SessionState.REJECTED}

    @property
    def rank(self) -> int:
        """Position in the forward flow; both terminal states share the last rank."""
        if self.is_terminal:
            return _STATE_ORDER.index(SessionState.APPROVED)
        return _STATE_ORDER.index(self)


_STATE_ORDER = list(SessionState)


class EventType(str, Enum):
    """User events understood by the orchestrator."""

    ADD_REFERENCES = "ADD_REFERENCES"
    SKIP_REFERENCES = "SKIP_REFERENCES"
    REFERENCE_PHOTO = "REFERENCE_PHOTO"
    DONE_REFERENCES = "DONE_REFERENCES"
    SELECT_STYLE = "SELECT_STYLE"
    SELECT_PRESET = "SELECT_PRESET"
    SELECT_ANGLE = "SELECT_ANGLE"
    ACCEPT_RESULT = "ACCEPT_RESULT"
    RETRY_VARIATION = "RETRY_VARIATION"
    RETRY_STYLE = "RETRY_STYLE"
    RETRY_ANGLE = "RETRY_ANGLE"
    APPROVE = "APPROVE"
    MODIFY = "MODIFY"
    REJECT = "REJECT"
    FEEDBACK = "FEEDBACK"


class RemixStyle(str, Enum):
    """Local caption transforms offered from the decision step."""

    INTENSIFY = "intensify"
    SOFTEN = "soften"
    SHORTEN = "shorten"
    ELABORATE = "elaborate"
    ORIGINAL = "original"


@dataclass(frozen=True)
class SessionEvent:
    """Tagged event addressed to a single session."""

    session_id: str
    event_type: EventType
    style: Style | None = None
    preset: Preset | None = None
    angle: Angle | None = None
    remix: RemixStyle | None = None
    media_ref: str | None = None
    feedback: str | None = None


@dataclass(frozen=True)
class Session:
    """One user's in-progress content-creation conversation."""

    id: str
    user_id: int
    chat_id: int
    primary_media_ref: str
    state: SessionState
    created_at: datetime
    updated_at: datetime
    auxiliary_media_refs: tuple[str, ...] = ()
    selected_style: Style | None = None
    selected_preset: Preset | None = None
    selected_angle: Angle | None = None
    attempt_count: int = 0
    last_result: ContentResult | None = None
    restaurant_name: str | None = None
    activity_entry_id: str | None = None
    feedback: str | None = None

    @property
    def has_references(self) -> bool:
        return bool(self.auxiliary_media_refs)
