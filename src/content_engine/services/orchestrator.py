"""Session state machine for the photo-to-post flow."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from enum import Enum

from content_engine.domain.catalog import PRESETS
from content_engine.domain.processing import (
    ErrorKind,
    ProcessingFailure,
    ProcessingResult,
    ProcessingSuccess,
)
from content_engine.domain.sessions import (
    MAX_REFERENCE_PHOTOS,
    EventType,
    Session,
    SessionEvent,
    SessionState,
)
from content_engine.errors import InvalidTransition, SessionNotFound
from content_engine.services.activity import ActivityEntry, ActivityLogService
from content_engine.services.processing import ProcessingService
from content_engine.services.remix import remix_caption
from content_engine.services.store import SessionStore

logger = logging.getLogger(__name__)

ProcessingHook = Callable[[Session], Awaitable[None]]

_LEGAL_SOURCES: dict[EventType, frozenset[SessionState]] = {
    EventType.ADD_REFERENCES: frozenset({SessionState.AWAITING_REFERENCE_CHOICE}),
    EventType.SKIP_REFERENCES: frozenset({SessionState.AWAITING_REFERENCE_CHOICE}),
    EventType.REFERENCE_PHOTO: frozenset({SessionState.COLLECTING_REFERENCES}),
    EventType.DONE_REFERENCES: frozenset({SessionState.COLLECTING_REFERENCES}),
    EventType.SELECT_STYLE: frozenset({SessionState.AWAITING_STYLE}),
    EventType.SELECT_PRESET: frozenset({SessionState.AWAITING_STYLE}),
    EventType.SELECT_ANGLE: frozenset({SessionState.AWAITING_ANGLE}),
    EventType.ACCEPT_RESULT: frozenset({SessionState.AWAITING_OUTCOME_FEEDBACK}),
    EventType.RETRY_VARIATION: frozenset({SessionState.AWAITING_OUTCOME_FEEDBACK}),
    EventType.RETRY_STYLE: frozenset({SessionState.AWAITING_OUTCOME_FEEDBACK}),
    EventType.RETRY_ANGLE: frozenset({SessionState.AWAITING_OUTCOME_FEEDBACK}),
    EventType.APPROVE: frozenset({SessionState.PENDING_DECISION}),
    EventType.MODIFY: frozenset({SessionState.PENDING_DECISION}),
    EventType.REJECT: frozenset({SessionState.PENDING_DECISION}),
    EventType.FEEDBACK: frozenset({SessionState.REJECTED}),
}

_PROCESSING_EVENTS = frozenset({EventType.SELECT_ANGLE, EventType.RETRY_VARIATION})


class Notice(str, Enum):
    """Extra context for rendering a transition."""

    SESSION_STARTED = "session_started"
    REFERENCE_ADDED = "reference_added"
    REFERENCE_LIMIT = "reference_limit"
    PROCESSING_FAILED = "processing_failed"
    REMIX_MENU = "remix_menu"
    REMIX_APPLIED = "remix_applied"
    FEEDBACK_RECORDED = "feedback_recorded"


@dataclass(frozen=True)
class Transition:
    """Result of applying an event: the stored session plus render hints."""

    session: Session
    notice: Notice | None = None
    failure: ProcessingFailure | None = None


@dataclass
class SessionOrchestrator:
    """Drives sessions through the content-creation flow.

    Each session is a single-writer resource: every read-validate-save runs
    under a per-session asyncio lock. The lock is released while the
    workflow request is in flight, so events arriving meanwhile see the
    Processing state and are rejected.
    """

    store: SessionStore
    processing_service: ProcessingService
    activity_service: ActivityLogService = field(default_factory=ActivityLogService)
    _locks: dict[str, asyncio.Lock] = field(default_factory=dict, init=False)

    def start_session(
        self,
        user_id: int,
        chat_id: int,
        media_ref: str,
        restaurant_name: str | None = None,
    ) -> Transition:
        """Create a session for a new primary photo."""
        self.purge_expired()
        session = self.store.create(
            user_id=user_id,
            chat_id=chat_id,
            primary_media_ref=media_ref,
            restaurant_name=restaurant_name,
        )
        logger.info(
            "Session started", extra={"session_id": session.id, "user_id": user_id}
        )
        return Transition(session=session, notice=Notice.SESSION_STARTED)

    async def receive_photo(
        self,
        user_id: int,
        chat_id: int,
        media_ref: str,
        restaurant_name: str | None = None,
    ) -> Transition:
        """Route a photo to the user's collecting session or start a new one."""
        collecting = self.store.find_collecting(user_id)
        if collecting is not None:
            try:
                return await self.handle_event(
                    SessionEvent(
                        session_id=collecting.id,
                        event_type=EventType.REFERENCE_PHOTO,
                        media_ref=media_ref,
                    )
                )
            except (InvalidTransition, SessionNotFound):
                # The session left the collecting step before the lock was taken.
                logger.info(
                    "Collecting session moved on, starting a new session",
                    extra={"session_id": collecting.id},
                )
        return self.start_session(user_id, chat_id, media_ref, restaurant_name)

    def get_session(self, session_id: str) -> Session | None:
        return self.store.get(session_id)

    def purge_expired(self) -> list[str]:
        """Evict expired sessions and drop their locks."""
        expired = self.store.purge_expired()
        for session_id in expired:
            self._locks.pop(session_id, None)
        return expired

    async def handle_event(
        self, event: SessionEvent, on_processing: ProcessingHook | None = None
    ) -> Transition:
        """Apply one event to its session.

        Raises SessionNotFound for unknown or expired sessions and
        InvalidTransition for events that are not legal in the current state.
        ``on_processing`` is awaited once the Processing state is committed.
        """
        async with self._lock_for(event.session_id):
            session = self._require(event.session_id)
            self._validate(session, event)
            if event.event_type not in _PROCESSING_EVENTS:
                return self._apply(session, event)
            processing = self._begin_processing(session, event)

        if on_processing is not None:
            try:
                await on_processing(processing)
            except Exception:
                logger.exception(
                    "Processing notification failed",
                    extra={"session_id": processing.id},
                )
        return await self._run_processing(
            processing, variation=event.event_type is EventType.RETRY_VARIATION
        )

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        return self._locks.setdefault(session_id, asyncio.Lock())

    def _require(self, session_id: str) -> Session:
        session = self.store.get(session_id)
        if session is None:
            self._locks.pop(session_id, None)
            raise SessionNotFound(session_id)
        return session

    def _commit(self, session: Session) -> Session:
        try:
            return self.store.save(session)
        except KeyError as exc:
            raise SessionNotFound(session.id) from exc

    def _validate(self, session: Session, event: SessionEvent) -> None:
        legal = _LEGAL_SOURCES[event.event_type]
        if session.state not in legal:
            stale = session.state.rank > max(state.rank for state in legal)
            raise InvalidTransition(
                session.id,
                session.state.value,
                event.event_type.value,
                is_stale=stale,
            )
        if not self._guard(session, event):
            raise InvalidTransition(
                session.id, session.state.value, event.event_type.value
            )

    def _guard(self, session: Session, event: SessionEvent) -> bool:  # noqa: PLR0911
        event_type = event.event_type
        if event_type is EventType.ADD_REFERENCES:
            collecting = self.store.find_collecting(session.user_id)
            return collecting is None or collecting.id == session.id
        if event_type is EventType.REFERENCE_PHOTO:
            return bool(event.media_ref)
        if event_type is EventType.SELECT_STYLE:
            return event.style is not None
        if event_type is EventType.SELECT_PRESET:
            return event.preset is not None
        if event_type is EventType.SELECT_ANGLE:
            return event.angle is not None and session.selected_style is not None
        if event_type is EventType.RETRY_VARIATION:
            return (
                session.selected_style is not None
                and session.selected_angle is not None
            )
        if event_type is EventType.MODIFY:
            return session.last_result is not None
        if event_type is EventType.FEEDBACK:
            return bool(event.feedback) and session.feedback is None
        return True

    def _apply(self, session: Session, event: SessionEvent) -> Transition:  # noqa: PLR0911
        event_type = event.event_type
        if event_type is EventType.ADD_REFERENCES:
            return self._move(session, SessionState.COLLECTING_REFERENCES)
        if event_type in {EventType.SKIP_REFERENCES, EventType.DONE_REFERENCES}:
            return self._move(session, SessionState.AWAITING_STYLE)
        if event_type is EventType.REFERENCE_PHOTO:
            return self._add_reference(session, str(event.media_ref))
        if event_type is EventType.SELECT_STYLE:
            return self._move(
                session,
                SessionState.AWAITING_ANGLE,
                selected_style=event.style,
                selected_preset=None,
            )
        if event_type is EventType.SELECT_PRESET and event.preset is not None:
            return self._move(
                session,
                SessionState.AWAITING_ANGLE,
                selected_style=PRESETS[event.preset].style,
                selected_preset=event.preset,
            )
        if event_type is EventType.ACCEPT_RESULT:
            return self._move(session, SessionState.PENDING_DECISION)
        if event_type is EventType.RETRY_STYLE:
            return self._move(
                session,
                SessionState.AWAITING_STYLE,
                selected_style=None,
                selected_preset=None,
            )
        if event_type is EventType.RETRY_ANGLE:
            return self._move(session, SessionState.AWAITING_ANGLE, selected_angle=None)
        if event_type is EventType.APPROVE:
            transition = self._move(session, SessionState.APPROVED)
            self.activity_service.update_entry(
                session.activity_entry_id, status="approved"
            )
            return transition
        if event_type is EventType.MODIFY:
            return self._modify(session, event)
        if event_type is EventType.REJECT:
            transition = self._move(session, SessionState.REJECTED)
            self.activity_service.update_entry(
                session.activity_entry_id, status="rejected"
            )
            return transition
        return self._record_feedback(session, str(event.feedback))

    def _move(
        self, session: Session, state: SessionState, **changes: object
    ) -> Transition:
        saved = self._commit(replace(session, state=state, **changes))
        logger.info(
            "Session transitioned",
            extra={
                "session_id": session.id,
                "from_state": session.state.value,
                "to_state": state.value,
            },
        )
        return Transition(session=saved)

    def _add_reference(self, session: Session, media_ref: str) -> Transition:
        if len(session.auxiliary_media_refs) >= MAX_REFERENCE_PHOTOS:
            return Transition(session=session, notice=Notice.REFERENCE_LIMIT)
        saved = self._commit(
            replace(
                session,
                auxiliary_media_refs=(*session.auxiliary_media_refs, media_ref),
            )
        )
        return Transition(session=saved, notice=Notice.REFERENCE_ADDED)

    def _modify(self, session: Session, event: SessionEvent) -> Transition:
        if event.remix is None or session.last_result is None:
            return Transition(session=session, notice=Notice.REMIX_MENU)
        result = session.last_result
        remixed = replace(
            result, caption=remix_caption(result.original_caption, event.remix)
        )
        saved = self._commit(replace(session, last_result=remixed))
        return Transition(session=saved, notice=Notice.REMIX_APPLIED)

    def _record_feedback(self, session: Session, feedback: str) -> Transition:
        saved = self._commit(replace(session, feedback=feedback))
        self.activity_service.update_entry(
            session.activity_entry_id, status="rejected", feedback=feedback
        )
        return Transition(session=saved, notice=Notice.FEEDBACK_RECORDED)

    def _begin_processing(self, session: Session, event: SessionEvent) -> Session:
        if event.event_type is EventType.SELECT_ANGLE:
            session = replace(session, selected_angle=event.angle)
        return self._commit(replace(session, state=SessionState.PROCESSING))

    async def _run_processing(self, session: Session, variation: bool) -> Transition:
        if session.selected_style is None or session.selected_angle is None:
            raise InvalidTransition(
                session.id, session.state.value, EventType.SELECT_ANGLE.value
            )
        attempt_number = session.attempt_count + 1
        result: ProcessingResult
        try:
            result = await self.processing_service.submit(
                session.id,
                session.primary_media_ref,
                session.auxiliary_media_refs,
                session.selected_style,
                session.selected_angle,
                variation,
                attempt_number,
                user_id=session.user_id,
                chat_id=session.chat_id,
                restaurant_name=session.restaurant_name,
                preset=session.selected_preset,
            )
        except Exception as exc:
            logger.exception(
                "Processing raised unexpectedly", extra={"session_id": session.id}
            )
            result = ProcessingFailure(
                kind=ErrorKind.NETWORK, message=str(exc), attempts=1
            )

        async with self._lock_for(session.id):
            current = self.store.get(session.id)
            if current is None or current.state is not SessionState.PROCESSING:
                logger.info(
                    "Discarding processing result for a session that is gone",
                    extra={"session_id": session.id},
                )
                if current is None:
                    self._locks.pop(session.id, None)
                raise SessionNotFound(session.id)

            if isinstance(result, ProcessingSuccess):
                entry_id = self.activity_service.log_entry(
                    ActivityEntry(
                        session_id=current.id,
                        user_id=current.user_id,
                        status="pending",
                        caption=result.content.caption,
                        processing_time_ms=result.duration_ms,
                        attempt_number=attempt_number,
                        restaurant_name=current.restaurant_name,
                        style=current.selected_style.value
                        if current.selected_style
                        else None,
                        angle=current.selected_angle.value
                        if current.selected_angle
                        else None,
                        preset=current.selected_preset.value
                        if current.selected_preset
                        else None,
                    )
                )
                saved = self._commit(
                    replace(
                        current,
                        state=SessionState.AWAITING_OUTCOME_FEEDBACK,
                        attempt_count=current.attempt_count + 1,
                        last_result=result.content,
                        activity_entry_id=entry_id or current.activity_entry_id,
                    )
                )
                return Transition(session=saved)

            logger.warning(
                "Processing failed, returning to style selection",
                extra={"session_id": current.id, "kind": result.kind.value},
            )
            saved = self._commit(
                replace(
                    current,
                    state=SessionState.AWAITING_STYLE,
                    attempt_count=current.attempt_count + 1,
                    selected_style=None,
                    selected_angle=None,
                    selected_preset=None,
                )
            )
            return Transition(
                session=saved, notice=Notice.PROCESSING_FAILED, failure=result
            )
