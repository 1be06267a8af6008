"""Translate orchestrator transitions to Telegram prompts and back."""

from dataclasses import dataclass

from content_engine.domain.catalog import (
    ANGLES,
    PRESETS,
    STYLES,
    parse_angle,
    parse_preset,
    parse_style,
)
from content_engine.domain.processing import ErrorKind, ProcessingFailure
from content_engine.domain.sessions import (
    MAX_REFERENCE_PHOTOS,
    EventType,
    RemixStyle,
    Session,
    SessionEvent,
    SessionState,
)
from content_engine.services.orchestrator import Notice, Transition

FEEDBACK_REASONS: dict[str, str] = {
    "photo_bad": "📷 Photo not good",
    "caption_bad": "✍️ Caption not good",
    "style_wrong": "🎨 Wrong style",
    "other": "🤷 Other reason",
}

REMIX_LABELS: dict[RemixStyle, str] = {
    RemixStyle.INTENSIFY: "🔥 More punchy",
    RemixStyle.SOFTEN: "😌 More chill",
    RemixStyle.SHORTEN: "📝 Shorter",
    RemixStyle.ELABORATE: "📖 More detailed",
    RemixStyle.ORIGINAL: "↩️ Keep original",
}

PROCESSING_TEXT = "✨ Working on your photo... this usually takes about a minute."
SESSION_EXPIRED_TEXT = "⌛ This session has expired. Please send your photo again."
STALE_ACTION_TEXT = "This button is no longer active."

# Plain action codes map one-to-one to events; parameterised ones are parsed below.
_SIMPLE_ACTIONS: dict[str, EventType] = {
    "ref_add": EventType.ADD_REFERENCES,
    "ref_skip": EventType.SKIP_REFERENCES,
    "ref_done": EventType.DONE_REFERENCES,
    "ok": EventType.ACCEPT_RESULT,
    "var": EventType.RETRY_VARIATION,
    "rstyle": EventType.RETRY_STYLE,
    "rangle": EventType.RETRY_ANGLE,
    "approve": EventType.APPROVE,
    "modify": EventType.MODIFY,
    "reject": EventType.REJECT,
}


@dataclass(frozen=True)
class SessionPrompt:
    """Represents the next user-facing message."""

    text: str
    reply_markup: dict | None = None
    photo_url: str | None = None


def callback_data(session_id: str, action: str, param: str | None = None) -> str:
    """Build callback_data within Telegram's 64-byte limit."""
    if param is None:
        return f"s:{session_id}:{action}"
    return f"s:{session_id}:{action}:{param}"


def parse_callback(data: str) -> SessionEvent | None:  # noqa: PLR0911
    """Parse callback data in the format s:<session_id>:<action>[:<param>]."""
    if not data.startswith("s:"):
        return None
    parts = data.split(":", maxsplit=3)
    if len(parts) not in {3, 4}:
        return None
    _, session_id, action, *rest = parts
    param = rest[0] if rest else None
    if not session_id:
        return None

    if action in _SIMPLE_ACTIONS:
        return SessionEvent(session_id=session_id, event_type=_SIMPLE_ACTIONS[action])
    if action == "style":
        return SessionEvent(
            session_id=session_id,
            event_type=EventType.SELECT_STYLE,
            style=parse_style(param),
        )
    if action == "preset":
        return SessionEvent(
            session_id=session_id,
            event_type=EventType.SELECT_PRESET,
            preset=parse_preset(param),
        )
    if action == "angle":
        return SessionEvent(
            session_id=session_id,
            event_type=EventType.SELECT_ANGLE,
            angle=parse_angle(param),
        )
    if action == "remix":
        try:
            remix = RemixStyle(param)
        except ValueError:
            return None
        return SessionEvent(
            session_id=session_id, event_type=EventType.MODIFY, remix=remix
        )
    if action == "fb":
        if param not in FEEDBACK_REASONS:
            return None
        return SessionEvent(
            session_id=session_id, event_type=EventType.FEEDBACK, feedback=param
        )
    return None


def render(transition: Transition) -> SessionPrompt:  # noqa: PLR0911
    """Render the prompt for a session after a transition."""
    session = transition.session
    notice = transition.notice
    state = session.state

    if state is SessionState.AWAITING_REFERENCE_CHOICE:
        return _reference_choice_prompt(session)
    if state is SessionState.COLLECTING_REFERENCES:
        return _collecting_prompt(session, notice)
    if state is SessionState.AWAITING_STYLE:
        header = "🎨 Choose a style for your post, or a crowd preset:"
        if transition.failure is not None:
            header = f"{failure_text(transition.failure)}\n\n{header}"
        return SessionPrompt(text=header, reply_markup=_style_keyboard(session.id))
    if state is SessionState.AWAITING_ANGLE:
        label = _choice_label(session)
        return SessionPrompt(
            text=f"Style: {label}\n📐 Now choose a camera angle:",
            reply_markup=_angle_keyboard(session.id),
        )
    if state is SessionState.PROCESSING:
        return SessionPrompt(text=PROCESSING_TEXT)
    if state is SessionState.AWAITING_OUTCOME_FEEDBACK:
        return _outcome_prompt(session)
    if state is SessionState.PENDING_DECISION:
        if notice is Notice.REMIX_MENU:
            return SessionPrompt(
                text="✏️ How should I rework the caption?",
                reply_markup=_remix_keyboard(session.id),
            )
        return _decision_prompt(session)
    if state is SessionState.APPROVED:
        return SessionPrompt(
            text=f"✅ Approved! Your post is ready to share.\n\n{format_post(session)}",
            photo_url=_media_url(session),
        )
    if notice is Notice.FEEDBACK_RECORDED:
        return SessionPrompt(
            text="🙏 Thanks for the feedback! Send a new photo whenever you're ready."
        )
    return SessionPrompt(
        text="❌ Post rejected. What went wrong?",
        reply_markup=_feedback_keyboard(session.id),
    )


def failure_text(failure: ProcessingFailure) -> str:
    """User-facing explanation of a failed processing attempt."""
    if failure.kind is ErrorKind.TIMEOUT:
        reason = "The creative service took too long to respond."
    elif failure.kind in {ErrorKind.NETWORK, ErrorKind.SERVER_ERROR}:
        reason = "The creative service is unavailable right now."
    else:
        reason = "The creative service could not process this photo."
    return (
        f"😔 Sorry, I couldn't create your post. {reason}\n"
        "Your photo is saved: pick a style to try again, or send a new photo."
    )


def format_post(session: Session) -> str:
    """Caption with hashtags for the session's latest result."""
    result = session.last_result
    if result is None:
        return ""
    hashtags = " ".join(result.hashtags)
    return f"{result.caption}\n\n{hashtags}".strip()


def _choice_label(session: Session) -> str:
    if session.selected_preset is not None:
        return PRESETS[session.selected_preset].label
    if session.selected_style is not None:
        return STYLES[session.selected_style].label
    return ""


def _media_url(session: Session) -> str | None:
    if session.last_result is None:
        return None
    return session.last_result.enhanced_media_ref


def _inline_keyboard(rows: list[list[tuple[str, str]]]) -> dict:
    """Build a Telegram inline keyboard payload."""
    return {
        "inline_keyboard": [
            [{"text": label, "callback_data": callback} for label, callback in row]
            for row in rows
        ]
    }


def _reference_choice_prompt(session: Session) -> SessionPrompt:
    return SessionPrompt(
        text=(
            "📸 Photo received!\n"
            "Want to add photos of your restaurant decor so the result "
            "matches your place?"
        ),
        reply_markup=_inline_keyboard(
            [
                [("📷 Yes, add decor", callback_data(session.id, "ref_add"))],
                [("⏭️ No, continue", callback_data(session.id, "ref_skip"))],
            ]
        ),
    )


def _collecting_prompt(session: Session, notice: Notice | None) -> SessionPrompt:
    count = len(session.auxiliary_media_refs)
    if notice is Notice.REFERENCE_LIMIT:
        text = (
            f"You already sent {MAX_REFERENCE_PHOTOS} decor photos. "
            "Tap Done to continue."
        )
    elif notice is Notice.REFERENCE_ADDED:
        text = f"✅ Decor photo {count}/{MAX_REFERENCE_PHOTOS} received."
        if count < MAX_REFERENCE_PHOTOS:
            text += " Send another or tap Done."
    else:
        text = (
            f"📷 Send up to {MAX_REFERENCE_PHOTOS} photos of your restaurant decor, "
            "then tap Done."
        )
    return SessionPrompt(
        text=text,
        reply_markup=_inline_keyboard(
            [[("✅ Done, continue", callback_data(session.id, "ref_done"))]]
        ),
    )


def _style_keyboard(session_id: str) -> dict:
    buttons = [
        (f"{info.emoji} {info.label}", callback_data(session_id, "style", style.value))
        for style, info in STYLES.items()
    ]
    rows = [buttons[i : i + 2] for i in range(0, len(buttons), 2)]
    for preset, info in PRESETS.items():
        label = f"{info.emoji} {info.label}"
        rows.append([(label, callback_data(session_id, "preset", preset.value))])
    return _inline_keyboard(rows)


def _angle_keyboard(session_id: str) -> dict:
    buttons = [
        (f"{info.emoji} {info.label}", callback_data(session_id, "angle", angle.value))
        for angle, info in ANGLES.items()
    ]
    return _inline_keyboard([buttons[i : i + 2] for i in range(0, len(buttons), 2)])


def _outcome_prompt(session: Session) -> SessionPrompt:
    result = session.last_result
    notes = []
    if result is not None and result.is_fallback_media:
        notes.append("(image shown without enhancement)")
    suffix = f"\n{' '.join(notes)}" if notes else ""
    return SessionPrompt(
        text=(
            f"✨ Here is your post! (attempt {session.attempt_count})\n\n"
            f"{format_post(session)}{suffix}"
        ),
        photo_url=_media_url(session),
        reply_markup=_inline_keyboard(
            [
                [("✅ Looks good!", callback_data(session.id, "ok"))],
                [("🔄 Retry (variation)", callback_data(session.id, "var"))],
                [
                    ("🎨 Change style", callback_data(session.id, "rstyle")),
                    ("📐 Change angle", callback_data(session.id, "rangle")),
                ],
            ]
        ),
    )


def _decision_prompt(session: Session) -> SessionPrompt:
    return SessionPrompt(
        text=f"📝 Final check:\n\n{format_post(session)}",
        reply_markup=_inline_keyboard(
            [
                [
                    ("✅ Approve", callback_data(session.id, "approve")),
                    ("✏️ Modify", callback_data(session.id, "modify")),
                ],
                [("❌ Reject", callback_data(session.id, "reject"))],
            ]
        ),
    )


def _remix_keyboard(session_id: str) -> dict:
    buttons = [
        (label, callback_data(session_id, "remix", remix.value))
        for remix, label in REMIX_LABELS.items()
    ]
    return _inline_keyboard([buttons[0:2], buttons[2:4], buttons[4:]])


def _feedback_keyboard(session_id: str) -> dict:
    buttons = [
        (label, callback_data(session_id, "fb", reason))
        for reason, label in FEEDBACK_REASONS.items()
    ]
    return _inline_keyboard([buttons[0:2], buttons[2:4]])
