"""Tests for callback parsing and prompt rendering."""

from dataclasses import replace
from datetime import UTC, datetime

from content_engine.domain.catalog import PRESETS, Angle, Preset, Style
from content_engine.domain.processing import (
    ContentResult,
    ErrorKind,
    ProcessingFailure,
)
from content_engine.domain.sessions import (
    EventType,
    RemixStyle,
    Session,
    SessionState,
)
from content_engine.services.orchestrator import Notice, Transition
from content_engine.services.presenter import (
    callback_data,
    failure_text,
    format_post,
    parse_callback,
    render,
)

NOW = datetime(2024, 5, 1, 12, tzinfo=UTC)
SESSION = Session(
    id="0123456789ab",
    user_id=42,
    chat_id=42,
    primary_media_ref="https://files.example.com/dish.jpg",
    state=SessionState.AWAITING_REFERENCE_CHOICE,
    created_at=NOW,
    updated_at=NOW,
)
RESULT = ContentResult(
    enhanced_media_ref="https://cdn.example.com/enhanced.jpg",
    caption="Crispy pad thai.",
    original_caption="Crispy pad thai.",
    hashtags=("#padthai", "#bangkok"),
)


def _buttons(markup: dict | None) -> list[str]:
    assert markup is not None
    return [
        button["callback_data"] for row in markup["inline_keyboard"] for button in row
    ]


def _at(state: SessionState) -> Session:
    return replace(SESSION, state=state)


def test_parse_simple_actions() -> None:
    event = parse_callback("s:0123456789ab:ref_skip")

    assert event is not None
    assert event.session_id == "0123456789ab"
    assert event.event_type is EventType.SKIP_REFERENCES


def test_parse_style_and_angle() -> None:
    style_event = parse_callback("s:abc:style:royal")
    angle_event = parse_callback("s:abc:angle:45deg")

    assert style_event is not None
    assert style_event.event_type is EventType.SELECT_STYLE
    assert style_event.style is Style.ROYAL
    assert angle_event is not None
    assert angle_event.angle is Angle.CLASSIC_45


def test_parse_preset() -> None:
    event = parse_callback("s:abc:preset:romantic")
    unknown = parse_callback("s:abc:preset:disco")

    assert event is not None
    assert event.event_type is EventType.SELECT_PRESET
    assert event.preset is Preset.ROMANTIC
    assert unknown is not None
    assert unknown.preset is None


def test_parse_unknown_style_yields_event_without_value() -> None:
    event = parse_callback("s:abc:style:breakfast")

    assert event is not None
    assert event.event_type is EventType.SELECT_STYLE
    assert event.style is None


def test_parse_remix_and_feedback() -> None:
    remix = parse_callback("s:abc:remix:shorten")
    feedback = parse_callback("s:abc:fb:caption_bad")

    assert remix is not None
    assert remix.event_type is EventType.MODIFY
    assert remix.remix is RemixStyle.SHORTEN
    assert feedback is not None
    assert feedback.event_type is EventType.FEEDBACK
    assert feedback.feedback == "caption_bad"


def test_parse_rejects_garbage() -> None:
    assert parse_callback("confirm") is None
    assert parse_callback("s::approve") is None
    assert parse_callback("s:abc") is None
    assert parse_callback("s:abc:launch") is None
    assert parse_callback("s:abc:remix:louder") is None
    assert parse_callback("s:abc:fb:whatever") is None


def test_callback_data_round_trips_every_button() -> None:
    prompts = [
        render(Transition(session=SESSION)),
        render(Transition(session=_at(SessionState.AWAITING_STYLE))),
        render(Transition(session=_at(SessionState.AWAITING_ANGLE))),
        render(
            Transition(
                session=replace(
                    SESSION, state=SessionState.PENDING_DECISION, last_result=RESULT
                ),
                notice=Notice.REMIX_MENU,
            )
        ),
        render(Transition(session=_at(SessionState.REJECTED))),
    ]

    for prompt in prompts:
        for data in _buttons(prompt.reply_markup):
            assert len(data.encode("utf-8")) <= 64
            event = parse_callback(data)
            assert event is not None
            assert event.session_id == SESSION.id


def test_callback_data_format() -> None:
    assert callback_data("abc", "approve") == "s:abc:approve"
    assert callback_data("abc", "style", "dinner") == "s:abc:style:dinner"


def test_render_reference_choice() -> None:
    prompt = render(Transition(session=SESSION, notice=Notice.SESSION_STARTED))

    assert _buttons(prompt.reply_markup) == [
        "s:0123456789ab:ref_add",
        "s:0123456789ab:ref_skip",
    ]


def test_render_collecting_limit() -> None:
    session = replace(
        SESSION,
        state=SessionState.COLLECTING_REFERENCES,
        auxiliary_media_refs=("a", "b", "c"),
    )

    prompt = render(Transition(session=session, notice=Notice.REFERENCE_LIMIT))

    assert "3" in prompt.text
    assert _buttons(prompt.reply_markup) == ["s:0123456789ab:ref_done"]


def test_render_style_menu_after_failure() -> None:
    session = replace(SESSION, state=SessionState.AWAITING_STYLE, attempt_count=1)
    failure = ProcessingFailure(kind=ErrorKind.TIMEOUT, message="slow", attempts=3)

    prompt = render(
        Transition(session=session, notice=Notice.PROCESSING_FAILED, failure=failure)
    )

    assert prompt.text.startswith(failure_text(failure))
    buttons = _buttons(prompt.reply_markup)
    assert len(buttons) == len(Style) + len(Preset)
    assert "s:0123456789ab:preset:celebration" in buttons


def test_render_outcome_shows_photo() -> None:
    session = replace(
        SESSION,
        state=SessionState.AWAITING_OUTCOME_FEEDBACK,
        attempt_count=1,
        last_result=RESULT,
    )

    prompt = render(Transition(session=session))

    assert prompt.photo_url == RESULT.enhanced_media_ref
    assert "#padthai #bangkok" in prompt.text
    assert _buttons(prompt.reply_markup) == [
        "s:0123456789ab:ok",
        "s:0123456789ab:var",
        "s:0123456789ab:rstyle",
        "s:0123456789ab:rangle",
    ]


def test_render_outcome_flags_unenhanced_image() -> None:
    session = replace(
        SESSION,
        state=SessionState.AWAITING_OUTCOME_FEEDBACK,
        attempt_count=1,
        last_result=replace(RESULT, is_fallback_media=True),
    )

    prompt = render(Transition(session=session))

    assert "without enhancement" in prompt.text


def test_render_decision_and_approved() -> None:
    session = replace(SESSION, state=SessionState.PENDING_DECISION, last_result=RESULT)

    decision = render(Transition(session=session))
    approved = render(
        Transition(session=replace(session, state=SessionState.APPROVED))
    )

    assert _buttons(decision.reply_markup) == [
        "s:0123456789ab:approve",
        "s:0123456789ab:modify",
        "s:0123456789ab:reject",
    ]
    assert approved.photo_url == RESULT.enhanced_media_ref
    assert approved.reply_markup is None
    assert format_post(session) in approved.text


def test_render_feedback_recorded() -> None:
    session = replace(SESSION, state=SessionState.REJECTED, feedback="other")

    prompt = render(Transition(session=session, notice=Notice.FEEDBACK_RECORDED))

    assert prompt.reply_markup is None
    assert "feedback" in prompt.text.lower()


def test_failure_text_explains_kind() -> None:
    unavailable = ProcessingFailure(
        kind=ErrorKind.SERVER_ERROR, message="502", attempts=3, status_code=502
    )
    rejected = ProcessingFailure(kind=ErrorKind.REJECTED, message="no", attempts=1)

    assert "unavailable" in failure_text(unavailable)
    assert "could not process" in failure_text(rejected)


def test_render_angle_prompt_names_the_preset() -> None:
    session = replace(
        SESSION,
        state=SessionState.AWAITING_ANGLE,
        selected_style=Style.EVENT,
        selected_preset=Preset.CELEBRATION,
    )

    prompt = render(Transition(session=session))

    assert PRESETS[Preset.CELEBRATION].label in prompt.text
