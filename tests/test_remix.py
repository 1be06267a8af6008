"""Tests for local caption remixes."""

from content_engine.domain.sessions import RemixStyle
from content_engine.services.remix import SHORT_CAPTION_LIMIT, remix_caption

CAPTION = "Crispy pad thai, fresh from the wok. Come hungry"


def test_intensify_adds_energy() -> None:
    assert remix_caption(CAPTION, RemixStyle.INTENSIFY) == (
        "🔥 Crispy pad thai, fresh from the wok! Come hungry!"
    )


def test_soften_calms_punctuation() -> None:
    assert remix_caption("🔥 Amazing!! Try it!", RemixStyle.SOFTEN) == (
        "Amazing. Try it. 🌿"
    )


def test_shorten_keeps_first_sentence() -> None:
    assert remix_caption(CAPTION, RemixStyle.SHORTEN) == (
        "Crispy pad thai, fresh from the wok."
    )


def test_shorten_truncates_long_sentence_on_word_boundary() -> None:
    caption = " ".join(["delicious"] * 30)

    shortened = remix_caption(caption, RemixStyle.SHORTEN)

    assert shortened.endswith("…")
    assert len(shortened) <= SHORT_CAPTION_LIMIT + 1
    assert shortened[:-1].split(" ")[-1] == "delicious"


def test_elaborate_appends_detail() -> None:
    elaborated = remix_caption("Tasty", RemixStyle.ELABORATE)

    assert elaborated.startswith("Tasty. ")
    assert len(elaborated) > len("Tasty. ")


def test_original_returns_trimmed_caption() -> None:
    assert remix_caption("  Just right.  ", RemixStyle.ORIGINAL) == "Just right."


def test_remix_is_deterministic_and_handles_empty() -> None:
    for style in RemixStyle:
        assert remix_caption(CAPTION, style) == remix_caption(CAPTION, style)
        assert remix_caption("   ", style) == ""
