"""Local caption transforms used when the user asks to modify a caption."""

import re

from content_engine.domain.sessions import RemixStyle

SHORT_CAPTION_LIMIT = 100

_SENTENCE_END = re.compile(r"(?<=[.!?])\s+")
_ELABORATE_SUFFIX = (
    "Made fresh in our kitchen today. Come taste it for yourself, "
    "we saved you a seat."
)


def remix_caption(caption: str, style: RemixStyle) -> str:
    """Return the caption rewritten in the given style.

    The transform is a pure function of its inputs.
    """
    text = caption.strip()
    if not text or style is RemixStyle.ORIGINAL:
        return text
    if style is RemixStyle.INTENSIFY:
        return _intensify(text)
    if style is RemixStyle.SOFTEN:
        return _soften(text)
    if style is RemixStyle.SHORTEN:
        return _shorten(text)
    return _elaborate(text)


def _sentences(text: str) -> list[str]:
    return [part for part in _SENTENCE_END.split(text) if part]


def _intensify(text: str) -> str:
    sentences = [sentence.rstrip(".") for sentence in _sentences(text)]
    punched = [
        sentence if sentence.endswith(("!", "?")) else f"{sentence}!"
        for sentence in sentences
    ]
    return "🔥 " + " ".join(punched)


def _soften(text: str) -> str:
    softened = re.sub(r"!+", ".", text)
    softened = softened.replace("🔥", "").strip()
    softened = re.sub(r"\s{2,}", " ", softened)
    return f"{softened} 🌿"


def _shorten(text: str) -> str:
    first = _sentences(text)[0]
    if len(first) <= SHORT_CAPTION_LIMIT:
        return first
    cut = first[:SHORT_CAPTION_LIMIT].rsplit(" ", 1)[0]
    return f"{cut.rstrip(',;:')}…"


def _elaborate(text: str) -> str:
    if not text.endswith((".", "!", "?")):
        text = f"{text}."
    return f"{text} {_ELABORATE_SUFFIX}"
