"""Fixed catalog of presentation styles, crowd presets and camera angles."""

from dataclasses import dataclass
from enum import Enum


class Style(str, Enum):
    """Thematic style applied to a processing request."""

    BRUNCH = "brunch"
    LUNCH = "lunch"
    DINNER = "dinner"
    EVENT = "event"
    ROYAL = "royal"


class Angle(str, Enum):
    """Camera angle applied to a processing request."""

    CLASSIC_45 = "45deg"
    OVERHEAD = "overhead"
    EYE_LEVEL = "eyelevel"
    THREE_QUARTER = "threequarter"


class Preset(str, Enum):
    """Crowd scene preset layered on top of a style."""

    ELEGANT = "elegant"
    LUNCH = "lunch"
    ROMANTIC = "romantic"
    CELEBRATION = "celebration"


@dataclass(frozen=True)
class StyleInfo:
    emoji: str
    label: str
    caption_context: str


@dataclass(frozen=True)
class AngleInfo:
    emoji: str
    label: str
    description: str


@dataclass(frozen=True)
class PresetInfo:
    emoji: str
    label: str
    style: Style
    prompt: str


STYLES: dict[Style, StyleInfo] = {
    Style.BRUNCH: StyleInfo("🌅", "Brunch", "Relaxed weekend brunch"),
    Style.LUNCH: StyleInfo("☀️", "Lunch", "Energising midday break"),
    Style.DINNER: StyleInfo("🌙", "Dinner", "Intimate evening dining"),
    Style.EVENT: StyleInfo("🎉", "Event", "A special moment to share"),
    Style.ROYAL: StyleInfo("👑", "Royal Thai", "Royal Thai tradition and elegance"),
}

ANGLES: dict[Angle, AngleInfo] = {
    Angle.CLASSIC_45: AngleInfo(
        "📐", "45° Classic", "45-degree shot, the most appetizing angle"
    ),
    Angle.OVERHEAD: AngleInfo("🔝", "Overhead", "Flat lay from above"),
    Angle.EYE_LEVEL: AngleInfo("👁️", "Eye level", "Hero shot for tall dishes"),
    Angle.THREE_QUARTER: AngleInfo("🎯", "3/4 Angle", "Natural three-quarter view"),
}


PRESETS: dict[Preset, PresetInfo] = {
    Preset.ELEGANT: PresetInfo(
        "👔",
        "Elegant Diners",
        Style.DINNER,
        "Add elegant, sophisticated diners enjoying their meal. Couples and small "
        "groups in upscale attire, warm ambient lighting, realistic photography.",
    ),
    Preset.LUNCH: PresetInfo(
        "☕",
        "Busy Lunch",
        Style.LUNCH,
        "Add a vibrant lunch crowd of professionals and casual diners. Natural "
        "daylight, lively atmosphere, keep the original ambiance.",
    ),
    Preset.ROMANTIC: PresetInfo(
        "💕",
        "Romantic Evening",
        Style.DINNER,
        "Turn the scene into a romantic evening with couples at intimate dinners. "
        "Soft candlelight, elegant attire, wine glasses raised.",
    ),
    Preset.CELEBRATION: PresetInfo(
        "🎉",
        "Group Celebration",
        Style.EVENT,
        "Add a festive group celebration with happy guests raising a toast. Mixed "
        "ages, joyful expressions, keep the restaurant's own style.",
    ),
}


def parse_style(raw: str | None) -> Style | None:
    """Return the style for a raw value, or None when it is not in the catalog."""
    try:
        return Style(raw)
    except ValueError:
        return None


def parse_angle(raw: str | None) -> Angle | None:
    """Return the angle for a raw value, or None when it is not in the catalog."""
    try:
        return Angle(raw)
    except ValueError:
        return None


def parse_preset(raw: str | None) -> Preset | None:
    """Return the preset for a raw value, or None when it is not in the catalog."""
    try:
        return Preset(raw)
    except ValueError:
        return None

