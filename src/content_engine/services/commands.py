"""Command handlers for Telegram updates."""

import time
from collections.abc import Callable
from dataclasses import dataclass, field

from content_engine.adapters.fal_client import EnhancementClient
from content_engine.adapters.telegram_client import TelegramClient
from content_engine.adapters.workflow_client import WorkflowClient
from content_engine.domain.catalog import ANGLES, PRESETS, STYLES

WELCOME_TEXT = (
    "👋 Welcome to the Content Engine!\n\n"
    "Send me a photo of your dish and I'll turn it into a ready-to-post "
    "picture with a caption.\n\n"
    "1. Send a photo\n"
    "2. Optionally add up to 3 photos of your restaurant decor\n"
    "3. Pick a style and a camera angle\n"
    "4. Approve, rework the caption, or try again\n\n"
    "Send your first photo! 📷"
)


def _help_text() -> str:
    styles = "\n".join(f"{info.emoji} {info.label}" for info in STYLES.values())
    angles = "\n".join(
        f"{info.emoji} {info.label}: {info.description}" for info in ANGLES.values()
    )
    presets = "\n".join(f"{info.emoji} {info.label}" for info in PRESETS.values())
    return (
        "❓ How to get the best results\n\n"
        "• Good light, dish in focus\n"
        "• One dish per photo\n"
        "• Decor photos help match your restaurant's look\n\n"
        f"Styles:\n{styles}\n\nCrowd presets:\n{presets}\n\nAngles:\n{angles}"
    )


@dataclass
class StartCommandHandler:
    """Handle the /start Telegram command."""

    telegram_client: TelegramClient

    async def handle(self, chat_id: int) -> None:
        """Send the welcome message."""
        await self.telegram_client.send_message(chat_id=chat_id, text=WELCOME_TEXT)


@dataclass
class HelpCommandHandler:
    """Handle the /help Telegram command."""

    telegram_client: TelegramClient

    async def handle(self, chat_id: int) -> None:
        """Send photo tips and the available styles and angles."""
        await self.telegram_client.send_message(chat_id=chat_id, text=_help_text())


def format_uptime(seconds: float) -> str:
    """Format an uptime as hours, minutes and seconds."""
    total = int(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}h {minutes}m {secs}s"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


@dataclass
class StatusCommandHandler:
    """Handle the /status Telegram command."""

    telegram_client: TelegramClient
    workflow_client: WorkflowClient
    enhancement_client: EnhancementClient | None = None
    clock: Callable[[], float] = time.monotonic
    started_at: float = field(default_factory=time.monotonic)

    async def handle(self, chat_id: int) -> None:
        """Report bot uptime and the health of the upstream services."""
        workflow_ok = await self.workflow_client.check_health()
        if self.enhancement_client is None:
            enhancement = "➖ not configured"
        else:
            enhancement = "✅" if await self.enhancement_client.check_health() else "❌"
        text = (
            "📊 System status\n\n"
            "🤖 Bot: ✅ online\n"
            f"⚡ Workflow: {'✅' if workflow_ok else '❌'}\n"
            f"🎨 Enhancement: {enhancement}\n\n"
            f"Uptime: {format_uptime(self.clock() - self.started_at)}"
        )
        await self.telegram_client.send_message(chat_id=chat_id, text=text)
