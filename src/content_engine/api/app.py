"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from content_engine.adapters.telegram_client import TelegramClient
from content_engine.api.admin import router as admin_router
from content_engine.api.telegram_models import (
    TelegramCallbackQuery,
    TelegramMessage,
    TelegramPhotoSize,
    TelegramUpdate,
)
from content_engine.app_logging import configure_logging
from content_engine.config import parse_allowed_user_ids
from content_engine.containers import AppContainer
from content_engine.domain.sessions import Session
from content_engine.errors import InvalidTransition, SessionNotFound
from content_engine.services.presenter import (
    PROCESSING_TEXT,
    SESSION_EXPIRED_TEXT,
    STALE_ACTION_TEXT,
    SessionPrompt,
    parse_callback,
    render,
)
from content_engine.telegram_commands import CHAT_MENU_BUTTON, telegram_commands

PHOTO_HINT_TEXT = "📸 Send me a photo of your dish to get started!"
IMAGES_ONLY_TEXT = "⚠️ I can only work with images. Send me a photo of your dish!"


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)
    allowed_user_ids = parse_allowed_user_ids(
        container.settings.telegram_allowed_user_ids
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        try:
            await app.state.container.telegram_client.set_my_commands(
                telegram_commands()
            )
            await app.state.container.telegram_client.set_chat_menu_button(
                CHAT_MENU_BUTTON
            )
        except Exception:
            logger.exception("Failed to sync Telegram bot commands")
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/telegram/webhook")
    async def telegram_webhook(  # noqa: PLR0911
        update: TelegramUpdate, request: Request
    ) -> dict[str, str]:
        """Handle Telegram webhook updates."""
        state_container: AppContainer = request.app.state.container
        user_id = _extract_user_id(update)
        if user_id is not None and not _is_user_allowed(user_id, allowed_user_ids):
            if update.callback_query:
                await state_container.telegram_client.answer_callback_query(
                    update.callback_query.id,
                    text="Not authorized.",
                )
                return {"status": "ok"}
            if update.message:
                await state_container.telegram_client.send_message(
                    chat_id=update.message.chat.id,
                    text="This bot is private.",
                )
                return {"status": "ok"}

        if update.callback_query:
            await _handle_callback(state_container, update.callback_query, logger)
            return {"status": "ok"}

        message = update.message
        if message is None:
            return {"status": "ok"}

        if message.text and message.text.startswith("/start"):
            await state_container.start_command_handler.handle(chat_id=message.chat.id)
            return {"status": "ok"}

        if message.text and message.text.startswith("/help"):
            await state_container.help_command_handler.handle(chat_id=message.chat.id)
            return {"status": "ok"}

        if message.text and message.text.startswith("/status"):
            await state_container.status_command_handler.handle(
                chat_id=message.chat.id
            )
            return {"status": "ok"}

        file_id = _extract_image_file_id(message)
        if file_id:
            await _handle_photo(state_container, message, file_id, logger)
            return {"status": "ok"}

        if message.document:
            await state_container.telegram_client.send_message(
                chat_id=message.chat.id, text=IMAGES_ONLY_TEXT
            )
            return {"status": "ok"}

        await state_container.telegram_client.send_message(
            chat_id=message.chat.id, text=PHOTO_HINT_TEXT
        )
        return {"status": "ok"}

    return app


async def _handle_photo(
    state_container: AppContainer,
    message: TelegramMessage,
    file_id: str,
    logger: logging.Logger,
) -> None:
    """Resolve the photo URL and hand it to the orchestrator."""
    try:
        media_url = await state_container.telegram_file_client.get_file_url(file_id)
    except Exception as exc:
        logger.exception(
            "Failed to resolve Telegram photo", extra={"file_id": file_id}
        )
        await state_container.telegram_client.send_message(
            chat_id=message.chat.id,
            text=_format_error(
                state_container, exc, "Couldn't download that photo. Please try again."
            ),
        )
        return

    transition = await state_container.orchestrator.receive_photo(
        user_id=message.from_user.id,
        chat_id=message.chat.id,
        media_ref=media_url,
        restaurant_name=message.from_user.first_name,
    )
    await _send_prompt(
        state_container.telegram_client, message.chat.id, render(transition), logger
    )


async def _handle_callback(
    state_container: AppContainer,
    callback: TelegramCallbackQuery,
    logger: logging.Logger,
) -> None:
    """Apply a button press to its session and render the outcome."""
    telegram_client = state_container.telegram_client
    event = parse_callback(callback.data) if callback.data else None
    if event is None or callback.message is None:
        logger.warning("Unknown callback data", extra={"data": callback.data})
        await telegram_client.answer_callback_query(callback.id, text=STALE_ACTION_TEXT)
        return
    chat_id = callback.message.chat.id
    answered = False

    async def on_processing(session: Session) -> None:
        nonlocal answered
        answered = True
        await telegram_client.answer_callback_query(callback.id)
        await telegram_client.send_message(chat_id=chat_id, text=PROCESSING_TEXT)

    try:
        transition = await state_container.orchestrator.handle_event(
            event, on_processing=on_processing
        )
    except SessionNotFound:
        logger.info(
            "Callback for unknown session", extra={"session_id": event.session_id}
        )
        if not answered:
            await telegram_client.answer_callback_query(callback.id)
        await telegram_client.send_message(chat_id=chat_id, text=SESSION_EXPIRED_TEXT)
        return
    except InvalidTransition as exc:
        logger.info(
            "Rejected invalid action",
            extra={
                "session_id": exc.session_id,
                "state": exc.state,
                "event_type": exc.event_type,
                "stale": exc.is_stale,
            },
        )
        if not answered:
            await telegram_client.answer_callback_query(
                callback.id, text=None if exc.is_stale else STALE_ACTION_TEXT
            )
        return

    if not answered:
        await telegram_client.answer_callback_query(callback.id)
    await _send_prompt(telegram_client, chat_id, render(transition), logger)


async def _send_prompt(
    telegram_client: TelegramClient,
    chat_id: int,
    prompt: SessionPrompt,
    logger: logging.Logger,
) -> None:
    """Send a rendered prompt; the session is already committed either way.

    When the photo cannot be delivered the same text and buttons are sent as
    a plain message so the user can still act on the session.
    """
    if prompt.photo_url:
        try:
            await telegram_client.send_photo(
                chat_id=chat_id,
                photo_url=prompt.photo_url,
                caption=prompt.text,
                reply_markup=prompt.reply_markup,
            )
            return
        except Exception:
            logger.exception(
                "Failed to send prompt photo, falling back to text",
                extra={"chat_id": chat_id, "photo_url": prompt.photo_url},
            )
    try:
        await telegram_client.send_message(
            chat_id=chat_id, text=prompt.text, reply_markup=prompt.reply_markup
        )
    except Exception:
        logger.exception("Failed to send prompt", extra={"chat_id": chat_id})


def _select_largest_photo(photos: list[TelegramPhotoSize]) -> TelegramPhotoSize:
    """Select the largest photo size from the Telegram payload."""
    return max(photos, key=lambda photo: (photo.width * photo.height))


def _extract_image_file_id(message: TelegramMessage) -> str | None:
    """Return the file id of a photo or an image sent as a document."""
    if message.photo:
        return _select_largest_photo(message.photo).file_id
    document = message.document
    if document and (document.mime_type or "").startswith("image/"):
        return document.file_id
    return None


def _extract_user_id(update: TelegramUpdate) -> int | None:
    """Extract Telegram user id from update, if present."""
    if update.callback_query:
        return update.callback_query.from_user.id
    if update.message:
        return update.message.from_user.id
    return None


def _is_user_allowed(user_id: int, allowed: set[int] | None) -> bool:
    """Return true when the user is allowed to interact with the bot."""
    return allowed is None or user_id in allowed


def _format_error(state_container: AppContainer, exc: Exception, fallback: str) -> str:
    """Return a user-facing error message with local debug info."""
    if state_container.settings.environment == "local":
        detail = f"{type(exc).__name__}: {exc}".strip()
        if detail:
            return f"{fallback} (debug: {detail})"
    return fallback
