"""
Main Telegram bot handler.

Uses python-telegram-bot library with webhook mode.
"""

from openai import AsyncOpenAI
from telegram import Update
from telegram.ext import Application, CommandHandler, MessageHandler, CallbackQueryHandler, filters

from clerk.config import Settings, get_settings
from clerk.services.backend import DelphiAPIClient
from .context import SessionStore
from .flow import ClerkFlow
from .logging_config import bot_logger as logger
from .handlers import (
    FLOW_KEY,
    ACTION_COMMANDS,
    handle_start_command,
    handle_action_command,
    handle_preview_command,
    handle_state_command,
    handle_text_message,
    handle_voice_message,
    handle_other_message,
    handle_callback_query,
    handle_error,
)


# Global application instance (initialized once)
_application: Application | None = None


def build_flow(settings: Settings) -> ClerkFlow:
    """Wire the conversation flow to its collaborators."""
    return ClerkFlow(
        sessions=SessionStore(),
        api=DelphiAPIClient.from_settings(settings),
        ai_client=AsyncOpenAI(api_key=settings.openai_api_key),
        audio_directory=settings.audio_file_directory,
        summary_model=settings.summary_model,
        transcription_model=settings.transcription_model,
    )


def build_application(settings: Settings, flow: ClerkFlow) -> Application:
    application = (
        Application.builder()
        .token(settings.telegram_bot_token)
        .build()
    )
    application.bot_data[FLOW_KEY] = flow

    application.add_handler(CommandHandler("start", handle_start_command))
    application.add_handler(CommandHandler(ACTION_COMMANDS, handle_action_command))
    application.add_handler(CommandHandler("preview", handle_preview_command))
    application.add_handler(CommandHandler("state", handle_state_command))

    # Text messages (pasted links included)
    application.add_handler(
        MessageHandler(filters.TEXT & ~filters.COMMAND, handle_text_message)
    )

    # Voice memos for AF posts
    application.add_handler(
        MessageHandler(filters.VOICE, handle_voice_message)
    )

    # Anything else that is not a command
    application.add_handler(
        MessageHandler(~filters.COMMAND & ~filters.TEXT & ~filters.VOICE, handle_other_message)
    )

    # Callback queries (inline keyboard buttons)
    application.add_handler(CallbackQueryHandler(handle_callback_query))

    application.add_error_handler(handle_error)

    return application


def get_bot_application() -> Application:
    """Get or create telegram bot application."""
    global _application

    if _application is None:
        settings = get_settings()
        _application = build_application(settings, build_flow(settings))
        logger.info("Telegram bot application initialized")

    return _application


async def handle_telegram_update(update_data: dict) -> None:
    """
    Queue an incoming webhook update from Telegram.

    Updates go through the application's update queue, which python-telegram-bot
    drains one at a time, so a chat's session never sees two handlers at once.
    """
    try:
        app = get_bot_application()

        update = Update.de_json(update_data, app.bot)

        if update:
            await app.update_queue.put(update)
        else:
            logger.warning("Received invalid update data")

    except Exception as e:
        logger.error(f"Failed to queue update: {e}", exc_info=True)


async def initialize_bot() -> None:
    """
    Initialize and start the bot application (call on startup).
    """
    app = get_bot_application()
    await app.initialize()
    await app.start()
    logger.info("Bot initialized successfully")


async def shutdown_bot() -> None:
    """
    Stop the bot application and close the backend client (call on shutdown).
    """
    global _application
    if _application:
        await _application.stop()
        await _application.shutdown()
        flow: ClerkFlow = _application.bot_data[FLOW_KEY]
        await flow.api.close()
        _application = None
        logger.info("Bot shut down")
