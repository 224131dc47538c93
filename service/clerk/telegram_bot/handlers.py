"""
Telegram message and command handlers.

Thin adapters: each handler resolves the chat's session from the
ClerkFlow stored in bot_data and hands the update over. All conversation
logic lives in flow.py.
"""

from typing import Optional

from telegram import InlineKeyboardMarkup, Update
from telegram.ext import ContextTypes

from .flow import ClerkFlow
from .logging_config import bot_logger as logger
from .menus import Action

FLOW_KEY = "clerk_flow"

# Commands that map 1:1 onto a callback action of the same name
ACTION_COMMANDS = [
    Action.MENU.value,
    Action.HELP.value,
    Action.NEW_READ.value,
    Action.NEW_AF_POST.value,
    Action.PUBLISH.value,
    Action.SET_DESCRIPTION.value,
    Action.SET_TITLE.value,
    Action.SET_AF_POST_TITLE.value,
    Action.SET_TYPE.value,
    Action.SET_SECTOR.value,
]


class TelegramChat:
    """Chat implementation replying to the message an update came with."""

    def __init__(self, update: Update):
        self.message = update.effective_message
        user = update.effective_user
        self.username: Optional[str] = user.username if user else None

    async def reply(
        self,
        text: str,
        reply_markup: Optional[InlineKeyboardMarkup] = None,
        parse_mode: Optional[str] = None,
    ) -> None:
        await self.message.reply_text(text, reply_markup=reply_markup, parse_mode=parse_mode)


def get_flow(context: ContextTypes.DEFAULT_TYPE) -> ClerkFlow:
    return context.application.bot_data[FLOW_KEY]


def _session_and_chat(update: Update, context: ContextTypes.DEFAULT_TYPE):
    flow = get_flow(context)
    session = flow.sessions.get(update.effective_chat.id)
    return flow, session, TelegramChat(update)


async def handle_start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start - show the main menu."""
    flow, session, chat = _session_and_chat(update, context)
    await flow.show_main_menu(session, chat)


async def handle_action_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /newread, /publish, /settitle, ... like the matching button."""
    flow, session, chat = _session_and_chat(update, context)
    command = update.effective_message.text.split()[0].lstrip("/").split("@")[0].lower()
    logger.info(f"Command /{command} from chat_id={update.effective_chat.id}")
    await flow.handle_action(session, chat, command)


async def handle_preview_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /preview."""
    flow, session, chat = _session_and_chat(update, context)
    await flow.show_preview(session, chat)


async def handle_state_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /state - dump the session for debugging."""
    flow, session, chat = _session_and_chat(update, context)
    await flow.dump_state(session, chat)


async def handle_text_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    flow, session, chat = _session_and_chat(update, context)
    text = update.effective_message.text

    logger.info(
        f"Received text from chat_id={update.effective_chat.id}, "
        f"state={session.state.value}, text_len={len(text)}"
    )
    await flow.handle_text(session, chat, text)


async def handle_voice_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    flow, session, chat = _session_and_chat(update, context)
    voice = update.effective_message.voice

    logger.info(f"Received voice message from chat_id={update.effective_chat.id}, duration={voice.duration}s")
    await flow.handle_voice(session, chat, context.bot, voice.file_id, voice.file_unique_id)


async def handle_other_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Stickers, photos, ...: nothing we can use."""
    await update.effective_message.reply_text("Expect either text or voice - got neither.")


async def handle_callback_query(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle inline keyboard button callbacks.

    Callback data is an Action value or "setsector_<slug>" / "settype_<slug>".
    """
    query = update.callback_query
    # Answer the callback to remove loading state
    await query.answer()

    logger.info(f"Callback from chat_id={update.effective_chat.id}: {query.data}")

    flow, session, chat = _session_and_chat(update, context)
    await flow.handle_action(session, chat, query.data or "")


async def handle_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle errors in handlers."""
    logger.error(f"Bot error: {context.error}", exc_info=context.error)

    if isinstance(update, Update) and update.effective_message:
        await update.effective_message.reply_text(
            "Oops, something went wrong.\n"
            "Try again or use /menu"
        )
