"""
Telegram bot module for the Delphi clerk.

ARCHITECTURE: transport and conversation are kept apart.
- bot.py / handlers.py: python-telegram-bot wiring, one thin handler per update kind
- flow.py: the per-chat state machine (Reads and AF posts)
- context.py: per-chat session store
- menus.py: inline keyboards and canned texts
"""

from .bot import handle_telegram_update, initialize_bot, shutdown_bot
from .context import SessionStore
from .flow import ClerkFlow

__all__ = [
    "handle_telegram_update",
    "initialize_bot",
    "shutdown_bot",
    "SessionStore",
    "ClerkFlow",
]
