"""
Per-chat session storage for the clerk bot.

Simple in-memory dict keyed by chat id; sessions live for the process
lifetime. Each chat owns its own Session object, so nothing is shared
between chats.
"""

from typing import Dict

from clerk.models import Session


class SessionStore:
    """Chat id -> Session. Sessions are created on first access."""

    def __init__(self):
        self._sessions: Dict[int, Session] = {}

    def get(self, chat_id: int) -> Session:
        """Load the session for a chat, creating a fresh one if needed."""
        session = self._sessions.get(chat_id)
        if session is None:
            session = Session()
            self._sessions[chat_id] = session
        return session

    def reset(self, chat_id: int) -> Session:
        """Reset a chat's session to its initial state and return it."""
        session = self.get(chat_id)
        session.reset()
        return session

    def __contains__(self, chat_id: int) -> bool:
        return chat_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
