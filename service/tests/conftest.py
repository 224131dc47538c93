"""
Shared fakes for the clerk tests.

Backend and web page traffic goes through httpx.MockTransport; OpenAI and
Telegram are replaced by small stand-ins exposing only what the code calls.
"""

from dataclasses import dataclass
from pathlib import Path
from types import SimpleNamespace
from typing import Callable, Optional
from unittest.mock import AsyncMock

import httpx
import pytest

from clerk.services.backend import DelphiAPIClient
from clerk.telegram_bot.context import SessionStore
from clerk.telegram_bot.flow import ClerkFlow

BASE_URL = "https://cms.test"
READING_LIST_ID = "list-1"


@dataclass
class Reply:
    text: str
    reply_markup: object = None
    parse_mode: Optional[str] = None

    @property
    def callback_data(self) -> list[str]:
        if self.reply_markup is None:
            return []
        return [button.callback_data for row in self.reply_markup.inline_keyboard for button in row]


class FakeChat:
    """Records every reply instead of sending it to Telegram."""

    def __init__(self, username: Optional[str] = "editor"):
        self.username = username
        self.replies: list[Reply] = []

    async def reply(self, text, reply_markup=None, parse_mode=None) -> None:
        self.replies.append(Reply(text, reply_markup, parse_mode))

    @property
    def texts(self) -> list[str]:
        return [r.text for r in self.replies]

    @property
    def last(self) -> Reply:
        return self.replies[-1]


class FakeTelegramFile:
    def __init__(self, content: bytes):
        self.content = content

    async def download_to_drive(self, custom_path=None):
        path = Path(custom_path)
        path.write_bytes(self.content)
        return path


class FakeBot:
    """Bot stand-in: get_file() returns a file that writes fixed bytes."""

    def __init__(self, content: bytes = b"OggS fake voice"):
        self.content = content
        self.requested_file_ids: list[str] = []

    async def get_file(self, file_id: str):
        self.requested_file_ids.append(file_id)
        return FakeTelegramFile(self.content)


def completion(*contents: str):
    """Chat completion response with one choice per content."""
    return SimpleNamespace(choices=[
        SimpleNamespace(message=SimpleNamespace(content=content)) for content in contents
    ])


def fake_openai(summary: str = "A short summary.", transcript: str = "hello from a memo"):
    """Object shaped like AsyncOpenAI for the two endpoints the bot uses."""
    return SimpleNamespace(
        chat=SimpleNamespace(completions=SimpleNamespace(
            create=AsyncMock(return_value=completion(summary))
        )),
        audio=SimpleNamespace(transcriptions=SimpleNamespace(
            create=AsyncMock(return_value=SimpleNamespace(text=transcript))
        )),
    )


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), follow_redirects=True)


def make_api(handler: Callable[[httpx.Request], httpx.Response]) -> DelphiAPIClient:
    return DelphiAPIClient(
        base_url=BASE_URL,
        reading_list_id=READING_LIST_ID,
        create_read_api_key="read-key",
        create_af_api_key="af-key",
        client=mock_client(handler),
    )


def unreachable(request: httpx.Request) -> httpx.Response:
    raise AssertionError(f"unexpected request: {request.method} {request.url}")


ARTICLE_HTML = """
<html>
  <head><title>Example article</title></head>
  <body>
    <nav><a href="/">Home</a></nav>
    <article>
      <h1>Example article</h1>
      <p>Rollups are changing how blockchains scale, and this readable article body
      explains why in plain words. See [the docs](https://docs.example.com) for more
      about the design, the trade-offs and the road ahead for the ecosystem.</p>
      <p>A second paragraph keeps the extractor confident that this is the main
      content of the page rather than boilerplate navigation or a footer.</p>
    </article>
    <footer>Copyright</footer>
  </body>
</html>
"""


@pytest.fixture
def chat() -> FakeChat:
    return FakeChat()


@pytest.fixture
def sessions() -> SessionStore:
    return SessionStore()


@pytest.fixture
def make_flow(sessions, tmp_path):
    """Build a ClerkFlow around fake collaborators."""

    def _make(backend=unreachable, pages=unreachable, ai_client="default") -> ClerkFlow:
        return ClerkFlow(
            sessions=sessions,
            api=make_api(backend),
            ai_client=fake_openai() if ai_client == "default" else ai_client,
            audio_directory=tmp_path / "audio_files",
            http_client=mock_client(pages),
        )

    return _make
