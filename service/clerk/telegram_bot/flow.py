"""
Conversation flow for the clerk bot.

ClerkFlow holds the per-chat state machine for the two item types:

Reads:
    none --newread--> await_url --url--> build
    build decides the next missing field: title -> sector -> type -> preview
    publish (from the preview) -> none on success

AF posts:
    none --newafpost--> await_memo --voice--> current transcript set
    save transcript -> appended to transcripts
    post (needs title + at least one transcript) -> none on success

The flow never talks to Telegram directly. Every entry point gets the
chat's Session and a Chat to reply through, so it can run against a fake
chat in tests. Collaborator errors are caught here and turned into a
single reply each; nothing propagates to the bot loop.
"""

import json
import re
from dataclasses import asdict
from pathlib import Path
from typing import Awaitable, Callable, Optional, Protocol

import httpx
from openai import AsyncOpenAI
from telegram import Bot, InlineKeyboardMarkup

from clerk.errors import (
    ClerkError, ConfigurationError, DuplicateError, FetchError,
    SummarizationError, UnauthorizedError, UnknownError,
)
from clerk.models import BotState, Session, SECTORS, TYPES, default_tags_for_url
from clerk.services.backend import DelphiAPIClient
from clerk.services.dedup import ensure_not_duplicate
from clerk.services.publish import publish_af_post, publish_read
from clerk.services.summarizer import summarize_url, SUMMARY_MODEL
from clerk.services.transcription import download_voice, transcribe_audio, voice_file_path
from clerk.utils.normalize import normalize_url, is_x_url, truncate_string, MAX_DESCRIPTION_LENGTH
from .context import SessionStore
from .logging_config import bot_logger as logger
from .menus import (
    Action, SECTOR_PREFIX, TYPE_PREFIX,
    main_menu, reads_menu, af_post_menu, option_menu, help_text, preview_text,
)

URL_PATTERN = re.compile(r'^https?:', re.IGNORECASE)

MSG_CHOOSE = "What would you like to do?"
MSG_LINK_FIRST = "send me a link first"
MSG_UNAUTHORIZED = "Unauthorized: reach out to engineering for assistance."
MSG_DUPLICATE_PUBLISH = "Oops, this item was already added recently."
MSG_DUPLICATE_URL = "Oops, this url was recently added already"
MSG_PUBLISH_FAILED = "Oops, something went wrong - try to publish again or start over"
MSG_AF_PUBLISH_FAILED = "Oops, something went wrong - try to publish the AF post again"
MSG_FETCH_FAILED = "sorry, I could not fetch that url"
MSG_SUMMARY_FALLBACK = "sorry, generating the AI summary failed for that url. falling back to metadata description."
MSG_SUMMARY_NOT_CONFIGURED = (
    "AI summaries are not configured - reach out to engineering. "
    "falling back to metadata description."
)
MSG_VOICE_FAILED = "Unable to process voice memo at this time. Reach out to engineering if the issue persists."
MSG_NEEDS_TRANSCRIPT = (
    "Your AF post has no content yet. You need to save the latest recorded memo "
    "to the post or record a new memo to get started."
)


class Chat(Protocol):
    """The conversation partner: who is talking and how to answer them."""

    username: Optional[str]

    async def reply(
        self,
        text: str,
        reply_markup: Optional[InlineKeyboardMarkup] = None,
        parse_mode: Optional[str] = None,
    ) -> None:
        ...


Handler = Callable[[Session, Chat], Awaitable[None]]
TextHandler = Callable[[Session, Chat, str], Awaitable[None]]


class ClerkFlow:
    """Per-chat state machine driving Reads and AF post creation."""

    def __init__(
        self,
        sessions: SessionStore,
        api: DelphiAPIClient,
        ai_client: Optional[AsyncOpenAI],
        audio_directory: str | Path = "audio_files",
        summary_model: str = SUMMARY_MODEL,
        transcription_model: str = "whisper-1",
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.sessions = sessions
        self.api = api
        self.ai_client = ai_client
        self.audio_directory = Path(audio_directory)
        self.summary_model = summary_model
        self.transcription_model = transcription_model
        self.http_client = http_client

        self.actions: dict[Action, Handler] = {
            Action.MENU: self.show_main_menu,
            Action.HELP: self.show_help,
            Action.NEW_READ: self.new_read,
            Action.NEW_AF_POST: self.new_af_post,
            Action.POST_AF_POST: self.post_af_post,
            Action.PUBLISH: self.publish,
            Action.SET_DESCRIPTION: self.prompt_description,
            Action.SET_TITLE: self.prompt_title,
            Action.SET_AF_POST_TITLE: self.prompt_af_post_title,
            Action.SET_TYPE: self.prompt_type,
            Action.SET_SECTOR: self.prompt_sector,
            Action.ANOTHER_VOICE: self.another_voice,
            Action.VIEW_AF_POST: self.view_af_post,
            Action.SAVE_TRANSCRIPT: self.save_transcript,
            Action.VIEW_TRANSCRIPT: self.view_transcript,
            Action.PROMPT_FOR_IMAGE: self.prompt_for_image,
        }

        self.text_handlers: dict[BotState, TextHandler] = {
            BotState.NONE: self._text_shows_menu,
            BotState.BUILD: self._text_shows_menu,
            BotState.AWAIT_URL: self.handle_url,
            BotState.AWAIT_TITLE: self.update_title,
            BotState.AWAIT_DESCRIPTION: self.update_description,
            BotState.AWAIT_VOICE_TITLE: self.update_af_post_title,
            BotState.AWAIT_TRANSCRIPT: self._text_needs_transcript,
            BotState.AWAIT_MEMO: self._text_needs_memo,
        }

        missing = [s.value for s in BotState if s not in self.text_handlers]
        missing += [a.value for a in Action if a not in self.actions]
        if missing:
            raise RuntimeError(f"ClerkFlow has no handler for: {', '.join(missing)}")

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def handle_action(self, session: Session, chat: Chat, data: str) -> None:
        """Route a callback button (or command) to its handler."""
        if data.startswith(SECTOR_PREFIX):
            await self.select_sector(session, chat, data[len(SECTOR_PREFIX):])
            return
        if data.startswith(TYPE_PREFIX):
            await self.select_type(session, chat, data[len(TYPE_PREFIX):])
            return

        try:
            action = Action(data)
        except ValueError:
            logger.warning(f"Unknown action: {data}")
            await self.show_main_menu(session, chat)
            return

        await self.actions[action](session, chat)

    async def handle_text(self, session: Session, chat: Chat, text: str) -> None:
        """Any pasted link starts a new Read; other text depends on the state."""
        if URL_PATTERN.match(text.strip()):
            await self.handle_url(session, chat, text)
            return

        await self.text_handlers[session.state](session, chat, text)

    async def _text_shows_menu(self, session: Session, chat: Chat, text: str) -> None:
        await self.show_main_menu(session, chat)

    async def _text_needs_transcript(self, session: Session, chat: Chat, text: str) -> None:
        await chat.reply(MSG_NEEDS_TRANSCRIPT)

    async def _text_needs_memo(self, session: Session, chat: Chat, text: str) -> None:
        await chat.reply("Record voice memo to continue")

    # ------------------------------------------------------------------
    # Guards: True means proceed, False means a prompt was already sent
    # ------------------------------------------------------------------

    async def _require_link(self, session: Session, chat: Chat) -> bool:
        if session.reads_item.link:
            return True
        await chat.reply(MSG_LINK_FIRST)
        return False

    async def _require_af_post_fields(self, session: Session, chat: Chat) -> bool:
        item = session.af_post_item
        if not item.title:
            session.state = BotState.AWAIT_VOICE_TITLE
            await chat.reply("send me a title for your AF post first")
            return False
        if not item.transcripts:
            session.state = BotState.AWAIT_TRANSCRIPT
            await chat.reply(MSG_NEEDS_TRANSCRIPT)
            return False
        return True

    # ------------------------------------------------------------------
    # Menus and info
    # ------------------------------------------------------------------

    async def show_main_menu(self, session: Session, chat: Chat) -> None:
        await chat.reply(MSG_CHOOSE, reply_markup=main_menu())

    async def show_help(self, session: Session, chat: Chat) -> None:
        await chat.reply(help_text())

    async def show_preview(self, session: Session, chat: Chat) -> None:
        await chat.reply(preview_text(session), parse_mode="MarkdownV2")
        await chat.reply(MSG_CHOOSE, reply_markup=reads_menu())

    async def dump_state(self, session: Session, chat: Chat) -> None:
        """Debug view of the raw session."""
        dump = json.dumps(asdict(session), indent=2, ensure_ascii=False)
        await chat.reply(f"```\n{dump}\n```", parse_mode="Markdown")

    # ------------------------------------------------------------------
    # Reads flow
    # ------------------------------------------------------------------

    async def new_read(self, session: Session, chat: Chat) -> None:
        session.reset()
        session.state = BotState.AWAIT_URL
        await chat.reply("what url do you want post?")

    async def next_build_step(self, session: Session, chat: Chat) -> None:
        """Prompt for the first missing field, or show the preview when complete."""
        session.state = BotState.BUILD
        item = session.reads_item

        if not item.title:
            await self.prompt_title(session, chat)
        elif not item.taxonomy:
            await self.prompt_sector(session, chat)
        elif not item.tags:
            await self.prompt_type(session, chat)
        else:
            await self.show_preview(session, chat)

    async def prompt_title(self, session: Session, chat: Chat) -> None:
        if not await self._require_link(session, chat):
            return
        session.state = BotState.AWAIT_TITLE
        await chat.reply("what title do you want?")

    async def prompt_description(self, session: Session, chat: Chat) -> None:
        if not await self._require_link(session, chat):
            return
        session.state = BotState.AWAIT_DESCRIPTION
        await chat.reply('what description do you want? type "none" for no description')

    async def prompt_sector(self, session: Session, chat: Chat) -> None:
        if not await self._require_link(session, chat):
            return
        await chat.reply("Select a sector: ", reply_markup=option_menu(SECTORS, SECTOR_PREFIX))

    async def prompt_type(self, session: Session, chat: Chat) -> None:
        if not await self._require_link(session, chat):
            return
        await chat.reply("Select a type: ", reply_markup=option_menu(TYPES, TYPE_PREFIX))

    async def select_sector(self, session: Session, chat: Chat, slug: str) -> None:
        if not await self._require_link(session, chat):
            return
        if slug not in {option.slug for option in SECTORS}:
            logger.warning(f"Unknown sector slug: {slug}")
            await self.prompt_sector(session, chat)
            return
        session.reads_item.taxonomy = [slug]
        await self.next_build_step(session, chat)

    async def select_type(self, session: Session, chat: Chat, slug: str) -> None:
        if not await self._require_link(session, chat):
            return
        if slug not in {option.slug for option in TYPES}:
            logger.warning(f"Unknown type slug: {slug}")
            await self.prompt_type(session, chat)
            return
        session.reads_item.tags = [slug]
        await self.next_build_step(session, chat)

    async def update_title(self, session: Session, chat: Chat, title: str) -> None:
        session.reads_item.title = title
        await self.next_build_step(session, chat)

    async def update_description(self, session: Session, chat: Chat, description: str) -> None:
        """'none' clears the description; over 500 characters is rejected, not truncated."""
        if len(description) > MAX_DESCRIPTION_LENGTH:
            await chat.reply("sorry, that description too long")
            await self.prompt_description(session, chat)
            return

        session.reads_item.description = "" if description == "none" else description
        await self.next_build_step(session, chat)

    async def handle_url(self, session: Session, chat: Chat, url: str) -> None:
        """
        Start a Read from a pasted link.

        1. Reset to a fresh item and store the normalized link right away
        2. Backend metadata, then the recent-duplicate check
        3. x.com links take the tweet text as description; others get a
           metadata title and an AI summary, falling back to the metadata
           description when summarizing fails
        4. Default tags by domain, then prompt for whatever is still missing
        """
        session.reset()
        await chat.reply("fetching that url, hang on a sec...")

        try:
            link = normalize_url(url)
        except ValueError as e:
            logger.warning(f"Malformed url {url!r}: {e}")
            await chat.reply(MSG_FETCH_FAILED)
            await self.new_read(session, chat)
            return

        item = session.reads_item
        item.link = link

        try:
            metadata = await self.api.fetch_link_metadata(link)
            await ensure_not_duplicate(link, self.api)
        except DuplicateError:
            logger.info(f"Duplicate link rejected: {link}")
            session.reset()
            await chat.reply(MSG_DUPLICATE_URL, reply_markup=main_menu())
            return
        except ClerkError as e:
            logger.error(f"Error processing url {link}: {e}", exc_info=True)
            await chat.reply(MSG_FETCH_FAILED)
            await self.new_read(session, chat)
            return

        fallback_description = truncate_string(metadata.description, MAX_DESCRIPTION_LENGTH)

        if is_x_url(link):
            item.description = fallback_description
        else:
            item.title = metadata.title
            try:
                item.description = await summarize_url(
                    link, self.ai_client, self.http_client, model=self.summary_model
                )
            except ConfigurationError as e:
                logger.error(f"Summarizer not configured: {e}")
                item.description = fallback_description
                await chat.reply(MSG_SUMMARY_NOT_CONFIGURED)
            except (FetchError, SummarizationError) as e:
                logger.error(f"Error generating summary for {link}: {e}", exc_info=True)
                item.description = fallback_description
                await chat.reply(MSG_SUMMARY_FALLBACK)

        item.tags = default_tags_for_url(link)
        item.image_url = metadata.image

        await self.next_build_step(session, chat)

    async def publish(self, session: Session, chat: Chat) -> None:
        """Send the Read to the CMS; only success or a duplicate resets the session."""
        if not await self._require_link(session, chat):
            return

        await chat.reply("Attempting to publish...")
        try:
            await publish_read(self.api, session.reads_item, chat.username)
        except UnauthorizedError:
            logger.error(f"Unauthorized publishing read for {chat.username}")
            await chat.reply(MSG_UNAUTHORIZED)
            return
        except DuplicateError:
            logger.info(f"Backend reports duplicate read: {session.reads_item.link}")
            session.reset()
            await chat.reply(MSG_DUPLICATE_PUBLISH, reply_markup=main_menu())
            return
        except UnknownError as e:
            logger.error(f"Error publishing read: {e}", exc_info=True)
            await chat.reply(_with_validation(MSG_PUBLISH_FAILED, e))
            return

        session.reset()
        await chat.reply(
            "Item has been published. Paste another URL to start over or choose from below options:",
            reply_markup=main_menu(),
        )

    # ------------------------------------------------------------------
    # AF post flow
    # ------------------------------------------------------------------

    async def new_af_post(self, session: Session, chat: Chat) -> None:
        session.reset()
        session.state = BotState.AWAIT_MEMO
        await chat.reply("record voice memo to generate AF post")

    async def prompt_af_post_title(self, session: Session, chat: Chat) -> None:
        session.state = BotState.AWAIT_VOICE_TITLE
        await chat.reply("what title do you want?")

    async def update_af_post_title(self, session: Session, chat: Chat, title: str) -> None:
        session.af_post_item.title = title
        session.state = BotState.AWAIT_MEMO
        await chat.reply(f"AF Post title set: {title}", reply_markup=af_post_menu())

    async def handle_voice(self, session: Session, chat: Chat, bot: Bot, file_id: str, unique_id: str) -> None:
        """Download, transcribe and hold a voice memo as the pending transcript."""
        await chat.reply("Processing voice memo...")
        local_path = voice_file_path(self.audio_directory, unique_id)

        try:
            if self.ai_client is None:
                raise ConfigurationError("No AI client configured for transcription")
            local_path = await download_voice(bot, file_id, unique_id, self.audio_directory)
            transcript = await transcribe_audio(local_path, self.ai_client, model=self.transcription_model)
        except Exception as e:
            logger.error(f"Unable to process voice memo: {e}", exc_info=True)
            local_path.unlink(missing_ok=True)
            await chat.reply(MSG_VOICE_FAILED)
            return

        logger.info(f"Transcribed {len(transcript)} chars from voice memo {unique_id}")
        session.af_post_item.current_transcript = transcript
        await chat.reply(f"Current Transcript:\n{transcript}", reply_markup=af_post_menu())

    async def another_voice(self, session: Session, chat: Chat) -> None:
        session.af_post_item.current_transcript = ""
        await chat.reply("Record a new memo to add to your post")

    async def save_transcript(self, session: Session, chat: Chat) -> None:
        item = session.af_post_item
        if not item.current_transcript:
            await chat.reply("Record a memo before attempting to add it to the post")
            return

        item.transcripts.append(item.current_transcript)
        item.current_transcript = ""
        await chat.reply("AF post updated with current transcript", reply_markup=af_post_menu())

    async def view_transcript(self, session: Session, chat: Chat) -> None:
        transcript = session.af_post_item.current_transcript
        if transcript:
            await chat.reply(f"Current transcription:\n{transcript}")
        else:
            await chat.reply("You must first record a memo to view its transcript")

    async def view_af_post(self, session: Session, chat: Chat) -> None:
        item = session.af_post_item
        title = item.title or "[Not Set]"
        body = "\n\n".join(item.transcripts) if item.transcripts else "[Not Set]"
        await chat.reply(f"*** AF Post ***\n\nTitle:\n{title}\n\nBody:\n{body}")

    async def prompt_for_image(self, session: Session, chat: Chat) -> None:
        await chat.reply("Image support coming soon!")

    async def post_af_post(self, session: Session, chat: Chat) -> None:
        if not await self._require_af_post_fields(session, chat):
            return

        await chat.reply("Attempting to publish...")
        try:
            await publish_af_post(self.api, session.af_post_item, chat.username)
        except UnauthorizedError:
            logger.error(f"Unauthorized publishing AF post for {chat.username}")
            await chat.reply(MSG_UNAUTHORIZED, reply_markup=main_menu())
            return
        except ClerkError as e:
            logger.error(f"Error publishing AF post: {e}", exc_info=True)
            await chat.reply(_with_validation(MSG_AF_PUBLISH_FAILED, e), reply_markup=main_menu())
            return

        session.reset()
        await chat.reply("AF post has been created!", reply_markup=main_menu())


def _with_validation(message: str, error: ClerkError) -> str:
    validation = getattr(error, "validation_message", "")
    if validation:
        return f"{validation.strip()}\n\n{message}"
    return message
