"""
Conversation data model: states, in-progress items and reference options.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, Literal, TypeVar
from urllib.parse import urlsplit

from clerk.utils.normalize import is_host_or_subdomain

ReadsTag = Literal["reads", "tweets", "media", "news", "podcast", "other"]
SectorSlug = Literal["ai", "general", "finance", "infrastructure", "macro-markets", "metaverse"]

T = TypeVar("T", bound=str)


class BotState(str, Enum):
    """Where a chat is in its conversation. BUILD is never prompted directly."""
    NONE = "none"
    AWAIT_URL = "await_url"
    AWAIT_TITLE = "await_title"
    AWAIT_DESCRIPTION = "await_description"
    AWAIT_VOICE_TITLE = "await_voice_title"
    AWAIT_TRANSCRIPT = "await_transcript"
    AWAIT_MEMO = "await_memo"
    BUILD = "build"


@dataclass(frozen=True)
class Option(Generic[T]):
    slug: T
    title: str


TYPES: tuple[Option[ReadsTag], ...] = (
    Option("reads", "Reads"),
    Option("media", "Media"),
    Option("tweets", "Tweets"),
    Option("news", "News"),
    Option("podcast", "Podcast"),
    Option("other", "Other"),
)

SECTORS: tuple[Option[SectorSlug], ...] = (
    Option("general", "General"),
    Option("ai", "AI"),
    Option("finance", "DeFi"),
    Option("infrastructure", "Infrastructure"),
    Option("macro-markets", "Macro & Markets"),
    Option("metaverse", "NFTs & Gaming"),
)

# Matched against the link's host (or a sub-domain of it); first match wins
DEFAULT_TAGS_FOR_DOMAIN: dict[str, tuple[ReadsTag, ...]] = {
    "bloomberg.com": ("news",),
    "medium.com": ("reads",),
    "spotify.com": ("podcast",),
    "x.com": ("tweets",),
    "youtube.com": ("media",),
}


def default_tags_for_url(url: str) -> list[ReadsTag]:
    host = (urlsplit(url).hostname or "").lower()
    for domain, tags in DEFAULT_TAGS_FOR_DOMAIN.items():
        if is_host_or_subdomain(host, domain):
            return list(tags)
    return []


def option_label(options: tuple[Option, ...], slug: str | None) -> str | None:
    for option in options:
        if option.slug == slug:
            return option.title
    return None


@dataclass
class ReadsItem:
    """A curated link. `link` must be set before any other field is edited."""
    title: str = ""
    link: str = ""
    description: str = ""
    image_url: str = ""
    taxonomy: list[SectorSlug] = field(default_factory=list)
    tags: list[ReadsTag] = field(default_factory=list)


@dataclass
class AfPostItem:
    """A post assembled from saved voice memo transcripts."""
    title: str = ""
    transcripts: list[str] = field(default_factory=list)
    current_transcript: str = ""
    audio_url: str = ""


@dataclass
class Session:
    """Per-chat conversation state."""
    state: BotState = BotState.NONE
    reads_item: ReadsItem = field(default_factory=ReadsItem)
    af_post_item: AfPostItem = field(default_factory=AfPostItem)

    def reset(self) -> None:
        """Drop both in-progress items and go back to NONE."""
        self.state = BotState.NONE
        self.reads_item = ReadsItem()
        self.af_post_item = AfPostItem()
