"""
Inline keyboards and canned texts shown by the clerk bot.

Callback data for buttons comes from the Action enum, plus
"setsector_<slug>" / "settype_<slug>" for option pickers.
"""

from enum import Enum

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from clerk.models import Option, Session, SECTORS, TYPES, option_label
from clerk.utils.normalize import clean_text_for_markdown

SECTOR_PREFIX = "setsector_"
TYPE_PREFIX = "settype_"


class Action(str, Enum):
    """Callback actions carried by inline buttons."""
    MENU = "menu"
    HELP = "help"
    NEW_READ = "newread"
    NEW_AF_POST = "newafpost"
    POST_AF_POST = "postafpost"
    PUBLISH = "publish"
    SET_DESCRIPTION = "setdescription"
    SET_TITLE = "settitle"
    SET_AF_POST_TITLE = "setafposttitle"
    SET_TYPE = "settype"
    SET_SECTOR = "setsector"
    ANOTHER_VOICE = "anothervoice"
    VIEW_AF_POST = "viewafpost"
    SAVE_TRANSCRIPT = "savecurrenttranscription"
    VIEW_TRANSCRIPT = "viewcurrenttranscription"
    PROMPT_FOR_IMAGE = "promptforimage"


def _button(text: str, action: Action) -> InlineKeyboardButton:
    return InlineKeyboardButton(text, callback_data=action.value)


def main_menu() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([
        [_button("Create Read", Action.NEW_READ)],
        [_button("Create AF Post", Action.NEW_AF_POST)],
    ])


def reads_menu() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([
        [_button("Set Title", Action.SET_TITLE), _button("Set Description", Action.SET_DESCRIPTION)],
        [_button("Set Type", Action.SET_TYPE), _button("Set Sector", Action.SET_SECTOR)],
        [_button("Start Over", Action.NEW_READ), _button("Help", Action.HELP)],
        [_button("Publish It!", Action.PUBLISH)],
    ])


def af_post_menu() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([
        [_button("Start Over", Action.NEW_AF_POST)],
        [_button("Record a memo", Action.ANOTHER_VOICE)],
        [_button("Save latest recording to post", Action.SAVE_TRANSCRIPT)],
        [_button("View latest unsaved transcript", Action.VIEW_TRANSCRIPT)],
        [_button("Add image to post", Action.PROMPT_FOR_IMAGE)],
        [_button("Set title for the post", Action.SET_AF_POST_TITLE)],
        [_button("View full AF post", Action.VIEW_AF_POST)],
        [_button("Post Full Transcript to AF", Action.POST_AF_POST)],
    ])


def option_menu(options: tuple[Option, ...], prefix: str) -> InlineKeyboardMarkup:
    """Two options per row, callback data '<prefix><slug>'."""
    rows = []
    for i in range(0, len(options), 2):
        rows.append([
            InlineKeyboardButton(option.title, callback_data=f"{prefix}{option.slug}")
            for option in options[i:i + 2]
        ])
    return InlineKeyboardMarkup(rows)


def help_text() -> str:
    return (
        "For questions or feedback, please post in the Delphi Engineering telegram channel:\n\n"
        "[ENGINEERING] Delphi Engineering"
    )


def preview_text(session: Session) -> str:
    """MarkdownV2 summary of the Reads item being built."""
    item = session.reads_item
    sector = option_label(SECTORS, item.taxonomy[0] if item.taxonomy else None) or ""
    item_type = option_label(TYPES, item.tags[0] if item.tags else None) or ""

    return (
        "here is what we've got so far:\n"
        f"\n__*Title*__\n{clean_text_for_markdown(item.title)}\n"
        f"\n__*Description*__\n{clean_text_for_markdown(item.description)}\n"
        f"\n__*Sector*__\n{clean_text_for_markdown(sector)}\n"
        f"\n__*Type*__\n{clean_text_for_markdown(item_type)}\n"
    )
