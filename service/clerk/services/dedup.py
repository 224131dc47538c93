"""
Duplicate guard for Reads links.

Only the most recent page of the reading list is checked, so a link
submitted long ago can slip through. That is accepted: the backend still
answers 409 on publish for exact duplicates it knows about.
"""

from clerk.errors import DuplicateError
from clerk.services.backend import DelphiAPIClient


def find_duplicate(link: str, recent_items: list[dict]) -> dict | None:
    """Return the first item whose link equals `link` exactly, else None."""
    for item in recent_items:
        if item.get("link") == link:
            return item
    return None


async def ensure_not_duplicate(link: str, api: DelphiAPIClient) -> None:
    """
    Raise DuplicateError if `link` is in the recent-items window.

    Comparison is exact string equality; `link` is expected to be
    normalized already.
    """
    recent_items = await api.list_recent_items()
    if find_duplicate(link, recent_items) is not None:
        raise DuplicateError(link)
