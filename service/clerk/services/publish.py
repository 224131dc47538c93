"""
Publish gateway: sends finished items to the CMS and interprets the reply.

Response contract:
- 403          -> UnauthorizedError
- 409 (Reads)  -> DuplicateError
- other > 201  -> UnknownError, with per-field validation text when present
"""

from dataclasses import asdict
from typing import Any, Dict

import httpx

from clerk.errors import DuplicateError, UnauthorizedError, UnknownError
from clerk.services.backend import DelphiAPIClient
from clerk.models import AfPostItem, ReadsItem


def read_payload(item: ReadsItem, tg_username: str | None) -> Dict[str, Any]:
    payload = asdict(item)
    if not payload["description"]:
        del payload["description"]
    payload["tg_username"] = tg_username
    return payload


def af_post_payload(item: AfPostItem, tg_username: str | None) -> Dict[str, Any]:
    return {
        "title": item.title,
        "transcripts": list(item.transcripts),
        "currentTranscript": item.current_transcript,
        "audio_url": item.audio_url,
        "tg_username": tg_username,
    }


def format_validation_errors(body: Any) -> str:
    """
    Turn a backend validation body into one line for the user.

    {"message": "Invalid", "errors": {"title": ["is required"]}}
    -> "Invalid: [title]: is required. "
    """
    if not isinstance(body, dict) or not body.get("errors"):
        return ""

    msg = f"{body.get('message', '')}: "
    for field, messages in body["errors"].items():
        first = messages[0] if isinstance(messages, list) and messages else messages
        msg += f"[{field}]: {first}. "
    return msg


def _raise_for_publish_status(response: httpx.Response, duplicate_on_conflict: bool) -> None:
    if response.status_code == 403:
        raise UnauthorizedError("backend rejected the api key")
    if duplicate_on_conflict and response.status_code == 409:
        raise DuplicateError("backend reports the item already exists")
    if response.status_code > 201:
        try:
            body = response.json()
        except ValueError:
            body = None
        raise UnknownError(
            f"publish failed with status {response.status_code}",
            validation_message=format_validation_errors(body),
        )


async def publish_read(api: DelphiAPIClient, item: ReadsItem, tg_username: str | None) -> None:
    try:
        response = await api.create_read(read_payload(item, tg_username))
    except httpx.HTTPError as e:
        raise UnknownError(f"create-read request failed: {e}") from e
    _raise_for_publish_status(response, duplicate_on_conflict=True)


async def publish_af_post(api: DelphiAPIClient, item: AfPostItem, tg_username: str | None) -> None:
    try:
        response = await api.create_af_post(af_post_payload(item, tg_username))
    except httpx.HTTPError as e:
        raise UnknownError(f"create-af request failed: {e}") from e
    _raise_for_publish_status(response, duplicate_on_conflict=False)
