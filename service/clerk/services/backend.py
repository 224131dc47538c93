"""
Delphi CMS API client.

Thin httpx wrapper over the four backend endpoints the bot uses.
Status interpretation for publishing lives in clerk.services.publish;
this module only knows URLs, headers and payload shapes.
"""

import logging
import httpx
from dataclasses import dataclass
from typing import Optional, Dict, Any, List

from clerk.config import Settings
from clerk.errors import FetchError

logger = logging.getLogger("clerk_bot.backend")

RECENT_ITEMS_PAGE_SIZE = 50


@dataclass
class UrlMetadata:
    """Link preview data the backend scrapes for a URL."""
    title: str = ""
    description: str = ""
    image: str = ""

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "UrlMetadata":
        return cls(
            title=data.get("title") or "",
            description=data.get("description") or "",
            image=data.get("image") or "",
        )


class DelphiAPIClient:
    """
    Client for the Delphi CMS REST API.

    A single AsyncClient is shared for the process; pass `client` to
    inject a preconfigured one (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        base_url: str,
        reading_list_id: str,
        create_read_api_key: str,
        create_af_api_key: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.reading_list_id = reading_list_id
        self.create_read_api_key = create_read_api_key
        self.create_af_api_key = create_af_api_key
        self.client = client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(cls, settings: Settings) -> "DelphiAPIClient":
        return cls(
            base_url=settings.delphi_api_base_url,
            reading_list_id=settings.delphi_reading_list_id,
            create_read_api_key=settings.delphi_create_read_api_key,
            create_af_api_key=settings.delphi_create_af_api_key,
            timeout=settings.backend_timeout_seconds,
        )

    def url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    async def fetch_link_metadata(self, link: str) -> UrlMetadata:
        """
        Call GET /api/v1/reads/link-metadata.

        Raises FetchError on any transport failure or non-200 status.
        """
        metadata_url = self.url("/api/v1/reads/link-metadata")
        logger.info(f"Fetching metadata for {link}")

        try:
            response = await self.client.get(metadata_url, params={"url": link})
        except httpx.HTTPError as e:
            raise FetchError(f"metadata request failed for {link}") from e

        if response.status_code != 200:
            logger.warning(f"Received {response.status_code} fetching url metadata for {link}")
            raise FetchError(f"metadata request returned {response.status_code}")

        try:
            return UrlMetadata.from_json(response.json())
        except (ValueError, AttributeError) as e:
            raise FetchError(f"metadata response for {link} was not a JSON object") from e

    async def list_recent_items(self) -> List[Dict[str, Any]]:
        """
        Call GET /api/v1/lists/{id}/items for the first page of the reading list.

        Raises FetchError on transport failure or an error status.
        """
        items_url = self.url(f"/api/v1/lists/{self.reading_list_id}/items")

        try:
            response = await self.client.get(
                items_url,
                params={"page": 1, "limit": RECENT_ITEMS_PAGE_SIZE},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise FetchError("could not load recent reading list items") from e

        try:
            return response.json().get("data") or []
        except (ValueError, AttributeError) as e:
            raise FetchError("reading list response was not a JSON object") from e

    async def create_read(self, payload: Dict[str, Any]) -> httpx.Response:
        """Call POST /api/v1/bots/tg/create-read. Returns the raw response."""
        return await self.client.post(
            self.url("/api/v1/bots/tg/create-read"),
            json=payload,
            headers={"x-api-key": self.create_read_api_key},
        )

    async def create_af_post(self, payload: Dict[str, Any]) -> httpx.Response:
        """Call POST /api/v1/bots/tg/create-af. Returns the raw response."""
        return await self.client.post(
            self.url("/api/v1/bots/tg/create-af"),
            json=payload,
            headers={"x-api-key": self.create_af_api_key},
        )

    async def close(self):
        """Close HTTP client."""
        await self.client.aclose()
