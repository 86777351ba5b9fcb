"""
Async HTTP client for the MindDeck backend.
"""

import logging
from typing import Any, List, Optional
from urllib.parse import quote

import httpx

from .constants import DECKS_ENDPOINT, DEFAULT_REQUEST_TIMEOUT, HEALTH_ENDPOINT
from .exceptions import RemoteError

logger = logging.getLogger(__name__)


class RemoteDeckClient:
    """
    Talks to the backend's /api/decks endpoints.

    Every call opens a short-lived httpx.AsyncClient; any network failure,
    non-2xx status or undecodable body is raised as RemoteError. Callers
    decide whether that failure matters.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def _request(
        self, method: str, url: str, json_body: Any = None
    ) -> httpx.Response:
        try:
            async with self._client() as client:
                response = await client.request(method, url, json=json_body)
                response.raise_for_status()
                return response
        except httpx.HTTPStatusError as e:
            raise RemoteError(
                f"{method} {url} failed with status {e.response.status_code}",
                status_code=e.response.status_code,
                original_exception=e,
            ) from e
        except httpx.HTTPError as e:
            raise RemoteError(
                f"{method} {url} failed: {e}", original_exception=e
            ) from e

    async def fetch_decks(self) -> List[Any]:
        """
        GET the full collection as raw JSON data.

        Raises:
            RemoteError: On network failure, non-2xx status, invalid JSON, or
                a body that is not a JSON array.
        """
        response = await self._request("GET", DECKS_ENDPOINT)
        try:
            data = response.json()
        except ValueError as e:
            raise RemoteError(
                f"GET {DECKS_ENDPOINT} returned invalid JSON: {e}",
                status_code=response.status_code,
                original_exception=e,
            ) from e
        if not isinstance(data, list):
            raise RemoteError(
                f"GET {DECKS_ENDPOINT} returned {type(data).__name__}, expected array",  # noqa: E501
                status_code=response.status_code,
            )
        return data

    async def replace_decks(self, decks: List[Any]) -> None:
        """POST the full collection, replacing what the backend stores."""
        await self._request("POST", DECKS_ENDPOINT, json_body=decks)

    async def update_deck(self, deck: dict) -> None:
        """PUT a single deck; the backend shallow-merges it by id."""
        # Ids may hold any text; one path segment per id.
        deck_path = quote(str(deck["id"]), safe="")
        await self._request(
            "PUT", f"{DECKS_ENDPOINT}/{deck_path}", json_body=deck
        )

    async def health(self) -> bool:
        """Return True when the backend answers its health check."""
        try:
            response = await self._request("GET", HEALTH_ENDPOINT)
            return bool(response.json().get("ok"))
        except (RemoteError, ValueError, AttributeError) as e:
            logger.warning(f"Health check against {self.base_url} failed: {e}")
            return False
