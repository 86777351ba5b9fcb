"""
Store adapter: the only place the deck collection is read from or written to.

Reads try the backend first and fall back to the local cache. Writes go to the
local cache first and are mirrored to the backend on a best-effort basis.
"""

import asyncio
import logging
from typing import List, Optional, Sequence, Set

from pydantic import ValidationError

from .cache import LocalCache
from .constants import STORAGE_KEY
from .exceptions import CacheError, RemoteError
from .models import (
    Deck,
    collection_from_data,
    collection_from_json,
    collection_to_data,
    collection_to_json,
)
from .remote import RemoteDeckClient

logger = logging.getLogger(__name__)


class DeckStore:
    """
    Mediates between in-memory decks and their cached/remote forms.

    Operations receive a DeckStore explicitly and call load() before every
    read-modify-write; no component keeps a long-lived copy of the collection.
    """

    def __init__(
        self,
        cache: LocalCache,
        remote: Optional[RemoteDeckClient] = None,
        storage_key: str = STORAGE_KEY,
    ):
        self.cache = cache
        self.remote = remote
        self.storage_key = storage_key
        self._pending: Set[asyncio.Task] = set()

    # --- Reads ---

    def load_cached(self) -> List[Deck]:
        """
        Read the collection from the local cache only.

        A missing key yields an empty collection. Unparsable or wrongly shaped
        cached data is logged and also yields an empty collection.
        """
        try:
            raw = self.cache.get_item(self.storage_key)
        except CacheError as e:
            logger.error(f"load: local cache unreadable, using empty: {e}")
            return []
        if raw is None:
            return []
        try:
            return collection_from_json(raw)
        except ValidationError as e:
            logger.error(f"load: cached collection is corrupt, using empty: {e}")
            return []

    async def load(self) -> List[Deck]:
        """
        Fetch the collection, preferring the backend.

        On success the fetched collection overwrites the local cache. Any
        remote or parse failure falls back to the local cache. Never raises for
        remote or corrupt-cache failures.
        """
        if self.remote is not None:
            try:
                data = await self.remote.fetch_decks()
                decks = collection_from_data(data)
            except (RemoteError, ValidationError) as e:
                logger.error(
                    f"load: failed to load from server, using local cache: {e}"
                )
            else:
                try:
                    self.cache.set_item(self.storage_key, collection_to_json(decks))
                except CacheError as e:
                    logger.error(f"load: could not refresh local cache: {e}")
                return decks
        return self.load_cached()

    # --- Writes ---

    async def save(self, decks: Sequence[Deck]) -> None:
        """
        Persist the whole collection.

        The local cache is written first and synchronously; then the full
        collection is pushed to the backend. A remote failure is logged and
        never reverts the local write.

        Raises:
            StorageQuotaError: If the collection does not fit in the cache
                quota. Nothing is pushed in that case.
            CacheOperationError: If the cache write fails for another reason.
        """
        self.cache.set_item(self.storage_key, collection_to_json(decks))
        if self.remote is None:
            return
        try:
            await self.remote.replace_decks(collection_to_data(decks))
        except RemoteError as e:
            logger.error(f"save: failed to save to server: {e}")

    async def update_remote(self, deck: Deck) -> bool:
        """
        Best-effort partial update of one deck on the backend.

        Returns:
            bool: True when the backend accepted the update. Failures are
                logged and reported as False; local state is never touched.
        """
        if self.remote is None:
            return False
        try:
            await self.remote.update_deck(deck.model_dump(mode="json"))
        except RemoteError as e:
            logger.error(f"update_remote: error updating deck {deck.id} on server: {e}")
            return False
        return True

    def schedule_remote_update(self, deck: Deck) -> Optional[asyncio.Task]:
        """
        Fire-and-forget update_remote on the running event loop.

        The task is tracked until it finishes so drain() can wait for it.
        """
        if self.remote is None:
            return None
        task = asyncio.get_running_loop().create_task(
            self.update_remote(deck.model_copy(deep=True))
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        """Wait for outstanding fire-and-forget remote updates."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
