"""
Deck and card operations.

Each operation loads a fresh collection from the injected DeckStore, mutates
that copy, and saves it back. Destructive operations capture what they remove
and return an UndoOffer that replays it through the same store.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from .constants import DEFAULT_UNDO_TIMEOUT
from .exceptions import CardNotFoundError, DeckNotFoundError, InputValidationError
from .exporter import export_csv, export_json
from .importer import ImportResult, parse_import, read_import_file
from .models import Card, Deck, Identifier, find_deck, generate_id, same_id
from .store import DeckStore
from .undo import UndoOffer

logger = logging.getLogger(__name__)


@dataclass
class ImportOutcome:
    """Decks added by an import, how the file was read, and its undo offer."""

    result: ImportResult
    undo: UndoOffer

    @property
    def decks(self) -> List[Deck]:
        return self.result.decks


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


class DeckManager:
    """
    High-level deck/card operations over a DeckStore.

    Concurrent operations are not coordinated: each one is a whole-collection
    read-modify-write, so the last save wins.
    """

    def __init__(self, store: DeckStore, undo_timeout: float = DEFAULT_UNDO_TIMEOUT):
        self.store = store
        self.undo_timeout = undo_timeout

    def _offer(self, message: str, action) -> UndoOffer:
        return UndoOffer(message, action, timeout=self.undo_timeout)

    async def _load_with_deck(self, deck_id: Identifier) -> Tuple[List[Deck], Deck]:
        decks = await self.store.load()
        deck = find_deck(decks, deck_id)
        if deck is None:
            raise DeckNotFoundError(f"Deck not found: {deck_id}")
        return decks, deck

    # --- Reads ---

    async def list_decks(self) -> List[Deck]:
        return await self.store.load()

    async def get_deck(self, deck_id: Identifier) -> Deck:
        """
        Raises:
            DeckNotFoundError: If no deck has this id.
        """
        _, deck = await self._load_with_deck(deck_id)
        return deck

    # --- Decks ---

    async def create_deck(self, name: str, description: str = "") -> Deck:
        """
        Create a deck and prepend it to the collection.

        Raises:
            InputValidationError: If the name is empty after trimming.
        """
        name = _clean(name)
        if not name:
            raise InputValidationError("Please provide a deck name")

        decks = await self.store.load()
        deck = Deck(id=generate_id(), name=name, description=_clean(description))
        decks.insert(0, deck)
        await self.store.save(decks)
        logger.info(f"Created deck {deck.id} ({deck.name!r})")
        return deck

    async def edit_deck(
        self,
        deck_id: Identifier,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Deck:
        """
        Rename and/or re-describe a deck.

        A blank name keeps the current one. The full collection is saved, then
        the single deck is pushed to the backend in the background.
        """
        decks, deck = await self._load_with_deck(deck_id)
        deck.name = _clean(name) or deck.name
        if description is not None:
            deck.description = _clean(description)
        await self.store.save(decks)
        self.store.schedule_remote_update(deck)
        logger.info(f"Edited deck {deck.id}")
        return deck

    async def delete_deck(self, deck_id: Identifier) -> UndoOffer:
        """
        Remove a deck and return an offer that puts it back at the front.
        """
        decks, removed = await self._load_with_deck(deck_id)
        remaining = [d for d in decks if not same_id(d.id, removed.id)]
        await self.store.save(remaining)
        logger.info(f"Deleted deck {removed.id} ({removed.name!r})")

        async def restore() -> None:
            current = await self.store.load()
            current.insert(0, removed)
            await self.store.save(current)

        return self._offer(f'Deleted "{removed.name}"', restore)

    # --- Cards ---

    async def add_card(self, deck_id: Identifier, front: str, back: str) -> Card:
        """
        Append a card to a deck.

        Raises:
            InputValidationError: If front or back is empty after trimming.
            DeckNotFoundError: If the deck does not exist.
        """
        front, back = _clean(front), _clean(back)
        if not front or not back:
            raise InputValidationError("Please provide both front and back")

        decks, deck = await self._load_with_deck(deck_id)
        card = Card(id=generate_id(), front=front, back=back)
        deck.cards.append(card)
        await self.store.save(decks)
        logger.info(f"Added card {card.id} to deck {deck.id}")
        return card

    async def edit_card(
        self,
        deck_id: Identifier,
        card_id: Identifier,
        front: Optional[str] = None,
        back: Optional[str] = None,
    ) -> Card:
        """
        Change a card's text; blank values keep the current text.

        Raises:
            DeckNotFoundError, CardNotFoundError
        """
        decks, deck = await self._load_with_deck(deck_id)
        card = deck.find_card(card_id)
        if card is None:
            raise CardNotFoundError(f"Card not found: {card_id}")
        card.front = _clean(front) or card.front
        card.back = _clean(back) or card.back
        await self.store.save(decks)
        logger.info(f"Edited card {card.id} in deck {deck.id}")
        return card

    async def delete_card(self, deck_id: Identifier, card_id: Identifier) -> UndoOffer:
        """
        Remove a card; the returned offer appends it back to its deck.
        """
        decks, deck = await self._load_with_deck(deck_id)
        removed = deck.find_card(card_id)
        if removed is None:
            raise CardNotFoundError(f"Card not found: {card_id}")
        deck.cards = [c for c in deck.cards if not same_id(c.id, card_id)]
        await self.store.save(decks)
        logger.info(f"Deleted card {removed.id} from deck {deck.id}")
        owner_id = deck.id

        async def restore() -> None:
            current = await self.store.load()
            owner = find_deck(current, owner_id)
            if owner is None:
                logger.warning(
                    f"Undo delete card: deck {owner_id} no longer exists, nothing restored"  # noqa: E501
                )
                return
            owner.cards.append(removed)
            await self.store.save(current)

        return self._offer("Card deleted", restore)

    # --- Import / export ---

    async def import_text(
        self, filename: str, text: str, preserve_grouping: bool = False
    ) -> ImportOutcome:
        """
        Parse, normalize and append imported decks in one step.

        Parsing happens before anything is written, so a malformed file
        leaves the collection untouched. The undo offer restores the exact
        pre-import snapshot.
        """
        existing = await self.store.load()
        result = parse_import(
            filename,
            text,
            preserve_grouping=preserve_grouping,
            existing_ids=[d.id for d in existing],
        )
        snapshot = [d.model_copy(deep=True) for d in existing]
        await self.store.save(existing + result.decks)

        count = len(result.decks)
        logger.info(f"Imported {count} deck(s) from {filename}")

        async def restore() -> None:
            await self.store.save(snapshot)

        message = f"Successfully imported {count} deck{'s' if count != 1 else ''}"
        return ImportOutcome(result=result, undo=self._offer(message, restore))

    async def import_file(self, path: Path, preserve_grouping: bool = False) -> ImportOutcome:
        """Read a .json/.csv file and import it (see import_text)."""
        text = await read_import_file(path)
        return await self.import_text(path.name, text, preserve_grouping=preserve_grouping)

    async def export_json(self) -> str:
        return export_json(await self.store.load())

    async def export_csv(self) -> str:
        return export_csv(await self.store.load())
