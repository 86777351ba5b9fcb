"""
Canonical Deck/Card shapes shared by the store, the importer and the exporter.
"""

from __future__ import annotations

import json
import threading
import time
from typing import Any, List, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

# Ids are millisecond timestamps for records created here, but imported files
# and older server data may carry floats or strings.
Identifier = Union[int, float, str]

_id_lock = threading.Lock()
_last_id = 0


def generate_id() -> int:
    """
    Return a new numeric id based on the current time in milliseconds.

    Ids are strictly increasing within the process, so two records created in
    the same millisecond still get distinct ids.
    """
    global _last_id
    with _id_lock:
        candidate = int(time.time() * 1000)
        if candidate <= _last_id:
            candidate = _last_id + 1
        _last_id = candidate
        return candidate


def same_id(left: Identifier, right: Identifier) -> bool:
    """Compare ids by their string form ("17" matches 17)."""
    return str(left) == str(right)


class Card(BaseModel):
    """
    A front/back question-answer pair. The id is unique within its deck.
    """

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    id: Identifier = Field(
        default_factory=generate_id,
        description="Card id, unique within the owning deck.",
    )
    front: str = Field(..., description="Question side.")
    back: str = Field(..., description="Answer side.")


class Deck(BaseModel):
    """
    A named, ordered collection of cards.
    """

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    id: Identifier = Field(
        default_factory=generate_id,
        description="Deck id, unique within the collection.",
    )
    name: str = Field(..., description="Display name of the deck.")
    description: str = Field(
        default="", description="Optional free-text description."
    )
    cards: List[Card] = Field(default_factory=list)

    @field_validator("description", mode="before")
    @classmethod
    def none_description_is_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("cards", mode="before")
    @classmethod
    def none_cards_is_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    def find_card(self, card_id: Identifier) -> Optional[Card]:
        """Return the card with the given id, or None."""
        for card in self.cards:
            if same_id(card.id, card_id):
                return card
        return None


_collection_adapter = TypeAdapter(List[Deck])


def find_deck(decks: Sequence[Deck], deck_id: Identifier) -> Optional[Deck]:
    """Return the deck with the given id, or None."""
    for deck in decks:
        if same_id(deck.id, deck_id):
            return deck
    return None


def collection_from_data(data: Any) -> List[Deck]:
    """
    Validate already-decoded JSON data into a list of decks.

    Raises:
        pydantic.ValidationError: If the data is not a list of deck objects.
    """
    return _collection_adapter.validate_python(data)


def collection_from_json(text: str) -> List[Deck]:
    """
    Parse JSON text into a list of decks.

    Raises:
        pydantic.ValidationError: If the text is not valid JSON or has the
            wrong shape.
    """
    return _collection_adapter.validate_json(text)


def collection_to_data(decks: Sequence[Deck]) -> List[dict]:
    """Dump decks into plain JSON-compatible dictionaries."""
    return [deck.model_dump(mode="json") for deck in decks]


def collection_to_json(decks: Sequence[Deck], indent: Optional[int] = None) -> str:
    """Serialize decks into JSON text."""
    return json.dumps(
        collection_to_data(decks), indent=indent, ensure_ascii=False
    )
