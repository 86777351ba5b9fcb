"""MindDeck - a flashcard deck manager with an offline cache and a JSON backend."""

from .models import Card, Deck, generate_id
from .constants import DEFAULT_UNDO_TIMEOUT, STORAGE_KEY
from .cache import LocalCache
from .remote import RemoteDeckClient
from .store import DeckStore
from .operations import DeckManager, ImportOutcome
from .undo import UndoOffer, await_choice

__all__ = [
    "Card",
    "Deck",
    "generate_id",
    "DEFAULT_UNDO_TIMEOUT",
    "STORAGE_KEY",
    "LocalCache",
    "RemoteDeckClient",
    "DeckStore",
    "DeckManager",
    "ImportOutcome",
    "UndoOffer",
    "await_choice",
]
