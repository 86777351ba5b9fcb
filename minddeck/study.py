"""
Study mode: step through a deck's cards front-first.
"""

from typing import List

from .exceptions import InputValidationError
from .models import Card, Deck


class StudySession:
    """
    Cursor over a snapshot of a deck's cards.

    Moving to another card always shows its front; next/previous wrap around
    at either end.
    """

    def __init__(self, deck: Deck):
        if not deck.cards:
            raise InputValidationError("No cards to study")
        self.deck_id = deck.id
        self.deck_name = deck.name
        self.cards: List[Card] = list(deck.cards)
        self.index = 0
        self.showing_back = False

    @property
    def total(self) -> int:
        return len(self.cards)

    @property
    def current(self) -> Card:
        return self.cards[self.index]

    @property
    def visible_text(self) -> str:
        card = self.current
        return card.back if self.showing_back else card.front

    def flip(self) -> None:
        self.showing_back = not self.showing_back

    def next(self) -> Card:
        self.index = (self.index + 1) % self.total
        self.showing_back = False
        return self.current

    def previous(self) -> Card:
        self.index = (self.index - 1) % self.total
        self.showing_back = False
        return self.current

    @property
    def progress_text(self) -> str:
        return f"Card {self.index + 1} of {self.total}"

    @property
    def progress_percent(self) -> float:
        return max(0.0, min(100.0, (self.index + 1) / self.total * 100))
