"""Backend server package for minddeck.

create_app is the public API; DeckFileStore is its JSON file persistence.
"""

from .app import create_app
from .storage import DeckFileStore

__all__ = ["create_app", "DeckFileStore"]
