"""
Single-document JSON persistence for the backend.
"""

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, List, Union

logger = logging.getLogger(__name__)


class DeckFileStore:
    """
    Stores the whole deck collection as one JSON file.

    Contents are kept as plain JSON data; the backend checks shapes only.
    Read-modify-write sequences are serialized with a lock.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.Lock()

    def read(self) -> List[Any]:
        """
        Return the stored collection. A missing, unreadable or non-array file
        reads as an empty collection.
        """
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.error(f"Could not read {self.path}: {e}")
            return []
        try:
            data = json.loads(text or "[]")
        except ValueError as e:
            logger.error(f"Data file {self.path} is not valid JSON: {e}")
            return []
        if not isinstance(data, list):
            logger.error(f"Data file {self.path} does not hold an array")
            return []
        return data

    def _write(self, decks: List[Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.write_text(
            json.dumps(decks, indent=2, ensure_ascii=False), encoding="utf-8"
        )
        os.replace(tmp_path, self.path)

    def replace(self, decks: List[Any]) -> None:
        """Overwrite the stored collection."""
        with self._lock:
            self._write(decks)
        logger.info(f"Stored {len(decks)} deck(s) in {self.path}")

    def update_deck(self, deck_id: str, changes: dict) -> bool:
        """
        Shallow-merge changes into the deck whose id matches deck_id.

        Returns:
            bool: False (and nothing written) when no deck matches.
        """
        with self._lock:
            decks = self.read()
            for deck in decks:
                if isinstance(deck, dict) and str(deck.get("id")) == deck_id:
                    deck.update(changes)
                    self._write(decks)
                    logger.info(f"Updated deck {deck_id} in {self.path}")
                    return True
        logger.warning(f"Update for unknown deck {deck_id} ignored")
        return False
