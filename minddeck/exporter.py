"""
Renders the deck collection as JSON or CSV text.
"""

import csv
import io
import logging
from pathlib import Path
from typing import Sequence

from .constants import CSV_HEADER, UNTITLED_DECK_NAME
from .models import Deck, collection_to_json

logger = logging.getLogger(__name__)

JSON_EXPORT_FILENAME = "minddeck-decks.json"
CSV_EXPORT_FILENAME = "minddeck-decks.csv"


def export_json(decks: Sequence[Deck]) -> str:
    """Pretty-printed JSON array of decks, re-importable as-is."""
    return collection_to_json(decks, indent=2)


def export_csv(decks: Sequence[Deck]) -> str:
    """
    Render decks as CSV with a deck_name,deck_description,front,back header.

    One row per card; a deck without cards still gets one row with empty
    front/back. Every data field is quoted and internal quotes are doubled.
    """
    buffer = io.StringIO()
    buffer.write(",".join(CSV_HEADER) + "\n")
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")

    for deck in decks:
        deck_name = deck.name or UNTITLED_DECK_NAME
        description = deck.description or ""
        if not deck.cards:
            writer.writerow([deck_name, description, "", ""])
            continue
        for card in deck.cards:
            writer.writerow([deck_name, description, card.front or "", card.back or ""])

    return buffer.getvalue()


def write_export(path: Path, text: str) -> Path:
    """
    Write export text to path as UTF-8, creating parent directories.

    Raises:
        IOError: If the directory or file cannot be written.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    except OSError as e:
        logger.error(f"Could not write export to {path}: {e}")
        raise IOError(f"Failed to write export file: {e}") from e
    logger.info(f"Wrote {len(text)} characters to {path}")
    return path
