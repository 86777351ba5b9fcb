"""
Parses JSON or CSV import payloads into canonical decks.

Both paths produce raw deck dictionaries first; normalize_decks() then turns
them into validated Deck objects with ids, trimmed text and defaults.
"""

import asyncio
import json
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterable, List, Optional, Set, Tuple

from .constants import (
    CSV_HEADER_MARKERS,
    IMPORTED_DECK_NAME,
    SUPPORTED_IMPORT_SUFFIXES,
    UNTITLED_CARD_TEXT,
)
from .exceptions import ImportFormatError, UnsupportedFileTypeError
from .models import Card, Deck, Identifier, generate_id

logger = logging.getLogger(__name__)


class JsonShape(str, Enum):
    """The JSON layouts accepted on import, in detection priority order."""

    DECK_ARRAY = "deck_array"
    CARD_ARRAY = "card_array"
    DECK = "deck"
    CARD = "card"


@dataclass
class ImportResult:
    """Normalized decks plus what was recognized in the source file."""

    source_format: str
    decks: List[Deck] = field(default_factory=list)
    shape: Optional[JsonShape] = None

    @property
    def card_count(self) -> int:
        return sum(len(deck.cards) for deck in self.decks)


# ---------------------------------------------------------------------------
# File type
# ---------------------------------------------------------------------------


def import_format(filename: str) -> str:
    """
    Return ".json" or ".csv" for a supported import file name.

    Raises:
        UnsupportedFileTypeError: For any other extension.
    """
    suffix = Path(filename).suffix.lower()
    if suffix not in SUPPORTED_IMPORT_SUFFIXES:
        raise UnsupportedFileTypeError("Please select a JSON or CSV file")
    return suffix


async def read_import_file(path: Path) -> str:
    """
    Read an import file as UTF-8 text without blocking the event loop.

    The extension is checked before the file is opened.

    Raises:
        UnsupportedFileTypeError: If the file is not .json or .csv.
        ImportFormatError: If the file cannot be read or decoded.
    """
    import_format(path.name)
    try:
        return await asyncio.to_thread(path.read_text, encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Error reading import file {path}: {e}")
        raise ImportFormatError(
            "Error reading file. Please try again.", original_exception=e
        ) from e


# ---------------------------------------------------------------------------
# CSV
# ---------------------------------------------------------------------------


def _finish_row(row: List[str], rows: List[List[str]]) -> None:
    if any(row):
        rows.append(row)


def parse_csv_rows(text: str) -> List[List[str]]:
    """
    Split CSV text into rows of trimmed fields.

    Handles RFC4180-style quoting: "" inside a quoted field is a literal
    quote, and commas and newlines inside quotes belong to the field. Rows end
    at \\n or \\r\\n outside quotes. Rows whose fields are all empty are dropped.
    """
    rows: List[List[str]] = []
    row: List[str] = []
    current: List[str] = []
    in_quotes = False
    i = 0
    length = len(text)

    while i < length:
        char = text[i]
        next_char = text[i + 1] if i + 1 < length else ""

        if char == '"':
            if in_quotes and next_char == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            row.append("".join(current).strip())
            current = []
        elif not in_quotes and (
            char == "\n" or (char == "\r" and next_char == "\n")
        ):
            if char == "\r":
                i += 1
            row.append("".join(current).strip())
            _finish_row(row, rows)
            row = []
            current = []
        else:
            current.append(char)
        i += 1

    if current or row:
        row.append("".join(current).strip())
        _finish_row(row, rows)

    return rows


def _has_header(first_row: List[str]) -> bool:
    return bool(first_row) and first_row[0].lower() in CSV_HEADER_MARKERS


def parse_csv_import(text: str) -> List[dict]:
    """
    Parse CSV text into a single raw "Imported Deck".

    Accepts 4-column rows (deck_name, deck_description, front, back) and
    2-column rows (front, back). Deck name and description columns are
    ignored; every card lands in the same imported deck.

    Raises:
        ImportFormatError: If the text is empty or yields no cards.
    """
    text = text.lstrip("\ufeff")
    if not text.strip():
        raise ImportFormatError("CSV file is empty")

    rows = parse_csv_rows(text)
    if not rows:
        raise ImportFormatError("No valid data found in CSV file")

    start = 1 if _has_header(rows[0]) else 0
    cards: List[dict] = []
    skipped = 0

    for line in rows[start:]:
        if len(line) == 4:
            front, back = line[2], line[3]
        elif len(line) == 2:
            front, back = line
        else:
            skipped += 1
            continue

        if not front and not back:
            skipped += 1
            continue

        cards.append(
            {
                "front": front or UNTITLED_CARD_TEXT,
                "back": back or UNTITLED_CARD_TEXT,
            }
        )

    if skipped:
        logger.info(f"Skipped {skipped} CSV row(s) with unsupported shape or no content.")  # noqa: E501
    if not cards:
        raise ImportFormatError("No valid data found in CSV file")

    return [{"name": IMPORTED_DECK_NAME, "description": "", "cards": cards}]


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------


def _has_card_keys(value: Any) -> bool:
    return isinstance(value, dict) and ("front" in value or "back" in value)


def _has_cards_list(value: Any) -> bool:
    return isinstance(value, dict) and isinstance(value.get("cards"), list)


def _is_deck_array(data: Any) -> bool:
    return isinstance(data, list) and bool(data) and _has_cards_list(data[0])


def _is_card_array(data: Any) -> bool:
    return isinstance(data, list) and (not data or _has_card_keys(data[0]))


_SHAPE_MATCHERS: Tuple[Tuple[JsonShape, Callable[[Any], bool]], ...] = (
    (JsonShape.DECK_ARRAY, _is_deck_array),
    (JsonShape.CARD_ARRAY, _is_card_array),
    (JsonShape.DECK, _has_cards_list),
    (JsonShape.CARD, _has_card_keys),
)


def detect_json_shape(data: Any) -> JsonShape:
    """
    Return the first JsonShape that matches the decoded JSON value.

    Raises:
        ImportFormatError: If no known shape matches.
    """
    for shape, matches in _SHAPE_MATCHERS:
        if matches(data):
            return shape

    if data is None:
        raise ImportFormatError("File contains invalid data")
    if isinstance(data, list):
        raise ImportFormatError(
            "Invalid JSON format: expected array of decks or cards"
        )
    if isinstance(data, dict):
        raise ImportFormatError(
            "Invalid JSON format: expected deck or card object"
        )
    raise ImportFormatError("Invalid format: expected an array or object")


def _source_decks(data: list) -> List[dict]:
    for idx, deck in enumerate(data):
        if not isinstance(deck, dict) or not isinstance(
            deck.get("cards", []), list
        ):
            raise ImportFormatError(f"Invalid deck at position {idx + 1}")
    return data


def _bare_cards(data: list) -> List[dict]:
    cards = []
    for idx, card in enumerate(data):
        if not isinstance(card, dict):
            raise ImportFormatError(f"Invalid card at position {idx + 1}")
        cards.append({"front": card.get("front"), "back": card.get("back")})
    return cards


def _single_imported_deck(cards: List[Any]) -> List[dict]:
    return [{"name": IMPORTED_DECK_NAME, "description": "", "cards": cards}]


def parse_json_import(
    text: str, preserve_grouping: bool = False
) -> Tuple[JsonShape, List[dict]]:
    """
    Parse JSON text into raw decks, reporting which shape matched.

    By default every shape collapses into one "Imported Deck" holding all
    cards in order; for an array of decks this loses the original grouping.
    With preserve_grouping, deck shapes keep one imported deck per source
    deck instead.

    Raises:
        ImportFormatError: For invalid JSON or an unrecognized shape.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ImportFormatError(
            f"Invalid JSON: {e.msg} (line {e.lineno}, column {e.colno})",
            original_exception=e,
        ) from e

    shape = detect_json_shape(data)
    logger.debug(f"JSON import matched shape {shape.value}")

    if shape is JsonShape.DECK_ARRAY:
        decks = _source_decks(data)
        if preserve_grouping:
            return shape, decks
        return shape, _single_imported_deck(
            [card for deck in decks for card in deck.get("cards") or []]
        )
    if shape is JsonShape.CARD_ARRAY:
        return shape, _single_imported_deck(_bare_cards(data))
    if shape is JsonShape.DECK:
        if preserve_grouping:
            return shape, [data]
        return shape, _single_imported_deck(data["cards"])
    return shape, _single_imported_deck([data])


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


def _text(value: Any, what: str) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        raise ImportFormatError(f"Invalid {what}: expected text")
    return str(value).strip()


def _usable_id(value: Any) -> Optional[Identifier]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return value
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _claim_id(value: Any, taken: Set[str]) -> Identifier:
    """Keep a usable, unclaimed id; otherwise assign a fresh one."""
    candidate = _usable_id(value)
    if candidate is None or str(candidate) in taken:
        candidate = generate_id()
        while str(candidate) in taken:
            candidate = generate_id()
    taken.add(str(candidate))
    return candidate


def _normalize_card(raw: Any, position: int, deck_position: int, taken: Set[str]) -> Card:
    if not isinstance(raw, dict):
        raise ImportFormatError(
            f"Invalid card at position {position} in deck {deck_position}"
        )
    return Card(
        id=_claim_id(raw.get("id"), taken),
        front=_text(raw.get("front"), "card front") or UNTITLED_CARD_TEXT,
        back=_text(raw.get("back"), "card back") or UNTITLED_CARD_TEXT,
    )


def normalize_decks(
    raw_decks: List[Any], existing_ids: Iterable[Identifier] = ()
) -> List[Deck]:
    """
    Turn raw deck dictionaries into Deck objects.

    - Decks and cards without an id, or whose id collides with the existing
      collection (or an earlier card in the same deck), get a fresh id.
    - name, description, front and back are trimmed.
    - A missing name becomes "Imported Deck"; a blank one becomes
      "Imported Deck N" with N the 1-based position.
    - Empty front/back become "Untitled".

    Raises:
        ImportFormatError: If a deck or card entry is not an object.
    """
    taken_deck_ids = {str(i) for i in existing_ids}
    decks: List[Deck] = []

    for idx, raw in enumerate(raw_decks):
        if not isinstance(raw, dict):
            raise ImportFormatError(f"Invalid deck at position {idx + 1}")

        raw_name = raw.get("name")
        if raw_name:
            name = _text(raw_name, "deck name") or f"{IMPORTED_DECK_NAME} {idx + 1}"
        else:
            name = IMPORTED_DECK_NAME

        raw_cards = raw.get("cards") or []
        taken_card_ids: Set[str] = set()
        cards = [
            _normalize_card(card, c_idx + 1, idx + 1, taken_card_ids)
            for c_idx, card in enumerate(raw_cards)
        ]

        decks.append(
            Deck(
                id=_claim_id(raw.get("id"), taken_deck_ids),
                name=name,
                description=_text(raw.get("description"), "deck description"),
                cards=cards,
            )
        )
    return decks


def parse_import(
    filename: str,
    text: str,
    preserve_grouping: bool = False,
    existing_ids: Iterable[Identifier] = (),
) -> ImportResult:
    """
    Parse and normalize an import payload; nothing is persisted here.

    Parameters:
        filename: Used only to pick the parser by extension.
        text: File contents.
        preserve_grouping: Keep source decks separate for JSON deck shapes.
        existing_ids: Deck ids already in the collection; imported decks never
            reuse them.

    Raises:
        UnsupportedFileTypeError: For extensions other than .json/.csv.
        ImportFormatError: For empty, unparsable or malformed payloads.
    """
    suffix = import_format(filename)
    if not text:
        raise ImportFormatError("File appears to be empty")

    if suffix == ".json":
        shape, raw_decks = parse_json_import(
            text.lstrip("\ufeff"), preserve_grouping=preserve_grouping
        )
        result = ImportResult(source_format="json", shape=shape)
    else:
        raw_decks = parse_csv_import(text)
        result = ImportResult(source_format="csv")

    result.decks = normalize_decks(raw_decks, existing_ids=existing_ids)
    logger.info(
        f"Parsed {filename}: {len(result.decks)} deck(s), {result.card_count} card(s)"
    )
    return result
