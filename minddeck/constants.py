"""
Static MindDeck constants.

No runtime configuration or path defaults here - see config.py for those.
"""

# Cache key holding the JSON-serialized collection.
STORAGE_KEY: str = "wwwf_decks_v1"

# Seconds an undo offer stays open after a destructive operation.
DEFAULT_UNDO_TIMEOUT: float = 6.0

# Default local cache quota, in bytes of serialized collection.
DEFAULT_STORAGE_QUOTA_BYTES: int = 5 * 1024 * 1024

DEFAULT_REQUEST_TIMEOUT: float = 5.0

IMPORTED_DECK_NAME: str = "Imported Deck"
UNTITLED_CARD_TEXT: str = "Untitled"
UNTITLED_DECK_NAME: str = "Untitled Deck"

CSV_HEADER = ("deck_name", "deck_description", "front", "back")
CSV_HEADER_MARKERS = frozenset({"deck_name", "front", "question"})

SUPPORTED_IMPORT_SUFFIXES = (".json", ".csv")

DECKS_ENDPOINT: str = "/api/decks"
HEALTH_ENDPOINT: str = "/api/health"
