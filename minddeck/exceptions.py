from typing import Optional


class MindDeckError(Exception):
    """Base exception for all MindDeck errors."""

    def __init__(
        self, message: str, original_exception: Optional[Exception] = None
    ):
        super().__init__(message)
        self.original_exception = original_exception


class CacheError(MindDeckError):
    """Base exception for local cache errors."""

    pass


class CacheConnectionError(CacheError):
    """Raised for errors opening the local cache."""

    pass


class CacheOperationError(CacheError):
    """Raised when a read or write against the local cache fails."""

    pass


class StorageQuotaError(CacheError):
    """Raised when a cache write would exceed the configured quota."""

    pass


class RemoteError(MindDeckError):
    """Raised for network failures and non-2xx answers from the backend."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        original_exception: Optional[Exception] = None,
    ):
        super().__init__(message, original_exception=original_exception)
        self.status_code = status_code


class DeckNotFoundError(MindDeckError):
    """Raised when a specified deck is not found."""

    pass


class CardNotFoundError(MindDeckError):
    """Raised when a card id does not exist in its deck."""

    pass


class InputValidationError(MindDeckError):
    """Raised when a required user-supplied field is missing or empty."""

    pass


class ImportFormatError(MindDeckError):
    """Raised when an import payload cannot be parsed or normalized."""

    pass


class UnsupportedFileTypeError(ImportFormatError):
    """Raised for import files that are neither JSON nor CSV."""

    pass
