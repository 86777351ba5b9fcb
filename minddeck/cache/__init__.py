"""Local cache package for minddeck.

Only LocalCache is exported as the public API.
"""

from .local_cache import LocalCache

__all__ = ["LocalCache"]
