"""
Time-bounded undo offers for destructive deck operations.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

from .constants import DEFAULT_UNDO_TIMEOUT

logger = logging.getLogger(__name__)

UndoAction = Callable[[], Awaitable[None]]
Chooser = Callable[["UndoOffer"], Awaitable[bool]]


class UndoOffer:
    """
    A captured "Undo" action that can be taken at most once, within a window.

    The action closes over the state captured before the destructive change
    and replays it through the store. Once the window has elapsed, the offer
    has been declined, or the undo has run, the action reference is dropped.
    """

    def __init__(
        self,
        message: str,
        action: UndoAction,
        timeout: float = DEFAULT_UNDO_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.message = message
        self.timeout = timeout
        self._clock = clock
        self._action: Optional[UndoAction] = action
        self.expires_at = clock() + timeout
        self.used = False

    def __repr__(self) -> str:
        return f"UndoOffer({self.message!r}, active={self.active})"

    @property
    def remaining(self) -> float:
        """Seconds left in the undo window (never negative)."""
        return max(0.0, self.expires_at - self._clock())

    @property
    def active(self) -> bool:
        if self._action is not None and self.remaining <= 0:
            self.expire()
        return self._action is not None

    def expire(self) -> None:
        """Close the window; the captured action becomes unreachable."""
        if self._action is not None:
            logger.debug(f"Undo window closed: {self.message}")
        self._action = None

    async def undo(self) -> bool:
        """
        Run the captured action if the window is still open.

        Returns:
            bool: True if the action ran, False if the offer had expired or
                was already used.
        """
        if not self.active:
            logger.info(f"Undo requested after the window closed: {self.message}")
            return False
        action = self._action
        self._action = None
        self.used = True
        await action()
        logger.info(f"Undo applied: {self.message}")
        return True


async def await_choice(offer: UndoOffer, chooser: Chooser) -> bool:
    """
    Ask whether to undo, suspending until an answer or until the window closes.

    The chooser is an awaitable request/response call that returns True to
    undo. A timeout or a False answer means no selection was made; the offer
    is expired and False is returned.

    Returns:
        bool: True if the undo ran.
    """
    if not offer.active:
        return False
    try:
        wants_undo = await asyncio.wait_for(chooser(offer), timeout=offer.remaining)
    except asyncio.TimeoutError:
        offer.expire()
        return False
    if not wants_undo:
        offer.expire()
        return False
    return await offer.undo()
