"""
Click disambiguation - tells a single press from a double press.

A press arms a timer for its target. A second press on the same target
before the timer fires cancels it and counts as a double press; otherwise the
timer runs the single-press action. Targets are keyed by stable strings
(an ISO date, or TargetRef.key), never by widget identity.
"""

import asyncio
import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)


class ClickDisambiguator:
    """Per-target debounced press coalescing."""

    def __init__(self, pending: dict[str, asyncio.TimerHandle], delay_seconds: float):
        """
        Args:
            pending: Timer map owned by the panel state
            delay_seconds: Debounce window D
        """
        self.pending = pending
        self.delay_seconds = delay_seconds

    def press(self, key: str, on_single: Callable[[], None]) -> bool:
        """
        Register a raw press on `key`.

        Returns:
            True if this press completed a double press (the caller performs
            the activate gesture now). False if a timer was armed; `on_single`
            runs when it fires.
        """
        handle = self.pending.pop(key, None)
        if handle is not None:
            handle.cancel()
            logger.debug(f"Double press on {key}")
            return True

        loop = asyncio.get_running_loop()
        self.pending[key] = loop.call_later(self.delay_seconds, self._fire, key, on_single)
        return False

    def _fire(self, key: str, on_single: Callable[[], None]) -> None:
        self.pending.pop(key, None)
        logger.debug(f"Single press on {key}")
        on_single()

    def cancel_all(self) -> None:
        for handle in self.pending.values():
            handle.cancel()
        self.pending.clear()
