"""
Single-slot debounce timer on the asyncio event loop.
"""
from __future__ import annotations

import asyncio
from typing import Callable, Optional


class DebounceTimer:
    """
    Calls `callback` once, `delay_sec` after the most recent arm().

    Re-arming cancels the pending fire, so a burst of arm() calls collapses
    into a single callback after the burst goes quiet. Must be armed from a
    running event loop.
    """

    def __init__(self, delay_sec: float, callback: Callable[[], None]):
        self.delay_sec = delay_sec
        self._callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None

    def arm(self) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay_sec, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def _fire(self) -> None:
        self._handle = None
        self._callback()
