"""
Observable state container.

Owners expose plain attributes and call ``_notify(field)`` after changing them.
Callbacks that may originate off the owner's thread go through ``_dispatch``,
which hops onto the owner's event loop when one is bound.
"""

import asyncio
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class Observable:
    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._subscribers: list[Callable[[str], None]] = []

    def subscribe(self, callback: Callable[[str], None]) -> Callable[[], None]:
        """Call ``callback(field)`` on every change. Returns an unsubscribe function."""
        self._subscribers.append(callback)
        def unsubscribe() -> None:
            try:
                self._subscribers.remove(callback)
            except ValueError:
                pass
        return unsubscribe

    def _notify(self, field: str) -> None:
        for callback in list(self._subscribers):
            callback(field)

    def _dispatch(self, fn: Callable[..., Any], *args: Any) -> None:
        if self._loop is None:
            fn(*args)
            return
        self._loop.call_soon_threadsafe(fn, *args)
