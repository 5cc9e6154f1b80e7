"""
Per-request completion signal.

Anything that must be released when a request ends subscribes to the
request's signal instead of listening for transport events.
"""

import asyncio
import logging
from typing import Callable, List

from .di import injectable

logger = logging.getLogger("harrier.signals")

Callback = Callable[[], None]


@injectable()
class RequestSignal:
    """
    One-shot done signal, one instance per request.

    Example:
        signal.subscribe(injector.destroy)
        ...
        signal.emit()        # calls injector.destroy() once
        await signal.wait()  # returns immediately from now on
    """

    __slots__ = ("_subscribers", "_event")

    def __init__(self):
        self._subscribers: List[Callback] = []
        self._event = asyncio.Event()

    @property
    def done(self) -> bool:
        return self._event.is_set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, callback: Callback) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Callback) -> None:
        try:
            self._subscribers.remove(callback)
        except ValueError:
            pass

    def emit(self) -> None:
        """Mark the signal done and notify subscribers; later calls are no-ops."""
        if self._event.is_set():
            return
        self._event.set()
        for callback in list(self._subscribers):
            try:
                callback()
            except Exception:
                logger.error("RequestSignal subscriber failed", exc_info=True)

    def clear(self) -> None:
        """Drop all subscribers."""
        self._subscribers.clear()

    async def wait(self) -> None:
        await self._event.wait()
