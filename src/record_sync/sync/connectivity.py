"""Network connectivity signal used to trigger a sync pass on reconnect."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

OnlineHandler = Callable[[], Awaitable[None] | None]


class ConnectivityMonitor:
    """Tracks online/offline state and notifies listeners on reconnect.

    The host application reports transitions via :meth:`set_online`;
    listeners fire only on an offline -> online transition.
    """

    def __init__(self, online: bool = True) -> None:
        self._online = online
        self._handlers: list[OnlineHandler] = []

    @property
    def is_online(self) -> bool:
        return self._online

    def on_online(self, handler: OnlineHandler) -> None:
        self._handlers.append(handler)

    def off_online(self, handler: OnlineHandler) -> None:
        self._handlers = [h for h in self._handlers if h != handler]

    async def set_online(self, online: bool) -> None:
        was_online = self._online
        self._online = online
        if online and not was_online:
            await self._notify()

    async def _notify(self) -> None:
        # Copy so handlers may unregister while being notified
        for handler in list(self._handlers):
            try:
                result = handler()
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.warning("Reconnect handler error: %s", e)
