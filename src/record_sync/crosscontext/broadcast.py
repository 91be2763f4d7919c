"""In-process broadcast channels between sibling contexts."""

from __future__ import annotations

import asyncio
import copy
import logging
from typing import Any

from record_sync.crosscontext.channel import NotificationChannel, NotificationHandler
from record_sync.crosscontext.message import ChangeNotification

logger = logging.getLogger(__name__)


class BroadcastHub:
    """
    Named broadcast channels shared by every context of one origin.

    A message published on a channel name reaches every open channel of
    that name, including the publisher's. Payloads are deep-copied per
    receiver so no two contexts share mutable state.

    Usage:
        hub = BroadcastHub()
        tab_a = hub.open("record-sync:orders")
        tab_b = hub.open("record-sync:orders")
    """

    def __init__(self) -> None:
        self._channels: dict[str, list[BroadcastNotificationChannel]] = {}

    def open(self, name: str) -> BroadcastNotificationChannel:
        channel = BroadcastNotificationChannel(self, name)
        self._channels.setdefault(name, []).append(channel)
        return channel

    def subscriber_count(self, name: str) -> int:
        return len(self._channels.get(name, []))

    def _detach(self, channel: BroadcastNotificationChannel) -> None:
        members = self._channels.get(channel.name, [])
        self._channels[channel.name] = [c for c in members if c is not channel]
        if not self._channels[channel.name]:
            del self._channels[channel.name]

    async def _deliver(self, name: str, message: dict[str, Any]) -> None:
        receivers = list(self._channels.get(name, []))
        await asyncio.gather(*(c._receive(copy.deepcopy(message)) for c in receivers))


class BroadcastNotificationChannel(NotificationChannel):
    """One context's handle on a named hub channel."""

    def __init__(self, hub: BroadcastHub, name: str) -> None:
        self._hub = hub
        self._name = name
        self._handlers: list[NotificationHandler] = []
        self._closed = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def closed(self) -> bool:
        return self._closed

    async def publish(self, notification: ChangeNotification) -> None:
        if self._closed:
            return
        await self._hub._deliver(self._name, notification.to_dict())

    def subscribe(self, handler: NotificationHandler) -> None:
        self._handlers.append(handler)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._handlers.clear()
        self._hub._detach(self)

    async def _receive(self, message: dict[str, Any]) -> None:
        notification = ChangeNotification.from_dict(message)
        if notification is None:
            logger.debug("Dropping malformed broadcast message on %s", self._name)
            return
        for handler in list(self._handlers):
            try:
                result = handler(notification)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.warning("Broadcast handler error on %s: %s", self._name, e)
