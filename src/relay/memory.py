"""
In-process relay.

Several clients in the same event loop share one InMemoryRelay: broadcasts go to every other
subscriber of the topic, presence changes fan out as sync notifications. Used for local play
and to drive multi-peer scenarios in tests. Message loss can be simulated with `drop`.
"""

import logging
from collections import defaultdict
from copy import deepcopy
from typing import Any, Callable, Optional

from src.core.shared_types import ChannelStatus
from src.relay.protocol import (
    BroadcastHandler,
    PresenceHandler,
    PresenceState,
    StatusHandler,
)

logger = logging.getLogger(__name__)

# (topic, event, payload) -> True to lose the message
DropPredicate = Callable[[str, str, dict[str, Any]], bool]


class InMemoryChannel:
    def __init__(self, relay: "InMemoryRelay", topic: str, presence_key: str) -> None:
        self.relay = relay
        self.topic = topic
        self.presence_key = presence_key
        self.subscribed = False
        self._presence_handlers: list[PresenceHandler] = []
        self._broadcast_handlers: dict[str, list[BroadcastHandler]] = defaultdict(list)

    def on_presence_sync(self, handler: PresenceHandler) -> None:
        self._presence_handlers.append(handler)

    def on_broadcast(self, event: str, handler: BroadcastHandler) -> None:
        self._broadcast_handlers[event].append(handler)

    async def subscribe(self, on_status: StatusHandler) -> None:
        if self.relay.fail_subscribe:
            await on_status(ChannelStatus.CHANNEL_ERROR)
            return
        self.subscribed = True
        self.relay._attach(self)
        await on_status(ChannelStatus.SUBSCRIBED)

    async def track(self, meta: dict[str, Any]) -> None:
        self.relay._set_presence(self.topic, self.presence_key, meta)

    async def untrack(self) -> None:
        self.relay._clear_presence(self.topic, self.presence_key)

    async def send(self, event: str, payload: dict[str, Any]) -> bool:
        if not self.subscribed:
            return False
        self.relay._publish(self, event, payload)
        return True

    def presence_state(self) -> PresenceState:
        return deepcopy(self.relay._presence[self.topic])

    # -- called by the relay --
    def _deliver(self, event: str, payload: dict[str, Any]) -> None:
        for handler in list(self._broadcast_handlers.get(event, [])):
            handler(deepcopy(payload))

    def _sync(self) -> None:
        for handler in list(self._presence_handlers):
            handler()


class InMemoryRelay:
    def __init__(self, drop: Optional[DropPredicate] = None) -> None:
        self.drop = drop
        self.fail_subscribe = False
        self.sent: list[tuple[str, str, dict[str, Any]]] = []
        self._channels: dict[str, list[InMemoryChannel]] = defaultdict(list)
        self._presence: dict[str, PresenceState] = defaultdict(dict)

    def channel(self, topic: str, presence_key: str) -> InMemoryChannel:
        return InMemoryChannel(self, topic, presence_key)

    async def remove_channel(self, channel: InMemoryChannel) -> None:
        subscribers = self._channels.get(channel.topic, [])
        if channel in subscribers:
            subscribers.remove(channel)
        channel.subscribed = False
        # the relay drops presence of a removed channel even if it was never untracked
        self._clear_presence(channel.topic, channel.presence_key)

    # -- internals --
    def _attach(self, channel: InMemoryChannel) -> None:
        self._channels[channel.topic].append(channel)

    def _set_presence(self, topic: str, key: str, meta: dict[str, Any]) -> None:
        self._presence[topic][key] = [dict(meta)]
        self._fan_out_sync(topic)

    def _clear_presence(self, topic: str, key: str) -> None:
        if self._presence[topic].pop(key, None) is not None:
            self._fan_out_sync(topic)

    def _fan_out_sync(self, topic: str) -> None:
        for channel in list(self._channels.get(topic, [])):
            channel._sync()

    def _publish(
        self, sender: InMemoryChannel, event: str, payload: dict[str, Any]
    ) -> None:
        self.sent.append((sender.topic, event, deepcopy(payload)))
        if self.drop is not None and self.drop(sender.topic, event, payload):
            logger.debug("Dropping %s on %s", event, sender.topic)
            return
        for channel in list(self._channels.get(sender.topic, [])):
            if channel is sender:
                continue
            channel._deliver(event, payload)
