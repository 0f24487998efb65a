"""
Contract for the relay: named channels offering presence tracking and fire-and-forget broadcast.

Delivery is at-most-once and the sender never receives its own broadcast.
"""

from typing import Any, Awaitable, Callable, Protocol

from src.core.shared_types import ChannelStatus

PresenceState = dict[str, list[dict[str, Any]]]
BroadcastHandler = Callable[[dict[str, Any]], None]
PresenceHandler = Callable[[], None]
StatusHandler = Callable[[ChannelStatus], Awaitable[None]]


class Channel(Protocol):
    """One subscription to a topic, keyed in presence by the local user id."""

    topic: str
    presence_key: str

    def on_presence_sync(self, handler: PresenceHandler) -> None:
        """Register a callback fired whenever the presence set changes."""
        ...

    def on_broadcast(self, event: str, handler: BroadcastHandler) -> None:
        """Register a callback for broadcasts with the given event name."""
        ...

    async def subscribe(self, on_status: StatusHandler) -> None:
        """Start receiving. The status callback reports SUBSCRIBED or an error status."""
        ...

    async def track(self, meta: dict[str, Any]) -> None:
        """Announce local presence with the given metadata."""
        ...

    async def untrack(self) -> None:
        """Retract local presence."""
        ...

    async def send(self, event: str, payload: dict[str, Any]) -> bool:
        """Broadcast to every other subscriber. False if the relay did not take the message."""
        ...

    def presence_state(self) -> PresenceState:
        """Snapshot: presence key -> list of tracked metadata."""
        ...


class Relay(Protocol):
    def channel(self, topic: str, presence_key: str) -> Channel: ...

    async def remove_channel(self, channel: Channel) -> None: ...
