"""
Channel Session Manager.

Joins the relay channel of one game (or the lobby), keeps the ordered member list in sync with
presence, derives the local role from it and dispatches typed events to the registered handlers.
Presence is always retracted before the channel is released.
"""

import asyncio
import logging
from datetime import datetime, timezone
from types import TracebackType
from typing import Callable, Optional, Self

from pydantic import BaseModel

from src.api.events import PresenceMeta, RelayEvent, parse_event
from src.core.exceptions import InvalidEventError, RelayError
from src.core.shared_types import ChannelStatus, EventName, Role, role_for_index
from src.relay.protocol import Channel, Relay

logger = logging.getLogger(__name__)

EventHandler = Callable[[RelayEvent], None]
MembersHandler = Callable[[list[str]], None]


def ordered_members(presence_keys: list[str]) -> list[str]:
    """Every peer sorts the same set the same way, so no negotiation is needed."""
    return sorted(set(presence_keys))


def role_of(user_id: str, members: list[str]) -> Optional[Role]:
    """None while fewer than two players are present (or the user is not in the set)."""
    if len(members) < 2 or user_id not in members:
        return None
    return role_for_index(members.index(user_id))


class ChannelSession:
    def __init__(
        self,
        relay: Relay,
        topic: str,
        local_id: str,
        display_label: str,
        settle_delay_sec: float = 0.5,
        announce: bool = True,
    ) -> None:
        self.relay = relay
        self.topic = topic
        self.local_id = local_id
        self.display_label = display_label
        self.settle_delay_sec = settle_delay_sec
        self.announce = announce

        self.channel: Optional[Channel] = None
        self.status: Optional[ChannelStatus] = None
        self.degraded = False
        self.members: list[str] = []
        self.presence: dict[str, PresenceMeta] = {}

        self._handlers: dict[EventName, list[EventHandler]] = {}
        self._members_handlers: list[MembersHandler] = []
        self._tracked = False

    # --- state derived from presence ---
    @property
    def role(self) -> Optional[Role]:
        return role_of(self.local_id, self.members)

    @property
    def is_authority(self) -> bool:
        """First member in presence order hosts the clock."""
        return bool(self.members) and self.members[0] == self.local_id

    @property
    def is_open(self) -> bool:
        return self.channel is not None

    # --- registration ---
    def on(self, event: EventName, handler: EventHandler) -> None:
        first = event not in self._handlers
        self._handlers.setdefault(event, []).append(handler)
        if first and self.channel is not None:
            self.channel.on_broadcast(event.value, self._dispatcher(event))

    def on_members_change(self, handler: MembersHandler) -> None:
        self._members_handlers.append(handler)

    # --- lifecycle ---
    async def open(self) -> None:
        if self.channel is not None:
            return
        channel = self.relay.channel(self.topic, self.local_id)
        self.channel = channel
        channel.on_presence_sync(self._on_presence_sync)
        for event in self._handlers:
            channel.on_broadcast(event.value, self._dispatcher(event))
        try:
            await channel.subscribe(self._on_status)
        except RelayError as exc:
            self._mark_degraded(f"subscribe failed: {exc}")

    async def close(self) -> None:
        """Retract presence, then release the channel. Both always run."""
        channel = self.channel
        if channel is None:
            return
        try:
            if self._tracked:
                await channel.untrack()
        except RelayError as exc:
            logger.warning("Could not retract presence on %s: %s", self.topic, exc)
        finally:
            self._tracked = False
            self.channel = None
            await self.relay.remove_channel(channel)
            logger.debug("Left %s", self.topic)

    async def __aenter__(self) -> Self:
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        await self.close()

    async def send(self, event: EventName, message: BaseModel) -> bool:
        """Fire-and-forget broadcast. Failures are logged and reported as False, never raised."""
        if self.channel is None:
            logger.warning("Not sending %s: channel %s is closed", event, self.topic)
            return False
        payload = message.model_dump(by_alias=True, mode="json")
        try:
            ok = await self.channel.send(event.value, payload)
        except RelayError as exc:
            self._mark_degraded(f"send {event} failed: {exc}")
            return False
        if not ok:
            logger.warning("Relay did not accept %s on %s", event, self.topic)
        return ok

    # --- relay callbacks ---
    async def _on_status(self, status: ChannelStatus) -> None:
        self.status = status
        if status in (ChannelStatus.CHANNEL_ERROR, ChannelStatus.TIMED_OUT):
            self._mark_degraded(f"status {status}")
            return
        if status != ChannelStatus.SUBSCRIBED:
            return
        self.degraded = False
        # give the relay time to register the subscription before presence fans out
        if self.settle_delay_sec > 0:
            await asyncio.sleep(self.settle_delay_sec)
        if self.channel is None:
            return
        if self.announce:
            meta = PresenceMeta(
                display_label=self.display_label,
                joined_at=datetime.now(timezone.utc).isoformat(),
            )
            try:
                await self.channel.track(meta.model_dump(by_alias=True))
                self._tracked = True
            except RelayError as exc:
                self._mark_degraded(f"track failed: {exc}")
        self._on_presence_sync()

    def _on_presence_sync(self) -> None:
        if self.channel is None:
            return
        state = self.channel.presence_state()
        self.presence = {}
        for key, metas in state.items():
            if not metas:
                continue
            try:
                self.presence[key] = PresenceMeta.model_validate(metas[0])
            except ValueError:
                self.presence[key] = PresenceMeta(display_label=key, joined_at="")
        members = ordered_members(list(self.presence))
        if members == self.members:
            return
        self.members = members
        logger.debug("Members of %s: %s", self.topic, members)
        for handler in list(self._members_handlers):
            handler(members)

    def _dispatcher(self, event: EventName) -> Callable[[dict], None]:
        def _dispatch(payload: dict) -> None:
            try:
                parsed = parse_event(event.value, payload)
            except InvalidEventError as exc:
                logger.warning("Ignoring %s on %s: %s", event, self.topic, exc)
                return
            if parsed is None:
                return
            for handler in list(self._handlers.get(event, [])):
                handler(parsed)

        return _dispatch

    def _mark_degraded(self, reason: str) -> None:
        self.degraded = True
        logger.warning("Channel %s degraded (%s)", self.topic, reason)
