"""
Lobby: who is online, invites with a stake, and the accept handshake.

Both sides debit their own stake once the invite is accepted: the acceptor right after sending
the accept (it does not receive its own broadcast), the inviter when the accept arrives.
Each debit is guarded by a (game, user) marker so a redelivered accept never debits twice,
and a side whose debit is refused does not enter the match.
"""

import asyncio
import logging
from types import TracebackType
from typing import Awaitable, Callable, Optional, Self
from uuid import uuid4

from src.api.events import AcceptEvent, InviteEvent, RelayEvent
from src.core.config import Settings, get_settings
from src.core.exceptions import InviteRejectedError, RepositoryError, RPCError
from src.core.models import MatchTicket, OnlineUser, TopPlayer
from src.core.shared_types import EventName
from src.db.repository import MarkerStore, debit_key
from src.relay.protocol import Relay
from src.services.backend import BackendRPC
from src.services.session import ChannelSession

logger = logging.getLogger(__name__)

LOBBY_TOPIC = "lobby"

MatchReadyHandler = Callable[[MatchTicket], None]
Notifier = Callable[[str], None]


def _log_notice(message: str) -> None:
    logger.info("notice: %s", message)


class Lobby:
    def __init__(
        self,
        relay: Relay,
        backend: BackendRPC,
        markers: MarkerStore,
        local_id: str,
        display_label: str,
        on_match_ready: Optional[MatchReadyHandler] = None,
        notify: Notifier = _log_notice,
        settings: Optional[Settings] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.backend = backend
        self.markers = markers
        self.on_match_ready = on_match_ready
        self.notify = notify
        self.session = ChannelSession(
            relay,
            topic=LOBBY_TOPIC,
            local_id=local_id,
            display_label=display_label,
            settle_delay_sec=self.settings.relay_settle_delay_sec,
        )
        self.balance = 0.0
        self.received_invites: list[InviteEvent] = []
        self.sent_invites: list[InviteEvent] = []
        self._ready_games: set[str] = set()
        self._debits_in_flight: set[str] = set()
        self._tasks: set[asyncio.Task[None]] = set()

        self.session.on(EventName.INVITE, self._on_invite)
        self.session.on(EventName.ACCEPT, self._on_accept)

    @property
    def local_id(self) -> str:
        return self.session.local_id

    # --- lifecycle ---
    async def open(self) -> None:
        await self.session.open()
        await self.refresh_balance()

    async def close(self) -> None:
        try:
            await self.drain()
        finally:
            await self.session.close()

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

    async def drain(self) -> None:
        while self._tasks:
            pending = list(self._tasks)
            await asyncio.gather(*pending)
            self._tasks.difference_update(pending)

    # --- queries ---
    def online_users(self) -> list[OnlineUser]:
        """Everyone present in the lobby except yourself."""
        return [
            OnlineUser(
                user_id=user_id,
                display_label=meta.display_label,
                joined_at=meta.joined_at,
            )
            for user_id, meta in sorted(self.session.presence.items())
            if user_id != self.local_id
        ]

    async def refresh_balance(self) -> float:
        try:
            self.balance = await self.backend.get_balance(self.local_id)
        except RPCError as exc:
            logger.warning("Could not load balance for %s: %s", self.local_id, exc)
        return self.balance

    async def leaderboard(self, limit: Optional[int] = None) -> list[TopPlayer]:
        """Top players, each flagged online when present in the lobby."""
        try:
            players = await self.backend.get_top_players(
                limit or self.settings.leaderboard_limit
            )
        except RPCError as exc:
            logger.warning("Could not load leaderboard: %s", exc)
            return []
        online = set(self.session.members)
        for player in players:
            player.online = player.user_id in online
        return players

    # --- handshake ---
    async def send_invite(self, to: str, stake: float) -> Optional[InviteEvent]:
        """Invite another online user. Returns None when the relay did not take the message."""
        if to == self.local_id:
            raise InviteRejectedError("You cannot invite yourself")
        if stake <= 0:
            raise InviteRejectedError("Enter a valid stake amount")
        if self.balance < stake:
            raise InviteRejectedError("Insufficient balance for this stake")

        invite = InviteEvent(
            to=to,
            from_=self.local_id,
            from_label=self.session.display_label,
            game_id=str(uuid4()),
            stake=stake,
        )
        if not await self.session.send(EventName.INVITE, invite):
            self.notify("Failed to send invite")
            return None
        self.sent_invites.insert(0, invite)
        return invite

    async def accept_invite(self, invite: InviteEvent) -> Optional[MatchTicket]:
        if invite.to != self.local_id:
            raise InviteRejectedError("This invite is addressed to someone else")
        if self.balance < invite.stake:
            raise InviteRejectedError("Your balance is too low to accept this match")

        accept = AcceptEvent(
            game_id=invite.game_id,
            from_=invite.from_,
            to=self.local_id,
            stake=invite.stake,
        )
        if not await self.session.send(EventName.ACCEPT, accept):
            self.notify("Failed to accept invite")
            return None
        self.received_invites = [
            inv for inv in self.received_invites if inv.game_id != invite.game_id
        ]
        # the accept is not echoed back to us, so complete our side here
        if not await self._debit_once(accept.game_id, accept.stake):
            return None
        return self._match_ready(accept, opponent_id=accept.from_)

    # --- relay handlers ---
    def _on_invite(self, event: RelayEvent) -> None:
        if not isinstance(event, InviteEvent) or event.to != self.local_id:
            return
        if any(inv.game_id == event.game_id for inv in self.received_invites):
            return
        self.received_invites.insert(0, event)

    def _on_accept(self, event: RelayEvent) -> None:
        if not isinstance(event, AcceptEvent):
            return
        if self.local_id not in (event.from_, event.to):
            return
        opponent_id = event.to if event.from_ == self.local_id else event.from_
        self._schedule(self._complete_handshake(event, opponent_id))

    # -- Internal helpers --
    async def _complete_handshake(self, event: AcceptEvent, opponent_id: str) -> None:
        self.sent_invites = [
            inv for inv in self.sent_invites if inv.game_id != event.game_id
        ]
        if await self._debit_once(event.game_id, event.stake):
            self._match_ready(event, opponent_id)

    async def _debit_once(self, game_id: str, stake: float) -> bool:
        """
        Take the local stake for a game. True once the stake is paid, now or earlier.

        The marker is only written after the backend confirmed the debit, so a refused or
        failed debit can be tried again for the same game.
        """
        if game_id in self._debits_in_flight:
            logger.debug("Debit for %s already in progress", game_id)
            return False
        key = debit_key(game_id, self.local_id)
        try:
            if self.markers.has(key):
                logger.debug("Stake for %s already debited", game_id)
                return True
        except RepositoryError:
            logger.exception("Could not read marker %s", key)
            return False

        self._debits_in_flight.add(game_id)
        try:
            try:
                debited = await self.backend.debit_balance(stake)
            except RPCError as exc:
                logger.warning("Debit for game %s failed: %s", game_id, exc)
                debited = False
            if not debited:
                self.notify("Balance debit failed. Please check your balance.")
                return False
            self.balance = max(0.0, round(self.balance - stake, 2))
            try:
                self.markers.claim(key)
            except RepositoryError:
                logger.exception("Stake for %s debited but marker %s not stored", game_id, key)
            return True
        finally:
            self._debits_in_flight.discard(game_id)

    def _match_ready(self, event: AcceptEvent, opponent_id: str) -> Optional[MatchTicket]:
        if event.game_id in self._ready_games:
            return None
        self._ready_games.add(event.game_id)
        ticket = MatchTicket(
            game_id=event.game_id, stake=event.stake, opponent_id=opponent_id
        )
        if self.on_match_ready is not None:
            self.on_match_ready(ticket)
        return ticket

    def _schedule(self, coro: Awaitable[None]) -> None:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
