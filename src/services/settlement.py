"""
Settlement Coordinator.

The first peer to see the game end broadcasts a single game_over. Every peer, the sender
included (it never receives its own broadcast), settles its own side exactly once, guarded by
markers in local durable storage. Backend failures are logged and not retried: once the game is
over its outcome stands.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from src.api.events import GameOverEvent, RelayEvent
from src.core.exceptions import RepositoryError, RPCError
from src.core.shared_types import EventName, GameResult, Role
from src.db.repository import MarkerStore, company_key, payout_key
from src.services.backend import BackendRPC
from src.services.session import ChannelSession

logger = logging.getLogger(__name__)

OutcomeHandler = Callable[[GameOverEvent], None]


def winner_payout(stake: float, commission_rate: float) -> float:
    """Both stakes minus the platform's share."""
    return round(stake * 2 * (1 - commission_rate), 2)


def company_commission(stake: float, commission_rate: float) -> float:
    return round(stake * 2 * commission_rate, 2)


class SettlementCoordinator:
    def __init__(
        self,
        session: ChannelSession,
        backend: BackendRPC,
        markers: MarkerStore,
        game_id: str,
        stake: float,
        commission_rate: float = 0.2,
    ) -> None:
        self.session = session
        self.backend = backend
        self.markers = markers
        self.game_id = game_id
        self.stake = stake
        self.commission_rate = commission_rate

        self.outcome: Optional[GameOverEvent] = None
        self._declared = False
        self._outcome_handlers: list[OutcomeHandler] = []
        self._tasks: set[asyncio.Task[None]] = set()

        session.on(EventName.GAME_OVER, self._on_game_over_event)

    @property
    def local_id(self) -> str:
        return self.session.local_id

    def on_outcome(self, handler: OutcomeHandler) -> None:
        self._outcome_handlers.append(handler)

    async def declare(self, winner_id: str) -> bool:
        """
        Announce the end of the game. Only the first call (or none, if a game_over
        already arrived from the other peer) does anything.
        """
        if self._declared:
            return False
        self._declared = True
        event = GameOverEvent(game_id=self.game_id, winner_id=winner_id, stake=self.stake)
        logger.info("Game %s over, winner %s", self.game_id, winner_id)
        await self.session.send(EventName.GAME_OVER, event)
        self.handle_game_over(event)
        return True

    def handle_game_over(self, event: GameOverEvent) -> None:
        """Synchronous state update; the backend calls run as a follow-up task."""
        if event.game_id != self.game_id:
            logger.warning(
                "Ignoring game_over for %s in game %s", event.game_id, self.game_id
            )
            return
        # a peer that learned the result from the other side must not announce another one
        self._declared = True
        if self.outcome is not None:
            return
        self.outcome = event
        for handler in list(self._outcome_handlers):
            handler(event)
        if self.session.role == Role.SPECTATOR:
            logger.debug("Spectator %s does not settle %s", self.local_id, self.game_id)
            return
        self._schedule(self.settle(event))

    async def settle(self, event: GameOverEvent) -> None:
        """Apply the local side of the outcome to the wallet and stats, at most once per (game, user)."""
        if not self._claim(payout_key(event.game_id, self.local_id)):
            logger.debug("Game %s already settled for %s", event.game_id, self.local_id)
            return

        if event.winner_id != self.local_id:
            await self._best_effort(
                self.backend.increment_stat(GameResult.LOSS, event.stake), "loss stat"
            )
            return

        await self._best_effort(
            self.backend.credit_balance(winner_payout(event.stake, self.commission_rate)),
            "winner payout",
        )
        await self._best_effort(
            self.backend.increment_stat(GameResult.WIN, event.stake), "win stat"
        )
        if self._claim(company_key(event.game_id)):
            await self._best_effort(
                self.backend.record_company_earning(
                    company_commission(event.stake, self.commission_rate), event.game_id
                ),
                "company commission",
            )

    async def drain(self) -> None:
        """Wait for pending settlement calls."""
        while self._tasks:
            pending = list(self._tasks)
            await asyncio.gather(*pending)
            self._tasks.difference_update(pending)

    # -- Internal helpers --
    def _on_game_over_event(self, event: RelayEvent) -> None:
        if isinstance(event, GameOverEvent):
            self.handle_game_over(event)

    def _schedule(self, coro: Awaitable[None]) -> None:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _claim(self, key: str) -> bool:
        try:
            return self.markers.claim(key)
        except RepositoryError:
            logger.exception("Could not record marker %s, skipping", key)
            return False

    async def _best_effort(self, call: Awaitable[None], what: str) -> None:
        try:
            await call
        except RPCError:
            logger.exception("Settlement of game %s: %s failed", self.game_id, what)
