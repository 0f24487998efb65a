"""
Game room: one player's view of a match.

Orchestrates the channel session, the local Game, the clock authority and the settlement
coordinator. Relay handlers only update local state; anything that talks to the backend runs
as a follow-up task.
"""

import inspect
import logging
from types import TracebackType
from typing import Awaitable, Callable, Optional, Self, Union

from src.api.events import Clocks, GameOverEvent, MoveEvent, RelayEvent, TickEvent
from src.checkers.board import Board
from src.checkers.clocks import ClockPair
from src.checkers.game import Game, MoveOutcome
from src.checkers.pieces import Color
from src.checkers.rules import GameRules
from src.checkers.square import Square
from src.core.config import Settings, get_settings
from src.core.exceptions import InvalidBoardError
from src.core.shared_types import EventName, Role
from src.db.repository import MarkerStore
from src.relay.protocol import Relay
from src.services.backend import BackendRPC
from src.services.clock import ClockAuthority
from src.services.session import ChannelSession
from src.services.settlement import SettlementCoordinator

logger = logging.getLogger(__name__)

ConfirmForfeit = Callable[[], Union[bool, Awaitable[bool]]]

ROLE_COLORS: dict[Role, Color] = {Role.BLACK: Color.BLACK, Role.RED: Color.RED}


def game_topic(game_id: str) -> str:
    return f"game-{game_id}"


class GameRoom:
    def __init__(
        self,
        relay: Relay,
        backend: BackendRPC,
        markers: MarkerStore,
        game_id: str,
        local_id: str,
        display_label: str,
        stake: float,
        rules: Optional[GameRules] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.game_id = game_id
        self.stake = stake
        self.game = Game.new_game(rules or self.settings.game_rules())
        self.session = ChannelSession(
            relay,
            topic=game_topic(game_id),
            local_id=local_id,
            display_label=display_label,
            settle_delay_sec=self.settings.relay_settle_delay_sec,
        )
        self.settlement = SettlementCoordinator(
            self.session,
            backend,
            markers,
            game_id=game_id,
            stake=stake,
            commission_rate=self.settings.commission_rate,
        )
        self.clock = ClockAuthority(
            self.session,
            self.game,
            on_expired=self._on_clock_expired,
            interval_sec=self.settings.tick_interval_sec,
        )

        self.session.on(EventName.MOVE, self._on_move)
        self.session.on(EventName.TICK, self._on_tick)
        self.settlement.on_outcome(self._on_outcome)

    # --- views ---
    @property
    def local_id(self) -> str:
        return self.session.local_id

    @property
    def members(self) -> list[str]:
        return self.session.members

    @property
    def role(self) -> Optional[Role]:
        return self.session.role

    @property
    def color(self) -> Optional[Color]:
        """The color the local user plays; None for spectators or while waiting for an opponent."""
        role = self.role
        return ROLE_COLORS.get(role) if role else None

    @property
    def opponent_id(self) -> Optional[str]:
        color = self.color
        if color is None:
            return None
        return self.player_id(color.opponent)

    @property
    def winner_id(self) -> Optional[str]:
        outcome = self.settlement.outcome
        return outcome.winner_id if outcome else None

    def player_id(self, color: Color) -> Optional[str]:
        index = 0 if color == Color.BLACK else 1
        if len(self.members) <= index:
            return None
        return self.members[index]

    def color_of(self, user_id: str) -> Optional[Color]:
        for color in Color:
            if self.player_id(color) == user_id:
                return color
        return None

    # --- lifecycle ---
    async def start(self) -> None:
        await self.session.open()
        self.clock.start()

    async def leave(self, confirm_forfeit: Optional[ConfirmForfeit] = None) -> bool:
        """
        Leave the room. While the game is still running and the opponent is still here,
        the user may forfeit (after confirming): the opponent is declared winner.
        Returns True when a forfeit was sent.
        """
        forfeited = False
        try:
            opponent = self.opponent_id
            if (
                confirm_forfeit is not None
                and not self.game.is_over
                and opponent is not None
                and opponent in self.members
            ):
                confirmed = confirm_forfeit()
                if inspect.isawaitable(confirmed):
                    confirmed = await confirmed
                if confirmed:
                    forfeited = await self.settlement.declare(opponent)
        finally:
            try:
                await self.clock.stop()
            finally:
                await self.session.close()
        await self.settlement.drain()
        return forfeited

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        await self.leave()

    # --- player input ---
    async def select_or_move(self, row: int, col: int) -> Optional[MoveOutcome]:
        """Click on a square. Broadcasts the resulting state when a move was made."""
        outcome = self.game.select_or_move(Square(row, col), self.color)
        if outcome is None:
            return None
        event = MoveEvent(
            board=outcome.board.to_matrix(),
            turn=outcome.turn.value,
            clocks=Clocks(**outcome.clocks.to_wire()),
        )
        await self.session.send(EventName.MOVE, event)
        if outcome.winner is not None:
            winner_id = self.player_id(outcome.winner)
            if winner_id is not None:
                await self.settlement.declare(winner_id)
        return outcome

    # --- relay handlers ---
    def _on_move(self, event: RelayEvent) -> None:
        if not isinstance(event, MoveEvent) or self.game.is_over:
            return
        try:
            board = Board.from_matrix(event.board)
        except InvalidBoardError as exc:
            logger.warning("Ignoring move in %s: %s", self.game_id, exc)
            return
        self.game.apply_snapshot(
            board,
            Color(event.turn),
            ClockPair.from_wire(event.clocks.model_dump()),
        )

    def _on_tick(self, event: RelayEvent) -> None:
        if not isinstance(event, TickEvent) or self.game.is_over:
            return
        self.game.apply_tick(
            ClockPair.from_wire(event.clocks.model_dump()), Color(event.turn)
        )

    def _on_outcome(self, event: GameOverEvent) -> None:
        self.game.finish(self.color_of(event.winner_id))

    async def _on_clock_expired(self, winner: Color) -> None:
        winner_id = self.player_id(winner)
        if winner_id is not None:
            await self.settlement.declare(winner_id)
