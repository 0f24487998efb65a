"""
Clock Authority.

Only the peer first in presence order counts down. It broadcasts the remaining time every tick,
everyone else (and the host itself) just adopts what it receives.
If the host disconnects nobody takes over ticking.
"""

import asyncio
import contextlib
import logging
from typing import Awaitable, Callable, Optional

from src.api.events import Clocks, TickEvent
from src.checkers.game import Game
from src.checkers.pieces import Color
from src.core.shared_types import EventName
from src.services.session import ChannelSession

logger = logging.getLogger(__name__)

ExpiryHandler = Callable[[Color], Awaitable[None]]


class ClockAuthority:
    def __init__(
        self,
        session: ChannelSession,
        game: Game,
        on_expired: ExpiryHandler,
        interval_sec: float = 1.0,
    ) -> None:
        self.session = session
        self.game = game
        self.on_expired = on_expired
        self.interval_sec = interval_sec
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def should_tick(self) -> bool:
        """Host only, and only once both players are seated."""
        return (
            not self.game.is_over
            and self.session.is_authority
            and self.session.role is not None
        )

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Cancel the tick task. A task that already died is logged, not re-raised."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        except Exception:
            logger.exception("Clock task for %s failed", self.session.topic)

    async def tick_once(self) -> Optional[Color]:
        """One second off the side to move, broadcast it, and report the winner on expiry."""
        if not self.should_tick():
            return None
        winner = self.game.tick()
        tick = TickEvent(
            clocks=Clocks(**self.game.clocks.to_wire()),
            turn=self.game.turn.value,
        )
        await self.session.send(EventName.TICK, tick)
        if winner is not None:
            logger.info(
                "%s ran out of time in %s", winner.opponent.value, self.session.topic
            )
            await self.on_expired(winner)
        return winner

    async def _run(self) -> None:
        while not self.game.is_over:
            await asyncio.sleep(self.interval_sec)
            await self.tick_once()
