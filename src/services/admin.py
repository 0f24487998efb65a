"""Admin dashboard: live users in the lobby, platform earnings and top players."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TypeVar, Union

from src.core.exceptions import NotAuthorizedError, RPCError
from src.core.models import EarningsSummary, TopPlayer
from src.relay.protocol import Relay
from src.services.backend import BackendRPC
from src.services.lobby import LOBBY_TOPIC
from src.services.session import ChannelSession

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"

T = TypeVar("T")


@dataclass
class DashboardSnapshot:
    online_count: int
    total_users: int
    earnings: EarningsSummary
    top_players: list[TopPlayer] = field(default_factory=list)


class AdminDashboard:
    def __init__(
        self,
        relay: Relay,
        backend: BackendRPC,
        local_id: str,
        leaderboard_limit: int = 10,
    ) -> None:
        self.backend = backend
        self.local_id = local_id
        self.leaderboard_limit = leaderboard_limit
        # watches the lobby without showing up in it
        self.session = ChannelSession(
            relay,
            topic=LOBBY_TOPIC,
            local_id=local_id,
            display_label="admin",
            settle_delay_sec=0,
            announce=False,
        )

    @property
    def online_count(self) -> int:
        return len(self.session.members)

    async def open(self) -> None:
        if not await self.is_admin():
            raise NotAuthorizedError(f"User {self.local_id} is not an admin.")
        await self.session.open()

    async def close(self) -> None:
        await self.session.close()

    async def is_admin(self) -> bool:
        try:
            return await self.backend.has_role(self.local_id, ADMIN_ROLE)
        except RPCError as exc:
            logger.warning("Role check failed for %s: %s", self.local_id, exc)
            return False

    async def snapshot(self) -> DashboardSnapshot:
        """Fetch all figures; anything the backend fails to deliver shows as zero / empty."""
        results = await asyncio.gather(
            self.backend.get_earnings_summary(),
            self.backend.get_top_players(self.leaderboard_limit),
            self.backend.get_total_users(),
            self.backend.get_total_auth_users(),
            return_exceptions=True,
        )
        earnings = self._or_default(results[0], EarningsSummary(), "earnings summary")
        top_players = self._or_default(results[1], [], "top players")
        profile_users = self._or_default(results[2], 0, "total users")
        auth_users = self._or_default(results[3], 0, "total auth users")
        online = set(self.session.members)
        for player in top_players:
            player.online = player.user_id in online
        return DashboardSnapshot(
            online_count=self.online_count,
            # profiles count first, accounts without a profile row as fallback
            total_users=profile_users or auth_users,
            earnings=earnings,
            top_players=top_players,
        )

    def _or_default(self, result: Union[T, BaseException], default: T, what: str) -> T:
        if isinstance(result, RPCError):
            logger.warning("Could not load %s: %s", what, result)
            return default
        if isinstance(result, BaseException):
            raise result
        return result
