"""
Boundary layer data model(s).

Plain records passed between the service layer and the external backend / UI.
(Decouples the wire models in src/api from what the services hand out.)
"""

from dataclasses import dataclass

UserId = str
GameId = str


@dataclass(frozen=True)
class MatchTicket:
    """Everything a client needs to enter a game room once the handshake succeeded."""

    game_id: GameId
    stake: float
    opponent_id: UserId


@dataclass
class TopPlayer:
    user_id: UserId
    username: str
    games_won: int
    games_lost: int
    earnings: float
    online: bool = False


@dataclass
class EarningsSummary:
    """Platform commission totals per period."""

    day: float = 0.0
    week: float = 0.0
    month: float = 0.0


@dataclass
class OnlineUser:
    user_id: UserId
    display_label: str
    joined_at: str
