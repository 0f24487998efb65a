"""
Type definitions used across layers
"""

from enum import StrEnum


class Role(StrEnum):
    BLACK = "black"
    RED = "red"
    SPECTATOR = "spectator"


class ChannelStatus(StrEnum):
    """Statuses reported by the relay to a subscribe callback."""

    SUBSCRIBED = "SUBSCRIBED"
    CHANNEL_ERROR = "CHANNEL_ERROR"
    TIMED_OUT = "TIMED_OUT"
    CLOSED = "CLOSED"


class GameResult(StrEnum):
    WIN = "win"
    LOSS = "loss"


class EventName(StrEnum):
    INVITE = "invite"
    ACCEPT = "accept"
    MOVE = "move"
    TICK = "tick"
    GAME_OVER = "game_over"


def role_for_index(index: int) -> Role:
    """Presence order decides the role: first is black, second is red, everyone else watches."""
    if index == 0:
        return Role.BLACK
    if index == 1:
        return Role.RED
    return Role.SPECTATOR
