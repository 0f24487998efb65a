"""
Configurable rule set.

Several variants of the game are played on the platform (5 minute games, 2 minutes per move,
with or without kings). They all share the same engine, parameterized by `GameRules`.
"""

from dataclasses import dataclass
from enum import StrEnum
from typing import Self


class ClockPolicy(StrEnum):
    PER_MOVE_RESET = "per_move_reset"
    TOTAL_BUDGET = "total_budget"


class CaptureDirection(StrEnum):
    FORWARD_ONLY = "forward_only"
    ANY = "any"


DEFAULT_TOTAL_BUDGET_SEC = 300
DEFAULT_PER_MOVE_BUDGET_SEC = 120


@dataclass(frozen=True)
class GameRules:
    clock_policy: ClockPolicy = ClockPolicy.TOTAL_BUDGET
    kings_enabled: bool = True
    capture_direction: CaptureDirection = CaptureDirection.FORWARD_ONLY
    total_budget_sec: int = DEFAULT_TOTAL_BUDGET_SEC
    per_move_budget_sec: int = DEFAULT_PER_MOVE_BUDGET_SEC

    @classmethod
    def blitz(cls) -> Self:
        """5 minutes for the whole game, per side."""
        return cls(clock_policy=ClockPolicy.TOTAL_BUDGET)

    @classmethod
    def per_move(cls) -> Self:
        """2 minutes per move, the clock resets after every move."""
        return cls(clock_policy=ClockPolicy.PER_MOVE_RESET)

    @property
    def starting_time(self) -> int:
        if self.clock_policy == ClockPolicy.PER_MOVE_RESET:
            return self.per_move_budget_sec
        return self.total_budget_sec
