"""Clock pair: one countdown per color, in whole seconds."""

from dataclasses import dataclass
from typing import Any, Self

from src.checkers.pieces import Color
from src.checkers.rules import ClockPolicy, GameRules


@dataclass
class ClockPair:
    black: int
    red: int

    @classmethod
    def starting(cls, rules: GameRules) -> Self:
        return cls(black=rules.starting_time, red=rules.starting_time)

    @classmethod
    def from_wire(cls, clocks: dict[str, Any]) -> Self:
        return cls(black=int(clocks["black"]), red=int(clocks["red"]))

    def to_wire(self) -> dict[str, int]:
        return {"black": self.black, "red": self.red}

    def remaining(self, color: Color) -> int:
        return self.black if color == Color.BLACK else self.red

    def is_expired(self, color: Color) -> bool:
        return self.remaining(color) <= 0

    def tick(self, color: Color, seconds: int = 1) -> Self:
        """Countdown for the side to move. Never goes below zero."""
        if color == Color.BLACK:
            return type(self)(black=max(0, self.black - seconds), red=self.red)
        return type(self)(black=self.black, red=max(0, self.red - seconds))

    def after_move(self, rules: GameRules) -> Self:
        """Clock snapshot to broadcast together with a move."""
        if rules.clock_policy == ClockPolicy.PER_MOVE_RESET:
            return type(self)(
                black=rules.per_move_budget_sec, red=rules.per_move_budget_sec
            )
        return type(self)(black=self.black, red=self.red)
