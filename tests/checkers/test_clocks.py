"""Unit tests for /src/checkers/clocks.py"""

from src.checkers.clocks import ClockPair
from src.checkers.pieces import Color
from src.checkers.rules import ClockPolicy, GameRules


def test_starting_clocks() -> None:
    assert ClockPair.starting(GameRules.blitz()) == ClockPair(300, 300)
    assert ClockPair.starting(GameRules.per_move()) == ClockPair(120, 120)


def test_tick_only_touches_side_to_move() -> None:
    clocks = ClockPair(10, 20)
    assert clocks.tick(Color.BLACK) == ClockPair(9, 20)
    assert clocks.tick(Color.RED) == ClockPair(10, 19)
    # ticks return new snapshots
    assert clocks == ClockPair(10, 20)


def test_clock_floors_at_zero() -> None:
    clocks = ClockPair(1, 5)
    for _ in range(5):
        clocks = clocks.tick(Color.BLACK)
    assert clocks.black == 0
    assert clocks.is_expired(Color.BLACK)
    assert not clocks.is_expired(Color.RED)


def test_after_move_total_budget_keeps_time() -> None:
    clocks = ClockPair(250, 190)
    assert clocks.after_move(GameRules(clock_policy=ClockPolicy.TOTAL_BUDGET)) == clocks


def test_after_move_per_move_resets() -> None:
    rules = GameRules(clock_policy=ClockPolicy.PER_MOVE_RESET, per_move_budget_sec=60)
    assert ClockPair(12, 60).after_move(rules) == ClockPair(60, 60)


def test_wire_format() -> None:
    clocks = ClockPair(100, 5)
    assert clocks.to_wire() == {"black": 100, "red": 5}
    assert ClockPair.from_wire({"black": 100, "red": 5}) == clocks
    assert clocks.remaining(Color.RED) == 5
