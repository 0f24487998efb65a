"""Unit tests for /src/checkers/square.py"""

import pytest

from src.checkers.square import Square, dark_squares


@pytest.mark.parametrize(
    "row, col, expected",
    [(0, 0, True), (7, 7, True), (0, 7, True), (-1, 0, False), (0, 8, False), (8, 3, False)],
)
def test_within_bounds(row: int, col: int, expected: bool) -> None:
    assert Square(row, col).is_within_bounds() == expected


@pytest.mark.parametrize(
    "row, col, expected",
    [(0, 1, True), (1, 0, True), (0, 0, False), (3, 3, False), (7, 0, True)],
)
def test_dark_squares(row: int, col: int, expected: bool) -> None:
    """(row + col) odd is dark"""
    assert Square(row, col).is_dark() == expected


def test_there_are_32_dark_squares() -> None:
    squares = dark_squares()
    assert len(squares) == 32
    assert all(square.is_dark() for square in squares)


def test_offset() -> None:
    assert Square(2, 1).offset(1, 1) == Square(3, 2)
    assert Square(2, 1).offset(-2, 2) == Square(0, 3)
