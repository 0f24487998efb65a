"""Unit tests for /src/checkers/pieces.py"""

import pytest

from src.checkers.pieces import Color, Piece


@pytest.mark.parametrize("color, opponent", [(Color.BLACK, Color.RED), (Color.RED, Color.BLACK)])
def test_opponent(color: Color, opponent: Color) -> None:
    assert color.opponent == opponent


def test_forward_direction() -> None:
    """Black starts at the top (row 0) and moves down, red moves up"""
    assert Color.BLACK.forward == 1
    assert Color.RED.forward == -1


@pytest.mark.parametrize("color", [c for c in Color])
def test_promotion(color: Color) -> None:
    """Promoting does not change the color, and promoting a king again keeps it a king"""
    piece = Piece(color)
    assert not piece.is_king
    piece.promote()
    assert piece.is_king
    assert piece.color == color
    piece.promote()
    assert piece.is_king


def test_wire_format() -> None:
    piece = Piece(Color.RED, is_king=True)
    assert piece.to_wire() == {"color": "red", "isKing": True}
    assert Piece.from_wire({"color": "red", "isKing": True}) == piece


def test_wire_format_empty_cell_and_legacy_king_flag() -> None:
    assert Piece.from_wire(None) is None
    assert Piece.from_wire({"color": "black", "king": True}) == Piece(Color.BLACK, True)
    assert Piece.from_wire({"color": "black"}) == Piece(Color.BLACK, False)
