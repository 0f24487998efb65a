"""
Geometry of checkers moves.

A move is one diagonal step, or one diagonal jump over an opposing piece.
Chained jumps and forced captures are not part of the rule set: every jump is a complete turn.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional, Protocol

from src.checkers.pieces import Color, Piece
from src.checkers.rules import CaptureDirection, GameRules
from src.checkers.square import BOARD_DIMENSIONS, Square


class Board(Protocol):
    """Just the parts the move rules need"""

    def piece(self, square: Square) -> Optional[Piece]: ...
    def is_empty(self, square: Square) -> bool: ...


class MoveKind(Enum):
    STEP = auto()
    CAPTURE = auto()


@dataclass(frozen=True)
class Move:
    """basic definition of a move to be made"""

    from_square: Square
    to_square: Square

    @property
    def d_row(self) -> int:
        return self.to_square.row - self.from_square.row

    @property
    def d_col(self) -> int:
        return self.to_square.col - self.from_square.col


def captured_square(move: Move) -> Square:
    """The square jumped over (only meaningful for captures)."""
    return Square(
        move.from_square.row + move.d_row // 2,
        move.from_square.col + move.d_col // 2,
    )


def is_forward(piece: Piece, d_row: int) -> bool:
    return d_row * piece.color.forward > 0


def is_promotion_row(color: Color, row: int) -> bool:
    """Far rank: row 7 for black, row 0 for red."""
    return row == (BOARD_DIMENSIONS[0] - 1 if color == Color.BLACK else 0)


def is_simple_step(board: Board, move: Move, piece: Piece) -> bool:
    if abs(move.d_row) != 1 or abs(move.d_col) != 1:
        return False
    if not board.is_empty(move.to_square):
        return False
    return piece.is_king or is_forward(piece, move.d_row)


def is_capture(board: Board, move: Move, piece: Piece, rules: GameRules) -> bool:
    if abs(move.d_row) != 2 or abs(move.d_col) != 2:
        return False
    if not board.is_empty(move.to_square):
        return False
    jumped = board.piece(captured_square(move))
    if jumped is None or jumped.color == piece.color:
        return False
    if piece.is_king or rules.capture_direction == CaptureDirection.ANY:
        return True
    return is_forward(piece, move.d_row)


def classify_move(board: Board, move: Move, rules: GameRules) -> Optional[MoveKind]:
    """STEP or CAPTURE if the move is legal for the piece on the starting square, otherwise None."""
    if not (move.from_square.is_within_bounds() and move.to_square.is_within_bounds()):
        return None
    piece = board.piece(move.from_square)
    if piece is None:
        return None
    if is_simple_step(board, move, piece):
        return MoveKind.STEP
    if is_capture(board, move, piece, rules):
        return MoveKind.CAPTURE
    return None
