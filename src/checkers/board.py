"""The Game board holds the position (which piece stands on which dark square) and knows how to change it"""

from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any, Optional, Self

from src.checkers.moves import Move
from src.checkers.pieces import Color, Piece
from src.checkers.square import BOARD_DIMENSIONS, Square, dark_squares
from src.core.exceptions import InvalidBoardError

# Rows each side occupies at the start of a game
STARTING_ROWS: dict[Color, range] = {
    Color.BLACK: range(0, 3),
    Color.RED: range(5, 8),
}

BoardMatrix = list[list[Optional[dict[str, Any]]]]


@dataclass
class Board:
    # only occupied squares are stored
    position: dict[Square, Piece] = field(default_factory=dict)

    @classmethod
    def starting_position(cls) -> Self:
        """Black on rows 0-2, Red on rows 5-7, dark squares only."""
        position: dict[Square, Piece] = {}
        for square in dark_squares():
            for color, rows in STARTING_ROWS.items():
                if square.row in rows:
                    position[square] = Piece(color)
        return cls(position)

    @classmethod
    def from_matrix(cls, matrix: BoardMatrix) -> Self:
        """
        Construct a board from the wire format: an 8x8 matrix (row-major) of cells,
        each cell being null or {"color": "black"|"red", "isKing": bool}.
        """
        if len(matrix) != BOARD_DIMENSIONS[0] or any(
            len(row) != BOARD_DIMENSIONS[1] for row in matrix
        ):
            raise InvalidBoardError(
                f"Board must be {BOARD_DIMENSIONS[0]}x{BOARD_DIMENSIONS[1]}."
            )
        position: dict[Square, Piece] = {}
        for row_idx, row in enumerate(matrix):
            for col_idx, cell in enumerate(row):
                piece = Piece.from_wire(cell)
                if piece is None:
                    continue
                square = Square(row_idx, col_idx)
                if not square.is_dark():
                    raise InvalidBoardError(
                        f"Piece on light square ({row_idx}, {col_idx})."
                    )
                position[square] = piece
        return cls(position)

    def to_matrix(self) -> BoardMatrix:
        matrix: BoardMatrix = []
        for row in range(BOARD_DIMENSIONS[0]):
            cells: list[Optional[dict[str, Any]]] = []
            for col in range(BOARD_DIMENSIONS[1]):
                piece = self.piece(Square(row, col))
                cells.append(piece.to_wire() if piece else None)
            matrix.append(cells)
        return matrix

    def copy(self) -> Self:
        return deepcopy(self)

    def piece(self, square: Square) -> Optional[Piece]:
        return self.position.get(square)

    def is_empty(self, square: Square) -> bool:
        return square not in self.position

    def place_piece(self, piece: Piece, square: Square) -> None:
        if not square.is_dark():
            raise InvalidBoardError(f"Cannot place a piece on light square {square}.")
        self.position[square] = piece

    def remove_piece(self, square: Square) -> Optional[Piece]:
        return self.position.pop(square, None)

    def move_piece(self, move: Move) -> None:
        """Update the position on the board (captures are removed separately)"""
        piece_that_moved = self.position.pop(move.from_square)
        self.position[move.to_square] = piece_that_moved

    def locate_color(self, color: Color) -> list[Square]:
        return [
            square for square, piece in self.position.items() if piece.color == color
        ]

    def count_pieces(self, color: Color) -> int:
        return len(self.locate_color(color))

    def count_all(self) -> dict[Color, int]:
        return {color: self.count_pieces(color) for color in Color}
