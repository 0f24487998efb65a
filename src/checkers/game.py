"""
The Game class is the entrypoint into the domain layer for the service layer.

Every peer holds its own Game. Moves are applied locally and the full resulting state
(board, turn, clocks) is what gets replicated, so a peer that missed a message simply
adopts the next snapshot it receives.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional, Self

from src.checkers.board import Board
from src.checkers.clocks import ClockPair
from src.checkers.moves import (
    Move,
    MoveKind,
    captured_square,
    classify_move,
    is_promotion_row,
)
from src.checkers.pieces import Color
from src.checkers.rules import GameRules
from src.checkers.square import Square
from src.core.exceptions import GameStateError


class Phase(Enum):
    WAITING_FOR_SELECTION = auto()
    PIECE_SELECTED = auto()
    OVER = auto()


@dataclass(frozen=True)
class MoveOutcome:
    """Result of an accepted move: everything that goes into the move broadcast."""

    move: Move
    kind: MoveKind
    board: Board
    turn: Color
    clocks: ClockPair
    promoted: bool = False
    # set when the side now to move has no pieces left
    winner: Optional[Color] = None


@dataclass
class Game:
    rules: GameRules
    board: Board
    turn: Color
    clocks: ClockPair
    selected: Optional[Square] = None
    winner: Optional[Color] = None
    over: bool = field(default=False)

    @classmethod
    def new_game(cls, rules: Optional[GameRules] = None) -> Self:
        """Standard starting formation, black moves first."""
        rules = rules or GameRules()
        return cls(
            rules=rules,
            board=Board.starting_position(),
            turn=Color.BLACK,
            clocks=ClockPair.starting(rules),
        )

    @property
    def phase(self) -> Phase:
        if self.over:
            return Phase.OVER
        if self.selected is not None:
            return Phase.PIECE_SELECTED
        return Phase.WAITING_FOR_SELECTION

    @property
    def is_over(self) -> bool:
        return self.over

    def select_or_move(self, square: Square, color: Optional[Color]) -> Optional[MoveOutcome]:
        """
        Handle a click on a square by the local player who plays `color`.
        ----

        * nothing selected yet: select the square if it holds one of your pieces
        * something selected: treat the square as destination. Legal? apply it. Illegal? drop the selection.

        Returns the outcome only when a move was applied.
        """
        if self.over or color is None or color != self.turn:
            return None

        if self.selected is None:
            piece = self.board.piece(square)
            if piece is not None and piece.color == color:
                self.selected = square
            return None

        move = Move(self.selected, square)
        self.selected = None
        kind = classify_move(self.board, move, self.rules)
        if kind is None:
            return None
        return self._apply(move, kind)

    def apply_snapshot(self, board: Board, turn: Color, clocks: ClockPair) -> None:
        """Adopt the state carried by a move event. Last applied wins."""
        self.board = board
        self.turn = turn
        self.clocks = clocks
        self.selected = None

    def apply_tick(self, clocks: ClockPair, turn: Color) -> None:
        """Adopt the state carried by a tick event."""
        self.clocks = clocks
        self.turn = turn

    def tick(self) -> Optional[Color]:
        """
        Count down one second for the side to move (clock authority only).
        Returns the winning color if that ran the clock out.
        """
        if self.over:
            raise GameStateError("Cannot tick the clock of a finished game.")
        self.clocks = self.clocks.tick(self.turn)
        if self.clocks.is_expired(self.turn):
            return self.turn.opponent
        return None

    def finish(self, winner: Optional[Color]) -> None:
        self.over = True
        self.winner = winner
        self.selected = None

    # -- PRIVATE HELPERS ---
    def _apply(self, move: Move, kind: MoveKind) -> MoveOutcome:
        next_board = self.board.copy()
        piece = next_board.piece(move.from_square)
        assert piece is not None
        next_board.move_piece(move)
        if kind == MoveKind.CAPTURE:
            next_board.remove_piece(captured_square(move))

        promoted = False
        if (
            self.rules.kings_enabled
            and not piece.is_king
            and is_promotion_row(piece.color, move.to_square.row)
        ):
            piece.promote()
            promoted = True

        mover = self.turn
        next_turn = mover.opponent
        next_clocks = self.clocks.after_move(self.rules)
        winner = mover if next_board.count_pieces(next_turn) == 0 else None

        self.apply_snapshot(next_board, next_turn, next_clocks)
        return MoveOutcome(
            move=move,
            kind=kind,
            board=next_board,
            turn=next_turn,
            clocks=next_clocks,
            promoted=promoted,
            winner=winner,
        )
