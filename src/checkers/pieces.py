"""Defines the checkers pieces"""

from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Optional, Self


class Color(StrEnum):
    BLACK = "black"
    RED = "red"

    @property
    def opponent(self) -> "Color":
        return Color.RED if self == Color.BLACK else Color.BLACK

    @property
    def forward(self) -> int:
        """Row direction a man of this color moves in: black goes down the board (increasing row), red goes up."""
        return 1 if self == Color.BLACK else -1


@dataclass
class Piece:
    color: Color
    is_king: bool = False

    @classmethod
    def from_wire(cls, cell: Optional[dict[str, Any]]) -> Optional[Self]:
        """A matrix cell is either null or {"color": ..., "isKing": ...} (older clients send "king")."""
        if cell is None:
            return None
        is_king = bool(cell.get("isKing", cell.get("king", False)))
        return cls(Color(cell["color"]), is_king)

    def to_wire(self) -> dict[str, Any]:
        return {"color": self.color.value, "isKing": self.is_king}

    def promote(self) -> None:
        self.is_king = True
