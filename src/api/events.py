"""
Relay event models.

The relay does not enforce any schema, so every payload goes through one of these models
before the services look at it. Field aliases follow the camelCase names used on the wire.
"""

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from src.checkers.square import BOARD_DIMENSIONS
from src.core.exceptions import InvalidEventError
from src.core.shared_types import EventName

Cell = Optional[dict[str, Any]]


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class PresenceMeta(WireModel):
    display_label: str = Field(alias="displayLabel")
    joined_at: str = Field(alias="joinedAt")


class Clocks(WireModel):
    black: int = Field(ge=0)
    red: int = Field(ge=0)


class InviteEvent(WireModel):
    to: str
    from_: str = Field(alias="from")
    from_label: str = Field(alias="fromLabel", default="")
    game_id: str = Field(alias="gameId")
    stake: float = Field(ge=0)


class AcceptEvent(WireModel):
    game_id: str = Field(alias="gameId")
    from_: str = Field(alias="from")
    to: str
    stake: float = Field(ge=0)


class MoveEvent(WireModel):
    board: list[list[Cell]]
    turn: str
    clocks: Clocks

    @field_validator("board")
    @classmethod
    def validate_board_shape(cls, value: list[list[Cell]]) -> list[list[Cell]]:
        if len(value) != BOARD_DIMENSIONS[0] or any(
            len(row) != BOARD_DIMENSIONS[1] for row in value
        ):
            raise ValueError(
                f"board must be a {BOARD_DIMENSIONS[0]}x{BOARD_DIMENSIONS[1]} matrix"
            )
        return value

    @field_validator("turn")
    @classmethod
    def validate_turn(cls, value: str) -> str:
        if value not in ("black", "red"):
            raise ValueError(f"turn must be 'black' or 'red', got {value!r}")
        return value


class TickEvent(WireModel):
    clocks: Clocks
    turn: str

    @field_validator("turn")
    @classmethod
    def validate_turn(cls, value: str) -> str:
        if value not in ("black", "red"):
            raise ValueError(f"turn must be 'black' or 'red', got {value!r}")
        return value


class GameOverEvent(WireModel):
    game_id: str = Field(alias="gameId")
    winner_id: str = Field(alias="winnerId")
    stake: float = Field(ge=0)


RelayEvent = Union[InviteEvent, AcceptEvent, MoveEvent, TickEvent, GameOverEvent]

EVENT_MODELS: dict[EventName, type[WireModel]] = {
    EventName.INVITE: InviteEvent,
    EventName.ACCEPT: AcceptEvent,
    EventName.MOVE: MoveEvent,
    EventName.TICK: TickEvent,
    EventName.GAME_OVER: GameOverEvent,
}


def parse_event(name: str, payload: Any) -> Optional[RelayEvent]:
    """
    Turn a raw broadcast into a typed event.

    Unknown event names give None (ignored by the caller), a known name with a payload
    of the wrong shape raises InvalidEventError.
    """
    try:
        event_name = EventName(name)
    except ValueError:
        return None
    model = EVENT_MODELS[event_name]
    try:
        return model.model_validate(payload)  # type: ignore[return-value]
    except ValidationError as exc:
        raise InvalidEventError(f"Malformed {name!r} payload: {exc}") from exc
