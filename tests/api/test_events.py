"""Unit tests for src/api/events.py"""

import pytest

from src.api.events import (
    AcceptEvent,
    GameOverEvent,
    InviteEvent,
    MoveEvent,
    PresenceMeta,
    TickEvent,
    parse_event,
)
from src.checkers.board import Board
from src.core.exceptions import InvalidEventError


def test_parse_invite() -> None:
    event = parse_event(
        "invite",
        {"to": "u2", "from": "u1", "fromLabel": "alice", "gameId": "g1", "stake": 10},
    )
    assert isinstance(event, InviteEvent)
    assert event.from_ == "u1"
    assert event.from_label == "alice"
    assert event.game_id == "g1"
    assert event.stake == 10


def test_parse_accept_and_game_over() -> None:
    accept = parse_event("accept", {"gameId": "g1", "from": "u1", "to": "u2", "stake": 5})
    assert accept == AcceptEvent(game_id="g1", from_="u1", to="u2", stake=5)
    over = parse_event("game_over", {"gameId": "g1", "winnerId": "u2", "stake": 5})
    assert over == GameOverEvent(game_id="g1", winner_id="u2", stake=5)


def test_parse_move() -> None:
    payload = {
        "board": Board.starting_position().to_matrix(),
        "turn": "red",
        "clocks": {"black": 300, "red": 299},
    }
    event = parse_event("move", payload)
    assert isinstance(event, MoveEvent)
    assert event.turn == "red"
    assert event.clocks.red == 299
    assert Board.from_matrix(event.board) == Board.starting_position()


def test_payload_uses_wire_names() -> None:
    event = TickEvent(clocks={"black": 3, "red": 4}, turn="black")
    assert event.to_payload() == {"clocks": {"black": 3, "red": 4}, "turn": "black"}
    over = GameOverEvent(game_id="g", winner_id="w", stake=2.5)
    assert over.to_payload() == {"gameId": "g", "winnerId": "w", "stake": 2.5}


def test_unknown_event_is_ignored() -> None:
    assert parse_event("chat", {"text": "hi"}) is None


@pytest.mark.parametrize(
    "name, payload",
    [
        ("tick", {"clocks": {"black": -1, "red": 4}, "turn": "black"}),
        ("tick", {"clocks": {"black": 1, "red": 4}, "turn": "green"}),
        ("move", {"board": [[None] * 8] * 7, "turn": "red", "clocks": {"black": 1, "red": 1}}),
        ("game_over", {"gameId": "g1", "stake": 5}),
        ("invite", {"to": "u2", "from": "u1", "gameId": "g1", "stake": -3}),
        ("accept", "not a dict"),
    ],
)
def test_malformed_payload(name: str, payload: object) -> None:
    with pytest.raises(InvalidEventError):
        parse_event(name, payload)


def test_presence_meta_aliases() -> None:
    meta = PresenceMeta(display_label="bob", joined_at="2026-01-01T00:00:00+00:00")
    assert meta.model_dump(by_alias=True) == {
        "displayLabel": "bob",
        "joinedAt": "2026-01-01T00:00:00+00:00",
    }
