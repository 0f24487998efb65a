"""Protocol for the local marker store, plus the key names it holds."""

from typing import Protocol


def debit_key(game_id: str, user_id: str) -> str:
    return f"game_debited_{game_id}_{user_id}"


def payout_key(game_id: str, user_id: str) -> str:
    return f"game_{game_id}_payout_{user_id}"


def company_key(game_id: str) -> str:
    return f"company_recorded_{game_id}"


class MarkerStore(Protocol):
    """Durable set of keys. Keys are never removed."""

    def has(self, key: str) -> bool:
        """Was the marker set before?"""
        ...

    def claim(self, key: str) -> bool:
        """Set the marker. True if this call set it, False if it already existed."""
        ...
