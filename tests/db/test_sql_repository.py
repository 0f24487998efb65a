"""Unit tests for src/db/sql_repository.py"""

from sqlalchemy.orm import Session

from src.db.repository import company_key, debit_key, payout_key
from src.db.sql_repository import SQLMarkerStore


def test_key_names() -> None:
    """These names are shared with existing clients' local storage, do not change them."""
    assert debit_key("g1", "u1") == "game_debited_g1_u1"
    assert payout_key("g1", "u1") == "game_g1_payout_u1"
    assert company_key("g1") == "company_recorded_g1"


def test_claim_once(db_session_repo: Session) -> None:
    store = SQLMarkerStore(db_session_repo)
    assert not store.has("k")
    assert store.claim("k")
    assert store.has("k")
    assert not store.claim("k")


def test_markers_are_independent(db_session_repo: Session) -> None:
    store = SQLMarkerStore(db_session_repo)
    assert store.claim(payout_key("g1", "u1"))
    assert store.claim(payout_key("g1", "u2"))
    assert store.claim(company_key("g1"))
    assert not store.has(payout_key("g2", "u1"))


def test_markers_survive_a_new_store_on_the_same_database(db_session_repo: Session) -> None:
    """A fresh store (next page load) sees what an earlier one recorded"""
    SQLMarkerStore(db_session_repo).claim(debit_key("g1", "u1"))
    assert not SQLMarkerStore(db_session_repo).claim(debit_key("g1", "u1"))
