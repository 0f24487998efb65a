"""
Pytest will auto-discover / import this file called 'conftest.py'.
This file defines fixtures/variables required for testing multiple layers.
"""

from collections import Counter
from typing import Callable, Generator

import pytest
from sqlalchemy import StaticPool, create_engine
from sqlalchemy.orm import Session, sessionmaker

from src.core.config import Settings
from src.core.exceptions import RPCError
from src.core.models import EarningsSummary, TopPlayer
from src.core.shared_types import GameResult
from src.db.schema import Base
from src.db.sql_repository import SQLMarkerStore


def _in_memory_session() -> Session:
    """Every call gets its own database: each peer has its own local storage."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autoflush=False, bind=engine)()


@pytest.fixture
def db_session_repo() -> Generator[Session, None, None]:
    db = _in_memory_session()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def marker_store_factory() -> Generator[Callable[[], SQLMarkerStore], None, None]:
    """Call the inner function once per simulated peer."""
    sessions: list[Session] = []

    def _create_store() -> SQLMarkerStore:
        db = _in_memory_session()
        sessions.append(db)
        return SQLMarkerStore(db)

    yield _create_store
    for db in sessions:
        db.close()


@pytest.fixture
def settings() -> Settings:
    """No settle delay, and a clock interval long enough that tests drive ticks by hand."""
    return Settings(
        _env_file=None,
        relay_settle_delay_sec=0,
        tick_interval_sec=3600,
        commission_rate=0.2,
    )


class StubBackend:
    """Mock the BackendRPC: an in-memory wallet plus a counter of every call made."""

    def __init__(self, balance: float = 100.0) -> None:
        self.balance = balance
        self.calls: Counter[str] = Counter()
        self.credits: list[float] = []
        self.debits: list[float] = []
        self.stats: list[tuple[GameResult, float]] = []
        self.company: list[tuple[float, str]] = []
        self.top_players: list[TopPlayer] = []
        self.admins: set[str] = set()
        self.total_users = 42
        self.total_auth_users = 45
        self.fail: set[str] = set()

    def _enter(self, name: str) -> None:
        self.calls[name] += 1
        if name in self.fail:
            raise RPCError(f"{name} unavailable")

    async def credit_balance(self, amount: float) -> None:
        self._enter("credit_balance")
        self.credits.append(amount)
        self.balance = round(self.balance + amount, 2)

    async def debit_balance(self, amount: float) -> bool:
        self._enter("debit_balance")
        if self.balance < amount:
            return False
        self.debits.append(amount)
        self.balance = round(self.balance - amount, 2)
        return True

    async def increment_stat(self, result: GameResult, stake: float) -> None:
        self._enter("increment_stat")
        self.stats.append((result, stake))

    async def record_company_earning(self, amount: float, source_game: str) -> None:
        self._enter("record_company_earning")
        self.company.append((amount, source_game))

    async def get_top_players(self, limit: int) -> list[TopPlayer]:
        self._enter("get_top_players")
        return [
            TopPlayer(p.user_id, p.username, p.games_won, p.games_lost, p.earnings)
            for p in self.top_players[:limit]
        ]

    async def get_balance(self, user_id: str) -> float:
        self._enter("get_balance")
        return self.balance

    async def has_role(self, user_id: str, role: str) -> bool:
        self._enter("has_role")
        return user_id in self.admins

    async def get_earnings_summary(self) -> EarningsSummary:
        self._enter("get_earnings_summary")
        return EarningsSummary(day=4.0, week=12.0, month=40.0)

    async def get_total_users(self) -> int:
        self._enter("get_total_users")
        return self.total_users

    async def get_total_auth_users(self) -> int:
        self._enter("get_total_auth_users")
        return self.total_auth_users


@pytest.fixture
def backend_factory() -> Callable[..., StubBackend]:
    return StubBackend
