"""Runtime settings, read from the environment (prefix CHECKERS_) or a .env file."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from src.checkers.rules import (
    DEFAULT_PER_MOVE_BUDGET_SEC,
    DEFAULT_TOTAL_BUDGET_SEC,
    CaptureDirection,
    ClockPolicy,
    GameRules,
)


class Settings(BaseSettings):
    # hosted backend (PostgREST style RPC endpoints)
    backend_url: str = "http://localhost:54321"
    backend_api_key: str = ""
    rpc_timeout_sec: float = 10.0

    # local durable storage for idempotency markers
    database_url: str = "sqlite:///checkers_markers.db"

    # relay
    relay_settle_delay_sec: float = 0.5
    tick_interval_sec: float = 1.0

    # economics
    commission_rate: float = 0.2
    leaderboard_limit: int = 10

    # rule set
    clock_policy: ClockPolicy = ClockPolicy.TOTAL_BUDGET
    kings_enabled: bool = True
    capture_direction: CaptureDirection = CaptureDirection.FORWARD_ONLY
    total_budget_sec: int = DEFAULT_TOTAL_BUDGET_SEC
    per_move_budget_sec: int = DEFAULT_PER_MOVE_BUDGET_SEC

    model_config = SettingsConfigDict(
        env_prefix="CHECKERS_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
    )

    def game_rules(self) -> GameRules:
        return GameRules(
            clock_policy=self.clock_policy,
            kings_enabled=self.kings_enabled,
            capture_direction=self.capture_direction,
            total_budget_sec=self.total_budget_sec,
            per_move_budget_sec=self.per_move_budget_sec,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
