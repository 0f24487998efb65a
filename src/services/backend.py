"""
External backend boundary: wallet, stats, leaderboard and admin queries.

The backend runs the financial operations as stored procedures, each one atomic on its own.
`HTTPBackendRPC` talks to them over the PostgREST style `/rest/v1/rpc/<name>` endpoints.
"""

import logging
from typing import Any, Optional, Protocol

import httpx

from src.core.config import Settings, get_settings
from src.core.exceptions import RPCError
from src.core.models import EarningsSummary, TopPlayer
from src.core.shared_types import GameResult

logger = logging.getLogger(__name__)


class BackendRPC(Protocol):
    """What the services need from the backend"""

    async def credit_balance(self, amount: float) -> None: ...

    async def debit_balance(self, amount: float) -> bool:
        """False on insufficient funds (never raises for that case)."""
        ...

    async def increment_stat(self, result: GameResult, stake: float) -> None: ...

    async def record_company_earning(self, amount: float, source_game: str) -> None: ...

    async def get_top_players(self, limit: int) -> list[TopPlayer]: ...

    async def get_balance(self, user_id: str) -> float: ...

    async def has_role(self, user_id: str, role: str) -> bool: ...

    async def get_earnings_summary(self) -> EarningsSummary: ...

    async def get_total_users(self) -> int: ...

    async def get_total_auth_users(self) -> int: ...

class HTTPBackendRPC:
    """BackendRPC over HTTP, authenticated as the signed in user."""

    def __init__(
        self,
        access_token: str,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.client = client or httpx.AsyncClient(
            base_url=self.settings.backend_url,
            timeout=self.settings.rpc_timeout_sec,
        )
        self.headers = {
            "apikey": self.settings.backend_api_key,
            "Authorization": f"Bearer {access_token}",
        }

    async def aclose(self) -> None:
        await self.client.aclose()

    # -- RPC endpoints --
    async def credit_balance(self, amount: float) -> None:
        await self._rpc("credit_balance", {"amount": amount})

    async def debit_balance(self, amount: float) -> bool:
        return (await self._rpc("debit_balance", {"amount": amount})) is True

    async def increment_stat(self, result: GameResult, stake: float) -> None:
        await self._rpc("increment_stat", {"result": result.value, "stake": stake})

    async def record_company_earning(self, amount: float, source_game: str) -> None:
        await self._rpc(
            "record_company_earning", {"amount": amount, "source_game": source_game}
        )

    async def get_top_players(self, limit: int) -> list[TopPlayer]:
        rows = await self._rpc("get_top_players", {"limit_count": limit})
        if not isinstance(rows, list):
            return []
        return [
            TopPlayer(
                user_id=row["user_id"],
                username=row.get("username") or row["user_id"],
                games_won=int(row.get("games_won") or 0),
                games_lost=int(row.get("games_lost") or 0),
                earnings=float(row.get("earnings") or 0),
            )
            for row in rows
        ]

    async def has_role(self, user_id: str, role: str) -> bool:
        return bool(await self._rpc("has_role", {"_user_id": user_id, "_role": role}))

    async def get_earnings_summary(self) -> EarningsSummary:
        rows = await self._rpc("get_earnings_summary", {})
        summary = EarningsSummary()
        for row in rows if isinstance(rows, list) else []:
            if row.get("period") in ("day", "week", "month"):
                setattr(summary, row["period"], float(row.get("total") or 0))
        return summary

    async def get_total_users(self) -> int:
        return int(await self._rpc("get_total_users", {}) or 0)

    async def get_total_auth_users(self) -> int:
        """Count of signed up accounts, including ones without a profile row."""
        return int(await self._rpc("get_total_auth_users", {}) or 0)

    # -- table reads --
    async def get_balance(self, user_id: str) -> float:
        rows = await self._request(
            "GET",
            "/rest/v1/profiles",
            params={"id": f"eq.{user_id}", "select": "balance"},
        )
        if not rows:
            return 0.0
        return float(rows[0].get("balance") or 0)

    # -- Internal helpers --
    async def _rpc(self, name: str, params: dict[str, Any]) -> Any:
        return await self._request("POST", f"/rest/v1/rpc/{name}", json=params)

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self.client.request(
                method, path, headers=self.headers, **kwargs
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise RPCError(
                f"{method} {path} failed with status {exc.response.status_code}."
            ) from exc
        except httpx.HTTPError as exc:
            raise RPCError(f"{method} {path} failed: {exc}") from exc
        if not response.content:
            return None
        return response.json()
