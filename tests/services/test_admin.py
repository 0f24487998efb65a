"""Unit tests for src/services/admin.py"""

import asyncio

import pytest

from src.core.exceptions import NotAuthorizedError
from src.core.models import EarningsSummary, TopPlayer
from src.relay.memory import InMemoryRelay
from src.services.admin import AdminDashboard
from src.services.session import ChannelSession


def test_non_admin_is_refused(backend_factory) -> None:
    async def scenario() -> None:
        dashboard = AdminDashboard(InMemoryRelay(), backend_factory(), "mallory")
        with pytest.raises(NotAuthorizedError):
            await dashboard.open()

    asyncio.run(scenario())


def test_dashboard_snapshot(backend_factory) -> None:
    async def scenario() -> None:
        relay = InMemoryRelay()
        backend = backend_factory()
        backend.admins.add("root")
        backend.top_players = [TopPlayer("alice", "alice", 9, 2, 120.0)]
        players = [
            ChannelSession(relay, "lobby", user, user, settle_delay_sec=0)
            for user in ("alice", "bob")
        ]
        for session in players:
            await session.open()

        dashboard = AdminDashboard(relay, backend, "root")
        await dashboard.open()
        # the admin watches without being counted
        assert dashboard.online_count == 2
        assert players[0].members == ["alice", "bob"]

        snapshot = await dashboard.snapshot()
        assert snapshot.online_count == 2
        assert snapshot.total_users == 42
        assert snapshot.earnings == EarningsSummary(day=4.0, week=12.0, month=40.0)
        assert [(p.user_id, p.online) for p in snapshot.top_players] == [("alice", True)]

        await players[1].close()
        assert dashboard.online_count == 1
        await dashboard.close()
        await players[0].close()

    asyncio.run(scenario())


def test_snapshot_with_backend_failures(backend_factory) -> None:
    async def scenario() -> None:
        backend = backend_factory()
        backend.admins.add("root")
        backend.fail.update({"get_earnings_summary", "get_total_users"})
        dashboard = AdminDashboard(InMemoryRelay(), backend, "root")
        await dashboard.open()
        snapshot = await dashboard.snapshot()
        assert snapshot.earnings == EarningsSummary()
        # the account count stands in for the missing profile count
        assert snapshot.total_users == 45

        backend.fail.add("get_total_auth_users")
        assert (await dashboard.snapshot()).total_users == 0
        await dashboard.close()

    asyncio.run(scenario())


def test_total_users_falls_back_to_account_count(backend_factory) -> None:
    """Profile rows may not exist yet for fresh sign ups"""

    async def scenario() -> None:
        backend = backend_factory()
        backend.admins.add("root")
        backend.total_users = 0
        dashboard = AdminDashboard(InMemoryRelay(), backend, "root")
        await dashboard.open()
        assert (await dashboard.snapshot()).total_users == 45
        assert backend.calls["get_total_auth_users"] == 1
        await dashboard.close()

    asyncio.run(scenario())
