"""Shared fixtures for the test suite."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any
import pytest
from httpx import ASGITransport, AsyncClient

from app.db import get_session
from app.main import app


# ---------------------------------------------------------------------------
# Fake DB session (no real Postgres needed)
# ---------------------------------------------------------------------------

class FakeSession:
    """Minimal stand-in for AsyncSession; records statements it was given."""

    def __init__(self, rows: list[dict[str, Any]] | None = None):
        self._rows = rows or []
        self.statements: list[tuple[str, dict[str, Any] | None]] = []
        self.commits = 0

    async def execute(self, stmt, params=None):
        self.statements.append((str(stmt), params))
        return FakeResult(self._rows)

    async def commit(self):
        self.commits += 1

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        pass


class FakeResult:
    def __init__(self, rows: list[dict[str, Any]]):
        self._rows = rows
        self._keys = list(rows[0].keys()) if rows else []

    def keys(self):
        return self._keys

    def fetchall(self):
        return [tuple(r[k] for k in self._keys) for r in self._rows]

    def fetchone(self):
        rows = self.fetchall()
        return rows[0] if rows else None


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

USER_ID = "user-123"


@pytest.fixture()
def fake_session():
    """Return a FakeSession with no rows (override _rows in tests if needed)."""
    return FakeSession()


@pytest.fixture()
def override_session(fake_session):
    """Override the FastAPI dependency so no real DB is needed."""
    async def _override():
        yield fake_session

    app.dependency_overrides[get_session] = _override
    yield fake_session
    app.dependency_overrides.clear()


@pytest.fixture()
async def client(override_session):
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"X-User-Id": USER_ID},
    ) as ac:
        yield ac


@pytest.fixture()
async def anon_client(override_session):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def make_profile_row(**overrides: Any) -> dict[str, Any]:
    """Helper to build a fake users row."""
    row = {
        "id": USER_ID,
        "current_weight": 90.0,
        "starting_weight": 95.0,
        "goal_weight": 75.0,
        "height": 180.0,
        "date_of_birth": date(1990, 6, 15),
        "gender": "male",
        "activity_level": "lightly_active",
        "fitness_goal": "lose_weight",
        "updated_at": datetime(2026, 2, 1, tzinfo=timezone.utc),
    }
    row.update(overrides)
    return row


def make_goals_row(**overrides: Any) -> dict[str, Any]:
    """Helper to build a fake user_goals row."""
    row = {
        "user_id": USER_ID,
        "target_weight": 75.0,
        "daily_calorie_goal": 2100,
        "daily_protein_goal": 180,
        "daily_carbs_target": 214,
        "daily_fat_target": 58,
        "calculated_bmr": 1855,
        "calculated_tdee": 2551,
        "goal_intensity": "moderate",
        "last_calculated_weight": 90.0,
        "last_recalculated_at": datetime.now(timezone.utc),
        "auto_recalculate": True,
        "updated_at": datetime.now(timezone.utc),
    }
    row.update(overrides)
    return row
