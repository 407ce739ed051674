"""Tests for the connector SQL and the calculation glue."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import patch

import pytest

from app.config import settings
from app.nutrition import connector, service
from app.nutrition.models import GoalsRecord, NutritionGoals
from app.nutrition.service import GoalsError
from tests.conftest import USER_ID, FakeSession, make_goals_row, make_profile_row


# ---------------------------------------------------------------------------
# Connector
# ---------------------------------------------------------------------------

class TestConnector:
    @pytest.mark.asyncio
    async def test_fetch_profile_returns_dict(self):
        row = make_profile_row()
        session = FakeSession([row])
        result = await connector.fetch_profile(session, USER_ID)
        assert result == row
        sql, params = session.statements[0]
        assert "FROM users" in sql
        assert params == {"user_id": USER_ID}

    @pytest.mark.asyncio
    async def test_fetch_goals_none_when_missing(self):
        assert await connector.fetch_goals(FakeSession(), USER_ID) is None

    @pytest.mark.asyncio
    async def test_update_profile_only_known_fields(self):
        session = FakeSession([make_profile_row(height=170.0)])
        await connector.update_profile(session, USER_ID, {"height": 170.0, "email": "x@y.z"})
        sql, params = session.statements[0]
        assert "height = :height" in sql
        assert "email" not in sql
        assert params["height"] == 170.0
        assert "updated_at" in params

    @pytest.mark.asyncio
    async def test_upsert_goals_writes_whole_row(self):
        record = GoalsRecord.model_validate(make_goals_row())
        session = FakeSession([make_goals_row()])
        saved = await connector.upsert_goals(session, record)
        sql, params = session.statements[0]
        assert "ON CONFLICT (user_id) DO UPDATE" in sql
        assert "daily_calorie_goal = EXCLUDED.daily_calorie_goal" in sql
        assert "user_id = EXCLUDED.user_id" not in sql
        assert params["goal_intensity"] == "moderate"
        assert saved["user_id"] == USER_ID

    @pytest.mark.asyncio
    async def test_fetch_weight_logs_newest_first(self):
        rows = [
            {"id": 2, "user_id": USER_ID, "weight": 88.0, "date": date(2026, 2, 2), "notes": None, "created_at": None},
            {"id": 1, "user_id": USER_ID, "weight": 89.0, "date": date(2026, 2, 1), "notes": None, "created_at": None},
        ]
        session = FakeSession(rows)
        result = await connector.fetch_weight_logs(session, USER_ID)
        assert [r["id"] for r in result] == [2, 1]
        assert "ORDER BY date DESC" in session.statements[0][0]

    @pytest.mark.asyncio
    async def test_delete_weight_log_scoped_to_user(self):
        session = FakeSession()
        assert await connector.delete_weight_log(session, USER_ID, 7) is False
        sql, params = session.statements[0]
        assert "user_id = :user_id" in sql
        assert params == {"id": 7, "user_id": USER_ID}


    @pytest.mark.asyncio
    async def test_upsert_profile_inserts_or_updates(self):
        session = FakeSession([make_profile_row()])
        fields = {"height": 180.0, "current_weight": 90.0, "starting_weight": 90.0, "email": "x@y.z"}
        row = await connector.upsert_profile(session, USER_ID, fields)
        sql, params = session.statements[0]
        assert "INSERT INTO users (id, height, current_weight, starting_weight, updated_at)" in sql
        assert "ON CONFLICT (id) DO UPDATE" in sql
        assert "id = EXCLUDED.id" not in sql
        assert "email" not in sql
        assert params["id"] == USER_ID
        assert row["id"] == USER_ID

    @pytest.mark.asyncio
    async def test_latest_weight_log_date(self):
        session = FakeSession([{"latest": date(2026, 2, 3)}])
        assert await connector.fetch_latest_weight_log_date(session, USER_ID) == date(2026, 2, 3)
        assert "MAX(date)" in session.statements[0][0]

    @pytest.mark.asyncio
    async def test_latest_weight_log_date_no_logs(self):
        session = FakeSession([{"latest": None}])
        assert await connector.fetch_latest_weight_log_date(session, USER_ID) is None

    @pytest.mark.asyncio
    async def test_update_weight_log_only_given_fields(self):
        session = FakeSession()
        assert await connector.update_weight_log(session, USER_ID, 3, {"notes": "after run"}) is None
        sql, params = session.statements[0]
        assert "SET notes = :notes" in sql
        assert "weight =" not in sql
        assert params == {"notes": "after run", "id": 3, "user_id": USER_ID}


# ---------------------------------------------------------------------------
# Profile → calculator input
# ---------------------------------------------------------------------------

class TestProfileFromRow:
    def test_complete_row(self):
        profile = service.profile_from_row(make_profile_row())
        assert profile.current_weight == 90.0
        assert profile.goal_weight == 75.0

    def test_falls_back_to_starting_weight(self):
        profile = service.profile_from_row(make_profile_row(current_weight=None))
        assert profile.current_weight == 95.0

    def test_incomplete_row(self):
        with pytest.raises(GoalsError) as exc:
            service.profile_from_row(make_profile_row(gender=None, date_of_birth=None))
        err = exc.value
        assert err.status_code == 422
        body = err.to_dict()
        assert body["code"] == "INCOMPLETE_PROFILE"
        assert body["missing"]["gender"] is True
        assert body["missing"]["date_of_birth"] is True
        assert body["missing"]["activity_level"] is False

    def test_no_weight_at_all(self):
        missing = service.missing_profile_fields(make_profile_row(current_weight=None, starting_weight=None))
        assert missing["current_weight"] is True


class TestImpactChanged:
    def test_changed_calculator_field(self):
        assert service.impact_changed(make_profile_row(), {"activity_level": "very_active"})

    def test_same_value(self):
        assert not service.impact_changed(make_profile_row(), {"height": 180.0})


class TestIsStale:
    def test_no_goals(self):
        assert service.is_stale(None, 90.0) is True

    def test_fresh(self):
        assert service.is_stale(make_goals_row(), 90.0) is False

    def test_weight_moved(self):
        assert service.is_stale(make_goals_row(), 80.0) is True

    def test_old_snapshot(self):
        old = datetime.now(timezone.utc) - timedelta(days=120)
        assert service.is_stale(make_goals_row(last_recalculated_at=old), 90.0) is True

    def test_auto_off(self):
        assert service.is_stale(make_goals_row(auto_recalculate=False), 50.0) is False

    def test_missing_baseline_weight(self):
        assert service.is_stale(make_goals_row(last_calculated_weight=None), 90.0) is False

    def test_numeric_column_baseline(self):
        goals = make_goals_row(last_calculated_weight=Decimal("90.00"))
        assert service.is_stale(goals, 80.0) is True
        assert service.is_stale(goals, Decimal("89.50")) is False


class TestRecalculate:
    @pytest.mark.asyncio
    async def test_upserts_full_record(self):
        session = FakeSession()
        with patch("app.nutrition.service.connector.upsert_goals", return_value=make_goals_row()) as upsert:
            saved, goals = await service.recalculate(
                session, USER_ID, make_profile_row(), today=date(2026, 2, 1)
            )
        assert isinstance(goals, NutritionGoals)
        assert goals.daily_calories == 2051
        record = upsert.call_args.args[1]
        assert isinstance(record, GoalsRecord)
        assert record.user_id == USER_ID
        assert record.daily_calorie_goal == 2051
        assert record.last_calculated_weight == 90.0
        assert record.target_weight == 75.0
        assert saved["user_id"] == USER_ID

    @pytest.mark.asyncio
    async def test_defaults_to_local_today(self):
        session = FakeSession()
        with (
            patch("app.nutrition.service.local_today", return_value=date(2026, 6, 15)) as today,
            patch("app.nutrition.service.connector.upsert_goals", return_value=make_goals_row()),
        ):
            _, on_birthday = await service.recalculate(session, USER_ID, make_profile_row())
        _, day_before = await _recalculate_on(date(2026, 6, 14))
        assert today.call_count == 1
        # one more year of age lowers BMR by 5 kcal
        assert on_birthday.bmr == day_before.bmr - 5


async def _recalculate_on(day: date):
    with patch("app.nutrition.service.connector.upsert_goals", return_value=make_goals_row()):
        return await service.recalculate(FakeSession(), USER_ID, make_profile_row(), today=day)


class TestLocalToday:
    def test_uses_configured_zone(self):
        with patch.object(settings, "default_tz", "UTC"):
            assert service.local_today() == datetime.now(timezone.utc).date()

    def test_reads_setting(self):
        with (
            patch.object(settings, "default_tz", "Europe/Rome"),
            patch("app.nutrition.service.ZoneInfo", return_value=timezone.utc) as zone,
        ):
            service.local_today()
        zone.assert_called_once_with("Europe/Rome")
