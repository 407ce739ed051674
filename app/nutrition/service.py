"""Glue between the stores and the calculator.

Turns profile rows into calculator input, runs a calculation pass and writes
the whole goals row back. Handlers raise GoalsError for client-facing
failures; main.py renders it as ``{"error", "code", ...}``.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.nutrition import calculator, connector
from app.nutrition.models import GoalsRecord, NutritionGoals, UserProfile

logger = logging.getLogger(__name__)

REQUIRED_PROFILE_FIELDS = ("date_of_birth", "gender", "activity_level", "fitness_goal", "height")

# Profile fields that feed the calculator; changing one invalidates goals
IMPACT_FIELDS = {
    "current_weight",
    "goal_weight",
    "height",
    "date_of_birth",
    "gender",
    "activity_level",
    "fitness_goal",
}


class GoalsError(Exception):
    def __init__(self, status_code: int, error: str, code: str | None = None, **extra: Any):
        super().__init__(error)
        self.status_code = status_code
        self.error = error
        self.code = code
        self.extra = extra

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.error}
        if self.code is not None:
            body["code"] = self.code
        body.update(self.extra)
        return body


def local_today() -> date:
    """Today in the configured zone; this is the "today" ages are computed on."""
    return datetime.now(ZoneInfo(settings.default_tz)).date()


def effective_weight(profile_row: dict[str, Any]) -> float | None:
    return profile_row.get("current_weight") or profile_row.get("starting_weight")


def missing_profile_fields(profile_row: dict[str, Any]) -> dict[str, bool]:
    missing = {f: not profile_row.get(f) for f in REQUIRED_PROFILE_FIELDS}
    missing["current_weight"] = not effective_weight(profile_row)
    return missing


def profile_from_row(profile_row: dict[str, Any]) -> UserProfile:
    """Build calculator input from a users row, or raise INCOMPLETE_PROFILE."""
    missing = missing_profile_fields(profile_row)
    if any(missing.values()):
        raise GoalsError(422, "Incomplete profile", "INCOMPLETE_PROFILE", missing=missing)
    return UserProfile(
        current_weight=effective_weight(profile_row),
        height=profile_row["height"],
        date_of_birth=profile_row["date_of_birth"],
        gender=profile_row["gender"],
        activity_level=profile_row["activity_level"],
        fitness_goal=profile_row["fitness_goal"],
        goal_weight=profile_row.get("goal_weight") or None,
    )


def impact_changed(profile_row: dict[str, Any], changes: dict[str, Any]) -> bool:
    for k in IMPACT_FIELDS:
        if k in changes and profile_row.get(k) != changes[k]:
            return True
    return False


async def recalculate(
    session: AsyncSession,
    user_id: str,
    profile_row: dict[str, Any],
    *,
    auto_recalculate: bool = True,
    today: date | None = None,
) -> tuple[dict[str, Any] | None, NutritionGoals]:
    """One full calculation pass: compute and upsert. Caller commits."""
    profile = profile_from_row(profile_row)
    goals = calculator.calculate_all_goals(profile, today or local_today())
    record = GoalsRecord.from_goals(
        user_id,
        goals,
        current_weight=profile.current_weight,
        target_weight=profile.goal_weight,
        calculated_at=datetime.now(timezone.utc),
        auto_recalculate=auto_recalculate,
    )
    saved = await connector.upsert_goals(session, record)
    logger.info(
        "Recalculated goals user=%s bmr=%s tdee=%s calories=%s",
        user_id,
        goals.bmr,
        goals.tdee,
        goals.daily_calories,
    )
    return saved, goals


def is_stale(goals_row: dict[str, Any] | None, current_weight: float | None) -> bool:
    """Staleness check against the stored snapshot. No goals yet means stale."""
    if goals_row is None:
        return True
    last_weight = goals_row.get("last_calculated_weight")
    if not last_weight or current_weight is None:
        # No usable weight baseline: only the age rule can apply
        last_weight = current_weight or 1.0
        current_weight = last_weight
    return calculator.should_recalculate_goals(
        float(current_weight),
        float(last_weight),
        goals_row.get("last_recalculated_at"),
        bool(goals_row.get("auto_recalculate", True)),
    )
