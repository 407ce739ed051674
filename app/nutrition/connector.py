"""Database connector — async access to users, user_goals and weight_logs.

users       id, current_weight, starting_weight, goal_weight, height,
            date_of_birth, gender, activity_level, fitness_goal, updated_at
user_goals  user_id (unique), target_weight, daily_calorie_goal,
            daily_protein_goal, daily_carbs_target, daily_fat_target,
            calculated_bmr, calculated_tdee, goal_intensity,
            last_calculated_weight, last_recalculated_at, auto_recalculate,
            updated_at
weight_logs id, user_id, weight, date, notes, created_at

Weights are NUMERIC columns; the driver hands them back as Decimal.

Lookups return None (or an empty list) when nothing is found. Database
errors are not caught here.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Sequence

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.nutrition.models import GoalsRecord

logger = logging.getLogger(__name__)

PROFILE_COLUMNS = (
    "id, current_weight, starting_weight, goal_weight, height, "
    "date_of_birth, gender, activity_level, fitness_goal, updated_at"
)
GOALS_COLUMNS = (
    "user_id, target_weight, daily_calorie_goal, daily_protein_goal, "
    "daily_carbs_target, daily_fat_target, calculated_bmr, calculated_tdee, "
    "goal_intensity, last_calculated_weight, last_recalculated_at, "
    "auto_recalculate, updated_at"
)
WEIGHT_LOG_COLUMNS = "id, user_id, weight, date, notes, created_at"

# Fields a client may change through the profile endpoint
PROFILE_UPDATABLE = (
    "height",
    "current_weight",
    "goal_weight",
    "date_of_birth",
    "gender",
    "activity_level",
    "fitness_goal",
)

# Columns written when a profile is created
PROFILE_CREATE_FIELDS = PROFILE_UPDATABLE + ("starting_weight",)


async def _fetch_one(session: AsyncSession, query: str, params: dict[str, Any]) -> dict[str, Any] | None:
    result = await session.execute(text(query), params)
    row = result.fetchone()
    if row is None:
        return None
    columns = result.keys()
    return dict(zip(columns, row))


async def fetch_profile(session: AsyncSession, user_id: str) -> dict[str, Any] | None:
    query = f"SELECT {PROFILE_COLUMNS} FROM users WHERE id = :user_id"
    return await _fetch_one(session, query, {"user_id": user_id})


async def upsert_profile(
    session: AsyncSession,
    user_id: str,
    fields: dict[str, Any],
) -> dict[str, Any] | None:
    """Create the profile row, or overwrite the given fields if it exists."""
    columns = [k for k in PROFILE_CREATE_FIELDS if k in fields]
    params: dict[str, Any] = {k: fields[k] for k in columns}
    params["id"] = user_id
    params["updated_at"] = datetime.now(timezone.utc)

    names = ["id", *columns, "updated_at"]
    column_list = ", ".join(names)
    placeholders = ", ".join(f":{c}" for c in names)
    updates = ", ".join(f"{c} = EXCLUDED.{c}" for c in names if c != "id")
    query = (
        f"INSERT INTO users ({column_list}) VALUES ({placeholders}) "
        f"ON CONFLICT (id) DO UPDATE SET {updates} "
        f"RETURNING {PROFILE_COLUMNS}"
    )
    row = await _fetch_one(session, query, params)
    logger.info("Upserted profile user=%s", user_id)
    return row


async def update_profile(
    session: AsyncSession,
    user_id: str,
    changes: dict[str, Any],
) -> dict[str, Any] | None:
    """Apply a partial update and return the new row (None if no such user)."""
    fields = [k for k in PROFILE_UPDATABLE if k in changes]
    params: dict[str, Any] = {k: changes[k] for k in fields}
    params["user_id"] = user_id
    params["updated_at"] = datetime.now(timezone.utc)

    assignments = ", ".join([f"{k} = :{k}" for k in fields] + ["updated_at = :updated_at"])
    query = f"UPDATE users SET {assignments} WHERE id = :user_id RETURNING {PROFILE_COLUMNS}"
    row = await _fetch_one(session, query, params)
    if row is not None:
        logger.info("Updated profile user=%s fields=%s", user_id, ",".join(fields) or "-")
    return row


async def fetch_goals(session: AsyncSession, user_id: str) -> dict[str, Any] | None:
    query = f"SELECT {GOALS_COLUMNS} FROM user_goals WHERE user_id = :user_id"
    return await _fetch_one(session, query, {"user_id": user_id})


async def upsert_goals(session: AsyncSession, record: GoalsRecord) -> dict[str, Any] | None:
    """Write the whole goals row keyed by user_id."""
    params = record.model_dump()
    params["goal_intensity"] = record.goal_intensity.value
    columns = [c.strip() for c in GOALS_COLUMNS.split(",")]
    placeholders = ", ".join(f":{c}" for c in columns)
    updates = ", ".join(f"{c} = EXCLUDED.{c}" for c in columns if c != "user_id")
    query = (
        f"INSERT INTO user_goals ({GOALS_COLUMNS}) VALUES ({placeholders}) "
        f"ON CONFLICT (user_id) DO UPDATE SET {updates} "
        f"RETURNING {GOALS_COLUMNS}"
    )
    row = await _fetch_one(session, query, params)
    logger.info(
        "Upserted goals user=%s calories=%s intensity=%s",
        record.user_id,
        record.daily_calorie_goal,
        params["goal_intensity"],
    )
    return row


async def set_auto_recalculate(
    session: AsyncSession,
    user_id: str,
    auto_recalculate: bool,
) -> dict[str, Any] | None:
    query = (
        "UPDATE user_goals SET auto_recalculate = :auto, updated_at = :updated_at "
        f"WHERE user_id = :user_id RETURNING {GOALS_COLUMNS}"
    )
    params = {"auto": auto_recalculate, "updated_at": datetime.now(timezone.utc), "user_id": user_id}
    return await _fetch_one(session, query, params)


async def fetch_weight_logs(session: AsyncSession, user_id: str) -> Sequence[dict[str, Any]]:
    """All weight logs for a user, newest first."""
    query = (
        f"SELECT {WEIGHT_LOG_COLUMNS} FROM weight_logs "
        "WHERE user_id = :user_id ORDER BY date DESC, id DESC"
    )
    result = await session.execute(text(query), {"user_id": user_id})
    columns = result.keys()
    return [dict(zip(columns, r)) for r in result.fetchall()]


async def insert_weight_log(
    session: AsyncSession,
    user_id: str,
    weight: float,
    log_date: Any,
    notes: str | None = None,
) -> dict[str, Any] | None:
    query = (
        "INSERT INTO weight_logs (user_id, weight, date, notes, created_at) "
        "VALUES (:user_id, :weight, :date, :notes, :created_at) "
        f"RETURNING {WEIGHT_LOG_COLUMNS}"
    )
    params = {
        "user_id": user_id,
        "weight": weight,
        "date": log_date,
        "notes": notes,
        "created_at": datetime.now(timezone.utc),
    }
    return await _fetch_one(session, query, params)


async def delete_weight_log(session: AsyncSession, user_id: str, log_id: int) -> bool:
    query = "DELETE FROM weight_logs WHERE id = :id AND user_id = :user_id RETURNING id"
    row = await _fetch_one(session, query, {"id": log_id, "user_id": user_id})
    return row is not None


async def fetch_weight_log(session: AsyncSession, user_id: str, log_id: int) -> dict[str, Any] | None:
    query = f"SELECT {WEIGHT_LOG_COLUMNS} FROM weight_logs WHERE id = :id AND user_id = :user_id"
    return await _fetch_one(session, query, {"id": log_id, "user_id": user_id})


async def fetch_latest_weight_log_date(session: AsyncSession, user_id: str) -> Any:
    """Date of the user's newest weight log, or None when there are none."""
    query = "SELECT MAX(date) AS latest FROM weight_logs WHERE user_id = :user_id"
    row = await _fetch_one(session, query, {"user_id": user_id})
    return row["latest"] if row else None


async def update_weight_log(
    session: AsyncSession,
    user_id: str,
    log_id: int,
    changes: dict[str, Any],
) -> dict[str, Any] | None:
    fields = [k for k in ("weight", "date", "notes") if k in changes]
    if not fields:
        return await fetch_weight_log(session, user_id, log_id)
    params: dict[str, Any] = {k: changes[k] for k in fields}
    params.update({"id": log_id, "user_id": user_id})
    assignments = ", ".join(f"{k} = :{k}" for k in fields)
    query = (
        f"UPDATE weight_logs SET {assignments} "
        f"WHERE id = :id AND user_id = :user_id RETURNING {WEIGHT_LOG_COLUMNS}"
    )
    return await _fetch_one(session, query, params)
